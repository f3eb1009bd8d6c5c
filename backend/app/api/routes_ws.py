from __future__ import annotations

import asyncio
import contextlib
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.distributor import FLEET_TOPIC, Subscription, TelemetryDistributor, vehicle_topic

logger = logging.getLogger("app.ws")
router = APIRouter()


async def _forward(sub: Subscription, ws: WebSocket) -> None:
    async for sample in sub:
        await ws.send_text(sample.model_dump_json())


async def _stream(ws: WebSocket, topic: str) -> None:
    distributor: TelemetryDistributor = ws.app.state.distributor
    # Subscribe before accepting so nothing published after the handshake is missed
    sub = distributor.subscribe(topic)
    await ws.accept()
    logger.info("WS connect: topic=%s", topic)

    sender = asyncio.create_task(_forward(sub, ws))
    try:
        while True:
            _ = await ws.receive_text()
    except WebSocketDisconnect:
        logger.info("WS disconnect: topic=%s", topic)
    except Exception:
        logger.info("WS error/disconnect: topic=%s", topic)
    finally:
        distributor.unsubscribe(sub)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await sender


@router.websocket("/ws/telemetry")
async def ws_fleet(ws: WebSocket):
    await _stream(ws, FLEET_TOPIC)


@router.websocket("/ws/telemetry/{vehicle_id}")
async def ws_vehicle(vehicle_id: str, ws: WebSocket):
    await _stream(ws, vehicle_topic(vehicle_id))

from __future__ import annotations

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ------------------------------------------------------------
    # Server
    # ------------------------------------------------------------
    backend_host: str = "0.0.0.0"
    backend_port: int = 8080
    environment: str = "development"  # development | staging | production

    # ------------------------------------------------------------
    # Database
    # ------------------------------------------------------------
    database_url: str = "sqlite:///./data/app.db"

    # Upper bound (seconds) on waiting for a pooled connection or a locked
    # SQLite database before the call fails with StoreUnavailable.
    store_timeout_s: float = 5.0

    # ------------------------------------------------------------
    # CORS
    # ------------------------------------------------------------
    # Comma-separated origins, e.g.:
    # "http://localhost:3000,https://fleet-dashboard.example.com"
    cors_origins: str = "http://localhost:3000"

    # ------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------
    log_level: str = "INFO"

    # ------------------------------------------------------------
    # Telemetry simulation
    # ------------------------------------------------------------
    sim_enabled: bool = True
    sim_tick_interval_ms: int = 5000
    # Capped to 1 for in-memory SQLite, which has a single shared connection
    sim_worker_pool_size: int = 4
    # Fix for reproducible runs; None draws fresh entropy per vehicle
    sim_random_seed: Optional[int] = None

    # ------------------------------------------------------------
    # Real-time distribution
    # ------------------------------------------------------------
    # Per-subscriber buffer; samples beyond this are dropped
    subscriber_queue_size: int = 100

    @property
    def cors_origins_list(self) -> List[str]:
        return [x.strip() for x in self.cors_origins.split(",") if x.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def sim_tick_interval_s(self) -> float:
        return self.sim_tick_interval_ms / 1000.0

    def validate_runtime(self) -> None:
        """Fail fast on settings the simulation cannot run with."""
        problems = []
        if self.sim_tick_interval_ms <= 0:
            problems.append("SIM_TICK_INTERVAL_MS must be positive")
        if self.sim_worker_pool_size <= 0:
            problems.append("SIM_WORKER_POOL_SIZE must be positive")
        if self.store_timeout_s <= 0:
            problems.append("STORE_TIMEOUT_S must be positive")
        if problems:
            raise RuntimeError(f"Invalid configuration: {'; '.join(problems)}")


settings = Settings()
settings.validate_runtime()

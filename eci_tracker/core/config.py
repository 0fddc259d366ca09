from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Upstream (ECI progression API) ────────────────────────
    UPSTREAM_URL: str = "https://eci.ec.europa.eu/045/public/api/report/progression"
    UPSTREAM_TIMEOUT_SEC: float = 10.0

    # ── Monitoring ────────────────────────────────────────────
    # Single place to change the goal; replaces whatever upstream reports.
    GOAL_OVERRIDE: int = 1_500_000
    POLL_INTERVAL_SEC: float = 1.0
    HEARTBEAT_SEC: float = 30.0
    SUBSCRIBER_QUEUE_SIZE: int = 100

    # ── Storage ───────────────────────────────────────────────
    # Empty URL disables persistence; live delivery is unaffected.
    DATABASE_URL: str = ""
    DATABASE_CREATE_TABLES: bool = True

    # ── Stats ─────────────────────────────────────────────────
    STATS_TIMEZONE: str = "Europe/Oslo"
    STATS_LOOKBACK_HOURS: int = 25
    HISTORY_DEFAULT_HOURS: int = 24

    # ── API ───────────────────────────────────────────────────
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    @property
    def has_database(self) -> bool:
        return bool(self.DATABASE_URL.strip())


settings = Settings()

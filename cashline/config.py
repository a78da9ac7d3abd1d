"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Forecast
    DEFAULT_PERIOD_TYPE: str = "monthly"
    DEFAULT_BASIS: str = "accrual"

    # Reconciliation
    RECONCILE_MATCH_THRESHOLD: float = 0.3
    LEDGER_MATCH_THRESHOLD: float = 0.5

    # Payment optimizer
    MINIMUM_BALANCE: float = 50000
    DEFAULT_DELAY_DAYS: int = 30
    DEFAULT_ADVANCE_DAYS: int = 14

    # Accounting sync retry policy
    SYNC_MAX_RETRIES: int = 3
    SYNC_BACKOFF_MULTIPLIER: float = 2
    SYNC_BASE_DELAY_MS: int = 1000

    # CORS
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if self.APP_ENV == "development":
            return ["*"]  # Allow all origins in development
        return [self.FRONTEND_URL, "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()

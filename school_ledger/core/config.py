from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    auto_create_tables: bool = Field(False, alias="AUTO_CREATE_TABLES")

    # Tokens are issued by the external identity service; we only verify them.
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")

    ledger_lock_timeout_seconds: float = Field(5.0, gt=0, alias="LEDGER_LOCK_TIMEOUT_SECONDS")
    school_timezone: str = Field("Africa/Kampala", alias="SCHOOL_TIMEZONE")
    dashboard_recent_payments: int = Field(5, ge=1, le=100, alias="DASHBOARD_RECENT_PAYMENTS")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()

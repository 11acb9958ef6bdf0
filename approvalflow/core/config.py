# =====================================================
# FILE: approvalflow/core/config.py
# Application Settings (environment / .env)
# =====================================================

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "ApprovalFlow"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./approvalflow.db"
    DB_ECHO: bool = False
    DB_POOL_PRE_PING: bool = True
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    # Workflow rules
    MIN_REJECTION_REASON_LENGTH: int = 10

    # Audit checksum chain seed
    AUDIT_GENESIS_CHECKSUM: str = "0"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()

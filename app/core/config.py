from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from decimal import Decimal
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'pos_user'
    POSTGRES_PASSWORD: str = 'pos_pass'
    POSTGRES_DB: str = 'pos_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Override completo (ej. sqlite:// en tests)

    # Redis settings (broker de Celery)
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # JWT settings
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Negocio
    BUSINESS_NAME: str = 'Mi Negocio'
    BUSINESS_TIMEZONE: str = 'America/Caracas'
    LOW_STOCK_THRESHOLD: Decimal = Decimal("5")
    INVOICE_PREFIX: str = ''
    SALE_COMMIT_MAX_RETRIES: int = 3

    # Tasa de cambio
    DEFAULT_EXCHANGE_RATE: Decimal = Decimal("1")
    EXCHANGE_RATE_API_URL: str = 'https://pydolarve.org/api/v1/dollar?page=bcv&monitor=usd'
    EXCHANGE_RATE_REFRESH_HOURS: int = 4
    EXCHANGE_RATE_TIMEOUT_SECONDS: int = 10

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("DEFAULT_EXCHANGE_RATE")
    @classmethod
    def validate_exchange_rate(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("DEFAULT_EXCHANGE_RATE debe ser mayor a cero")
        return v

settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Coupon Engine"
    version: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    APP_DATABASE_DSN: str = "sqlite:////tmp/coupons.db"
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Coupon rules
    CURRENCY_SYMBOL: str = "₹"
    NEW_CUSTOMER_WINDOW_DAYS: int = 30
    LOW_REMAINING_USES_WARNING: int = 5
    EXPIRY_WARNING_HOURS: int = 24

    # Expiration sweeper
    SWEEP_BATCH_SIZE: int = 500
    SWEEP_MAX_RETRIES: int = 3


settings = Settings()

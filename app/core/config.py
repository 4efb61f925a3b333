from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- Service ---
    PROJECT_NAME: str = "Order_Service"
    LOG_LEVEL: str = "INFO"

    # --- Storage ---
    DATABASE_URL: str = "sqlite:///./orders.db"
    REDIS_URL: str | None = None
    EVENT_TTL_SECONDS: int = 7 * 24 * 3600
    DB_CONNECT_RETRIES: int = 10
    DB_CONNECT_WAIT_SECONDS: int = 3

    # --- Notifications (optional, disabled when missing) ---
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_FROM_NUMBER: str | None = None
    NOTIFY_PHONE_NUMBER: str | None = None

    # --- Pricing (minor currency units) ---
    TIMEZONE: str = "Asia/Almaty"
    CURRENCY: str = "KZT"
    TAX_RATE: int = 12
    BASE_DELIVERY_FEE: int = 500
    PER_KM_DELIVERY_FEE: int = 100
    AVERAGE_SPEED_KMH: int = 30
    BULK_DISCOUNT_THRESHOLD: int = 5
    BULK_DISCOUNT_PERCENTAGE: int = 10
    LOYALTY_POINTS_RATE: int = 1

    # --- Orders ---
    ORDER_NUMBER_MAX_ATTEMPTS: int = 5

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"  # ignore unrelated variables in .env
    )

settings = Settings()

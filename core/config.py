from typing import Literal
from pydantic_settings import BaseSettings
from pydantic import ConfigDict

class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env")

    ENV: str = "development"

    DATABASE_URL: str = "sqlite:///./freshcart.db"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Razorpay
    RAZORPAY_KEY_ID: str
    RAZORPAY_KEY_SECRET: str
    CURRENCY: str = "INR"

    # Pricing (currency units)
    DELIVERY_FEE: float = 50
    FREE_DELIVERY_THRESHOLD: float = 500

    # Lifecycle windows
    CANCELLATION_WINDOW_MINUTES: int = 6
    SELLER_APPROVAL_MINUTES: int = 3
    AUTO_REJECT_SWEEP_SECONDS: int = 60

    PAYMENT_FAILURE_POLICY: Literal["mark_failed", "leave_pending"] = "mark_failed"

    # Default region for delivery phone numbers without a country code
    PHONE_REGION: str = "IN"


settings = Settings()

import random
from datetime import datetime, timezone, timedelta
from core.config import settings

def generate_delivery_otp() -> str:
    return str(random.randint(100000, 999999))

def get_approval_deadline(placed_at: datetime | None = None, minutes: int | None = None) -> datetime:
    placed_at = placed_at or datetime.now(timezone.utc)
    if minutes is None:
        minutes = settings.SELLER_APPROVAL_MINUTES
    return placed_at + timedelta(minutes=minutes)

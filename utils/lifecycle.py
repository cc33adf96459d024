"""
Order lifecycle vocabulary and time-window rules.

Fulfilment status and seller decision are separate fields:

    status:           Processing -> Under Delivery -> Completed
                      Processing -> Cancelled
    seller_decision:  pending -> accepted | rejected

A rejected decision always comes with status Cancelled, and an order only
leaves Processing for Under Delivery once the decision is accepted.
"""

import secrets
import string
from datetime import datetime, timezone, timedelta
from core.config import settings

# Fulfilment status
PROCESSING = "Processing"
UNDER_DELIVERY = "Under Delivery"
COMPLETED = "Completed"
CANCELLED = "Cancelled"
ORDER_STATUSES = (PROCESSING, UNDER_DELIVERY, COMPLETED, CANCELLED)
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})

# Seller decision
DECISION_PENDING = "pending"
DECISION_ACCEPTED = "accepted"
DECISION_REJECTED = "rejected"
SELLER_DECISIONS = (DECISION_PENDING, DECISION_ACCEPTED, DECISION_REJECTED)

PAYMENT_METHODS = ("COD", "Razorpay", "UPI", "Wallet")
ONLINE_PAYMENT_METHODS = frozenset({"Razorpay", "UPI", "Wallet"})
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")

ALLOWED_TRANSITIONS = {
    PROCESSING: {UNDER_DELIVERY, CANCELLED},
    UNDER_DELIVERY: {COMPLETED},
    COMPLETED: set(),
    CANCELLED: set(),
}

# Timeline labels
ORDER_PLACED = "Order Placed"
ORDER_CONFIRMED = "Order Confirmed"
REJECTED_BY_SELLER = "Rejected by Seller"
OUT_FOR_DELIVERY = "Out for Delivery"
DELIVERED = "Delivered"
ORDER_CANCELLED = "Order Cancelled"
PAYMENT_CONFIRMED = "Payment Confirmed"
PAYMENT_FAILED = "Payment Failed"
CASH_COLLECTED = "Cash Collected"
DELIVERY_PARTNER_ASSIGNED = "Delivery Partner Assigned"


def auto_rejected_label() -> str:
    return f"Auto-rejected: Seller did not respond within {settings.SELLER_APPROVAL_MINUTES} minutes"


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_within_cancellation_window(placed_at: datetime, now: datetime | None = None,
                                  minutes: int | None = None) -> bool:
    if minutes is None:
        minutes = settings.CANCELLATION_WINDOW_MINUTES
    now = now or utcnow()
    return as_utc(now) - as_utc(placed_at) <= timedelta(minutes=minutes)


def is_past_deadline(deadline: datetime, now: datetime | None = None) -> bool:
    now = now or utcnow()
    return as_utc(now) > as_utc(deadline)


def generate_order_id(now: datetime | None = None) -> str:
    """FC + epoch milliseconds + 5 random base36 characters."""
    now = now or utcnow()
    millis = int(now.timestamp() * 1000)
    alphabet = string.digits + string.ascii_uppercase
    suffix = "".join(secrets.choice(alphabet) for _ in range(5))
    return f"FC{millis}{suffix}"

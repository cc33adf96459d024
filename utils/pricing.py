from decimal import Decimal, ROUND_HALF_UP
from core.config import settings

CENT = Decimal("0.01")
TOLERANCE = Decimal("0.01")


def to_amount(value) -> Decimal:
    """Currency amount rounded to 2 decimals. Floats go through str to avoid binary noise."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_delivery_fee(subtotal) -> Decimal:
    """Free delivery from FREE_DELIVERY_THRESHOLD upwards, flat DELIVERY_FEE below it."""
    if to_amount(subtotal) >= to_amount(settings.FREE_DELIVERY_THRESHOLD):
        return to_amount(0)
    return to_amount(settings.DELIVERY_FEE)


def calculate_total(subtotal) -> tuple[Decimal, Decimal, Decimal]:
    """
    Returns (subtotal, delivery_fee, total_amount), all rounded to 2 decimals.
    """
    subtotal = to_amount(subtotal)
    delivery_fee = calculate_delivery_fee(subtotal)
    return subtotal, delivery_fee, to_amount(subtotal + delivery_fee)


def amounts_match(a, b) -> bool:
    return abs(to_amount(a) - to_amount(b)) <= TOLERANCE


def to_minor_units(amount) -> int:
    """Rupees to paise, the unit Razorpay expects."""
    return int((to_amount(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))

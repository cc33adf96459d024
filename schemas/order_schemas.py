from datetime import datetime
from decimal import Decimal
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator
from pydantic.alias_generators import to_camel
import phonenumbers
from core.config import settings
from utils.lifecycle import as_utc


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- requests ----------

class LineItemRequest(CamelModel):
    id: str
    name: str | None = None
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)
    image: str | None = None
    is_veg: bool | None = None

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, value):
        # catalog ids arrive as numbers from some clients
        if isinstance(value, int):
            return str(value)
        return value


class Coordinates(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class DeliveryAddress(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    phone: str
    address: str = Field(min_length=1, validation_alias=AliasChoices('address', 'street'))
    landmark: str | None = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(min_length=1, validation_alias=AliasChoices('pincode', 'postalCode', 'postal_code'))
    coordinates: Coordinates | None = None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value):
        """
        Validates the contact number with Google's phonenumbers library.
        Numbers without a country code are read in PHONE_REGION.
        Returns the number in E.164 format.
        """
        try:
            parsed = phonenumbers.parse(value, settings.PHONE_REGION)
            if not phonenumbers.is_valid_number(parsed):
                raise ValueError('Invalid phone number')

            return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)

        except phonenumbers.NumberParseException:
            raise ValueError('Invalid phone number')


class StoreDetails(CamelModel):
    seller_id: str = Field(min_length=1, validation_alias=AliasChoices('sellerId', 'seller_id', 'sellerUid'))
    seller_collection: str | None = None


class CreateOrderRequest(CamelModel):
    user_id: str = Field(min_length=1)
    products: list[LineItemRequest] = Field(min_length=1)
    subtotal: Decimal = Field(ge=0)
    delivery_fee: Decimal = Field(ge=0)
    total_amount: Decimal = Field(ge=0)
    payment_method: Literal["COD", "Razorpay", "UPI", "Wallet"]
    delivery_address: DeliveryAddress
    store_details: StoreDetails


class CancelOrderRequest(CamelModel):
    user_id: str = Field(min_length=1)


class SellerActionRequest(CamelModel):
    seller_id: str = Field(min_length=1)


class DeliveryPickupRequest(CamelModel):
    delivery_partner_id: str = Field(min_length=1)


class DeliverOrderRequest(SellerActionRequest):
    otp: str

    @field_validator('otp')
    @classmethod
    def validate_otp(cls, value):
        value = value.strip()
        if len(value) != 6 or not (value.isascii() and value.isdigit()):
            raise ValueError('must be a 6-digit code')
        return value


class VerifyPaymentRequest(CamelModel):
    razorpay_order_id: str = Field(min_length=1)
    razorpay_payment_id: str = Field(min_length=1)
    razorpay_signature: str = Field(min_length=1)
    order_id: str = Field(min_length=1)


# ---------- responses ----------

class OutModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class LineItemOut(OutModel):
    id: str = Field(validation_alias='product_ref')
    name: str
    price: float
    quantity: int
    image: str | None = None
    is_veg: bool | None = None


class TimelineEntryOut(OutModel):
    status: str
    timestamp: datetime

    @field_validator('timestamp')
    @classmethod
    def ensure_utc(cls, value):
        return as_utc(value)


class StoreDetailsOut(OutModel):
    seller_id: str
    seller_collection: str | None = None


class OrderOut(OutModel):
    order_id: str
    user_id: str
    products: list[LineItemOut]
    subtotal: float
    delivery_fee: float
    total_amount: float
    payment_method: str
    payment_status: str
    status: str
    seller_decision: str
    status_timeline: list[TimelineEntryOut]
    delivery_address: dict[str, Any]
    store_details: StoreDetailsOut
    timestamp: datetime
    seller_approval_deadline: datetime
    razorpay_order_id: str | None = None
    delivery_otp: str | None = None
    delivery_partner_id: str | None = None

    @field_validator('timestamp', 'seller_approval_deadline')
    @classmethod
    def ensure_utc(cls, value):
        return as_utc(value)


class GroupedOrdersOut(OutModel):
    processing: list[OrderOut] = []
    under_delivery: list[OrderOut] = []
    completed: list[OrderOut] = []
    cancelled: list[OrderOut] = []


class PaymentOut(OutModel):
    order_id: str
    payment_id: str
    amount: float
    currency: str
    payment_status: str
    created_at: datetime


class NotificationOut(OutModel):
    id: int
    type: str
    title: str
    message: str
    data: dict[str, Any] = {}
    read: bool
    created_at: datetime


def serialize_order(order, include_otp: bool = False) -> OrderOut:
    """
    Only the customer who placed the order may see the delivery OTP;
    the seller has to obtain it at the door.
    """
    out = OrderOut.model_validate(order)
    if not include_otp:
        out.delivery_otp = None
    return out

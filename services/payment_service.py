from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Session
from models.orders import Order
from models.payments import Payment
from core.config import settings
from core.exceptions import ValidationError, StateConflictError, PaymentVerificationError
from services.order_repository import OrderRepository
from services.payment_gateway import RazorpayGateway
from services.fulfillment_service import FulfillmentService
from schemas.order_schemas import VerifyPaymentRequest
from utils.lifecycle import CANCELLED, PAYMENT_CONFIRMED, PAYMENT_FAILED, utcnow
from utils.pricing import to_minor_units
from utils.logger import get_logger, sanitize_log_data

logger = get_logger(__name__)


class PaymentService:
    """
    Bridge between orders and the payment gateway. COD orders never come here.
    """

    @staticmethod
    def create_payment_intent(gateway: RazorpayGateway, amount: Decimal, receipt: str,
                              currency: str | None = None, notes: dict | None = None) -> dict:
        """
        Creates the gateway order the checkout widget pays against.

        Args:
            gateway: Payment gateway adapter
            amount: Amount in rupees (converted to paise here)
            receipt: Our order id
            currency: Defaults to settings.CURRENCY

        Returns:
            Gateway order dict
        """
        currency = currency or settings.CURRENCY
        gateway_order = gateway.create_order(
            amount=to_minor_units(amount),
            currency=currency,
            receipt=receipt,
            notes=notes
        )

        logger.info(
            "Payment intent created",
            extra={"order_id": receipt, "gateway_order_id": gateway_order.get("id"), "currency": currency}
        )
        return gateway_order

    @staticmethod
    def verify_payment(db: Session, gateway: RazorpayGateway, body: VerifyPaymentRequest,
                       now: datetime | None = None) -> Order:
        """
        Verifies the checkout callback signature and records the outcome.

        Flow:
        1. Order must exist, be an online payment and match the gateway order id
        2. Already settled payments are not verified twice
        3. Valid signature -> paid + "Payment Confirmed" timeline entry
        4. Valid signature on a cancelled order (customer cancel or auto-reject
           while the customer was paying) -> capture recorded, refunded at
           once, then StateConflictError
        5. Invalid signature -> PAYMENT_FAILURE_POLICY decides whether the
           order is marked failed or left pending, then PaymentVerificationError
        """
        order = OrderRepository.get(db, body.order_id)

        if order.payment_method == "COD":
            raise ValidationError("Cash on delivery orders do not need payment verification")

        if order.razorpay_order_id != body.razorpay_order_id:
            logger.warning(
                "Payment verification with mismatched gateway order",
                extra=sanitize_log_data({"order_id": order.order_id, **body.model_dump()})
            )
            raise ValidationError("Razorpay order id does not match this order")

        if order.payment_status in ("paid", "refunded"):
            raise StateConflictError(f"Payment is already {order.payment_status}")

        now = now or utcnow()
        FulfillmentService.expire_if_overdue(db, order, now)

        verified = gateway.verify_signature(
            body.razorpay_order_id, body.razorpay_payment_id, body.razorpay_signature
        )

        if not verified:
            PaymentService._record_failure(db, order, body.razorpay_payment_id, now)
            raise PaymentVerificationError("Payment verification failed")

        order.payment_status = "paid"
        order.razorpay_payment_id = body.razorpay_payment_id
        OrderRepository.append_timeline(order, PAYMENT_CONFIRMED, now)
        OrderRepository.update_payment_record(
            db, order.order_id,
            payment_status="paid",
            payment_id=body.razorpay_payment_id
        )

        if order.status == CANCELLED:
            FulfillmentService.refund_if_paid(db, order)
            db.commit()
            logger.warning(
                "Payment captured for cancelled order - refunded",
                extra={"order_id": order.order_id, "payment_id": body.razorpay_payment_id}
            )
            raise StateConflictError("Order was cancelled. The payment has been refunded.")

        db.commit()
        db.refresh(order)

        logger.info(
            "Payment verified",
            extra={"order_id": order.order_id, "payment_id": body.razorpay_payment_id}
        )
        return order

    @staticmethod
    def _record_failure(db: Session, order: Order, payment_id: str, now):
        if settings.PAYMENT_FAILURE_POLICY == "leave_pending":
            logger.warning(
                "Payment signature invalid - order left pending",
                extra={"order_id": order.order_id, "payment_id": payment_id}
            )
            return

        order.payment_status = "failed"
        OrderRepository.append_timeline(order, PAYMENT_FAILED, now)
        OrderRepository.update_payment_record(
            db, order.order_id,
            payment_status="failed",
            payment_id=payment_id,
            notes="Signature verification failed"
        )
        db.commit()

        logger.warning(
            "Payment signature invalid - order marked failed",
            extra={"order_id": order.order_id, "payment_id": payment_id}
        )

    @staticmethod
    def get_payment_history(db: Session, user_id: str) -> list[Payment]:
        return db.query(Payment).filter(Payment.user_id == user_id) \
            .order_by(Payment.created_at.desc(), Payment.id.desc()).all()

from datetime import datetime
from sqlalchemy.orm import Session
from models.orders import Order
from models.order_items import OrderItem
from models.payments import Payment
from core.config import settings
from core.exceptions import (ValidationError, NotFoundError, StateConflictError,
                             CancellationWindowExpiredError)
from schemas.order_schemas import CreateOrderRequest
from services.catalog_service import CatalogService
from services.fulfillment_service import FulfillmentService
from services.order_repository import OrderRepository
from services.payment_gateway import RazorpayGateway
from services.payment_service import PaymentService
from utils.lifecycle import (
    PROCESSING, UNDER_DELIVERY, COMPLETED, CANCELLED, DECISION_PENDING, DECISION_ACCEPTED,
    ORDER_PLACED, ORDER_CANCELLED, generate_order_id, is_within_cancellation_window, utcnow,
)
from utils.pricing import calculate_total, amounts_match, to_amount
from utils.verification import get_approval_deadline
from utils.logger import get_logger

logger = get_logger(__name__)


class OrderService:

    @staticmethod
    def _build_line_items(db: Session, body: CreateOrderRequest) -> list[OrderItem]:
        """
        Snapshots every requested line from the seller catalog.

        Raises:
            NotFoundError: seller has no catalog or a product is not in it
            ValidationError: a submitted price differs from the catalog price
        """
        seller_id = body.store_details.seller_id
        if not CatalogService.seller_has_catalog(db, seller_id):
            raise NotFoundError("Seller not found")

        catalog = CatalogService.get_products_for_seller(db, seller_id, [item.id for item in body.products])

        line_items = []
        for item in body.products:
            product = catalog.get(item.id)
            if product is None:
                raise NotFoundError(f"Product {item.id} not found in seller catalog")

            if not amounts_match(item.price, product.price):
                raise ValidationError(f"Price of {product.name} has changed. Please review your cart.")

            line_items.append(OrderItem(
                product_ref=str(product.id),
                name=product.name,
                price=to_amount(product.price),
                quantity=item.quantity,
                image=product.image_url,
                is_veg=product.is_veg
            ))

        return line_items

    @staticmethod
    def create_order(db: Session, gateway: RazorpayGateway, body: CreateOrderRequest,
                     now: datetime | None = None) -> tuple[Order, dict | None]:
        """
        Validates a checkout request and persists the order.

        Flow:
        1. Snapshot line items from the seller catalog
        2. Recompute subtotal, delivery fee and total; reject client mismatches
        3. For online payments create the gateway order first
        4. Persist order, timeline ("Order Placed") and payment record

        Returns:
            (order, gateway order dict or None for COD)
        """
        now = now or utcnow()
        line_items = OrderService._build_line_items(db, body)

        computed_subtotal = sum((item.price * item.quantity for item in line_items), to_amount(0))
        subtotal, delivery_fee, total_amount = calculate_total(computed_subtotal)

        if not amounts_match(body.subtotal, subtotal):
            logger.warning(
                "Order rejected - subtotal mismatch",
                extra={"user_id": body.user_id, "submitted": str(body.subtotal), "computed": str(subtotal)}
            )
            raise ValidationError("Subtotal does not match the items in the order")

        if not amounts_match(body.delivery_fee, delivery_fee):
            raise ValidationError("Invalid delivery fee")

        if not amounts_match(body.total_amount, total_amount):
            raise ValidationError("Invalid total amount calculation")

        order_id = generate_order_id(now)

        gateway_order = None
        if body.payment_method != "COD":
            gateway_order = PaymentService.create_payment_intent(
                gateway,
                amount=total_amount,
                receipt=order_id,
                notes={"userId": body.user_id, "sellerId": body.store_details.seller_id}
            )

        order = Order(
            order_id=order_id,
            user_id=body.user_id,
            products=line_items,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total_amount=total_amount,
            payment_method=body.payment_method,
            payment_status="pending",
            razorpay_order_id=gateway_order.get("id") if gateway_order else None,
            status=PROCESSING,
            seller_decision=DECISION_PENDING,
            delivery_address=body.delivery_address.model_dump(mode="json", exclude_none=True),
            seller_id=body.store_details.seller_id,
            seller_collection=body.store_details.seller_collection,
            timestamp=now,
            seller_approval_deadline=get_approval_deadline(now)
        )
        OrderRepository.append_timeline(order, ORDER_PLACED, now)

        payment = Payment(
            user_id=body.user_id,
            order_id=order_id,
            payment_id=gateway_order["id"] if gateway_order else f"COD_{order_id}",
            amount=total_amount,
            currency=settings.CURRENCY,
            payment_status="pending"
        )

        db.add(order)
        db.add(payment)
        db.commit()
        db.refresh(order)

        logger.info(
            "Order placed",
            extra={
                "order_id": order_id,
                "user_id": body.user_id,
                "seller_id": order.seller_id,
                "payment_method": body.payment_method,
                "total_amount": str(total_amount)
            }
        )

        return order, gateway_order

    @staticmethod
    def get_order(db: Session, order_id: str, now: datetime | None = None) -> Order:
        order = OrderRepository.get(db, order_id)
        FulfillmentService.expire_if_overdue(db, order, now)
        return order

    @staticmethod
    def list_user_orders(db: Session, user_id: str, now: datetime | None = None) -> dict[str, list[Order]]:
        """
        Orders of a customer, newest first, grouped by fulfilment status.
        """
        now = now or utcnow()
        orders = OrderRepository.list_for_user(db, user_id)

        grouped = {"processing": [], "under_delivery": [], "completed": [], "cancelled": []}
        buckets = {
            PROCESSING: "processing",
            UNDER_DELIVERY: "under_delivery",
            COMPLETED: "completed",
            CANCELLED: "cancelled",
        }
        for order in orders:
            FulfillmentService.expire_if_overdue(db, order, now)
            grouped[buckets[order.status]].append(order)

        return grouped

    @staticmethod
    def list_seller_pending(db: Session, seller_id: str, now: datetime | None = None) -> list[Order]:
        FulfillmentService.expire_overdue_orders(db, now)
        return OrderRepository.list_for_seller(db, seller_id, DECISION_PENDING)

    @staticmethod
    def list_seller_accepted(db: Session, seller_id: str) -> list[Order]:
        return OrderRepository.list_for_seller(db, seller_id, DECISION_ACCEPTED)

    @staticmethod
    def list_available_for_delivery(db: Session) -> list[Order]:
        return OrderRepository.list_available_for_delivery(db)

    @staticmethod
    def list_partner_orders(db: Session, partner_id: str) -> list[Order]:
        return OrderRepository.list_for_delivery_partner(db, partner_id)

    @staticmethod
    def cancel_order(db: Session, order_id: str, user_id: str, now: datetime | None = None) -> tuple[Order, bool]:
        """
        Customer cancellation, allowed while the order is Processing and
        within CANCELLATION_WINDOW_MINUTES of placement.

        Returns:
            (order, whether an online payment was refunded)
        """
        now = now or utcnow()
        order = OrderRepository.get_for_user(db, order_id, user_id)
        FulfillmentService.expire_if_overdue(db, order, now)

        if order.status != PROCESSING:
            logger.warning(
                "Cancellation rejected - order not processing",
                extra={"order_id": order_id, "status": order.status}
            )
            raise StateConflictError(
                "Order cannot be cancelled. Only pending or processing orders can be cancelled."
            )

        if not is_within_cancellation_window(order.timestamp, now):
            logger.warning("Cancellation rejected - window expired", extra={"order_id": order_id})
            raise CancellationWindowExpiredError(
                "Order cannot be cancelled. Cancellation window has expired "
                f"({settings.CANCELLATION_WINDOW_MINUTES} minutes)."
            )

        order.status = CANCELLED
        OrderRepository.append_timeline(order, ORDER_CANCELLED, now)
        refunded = FulfillmentService.refund_if_paid(db, order)

        db.commit()
        db.refresh(order)

        logger.info(
            "Order cancelled by customer",
            extra={"order_id": order_id, "user_id": user_id, "refund_processed": refunded}
        )
        return order, refunded

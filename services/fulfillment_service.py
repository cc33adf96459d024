import hmac
from datetime import datetime
from sqlalchemy.orm import Session
from models.orders import Order
from core.exceptions import StateConflictError, DeadlinePassedError, OTPMismatchError
from services.order_repository import OrderRepository
from services.notification_service import NotificationService
from utils.verification import generate_delivery_otp
from utils.lifecycle import (
    PROCESSING, UNDER_DELIVERY, COMPLETED, CANCELLED,
    DECISION_PENDING, DECISION_ACCEPTED, DECISION_REJECTED,
    ORDER_CONFIRMED, REJECTED_BY_SELLER, OUT_FOR_DELIVERY, DELIVERED, CASH_COLLECTED,
    DELIVERY_PARTNER_ASSIGNED,
    ONLINE_PAYMENT_METHODS, auto_rejected_label, can_transition, is_past_deadline, utcnow,
)
from utils.logger import get_logger

logger = get_logger(__name__)


class FulfillmentService:
    """
    Seller-side transitions of an order, plus the seller approval deadline.

    The deadline is evaluated lazily whenever an order is touched
    (expire_if_overdue). expire_overdue_orders runs the same check over every
    pending order and is driven by the background sweep in main.py.
    """

    @staticmethod
    def _set_status(order: Order, target: str):
        if not can_transition(order.status, target):
            raise StateConflictError(f"Order cannot move from {order.status} to {target}")
        order.status = target

    @staticmethod
    def refund_if_paid(db: Session, order: Order) -> bool:
        if order.payment_method in ONLINE_PAYMENT_METHODS and order.payment_status == "paid":
            order.payment_status = "refunded"
            OrderRepository.update_payment_record(db, order.order_id, payment_status="refunded")
            return True
        return False

    @staticmethod
    def _is_awaiting_seller(order: Order) -> bool:
        return order.status == PROCESSING and order.seller_decision == DECISION_PENDING

    @staticmethod
    def _auto_reject(db: Session, order: Order, now: datetime):
        FulfillmentService._set_status(order, CANCELLED)
        order.seller_decision = DECISION_REJECTED
        OrderRepository.append_timeline(order, auto_rejected_label(), now)
        refunded = FulfillmentService.refund_if_paid(db, order)

        NotificationService.notify_order_event(
            db, order,
            title="Order Rejected",
            message=f"Your order {order.order_id} was cancelled because the seller did not respond in time.",
            reason="Seller approval deadline passed",
            refundProcessed=refunded
        )

        logger.info(
            "Order auto-rejected after seller approval deadline",
            extra={"order_id": order.order_id, "seller_id": order.seller_id}
        )

    @staticmethod
    def expire_if_overdue(db: Session, order: Order, now: datetime | None = None) -> bool:
        """
        Cancels a pending order whose approval deadline has passed and commits.
        Returns True when the order was expired by this call.
        """
        now = now or utcnow()
        if not FulfillmentService._is_awaiting_seller(order):
            return False
        if not is_past_deadline(order.seller_approval_deadline, now):
            return False

        FulfillmentService._auto_reject(db, order, now)
        db.commit()
        return True

    @staticmethod
    def expire_overdue_orders(db: Session, now: datetime | None = None) -> int:
        now = now or utcnow()
        overdue = OrderRepository.list_overdue_pending(db, now)

        for order in overdue:
            FulfillmentService._auto_reject(db, order, now)
        if overdue:
            db.commit()
            logger.info("Auto-rejected overdue orders", extra={"count": len(overdue)})

        return len(overdue)

    @staticmethod
    def accept_order(db: Session, order_id: str, seller_id: str, now: datetime | None = None) -> Order:
        now = now or utcnow()
        order = OrderRepository.get_for_seller(db, order_id, seller_id)

        if not FulfillmentService._is_awaiting_seller(order):
            logger.warning(
                "Accept rejected - order not pending approval",
                extra={"order_id": order_id, "status": order.status, "decision": order.seller_decision}
            )
            raise StateConflictError("Order is not pending approval")

        if is_past_deadline(order.seller_approval_deadline, now):
            FulfillmentService._auto_reject(db, order, now)
            db.commit()
            raise DeadlinePassedError("Approval deadline has passed")

        order.seller_decision = DECISION_ACCEPTED
        order.delivery_otp = generate_delivery_otp()
        OrderRepository.append_timeline(order, ORDER_CONFIRMED, now)

        NotificationService.notify_order_event(
            db, order,
            title="Order Accepted",
            message="Your order has been accepted by the seller and is now pending delivery."
        )

        db.commit()
        db.refresh(order)

        logger.info("Order accepted by seller", extra={"order_id": order_id, "seller_id": seller_id})
        return order

    @staticmethod
    def reject_order(db: Session, order_id: str, seller_id: str, now: datetime | None = None) -> Order:
        now = now or utcnow()
        order = OrderRepository.get_for_seller(db, order_id, seller_id)

        if not FulfillmentService._is_awaiting_seller(order):
            raise StateConflictError("Order is not pending approval")

        if is_past_deadline(order.seller_approval_deadline, now):
            FulfillmentService._auto_reject(db, order, now)
            db.commit()
            raise DeadlinePassedError("Approval deadline has passed; the order was auto-rejected")

        FulfillmentService._set_status(order, CANCELLED)
        order.seller_decision = DECISION_REJECTED
        OrderRepository.append_timeline(order, REJECTED_BY_SELLER, now)
        refunded = FulfillmentService.refund_if_paid(db, order)

        NotificationService.notify_order_event(
            db, order,
            title="Order Rejected",
            message=f"Your order {order_id} has been rejected by the seller.",
            reason="Rejected by seller",
            refundProcessed=refunded
        )

        db.commit()
        db.refresh(order)

        logger.info("Order rejected by seller", extra={"order_id": order_id, "seller_id": seller_id})
        return order

    @staticmethod
    def assign_delivery_partner(db: Session, order_id: str, partner_id: str, now: datetime | None = None) -> Order:
        """
        A delivery partner picks up an order the seller has accepted and not
        yet dispatched. Each order gets at most one partner.
        """
        now = now or utcnow()
        order = OrderRepository.get(db, order_id)
        FulfillmentService.expire_if_overdue(db, order, now)

        if order.status != PROCESSING or order.seller_decision != DECISION_ACCEPTED:
            logger.warning(
                "Delivery pickup rejected - order not ready",
                extra={"order_id": order_id, "status": order.status, "decision": order.seller_decision}
            )
            raise StateConflictError("Order is not ready for delivery")

        if order.delivery_partner_id:
            raise StateConflictError("Order already has a delivery partner")

        order.delivery_partner_id = partner_id
        OrderRepository.append_timeline(order, DELIVERY_PARTNER_ASSIGNED, now)

        NotificationService.notify_order_event(
            db, order,
            title="Delivery Partner Assigned",
            message=f"A delivery partner has been assigned to your order {order_id}."
        )

        db.commit()
        db.refresh(order)

        logger.info("Delivery partner assigned", extra={"order_id": order_id, "partner_id": partner_id})
        return order

    @staticmethod
    def mark_out_for_delivery(db: Session, order_id: str, seller_id: str, now: datetime | None = None) -> Order:
        now = now or utcnow()
        order = OrderRepository.get_for_seller(db, order_id, seller_id)
        FulfillmentService.expire_if_overdue(db, order, now)

        if order.status != PROCESSING or order.seller_decision != DECISION_ACCEPTED:
            raise StateConflictError("Order must be accepted and processing before dispatch")

        FulfillmentService._set_status(order, UNDER_DELIVERY)
        OrderRepository.append_timeline(order, OUT_FOR_DELIVERY, now)

        NotificationService.notify_order_event(
            db, order,
            title="Order Out for Delivery",
            message=f"Your order {order_id} is now out for delivery."
        )

        db.commit()
        db.refresh(order)

        logger.info("Order out for delivery", extra={"order_id": order_id, "seller_id": seller_id})
        return order

    @staticmethod
    def mark_delivered(db: Session, order_id: str, seller_id: str, otp: str, now: datetime | None = None) -> Order:
        now = now or utcnow()
        order = OrderRepository.get_for_seller(db, order_id, seller_id)

        if order.status != UNDER_DELIVERY:
            raise StateConflictError("Order is not out for delivery")

        if not order.delivery_otp or not hmac.compare_digest(order.delivery_otp.encode(), otp.encode()):
            logger.warning("Delivery OTP mismatch", extra={"order_id": order_id, "seller_id": seller_id})
            raise OTPMismatchError("Invalid OTP")

        FulfillmentService._set_status(order, COMPLETED)
        OrderRepository.append_timeline(order, DELIVERED, now)

        NotificationService.notify_order_event(
            db, order,
            title="Order Delivered",
            message=f"Your order {order_id} has been successfully delivered."
        )

        db.commit()
        db.refresh(order)

        logger.info("Order delivered", extra={"order_id": order_id, "seller_id": seller_id})
        return order

    @staticmethod
    def confirm_cash_collected(db: Session, order_id: str, seller_id: str, now: datetime | None = None) -> Order:
        """
        Out-of-band confirmation that cash was collected for a delivered COD order.
        Delivery itself never marks a COD order as paid.
        """
        now = now or utcnow()
        order = OrderRepository.get_for_seller(db, order_id, seller_id)

        if order.payment_method != "COD":
            raise StateConflictError("Only cash on delivery orders can be confirmed as collected")
        if order.status != COMPLETED:
            raise StateConflictError("Cash can only be confirmed after delivery")
        if order.payment_status != "pending":
            raise StateConflictError(f"Payment is already {order.payment_status}")

        order.payment_status = "paid"
        OrderRepository.update_payment_record(db, order_id, payment_status="paid")
        OrderRepository.append_timeline(order, CASH_COLLECTED, now)

        db.commit()
        db.refresh(order)

        logger.info("COD payment collected", extra={"order_id": order_id, "seller_id": seller_id})
        return order

from datetime import datetime
from sqlalchemy.orm import Session, selectinload
from models.orders import Order
from models.order_status_events import OrderStatusEvent
from models.payments import Payment
from core.exceptions import NotFoundError
from utils.lifecycle import PROCESSING, UNDER_DELIVERY, DECISION_PENDING, DECISION_ACCEPTED, utcnow


class OrderRepository:
    """
    Order lookups and the two write helpers every transition shares.
    Nothing here commits; the calling service owns the transaction.
    """

    @staticmethod
    def _query(db: Session):
        return db.query(Order).options(
            selectinload(Order.products),
            selectinload(Order.status_timeline)
        )

    @staticmethod
    def find(db: Session, order_id: str) -> Order | None:
        return OrderRepository._query(db).filter(Order.order_id == order_id).one_or_none()

    @staticmethod
    def get(db: Session, order_id: str) -> Order:
        order = OrderRepository.find(db, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    def get_for_user(db: Session, order_id: str, user_id: str) -> Order:
        order = OrderRepository._query(db).filter(
            Order.order_id == order_id,
            Order.user_id == user_id
        ).one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    def get_for_seller(db: Session, order_id: str, seller_id: str) -> Order:
        order = OrderRepository._query(db).filter(
            Order.order_id == order_id,
            Order.seller_id == seller_id
        ).one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> list[Order]:
        return OrderRepository._query(db).filter(Order.user_id == user_id) \
            .order_by(Order.timestamp.desc(), Order.id.desc()).all()

    @staticmethod
    def list_for_seller(db: Session, seller_id: str, decision: str) -> list[Order]:
        return OrderRepository._query(db).filter(
            Order.seller_id == seller_id,
            Order.status == PROCESSING,
            Order.seller_decision == decision
        ).order_by(Order.timestamp.desc(), Order.id.desc()).all()

    @staticmethod
    def list_available_for_delivery(db: Session, limit: int = 50) -> list[Order]:
        return OrderRepository._query(db).filter(
            Order.status == PROCESSING,
            Order.seller_decision == DECISION_ACCEPTED,
            Order.delivery_partner_id.is_(None)
        ).order_by(Order.timestamp.desc(), Order.id.desc()).limit(limit).all()

    @staticmethod
    def list_for_delivery_partner(db: Session, partner_id: str) -> list[Order]:
        return OrderRepository._query(db).filter(
            Order.delivery_partner_id == partner_id,
            Order.status.in_((PROCESSING, UNDER_DELIVERY))
        ).order_by(Order.timestamp.desc(), Order.id.desc()).all()

    @staticmethod
    def list_overdue_pending(db: Session, now: datetime) -> list[Order]:
        return OrderRepository._query(db).filter(
            Order.status == PROCESSING,
            Order.seller_decision == DECISION_PENDING,
            Order.seller_approval_deadline < now
        ).all()

    @staticmethod
    def append_timeline(order: Order, label: str, at: datetime | None = None) -> OrderStatusEvent:
        event = OrderStatusEvent(status=label, timestamp=at or utcnow())
        order.status_timeline.append(event)
        return event

    @staticmethod
    def update_payment_record(db: Session, order_id: str, **fields) -> Payment | None:
        payment = db.query(Payment).filter(Payment.order_id == order_id).one_or_none()
        if payment:
            for key, value in fields.items():
                setattr(payment, key, value)
        return payment



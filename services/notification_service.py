from sqlalchemy.orm import Session
from models.notifications import Notification
from core.exceptions import NotFoundError
from utils.logger import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Notification records produced by order lifecycle transitions.
    Push delivery to devices happens elsewhere; we only store the rows.
    """

    @staticmethod
    def create_notification(db: Session, user_id: str, type: str, title: str,
                            message: str, data: dict | None = None) -> Notification:
        """
        Adds the notification to the caller's session without committing,
        so it is written in the same commit as the transition that caused it.
        """
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data or {},
            read=False
        )
        db.add(notification)

        logger.debug(
            "Notification queued",
            extra={"recipient": user_id, "notification_type": type, "title": title}
        )
        return notification

    @staticmethod
    def notify_order_event(db: Session, order, title: str, message: str, **data) -> Notification:
        return NotificationService.create_notification(
            db,
            user_id=order.user_id,
            type="order",
            title=title,
            message=message,
            data={"orderId": order.order_id, **data}
        )

    @staticmethod
    def get_notifications(db: Session, user_id: str, limit: int = 10, page: int = 1) -> dict:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        total = query.count()

        notifications = query.order_by(Notification.created_at.desc(), Notification.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()

        return {
            "notifications": notifications,
            "total": total,
            "page": page,
            "total_pages": (total + limit - 1) // limit
        }

    @staticmethod
    def get_unread_count(db: Session, user_id: str) -> int:
        return db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.read == False
        ).count()

    @staticmethod
    def mark_as_read(db: Session, notification_id: int, user_id: str) -> Notification:
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).one_or_none()

        if not notification:
            raise NotFoundError("Notification not found")

        notification.read = True
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_as_read(db: Session, user_id: str) -> int:
        updated = db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.read == False
        ).update({"read": True})
        db.commit()
        return updated

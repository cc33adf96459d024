from core.database import Base
from sqlalchemy import Column, Integer, String, Numeric, Enum
from utils.lifecycle import PAYMENT_STATUSES
from .mixins import CreatedAtMixin, UpdatedAtMixin

class Payment(Base, CreatedAtMixin, UpdatedAtMixin):
    """
    Payment record kept beside each order. payment_id is COD_<orderId> for
    cash orders, the gateway order id until capture, the gateway payment id after.
    """
    __tablename__ = "payments"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(String, nullable=False, index=True)
    order_id = Column(String(32), unique=True, nullable=False)
    payment_id = Column(String, nullable=False)

    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), default="INR", nullable=False)
    payment_status = Column(Enum(*PAYMENT_STATUSES, name="payment_record_status"), default="pending", nullable=False)
    notes = Column(String, nullable=True)

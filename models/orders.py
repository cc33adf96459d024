from core.database import Base
from sqlalchemy.orm import relationship
from sqlalchemy import (Column, Integer, String, Numeric, Enum, DateTime, JSON)
from utils.lifecycle import (ORDER_STATUSES, SELLER_DECISIONS, PAYMENT_METHODS, PAYMENT_STATUSES,
                             PROCESSING, DECISION_PENDING, utcnow)
from .mixins import UpdatedAtMixin

class Order(Base, UpdatedAtMixin):
    __tablename__ = "orders"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    order_id = Column(String(32), unique=True, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)

    #relationships
    products = relationship("OrderItem", back_populates="order",
                            order_by="OrderItem.id", cascade="all, delete-orphan")
    status_timeline = relationship("OrderStatusEvent", back_populates="order",
                                   order_by="OrderStatusEvent.id", cascade="all, delete-orphan")

    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)

    payment_method = Column(Enum(*PAYMENT_METHODS, name="payment_method"), nullable=False)
    payment_status = Column(Enum(*PAYMENT_STATUSES, name="payment_status"), default="pending", nullable=False)
    razorpay_order_id = Column(String, nullable=True, index=True)
    razorpay_payment_id = Column(String, nullable=True)

    status = Column(Enum(*ORDER_STATUSES, name="order_status"), default=PROCESSING, nullable=False)
    seller_decision = Column(Enum(*SELLER_DECISIONS, name="seller_decision"), default=DECISION_PENDING, nullable=False)

    # snapshots taken at checkout
    delivery_address = Column(JSON, nullable=False)
    seller_id = Column(String, nullable=False, index=True)
    seller_collection = Column(String, nullable=True)

    # set when a delivery partner picks the order up
    delivery_partner_id = Column(String, nullable=True, index=True)

    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    seller_approval_deadline = Column(DateTime(timezone=True), nullable=False)
    delivery_otp = Column(String(6), nullable=True)

    @property
    def store_details(self):
        return {"seller_id": self.seller_id, "seller_collection": self.seller_collection}

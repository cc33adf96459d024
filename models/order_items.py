from core.database import Base
from sqlalchemy import (Column, Integer, String, ForeignKey, Numeric, Boolean)
from sqlalchemy.orm import relationship

class OrderItem(Base):
    """
    Line item copied from the seller catalog at checkout. Later catalog
    edits never reach it, so product_ref is a plain string, not a foreign key.
    """
    __tablename__ = "order_items"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    order_pk = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    order = relationship("Order", back_populates="products")

    product_ref = Column(String, nullable=False)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    image = Column(String, nullable=True)
    is_veg = Column(Boolean, nullable=True)

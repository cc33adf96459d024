from core.database import Base
from sqlalchemy import (Column, Integer, String, Numeric, Boolean)
from .mixins import CreatedAtMixin, UpdatedAtMixin

class Product(Base, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "products"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    # owning seller; one logical catalog per seller
    seller_id = Column(String, nullable=False, index=True)

    name = Column(String, nullable=False)
    description = Column(String)
    category = Column(String)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String)
    is_veg = Column(Boolean, default=True)
    stock = Column(Integer, default=0)

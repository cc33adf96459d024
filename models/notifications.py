from core.database import Base
from sqlalchemy import Column, Integer, String, Boolean, JSON
from .mixins import CreatedAtMixin

class Notification(Base, CreatedAtMixin):
    __tablename__ = "notifications"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    # recipient
    user_id = Column(String, nullable=False, index=True)

    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    data = Column(JSON, default=dict)
    read = Column(Boolean, default=False, nullable=False, index=True)

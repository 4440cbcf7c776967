"""
Notification model

Rows consumed by the notification delivery collaborator. A dedupe_key makes
repeated notifications about the same subject overwrite each other.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text
from datetime import datetime

from stockflow.db.base import Base


class Notification(Base):
    """Notification - event published for people working the orders"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False, index=True)
    # PRODUCTION_PENDING, ALLOCATION_AVAILABLE, ORDER_STAGE

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)

    role_target = Column(String(50), nullable=True)
    user_target = Column(String(100), nullable=True)
    order_id = Column(Integer, nullable=True, index=True)
    material_id = Column(Integer, nullable=True)

    dedupe_key = Column(String(150), unique=True, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    read_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Notification {self.type}: {self.title}>"

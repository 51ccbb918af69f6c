from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean
from datetime import datetime
from app.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    type = Column(String(30), nullable=False)  # 'logbook_submitted', 'logbook_reviewed', 'general'
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    related_id = Column(String(64), nullable=True)
    related_type = Column(String(20), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<Notification(user={self.user_id}, type={self.type}, read={self.is_read})>"

from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime
from app.database import Base


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=True, index=True)
    action = Column(String(50), nullable=False)  # e.g. 'submit_weekly_log', 'delete_weekly_log'
    entity_type = Column(String(30), nullable=True)
    entity_id = Column(String(64), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog(user={self.user_id}, action={self.action}, entity={self.entity_type}:{self.entity_id})>"

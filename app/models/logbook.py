from sqlalchemy import Column, Integer, String, Date, DateTime, Text, JSON, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from datetime import datetime
from app.database import Base
import enum


class BundleStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class LogbookEntry(Base):
    __tablename__ = "logbook_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    project_id = Column(String(64), nullable=True, index=True)
    task_id = Column(String(64), nullable=True)
    entry_date = Column(Date, nullable=False, index=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=0)
    content = Column(Text, nullable=False)
    # 'draft' or weekly_<N>_log_<state>[_<detail>], see app.utils.category_codec
    category = Column(String(100), nullable=False, default="draft", index=True)
    attachments = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<LogbookEntry(id={self.id}, user={self.user_id}, date={self.entry_date}, category={self.category})>"


class WeeklyLogbook(Base):
    """Structured record of a weekly bundle and the last decision taken on it."""
    __tablename__ = "weekly_logbooks"
    __table_args__ = (
        UniqueConstraint("user_id", "week_number", name="uq_weekly_logbook_user_week"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    project_id = Column(String(64), nullable=True, index=True)
    week_number = Column(Integer, nullable=False)
    status = Column(SAEnum(BundleStatus, native_enum=False, length=20), nullable=False, default=BundleStatus.DRAFT)
    rejection_count = Column(Integer, nullable=False, default=0)
    reviewer_id = Column(String(64), nullable=True)
    review_comment = Column(Text, nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<WeeklyLogbook(user={self.user_id}, week={self.week_number}, status={self.status})>"


class LogbookReview(Base):
    __tablename__ = "logbook_reviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)  # intern whose week was reviewed
    project_id = Column(String(64), nullable=True)
    week_number = Column(Integer, nullable=False)
    reviewer_id = Column(String(64), nullable=False)
    decision = Column(SAEnum(BundleStatus, native_enum=False, length=20), nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<LogbookReview(user={self.user_id}, week={self.week_number}, decision={self.decision})>"

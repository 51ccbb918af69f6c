from dataclasses import asdict
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from app.models.logbook import BundleStatus, LogbookEntry
from app.services.aggregator import WeeklyBundle, LogbookStats, status_of
from app.utils import category_codec


class EntryCreate(BaseModel):
    entry_date: date
    content: str
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    project_id: Optional[str] = None
    task_id: Optional[str] = None
    attachments: Optional[List[Dict[str, Any]]] = None


class EntryUpdate(BaseModel):
    entry_date: Optional[date] = None
    content: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    task_id: Optional[str] = None
    attachments: Optional[List[Dict[str, Any]]] = None


class EntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    project_id: Optional[str] = None
    task_id: Optional[str] = None
    entry_date: date
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: int = 0
    content: str
    category: str
    week: Optional[int] = None
    state: str = "draft"
    attachments: Optional[List[Dict[str, Any]]] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: LogbookEntry) -> "EntryOut":
        tag = category_codec.decode(entry.category)
        out = cls.model_validate(entry)
        out.week = tag.week if tag else None
        out.state = status_of(tag).value
        return out


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reviewer_id: str
    decision: BundleStatus
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class WeeklyRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week_number: int
    status: BundleStatus
    project_id: Optional[str] = None
    rejection_count: int = 0
    reviewer_id: Optional[str] = None
    review_comment: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


class BundleOut(BaseModel):
    user_id: str
    week: int
    state: str
    entry_count: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_minutes: int = 0
    is_consistent: bool = True
    rejection_count: int = 0
    entries: List[EntryOut] = []
    record: Optional[WeeklyRecordOut] = None
    reviews: List[ReviewOut] = []

    @classmethod
    def from_bundle(cls, user_id: str, bundle: WeeklyBundle, record=None, reviews=None) -> "BundleOut":
        return cls(
            user_id=user_id,
            week=bundle.week,
            state=bundle.state.value,
            entry_count=bundle.entry_count,
            start_date=bundle.start_date,
            end_date=bundle.end_date,
            total_minutes=bundle.total_minutes,
            is_consistent=bundle.is_consistent,
            rejection_count=bundle.rejection_count,
            entries=[EntryOut.from_entry(e) for e in bundle.entries],
            record=WeeklyRecordOut.model_validate(record) if record is not None else None,
            reviews=[ReviewOut.model_validate(r) for r in (reviews or [])],
        )


class WeekListOut(BaseModel):
    user_id: str
    weeks: List[int]


class CompileRequest(BaseModel):
    entry_ids: List[int]


class ReviewRequest(BaseModel):
    comment: Optional[str] = None


class DeleteWeekOut(BaseModel):
    week: int
    deleted: int


class StatsOut(BaseModel):
    draft_count: int
    compiled_weeks: int
    submitted_weeks: int
    approved_weeks: int
    rejected_weeks: int
    total_hours: float
    approval_rate: float

    @classmethod
    def from_stats(cls, stats: LogbookStats) -> "StatsOut":
        return cls(**asdict(stats))


class PendingReviewOut(BaseModel):
    intern_id: str
    intern_name: str
    week: int
    entry_count: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_consistent: bool = True


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    message: str
    related_id: Optional[str] = None
    related_type: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None


class MeOut(BaseModel):
    user_id: str
    full_name: str
    role: str
    landing_route: str
    project_id: Optional[str] = None
    mentor_id: Optional[str] = None

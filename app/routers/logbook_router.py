from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from app.database import get_db
from app.dependencies import get_current_actor, require_mentor
from app.handlers.logbook_handler import LogbookHandler
from app.schemas.logbook import (
    BundleOut,
    CompileRequest,
    DeleteWeekOut,
    EntryCreate,
    EntryOut,
    EntryUpdate,
    PendingReviewOut,
    ReviewRequest,
    StatsOut,
    WeekListOut,
)
from app.services.lifecycle import Actor
from app.services.submission_gate import SubmissionGate
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/logbook", tags=["logbook"])


# ----------------------------------------------------------------------
# Daily entries (own logbook)
# ----------------------------------------------------------------------

@router.post("/entries", response_model=EntryOut, status_code=201)
async def create_entry(payload: EntryCreate, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    return LogbookHandler(db).create_entry(actor, payload)


@router.get("/entries", response_model=List[EntryOut])
async def list_entries(
    entry_date: Optional[date] = Query(default=None),
    drafts_only: bool = Query(default=False),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return LogbookHandler(db).list_entries(actor, actor.user_id, entry_date, drafts_only)


@router.patch("/entries/{entry_id}", response_model=EntryOut)
async def update_entry(entry_id: int, payload: EntryUpdate, actor: Actor = Depends(get_current_actor),
                       db: Session = Depends(get_db)):
    return LogbookHandler(db).update_entry(actor, entry_id, payload)


@router.delete("/entries/{entry_id}", status_code=204)
async def delete_entry(entry_id: int, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    LogbookHandler(db).delete_entry(actor, entry_id)
    return Response(status_code=204)


# ----------------------------------------------------------------------
# Weeks (own logbook)
# ----------------------------------------------------------------------

@router.get("/weeks", response_model=WeekListOut)
async def list_weeks(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    weeks = LogbookHandler(db).list_weeks(actor, actor.user_id)
    return WeekListOut(user_id=actor.user_id, weeks=weeks)


@router.get("/weeks/{week}", response_model=BundleOut)
async def get_week(week: int, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    return LogbookHandler(db).get_week(actor, actor.user_id, week)


@router.get("/stats", response_model=StatsOut)
async def get_stats(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    return LogbookHandler(db).get_stats(actor, actor.user_id)


@router.post("/weeks/{week}/compile", response_model=BundleOut)
async def compile_week(week: int, payload: CompileRequest, actor: Actor = Depends(get_current_actor),
                       db: Session = Depends(get_db)):
    handler = LogbookHandler(db)
    bundle = handler.gate.compile_week(actor, week, payload.entry_ids)
    return handler.bundle_out(actor.user_id, bundle)


@router.post("/weeks/{week}/submit", response_model=BundleOut)
async def submit_week(week: int, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    handler = LogbookHandler(db)
    bundle = handler.gate.submit_week(actor, week)
    return handler.bundle_out(actor.user_id, bundle)


@router.delete("/weeks/{week}", response_model=DeleteWeekOut)
async def delete_week(week: int, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    deleted = SubmissionGate(db).delete_week(actor, week)
    return DeleteWeekOut(week=week, deleted=deleted)


# ----------------------------------------------------------------------
# Mentor review
# ----------------------------------------------------------------------

@router.get("/reviews/pending", response_model=List[PendingReviewOut])
async def pending_reviews(actor: Actor = Depends(require_mentor), db: Session = Depends(get_db)):
    return SubmissionGate(db).get_pending_reviews(actor)


@router.get("/interns/{user_id}/weeks", response_model=WeekListOut)
async def list_intern_weeks(user_id: str, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    weeks = LogbookHandler(db).list_weeks(actor, user_id)
    return WeekListOut(user_id=user_id, weeks=weeks)


@router.get("/interns/{user_id}/weeks/{week}", response_model=BundleOut)
async def get_intern_week(user_id: str, week: int, actor: Actor = Depends(get_current_actor),
                          db: Session = Depends(get_db)):
    return LogbookHandler(db).get_week(actor, user_id, week)


@router.post("/interns/{user_id}/weeks/{week}/approve", response_model=BundleOut)
async def approve_week(user_id: str, week: int, payload: Optional[ReviewRequest] = None,
                       actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    handler = LogbookHandler(db)
    comment = payload.comment if payload else None
    bundle = handler.gate.approve_week(actor, user_id, week, comment)
    return handler.bundle_out(user_id, bundle)


@router.post("/interns/{user_id}/weeks/{week}/reject", response_model=BundleOut)
async def reject_week(user_id: str, week: int, payload: Optional[ReviewRequest] = None,
                      actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    handler = LogbookHandler(db)
    comment = payload.comment if payload else None
    bundle = handler.gate.reject_week(actor, user_id, week, comment)
    return handler.bundle_out(user_id, bundle)

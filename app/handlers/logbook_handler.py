from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional
from datetime import date
from app.exceptions import Forbidden, InvalidEntry, InvalidTransition, NotFound
from app.models.logbook import LogbookEntry
from app.schemas.logbook import BundleOut, EntryCreate, EntryOut, EntryUpdate, StatsOut
from app.services import aggregator
from app.services.lifecycle import Actor
from app.services.logbook_service import LogbookService
from app.services.project_resolver import ProjectResolver
from app.services.submission_gate import SubmissionGate
from app.utils import category_codec
from app.utils.timezone import combine_local, duration_minutes
import logging

logger = logging.getLogger(__name__)

# Entries in these states may still be edited or deleted one by one
EDITABLE_STATES = (None, category_codec.COMPILE, category_codec.REJECTED)
DELETABLE_STATES = (None, category_codec.COMPILE)


class LogbookHandler:
    def __init__(self, db: Session, gate: Optional[SubmissionGate] = None):
        self.db = db
        self.gate = gate or SubmissionGate(db)

    # ------------------------------------------------------------------
    # Daily entries
    # ------------------------------------------------------------------

    def create_entry(self, actor: Actor, payload: EntryCreate) -> EntryOut:
        content = (payload.content or "").strip()
        if not content:
            raise InvalidEntry("Activity content is required")

        start = combine_local(payload.entry_date, payload.start_time)
        end = combine_local(payload.entry_date, payload.end_time)
        minutes = self._resolve_duration(start, end, payload.duration_minutes)

        project_id = payload.project_id
        if not project_id:
            project_id = ProjectResolver.resolve(self.db, actor.user_id).project_id

        entry = LogbookService.create_entry(
            db=self.db,
            user_id=actor.user_id,
            entry_date=payload.entry_date,
            content=content,
            duration_minutes=minutes,
            start_time=start,
            end_time=end,
            project_id=project_id,
            task_id=payload.task_id,
            attachments=payload.attachments
        )
        return EntryOut.from_entry(entry)

    def update_entry(self, actor: Actor, entry_id: int, payload: EntryUpdate) -> EntryOut:
        entry = self._get_owned_entry(actor, entry_id)
        tag = category_codec.decode(entry.category)
        if (tag.state if tag else None) not in EDITABLE_STATES:
            raise InvalidTransition(f"Entry {entry_id} is {tag.state} and can no longer be edited")

        changes: Dict[str, Any] = payload.model_dump(exclude_unset=True)
        if "content" in changes:
            changes["content"] = (changes["content"] or "").strip()
            if not changes["content"]:
                raise InvalidEntry("Activity content is required")

        if "entry_date" in changes and changes["entry_date"] is None:
            raise InvalidEntry("Entry date is required")
        entry_date = changes.get("entry_date") or entry.entry_date

        if {"start_time", "end_time", "entry_date", "duration_minutes"} & changes.keys():
            if "start_time" in changes:
                start = combine_local(entry_date, changes["start_time"])
            else:
                start = self._move_to(entry.start_time, entry_date)
            if "end_time" in changes:
                end = combine_local(entry_date, changes["end_time"])
            else:
                end = self._move_to(entry.end_time, entry_date)

            changes["start_time"] = start
            changes["end_time"] = end
            changes["duration_minutes"] = self._resolve_duration(
                start, end, changes.get("duration_minutes", entry.duration_minutes)
            )

        entry = LogbookService.update_entry(self.db, entry, changes)
        return EntryOut.from_entry(entry)

    def delete_entry(self, actor: Actor, entry_id: int) -> None:
        entry = self._get_owned_entry(actor, entry_id)
        tag = category_codec.decode(entry.category)
        if (tag.state if tag else None) not in DELETABLE_STATES:
            raise Forbidden(f"Entry {entry_id} is part of a {tag.state} week; delete the whole week instead")
        LogbookService.delete_entries(self.db, actor.user_id, [entry.id])

    def list_entries(self, viewer: Actor, owner_id: str, entry_date: Optional[date] = None,
                     drafts_only: bool = False) -> List[EntryOut]:
        self.gate.ensure_can_view(viewer, owner_id)
        entries = LogbookService.get_user_entries(self.db, owner_id, entry_date)
        if drafts_only:
            entries = aggregator.draft_entries(entries)
        return [EntryOut.from_entry(e) for e in entries]

    # ------------------------------------------------------------------
    # Weekly views
    # ------------------------------------------------------------------

    def list_weeks(self, viewer: Actor, owner_id: str) -> List[int]:
        self.gate.ensure_can_view(viewer, owner_id)
        return self.gate.list_weeks(owner_id)

    def get_week(self, viewer: Actor, owner_id: str, week: int) -> BundleOut:
        week = category_codec.parse_week(week)
        self.gate.ensure_can_view(viewer, owner_id)
        bundle = self.gate.get_bundle(owner_id, week)
        if bundle.is_empty:
            raise NotFound(f"Week {week} has no entries")
        return self.bundle_out(owner_id, bundle)

    def get_stats(self, viewer: Actor, owner_id: str) -> StatsOut:
        self.gate.ensure_can_view(viewer, owner_id)
        entries = LogbookService.get_user_entries(self.db, owner_id)
        return StatsOut.from_stats(aggregator.summarize(entries))

    def bundle_out(self, owner_id: str, bundle) -> BundleOut:
        return BundleOut.from_bundle(
            owner_id,
            bundle,
            record=self.gate.get_record(owner_id, bundle.week),
            reviews=self.gate.get_reviews(owner_id, bundle.week)
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_owned_entry(self, actor: Actor, entry_id: int) -> LogbookEntry:
        entry = LogbookService.get_entry(self.db, entry_id)
        if not entry:
            raise NotFound(f"Entry {entry_id} not found")
        if entry.user_id != actor.user_id:
            raise Forbidden("You can only change your own entries")
        return entry

    @staticmethod
    def _resolve_duration(start, end, given: Optional[int]) -> int:
        if start is not None and end is not None:
            minutes = duration_minutes(start, end)
            if minutes is None:
                raise InvalidEntry("End time must be after start time")
            return minutes
        return given or 0

    @staticmethod
    def _move_to(value, entry_date: date):
        if value is None:
            return None
        return value.replace(year=entry_date.year, month=entry_date.month, day=entry_date.day)

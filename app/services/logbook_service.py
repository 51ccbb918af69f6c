from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models.logbook import LogbookEntry
from app.exceptions import StoreUnavailable
from app.utils import category_codec
from app.utils.timezone import utc_now
from datetime import date, datetime
from typing import List, Dict, Any, Optional, Iterable
import logging

logger = logging.getLogger(__name__)


class LogbookService:
    """Record store access for logbook entries. Every store failure surfaces as StoreUnavailable."""

    @staticmethod
    def create_entry(
        db: Session,
        user_id: str,
        entry_date: date,
        content: str,
        duration_minutes: int = 0,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
        category: str = category_codec.DRAFT_CATEGORY
    ) -> LogbookEntry:
        entry = LogbookEntry(
            user_id=user_id,
            project_id=project_id,
            task_id=task_id,
            entry_date=entry_date,
            start_time=start_time,
            end_time=end_time,
            duration_minutes=duration_minutes,
            content=content,
            category=category,
            attachments=attachments
        )
        try:
            db.add(entry)
            db.commit()
            db.refresh(entry)
        except SQLAlchemyError as e:
            logger.error(f"❌ Error creating entry for user {user_id}: {str(e)}")
            db.rollback()
            raise StoreUnavailable("Could not save logbook entry") from e

        logger.info(f"✅ Created entry {entry.id} for user {user_id} on {entry_date}")
        return entry

    @staticmethod
    def get_entry(db: Session, entry_id: int) -> Optional[LogbookEntry]:
        try:
            return db.query(LogbookEntry).filter(LogbookEntry.id == entry_id).first()
        except SQLAlchemyError as e:
            logger.error(f"❌ Error loading entry {entry_id}: {str(e)}")
            db.rollback()
            raise StoreUnavailable("Could not load logbook entry") from e

    @staticmethod
    def get_user_entries(db: Session, user_id: str, entry_date: Optional[date] = None) -> List[LogbookEntry]:
        """All entries of one owner, oldest first. Optionally limited to a single day."""
        try:
            query = db.query(LogbookEntry).filter(LogbookEntry.user_id == user_id)
            if entry_date:
                query = query.filter(LogbookEntry.entry_date == entry_date)
            return query.order_by(LogbookEntry.entry_date, LogbookEntry.start_time, LogbookEntry.id).all()
        except SQLAlchemyError as e:
            logger.error(f"❌ Error loading entries for user {user_id}: {str(e)}")
            db.rollback()
            raise StoreUnavailable("Could not load logbook entries") from e

    @staticmethod
    def get_tagged_entries(db: Session, user_id: str, pattern: str = category_codec.TAGGED_PATTERN) -> List[LogbookEntry]:
        """Entries of one owner whose category matches a LIKE pattern."""
        try:
            return db.query(LogbookEntry).filter(
                LogbookEntry.user_id == user_id,
                LogbookEntry.category.like(pattern)
            ).order_by(LogbookEntry.entry_date, LogbookEntry.id).all()
        except SQLAlchemyError as e:
            logger.error(f"❌ Error loading entries like {pattern} for user {user_id}: {str(e)}")
            db.rollback()
            raise StoreUnavailable("Could not load logbook entries") from e

    @staticmethod
    def get_week_entries(db: Session, user_id: str, week: int) -> List[LogbookEntry]:
        # LIKE treats '_' as a wildcard, so decode again to keep only exact week matches
        entries = LogbookService.get_tagged_entries(db, user_id, category_codec.week_pattern(week))
        week_entries = []
        for e in entries:
            tag = category_codec.decode(e.category)
            if tag is not None and tag.week == week:
                week_entries.append(e)
        return week_entries

    @staticmethod
    def get_submitted_entries(db: Session, user_ids: Iterable[str]) -> List[LogbookEntry]:
        """Entries awaiting review for the given interns."""
        user_ids = list(user_ids)
        if not user_ids:
            return []
        try:
            return db.query(LogbookEntry).filter(
                LogbookEntry.user_id.in_(user_ids),
                LogbookEntry.category.like(category_codec.SUBMITTED_PATTERN)
            ).order_by(LogbookEntry.user_id, LogbookEntry.entry_date).all()
        except SQLAlchemyError as e:
            logger.error(f"❌ Error loading submitted entries: {str(e)}")
            db.rollback()
            raise StoreUnavailable("Could not load submitted logbooks") from e

    @staticmethod
    def update_entry(db: Session, entry: LogbookEntry, changes: Dict[str, Any]) -> LogbookEntry:
        logger.info(f"🔄 Updating entry {entry.id}: {sorted(changes)}")
        try:
            for field_name, value in changes.items():
                setattr(entry, field_name, value)
            entry.updated_at = utc_now()
            db.commit()
            db.refresh(entry)
        except SQLAlchemyError as e:
            logger.error(f"❌ Error updating entry {entry.id}: {str(e)}")
            db.rollback()
            raise StoreUnavailable("Could not update logbook entry") from e

        logger.info(f"✅ Successfully updated entry {entry.id}")
        return entry

    @staticmethod
    def retag_entries(db: Session, user_id: str, entry_ids: List[int], category: str, commit: bool = True) -> int:
        """
        Rewrite the category of the given entries in one filtered bulk update.
        Re-applying the same category is safe, so callers retry the whole set after a failure.
        With commit=False the caller commits (and handles commit failures) itself.
        """
        if not entry_ids:
            return 0
        logger.info(f"🏷️ Re-tagging {len(entry_ids)} entries of user {user_id} as {category}")
        try:
            updated = db.query(LogbookEntry).filter(
                LogbookEntry.id.in_(entry_ids),
                LogbookEntry.user_id == user_id
            ).update(
                {LogbookEntry.category: category, LogbookEntry.updated_at: utc_now()},
                synchronize_session=False
            )
            if commit:
                db.commit()
        except SQLAlchemyError as e:
            logger.error(f"❌ Error re-tagging entries {entry_ids} as {category}: {str(e)}")
            db.rollback()
            raise StoreUnavailable("Could not update logbook status, please retry") from e

        if commit:
            db.expire_all()
            logger.info(f"✅ Re-tagged {updated} entries as {category}")
        return updated

    @staticmethod
    def delete_entries(db: Session, user_id: str, entry_ids: List[int]) -> int:
        if not entry_ids:
            return 0
        logger.info(f"🗑️ Deleting {len(entry_ids)} entries of user {user_id}")
        try:
            deleted = db.query(LogbookEntry).filter(
                LogbookEntry.id.in_(entry_ids),
                LogbookEntry.user_id == user_id
            ).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            logger.error(f"❌ Error deleting entries {entry_ids}: {str(e)}")
            db.rollback()
            raise StoreUnavailable("Could not delete logbook entries") from e

        db.expire_all()
        logger.info(f"✅ Deleted {deleted} entries")
        return deleted

"""
Weekly logbook transitions: compile, submit, approve, reject and delete.

Every operation takes the caller as an explicit Actor. Permission and week
checks run before anything is written. A transition re-tags all member
entries of the week in one filtered bulk update and records the decision on
the week's WeeklyLogbook row in the same commit; notifications and the audit
trail are written afterwards and never undo the transition.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Dict, Any, Optional
from app.exceptions import Forbidden, InvalidEntry, InvalidTransition, NotFound, StoreUnavailable
from app.models.logbook import BundleStatus, LogbookEntry, LogbookReview, WeeklyLogbook
from app.models.project import Profile
from app.services import aggregator
from app.services.aggregator import WeeklyBundle
from app.services.audit_service import AuditService
from app.services.lifecycle import Actor, Transition, authorize, check_state, is_locked, target_category
from app.services.logbook_service import LogbookService
from app.services.notification_service import NotificationService
from app.services.project_resolver import Assignment, ProjectResolver
from app.utils import category_codec
from app.utils.roles import is_supervisor
from app.utils.timezone import format_local_date, utc_now
import logging

logger = logging.getLogger(__name__)


class SubmissionGate:
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.notification_service = notification_service or NotificationService(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_bundle(self, owner_id: str, week: int) -> WeeklyBundle:
        week = category_codec.parse_week(week)
        entries = LogbookService.get_week_entries(self.db, owner_id, week)
        return aggregator.build_bundle(entries, week)

    def list_weeks(self, owner_id: str) -> List[int]:
        entries = LogbookService.get_tagged_entries(self.db, owner_id)
        return aggregator.list_weeks(entries)

    def get_record(self, owner_id: str, week: int) -> Optional[WeeklyLogbook]:
        return self.db.query(WeeklyLogbook).filter(
            WeeklyLogbook.user_id == owner_id,
            WeeklyLogbook.week_number == week
        ).first()

    def get_reviews(self, owner_id: str, week: int) -> List[LogbookReview]:
        return self.db.query(LogbookReview).filter(
            LogbookReview.user_id == owner_id,
            LogbookReview.week_number == week
        ).order_by(LogbookReview.created_at.desc(), LogbookReview.id.desc()).all()

    def can_view(self, viewer: Actor, owner_id: str) -> bool:
        """Owner, the owner's project mentor, and superusers/admins may view a logbook."""
        if viewer.user_id == owner_id or is_supervisor(viewer.role):
            return True
        assignment = ProjectResolver.resolve(self.db, owner_id)
        return assignment.mentor_id is not None and assignment.mentor_id == viewer.user_id

    def ensure_can_view(self, viewer: Actor, owner_id: str) -> None:
        if not self.can_view(viewer, owner_id):
            raise Forbidden("You cannot view this logbook")

    def get_pending_reviews(self, mentor: Actor) -> List[Dict[str, Any]]:
        """Submitted weeks of every intern this mentor is PIC for."""
        intern_ids = [
            intern_id for intern_id in ProjectResolver.get_mentored_interns(self.db, mentor.user_id)
            if ProjectResolver.resolve(self.db, intern_id).mentor_id == mentor.user_id
        ]
        submitted = LogbookService.get_submitted_entries(self.db, intern_ids)

        weeks_by_intern: Dict[str, set] = {}
        for entry in submitted:
            tag = category_codec.decode(entry.category)
            if tag is not None:
                weeks_by_intern.setdefault(entry.user_id, set()).add(tag.week)

        pending = []
        for intern_id, weeks in weeks_by_intern.items():
            intern_name = self._display_name(intern_id)
            for week in sorted(weeks):
                bundle = self.get_bundle(intern_id, week)
                if bundle.state != BundleStatus.SUBMITTED:
                    continue
                pending.append({
                    "intern_id": intern_id,
                    "intern_name": intern_name,
                    "week": week,
                    "entry_count": bundle.entry_count,
                    "start_date": bundle.start_date,
                    "end_date": bundle.end_date,
                    "is_consistent": bundle.is_consistent,
                })
        return pending

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def compile_week(self, actor: Actor, week: int, entry_ids: List[int]) -> WeeklyBundle:
        """Group the owner's plain draft entries into the given week."""
        week = category_codec.parse_week(week)
        if not entry_ids:
            raise InvalidEntry("Select at least one entry to add to the week")

        entries = self.db.query(LogbookEntry).filter(LogbookEntry.id.in_(entry_ids)).all()
        found = {e.id: e for e in entries}
        missing = [i for i in entry_ids if i not in found]
        if missing:
            raise NotFound(f"Entries not found: {missing}")
        if any(e.user_id != actor.user_id for e in entries):
            raise Forbidden("You can only compile your own entries")

        already_tagged = [e.id for e in entries if category_codec.decode(e.category) is not None]
        if already_tagged:
            raise InvalidTransition(f"Entries {already_tagged} already belong to a week")

        bundle = self.get_bundle(actor.user_id, week)
        if is_locked(bundle):
            raise InvalidTransition(f"Week {week} is {bundle.state.value} and cannot take new entries")

        if bundle.state == BundleStatus.REJECTED:
            # New work joins the rejected week as it stands until the intern resubmits
            category = target_category(Transition.REJECT, week, bundle.rejection_count)
        else:
            category = category_codec.encode(week, category_codec.COMPILE)
        project_id = ProjectResolver.resolve(self.db, actor.user_id).project_id
        LogbookService.retag_entries(self.db, actor.user_id, list(found), category, commit=False)
        self._commit_record(actor.user_id, project_id, week, BundleStatus.DRAFT if bundle.is_empty else bundle.state)

        AuditService.log_action(
            self.db, actor.user_id, "compile_weekly_log", "weekly_logbook", f"{actor.user_id}:{week}",
            {"week": week, "entry_ids": sorted(found)}
        )
        logger.info(f"📚 User {actor.user_id} compiled {len(found)} entries into week {week}")
        return self.get_bundle(actor.user_id, week)

    def submit_week(self, actor: Actor, week: int, owner_id: Optional[str] = None) -> WeeklyBundle:
        week = category_codec.parse_week(week)
        owner_id = owner_id or actor.user_id
        authorize(Transition.SUBMIT, actor, owner_id, None)

        assignment = ProjectResolver.resolve(self.db, owner_id)
        if not assignment.is_assigned:
            raise Forbidden("You are not assigned to a project yet")

        bundle = self.get_bundle(owner_id, week)
        check_state(Transition.SUBMIT, bundle)

        category = target_category(Transition.SUBMIT, week)
        LogbookService.retag_entries(self.db, owner_id, bundle.entry_ids, category, commit=False)
        self._commit_record(
            owner_id, assignment.project_id, week, BundleStatus.SUBMITTED,
            submitted_at=utc_now()
        )

        updated = self.get_bundle(owner_id, week)
        AuditService.log_action(
            self.db, actor.user_id, "submit_weekly_log", "weekly_logbook", f"{owner_id}:{week}",
            {"week": week, "entry_count": updated.entry_count, "previous_state": bundle.state.value}
        )
        logger.info(f"📤 User {owner_id} submitted week {week} ({updated.entry_count} entries)")

        if assignment.mentor_id:
            self.notification_service.notify_mentor_submission(
                mentor_id=assignment.mentor_id,
                intern_name=self._display_name(owner_id),
                week=week,
                entry_count=updated.entry_count,
                date_range=self._format_range(updated),
                related_id=str(updated.entry_ids[0]) if updated.entry_ids else None
            )
        else:
            logger.warning(f"⚠️ No mentor to notify for week {week} of user {owner_id}")
        return updated

    def approve_week(self, actor: Actor, intern_id: str, week: int, comment: Optional[str] = None) -> WeeklyBundle:
        return self._review(Transition.APPROVE, actor, intern_id, week, comment)

    def reject_week(self, actor: Actor, intern_id: str, week: int, comment: Optional[str] = None) -> WeeklyBundle:
        return self._review(Transition.REJECT, actor, intern_id, week, comment)

    def delete_week(self, actor: Actor, week: int) -> int:
        """Delete every entry of the actor's week. Review history is kept."""
        week = category_codec.parse_week(week)
        bundle = self.get_bundle(actor.user_id, week)
        if bundle.is_empty:
            raise NotFound(f"Week {week} has no entries")
        if is_locked(bundle):
            raise Forbidden(f"Week {week} is {bundle.state.value} and cannot be deleted")

        deleted = LogbookService.delete_entries(self.db, actor.user_id, bundle.entry_ids)
        record = self.get_record(actor.user_id, week)
        if record is not None:
            try:
                self.db.delete(record)
                self.db.commit()
            except SQLAlchemyError as e:
                logger.error(f"❌ Error deleting weekly record {actor.user_id}:{week}: {str(e)}")
                self.db.rollback()
                raise StoreUnavailable("Could not delete weekly logbook") from e

        AuditService.log_action(
            self.db, actor.user_id, "delete_weekly_log", "weekly_logbook", f"{actor.user_id}:{week}",
            {"week": week, "deleted": deleted}
        )
        logger.info(f"🗑️ User {actor.user_id} deleted week {week} ({deleted} entries)")
        return deleted

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _review(self, transition: Transition, actor: Actor, intern_id: str, week: int, comment: Optional[str]) -> WeeklyBundle:
        week = category_codec.parse_week(week)
        assignment: Assignment = ProjectResolver.resolve(self.db, intern_id)
        rule = authorize(transition, actor, intern_id, assignment.mentor_id)

        bundle = self.get_bundle(intern_id, week)
        check_state(transition, bundle)
        is_retry = bundle.state == rule.target

        record = self.get_record(intern_id, week)
        # A retry whose decision is already on record only completes the re-tag
        already_recorded = is_retry and record is not None and record.status == rule.target
        rejection_count = record.rejection_count if record else 0
        if transition == Transition.REJECT:
            if is_retry:
                rejection_count = max(rejection_count, bundle.rejection_count, 1)
            else:
                rejection_count = max(rejection_count, bundle.rejection_count) + 1

        category = target_category(transition, week, rejection_count)
        LogbookService.retag_entries(self.db, intern_id, bundle.entry_ids, category, commit=False)
        if not already_recorded:
            self.db.add(LogbookReview(
                user_id=intern_id,
                project_id=assignment.project_id,
                week_number=week,
                reviewer_id=actor.user_id,
                decision=rule.target,
                comment=comment
            ))
        self._commit_record(
            intern_id, assignment.project_id, week, rule.target,
            rejection_count=rejection_count,
            reviewer_id=actor.user_id,
            review_comment=comment,
            reviewed_at=utc_now()
        )

        updated = self.get_bundle(intern_id, week)
        approved = transition == Transition.APPROVE
        AuditService.log_action(
            self.db, actor.user_id,
            "approve_weekly_log" if approved else "reject_weekly_log",
            "weekly_logbook", f"{intern_id}:{week}",
            {"week": week, "entry_count": updated.entry_count, "comment": comment, "retry": is_retry}
        )
        logger.info(f"📝 Mentor {actor.user_id} {'approved' if approved else 'rejected'} week {week} of {intern_id}")

        self.notification_service.notify_logbook_review(
            intern_id=intern_id,
            week=week,
            approved=approved,
            comment=comment,
            related_id=str(updated.entry_ids[0]) if updated.entry_ids else None
        )
        return updated

    def _commit_record(self, owner_id: str, project_id: Optional[str], week: int, status: BundleStatus, **fields) -> None:
        """Upsert the WeeklyLogbook row and commit together with any pending re-tag."""
        try:
            record = self.get_record(owner_id, week)
            if record is None:
                record = WeeklyLogbook(user_id=owner_id, week_number=week, rejection_count=0)
                self.db.add(record)
            record.project_id = project_id
            record.status = status
            for field_name, value in fields.items():
                setattr(record, field_name, value)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"❌ Error saving week {week} of {owner_id} as {status.value}: {str(e)}")
            self.db.rollback()
            raise StoreUnavailable("Could not update logbook status, please retry") from e
        self.db.expire_all()

    def _display_name(self, user_id: str) -> str:
        profile = self.db.query(Profile).filter(Profile.id == user_id).first()
        if profile and profile.full_name:
            return profile.full_name
        return f"User_{user_id}"

    @staticmethod
    def _format_range(bundle: WeeklyBundle) -> str:
        if not bundle.start_date:
            return "-"
        if bundle.start_date == bundle.end_date:
            return format_local_date(bundle.start_date)
        return f"{format_local_date(bundle.start_date)} to {format_local_date(bundle.end_date)}"

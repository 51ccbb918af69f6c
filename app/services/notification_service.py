"""
Notification sink for logbook events.

Every notification is stored in the notifications table and, when the
recipient has a Slack user id and a bot token is configured, sent as a DM.
The notify_* helpers are fire-and-forget: a failure is logged and never
propagates into the lifecycle transition that triggered it.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Dict, Any, Optional
from datetime import timedelta
from app.models.notification import Notification
from app.models.project import Profile
from app.services.slack_service import SlackService
from app.utils.block_builder import BlockBuilder
from app.utils.timezone import utc_now
from app.exceptions import NotFound, StoreUnavailable
import logging

logger = logging.getLogger(__name__)

LOGBOOK_SUBMITTED = "logbook_submitted"
LOGBOOK_REVIEWED = "logbook_reviewed"


class NotificationService:
    def __init__(self, db: Session, slack_service: Optional[SlackService] = None):
        self.db = db
        self.slack_service = slack_service or SlackService()
        self.block_builder = BlockBuilder()

    def create_notification(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        related_id: Optional[str] = None,
        related_type: Optional[str] = None,
        blocks: Optional[List[Dict[str, Any]]] = None
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_id=related_id,
            related_type=related_type,
            is_read=False
        )
        try:
            self.db.add(notification)
            self.db.commit()
            self.db.refresh(notification)
        except SQLAlchemyError as e:
            logger.error(f"❌ Error storing notification for {user_id}: {str(e)}")
            self.db.rollback()
            raise StoreUnavailable("Could not store notification") from e

        logger.info(f"🔔 Notification {notification.id} ({type}) stored for {user_id}")

        profile = self.db.query(Profile).filter(Profile.id == user_id).first()
        if profile and profile.slack_user_id:
            sent = self.slack_service.send_dm(
                profile.slack_user_id,
                blocks or self.block_builder.build_notification_blocks(title, message),
                title
            )
            logger.info(f"📨 Slack DM to {profile.slack_user_id}: {'sent' if sent else 'not sent'}")

        return notification

    def notify_mentor_submission(
        self,
        mentor_id: str,
        intern_name: str,
        week: int,
        entry_count: int,
        date_range: str,
        related_id: Optional[str] = None
    ) -> Optional[Notification]:
        try:
            return self.create_notification(
                user_id=mentor_id,
                type=LOGBOOK_SUBMITTED,
                title="New Logbook Submission",
                message=f"{intern_name} submitted Week {week} logbook for review",
                related_id=related_id,
                related_type="logbook",
                blocks=self.block_builder.build_submission_blocks(intern_name, week, entry_count, date_range)
            )
        except Exception as e:
            logger.error(f"Notify mentor logbook submission error: {str(e)}", exc_info=True)
            return None

    def notify_logbook_review(
        self,
        intern_id: str,
        week: int,
        approved: bool,
        comment: Optional[str] = None,
        related_id: Optional[str] = None
    ) -> Optional[Notification]:
        if approved:
            title = "Logbook Approved ✓"
            message = f"Your Week {week} logbook has been approved!"
        else:
            title = "Logbook Needs Revision"
            message = f"Your Week {week} logbook needs revision. {comment or ''}".strip()
        try:
            return self.create_notification(
                user_id=intern_id,
                type=LOGBOOK_REVIEWED,
                title=title,
                message=message,
                related_id=related_id,
                related_type="logbook",
                blocks=self.block_builder.build_review_blocks(week, approved, comment)
            )
        except Exception as e:
            logger.error(f"Notify logbook review error: {str(e)}", exc_info=True)
            return None

    def get_user_notifications(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def mark_as_read(self, notification_id: int, user_id: str) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()
        if not notification:
            raise NotFound(f"Notification {notification_id} not found")
        try:
            notification.is_read = True
            self.db.commit()
            self.db.refresh(notification)
        except SQLAlchemyError as e:
            logger.error(f"❌ Error marking notification {notification_id} as read: {str(e)}")
            self.db.rollback()
            raise StoreUnavailable("Could not update notification") from e
        return notification

    def cleanup_old_notifications(self, days_to_keep: int = 30) -> int:
        """Delete read notifications older than days_to_keep."""
        cutoff = utc_now() - timedelta(days=days_to_keep)
        try:
            deleted = self.db.query(Notification).filter(
                Notification.is_read.is_(True),
                Notification.created_at < cutoff
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"❌ Error cleaning up notifications: {str(e)}")
            self.db.rollback()
            raise StoreUnavailable("Could not clean up notifications") from e

        if deleted:
            logger.info(f"🧹 Cleaned up {deleted} old notifications")
        return deleted

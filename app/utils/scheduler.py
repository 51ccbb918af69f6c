from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session
from typing import Optional
from app.config import get_settings
from app.database import SessionLocal
from app.models.project import ProjectParticipant
from app.services.lifecycle import Actor
from app.services.notification_service import NotificationService
from app.services.project_resolver import PIC
from app.services.submission_gate import SubmissionGate
from app.utils.block_builder import BlockBuilder
from app.utils.logging_config import cleanup_old_logs
from app.utils.roles import Role
from app.utils.timezone import get_local_now, get_local_tz
import logging

logger = logging.getLogger(__name__)
settings = get_settings()

REVIEW_DIGEST = "logbook_review_digest"


class TaskScheduler:
    def __init__(self):
        self.scheduler = AsyncIOScheduler(timezone=get_local_tz())

    def start(self):
        # Weekly digest of submitted logbooks for every PIC mentor
        self.scheduler.add_job(
            self.send_review_digest,
            CronTrigger(day_of_week=settings.review_digest_day, hour=settings.review_digest_hour, minute=0),
            id='review_digest'
        )

        # Daily housekeeping at 2 AM local time
        self.scheduler.add_job(
            self.cleanup,
            CronTrigger(hour=2, minute=0),
            id='daily_cleanup'
        )

        self.scheduler.start()
        logger.info(
            f"Scheduler started: review digest every {settings.review_digest_day} at "
            f"{settings.review_digest_hour:02d}:00, cleanup daily at 02:00 ({settings.timezone})"
        )

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Scheduler stopped")

    async def send_review_digest(self):
        logger.info("=== STARTING REVIEW DIGEST ===")
        start_time = get_local_now()
        db = SessionLocal()
        try:
            notified = self.run_review_digest(db)
            execution_time = (get_local_now() - start_time).total_seconds()
            logger.info(f"=== REVIEW DIGEST COMPLETED in {execution_time:.2f} seconds, {notified} mentors notified ===")
        except Exception as e:
            logger.error(f"💥 CRITICAL ERROR in review digest: {str(e)}", exc_info=True)
        finally:
            db.close()

    async def cleanup(self):
        db = SessionLocal()
        try:
            deleted = self.run_cleanup(db)
            logger.info(f"Daily cleanup removed {deleted} notifications")
        except Exception as e:
            logger.error(f"Error in daily cleanup: {str(e)}", exc_info=True)
        finally:
            db.close()

    def run_review_digest(self, db: Session, gate: Optional[SubmissionGate] = None) -> int:
        """
        Send every project PIC one notification listing the weeks still
        waiting for their review. Mentors with nothing pending are skipped.
        Returns the number of mentors notified.
        """
        mentor_ids = sorted({
            row.user_id for row in db.query(ProjectParticipant).filter(
                ProjectParticipant.role_in_project == PIC
            ).all()
        })
        logger.info(f"Found {len(mentor_ids)} project mentors")

        gate = gate or SubmissionGate(db)
        notifications = gate.notification_service
        notified = 0

        for mentor_id in mentor_ids:
            try:
                pending = gate.get_pending_reviews(Actor(user_id=mentor_id, role=Role.MENTOR))
                if not pending:
                    logger.debug(f"No pending reviews for {mentor_id}")
                    continue

                sent = notifications.create_notification(
                    user_id=mentor_id,
                    type=REVIEW_DIGEST,
                    title="Logbooks awaiting your review",
                    message=f"{len(pending)} weekly logbook(s) are waiting for your review",
                    related_type="logbook",
                    blocks=BlockBuilder.build_pending_digest_blocks(pending)
                )
                if sent:
                    notified += 1
                    logger.info(f"📬 Digest with {len(pending)} pending weeks sent to {mentor_id}")
            except Exception as e:
                logger.error(f"❌ Review digest for {mentor_id} failed: {str(e)}", exc_info=True)

        return notified

    def run_cleanup(self, db: Session) -> int:
        deleted = NotificationService(db).cleanup_old_notifications(settings.notification_retention_days)
        cleanup_old_logs(settings.notification_retention_days)
        return deleted

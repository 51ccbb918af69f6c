from dataclasses import dataclass
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models.project import ProjectParticipant
import logging

logger = logging.getLogger(__name__)

MEMBER = "member"
PIC = "pic"


@dataclass(frozen=True)
class Assignment:
    project_id: Optional[str] = None
    mentor_id: Optional[str] = None

    @property
    def is_assigned(self) -> bool:
        return self.project_id is not None


class ProjectResolver:
    @staticmethod
    def find_project_mentor(db: Session, project_id: str) -> Optional[str]:
        pic = db.query(ProjectParticipant).filter(
            ProjectParticipant.project_id == project_id,
            ProjectParticipant.role_in_project == PIC
        ).order_by(ProjectParticipant.id).first()
        return pic.user_id if pic else None

    @staticmethod
    def resolve(db: Session, user_id: str) -> Assignment:
        """
        Find the intern's current project (first 'member' participation) and its PIC.
        Lookup failures degrade to an unassigned result.
        """
        try:
            participation = db.query(ProjectParticipant).filter(
                ProjectParticipant.user_id == user_id,
                ProjectParticipant.role_in_project == MEMBER
            ).order_by(ProjectParticipant.id).first()

            if not participation:
                logger.info(f"User {user_id} is not a member of any project")
                return Assignment()

            mentor_id = ProjectResolver.find_project_mentor(db, participation.project_id)
            if not mentor_id:
                logger.warning(f"Project {participation.project_id} has no PIC assigned")
            return Assignment(project_id=participation.project_id, mentor_id=mentor_id)

        except SQLAlchemyError as e:
            logger.error(f"Error resolving project for user {user_id}: {str(e)}")
            db.rollback()
            return Assignment()

    @staticmethod
    def is_project_mentor(db: Session, project_id: Optional[str], user_id: str) -> bool:
        if not project_id:
            return False
        pic = db.query(ProjectParticipant).filter(
            ProjectParticipant.project_id == project_id,
            ProjectParticipant.user_id == user_id,
            ProjectParticipant.role_in_project == PIC
        ).first()
        return pic is not None

    @staticmethod
    def get_mentored_interns(db: Session, mentor_id: str) -> list:
        """User ids of members in every project where mentor_id is PIC."""
        project_ids = [
            row.project_id for row in db.query(ProjectParticipant).filter(
                ProjectParticipant.user_id == mentor_id,
                ProjectParticipant.role_in_project == PIC
            ).all()
        ]
        if not project_ids:
            return []
        members = db.query(ProjectParticipant).filter(
            ProjectParticipant.project_id.in_(project_ids),
            ProjectParticipant.role_in_project == MEMBER
        ).order_by(ProjectParticipant.id).all()
        seen = []
        for m in members:
            if m.user_id not in seen:
                seen.append(m.user_id)
        return seen

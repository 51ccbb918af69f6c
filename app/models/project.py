from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from datetime import datetime
from app.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default="intern", index=True)  # intern, mentor, superuser, admin
    slack_user_id = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Profile(id={self.id}, name={self.full_name}, role={self.role})>"


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default="active")  # active, completed, upcoming
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Project(id={self.id}, name={self.name})>"


class ProjectParticipant(Base):
    __tablename__ = "project_participants"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_participant"),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    role_in_project = Column(String(10), nullable=False, default="member")  # 'member' or 'pic'
    joined_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<ProjectParticipant(project={self.project_id}, user={self.user_id}, role={self.role_in_project})>"

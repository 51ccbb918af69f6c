from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from app.database import get_db
from app.dependencies import get_current_actor
from app.models.project import Profile
from app.schemas.logbook import MeOut, NotificationOut
from app.services.lifecycle import Actor
from app.services.notification_service import NotificationService
from app.services.project_resolver import ProjectResolver
from app.utils.roles import get_landing_route

router = APIRouter(tags=["account"])


@router.get("/me", response_model=MeOut)
async def me(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    profile = db.query(Profile).filter(Profile.id == actor.user_id).first()
    assignment = ProjectResolver.resolve(db, actor.user_id)
    return MeOut(
        user_id=actor.user_id,
        full_name=profile.full_name,
        role=actor.role.value,
        landing_route=get_landing_route(actor.role),
        project_id=assignment.project_id,
        mentor_id=assignment.mentor_id
    )


@router.get("/notifications", response_model=List[NotificationOut])
async def list_notifications(
    unread_only: bool = Query(default=False),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return NotificationService(db).get_user_notifications(actor.user_id, unread_only)


@router.post("/notifications/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(notification_id: int, actor: Actor = Depends(get_current_actor),
                                 db: Session = Depends(get_db)):
    return NotificationService(db).mark_as_read(notification_id, actor.user_id)

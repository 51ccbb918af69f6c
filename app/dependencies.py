from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from app.database import get_db
from app.exceptions import Forbidden, Unauthenticated
from app.models.project import Profile
from app.services.lifecycle import Actor
from app.utils.roles import Role, parse_role
import logging

logger = logging.getLogger(__name__)


def get_current_actor(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db)
) -> Actor:
    """
    Resolve the caller from the X-User-Id header set by the auth gateway.
    The role always comes from the profiles table, never from the request.
    """
    if not x_user_id:
        raise Unauthenticated("Missing X-User-Id header")

    profile = db.query(Profile).filter(Profile.id == x_user_id).first()
    if not profile:
        logger.warning(f"Unknown user {x_user_id} rejected")
        raise Unauthenticated("Unknown user")

    role = parse_role(profile.role)
    if role is None:
        logger.error(f"User {x_user_id} has unknown role {profile.role!r}")
        raise Forbidden("Your account has no valid role")

    return Actor(user_id=profile.id, role=role)


def require_mentor(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role == Role.INTERN:
        raise Forbidden("Mentor access required")
    return actor

from enum import Enum
from typing import Optional


class Role(str, Enum):
    INTERN = "intern"
    MENTOR = "mentor"
    SUPERUSER = "superuser"
    ADMIN = "admin"

    def __str__(self) -> str:
        return self.value


ROLE_HIERARCHY = {
    Role.INTERN: 0,
    Role.MENTOR: 1,
    Role.SUPERUSER: 2,
    Role.ADMIN: 3,
}

LANDING_ROUTES = {
    Role.INTERN: "/intern/dashboard",
    Role.MENTOR: "/mentor/dashboard",
    Role.SUPERUSER: "/super/dashboard",
    Role.ADMIN: "/admin/dashboard",
}


def parse_role(value: Optional[str]) -> Optional[Role]:
    """Return the Role for a stored role string, or None if unknown."""
    if not value:
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


def is_supervisor(role: Role) -> bool:
    """Superusers and admins see every logbook."""
    return ROLE_HIERARCHY[role] >= ROLE_HIERARCHY[Role.SUPERUSER]


def get_landing_route(role: Role) -> str:
    return LANDING_ROUTES[role]

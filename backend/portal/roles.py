"""User roles and the permission hierarchy."""

from enum import Enum


class Role(str, Enum):
    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


# Higher number = more privileges
ROLE_HIERARCHY = {
    Role.USER: 1,
    Role.MODERATOR: 2,
    Role.ADMIN: 3,
}


def has_role(user_role: Role, required: Role) -> bool:
    """True if `user_role` is at or above `required` in the hierarchy."""
    return ROLE_HIERARCHY[Role(user_role)] >= ROLE_HIERARCHY[Role(required)]


def is_admin(user_role: Role) -> bool:
    return Role(user_role) == Role.ADMIN


def can_moderate(user_role: Role) -> bool:
    return has_role(user_role, Role.MODERATOR)

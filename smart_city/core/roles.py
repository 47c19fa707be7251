"""User roles and the authorization rules shared by every route."""

from collections.abc import Iterable
from typing import Literal

Role = Literal["CITIZEN", "OPERATOR", "ADMIN"]

ROLE_CITIZEN: Role = "CITIZEN"
ROLE_OPERATOR: Role = "OPERATOR"
ROLE_ADMIN: Role = "ADMIN"

ROLE_VALUES: frozenset[str] = frozenset({ROLE_CITIZEN, ROLE_OPERATOR, ROLE_ADMIN})

# Role sets used by route gates.
ADMIN_ONLY: frozenset[str] = frozenset({ROLE_ADMIN})
STAFF: frozenset[str] = frozenset({ROLE_ADMIN, ROLE_OPERATOR})
ANY_AUTHENTICATED: frozenset[str] = frozenset({ROLE_CITIZEN, ROLE_ADMIN, ROLE_OPERATOR})


def is_authorized(role: str | None, allowed: Iterable[str]) -> bool:
    """True if role is a known role and is one of the allowed roles."""
    if role is None or role not in ROLE_VALUES:
        return False
    return role in frozenset(allowed)


def can_modify_accident(user_id: int, role: str, reported_by: int | None) -> bool:
    """
    Staff may edit any report; a citizen only their own.

    Deleting is not covered here: it is gated on STAFF alone, so reporters
    cannot delete what they are allowed to edit.
    """
    if is_authorized(role, STAFF):
        return True
    return reported_by is not None and reported_by == user_id

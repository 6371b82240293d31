# Overview: Authorization gate; pure predicates over the session identity and the route guard state machine.

"""
Authorization Gate

Pure, side-effect-free decisions:
- role_for / capabilities_for / has_capability
- is_organizer_or_admin / is_admin
- can_manage_event (owner or admin)
- evaluate_guard: UNKNOWN while the session is loading, then AUTHORIZED or
  DENIED. A loading session is never reported as DENIED.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from .helpers import validate_capability_code
from .roles import DEFAULT_ROLE_CAPABILITIES, Role, role_from_id

if TYPE_CHECKING:
    from ..schemas import Event, Identity
    from ..services.session_service import SessionView


class GuardState(Enum):
    UNKNOWN = "UNKNOWN"
    AUTHORIZED = "AUTHORIZED"
    DENIED = "DENIED"


def role_for(identity: "Identity | None") -> Role:
    if identity is None:
        return Role.ANONYMOUS
    return role_from_id(identity.role_id)


def capabilities_for(identity: "Identity | None") -> frozenset[str]:
    return DEFAULT_ROLE_CAPABILITIES[role_for(identity)]


def has_capability(identity: "Identity | None", code: str) -> bool:
    if not validate_capability_code(code):
        raise ValueError(f"Unknown capability: {code}")
    return code in capabilities_for(identity)


def is_organizer_or_admin(identity: "Identity | None") -> bool:
    return role_for(identity) in (Role.ORGANIZER, Role.ADMIN)


def is_admin(identity: "Identity | None") -> bool:
    return role_for(identity) == Role.ADMIN


def can_manage_event(identity: "Identity | None", event: "Event") -> bool:
    """The event's organizer may edit it; admins may edit any event."""
    if identity is None:
        return False
    if has_capability(identity, "MANAGE_ANY_EVENT"):
        return True
    return has_capability(identity, "EDIT_EVENT") and event.organizer_id == identity.id


def evaluate_guard(session: "SessionView", code: str) -> GuardState:
    """Decide view access. Loading always wins over the capability check."""
    if session.loading:
        return GuardState.UNKNOWN
    identity = session.identity if session.is_authenticated else None
    if has_capability(identity, code):
        return GuardState.AUTHORIZED
    return GuardState.DENIED

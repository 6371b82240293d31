# Overview: Role tiers and the capabilities each tier holds.

from __future__ import annotations

from enum import IntEnum

from .definitions import (
    ACCOUNT_CAPABILITIES,
    ADMIN_CAPABILITIES,
    CATALOG_CAPABILITIES,
    ORGANIZER_CAPABILITIES,
)


class Role(IntEnum):
    """
    Role tiers. Values 1-3 are the API's role_id; ANONYMOUS means nobody
    is signed in.
    """
    ANONYMOUS = 0
    MEMBER = 1
    ORGANIZER = 2
    ADMIN = 3


def _codes(definitions) -> frozenset[str]:
    return frozenset(perm[0] for perm in definitions)


# Each tier holds everything the tier below it holds
_ANONYMOUS = _codes(CATALOG_CAPABILITIES)
_MEMBER = _ANONYMOUS | _codes(ACCOUNT_CAPABILITIES)
_ORGANIZER = _MEMBER | _codes(ORGANIZER_CAPABILITIES)
_ADMIN = _ORGANIZER | _codes(ADMIN_CAPABILITIES)

DEFAULT_ROLE_CAPABILITIES: dict[Role, frozenset[str]] = {
    Role.ANONYMOUS: _ANONYMOUS,
    Role.MEMBER: _MEMBER,
    Role.ORGANIZER: _ORGANIZER,
    Role.ADMIN: _ADMIN,
}


def role_from_id(role_id: int | None) -> Role:
    """Map an API role_id to a Role. Unknown ids get the least-privileged signed-in tier."""
    if role_id is None:
        return Role.ANONYMOUS
    if role_id in (Role.ORGANIZER, Role.ADMIN):
        return Role(role_id)
    return Role.MEMBER

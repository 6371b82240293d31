# Overview: Capability system package.
# Re-exports all public APIs.

from .categories import CapabilityCategory
from .definitions import (
    CAPABILITY_DEFINITIONS,
    CATALOG_CAPABILITIES,
    ACCOUNT_CAPABILITIES,
    ORGANIZER_CAPABILITIES,
    ADMIN_CAPABILITIES,
)
from .roles import DEFAULT_ROLE_CAPABILITIES, Role, role_from_id
from .helpers import (
    get_all_capability_codes,
    get_capability_definition,
    validate_capability_code,
)
from .gate import (
    GuardState,
    role_for,
    capabilities_for,
    has_capability,
    is_organizer_or_admin,
    is_admin,
    can_manage_event,
    evaluate_guard,
)

__all__ = [
    "CapabilityCategory",
    "CAPABILITY_DEFINITIONS",
    "CATALOG_CAPABILITIES",
    "ACCOUNT_CAPABILITIES",
    "ORGANIZER_CAPABILITIES",
    "ADMIN_CAPABILITIES",
    "DEFAULT_ROLE_CAPABILITIES",
    "Role",
    "role_from_id",
    "get_all_capability_codes",
    "get_capability_definition",
    "validate_capability_code",
    "GuardState",
    "role_for",
    "capabilities_for",
    "has_capability",
    "is_organizer_or_admin",
    "is_admin",
    "can_manage_event",
    "evaluate_guard",
]

# Overview: Utility functions for capability lookups and validation.

from .definitions import CAPABILITY_DEFINITIONS


def get_all_capability_codes():
    """Get list of all capability codes."""
    return [perm[0] for perm in CAPABILITY_DEFINITIONS]


def get_capability_definition(code):
    """Get full definition for a capability code."""
    for perm in CAPABILITY_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_capability_code(code):
    """Check if a capability code is valid."""
    return code in get_all_capability_codes()

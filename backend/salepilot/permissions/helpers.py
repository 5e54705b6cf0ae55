# Overview: Utility functions for capability lookups and validation.

from .definitions import CAPABILITY_DEFINITIONS
from .roles import DEFAULT_ROLE_CAPABILITIES


def get_all_capability_codes():
    """Get list of all capability codes."""
    return [perm[0] for perm in CAPABILITY_DEFINITIONS]


def validate_capability_code(code):
    """Check if a capability code is valid."""
    return code in get_all_capability_codes()


def capabilities_for_roles(roles):
    """Union of default capabilities for the given role names (unknown roles grant nothing)."""
    codes = set()
    for role in roles or ():
        codes.update(DEFAULT_ROLE_CAPABILITIES.get(role, ()))
    return frozenset(codes)

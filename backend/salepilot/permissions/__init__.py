# Overview: Capability system package.
# Re-exports all public APIs.

from .categories import CapabilityCategory
from .definitions import (
    CAPABILITY_DEFINITIONS,
    SALES_CAPABILITIES,
    RETURN_CAPABILITIES,
    CUSTOMER_CAPABILITIES,
    INVENTORY_CAPABILITIES,
    PURCHASING_CAPABILITIES,
    ACCOUNTING_CAPABILITIES,
)
from .roles import DEFAULT_ROLE_CAPABILITIES
from .helpers import (
    get_all_capability_codes,
    validate_capability_code,
    capabilities_for_roles,
)

__all__ = [
    "CapabilityCategory",
    "CAPABILITY_DEFINITIONS",
    "SALES_CAPABILITIES",
    "RETURN_CAPABILITIES",
    "CUSTOMER_CAPABILITIES",
    "INVENTORY_CAPABILITIES",
    "PURCHASING_CAPABILITIES",
    "ACCOUNTING_CAPABILITIES",
    "DEFAULT_ROLE_CAPABILITIES",
    "get_all_capability_codes",
    "validate_capability_code",
    "capabilities_for_roles",
]

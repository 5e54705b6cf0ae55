# Overview: Capability category constants for grouping related capabilities.


class CapabilityCategory:
    """Capability categories for organization and display."""
    SALES = "SALES"
    RETURNS = "RETURNS"
    CUSTOMERS = "CUSTOMERS"
    INVENTORY = "INVENTORY"
    PURCHASING = "PURCHASING"
    ACCOUNTING = "ACCOUNTING"

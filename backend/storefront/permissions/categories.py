# Overview: Capability category constants for grouping related capabilities.


class CapabilityCategory:
    """Capability categories for organization and UI display."""
    CATALOG = "CATALOG"
    ACCOUNT = "ACCOUNT"
    ORGANIZER = "ORGANIZER"
    ADMIN = "ADMIN"

# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import CapabilityCategory


# -- CATALOG (everyone, signed in or not) --

CATALOG_CAPABILITIES = [
    (
        "BROWSE_EVENTS",
        "Browse Events",
        "Search events and view event details",
        CapabilityCategory.CATALOG,
    ),
    (
        "MANAGE_CART",
        "Manage Cart",
        "Add, update and remove tickets in the cart",
        CapabilityCategory.CATALOG,
    ),
]


# -- ACCOUNT (signed-in members) --

ACCOUNT_CAPABILITIES = [
    (
        "CHECKOUT",
        "Checkout",
        "Start checkout for the cart",
        CapabilityCategory.ACCOUNT,
    ),
    (
        "VIEW_ORDERS",
        "View Orders",
        "View own orders and tickets",
        CapabilityCategory.ACCOUNT,
    ),
    (
        "EDIT_PROFILE",
        "Edit Profile",
        "Update own profile fields",
        CapabilityCategory.ACCOUNT,
    ),
]


# -- ORGANIZER --

ORGANIZER_CAPABILITIES = [
    (
        "CREATE_EVENT",
        "Create Event",
        "Create events with ticket types",
        CapabilityCategory.ORGANIZER,
    ),
    (
        "EDIT_EVENT",
        "Edit Event",
        "Edit events and their ticket inventory",
        CapabilityCategory.ORGANIZER,
    ),
    (
        "VIEW_ORGANIZER_DASHBOARD",
        "View Organizer Dashboard",
        "List own events and ticket sales",
        CapabilityCategory.ORGANIZER,
    ),
]


# -- ADMIN --

ADMIN_CAPABILITIES = [
    (
        "VIEW_ADMIN_DASHBOARD",
        "View Admin Dashboard",
        "View platform-wide administration pages",
        CapabilityCategory.ADMIN,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "List users and their roles",
        CapabilityCategory.ADMIN,
    ),
    (
        "MANAGE_ANY_EVENT",
        "Manage Any Event",
        "Edit events owned by other organizers",
        CapabilityCategory.ADMIN,
    ),
]


# Combined list of all capabilities (preserves ordering)
CAPABILITY_DEFINITIONS = (
    CATALOG_CAPABILITIES
    + ACCOUNT_CAPABILITIES
    + ORGANIZER_CAPABILITIES
    + ADMIN_CAPABILITIES
)

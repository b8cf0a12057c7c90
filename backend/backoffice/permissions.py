"""
Permission codes and the role -> permission mapping.

Routes ask for a permission, never for a role, so the role matrix lives in
exactly one place. Roles are fixed (cashier, manager) and stored on the
employee row.
"""
from .entities import ROLE_CASHIER, ROLE_MANAGER

# =============================================================================
# PERMISSION CATEGORIES
# =============================================================================

class PermissionCategory:
    """Grouping used by PERMISSION_DEFINITIONS."""
    CATALOG = "CATALOG"
    INVENTORY = "INVENTORY"
    EMPLOYEES = "EMPLOYEES"
    CLIENTS = "CLIENTS"
    SALES = "SALES"
    REPORTS = "REPORTS"


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (code, description, category)
PERMISSION_DEFINITIONS = [
    ("VIEW_CATALOG", "View single categories, products and store products", PermissionCategory.CATALOG),
    ("LIST_CATEGORIES", "Browse the full category list", PermissionCategory.CATALOG),
    ("MANAGE_CATALOG", "Create, edit and delete categories and products", PermissionCategory.CATALOG),
    ("MANAGE_STORE_PRODUCTS", "Create, edit and delete store products", PermissionCategory.INVENTORY),
    ("MANAGE_PROMOTIONS", "Start, resize and end promotions", PermissionCategory.INVENTORY),
    ("MANAGE_EMPLOYEES", "View and manage employee records", PermissionCategory.EMPLOYEES),
    ("VIEW_CLIENTS", "View customer cards", PermissionCategory.CLIENTS),
    ("EDIT_CLIENTS", "Register and edit customer cards", PermissionCategory.CLIENTS),
    ("DELETE_CLIENTS", "Delete customer cards", PermissionCategory.CLIENTS),
    ("VIEW_RECEIPTS", "View receipts", PermissionCategory.SALES),
    ("CREATE_RECEIPT", "Ring up receipts", PermissionCategory.SALES),
    ("DELETE_RECEIPT", "Delete receipts", PermissionCategory.SALES),
    ("VIEW_REPORTS", "Sales and inventory reports", PermissionCategory.REPORTS),
]


# =============================================================================
# DEFAULT ROLE PERMISSION MAPPINGS
# =============================================================================

ROLE_PERMISSIONS = {
    ROLE_MANAGER: frozenset({
        "VIEW_CATALOG",
        "LIST_CATEGORIES",
        "MANAGE_CATALOG",
        "MANAGE_STORE_PRODUCTS",
        "MANAGE_PROMOTIONS",
        "MANAGE_EMPLOYEES",
        "VIEW_CLIENTS",
        "EDIT_CLIENTS",
        "DELETE_CLIENTS",
        "VIEW_RECEIPTS",
        "DELETE_RECEIPT",
        "VIEW_REPORTS",
    }),
    # Only cashiers ring up receipts; a receipt always names its cashier
    ROLE_CASHIER: frozenset({
        "VIEW_CATALOG",
        "VIEW_CLIENTS",
        "EDIT_CLIENTS",
        "VIEW_RECEIPTS",
        "CREATE_RECEIPT",
    }),
}


def get_all_permission_codes() -> list[str]:
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_role_permissions(role: str) -> frozenset[str]:
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: str, permission_code: str) -> bool:
    return permission_code in get_role_permissions(role)

# Overview: Default role-to-capability mappings.
# Principle of least privilege: cashiers sell, managers run the store, admins do everything.

from .definitions import CAPABILITY_DEFINITIONS


DEFAULT_ROLE_CAPABILITIES = {
    "admin": [perm[0] for perm in CAPABILITY_DEFINITIONS],
    "manager": [
        "CREATE_SALE",
        "TAKE_PAYMENT",
        "VIEW_SALES",
        "PROCESS_RETURN",
        "MANAGE_CUSTOMERS",
        "ADJUST_CUSTOMER_BALANCE",
        "MANAGE_PRODUCTS",
        "ADJUST_STOCK",
        "RUN_STOCK_TAKE",
        "MANAGE_PURCHASE_ORDERS",
        "RECEIVE_PURCHASE_ORDERS",
        "VIEW_ACCOUNTING",
    ],
    "cashier": [
        "CREATE_SALE",
        "TAKE_PAYMENT",
        "VIEW_SALES",
        "MANAGE_CUSTOMERS",
    ],
}

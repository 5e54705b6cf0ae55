# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import CapabilityCategory


# -- SALES --

SALES_CAPABILITIES = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Ring up a sale (decrements stock, records first payment)",
        CapabilityCategory.SALES,
    ),
    (
        "TAKE_PAYMENT",
        "Take Payment",
        "Apply a later payment against an open sale balance",
        CapabilityCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "View sales, sale items and payments",
        CapabilityCategory.SALES,
    ),
]

# -- RETURNS --

RETURN_CAPABILITIES = [
    (
        "PROCESS_RETURN",
        "Process Return",
        "Create returns and issue refunds",
        CapabilityCategory.RETURNS,
    ),
]

# -- CUSTOMERS --

CUSTOMER_CAPABILITIES = [
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create customers and view balances",
        CapabilityCategory.CUSTOMERS,
    ),
    (
        "ADJUST_CUSTOMER_BALANCE",
        "Adjust Customer Balance",
        "Grant/deduct store credit and adjust account balances directly",
        CapabilityCategory.CUSTOMERS,
    ),
]

# -- INVENTORY --

INVENTORY_CAPABILITIES = [
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create products, categories and suppliers",
        CapabilityCategory.INVENTORY,
    ),
    (
        "ADJUST_STOCK",
        "Adjust Stock",
        "Change quantity on hand outside of sales/returns/receiving",
        CapabilityCategory.INVENTORY,
    ),
    (
        "RUN_STOCK_TAKE",
        "Run Stock Take",
        "Start, count and finalize stock takes",
        CapabilityCategory.INVENTORY,
    ),
]

# -- PURCHASING --

PURCHASING_CAPABILITIES = [
    (
        "MANAGE_PURCHASE_ORDERS",
        "Manage Purchase Orders",
        "Create purchase orders and change their status",
        CapabilityCategory.PURCHASING,
    ),
    (
        "RECEIVE_PURCHASE_ORDERS",
        "Receive Purchase Orders",
        "Receive inventory against a purchase order",
        CapabilityCategory.PURCHASING,
    ),
]

# -- ACCOUNTING --

ACCOUNTING_CAPABILITIES = [
    (
        "MANAGE_ACCOUNTS",
        "Manage Accounts",
        "Create accounts and initialize the chart of accounts",
        CapabilityCategory.ACCOUNTING,
    ),
    (
        "POST_JOURNAL_ENTRIES",
        "Post Journal Entries",
        "Post manual journal entries",
        CapabilityCategory.ACCOUNTING,
    ),
    (
        "VIEW_ACCOUNTING",
        "View Accounting",
        "View accounts, journal entries and the trial balance",
        CapabilityCategory.ACCOUNTING,
    ),
]


CAPABILITY_DEFINITIONS = (
    SALES_CAPABILITIES
    + RETURN_CAPABILITIES
    + CUSTOMER_CAPABILITIES
    + INVENTORY_CAPABILITIES
    + PURCHASING_CAPABILITIES
    + ACCOUNTING_CAPABILITIES
)

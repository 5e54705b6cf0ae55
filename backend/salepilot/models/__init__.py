from .tenancy import Store, TenantOwnedMixin
from .inventory import Category, Supplier, Product, StockMovement
from .customers import Customer
from .sales import Sale, SaleItem, Payment
from .returns import Return, ReturnItem
from .accounting import Account, JournalEntry, JournalEntryLine
from .purchasing import PurchaseOrder, PurchaseOrderItem
from .stock_takes import StockTake, StockTakeItem
from .audit import AuditEvent

__all__ = [
    'Store', 'TenantOwnedMixin',
    'Category', 'Supplier', 'Product', 'StockMovement',
    'Customer',
    'Sale', 'SaleItem', 'Payment',
    'Return', 'ReturnItem',
    'Account', 'JournalEntry', 'JournalEntryLine',
    'PurchaseOrder', 'PurchaseOrderItem',
    'StockTake', 'StockTakeItem',
    'AuditEvent',
]

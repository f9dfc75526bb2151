from .products import Product
from .transactions import (
    Transaction,
    TransactionItem,
    TYPE_IN,
    TYPE_OUT,
    TRANSACTION_TYPES,
    STATUS_SCHEDULED,
    STATUS_COMPLETED,
    TRANSACTION_STATUSES,
    CATEGORIES_BY_TYPE,
    default_category,
)
from .inventory import InventoryItem, ITEM_IN_STOCK, ITEM_SHIPPED, INVENTORY_ITEM_STATUSES

__all__ = [
    'Product',
    'Transaction', 'TransactionItem', 'InventoryItem',
    'TYPE_IN', 'TYPE_OUT', 'TRANSACTION_TYPES',
    'STATUS_SCHEDULED', 'STATUS_COMPLETED', 'TRANSACTION_STATUSES',
    'CATEGORIES_BY_TYPE', 'default_category',
    'ITEM_IN_STOCK', 'ITEM_SHIPPED', 'INVENTORY_ITEM_STATUSES',
]

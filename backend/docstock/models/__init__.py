from .tenancy import Tenant, Warehouse
from .numbering import NumberingTemplate, SeriesCounter
from .inventory import Product, StockMovement
from .documents import SupplierPayment, PurchaseReturn, PurchaseReturnLine

__all__ = [
    'Tenant', 'Warehouse',
    'NumberingTemplate', 'SeriesCounter',
    'Product', 'StockMovement',
    'SupplierPayment', 'PurchaseReturn', 'PurchaseReturnLine',
]

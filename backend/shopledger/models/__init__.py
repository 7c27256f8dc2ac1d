from .auth import User
from .inventory import Category, Supplier, Product
from .customers import Customer
from .sales import Sale, SaleItem, CreditPayment
from .purchases import Purchase, PurchaseItem
from .settings import StoreSettings

__all__ = [
    'User',
    'Category', 'Supplier', 'Product',
    'Customer',
    'Sale', 'SaleItem', 'CreditPayment',
    'Purchase', 'PurchaseItem',
    'StoreSettings',
]

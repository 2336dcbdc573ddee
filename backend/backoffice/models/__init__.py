from .staff import Role, Staff, SessionToken
from .customers import Customer, Discount
from .inventory import Item, Tab
from .sales import Sale, SaleItem
from .orders import Order, OrderLine, ORDER_STATUSES

__all__ = [
    'Role', 'Staff', 'SessionToken',
    'Customer', 'Discount',
    'Item', 'Tab',
    'Sale', 'SaleItem',
    'Order', 'OrderLine', 'ORDER_STATUSES',
]

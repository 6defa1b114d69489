from .tenancy import Tenant
from .inventory import Product, StockMovement
from .sales import Sale, SaleLine, Receipt, Payment
from .held_orders import HeldOrder, HeldOrderLine
from .refunds import Refund, RefundLine
from .registers import Register, Shift
from .documents import DocumentSequence, AuditEvent

__all__ = [
    'Tenant',
    'Product', 'StockMovement',
    'Sale', 'SaleLine', 'Receipt', 'Payment',
    'HeldOrder', 'HeldOrderLine',
    'Refund', 'RefundLine',
    'Register', 'Shift',
    'DocumentSequence', 'AuditEvent',
]

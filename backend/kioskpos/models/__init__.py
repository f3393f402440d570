from .auth import Profile, SessionToken, ROLE_MANAGER, ROLE_KIOSK, ROLES, new_id
from .catalog import FactoryItem, KioskItem, stock_status, STATUS_IN_STOCK, STATUS_LOW_STOCK, STATUS_OUT_OF_STOCK
from .sales import Order, PurchaseOrder, PAYMENT_TYPES, PO_STATUSES, PO_PREPARING, PO_OUT_FOR_DELIVERY, PO_DELIVERED, PO_REJECTED
from .attendance import ClockLog, CLOCK_IN, CLOCK_OUT, CLOCK_TYPES
from .wastage import WastageRecord, DIRECT_WASTAGE_ORDER_ID, WASTAGE_REASONS
from .reports import DailyReport

__all__ = [
    'Profile', 'SessionToken', 'ROLE_MANAGER', 'ROLE_KIOSK', 'ROLES', 'new_id',
    'FactoryItem', 'KioskItem', 'stock_status', 'STATUS_IN_STOCK', 'STATUS_LOW_STOCK', 'STATUS_OUT_OF_STOCK',
    'Order', 'PurchaseOrder', 'PAYMENT_TYPES', 'PO_STATUSES',
    'PO_PREPARING', 'PO_OUT_FOR_DELIVERY', 'PO_DELIVERED', 'PO_REJECTED',
    'ClockLog', 'CLOCK_IN', 'CLOCK_OUT', 'CLOCK_TYPES',
    'WastageRecord', 'DIRECT_WASTAGE_ORDER_ID', 'WASTAGE_REASONS',
    'DailyReport',
]

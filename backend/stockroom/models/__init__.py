from .orders import Order, OrderProduct, OrderItem, User
from .inventory import InventoryRecord, InventoryItem, InventoryTransaction, InventoryMedia
from .audit import InventoryAuditEvent, ArrivalNotification

__all__ = [
    'Order', 'OrderProduct', 'OrderItem', 'User',
    'InventoryRecord', 'InventoryItem', 'InventoryTransaction', 'InventoryMedia',
    'InventoryAuditEvent', 'ArrivalNotification',
]

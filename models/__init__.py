from models.orders import Order
from models.order_items import OrderItem
from models.order_status_events import OrderStatusEvent
from models.products import Product
from models.payments import Payment
from models.notifications import Notification

__all__ = ["Order", "OrderItem", "OrderStatusEvent", "Product", "Payment", "Notification"]

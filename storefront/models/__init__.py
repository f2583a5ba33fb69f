from storefront.models.user import User, UserRole
from storefront.models.product import Product
from storefront.models.cart import CartItem
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentMethod
from storefront.models.order_status_history import OrderStatusHistory

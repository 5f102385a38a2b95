"""
Database models
"""
from .user import User
from .user_profile import UserProfile
from .product import Product
from .product_order import ProductOrder
from .order_status_event import OrderStatusEvent
from .payment import Payment
from .webhook_event import WebhookEvent
from .partner import Partner
from .guest_session import GuestSession
from .custom_product_request import CustomProductRequest
from .newsletter_subscriber import NewsletterSubscriber
from .maintenance_state import MaintenanceState
from .refund_request import RefundRequest
from .user_address import UserAddress
from .one_time_purchase import OneTimePurchase

__all__ = [
    "User",
    "UserProfile",
    "Product",
    "ProductOrder",
    "OrderStatusEvent",
    "Payment",
    "WebhookEvent",
    "Partner",
    "GuestSession",
    "CustomProductRequest",
    "NewsletterSubscriber",
    "MaintenanceState",
    "RefundRequest",
    "UserAddress",
    "OneTimePurchase",
]

"""
REST APIs
"""
from .auth import bp as auth_bp
from .contact import bp as contact_bp
from .leads import bp as leads_bp
from .consultations import bp as consultations_bp
from .newsletter import bp as newsletter_bp
from .products import bp as products_bp
from .shipping import bp as shipping_bp
from .guest import bp as guest_bp
from .uploads import bp as uploads_bp
from .user import bp as user_bp
from .refunds import bp as refunds_bp
from .partners import bp as partners_bp
from .admin import bp as admin_bp
from .webhooks import bp as webhooks_bp
from .images import bp as images_bp

__all__ = [
    "auth_bp",
    "contact_bp",
    "leads_bp",
    "consultations_bp",
    "newsletter_bp",
    "products_bp",
    "shipping_bp",
    "guest_bp",
    "uploads_bp",
    "user_bp",
    "refunds_bp",
    "partners_bp",
    "admin_bp",
    "webhooks_bp",
    "images_bp",
]

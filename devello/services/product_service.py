"""
Service: catalog products
Lookup, availability and server-side pricing. Client-supplied prices are
never trusted; every amount charged comes from here.
"""
import random
from datetime import datetime

from flask import current_app
from ..db import db
from ..models import Product

DUMMY_WINDOW_SLUG = "dummy-window"
MIN_CHARGE_CENTS = 100  # Stripe minimum for USD


def get_product(id_or_slug):
    """Finds a product by integer id or slug"""
    if id_or_slug is None:
        return None
    key = str(id_or_slug).strip()
    if key.isdigit():
        product = db.session.get(Product, int(key))
        if product is not None:
            return product
    return Product.query.filter_by(slug=key).first()


def is_test_product(product):
    if product is None:
        return False
    return bool(product.is_test or product.slug == DUMMY_WINDOW_SLUG or (product.meta or {}).get("is_test"))


def is_dummy_product(product):
    name = (product.name or "").lower()
    slug = (product.slug or "").lower()
    return "dummy" in name or "dummy" in slug


def _is_production():
    return current_app.config.get("FLASK_ENV") == "production"


def validate_product_availability(id_or_slug):
    """
    Returns:
        dict: {"available": True, "product": Product} or {"available": False, "reason": str}
    """
    product = get_product(id_or_slug)
    if product is None:
        return {"available": False, "reason": "Product not found"}

    if (is_test_product(product) and _is_production()
            and not current_app.config.get("ALLOW_TEST_PRODUCTS")
            and product.visible_in_catalog is not True):
        return {"available": False, "reason": "Test products are disabled in production"}

    if product.status != "active":
        return {"available": False, "reason": "Product is not active"}

    return {"available": True, "product": product}


def get_variants(product):
    if product is None:
        return []
    return (product.meta or {}).get("variants") or []


def get_min_price(product):
    if product is None:
        return 0
    prices = [v["price"] for v in get_variants(product) if v.get("price") is not None]
    return min(prices) if prices else (product.price or 0)


def get_variant_price(product, variant_name=None):
    """Variant price in cents; unknown or missing variants fall back to the base price"""
    if variant_name:
        for variant in get_variants(product):
            if variant.get("name") == variant_name and variant.get("price") is not None:
                return int(variant["price"])
    return int(product.price or 0)


def calculate_pricing(product, quantity=1, variant_name=None):
    subtotal = get_variant_price(product, variant_name) * quantity
    tax = 0
    return {
        "subtotal": subtotal,
        "tax": tax,
        "total": subtotal + tax,
        "currency": product.currency,
    }


def line_amount(product, quantity=1, variant_name=None):
    """Amount in cents for one cart line, never below the Stripe minimum"""
    return max(MIN_CHARGE_CENTS, round(get_variant_price(product, variant_name) * quantity))


def generate_order_number(now=None):
    """ORD-YYYYMMDD-NNNN"""
    now = now or datetime.utcnow()
    return f"ORD-{now.strftime('%Y%m%d')}-{random.randint(0, 9999):04d}"


def filter_catalog(products, is_production, allow_test):
    """
    Hides what shoppers should not see: dummy products unless explicitly
    made visible, and test products outside of explicit test mode.
    """
    visible = []
    for product in products:
        if is_dummy_product(product) and product.visible_in_catalog is not True:
            continue
        if not allow_test:
            if is_production:
                if is_test_product(product) and product.visible_in_catalog is not True:
                    continue
                if product.visible_in_catalog is False:
                    continue
            elif is_test_product(product):
                continue
        visible.append(product)
    return visible

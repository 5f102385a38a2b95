"""
Service: product orders
Turns succeeded Stripe payments into orders. Shared by the purchase endpoint
and the Stripe webhook, so both paths stay idempotent per payment intent.
"""
import json
from datetime import datetime

from flask import current_app
from ..db import db
from ..models import Payment, Product, ProductOrder, User
from . import order_state_machine as sm
from .product_service import generate_order_number, get_product, get_variant_price, is_test_product


def parse_json_field(value):
    if not value:
        return None
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        current_app.logger.warning("⚠️ [ORDERS] Could not parse JSON metadata field")
        return None


def normalize_metadata(metadata):
    """Accepts both the snake_case keys we write and the camelCase keys older clients sent"""
    m = metadata or {}
    return {
        "product_id": m.get("product_id") or m.get("productId"),
        "user_id": m.get("user_id") or m.get("userId"),
        "guest_email": m.get("guest_email") or m.get("email") or m.get("userEmail"),
        "guest_name": m.get("guest_name") or m.get("guestName"),
        "checkout_type": m.get("checkout_type") or m.get("checkoutType"),
        "quantity": m.get("quantity"),
        "variant_name": m.get("variant_name") or m.get("variantName"),
        "order_items": m.get("order_items") or m.get("items") or m.get("orderItems"),
        "shipping_address": m.get("shipping_address") or m.get("shippingAddress"),
        "order_number": m.get("order_number") or m.get("orderNumber"),
        "height": m.get("height"),
        "width": m.get("width"),
        "test_order": m.get("test_order") or m.get("testOrder"),
        "contains_test_items": m.get("contains_test_items"),
    }


def _as_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def build_order_items(meta, product, amount):
    """
    Line items for the order record, from the serialized cart or, for
    single-product checkouts, from the product itself. Prices are unit cents.
    """
    raw_items = parse_json_field(meta["order_items"])
    if isinstance(raw_items, list) and raw_items:
        items = []
        for entry in raw_items:
            items.append({
                "productId": _as_int(entry.get("productId") or entry.get("product_id"),
                                     entry.get("productId") or entry.get("product_id")),
                "name": entry.get("name") or entry.get("productName"),
                "quantity": _as_int(entry.get("quantity"), 1),
                "price": _as_int(entry.get("price"), 0),
                "variantName": entry.get("variantName") or entry.get("variant_name"),
                "height": entry.get("height"),
                "width": entry.get("width"),
            })
        return items

    if product is None:
        return []

    quantity = _as_int(meta["quantity"], 1) or 1
    return [{
        "productId": product.id,
        "name": product.name,
        "quantity": quantity,
        "price": get_variant_price(product, meta["variant_name"]),
        "variantName": meta["variant_name"],
        "height": meta["height"],
        "width": meta["width"],
    }]


def resolve_order_user(meta):
    """Metadata user id first, then an account owning the guest email; None for true guests"""
    user_id = _as_int(meta["user_id"])
    if user_id:
        user = db.session.get(User, user_id)
        if user is not None:
            return user
    email = (meta["guest_email"] or "").strip().lower()
    if email:
        return User.query.filter(db.func.lower(User.email) == email).first()
    return None


def compute_test_order_flag(items, meta, product):
    if meta["test_order"] == "true" or meta["contains_test_items"] == "true":
        return True

    product_ids = {item["productId"] for item in items if isinstance(item.get("productId"), int)}
    products = Product.query.filter(Product.id.in_(product_ids)).all() if product_ids else []
    if product is not None and product.id not in product_ids:
        products.append(product)
    if not products:
        return False
    return all(is_test_product(p) for p in products)


def generate_unique_order_number(preferred=None, attempts=5):
    number = preferred or generate_order_number()
    for _ in range(attempts):
        if not ProductOrder.query.filter_by(order_number=number).first():
            return number
        current_app.logger.warning(f"⚠️ [ORDERS] Order number collision: {number}")
        number = generate_order_number()
    raise RuntimeError("Failed to generate a unique order number")


def is_payment_intent_handled(intent_id):
    if not intent_id:
        return False
    if ProductOrder.query.filter_by(stripe_payment_intent_id=intent_id).first():
        return True
    return Payment.query.filter_by(stripe_payment_intent_id=intent_id).first() is not None


def is_checkout_session_handled(session_id, intent_id):
    clauses = []
    if session_id:
        clauses.append(ProductOrder.stripe_session_id == session_id)
    if intent_id:
        clauses.append(ProductOrder.stripe_payment_intent_id == intent_id)
    if not clauses:
        return False
    return ProductOrder.query.filter(db.or_(*clauses)).first() is not None


def find_existing_order(payment_intent_id=None, session_id=None):
    if payment_intent_id:
        order = ProductOrder.query.filter_by(stripe_payment_intent_id=payment_intent_id).first()
        if order is not None:
            return order
    if session_id:
        return ProductOrder.query.filter_by(stripe_session_id=session_id).first()
    return None


def merge_session_metadata(intent, session):
    """
    Payment intent with the checkout session metadata folded in. Sessions
    created from the dashboard carry their metadata on the session only.
    """
    metadata = dict(session.get("metadata") or {})
    metadata.update(intent.get("metadata") or {})
    customer_email = (session.get("customer_details") or {}).get("email")
    if not metadata.get("guest_email") and customer_email:
        metadata["guest_email"] = customer_email
    return dict(intent, metadata=metadata)


def _record_payment(order, intent_id, charge_id, amount, currency, paid_at):
    payment = Payment.query.filter_by(stripe_payment_intent_id=intent_id, product_order_id=order.id).first()
    if payment is None:
        payment = Payment(
            product_order_id=order.id,
            user_id=order.user_id,
            stripe_payment_intent_id=intent_id,
            stripe_charge_id=charge_id,
            amount=amount,
            currency=currency,
            status="succeeded",
            payment_method="card",
            paid_at=paid_at,
        )
        db.session.add(payment)
    return payment


def create_stock_order_from_intent(intent, session_id=None, actor_type="system"):
    """
    Creates (or completes) the stock order for a succeeded payment intent.

    An existing order for the intent is reused only when it belongs to the
    same user or guest email; otherwise a fresh order is created so another
    customer's order is never overwritten.

    Returns:
        tuple: (ProductOrder, created)
    """
    intent_id = intent["id"]
    meta = normalize_metadata(intent.get("metadata"))
    amount = intent.get("amount_received") or intent.get("amount") or 0
    currency = (intent.get("currency") or "usd").lower()
    charge_id = intent.get("latest_charge") if isinstance(intent.get("latest_charge"), str) else None
    paid_at = datetime.utcnow()

    product = get_product(meta["product_id"]) if meta["product_id"] else None
    items = build_order_items(meta, product, amount)
    user = resolve_order_user(meta)

    guest_email = None
    if meta["checkout_type"] == "guest" or user is None:
        guest_email = (meta["guest_email"] or "").strip().lower() or None

    height, width = meta["height"], meta["width"]
    if not height and not width and len(items) == 1:
        height, width = items[0].get("height"), items[0].get("width")

    if len(items) == 1 and isinstance(items[0].get("productId"), int):
        product_id = items[0]["productId"]
    else:
        product_id = product.id if product else None

    test_order = compute_test_order_flag(items, meta, product)
    quantity = sum(item["quantity"] for item in items) if items else (_as_int(meta["quantity"], 1) or 1)

    existing = ProductOrder.query.filter_by(stripe_payment_intent_id=intent_id).first()
    if existing is not None:
        same_owner = (
            (user is not None and existing.user_id == user.id)
            or (existing.guest_email and guest_email and existing.guest_email.lower() == guest_email)
        )
        if same_owner:
            existing.payment_status = "paid"
            existing.purchased_at = existing.purchased_at or paid_at
            existing.test_order = existing.test_order or test_order
            if session_id and not existing.stripe_session_id:
                existing.stripe_session_id = session_id
            if existing.status == sm.PENDING:
                sm.transition_order(existing, sm.PROCESSING, reason="payment-succeeded", actor_type=actor_type)
            _record_payment(existing, intent_id, charge_id, amount, currency, paid_at)
            db.session.commit()
            return existing, False
        current_app.logger.error(
            f"❌ [ORDERS] Intent {intent_id} already attached to order {existing.order_number} "
            f"of another customer; creating a separate order"
        )

    order = ProductOrder(
        order_number=generate_unique_order_number(meta["order_number"]),
        user_id=user.id if user else None,
        product_id=product_id,
        guest_email=guest_email,
        order_type="stock_product",
        quantity=quantity,
        amount=amount,
        currency=currency,
        status=sm.PENDING,
        payment_status="paid",
        stripe_payment_intent_id=intent_id,
        stripe_session_id=session_id,
        shipping_address=parse_json_field(meta["shipping_address"]),
        order_items=items,
        height=height,
        width=width,
        test_order=test_order,
        meta={"guest_name": meta["guest_name"]} if meta["guest_name"] else {},
        purchased_at=paid_at,
    )
    db.session.add(order)
    db.session.flush()

    sm.transition_order(order, sm.PROCESSING, reason="payment-succeeded", actor_type=actor_type)
    _record_payment(order, intent_id, charge_id, amount, currency, paid_at)
    db.session.commit()

    current_app.logger.info(f"✅ [ORDERS] Created order {order.order_number} for intent {intent_id}")
    return order, True


def create_admin_bypass_order(admin, product, quantity=1, variant_name=None, shipping_address=None):
    """Order placed by an admin without charging a card (showroom and test orders)"""
    unit_price = get_variant_price(product, variant_name)
    order = ProductOrder(
        order_number=generate_unique_order_number(),
        user_id=admin.id,
        product_id=product.id,
        order_type="stock_product",
        quantity=quantity,
        amount=unit_price * quantity,
        currency=product.currency,
        status=sm.PENDING,
        payment_status="admin_bypass",
        shipping_address=shipping_address,
        order_items=[{
            "productId": product.id,
            "name": product.name,
            "quantity": quantity,
            "price": unit_price,
            "variantName": variant_name,
        }],
        test_order=is_test_product(product),
        purchased_at=datetime.utcnow(),
    )
    db.session.add(order)
    db.session.flush()
    sm.transition_order(order, sm.PROCESSING, reason="admin-bypass", actor_type="admin", actor_id=str(admin.id))
    db.session.commit()
    return order


def mark_payment_failed(intent):
    """Moves open orders for the intent to failed_payment where the state machine allows it"""
    orders = ProductOrder.query.filter_by(stripe_payment_intent_id=intent["id"]).all()
    for order in orders:
        order.payment_status = "failed"
        if sm.can_transition(order.status, sm.FAILED_PAYMENT):
            sm.transition_order(order, sm.FAILED_PAYMENT, reason="payment-failed", actor_type="webhook")
    db.session.commit()
    return len(orders)


def mark_charge_refunded(charge):
    intent_id = charge.get("payment_intent")
    if not intent_id:
        return 0

    full_refund = bool(charge.get("refunded"))
    payment_status = "refunded" if full_refund else "partially_refunded"

    for payment in Payment.query.filter_by(stripe_payment_intent_id=intent_id).all():
        payment.status = payment_status
    orders = ProductOrder.query.filter_by(stripe_payment_intent_id=intent_id).all()
    for order in orders:
        order.payment_status = payment_status
    db.session.commit()
    return len(orders)


def customer_email_for(order):
    if order.user is not None:
        return order.user.email
    return order.guest_email


def find_order_for_tracking(order_number, email):
    """Order whose guest email or account email matches, case-insensitively"""
    order = ProductOrder.query.filter_by(order_number=order_number.strip()).first()
    if order is None:
        return None
    email = email.strip().lower()
    candidates = {(order.guest_email or "").lower(), (order.user.email.lower() if order.user else "")}
    return order if email in candidates else None


def notify_order_placed(order):
    """Customer confirmation plus admin notification; failures are logged only"""
    from .email_service import send_admin_order_notification, send_order_confirmation_email
    from .user_service import display_name

    recipient = customer_email_for(order)
    customer_name = display_name(order.user) if order.user else (order.meta or {}).get("guest_name") or "Customer"

    if recipient:
        result = send_order_confirmation_email(order, recipient, customer_name)
        if not result.success:
            current_app.logger.error(f"❌ [ORDERS] Confirmation email failed for {order.order_number}: {result.error}")

    result = send_admin_order_notification(order, customer_name, recipient)
    if not result.success:
        current_app.logger.error(f"❌ [ORDERS] Admin notification failed for {order.order_number}: {result.error}")

"""
API: Products
Catalog, Stripe checkout, purchase confirmation and custom (quoted) orders
"""
import random
import string
import time

from flask import Blueprint, current_app, g, jsonify, request

from ..db import db
from ..errors import ForbiddenError, NotFoundError, ValidationError, AuthError
from ..models import CustomProductRequest, Payment, Product, ProductOrder
from ..services import order_state_machine as sm
from ..services.orders import (
    create_admin_bypass_order,
    create_stock_order_from_intent,
    find_existing_order,
    find_order_for_tracking,
    merge_session_metadata,
    notify_order_placed,
)
from ..services.product_service import (
    MIN_CHARGE_CENTS,
    calculate_pricing,
    filter_catalog,
    get_min_price,
    get_product,
    get_variant_price,
    is_test_product,
    line_amount,
    validate_product_availability,
)
from ..services.email_service import send_custom_request_emails
from ..services.stripe_service import (
    create_payment_intent,
    ensure_customer,
    retrieve_checkout_session,
    retrieve_payment_intent,
)
from ..services.user_service import display_name
from ..utils.auth import is_admin_email, optional_auth, require_auth
from ..utils.form_validation import is_valid_email
from ..utils.query_cache import query_cache
from ..utils.text_match import matches_search
from ._helpers import clean_str, json_body, parse_int

bp = Blueprint("products", __name__)

REQUIRED_ADDRESS_FIELDS = ("address_line1", "city", "state", "zip_code")
REQUIRED_GUEST_FIELDS = ("email", "fullName", "address", "city", "state", "zip")
CUSTOM_ORDER_CATEGORIES = ("glass", "mirrors")


def _flag(value):
    return str(value).lower() in ("1", "true", "yes")


def _load_catalog(status, product_type, category, include_test):
    """Newest-first catalog rows visible to shoppers, as dicts"""
    query = Product.query
    if status != "all":
        query = query.filter(Product.status == status)
    if product_type:
        query = query.filter(Product.product_type == product_type)
    if category:
        query = query.filter(Product.category == category)
    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()

    visible = filter_catalog(
        products,
        is_production=current_app.config.get("FLASK_ENV") == "production",
        allow_test=include_test or current_app.config.get("ALLOW_TEST_PRODUCTS", False),
    )
    return [p.to_dict() for p in visible]


@bp.route("", methods=["GET"])
def list_products():
    """Paginated catalog with fuzzy name search"""
    status = request.args.get("status", "active")
    product_type = request.args.get("productType")
    category = request.args.get("category")
    search = (request.args.get("search") or "").strip()
    include_test = _flag(request.args.get("includeTest", "false"))
    page = max(1, parse_int(request.args.get("page"), 1))
    limit = min(100, max(1, parse_int(request.args.get("limit"), 20)))

    endpoint = f"/api/products?status={status}&type={product_type}&category={category}&test={include_test}"
    products = query_cache.fetch(
        endpoint,
        lambda: _load_catalog(status, product_type, category, include_test),
        ttl=current_app.config.get("CATALOG_CACHE_TTL"),
    )

    if search:
        products = [p for p in products if matches_search(search, p["name"])]

    total = len(products)
    start = (page - 1) * limit
    return jsonify({
        "success": True,
        "products": products[start:start + limit],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    })


@bp.route("/<slug_or_id>", methods=["GET"])
def get_one(slug_or_id):
    """Product detail with server-side pricing for ?quantity=&variant="""
    product = get_product(slug_or_id)
    if product is None:
        return jsonify({"error": "Product not found"}), 404

    quantity = max(1, parse_int(request.args.get("quantity"), 1))
    return jsonify({
        "success": True,
        "product": product.to_dict(),
        "minPrice": get_min_price(product),
        "pricing": calculate_pricing(product, quantity, request.args.get("variant")),
    })


def _require_available(product_id):
    availability = validate_product_availability(product_id)
    if not availability["available"]:
        if availability["reason"] == "Product not found":
            raise NotFoundError("Product not found")
        raise ValidationError(availability["reason"])
    return availability["product"]


def _validate_shipping_address(address):
    if not address:
        return None
    if not isinstance(address, dict):
        raise ValidationError("Invalid shipping address")
    missing = [f for f in REQUIRED_ADDRESS_FIELDS if not clean_str(address.get(f))]
    if missing:
        raise ValidationError(f"Shipping address is missing: {', '.join(missing)}")
    return address


def _price_cart(items):
    """
    Prices every cart line from the database.

    Returns:
        tuple: (lines, amount, currency, contains_test_items, all_test_items)
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Cart is empty")

    lines = []
    products = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Invalid cart item")
        quantity = parse_int(item.get("quantity"), 1)
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        product = _require_available(item.get("productId"))
        variant_name = item.get("variantName")
        unit_price = get_variant_price(product, variant_name)
        client_price = parse_int(item.get("price"), None)
        if client_price is not None and client_price != unit_price:
            current_app.logger.warning(
                f"⚠️ [CHECKOUT] Client price {client_price} != server price {unit_price} for product {product.id}"
            )

        products.append(product)
        lines.append({
            "productId": product.id,
            "name": product.name,
            "quantity": quantity,
            "price": unit_price,
            "variantName": variant_name,
            "amount": line_amount(product, quantity, variant_name),
        })

    currencies = {p.currency for p in products}
    if len(currencies) > 1:
        raise ValidationError("All cart items must use the same currency")

    amount = max(MIN_CHARGE_CENTS, sum(line["amount"] for line in lines))
    flags = [is_test_product(p) for p in products]
    return lines, amount, products[0].currency, any(flags), all(flags)


def _order_items_metadata(lines):
    return [{k: line[k] for k in ("productId", "name", "quantity", "price", "variantName")} for line in lines]


@bp.route("/<product_id>/checkout", methods=["POST"])
@require_auth
def checkout(product_id):
    """PaymentIntent for a single product bought by a signed-in user"""
    data = json_body()
    user = g.current_user

    quantity = parse_int(data.get("quantity"), 1)
    if quantity < 1:
        return jsonify({"error": "Quantity must be at least 1"}), 400
    shipping_address = _validate_shipping_address(data.get("shippingAddress"))

    product = _require_available(product_id)
    variant_name = data.get("variantName")
    unit_price = get_variant_price(product, variant_name)

    client_price = parse_int(data.get("variantPrice"), None)
    if client_price is not None and client_price != unit_price:
        current_app.logger.warning(
            f"⚠️ [CHECKOUT] Client price {client_price} != server price {unit_price} for product {product.id}"
        )

    amount = line_amount(product, quantity, variant_name)
    customer_id = ensure_customer(user.email, display_name(user), {"user_id": user.id})
    intent = create_payment_intent(
        amount,
        product.currency,
        metadata={
            "user_id": user.id,
            "product_id": product.id,
            "quantity": quantity,
            "variant_name": variant_name,
            "shipping_address": shipping_address,
            "height": data.get("height"),
            "width": data.get("width"),
            "test_order": is_test_product(product),
        },
        customer_id=customer_id,
        receipt_email=user.email,
    )

    current_app.logger.info(f"💳 [CHECKOUT] Intent {intent['id']} for product {product.id} x{quantity} ({amount} cents)")
    return jsonify({"success": True, "clientSecret": intent["client_secret"], "paymentIntentId": intent["id"]})


@bp.route("/checkout/cart", methods=["POST"])
@require_auth
def checkout_cart():
    data = json_body()
    user = g.current_user

    shipping_address = _validate_shipping_address(data.get("shippingAddress"))
    lines, amount, currency, contains_test, all_test = _price_cart(data.get("items"))
    contact_email = clean_str(data.get("contactEmail")).lower() or user.email

    customer_id = ensure_customer(user.email, display_name(user), {"user_id": user.id})
    intent = create_payment_intent(
        amount,
        currency,
        metadata={
            "user_id": user.id,
            "checkout_type": "cart",
            "guest_email": contact_email,
            "order_items": _order_items_metadata(lines),
            "shipping_address": shipping_address,
            "contains_test_items": contains_test,
            "test_order": all_test,
        },
        customer_id=customer_id,
        receipt_email=contact_email,
    )

    current_app.logger.info(f"💳 [CHECKOUT] Cart intent {intent['id']}: {len(lines)} lines, {amount} cents")
    return jsonify({"success": True, "clientSecret": intent["client_secret"], "paymentIntentId": intent["id"]})


@bp.route("/checkout/guest", methods=["POST"])
def checkout_guest():
    data = json_body()
    guest = data.get("guestInfo")
    if not isinstance(guest, dict) or not all(clean_str(guest.get(f)) for f in REQUIRED_GUEST_FIELDS):
        return jsonify({
            "error": "Guest information is required: email, fullName, address, city, state and zip"
        }), 400

    email = guest["email"].strip().lower()
    if not is_valid_email(email).valid:
        return jsonify({"error": "Invalid email format"}), 400

    lines, amount, currency, contains_test, all_test = _price_cart(data.get("items"))
    full_name = guest["fullName"].strip()
    phone = clean_str(guest.get("phone"))
    shipping_address = {
        "full_name": full_name,
        "address_line1": guest["address"].strip(),
        "city": guest["city"].strip(),
        "state": guest["state"].strip(),
        "zip_code": guest["zip"].strip(),
        "phone": phone or None,
    }

    customer_id = ensure_customer(email, full_name, {"checkout_type": "guest"})
    intent = create_payment_intent(
        amount,
        currency,
        metadata={
            "checkout_type": "guest",
            "guest_email": email,
            "guest_name": full_name,
            "guest_phone": phone or None,
            "shipping_address": shipping_address,
            "order_items": _order_items_metadata(lines),
            "contains_test_items": contains_test,
            "test_order": all_test,
        },
        customer_id=customer_id,
        receipt_email=email,
    )

    current_app.logger.info(f"💳 [CHECKOUT] Guest intent {intent['id']} for {email} ({amount} cents)")
    return jsonify({"success": True, "clientSecret": intent["client_secret"], "paymentIntentId": intent["id"]})


def _already_processed(order):
    return jsonify({"success": True, "message": "Order already processed", "order": order.to_dict()})


def _admin_bypass_purchase(data):
    admin = g.current_user
    if admin is None:
        raise AuthError("No authorization token provided")
    if not is_admin_email(admin.email):
        raise ForbiddenError("Admin access required to bypass payment")

    product = get_product(data.get("productId"))
    if product is None:
        return jsonify({"error": "Product not found"}), 404

    quantity = parse_int(data.get("quantity"), 1)
    if quantity < 1:
        return jsonify({"error": "Quantity must be at least 1"}), 400

    order = create_admin_bypass_order(
        admin,
        product,
        quantity=quantity,
        variant_name=data.get("variantName"),
        shipping_address=_validate_shipping_address(data.get("shippingAddress")),
    )
    current_app.logger.info(f"🛠️ [PURCHASE] Admin bypass order {order.order_number} by {admin.email}")
    return jsonify({"success": True, "message": "Order created (payment bypassed)", "order": order.to_dict()}), 201


@bp.route("/purchase", methods=["POST"])
@optional_auth
def purchase():
    """
    Confirms a completed payment and creates the order.

    Safe to call more than once per payment: the Stripe webhook may have
    created the order already.
    """
    data = json_body()
    if data.get("bypassPayment"):
        return _admin_bypass_purchase(data)

    session_id = data.get("sessionId")
    intent_id = data.get("paymentIntentId")
    if not session_id and not intent_id:
        return jsonify({"error": "sessionId or paymentIntentId is required"}), 400

    existing = find_existing_order(intent_id, session_id)
    if existing is not None:
        return _already_processed(existing)

    session = None
    if session_id:
        session = retrieve_checkout_session(session_id)
        intent_id = session.get("payment_intent")
        if isinstance(intent_id, dict):
            intent_id = intent_id.get("id")
        if session.get("payment_status") != "paid" or not intent_id:
            return jsonify({"error": "Payment not completed"}), 400

    intent = retrieve_payment_intent(intent_id)
    if intent.get("status") != "succeeded":
        return jsonify({"error": "Payment not completed", "status": intent.get("status")}), 400
    if session is not None:
        intent = merge_session_metadata(intent, session)

    existing = find_existing_order(intent_id, session_id)
    if existing is not None:
        return _already_processed(existing)

    actor = "user" if g.current_user is not None else "guest"
    order, created = create_stock_order_from_intent(intent, session_id=session_id, actor_type=actor)
    if not created:
        return _already_processed(order)

    notify_order_placed(order)
    return jsonify({"success": True, "message": "Order created successfully", "order": order.to_dict()}), 201


def _custom_order_number():
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=9))
    return f"GM-{int(time.time() * 1000)}-{suffix}"


@bp.route("/glass-mirror-order", methods=["POST"])
@optional_auth
def glass_mirror_order():
    """Quote request for cut-to-size glass and mirrors; priced later by an admin"""
    data = json_body()
    product_id = data.get("productId")
    email = clean_str(data.get("email")).lower()
    requirements = clean_str(data.get("orderRequirements"))

    if not product_id:
        return jsonify({"error": "Missing required field: productId"}), 400
    if not email:
        return jsonify({"error": "Missing required field: email is required"}), 400
    if not requirements:
        return jsonify({"error": "Missing required field: orderRequirements is required"}), 400
    if not is_valid_email(email).valid:
        return jsonify({"error": "Invalid email format"}), 400

    product = get_product(product_id)
    if product is None:
        return jsonify({"error": "Product not found"}), 404
    category = (product.category or "").lower()
    if category not in CUSTOM_ORDER_CATEGORIES:
        return jsonify({"error": "This endpoint is only for glass and mirror products"}), 400

    user = g.current_user
    quantity = max(1, parse_int(data.get("quantity"), 1))
    variant = data.get("selectedVariant") if isinstance(data.get("selectedVariant"), dict) else None
    phone = clean_str(data.get("phone")) or None
    name = (display_name(user) if user else None) or email.split("@")[0]

    custom_request = CustomProductRequest(
        user_id=user.id if user else None,
        product_id=product.id,
        request_type="glass_mirror_order",
        project_type=f"{'Glass' if category == 'glass' else 'Mirror'} Product Order",
        description=requirements,
        email=email,
        name=name,
        phone=phone,
        height=data.get("height"),
        width=data.get("width"),
        quantity=quantity,
        variant_name=variant.get("name") if variant else None,
        details={"productSlug": product.slug, "selectedVariant": variant},
        status="received",
    )
    db.session.add(custom_request)
    db.session.flush()

    order = ProductOrder(
        order_number=_custom_order_number(),
        user_id=user.id if user else None,
        product_id=product.id,
        guest_email=None if user else email,
        order_type="custom_order",
        quantity=quantity,
        amount=0,
        currency="usd",
        status=sm.PENDING_QUOTE,
        payment_status="pending",
        height=data.get("height"),
        width=data.get("width"),
        test_order=is_test_product(product),
        meta={
            "custom_product_request_id": custom_request.id,
            "category": category,
            "order_requirements": requirements,
            "guest_email": email,
            "guest_phone": phone,
        },
    )
    db.session.add(order)
    db.session.commit()
    current_app.logger.info(f"🪟 [GLASS_MIRROR_ORDER] Created {order.order_number} (request {custom_request.id})")

    admin_result, customer_result = send_custom_request_emails(custom_request, product, order)
    if not admin_result.success or (customer_result and not customer_result.success):
        current_app.logger.error(f"❌ [GLASS_MIRROR_ORDER] Email delivery failed for {order.order_number}")

    return jsonify({
        "success": True,
        "message": "Order request submitted successfully. We will contact you with a quote.",
        "orderId": order.id,
        "orderNumber": order.order_number,
        "requestId": custom_request.id,
    })


@bp.route("/request-pricing", methods=["POST"])
@optional_auth
def request_pricing():
    data = json_body()
    email = clean_str(data.get("email")).lower()
    product_id = data.get("productId")

    if not email or not product_id:
        return jsonify({"error": "Email and product ID are required"}), 400
    if not is_valid_email(email).valid:
        return jsonify({"error": "Invalid email address"}), 400

    product = get_product(product_id)
    if product is None:
        return jsonify({"error": "Product not found"}), 404

    user = g.current_user
    custom_request = CustomProductRequest(
        user_id=user.id if user else None,
        product_id=product.id,
        request_type="pricing",
        description=clean_str(data.get("message")) or None,
        email=email,
        phone=clean_str(data.get("phone")) or None,
        quantity=max(1, parse_int(data.get("quantity"), 1)),
        variant_name=data.get("variantName"),
        details={"dimensions": data.get("dimensions")},
        status="pending",
    )
    db.session.add(custom_request)
    db.session.commit()

    admin_result, _ = send_custom_request_emails(custom_request, product)
    if not admin_result.success:
        current_app.logger.error(f"❌ [PRICING_REQUEST] Admin email failed for request {custom_request.id}")

    return jsonify({
        "success": True,
        "requestId": custom_request.id,
        "message": "Pricing request submitted successfully",
    })


@bp.route("/orders/track", methods=["GET"])
def track_order():
    """Public order lookup by order number plus the purchase email"""
    order_number = clean_str(request.args.get("order_number"))
    email = clean_str(request.args.get("email"))
    if not order_number or not email:
        return jsonify({"error": "order_number and email are required"}), 400

    order = find_order_for_tracking(order_number, email)
    if order is None or order.order_type != "stock_product":
        return jsonify({"error": "Order not found"}), 404

    payment = (
        Payment.query
        .filter_by(product_order_id=order.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .first()
    )
    return jsonify({
        "success": True,
        "order": order.to_dict(include_events=True),
        "payment": payment.to_dict() if payment else None,
    })


@bp.route("/orders/<int:order_id>/details", methods=["GET"])
@require_auth
def order_details(order_id):
    """Full order for its owner: status timeline, payments and refund requests"""
    order = db.session.get(ProductOrder, order_id)
    if order is None:
        raise NotFoundError("Order not found")

    user = g.current_user
    guest_match = (order.guest_email or "").lower() == user.email.lower()
    if order.user_id != user.id and not guest_match:
        raise ForbiddenError("You do not have permission to view this order")

    payments = (
        Payment.query
        .filter_by(product_order_id=order.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
    return jsonify({
        "success": True,
        "order": order.to_dict(include_events=True),
        "payments": [p.to_dict() for p in payments],
        "refundRequests": [r.to_dict() for r in order.refund_requests],
    })

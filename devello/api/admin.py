"""
API: Admin
Catalog management, order fulfillment and partner review.
Every route requires an admin inbox (ADMIN_EMAILS).
"""
from datetime import datetime

from flask import Blueprint, current_app, g, jsonify, request

from ..db import db
from ..errors import ValidationError
from ..models import Partner, Product, ProductOrder, RefundRequest
from ..services import order_state_machine as sm
from ..services.email_service import send_order_status_email, send_partner_decision_email
from ..services.orders import customer_email_for
from ..services.refunds import resolve_refund
from ..services.user_service import display_name
from ..utils.auth import require_admin
from ..utils.cloud_storage import allowed_image, delete_file, upload_file
from ..utils.query_cache import query_cache
from ..utils.text_match import slugify
from ._helpers import clean_str, json_body, parse_int

bp = Blueprint("admin", __name__)

PRODUCT_FIELDS = (
    "name", "description", "currency", "product_type", "category", "status",
    "image_url", "stripe_price_id", "is_test", "visible_in_catalog",
)
ORDER_LIST_LIMIT = 200


def _invalidate_catalog():
    query_cache.invalidate_pattern("/api/products")


def _apply_product_fields(product, data):
    for field in PRODUCT_FIELDS:
        if field in data:
            setattr(product, field, data[field])
    if "price" in data:
        price = parse_int(data["price"], None)
        if price is None or price < 0:
            raise ValidationError("Price must be a non-negative integer (cents)")
        product.price = price
    if "metadata" in data and isinstance(data["metadata"], dict):
        product.meta = data["metadata"]
    if data.get("shippingProfile"):
        product.meta = dict(product.meta or {}, shipping_profile=data["shippingProfile"])


# ==================== PRODUCTS ====================

@bp.route("/products", methods=["GET"])
@require_admin
def list_products():
    """All products, test and hidden ones included"""
    products = Product.query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return jsonify({"success": True, "products": [p.to_dict() for p in products]})


@bp.route("/products", methods=["POST"])
@require_admin
def create_product():
    data = json_body()
    name = clean_str(data.get("name"))
    if not name or data.get("price") is None:
        return jsonify({"error": "Name and price are required"}), 400

    slug = slugify(clean_str(data.get("slug")) or name)
    if Product.query.filter_by(slug=slug).first():
        return jsonify({"error": "Product with this slug already exists"}), 400

    product = Product(name=name, slug=slug, meta={})
    _apply_product_fields(product, data)
    product.name = name

    db.session.add(product)
    db.session.commit()
    _invalidate_catalog()

    current_app.logger.info(f"🆕 [ADMIN] Product {product.slug} created by {g.current_user.email}")
    return jsonify({"success": True, "product": product.to_dict()}), 201


@bp.route("/products/<int:product_id>", methods=["PUT"])
@require_admin
def update_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({"error": "Product not found"}), 404

    data = json_body()
    if "slug" in data:
        slug = slugify(clean_str(data["slug"]))
        if not slug:
            return jsonify({"error": "Invalid slug"}), 400
        clash = Product.query.filter(Product.slug == slug, Product.id != product.id).first()
        if clash:
            return jsonify({"error": "Product with this slug already exists"}), 400
        product.slug = slug

    _apply_product_fields(product, data)

    db.session.commit()
    _invalidate_catalog()
    return jsonify({"success": True, "product": product.to_dict()})


@bp.route("/products/<int:product_id>/image", methods=["POST"])
@require_admin
def upload_product_image(product_id):
    """Uploads the product image to Cloud Storage, replacing the previous one"""
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({"error": "Product not found"}), 404

    file = request.files.get("file")
    if file is None or not file.filename:
        return jsonify({"error": "No file provided"}), 400
    if not allowed_image(file.filename):
        return jsonify({"error": "File type not allowed"}), 400

    image_url = upload_file(file, folder=f"products/{product.id}")
    if image_url is None:
        return jsonify({"error": "Image storage is not available"}), 503

    if product.image_url and product.image_url.startswith("/api/images/"):
        if not delete_file(product.image_url):
            current_app.logger.warning(f"⚠️ [ADMIN] Old image {product.image_url} was not deleted")

    product.image_url = image_url
    db.session.commit()
    _invalidate_catalog()
    return jsonify({"success": True, "image_url": image_url})


@bp.route("/cache", methods=["GET"])
@require_admin
def cache_stats():
    return jsonify(query_cache.stats())


@bp.route("/cache/invalidate", methods=["POST"])
@require_admin
def invalidate_cache():
    pattern = json_body().get("pattern")
    if pattern:
        query_cache.invalidate_pattern(pattern)
    else:
        query_cache.clear()
    return jsonify({"success": True})


# ==================== ORDERS ====================

@bp.route("/orders", methods=["GET"])
@require_admin
def list_orders():
    query = ProductOrder.query
    status = request.args.get("status")
    if status:
        query = query.filter(ProductOrder.status == status)
    if request.args.get("includeTest", "false").lower() != "true":
        query = query.filter(ProductOrder.test_order.is_(False))

    orders = query.order_by(ProductOrder.created_at.desc(), ProductOrder.id.desc()).limit(ORDER_LIST_LIMIT).all()
    return jsonify({"success": True, "orders": [o.to_dict() for o in orders], "total": len(orders)})


@bp.route("/orders/<int:order_id>/status", methods=["PUT"])
@require_admin
def update_order_status(order_id):
    """
    Fulfillment update (processing, shipped, delivered, completed, cancelled).
    Invalid transitions are rejected with 409; the customer email is best-effort.
    """
    order = db.session.get(ProductOrder, order_id)
    if order is None:
        return jsonify({"error": "Order not found"}), 404

    data = json_body()
    status = data.get("status")
    if status not in sm.ADMIN_SETTABLE:
        return jsonify({"error": "Invalid status"}), 400

    admin = g.current_user
    sm.transition_order(
        order,
        status,
        reason=clean_str(data.get("reason")) or f"admin_mark_{status}",
        actor_type="admin",
        actor_id=str(admin.id),
    )
    if data.get("trackingNumber"):
        order.tracking_number = clean_str(data["trackingNumber"])
    if data.get("carrier"):
        order.carrier = clean_str(data["carrier"])

    db.session.commit()
    current_app.logger.info(f"📦 [ADMIN] Order {order.order_number} -> {status} by {admin.email}")

    recipient = customer_email_for(order)
    if recipient:
        customer_name = display_name(order.user) if order.user else (order.meta or {}).get("guest_name") or "Customer"
        result = send_order_status_email(order, recipient, customer_name, note=clean_str(data.get("message")) or None)
        if not result.success:
            current_app.logger.error(f"❌ [ADMIN] Status email failed for {order.order_number}: {result.error}")

    return jsonify({"success": True, "order": order.to_dict(include_events=True)})


@bp.route("/orders/remove-cancelled", methods=["POST"])
@require_admin
def remove_cancelled_orders():
    """Deletes cancelled orders; payments stay on record, detached from the order"""
    order_ids = json_body().get("orderIds")
    if not isinstance(order_ids, list) or not order_ids or not all(
        isinstance(i, int) and not isinstance(i, bool) for i in order_ids
    ):
        return jsonify({"error": "Order IDs array is required"}), 400

    orders = ProductOrder.query.filter(ProductOrder.id.in_(order_ids)).all()
    not_cancelled = [o.order_number for o in orders if o.status != sm.CANCELLED]
    if not_cancelled:
        return jsonify({
            "error": "Only cancelled orders can be removed",
            "nonCancelledOrders": not_cancelled,
        }), 400

    for order in orders:
        for refund in order.refund_requests:
            db.session.delete(refund)
        for payment in order.payments:
            payment.product_order_id = None
        db.session.delete(order)
    db.session.commit()
    current_app.logger.info(f"🗑️ [ADMIN] Removed {len(orders)} cancelled orders by {g.current_user.email}")

    return jsonify({"success": True, "deleted": {"productOrders": len(orders), "total": len(orders)}})


# ==================== REFUNDS ====================

@bp.route("/refunds", methods=["GET"])
@require_admin
def list_refunds():
    query = RefundRequest.query
    status = request.args.get("status")
    if status:
        query = query.filter(RefundRequest.status == status)
    refunds = query.order_by(RefundRequest.created_at.desc(), RefundRequest.id.desc()).all()
    return jsonify({"success": True, "refunds": [r.to_dict() for r in refunds]})


@bp.route("/refunds/<int:refund_id>/approve", methods=["POST"])
@require_admin
def approve_refund(refund_id):
    """action: approve (refund through Stripe) or reject"""
    data = json_body()
    refund = resolve_refund(refund_id, data.get("action"), admin_notes=clean_str(data.get("adminNotes")) or None)
    current_app.logger.info(f"💸 [ADMIN] Refund #{refund.id} {refund.status} by {g.current_user.email}")
    return jsonify({"success": True, "refund": refund.to_dict()})

# ==================== PARTNERS ====================

@bp.route("/partners", methods=["GET"])
@require_admin
def list_partners():
    query = Partner.query
    status = request.args.get("status")
    if status:
        query = query.filter(Partner.status == status)
    partners = query.order_by(Partner.created_at.desc(), Partner.id.desc()).all()
    return jsonify({"success": True, "partners": [p.to_dict() for p in partners]})


@bp.route("/partners/<int:partner_id>/approve", methods=["POST"])
@require_admin
def approve_partner(partner_id):
    partner = db.session.get(Partner, partner_id)
    if partner is None:
        return jsonify({"error": "Partner not found"}), 404

    approve = json_body().get("approve", True)
    if not isinstance(approve, bool):
        return jsonify({"error": "approve must be a boolean"}), 400

    partner.status = "approved" if approve else "rejected"
    partner.approved_at = datetime.utcnow() if approve else None
    db.session.commit()
    current_app.logger.info(f"🤝 [ADMIN] Partner {partner.company_name} {partner.status}")

    result = send_partner_decision_email(partner, approve)
    if not result.success:
        current_app.logger.error(f"❌ [ADMIN] Decision email failed for partner {partner.id}: {result.error}")

    return jsonify({"success": True, "partner": partner.to_dict()})

"""
API: Refunds
Customer refund requests on paid orders
"""
from flask import Blueprint, g, jsonify

from ..services.refunds import request_refund
from ..utils.auth import require_auth
from ._helpers import clean_str, json_body

bp = Blueprint("refunds", __name__)


@bp.route("/request", methods=["POST"])
@require_auth
def create_request():
    data = json_body()
    order_id = data.get("productOrderId")
    reason = clean_str(data.get("reason"))
    if isinstance(order_id, bool) or not isinstance(order_id, int) or not reason:
        return jsonify({"error": "Product order ID and reason are required"}), 400

    refund = request_refund(
        g.current_user,
        order_id,
        reason,
        description=clean_str(data.get("description")),
        amount=data.get("amount"),
    )
    return jsonify({
        "success": True,
        "refundRequest": refund.to_dict(),
        "message": "Refund request submitted successfully",
    })

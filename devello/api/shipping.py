"""
API: Shipping
Freight estimate by destination ZIP zone
"""
from flask import Blueprint, jsonify

from ..utils.shipping import (
    CURBSIDE,
    calculate_shipping_estimate,
    is_white_glove_allowed,
    is_white_glove_recommended,
)
from ._helpers import json_body

bp = Blueprint("shipping", __name__)


@bp.route("/estimate", methods=["POST"])
def estimate():
    data = json_body()
    profile = data.get("shippingProfile")

    result = calculate_shipping_estimate(
        data.get("zip"),
        delivery_access=data.get("deliveryAccess"),
        liftgate=bool(data.get("liftgate")),
        appointment=bool(data.get("appointment")),
        shipping_profile=profile,
        delivery_type=data.get("deliveryType") or CURBSIDE,
    )
    if result["error"]:
        return jsonify({"error": result["error"]}), 400

    result["white_glove_allowed"] = is_white_glove_allowed(profile)
    result["white_glove_recommended"] = is_white_glove_recommended(profile)
    return jsonify({"success": True, "estimate": result})

"""
API: User
Profile, saved addresses and order history of the signed-in user
"""
from flask import Blueprint, g, jsonify

from ..models import ProductOrder
from ..services.upload_allowance import get_allowance
from ..services.user_service import (
    create_address,
    delete_address,
    list_addresses,
    set_primary_address,
    update_address,
    update_profile,
)
from ..utils.auth import require_auth
from ._helpers import json_body

bp = Blueprint("user", __name__)

ORDER_HISTORY_LIMIT = 50


def _profile_response(user):
    return {
        "success": True,
        "user": user.to_dict(),
        "profile": user.profile.to_dict(),
        "uploadStats": get_allowance(user),
    }


@bp.route("/profile", methods=["GET"])
@require_auth
def get_profile():
    return jsonify(_profile_response(g.current_user))


@bp.route("/profile", methods=["PUT"])
@require_auth
def put_profile():
    update_profile(g.current_user, json_body())
    return jsonify(_profile_response(g.current_user))


@bp.route("/orders", methods=["GET"])
@require_auth
def orders():
    """Newest first; guest orders show up here once linked at sign in"""
    rows = (
        ProductOrder.query
        .filter_by(user_id=g.current_user.id)
        .order_by(ProductOrder.created_at.desc(), ProductOrder.id.desc())
        .limit(ORDER_HISTORY_LIMIT)
        .all()
    )
    return jsonify({"orders": [o.to_dict() for o in rows], "total": len(rows)})


# ==================== ADDRESSES ====================

@bp.route("/addresses", methods=["GET"])
@require_auth
def get_addresses():
    addresses = list_addresses(g.current_user)
    return jsonify({"success": True, "addresses": [a.to_dict() for a in addresses]})


@bp.route("/addresses", methods=["POST"])
@require_auth
def post_address():
    address = create_address(g.current_user, json_body())
    return jsonify({"success": True, "address": address.to_dict()}), 201


@bp.route("/addresses/<int:address_id>", methods=["PUT"])
@require_auth
def put_address(address_id):
    address = update_address(g.current_user, address_id, json_body())
    return jsonify({"success": True, "address": address.to_dict()})


@bp.route("/addresses/<int:address_id>", methods=["DELETE"])
@require_auth
def remove_address(address_id):
    delete_address(g.current_user, address_id)
    return jsonify({"success": True, "message": "Address deleted"})


@bp.route("/addresses/<int:address_id>/set-primary", methods=["POST"])
@require_auth
def make_primary(address_id):
    address = set_primary_address(g.current_user, address_id)
    return jsonify({"success": True, "address": address.to_dict()})

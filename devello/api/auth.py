"""
API: Auth
Session check for the frontend; sign in itself happens in Supabase
"""
from flask import Blueprint, g, jsonify

from ..utils.auth import is_admin_email, require_auth

bp = Blueprint("auth", __name__)


@bp.route("/verify", methods=["GET"])
@require_auth
def verify():
    user = g.current_user
    return jsonify({
        "valid": True,
        "user": {
            "id": user.id,
            "email": user.email,
            "isAdmin": is_admin_email(user.email),
        },
    })

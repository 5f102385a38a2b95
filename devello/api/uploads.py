"""
API: Uploads
Monthly upload allowance of signed-in users
"""
from flask import Blueprint, current_app, g, jsonify

from ..services.upload_allowance import can_upload, get_allowance, record_user_upload
from ..utils.auth import require_auth
from ._helpers import json_body

bp = Blueprint("uploads", __name__)

REQUIRED_UPLOAD_FIELDS = ("fileName", "fileSize", "fileType", "uploadType")


@bp.route("/stats", methods=["GET"])
@require_auth
def stats():
    user = g.current_user
    return jsonify({"success": True, "uploadStats": get_allowance(user), "canUpload": can_upload(user)})


@bp.route("/record", methods=["POST"])
@require_auth
def record():
    data = json_body()
    if not all(data.get(f) for f in REQUIRED_UPLOAD_FIELDS):
        return jsonify({"error": "Missing required fields"}), 400

    allowance = record_user_upload(g.current_user)
    current_app.logger.info(
        f"📝 [UPLOADS] {g.current_user.email} uploaded {data['fileName']} ({data['uploadType']}), "
        f"{allowance['used']} used"
    )
    return jsonify({"success": True, "uploadStats": allowance})

"""
API: Guest uploads
Upload quota for visitors who try the image editor without an account
"""
from flask import Blueprint, current_app, jsonify, request

from ..services import guest_sessions
from ._helpers import client_ip, json_body

bp = Blueprint("guest", __name__)


def _device_session(fingerprint):
    """Device-based session when the fingerprint is usable, else None"""
    if not guest_sessions.valid_fingerprint(fingerprint):
        return None
    return guest_sessions.get_or_create_session_by_device(
        fingerprint, client_ip(), request.headers.get("User-Agent")
    )


@bp.route("/upload-stats", methods=["POST"])
def upload_stats():
    data = json_body()

    session = _device_session(data.get("deviceFingerprint"))
    if session is not None:
        stats = guest_sessions.upload_stats(session)
        session_id = session.id
    else:
        # Unknown ids report a fresh quota
        session_id = data.get("sessionId")
        stats = guest_sessions.get_upload_stats(session_id)

    stats["canUpload"] = guest_sessions.can_upload(session_id)
    return jsonify(stats)


@bp.route("/record-upload", methods=["POST"])
def record_upload():
    data = json_body()
    session_id = data.get("sessionId")
    upload = data.get("uploadData")
    fingerprint = data.get("deviceFingerprint")

    if not session_id or not upload:
        return jsonify({"error": "Session ID and upload data required"}), 400
    if not isinstance(upload, dict) or not (upload.get("fileName") and upload.get("fileSize") and upload.get("fileType")):
        return jsonify({"error": "Invalid upload data format"}), 400

    current_app.logger.info(
        f"📝 [GUEST_RECORD] {session_id}: {upload.get('fileName')} ({upload.get('fileSize')} bytes), "
        f"fingerprint={'yes' if fingerprint else 'no'}"
    )

    session = _device_session(fingerprint)
    if session is None:
        session = guest_sessions.create_or_get_session(
            session_id, fingerprint or "unknown", client_ip(), request.headers.get("User-Agent")
        )

    # Limit and expiry errors propagate as 403 / 410
    stats = guest_sessions.record_upload(session.id)
    return jsonify({"success": True, "uploadStats": stats})


@bp.route("/add-sessions", methods=["POST"])
def add_sessions():
    """Bonus code: resets the session's upload limit to the default"""
    data = json_body()
    code = data.get("code")
    if not code:
        return jsonify({"error": "Code is required"}), 400
    if str(code).strip().upper() != current_app.config["GUEST_BONUS_CODE"].upper():
        return jsonify({"error": "Invalid code"}), 401

    session_id = data.get("sessionId") or request.headers.get("X-Session-Id")
    if not session_id:
        return jsonify({"error": "Session ID is required"}), 400

    fingerprint = data.get("deviceFingerprint")
    session = _device_session(fingerprint)
    if session is None:
        session = guest_sessions.create_or_get_session(
            session_id, fingerprint or "unknown", client_ip(), request.headers.get("User-Agent")
        )

    guest_sessions.reset_session_limit(session)
    limit = session.upload_limit
    current_app.logger.info(f"🎁 [GUEST_SESSION] Bonus code applied to {session.id}")
    return jsonify({
        "success": True,
        "message": f"Sessions reset to {limit}",
        "newLimit": limit,
        "remaining": max(0, limit - session.upload_count),
    })

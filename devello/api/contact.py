"""
API: Contact form
Public "contact us" form; the email to the sales inbox is the only record
"""
from flask import Blueprint, current_app, jsonify, request

from ..services.email_service import send_contact_email
from ..utils.form_validation import validate_form_fields, validate_honeypot
from ._helpers import client_ip, json_body

bp = Blueprint("contact", __name__)


@bp.route("/send", methods=["POST"])
def send():
    """Validates the form and emails it to sales"""
    data = json_body()
    name = data.get("name")
    email = data.get("email")
    subject = data.get("subject")
    message = data.get("message")

    current_app.logger.info(f"[CONTACT_FORM] Submission from {email} ({len(message or '')} chars)")

    if not validate_honeypot(data.get("website")).valid:
        current_app.logger.warning(f"[CONTACT_FORM] Honeypot filled, ip={client_ip()}")
        return jsonify({"error": "Invalid submission"}), 400

    if not all(isinstance(v, str) and v.strip() for v in (name, email, subject, message)):
        return jsonify({"error": "Missing required fields: name, email, subject, and message are required"}), 400

    validation = validate_form_fields(
        {"name": name, "email": email, "subject": subject, "message": message},
        require_subject=True,
        min_message_words=5,
        check_honeypot=False,
    )
    if not validation.valid:
        current_app.logger.warning(f"[CONTACT_FORM] Validation failed: {validation.errors}, ip={client_ip()}")
        return jsonify({"error": validation.first_error}), 400

    result = send_contact_email({
        "name": name.strip(),
        "email": email.strip().lower(),
        "subject": subject.strip(),
        "message": message.strip(),
    })
    if not result.success:
        return jsonify({"error": "Failed to send message. Please try again."}), 500

    return jsonify({"success": True, "message": "Message sent successfully"})

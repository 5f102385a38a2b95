"""
API: Business consultations
"""
from flask import Blueprint, current_app, jsonify

from ..services.email_service import send_consultation_email
from ..utils.form_validation import validate_form_fields, validate_honeypot
from ._helpers import client_ip, json_body, clean_str

bp = Blueprint("consultations", __name__)


@bp.route("/submit", methods=["POST"])
def submit():
    """
    Consultation request; the description is optional but validated when sent.
    A failed email does not fail the request.
    """
    data = json_body()

    if not validate_honeypot(data.get("website")).valid:
        current_app.logger.warning(f"[CONSULTATION] Honeypot filled, ip={client_ip()}")
        return jsonify({"error": "Invalid submission"}), 400

    name = data.get("name")
    email = data.get("email")
    consultation_type = clean_str(data.get("consultationType"))
    if not (name and email and consultation_type):
        return jsonify({
            "error": "Missing required fields: name, email, and consultationType are required"
        }), 400

    description = data.get("businessDescription")
    validation = validate_form_fields(
        {"name": name, "email": email, "businessDescription": description},
        require_message=bool(description),
        min_message_words=5,
        check_honeypot=False,
    )
    if not validation.valid:
        return jsonify({"error": validation.first_error}), 400

    consultation = {
        "name": name.strip(),
        "email": email.strip().lower(),
        "phone": clean_str(data.get("phone")),
        "consultationType": consultation_type,
        "businessDescription": clean_str(description),
        "businessStage": clean_str(data.get("businessStage")),
        "additionalInfo": clean_str(data.get("additionalInfo")),
        "uploadedFile": data.get("uploadedFile"),
        "fileName": data.get("fileName"),
        "fileType": data.get("fileType"),
    }

    result = send_consultation_email(consultation)
    if not result.success:
        current_app.logger.error(f"❌ [CONSULTATION] Email failed for {consultation['email']}: {result.error}")

    return jsonify({"success": True, "message": "Consultation request submitted successfully"})

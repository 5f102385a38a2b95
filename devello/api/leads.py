"""
API: Leads
Project inquiry form (personal and commercial projects)
"""
from flask import Blueprint, current_app, jsonify

from ..services.email_service import send_lead_email
from ..utils.form_validation import validate_form_fields, validate_honeypot
from ._helpers import client_ip, json_body, clean_str

bp = Blueprint("leads", __name__)


@bp.route("/submit", methods=["POST"])
def submit():
    data = json_body()

    if not validate_honeypot(data.get("website")).valid:
        current_app.logger.warning(f"[LEADS] Honeypot filled, ip={client_ip()}")
        return jsonify({"error": "Invalid submission"}), 400

    name = data.get("name")
    email = data.get("email")
    project_type = clean_str(data.get("projectType"))
    description = data.get("description")
    if not (name and email and project_type and description):
        return jsonify({
            "error": "Missing required fields: name, email, projectType, and description are required"
        }), 400

    validation = validate_form_fields(
        {"name": name, "email": email, "description": description},
        min_message_words=5,
        check_honeypot=False,
    )
    if not validation.valid:
        current_app.logger.warning(f"[LEADS] Validation failed: {validation.errors}, ip={client_ip()}")
        return jsonify({"error": validation.first_error}), 400

    platforms = data.get("targetPlatforms")
    lead = {
        "name": name.strip(),
        "email": email.strip().lower(),
        "phone": clean_str(data.get("phone")),
        "company": clean_str(data.get("company")),
        "projectType": project_type,
        "projectStage": clean_str(data.get("projectStage")),
        "primaryGoal": clean_str(data.get("primaryGoal")),
        "role": clean_str(data.get("role")),
        "description": description.strip(),
        "targetPlatforms": platforms if isinstance(platforms, list) else [],
        "timeline": clean_str(data.get("timeline")),
        "budget": clean_str(data.get("budget")),
    }
    current_app.logger.info(f"[LEADS] New {project_type} lead from {lead['email']}")

    result = send_lead_email(lead)
    if not result.success:
        return jsonify({"error": "Failed to send lead notification. Please try again."}), 500

    return jsonify({"success": True, "message": "Lead submitted successfully"})

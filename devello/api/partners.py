"""
API: Partners
Contractor / vendor applications
"""
import re
from datetime import datetime

from flask import Blueprint, current_app, g, jsonify

from ..db import db
from ..models import Partner
from ..utils.auth import require_auth
from ._helpers import clean_str, json_body

bp = Blueprint("partners", __name__)

SERVICE_TYPES = ("construction", "software_development", "consulting", "manufacturing")
SERVICE_TYPE_ALIASES = {"software_dev": "software_development"}
APPLICATION_LIST_FIELDS = ("subservices", "materials", "products")


def parse_experience_years(value):
    """Leading integer of the experience bucket: "10+" -> 10, "1-2" -> 1, "<1" -> None"""
    match = re.match(r"^(\d+)", str(value or "").strip())
    return int(match.group(1)) if match else None


@bp.route("/apply", methods=["POST"])
@require_auth
def apply():
    user = g.current_user
    data = json_body()

    company_name = clean_str(data.get("companyName"))
    service_type = clean_str(data.get("serviceType"))
    if not company_name or not service_type:
        return jsonify({
            "error": "Missing required fields",
            "details": "Company name and service type are required",
        }), 400

    service_type = SERVICE_TYPE_ALIASES.get(service_type, service_type)
    if service_type not in SERVICE_TYPES:
        return jsonify({
            "error": "Invalid service type",
            "details": f"Service type must be one of: {', '.join(SERVICE_TYPES)}",
        }), 400

    existing = Partner.query.filter_by(user_id=user.id).first()
    if existing is not None:
        return jsonify({
            "error": "Application already exists",
            "status": existing.status,
            "message": f"You already have a {existing.status} application.",
        }), 400

    application_data = {
        "submitted_at": datetime.utcnow().isoformat(),
        "submitted_email": user.email,
        "entityType": data.get("entityType"),
        "employeeCount": data.get("employeeCount"),
        # Stored as sent: "<1", "1-2", "10+"...
        "yearsExperience": data.get("yearsExperience"),
    }
    for field in APPLICATION_LIST_FIELDS:
        application_data[field] = data.get(field) or []

    partner = Partner(
        user_id=user.id,
        company_name=company_name,
        service_type=service_type,
        status="pending",
        experience_years=parse_experience_years(data.get("yearsExperience")),
        phone=clean_str(data.get("phone")) or None,
        application_data=application_data,
    )
    db.session.add(partner)
    db.session.commit()
    current_app.logger.info(f"✅ [PARTNERS_APPLY] {company_name} ({service_type}) applied, user {user.id}")

    return jsonify({
        "success": True,
        "message": "Application submitted successfully",
        "application": {
            "id": partner.id,
            "status": partner.status,
            "companyName": partner.company_name,
        },
    })


@bp.route("/status", methods=["GET"])
@require_auth
def status():
    partner = Partner.query.filter_by(user_id=g.current_user.id).first()
    if partner is None:
        return jsonify({"isPartner": False, "status": None, "partner": None})
    return jsonify({
        "isPartner": partner.status == "approved",
        "status": partner.status,
        "partner": partner.to_dict(),
    })

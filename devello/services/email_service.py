"""
Service: transactional email over SMTP (Gmail by default)

Every send returns an EmailResult instead of raising, so callers decide
whether a failed email should fail their request.
"""
import base64
import binascii
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import NamedTuple, Optional

from flask import current_app, render_template
from ..utils.retry import retry_call

# Base64 attachments larger than this are left out of the email
MAX_ATTACHMENT_CHARS = 1_000_000

_TRANSIENT_SMTP_ERRORS = (
    smtplib.SMTPServerDisconnected,
    smtplib.SMTPConnectError,
    ConnectionError,
    TimeoutError,
)


class EmailResult(NamedTuple):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def format_cents(amount, currency="usd"):
    """1234567 -> '$12,345.67'"""
    symbol = "$" if (currency or "usd").lower() == "usd" else ""
    suffix = "" if symbol else f" {currency.upper()}"
    return f"{symbol}{(amount or 0) / 100:,.2f}{suffix}"


def init_app(app):
    app.jinja_env.filters["cents"] = format_cents


def _smtp_configured(config):
    return bool(config.get("SMTP_USER") and config.get("SMTP_PASSWORD"))


def _header_value(value):
    """Single-line header text; CR/LF from form input would be rejected by EmailMessage"""
    return " ".join(str(value).split())


def send_form_email(to, subject, html, reply_to=None, text=None, attachments=None):
    """
    Sends one HTML email.

    Args:
        to: Recipient address
        subject: Subject line
        html: Rendered HTML body
        reply_to: Optional Reply-To (the submitter for form emails)
        text: Plain-text alternative
        attachments: List of (filename, bytes, mime type) tuples

    Returns:
        EmailResult
    """
    config = current_app.config
    if not to:
        return EmailResult(False, error="Recipient email is required")
    if not _smtp_configured(config):
        current_app.logger.error("❌ [EMAIL_SERVICE] SMTP not configured")
        return EmailResult(False, error="SMTP not configured")

    from_email = config.get("FROM_EMAIL") or config.get("SMTP_USER")
    message = EmailMessage()
    subject = _header_value(subject)
    message["Subject"] = subject
    message["From"] = formataddr((config.get("FROM_NAME", "Devello Inc"), from_email))
    message["To"] = _header_value(to)
    if reply_to:
        message["Reply-To"] = _header_value(reply_to)
    message_id = make_msgid(domain=from_email.split("@")[-1])
    message["Message-ID"] = message_id

    message.set_content(text or "This message requires an HTML-capable email client.")
    message.add_alternative(html, subtype="html")
    for filename, content, mime_type in attachments or []:
        maintype, _, subtype = (mime_type or "application/octet-stream").partition("/")
        message.add_attachment(
            content, maintype=maintype, subtype=subtype or "octet-stream", filename=_header_value(filename),
        )

    def deliver():
        with smtplib.SMTP(config["SMTP_HOST"], config["SMTP_PORT"], timeout=15) as smtp:
            smtp.starttls()
            smtp.login(config["SMTP_USER"], config["SMTP_PASSWORD"])
            smtp.send_message(message)

    try:
        retry_call(deliver, attempts=3, base_delay=1.0, exceptions=_TRANSIENT_SMTP_ERRORS)
    except (smtplib.SMTPException, OSError) as e:
        current_app.logger.error(f"❌ [EMAIL_SERVICE] Sending '{subject}' failed: {e}")
        return EmailResult(False, error=str(e))

    current_app.logger.info(f"📧 [EMAIL_SERVICE] Sent '{subject}' ({message_id})")
    return EmailResult(True, message_id=message_id)


def send_contact_email(data):
    html = render_template("emails/contact.html", data=data)
    return send_form_email(
        current_app.config["SALES_EMAIL"],
        f"Contact Form: {data['subject']}",
        html,
        reply_to=data["email"],
        text=f"From {data['name']} <{data['email']}>\n\n{data['message']}",
    )


def send_lead_email(data):
    kind = "Commercial" if (data.get("projectType") or "").lower() == "commercial" else "Personal"
    who = data.get("company") or data["name"]
    html = render_template("emails/lead.html", data=data, kind=kind)
    return send_form_email(
        current_app.config["SALES_EMAIL"],
        f"New Lead: {kind} Project - {who}",
        html,
        reply_to=data["email"],
    )


def _decode_attachment(file_data, file_name, file_type):
    """Base64 (optionally a data: URL) -> attachment tuple, or None"""
    if not file_data:
        return None
    if "," in file_data and file_data.startswith("data:"):
        file_data = file_data.split(",", 1)[1]
    try:
        content = base64.b64decode(file_data, validate=True)
    except (binascii.Error, ValueError):
        current_app.logger.warning("⚠️ [EMAIL_SERVICE] Attachment is not valid base64; skipped")
        return None
    return (file_name or "attachment", content, file_type or "application/octet-stream")


def send_consultation_email(data):
    file_data = data.get("uploadedFile")
    attachment_note = None
    attachments = []
    if file_data and len(file_data) > MAX_ATTACHMENT_CHARS:
        attachment_note = f"Attachment {data.get('fileName') or ''} was too large to include."
    elif file_data:
        attachment = _decode_attachment(file_data, data.get("fileName"), data.get("fileType"))
        if attachment:
            attachments.append(attachment)

    html = render_template("emails/consultation.html", data=data, attachment_note=attachment_note)
    return send_form_email(
        current_app.config["SALES_EMAIL"],
        f"Business Consultation Request: {data['consultationType']} - {data['name']}",
        html,
        reply_to=data["email"],
        attachments=attachments,
    )


def send_order_confirmation_email(order, to, customer_name, custom_message=None):
    html = render_template(
        "emails/order_confirmation.html",
        order=order,
        customer_name=customer_name,
        custom_message=custom_message,
        site_url=current_app.config["SITE_URL"],
    )
    return send_form_email(to, f"Order Confirmation - {order.order_number}", html)


def send_admin_order_notification(order, customer_name, customer_email, additional_info=None):
    html = render_template(
        "emails/admin_order.html",
        order=order,
        customer_name=customer_name,
        customer_email=customer_email,
        additional_info=additional_info,
    )
    prefix = "[TEST] " if order.test_order else ""
    return send_form_email(
        current_app.config["SALES_EMAIL"],
        f"{prefix}New Order: {order.order_number}",
        html,
        reply_to=customer_email,
    )


def send_order_status_email(order, to, customer_name, note=None):
    html = render_template(
        "emails/order_status.html",
        order=order,
        customer_name=customer_name,
        note=note,
        site_url=current_app.config["SITE_URL"],
    )
    status = order.status.replace("_", " ").title()
    return send_form_email(to, f"Order {order.order_number}: {status}", html)


def send_custom_request_emails(custom_request, product, order=None):
    """Admin notification plus customer acknowledgement for quote requests"""
    admin_html = render_template("emails/custom_request_admin.html", custom_request=custom_request, product=product, order=order)
    admin_result = send_form_email(
        current_app.config["SALES_EMAIL"],
        f"New {'Glass/Mirror Order' if order else 'Pricing Request'}: {product.name}",
        admin_html,
        reply_to=custom_request.email,
    )
    if not order:
        return admin_result, None

    customer_html = render_template("emails/custom_request_customer.html", custom_request=custom_request, product=product, order=order)
    customer_result = send_form_email(
        custom_request.email,
        f"We received your request - {order.order_number}",
        customer_html,
    )
    return admin_result, customer_result


SERVICE_TYPE_LABELS = {
    "construction": "Construction",
    "software_development": "Software Development",
    "consulting": "Consulting",
    "manufacturing": "Manufacturing",
}


def send_partner_decision_email(partner, approved):
    html = render_template(
        "emails/partner_decision.html",
        partner=partner,
        approved=approved,
        service_label=SERVICE_TYPE_LABELS.get(partner.service_type, partner.service_type),
        site_url=current_app.config["SITE_URL"],
    )
    subject = (
        "Congratulations! Your Partner Application Has Been Approved"
        if approved else "Update on Your Partner Application"
    )
    return send_form_email(partner.user.email, subject, html)


def send_refund_request_email(refund_request, customer_email):
    html = render_template(
        "emails/refund_request.html",
        refund=refund_request,
        order=refund_request.order,
        customer_email=customer_email,
    )
    return send_form_email(
        current_app.config["SALES_EMAIL"],
        f"Refund Request: {refund_request.order.order_number}",
        html,
        reply_to=customer_email,
    )


def send_refund_status_email(refund_request, to):
    html = render_template(
        "emails/refund_status.html",
        refund=refund_request,
        order=refund_request.order,
        site_url=current_app.config["SITE_URL"],
    )
    outcome = "Approved" if refund_request.status == "processed" else "Declined"
    return send_form_email(to, f"Refund {outcome} - {refund_request.order.order_number}", html)

"""
Service: Stripe
Thin wrapper over the Stripe SDK used by checkout, purchase, webhooks and the
catalog sync script.
"""
import json

import stripe
from flask import current_app

from ..errors import PaymentError, ValidationError


def get_stripe():
    """Configures the SDK from app config and returns the module"""
    secret_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not secret_key:
        raise PaymentError("Stripe is not configured")
    stripe.api_key = secret_key
    api_version = current_app.config.get("STRIPE_API_VERSION")
    if api_version:
        stripe.api_version = api_version
    return stripe


def to_dict(obj):
    """StripeObject -> plain dict (recursively)"""
    if obj is None:
        return {}
    if isinstance(obj, dict) and not hasattr(obj, "to_dict"):
        return obj
    converter = getattr(obj, "to_dict_recursive", None) or getattr(obj, "to_dict", None)
    if callable(converter):
        return converter()
    return dict(obj)


def handle_stripe_error(error, context):
    """
    Maps a Stripe SDK error to a PaymentError with a user-facing message.

    CardError 402, RateLimitError 429, InvalidRequestError 400,
    AuthenticationError 500, APIConnectionError 503, anything else 500.
    """
    current_app.logger.error(f"❌ [STRIPE] {context}: {type(error).__name__}: {error}")

    if isinstance(error, stripe.CardError):
        return PaymentError(
            error.user_message or "Your card was declined. Please try a different payment method.",
            status_code=402,
        )
    if isinstance(error, stripe.RateLimitError):
        return PaymentError("Too many payment requests. Please wait a moment and try again.", status_code=429)
    if isinstance(error, stripe.InvalidRequestError):
        return PaymentError("Invalid payment request. Please check your details and try again.", status_code=400)
    if isinstance(error, stripe.AuthenticationError):
        current_app.logger.critical(f"Stripe authentication failed: {error}")
        return PaymentError("Payment service configuration error. Please contact support.", status_code=500)
    if isinstance(error, stripe.APIConnectionError):
        return PaymentError("Unable to connect to the payment service. Please try again.", status_code=503)
    return PaymentError("An unexpected payment error occurred. Please try again.", status_code=500)


def _stringify_metadata(metadata):
    """Stripe metadata values must be strings; None values are dropped"""
    clean = {}
    for key, value in (metadata or {}).items():
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            clean[key] = json.dumps(value, separators=(",", ":"))
        elif isinstance(value, bool):
            clean[key] = "true" if value else "false"
        else:
            clean[key] = str(value)
    return clean


def ensure_customer(email, name=None, metadata=None):
    """Reuses the first Stripe customer with this email, or creates one"""
    api = get_stripe()
    try:
        existing = api.Customer.list(email=email, limit=1)
        if existing.data:
            return existing.data[0].id
        customer = api.Customer.create(email=email, name=name, metadata=_stringify_metadata(metadata))
    except stripe.StripeError as e:
        raise handle_stripe_error(e, "ensure_customer")
    return customer.id


def create_payment_intent(amount, currency, metadata, customer_id=None, receipt_email=None):
    """
    Creates a card PaymentIntent.

    Returns:
        dict: {"client_secret", "id"}
    """
    if not isinstance(currency, str) or len(currency) != 3 or not currency.isalpha():
        raise ValidationError("Invalid currency")

    api = get_stripe()
    params = {
        "amount": int(amount),
        "currency": currency.lower(),
        "metadata": _stringify_metadata(metadata),
        "automatic_payment_methods": {"enabled": True},
    }
    if customer_id:
        params["customer"] = customer_id
    if receipt_email:
        params["receipt_email"] = receipt_email

    try:
        intent = api.PaymentIntent.create(**params)
    except stripe.StripeError as e:
        raise handle_stripe_error(e, "create_payment_intent")
    return {"client_secret": intent.client_secret, "id": intent.id}


def retrieve_payment_intent(payment_intent_id):
    try:
        return to_dict(get_stripe().PaymentIntent.retrieve(payment_intent_id))
    except stripe.StripeError as e:
        raise handle_stripe_error(e, "retrieve_payment_intent")


def retrieve_checkout_session(session_id):
    try:
        return to_dict(get_stripe().checkout.Session.retrieve(session_id))
    except stripe.StripeError as e:
        raise handle_stripe_error(e, "retrieve_checkout_session")


def create_refund(amount, metadata, charge_id=None, payment_intent_id=None):
    """
    Refunds part or all of a charge. The payment intent is used when the
    charge id was never recorded.

    Returns:
        dict: {"id", "status", "amount"}
    """
    params = {
        "amount": int(amount),
        "reason": "requested_by_customer",
        "metadata": _stringify_metadata(metadata),
    }
    if charge_id:
        params["charge"] = charge_id
    elif payment_intent_id:
        params["payment_intent"] = payment_intent_id
    else:
        raise ValidationError("Payment has no Stripe charge to refund")

    try:
        refund = get_stripe().Refund.create(**params)
    except stripe.StripeError as e:
        raise handle_stripe_error(e, "create_refund")
    return {"id": refund.id, "status": refund.status, "amount": refund.amount}


def verify_webhook(payload, signature):
    """
    Checks the Stripe-Signature header against the raw body.

    Returns:
        dict: the parsed event

    Raises:
        ValidationError: missing secret, missing header or bad signature
    """
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        raise ValidationError("Webhook secret not configured")
    if not signature:
        raise ValidationError("Missing Stripe-Signature header")

    body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    try:
        stripe.WebhookSignature.verify_header(body, signature, secret, stripe.Webhook.DEFAULT_TOLERANCE)
    except stripe.SignatureVerificationError as e:
        current_app.logger.warning(f"⚠️ [STRIPE_WEBHOOK] Signature verification failed: {e}")
        raise ValidationError("Webhook signature verification failed")

    try:
        return json.loads(body)
    except json.JSONDecodeError:
        raise ValidationError("Invalid webhook payload")

"""
Service: upload allowance for signed-in users
Monthly plan limit plus one-time credits; admin inboxes are unlimited.
"""
from datetime import datetime

from flask import current_app
from ..db import db
from ..errors import QuotaExceededError
from ..models import OneTimePurchase
from ..utils.auth import is_admin_email


def plan_limit(plan_type):
    limits = current_app.config["PLAN_UPLOAD_LIMITS"]
    return limits.get(plan_type or "free", limits["free"])


def check_monthly_reset(profile, now=None):
    """
    Clears the month's usage (and unused one-time credits) when the calendar
    month changed since the last reset. Returns True when a reset happened.
    """
    now = now or datetime.utcnow()
    last = profile.last_monthly_reset

    if last is None:
        profile.last_monthly_reset = now
        db.session.commit()
        return False

    if (last.year, last.month) == (now.year, now.month):
        return False

    profile.upload_count = 0
    profile.one_time_uploads = 0
    profile.last_monthly_reset = now
    db.session.commit()
    current_app.logger.info(f"🔄 [UPLOAD_ALLOWANCE] Monthly reset for user {profile.user_id}")
    return True


def get_allowance(user, now=None):
    profile = user.profile
    check_monthly_reset(profile, now)

    if is_admin_email(user.email):
        return {
            "used": profile.upload_count,
            "limit": None,
            "remaining": None,
            "planType": "admin",
            "oneTimeCredits": 0,
            "unlimited": True,
        }

    limit = plan_limit(profile.plan_type) + (profile.one_time_uploads or 0)
    return {
        "used": profile.upload_count,
        "limit": limit,
        "remaining": max(0, limit - profile.upload_count),
        "planType": profile.plan_type,
        "oneTimeCredits": profile.one_time_uploads or 0,
        "unlimited": False,
    }


def can_upload(user):
    allowance = get_allowance(user)
    return allowance["unlimited"] or allowance["remaining"] > 0


def record_user_upload(user, now=None):
    """Counts one upload; raises QuotaExceededError when nothing is left"""
    allowance = get_allowance(user, now)
    if not allowance["unlimited"] and allowance["remaining"] <= 0:
        raise QuotaExceededError(
            "Upload limit reached",
            payload={"message": "You have reached your upload limit. Please upgrade your plan "
                                "or purchase additional uploads."},
        )

    user.profile.upload_count += 1
    db.session.commit()
    return get_allowance(user, now)


def add_one_time_credits(user, credits, payment_intent_id, amount=0, currency="usd",
                         purchase_type="single_upload", session_id=None):
    """
    Grants one-time upload credits for a Stripe payment.

    One purchase row per payment intent: granting the same payment again
    updates the row but adds no credits.

    Returns:
        (OneTimePurchase, bool): the purchase and whether credits were added
    """
    purchase = OneTimePurchase.query.filter_by(stripe_payment_intent_id=payment_intent_id).first()
    if purchase is not None:
        purchase.stripe_session_id = session_id or purchase.stripe_session_id
        purchase.status = "completed"
        db.session.commit()
        current_app.logger.info(f"⏭️ [UPLOAD_ALLOWANCE] {payment_intent_id} already granted")
        return purchase, False

    check_monthly_reset(user.profile)
    purchase = OneTimePurchase(
        user_id=user.id,
        stripe_payment_intent_id=payment_intent_id,
        stripe_session_id=session_id,
        amount=amount,
        currency=currency,
        status="completed",
        purchase_type=purchase_type,
        uploads_granted=credits,
    )
    db.session.add(purchase)
    user.profile.one_time_uploads = (user.profile.one_time_uploads or 0) + credits
    db.session.commit()
    current_app.logger.info(f"🎟️ [UPLOAD_ALLOWANCE] +{credits} one-time uploads for {user.email}")
    return purchase, True

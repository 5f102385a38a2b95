"""
Service: guest sessions
Server-side upload quota for anonymous visitors of the image editor,
tracked by session id and, when available, by device fingerprint.
"""
import random
import re
import string
import time
from datetime import datetime, timedelta

from flask import current_app
from ..db import db
from ..errors import NotFoundError, QuotaExceededError, SessionExpiredError, ValidationError
from ..models import GuestSession, MaintenanceState

MAX_FINGERPRINT_LENGTH = 64
MAX_IP_LENGTH = 45
MAX_USER_AGENT_LENGTH = 200

_MOBILE_UA = re.compile(r"Mobile|Android|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)


def detect_mobile(user_agent):
    return bool(user_agent and _MOBILE_UA.search(user_agent))


def extract_browser(user_agent):
    if not user_agent:
        return None
    for name in ("Chrome", "Firefox", "Safari", "Edge"):
        if name in user_agent:
            return name
    return "Other"


def extract_os(user_agent):
    if not user_agent:
        return None
    for marker, name in (("Windows", "Windows"), ("Mac", "macOS"), ("Linux", "Linux"),
                         ("Android", "Android"), ("iOS", "iOS")):
        if marker in user_agent:
            return name
    return "Other"


def valid_fingerprint(fingerprint):
    return bool(fingerprint) and len(fingerprint) <= MAX_FINGERPRINT_LENGTH


def _default_limit():
    return current_app.config["GUEST_UPLOAD_LIMIT"]


def _new_session(session_id, fingerprint, ip, user_agent):
    now = datetime.utcnow()
    session = GuestSession(
        id=session_id,
        device_fingerprint=fingerprint if valid_fingerprint(fingerprint) else None,
        ip_address=ip[:MAX_IP_LENGTH] if ip else None,
        user_agent=user_agent[:MAX_USER_AGENT_LENGTH] if user_agent else None,
        upload_count=0,
        upload_limit=_default_limit(),
        expires_at=now + timedelta(hours=current_app.config["GUEST_SESSION_HOURS"]),
        is_mobile=detect_mobile(user_agent),
        browser_name=extract_browser(user_agent),
        os_name=extract_os(user_agent),
        last_activity=now,
    )
    db.session.add(session)
    return session


def upload_stats(session):
    limit = session.upload_limit if session else _default_limit()
    count = session.upload_count if session else 0
    return {
        "uploadCount": count,
        "uploadLimit": limit,
        "remaining": max(0, limit - count),
        "planType": "guest",
        "subscriptionStatus": "none",
        "isGuest": True,
    }


def create_or_get_session(session_id, fingerprint, ip=None, user_agent=None):
    """Returns the session with that id, creating it if needed"""
    if not session_id or not fingerprint:
        raise ValidationError("Session ID and device fingerprint are required")

    session = db.session.get(GuestSession, session_id)
    if session is None:
        session = _new_session(session_id, fingerprint, ip, user_agent)
        current_app.logger.info(f"🆕 [GUEST_SESSION] Created session {session_id}")
    else:
        session.last_activity = datetime.utcnow()
        session.ip_address = ip[:MAX_IP_LENGTH] if ip else None
        session.user_agent = user_agent[:MAX_USER_AGENT_LENGTH] if user_agent else None
        if valid_fingerprint(fingerprint):
            session.device_fingerprint = fingerprint

    db.session.commit()
    return session


def get_or_create_session_by_device(fingerprint, ip=None, user_agent=None):
    """Most recent unexpired session for a device, or a new ``device-<ms>-<rand>`` one"""
    if not valid_fingerprint(fingerprint):
        raise ValidationError("Invalid device fingerprint")

    session = (
        GuestSession.query
        .filter(GuestSession.device_fingerprint == fingerprint)
        .filter(GuestSession.expires_at > datetime.utcnow())
        .order_by(GuestSession.created_at.desc())
        .first()
    )
    if session is not None:
        session.last_activity = datetime.utcnow()
        db.session.commit()
        return session

    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    session = _new_session(f"device-{int(time.time() * 1000)}-{suffix}", fingerprint, ip, user_agent)
    db.session.commit()
    current_app.logger.info(f"🆕 [GUEST_SESSION] Created device session {session.id}")
    return session


def record_upload(session_id):
    """
    Counts one upload against the session.

    Raises:
        NotFoundError: unknown session
        SessionExpiredError: session past its expiry
        QuotaExceededError: no uploads left
    """
    session = db.session.get(GuestSession, session_id)
    if session is None:
        raise NotFoundError("Guest session not found")
    if session.is_expired():
        raise SessionExpiredError(
            "Session expired",
            payload={"message": "Your session has expired. Please refresh the page."},
        )
    if session.upload_count >= session.upload_limit:
        raise QuotaExceededError(
            "Upload limit reached",
            payload={"message": "You have reached your upload limit. Please purchase additional uploads."},
        )

    session.upload_count += 1
    session.last_activity = datetime.utcnow()
    db.session.commit()
    return upload_stats(session)


def get_upload_stats(session_id):
    return upload_stats(db.session.get(GuestSession, session_id) if session_id else None)


def can_upload(session_id):
    session = db.session.get(GuestSession, session_id) if session_id else None
    if session is None or session.is_expired():
        # A new session will be created with a fresh quota
        return True
    return session.upload_count < session.upload_limit


def reset_session_limit(session):
    """Restores the default limit without touching the count"""
    session.upload_limit = _default_limit()
    db.session.commit()
    return session


def cleanup_expired_sessions(now=None):
    deleted = GuestSession.query.filter(GuestSession.expires_at < (now or datetime.utcnow())).delete()
    db.session.commit()
    return deleted


def iso_week_key(now):
    year, week, _ = now.isocalendar()
    return f"{year}-W{week:02d}"


def reset_weekly_limits(now=None):
    """
    Zeroes every upload count once per ISO week; returns the rows reset.
    The last reset week is stored in maintenance_state so repeated cron runs
    within the same week are no-ops.
    """
    now = now or datetime.utcnow()
    week = iso_week_key(now)

    state = MaintenanceState.get()
    if state.last_guest_reset_week is not None and state.last_guest_reset_week >= week:
        db.session.commit()
        return 0

    count = GuestSession.query.update({"upload_count": 0, "last_activity": now})
    state.last_guest_reset_week = week
    db.session.commit()

    current_app.logger.info(f"🔄 [GUEST_SESSION] Weekly reset ({week}): {count} sessions")
    return count

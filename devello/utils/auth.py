"""
Supabase authentication for API routes

Tokens are verified locally with the project's JWT secret when it is
configured, otherwise against the Supabase auth endpoint.
"""
import hashlib
from functools import wraps

import jwt
import requests
from flask import current_app, g, request

from ..errors import AuthError, ForbiddenError
from .query_cache import query_cache

TOKEN_CACHE_TTL = 30.0
SUPABASE_AUDIENCE = "authenticated"


def is_admin_email(email):
    if not email:
        return False
    admins = {e.lower() for e in current_app.config.get("ADMIN_EMAILS", [])}
    return email.strip().lower() in admins


def get_bearer_token(required=True):
    """
    Reads ``Authorization: Bearer <token>``.

    Returns None when the header is absent and ``required`` is False.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        if required:
            raise AuthError("No authorization token provided")
        return None
    if not auth_header.startswith("Bearer "):
        raise AuthError('Invalid authorization header format. Expected "Bearer <token>"')

    token = auth_header[len("Bearer "):].strip()
    if len(token) < 10:
        raise AuthError("Invalid token format")
    return token


def _decode_jwt(token, secret):
    try:
        claims = jwt.decode(token, secret, algorithms=["HS256"], audience=SUPABASE_AUDIENCE)
    except jwt.ExpiredSignatureError:
        raise AuthError("Authentication token expired. Please refresh your session.")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid or expired token")

    if not claims.get("sub"):
        raise AuthError("Invalid or expired token")
    return {
        "id": claims["sub"],
        "email": claims.get("email"),
        "user_metadata": claims.get("user_metadata") or {},
    }


def _fetch_supabase_user(token, supabase_url, anon_key):
    try:
        response = requests.get(
            f"{supabase_url.rstrip('/')}/auth/v1/user",
            headers={"apikey": anon_key or "", "Authorization": f"Bearer {token}"},
            timeout=10,
        )
    except requests.RequestException as e:
        current_app.logger.error(f"❌ [AUTH] Supabase unreachable: {e}")
        raise AuthError("Authentication service error")

    if response.status_code != 200:
        raise AuthError("Invalid or expired token")

    user = response.json()
    return {
        "id": user["id"],
        "email": user.get("email"),
        "user_metadata": user.get("user_metadata") or {},
    }


def verify_supabase_token(token):
    """
    Returns ``{"id", "email", "user_metadata"}`` for a valid token.

    Raises:
        AuthError: invalid, expired or unverifiable token
    """
    secret = current_app.config.get("SUPABASE_JWT_SECRET")
    supabase_url = current_app.config.get("SUPABASE_URL")
    if not secret and not supabase_url:
        raise AuthError("Failed to initialize authentication service")

    digest = hashlib.sha256(token.encode()).hexdigest()

    def load():
        if secret:
            return _decode_jwt(token, secret)
        return _fetch_supabase_user(token, supabase_url, current_app.config.get("SUPABASE_ANON_KEY"))

    return query_cache.fetch(f"auth:{digest}", load, ttl=TOKEN_CACHE_TTL)


def _authenticate(required):
    from ..services.user_service import get_or_create_user, sync_profile_names

    token = get_bearer_token(required=required)
    if token is None:
        g.current_user = None
        g.auth_user = None
        return

    auth_user = verify_supabase_token(token)
    if not auth_user.get("email"):
        raise AuthError("User not found")

    user = get_or_create_user(auth_user["id"], auth_user["email"])
    sync_profile_names(user, auth_user["user_metadata"])

    g.auth_user = auth_user
    g.current_user = user


def require_auth(view):
    """Rejects anonymous callers with 401; sets ``g.current_user``"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        _authenticate(required=True)
        return view(*args, **kwargs)
    return wrapper


def optional_auth(view):
    """Authenticates when a token is sent; anonymous callers get ``g.current_user = None``"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        _authenticate(required=False)
        return view(*args, **kwargs)
    return wrapper


def require_admin(view):
    """401 for anonymous callers, 403 unless the email is an admin inbox"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        _authenticate(required=True)
        if not is_admin_email(g.current_user.email):
            raise ForbiddenError("Admin access required")
        return view(*args, **kwargs)
    return wrapper

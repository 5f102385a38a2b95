"""
Request helpers shared by the blueprints
"""
from flask import request


def json_body():
    """JSON object body, or {} for empty/invalid bodies"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def client_ip():
    forwarded = request.headers.get("X-Forwarded-For", "")
    return forwarded.split(",")[0].strip() if forwarded else request.remote_addr


def clean_str(value):
    return value.strip() if isinstance(value, str) else ""


def parse_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default

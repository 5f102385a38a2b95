"""Shared fixtures: testing app, in-memory database, Supabase tokens and catalog rows."""
import importlib.util
import os
import time
from pathlib import Path

os.environ["FLASK_ENV"] = "testing"

import jwt
import pytest
from unittest.mock import patch

from devello.config import TestingConfig
from devello.db import db
from devello.models import Product, ProductOrder
from devello.services import webhook_router
from devello.utils.query_cache import query_cache
from wsgi import create_app

ADMIN_EMAIL = "sales@develloinc.com"
SCRIPTS_DIR = Path(__file__).resolve().parent.parent / "scripts"


@pytest.fixture
def app():
    """Fresh app and empty in-memory database per test."""
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def reset_process_state():
    """Module-level caches must not leak between tests."""
    query_cache.clear()
    webhook_router.reset_processed_events()
    yield
    query_cache.clear()


@pytest.fixture(autouse=True)
def smtp():
    """No test talks to a real mail server."""
    with patch("devello.services.email_service.smtplib.SMTP") as mock_smtp:
        yield mock_smtp


def sent_messages(smtp_mock):
    """EmailMessage objects handed to SMTP.send_message."""
    server = smtp_mock.return_value.__enter__.return_value
    return [c.args[0] for c in server.send_message.call_args_list]


def make_token(sub="supabase-user-1", email="jane@example.com", user_metadata=None, expires_in=3600):
    payload = {
        "sub": sub,
        "email": email,
        "aud": "authenticated",
        "exp": int(time.time()) + expires_in,
        "user_metadata": user_metadata or {},
    }
    return jwt.encode(payload, TestingConfig.SUPABASE_JWT_SECRET, algorithm="HS256")


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return bearer(make_token())


@pytest.fixture
def admin_headers():
    return bearer(make_token(sub="supabase-admin", email=ADMIN_EMAIL))


@pytest.fixture
def make_product(app):
    counter = {"n": 0}

    def factory(**overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "name": f"Casement Window {n}",
            "slug": f"casement-window-{n}",
            "price": 45000,
            "currency": "usd",
            "category": "windows",
            "status": "active",
            "meta": {},
        }
        fields.update(overrides)
        product = Product(**fields)
        db.session.add(product)
        db.session.commit()
        return product

    return factory


@pytest.fixture
def make_order(app):
    def factory(**overrides):
        fields = {
            "order_number": f"ORD-20250101-{ProductOrder.query.count() + 1:04d}",
            "order_type": "stock_product",
            "amount": 45000,
            "status": "pending",
            "payment_status": "pending",
            "meta": {},
        }
        fields.update(overrides)
        order = ProductOrder(**fields)
        db.session.add(order)
        db.session.commit()
        return order

    return factory


def load_script(name):
    """Imports scripts/<name>.py as a fresh module object."""
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module

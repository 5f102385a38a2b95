"""
Devello Inc - Flask application
Storefront, lead capture and fulfillment backend
"""
import logging
import os

from flask import Flask, current_app, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, InternalServerError

from devello.config import BASE_DIR, get_config
from devello.db import db, init_db
from devello.errors import DevelloError
from devello.services import email_service


def create_app(config_name=None):
    """Application factory"""
    app = Flask(__name__, template_folder=os.path.join("devello", "templates"))

    config = get_config(config_name)
    app.config.from_object(config)
    app.logger.setLevel(logging.DEBUG if app.config.get("DEBUG") else logging.INFO)
    app.logger.info(f"📍 Database URI: {_safe_uri(app.config['SQLALCHEMY_DATABASE_URI'])}")

    # In production only the listed frontends may call the API
    allowed_origins = os.getenv("ALLOWED_ORIGINS", "*").split(",")
    cors_options = {
        "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization", "X-Session-Id"],
    }
    if "*" in allowed_origins:
        CORS(app, resources={r"/api/*": dict(cors_options, origins="*")})
    else:
        CORS(app, resources={r"/api/*": dict(cors_options, origins=allowed_origins, supports_credentials=True)})

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and not app.config.get("TESTING"):
        os.makedirs(BASE_DIR / "instance", exist_ok=True)

    init_db(app)
    email_service.init_app(app)
    register_error_handlers(app)

    with app.app_context():
        if app.config["FLASK_ENV"] == "development":
            init_dev_data()

    from devello.api import (
        auth_bp, contact_bp, leads_bp, consultations_bp, newsletter_bp,
        products_bp, shipping_bp, guest_bp, uploads_bp, user_bp,
        refunds_bp, partners_bp, admin_bp, webhooks_bp, images_bp,
    )

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(contact_bp, url_prefix="/api/contact")
    app.register_blueprint(leads_bp, url_prefix="/api/leads")
    app.register_blueprint(consultations_bp, url_prefix="/api/business-consultation")
    app.register_blueprint(newsletter_bp, url_prefix="/api/newsletter")
    app.register_blueprint(products_bp, url_prefix="/api/products")
    app.register_blueprint(shipping_bp, url_prefix="/api/shipping")
    app.register_blueprint(guest_bp, url_prefix="/api/guest")
    app.register_blueprint(uploads_bp, url_prefix="/api/upload")
    app.register_blueprint(user_bp, url_prefix="/api/user")
    app.register_blueprint(refunds_bp, url_prefix="/api/refunds")
    app.register_blueprint(partners_bp, url_prefix="/api/partners")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(webhooks_bp, url_prefix="/api/webhooks")
    app.register_blueprint(images_bp, url_prefix="/api/images")

    @app.route("/health")
    def health():
        return {"status": "ok", "message": "Devello API is running"}

    return app


def register_error_handlers(app):
    """Every API error is JSON: {"error": message}"""

    @app.errorhandler(DevelloError)
    def handle_devello_error(e):
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(InternalServerError)
    def handle_internal_error(e):
        db.session.rollback()
        original = getattr(e, "original_exception", None)
        if original is not None:
            app.logger.error(f"❌ Unhandled error: {original}", exc_info=original)
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"error": e.description if e.code not in (404, 405) else e.name}), e.code


def _safe_uri(uri):
    """Hides the password of a database URL for logging"""
    if "@" not in uri or "://" not in uri:
        return uri
    scheme, rest = uri.split("://", 1)
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"


def init_dev_data():
    """Seeds the catalog on an empty development database"""
    from devello.catalog import seed_catalog
    from devello.models import Product

    if Product.query.first():
        return

    created, _ = seed_catalog()
    current_app.logger.info(f"🌱 Development catalog seeded ({created} products)")


# App instance for gunicorn
app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=5000)

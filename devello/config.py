"""
Application configuration
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Project root
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from the project root
load_dotenv(BASE_DIR / '.env')


def _env_flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name, default=""):
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    SITE_URL = os.getenv("SITE_URL", "https://develloinc.com")

    # Database (absolute path for the SQLite fallback)
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or f"sqlite:///{BASE_DIR}/instance/devello.db"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # Admin access and inboxes
    SALES_EMAIL = os.getenv("SALES_EMAIL", "sales@develloinc.com")
    ADMIN_EMAILS = _env_list("ADMIN_EMAILS", "sales@develloinc.com,sales@devello.us")

    # SMTP (Gmail by default)
    SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER = os.getenv("SMTP_USER")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    FROM_EMAIL = os.getenv("FROM_EMAIL") or os.getenv("SMTP_USER")
    FROM_NAME = os.getenv("FROM_NAME", "Devello Inc")

    # Stripe
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_API_VERSION = os.getenv("STRIPE_API_VERSION")

    # Supabase auth
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")
    SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")

    # Google Cloud Storage (product images)
    GCS_BUCKET_NAME = os.getenv("GCS_BUCKET_NAME", "devello-product-images")
    GOOGLE_APPLICATION_CREDENTIALS = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

    # Catalog
    ALLOW_TEST_PRODUCTS = _env_flag("ALLOW_TEST_PRODUCTS")
    CATALOG_CACHE_TTL = float(os.getenv("CATALOG_CACHE_TTL", "30"))

    # Upload quotas
    GUEST_UPLOAD_LIMIT = int(os.getenv("GUEST_UPLOAD_LIMIT", "5"))
    GUEST_SESSION_HOURS = int(os.getenv("GUEST_SESSION_HOURS", "48"))
    GUEST_BONUS_CODE = os.getenv("GUEST_BONUS_CODE", "MORE")
    PLAN_UPLOAD_LIMITS = {"free": 5, "basic": 30, "pro": 60}

    # Upload limits
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB
    ALLOWED_EXTENSIONS = {'jpg', 'jpeg', 'png', 'webp', 'heic', 'heif'}


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SQLALCHEMY_ECHO = False


class TestingConfig(Config):
    """Test configuration: in-memory database, fixed secrets"""
    TESTING = True
    FLASK_ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SECRET_KEY = "test-secret-key"
    SUPABASE_JWT_SECRET = "test-supabase-jwt-secret-with-enough-length"
    SUPABASE_URL = None
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_test"
    SMTP_USER = "mailer@develloinc.com"
    SMTP_PASSWORD = "app-password"
    FROM_EMAIL = "mailer@develloinc.com"
    ALLOW_TEST_PRODUCTS = False
    CATALOG_CACHE_TTL = 30.0
    ADMIN_EMAILS = ["sales@develloinc.com", "sales@devello.us"]


# Configuration lookup
config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config(name=None):
    """Returns the configuration class for the environment"""
    env = name or os.getenv("FLASK_ENV", "development")
    return config_by_name.get(env, DevelopmentConfig)

"""
Database setup
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def init_db(app):
    """Binds the database to the Flask app and creates the tables"""
    db.init_app(app)

    with app.app_context():
        from . import models  # noqa: F401  registers every table on the metadata
        db.create_all()
        app.logger.info("✅ Database ready")

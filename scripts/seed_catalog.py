#!/usr/bin/env python3
"""
Seed the product catalog

Usage:
    python scripts/seed_catalog.py [--update]

Without --update existing products (matched by slug) are left untouched.
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask

from devello.catalog import seed_catalog
from devello.config import get_config
from devello.db import init_db


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    app = Flask(__name__)
    app.config.from_object(get_config())
    init_db(app)

    with app.app_context():
        created, updated = seed_catalog(update_existing="--update" in argv)

    print(f"✅ Catalog seeded: {created} created, {updated} updated")
    return 0


if __name__ == "__main__":
    sys.exit(main())

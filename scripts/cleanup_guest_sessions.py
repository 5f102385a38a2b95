#!/usr/bin/env python3
"""
Guest session maintenance (cron)
Deletes expired guest sessions and applies the weekly upload reset.
Safe to run as often as needed: the reset happens once per ISO week.

Usage:
    python scripts/cleanup_guest_sessions.py
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask

from devello.config import get_config
from devello.db import init_db
from devello.services.guest_sessions import cleanup_expired_sessions, reset_weekly_limits


def run_maintenance(now=None):
    """Returns (deleted, reset); needs an app context"""
    deleted = cleanup_expired_sessions(now)
    print(f"🧹 Deleted {deleted} expired guest sessions")
    reset = reset_weekly_limits(now)
    if reset:
        print(f"🔄 Weekly reset applied to {reset} sessions")
    else:
        print("⏭️  Weekly reset already done this week")
    return deleted, reset


def main():
    app = Flask(__name__)
    app.config.from_object(get_config())
    init_db(app)

    with app.app_context():
        run_maintenance()
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Grant one-time upload credits by hand, for a payment the webhook missed

Usage:
    python scripts/grant_one_time_credit.py --email jane@example.com --paymentIntentId pi_123
        [--amount 500] [--currency usd] [--purchaseType single_upload]
        [--credits 1] [--sessionId cs_123]

--userId may be used instead of --email. Running it twice for the same
payment intent grants nothing the second time.
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask

from devello.config import get_config
from devello.db import db, init_db
from devello.models import User
from devello.services.upload_allowance import add_one_time_credits

FLAGS = ("email", "userId", "paymentIntentId", "amount", "currency", "purchaseType", "credits", "sessionId")
INT_FLAGS = ("userId", "amount", "credits")


def parse_args(argv):
    """--flag value pairs -> dict; raises ValueError on unknown flags or bad numbers"""
    options = {}
    args = list(argv)
    while args:
        flag = args.pop(0)
        name = flag[2:] if flag.startswith("--") else None
        if name not in FLAGS:
            raise ValueError(f"Unknown argument: {flag}")
        if not args:
            raise ValueError(f"Missing value for {flag}")
        value = args.pop(0)
        options[name] = int(value) if name in INT_FLAGS else value

    if not options.get("paymentIntentId"):
        raise ValueError("--paymentIntentId is required")
    if not options.get("email") and not options.get("userId"):
        raise ValueError("--email or --userId is required")
    if options.get("credits", 1) <= 0:
        raise ValueError("--credits must be positive")
    return options


def find_user(options):
    if options.get("userId"):
        return db.session.get(User, options["userId"])
    return User.query.filter(db.func.lower(User.email) == options["email"].strip().lower()).first()


def grant(options):
    """Returns an exit code; needs an app context"""
    user = find_user(options)
    if user is None:
        print(f"❌ User not found: {options.get('email') or options.get('userId')}")
        return 1

    purchase, granted = add_one_time_credits(
        user,
        options.get("credits", 1),
        options["paymentIntentId"],
        amount=options.get("amount", 0),
        currency=options.get("currency", "usd").lower(),
        purchase_type=options.get("purchaseType", "single_upload"),
        session_id=options.get("sessionId"),
    )
    if granted:
        print(f"✅ Granted {purchase.uploads_granted} upload(s) to {user.email} ({purchase.stripe_payment_intent_id})")
    else:
        print(f"⏭️  {purchase.stripe_payment_intent_id} was already granted, nothing added")
    print(f"   One-time credits now: {user.profile.one_time_uploads}")
    return 0


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    try:
        options = parse_args(argv)
    except ValueError as e:
        print(f"❌ {e}")
        print(__doc__)
        return 2

    app = Flask(__name__)
    app.config.from_object(get_config())
    init_db(app)

    with app.app_context():
        return grant(options)


if __name__ == "__main__":
    sys.exit(main())

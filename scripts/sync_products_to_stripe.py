#!/usr/bin/env python3
"""
Sync catalog products to Stripe

Creates a Stripe Product and Price for every active product that lacks one
and stores the ids. Products whose price already matches are skipped, so the
script can be re-run safely.

Usage:
    python scripts/sync_products_to_stripe.py [--dry-run] [--update-only]
"""
import sys
import time
from pathlib import Path

# Project root on the path to import the app package
sys.path.insert(0, str(Path(__file__).parent.parent))

import stripe
from flask import Flask

from devello.config import get_config
from devello.db import db
from devello.models import Product
from devello.utils.retry import retry_call

DRY_RUN_PRODUCT_ID = "prod_DRYRUN"
DRY_RUN_PRICE_ID = "price_DRYRUN"

TRANSIENT_STRIPE_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError)


def _stripe_call(fn, sleep):
    return retry_call(fn, attempts=3, base_delay=1.0, exceptions=TRANSIENT_STRIPE_ERRORS, sleep=sleep)


def sync_product(product, stripe_api, dry_run=False, update_only=False, sleep=time.sleep):
    """
    Syncs one product. Connection and rate-limit errors are retried.

    Returns:
        dict: {"status": "synced" | "skipped" | "error", "reason"?, "error"?,
               "stripe_product_id"?, "stripe_price_id"?}
    """
    currency = (product.currency or "usd").lower()
    print(f"\nProcessing: {product.name} ({product.id})")
    print(f"  Price: {product.price / 100:.2f} {currency.upper()}")
    print(f"  Existing Stripe Price ID: {product.stripe_price_id or 'None'}")

    if update_only and product.stripe_price_id:
        print("  ⏭️  Skipping (already has stripe_price_id in update-only mode)")
        return {"status": "skipped", "reason": "has_price"}

    if product.status != "active":
        print(f"  ⏭️  Skipping (status: {product.status})")
        return {"status": "skipped", "reason": "inactive"}

    try:
        stripe_product_id = None
        if product.stripe_price_id:
            try:
                existing_price = _stripe_call(lambda: stripe_api.Price.retrieve(product.stripe_price_id), sleep)
                existing_product = _stripe_call(lambda: stripe_api.Product.retrieve(existing_price.product), sleep)
            except stripe.InvalidRequestError as e:
                if getattr(e, "code", None) != "resource_missing":
                    raise
                print("  ⚠️  Existing Stripe Price not found, creating a new one")
            else:
                if existing_price.unit_amount == product.price and existing_price.currency == currency:
                    print("  ✓ Price matches, no update needed")
                    return {"status": "skipped", "reason": "already_synced"}
                print("  ⚠️  Price mismatch, creating a new price")
                stripe_product_id = existing_product.id

        if stripe_product_id is None:
            if dry_run:
                print(f"  [DRY RUN] Would create Stripe Product: {product.name}")
                stripe_product_id = DRY_RUN_PRODUCT_ID
            else:
                created = _stripe_call(lambda: stripe_api.Product.create(
                    name=product.name,
                    description=product.description or None,
                    images=[product.image_url] if product.image_url and product.image_url.startswith("http") else None,
                    metadata={"product_id": str(product.id), "slug": product.slug or ""},
                ), sleep)
                stripe_product_id = created.id
                print(f"  ✓ Created Stripe Product: {stripe_product_id}")

        if dry_run:
            print(f"  [DRY RUN] Would create Stripe Price: {product.price / 100:.2f} {currency.upper()}")
            return {
                "status": "synced",
                "stripe_product_id": stripe_product_id,
                "stripe_price_id": DRY_RUN_PRICE_ID,
            }

        price = _stripe_call(lambda: stripe_api.Price.create(
            product=stripe_product_id,
            unit_amount=product.price,
            currency=currency,
            metadata={"product_id": str(product.id)},
        ), sleep)
        print(f"  ✓ Created Stripe Price: {price.id}")

        product.stripe_product_id = stripe_product_id
        product.stripe_price_id = price.id
        return {"status": "synced", "stripe_product_id": stripe_product_id, "stripe_price_id": price.id}

    except stripe.StripeError as e:
        print(f"  ❌ Error syncing product: {e}")
        return {"status": "error", "error": str(e)}


def print_summary(results):
    print("\n" + "=" * 60)
    print("📊 Sync Summary")
    print("=" * 60)
    for key in ("total", "synced", "skipped", "errors"):
        print(f"  {key.capitalize()}: {results[key]}")
    print("=" * 60)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    dry_run = "--dry-run" in argv
    update_only = "--update-only" in argv

    app = Flask(__name__)
    app.config.from_object(get_config())
    db.init_app(app)

    print("🚀 Starting Stripe Product Sync")
    print(f"Mode: {'DRY RUN (no changes will be made)' if dry_run else 'LIVE (changes will be saved)'}")
    print(f"Update Mode: {'Update only (skip products with stripe_price_id)' if update_only else 'Sync all products'}")

    if not app.config.get("STRIPE_SECRET_KEY"):
        print("❌ Error: STRIPE_SECRET_KEY environment variable is not set")
        return 1
    stripe.api_key = app.config["STRIPE_SECRET_KEY"]

    results = {"total": 0, "synced": 0, "skipped": 0, "errors": 0}
    with app.app_context():
        query = Product.query
        if update_only:
            query = query.filter(Product.stripe_price_id.is_(None))
        products = query.order_by(Product.id).all()
        results["total"] = len(products)
        print(f"Found {len(products)} products to sync")

        for product in products:
            result = sync_product(product, stripe, dry_run=dry_run, update_only=update_only)
            if result["status"] == "synced":
                results["synced"] += 1
                if not dry_run:
                    db.session.commit()
            elif result["status"] == "skipped":
                results["skipped"] += 1
            else:
                results["errors"] += 1

    print_summary(results)
    if results["errors"]:
        print(f"⚠️  Completed with {results['errors']} error(s)")
        return 1
    if results["synced"]:
        print(f"✅ Successfully synced {results['synced']} product(s)")
    else:
        print("ℹ️  No products needed syncing")
    return 0


if __name__ == "__main__":
    sys.exit(main())

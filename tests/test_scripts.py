"""Maintenance scripts: Stripe catalog sync, catalog seeding and manual credit grants"""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe

from devello.catalog import CATALOG, seed_catalog
from devello.models import OneTimePurchase, Product
from devello.services.user_service import get_or_create_user

from conftest import load_script


@pytest.fixture(scope="module")
def sync():
    return load_script("sync_products_to_stripe")


def catalog_product(**overrides):
    fields = {
        "id": 7,
        "name": "Oak Door",
        "slug": "oak-door",
        "description": "Solid oak",
        "price": 64900,
        "currency": "usd",
        "status": "active",
        "image_url": "https://cdn.example.com/oak.png",
        "stripe_product_id": None,
        "stripe_price_id": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


@pytest.fixture
def stripe_api():
    api = MagicMock()
    api.Product.create.return_value = SimpleNamespace(id="prod_new")
    api.Price.create.return_value = SimpleNamespace(id="price_new")
    return api


class TestSyncProduct:
    def test_creates_product_and_price(self, sync, stripe_api):
        product = catalog_product()
        result = sync.sync_product(product, stripe_api)

        assert result == {"status": "synced", "stripe_product_id": "prod_new", "stripe_price_id": "price_new"}
        assert (product.stripe_product_id, product.stripe_price_id) == ("prod_new", "price_new")
        stripe_api.Product.create.assert_called_once_with(
            name="Oak Door",
            description="Solid oak",
            images=["https://cdn.example.com/oak.png"],
            metadata={"product_id": "7", "slug": "oak-door"},
        )
        stripe_api.Price.create.assert_called_once_with(
            product="prod_new", unit_amount=64900, currency="usd", metadata={"product_id": "7"},
        )

    def test_relative_image_urls_are_not_sent(self, sync, stripe_api):
        sync.sync_product(catalog_product(image_url="/api/images/products/7/oak.png"), stripe_api)
        assert stripe_api.Product.create.call_args.kwargs["images"] is None

    def test_matching_price_is_skipped(self, sync, stripe_api):
        stripe_api.Price.retrieve.return_value = SimpleNamespace(unit_amount=64900, currency="usd", product="prod_1")
        stripe_api.Product.retrieve.return_value = SimpleNamespace(id="prod_1")

        result = sync.sync_product(catalog_product(stripe_price_id="price_1"), stripe_api)
        assert result == {"status": "skipped", "reason": "already_synced"}
        stripe_api.Price.create.assert_not_called()

    def test_price_change_adds_price_to_existing_product(self, sync, stripe_api):
        stripe_api.Price.retrieve.return_value = SimpleNamespace(unit_amount=59900, currency="usd", product="prod_1")
        stripe_api.Product.retrieve.return_value = SimpleNamespace(id="prod_1")
        product = catalog_product(stripe_price_id="price_1")

        result = sync.sync_product(product, stripe_api)
        assert result["stripe_product_id"] == "prod_1"
        stripe_api.Product.create.assert_not_called()
        assert product.stripe_price_id == "price_new"

    def test_missing_stripe_price_is_recreated(self, sync, stripe_api):
        stripe_api.Price.retrieve.side_effect = stripe.InvalidRequestError(
            "No such price: 'price_gone'", "price", code="resource_missing"
        )
        result = sync.sync_product(catalog_product(stripe_price_id="price_gone"), stripe_api)
        assert result["status"] == "synced"
        stripe_api.Product.create.assert_called_once()

    def test_transient_errors_are_retried(self, sync, stripe_api):
        delays = []
        stripe_api.Product.create.side_effect = [
            stripe.APIConnectionError("connection reset"),
            stripe.RateLimitError("too many requests"),
            SimpleNamespace(id="prod_new"),
        ]

        result = sync.sync_product(catalog_product(), stripe_api, sleep=delays.append)
        assert result["status"] == "synced"
        assert stripe_api.Product.create.call_count == 3
        assert delays == [1.0, 2.0]

    def test_persistent_errors_are_reported(self, sync, stripe_api):
        stripe_api.Product.create.side_effect = stripe.APIConnectionError("network down")
        product = catalog_product()
        result = sync.sync_product(product, stripe_api, sleep=lambda _: None)
        assert result["status"] == "error"
        assert stripe_api.Product.create.call_count == 3
        assert product.stripe_price_id is None

    def test_invalid_requests_are_not_retried(self, sync, stripe_api):
        stripe_api.Price.create.side_effect = stripe.InvalidRequestError("Invalid currency", "currency")
        result = sync.sync_product(catalog_product(), stripe_api, sleep=lambda _: None)
        assert result["status"] == "error"
        assert stripe_api.Price.create.call_count == 1

    def test_dry_run_changes_nothing(self, sync, stripe_api):
        product = catalog_product()
        result = sync.sync_product(product, stripe_api, dry_run=True)
        assert result == {"status": "synced", "stripe_product_id": "prod_DRYRUN", "stripe_price_id": "price_DRYRUN"}
        stripe_api.Product.create.assert_not_called()
        stripe_api.Price.create.assert_not_called()
        assert product.stripe_price_id is None

    def test_skips(self, sync, stripe_api):
        assert sync.sync_product(catalog_product(status="inactive"), stripe_api)["reason"] == "inactive"
        result = sync.sync_product(catalog_product(stripe_price_id="price_1"), stripe_api, update_only=True)
        assert result["reason"] == "has_price"


class TestSeedCatalog:
    def test_seeds_once(self, app):
        created, updated = seed_catalog()
        assert (created, updated) == (len(CATALOG), 0)
        assert seed_catalog() == (0, 0)

        dummy = Product.query.filter_by(slug="dummy-window").one()
        assert dummy.is_test is True
        assert dummy.visible_in_catalog is False

    def test_update_existing(self, app):
        seed_catalog()
        Product.query.filter_by(slug="crown-molding-kit").one().price = 1
        assert seed_catalog(update_existing=True) == (0, len(CATALOG))
        assert Product.query.filter_by(slug="crown-molding-kit").one().price == 12900

    def test_seeded_catalog_hides_dummy_window(self, client, app):
        seed_catalog()
        slugs = [p["slug"] for p in client.get("/api/products?status=all&limit=100").get_json()["products"]]
        assert "dummy-window" not in slugs
        assert "frameless-wall-mirror" in slugs


@pytest.fixture(scope="module")
def grant_script():
    return load_script("grant_one_time_credit")


class TestGrantOneTimeCredit:
    def test_parse_args(self, grant_script):
        options = grant_script.parse_args([
            "--email", "jane@example.com", "--paymentIntentId", "pi_1", "--credits", "5", "--amount", "2500",
        ])
        assert options == {"email": "jane@example.com", "paymentIntentId": "pi_1", "credits": 5, "amount": 2500}

    @pytest.mark.parametrize("argv", [
        ["--email", "jane@example.com"],
        ["--paymentIntentId", "pi_1"],
        ["--email", "jane@example.com", "--paymentIntentId", "pi_1", "--credits", "0"],
        ["--email", "jane@example.com", "--paymentIntentId", "pi_1", "--credits", "many"],
        ["--email", "jane@example.com", "--paymentIntentId", "pi_1", "--plan", "pro"],
        ["--email"],
    ])
    def test_bad_arguments(self, grant_script, argv):
        with pytest.raises(ValueError):
            grant_script.parse_args(argv)

    def test_main_rejects_bad_arguments_before_touching_the_database(self, grant_script, capsys):
        assert grant_script.main(["--paymentIntentId", "pi_1"]) == 2
        assert "--email or --userId is required" in capsys.readouterr().out

    def test_grants_by_email_once(self, grant_script, app, capsys):
        user = get_or_create_user("supabase-user-1", "jane@example.com")
        options = grant_script.parse_args(["--email", " JANE@example.com", "--paymentIntentId", "pi_1", "--credits", "2"])

        assert grant_script.grant(options) == 0
        assert grant_script.grant(options) == 0
        assert user.profile.one_time_uploads == 2
        purchase = OneTimePurchase.query.one()
        assert (purchase.user_id, purchase.currency, purchase.purchase_type) == (user.id, "usd", "single_upload")
        assert "already granted" in capsys.readouterr().out

    def test_grants_by_user_id(self, grant_script, app):
        user = get_or_create_user("supabase-user-1", "jane@example.com")
        assert grant_script.grant({"userId": user.id, "paymentIntentId": "pi_2"}) == 0
        assert user.profile.one_time_uploads == 1

    def test_unknown_user(self, grant_script, app):
        assert grant_script.grant({"email": "nobody@example.com", "paymentIntentId": "pi_3"}) == 1
        assert OneTimePurchase.query.count() == 0

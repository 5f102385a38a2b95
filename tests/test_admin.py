"""Admin catalog, cache, order fulfillment endpoints and image serving"""
import io
from unittest.mock import patch

import pytest

from devello.db import db
from devello.models import OrderStatusEvent, Payment, Product, ProductOrder, RefundRequest
from devello.utils.query_cache import query_cache

from conftest import sent_messages


class TestProducts:
    def test_create(self, client, admin_headers):
        response = client.post("/api/admin/products", headers=admin_headers, json={
            "name": "French Casement Window 36\"",
            "price": 52900,
            "category": "windows",
            "shippingProfile": "WINDOW_STANDARD",
            "metadata": {"variants": [{"name": "36 x 48", "price": 52900}]},
        })
        assert response.status_code == 201
        product = response.get_json()["product"]
        assert product["slug"] == "french-casement-window-36"
        assert product["status"] == "active"
        assert product["metadata"]["shipping_profile"] == "WINDOW_STANDARD"
        assert product["metadata"]["variants"][0]["price"] == 52900

    def test_create_requires_name_and_price(self, client, admin_headers):
        response = client.post("/api/admin/products", headers=admin_headers, json={"name": "Door"})
        assert response.status_code == 400

    def test_duplicate_slug(self, client, admin_headers, make_product):
        make_product(slug="oak-door")
        response = client.post("/api/admin/products", headers=admin_headers, json={"name": "Oak Door", "price": 100})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Product with this slug already exists"

    def test_invalid_price(self, client, admin_headers):
        response = client.post("/api/admin/products", headers=admin_headers, json={"name": "Oak Door", "price": "cheap"})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Price must be a non-negative integer (cents)"
        assert Product.query.count() == 0

    def test_update(self, client, admin_headers, make_product):
        product = make_product()
        response = client.put(f"/api/admin/products/{product.id}", headers=admin_headers, json={
            "price": 47500, "status": "inactive", "slug": "Casement Window XL",
        })
        body = response.get_json()["product"]
        assert (body["price"], body["status"], body["slug"]) == (47500, "inactive", "casement-window-xl")

    def test_update_slug_clash(self, client, admin_headers, make_product):
        make_product(slug="taken")
        product = make_product()
        response = client.put(f"/api/admin/products/{product.id}", headers=admin_headers, json={"slug": "taken"})
        assert response.status_code == 400

    def test_list_includes_hidden_and_test_products(self, client, admin_headers, make_product):
        make_product()
        make_product(is_test=True, visible_in_catalog=False)
        assert len(client.get("/api/admin/products", headers=admin_headers).get_json()["products"]) == 2

    def test_update_invalidates_catalog_cache(self, client, admin_headers, make_product):
        product = make_product()
        client.get("/api/products")
        client.put(f"/api/admin/products/{product.id}", headers=admin_headers, json={"status": "inactive"})
        assert client.get("/api/products").get_json()["products"] == []


class TestProductImage:
    def test_upload_replaces_previous_image(self, client, admin_headers, make_product):
        product = make_product(image_url="/api/images/products/1/old.png")
        new_url = f"/api/images/products/{product.id}/abc_door.png"

        with patch("devello.api.admin.upload_file", return_value=new_url) as upload, \
                patch("devello.api.admin.delete_file", return_value=True) as delete:
            response = client.post(
                f"/api/admin/products/{product.id}/image",
                headers=admin_headers,
                data={"file": (io.BytesIO(b"\x89PNG"), "door.png")},
                content_type="multipart/form-data",
            )

        assert response.status_code == 200
        assert response.get_json()["image_url"] == new_url
        assert upload.call_args.kwargs["folder"] == f"products/{product.id}"
        delete.assert_called_once_with("/api/images/products/1/old.png")
        assert product.image_url == new_url

    def test_rejects_other_file_types(self, client, admin_headers, make_product):
        product = make_product()
        response = client.post(
            f"/api/admin/products/{product.id}/image",
            headers=admin_headers,
            data={"file": (io.BytesIO(b"%PDF"), "brochure.pdf")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "File type not allowed"

    def test_storage_unavailable(self, client, admin_headers, make_product):
        product = make_product()
        with patch("devello.api.admin.upload_file", return_value=None):
            response = client.post(
                f"/api/admin/products/{product.id}/image",
                headers=admin_headers,
                data={"file": (io.BytesIO(b"\x89PNG"), "door.png")},
                content_type="multipart/form-data",
            )
        assert response.status_code == 503


class TestCache:
    def test_stats_and_invalidate(self, client, admin_headers, make_product):
        make_product()
        client.get("/api/products")
        keys = [e["key"] for e in client.get("/api/admin/cache", headers=admin_headers).get_json()["entries"]]
        assert any(k.startswith("/api/products?") for k in keys)

        client.post("/api/admin/cache/invalidate", headers=admin_headers, json={"pattern": "/api/products"})
        keys = [e["key"] for e in query_cache.stats()["entries"]]
        assert not any(k.startswith("/api/products") for k in keys)

    def test_clear_all(self, client, admin_headers):
        query_cache.set("/api/anything", 1)
        client.post("/api/admin/cache/invalidate", headers=admin_headers, json={})
        assert query_cache.get("/api/anything") is None


class TestOrders:
    def test_list_excludes_test_orders_by_default(self, client, admin_headers, make_order):
        make_order()
        make_order(test_order=True, status="processing")

        assert client.get("/api/admin/orders", headers=admin_headers).get_json()["total"] == 1
        assert client.get("/api/admin/orders?includeTest=true", headers=admin_headers).get_json()["total"] == 2
        assert client.get("/api/admin/orders?status=processing&includeTest=true",
                          headers=admin_headers).get_json()["total"] == 1

    def test_mark_shipped_with_tracking(self, client, admin_headers, make_order, smtp):
        order = make_order(status="processing", guest_email="jane@example.com", meta={"guest_name": "Jane Doe"})

        response = client.put(f"/api/admin/orders/{order.id}/status", headers=admin_headers, json={
            "status": "shipped", "trackingNumber": " 1Z999 ", "carrier": "UPS", "message": "Arrives Friday",
        })
        assert response.status_code == 200
        body = response.get_json()["order"]
        assert body["status"] == "shipped"
        assert body["tracking_number"] == "1Z999"
        assert body["shipped_at"] is not None
        event = body["status_events"][-1]
        assert (event["reason"], event["actor_type"]) == ("admin_mark_shipped", "admin")

        (message,) = sent_messages(smtp)
        assert message["To"] == "jane@example.com"
        assert message["Subject"] == f"Order {order.order_number}: Shipped"

    def test_invalid_transition_is_409(self, client, admin_headers, make_order):
        order = make_order(status="delivered")
        response = client.put(f"/api/admin/orders/{order.id}/status", headers=admin_headers, json={"status": "processing"})
        assert response.status_code == 409
        assert response.get_json()["error"] == "Invalid status transition: delivered -> processing"
        assert order.status == "delivered"
        assert OrderStatusEvent.query.count() == 0

    @pytest.mark.parametrize("status", ["paid", "pending", "bogus", None])
    def test_status_not_settable_by_admin(self, client, admin_headers, make_order, status):
        order = make_order()
        response = client.put(f"/api/admin/orders/{order.id}/status", headers=admin_headers, json={"status": status})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid status"

    def test_unknown_order(self, client, admin_headers):
        response = client.put("/api/admin/orders/999/status", headers=admin_headers, json={"status": "shipped"})
        assert response.status_code == 404

    def test_remove_cancelled_orders(self, client, admin_headers, make_order):
        order = make_order(status="cancelled")
        payment = Payment(product_order_id=order.id, amount=45000, status="refunded")
        db.session.add_all([
            payment,
            OrderStatusEvent(product_order_id=order.id, from_status="paid", to_status="cancelled", actor_type="admin"),
        ])
        db.session.flush()
        db.session.add(RefundRequest(
            product_order_id=order.id, payment_id=payment.id, reason="Wrong size", requested_amount=45000, status="processed",
        ))
        db.session.commit()
        kept = make_order(status="cancelled")

        response = client.post("/api/admin/orders/remove-cancelled", headers=admin_headers, json={"orderIds": [order.id]})
        assert response.status_code == 200
        assert response.get_json()["deleted"] == {"productOrders": 1, "total": 1}
        assert ProductOrder.query.all() == [kept]
        assert OrderStatusEvent.query.count() == 0
        assert RefundRequest.query.count() == 0
        assert Payment.query.one().product_order_id is None

    def test_remove_refuses_active_orders(self, client, admin_headers, make_order):
        cancelled = make_order(status="cancelled")
        shipped = make_order(status="shipped")

        response = client.post("/api/admin/orders/remove-cancelled", headers=admin_headers, json={
            "orderIds": [cancelled.id, shipped.id],
        })
        assert response.status_code == 400
        assert response.get_json()["nonCancelledOrders"] == [shipped.order_number]
        assert ProductOrder.query.count() == 2

    @pytest.mark.parametrize("order_ids", [None, [], "1,2", [True], ["1"]])
    def test_remove_requires_id_list(self, client, admin_headers, order_ids):
        response = client.post("/api/admin/orders/remove-cancelled", headers=admin_headers, json={"orderIds": order_ids})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Order IDs array is required"


class TestImages:
    def test_serves_stored_image(self, client):
        with patch("devello.api.images.get_file_content", return_value=(b"\x89PNG", "image/png")) as get:
            response = client.get("/api/images/products/3/abc_door.png")
        assert response.status_code == 200
        assert response.data == b"\x89PNG"
        assert response.mimetype == "image/png"
        assert response.headers["Cache-Control"] == "public, max-age=31536000"
        get.assert_called_once_with("products/3/abc_door.png")

    def test_missing_image(self, client):
        with patch("devello.api.images.get_file_content", return_value=(None, None)):
            response = client.get("/api/images/products/3/missing.png")
        assert response.status_code == 404


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok", "message": "Devello API is running"}


def test_unknown_route_is_json(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Not Found"}

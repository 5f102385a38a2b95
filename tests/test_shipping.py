"""Tests for the freight estimator"""
import pytest

from devello.utils.shipping import (
    COMMERCIAL_DOCK,
    GLASS_PANEL_MIRROR,
    INTERIOR_WOOD_DOOR,
    METAL_GLASS_DOOR,
    RESIDENTIAL,
    WHITE_GLOVE,
    WINDOW_STANDARD,
    calculate_shipping_estimate,
    get_zip_zone,
    is_white_glove_allowed,
    is_white_glove_recommended,
)


@pytest.mark.parametrize(
    "zip_code,expected",
    [("02139", (350, 650)), ("33101", (700, 1200)), ("60601", (900, 1600)), ("94105", (1200, 2200))],
)
def test_base_range_by_zone(zip_code, expected):
    estimate = calculate_shipping_estimate(zip_code, delivery_access=COMMERCIAL_DOCK)
    assert (estimate["estimate_low"], estimate["estimate_high"]) == expected
    assert estimate["error"] is None


def test_invalid_zip():
    estimate = calculate_shipping_estimate("abc")
    assert estimate["error"] == "Invalid ZIP code"
    assert estimate["estimate_low"] is None
    assert get_zip_zone("") is None


def test_surcharges_are_additive():
    estimate = calculate_shipping_estimate("10001", delivery_access=RESIDENTIAL, liftgate=True, appointment=True)
    assert estimate["estimate_low"] == 350 + 100 + 125 + 75
    assert estimate["estimate_high"] == 650 + 100 + 125 + 75


def test_crating_fee_by_profile():
    assert calculate_shipping_estimate("10001", shipping_profile=METAL_GLASS_DOOR)["crating_fee"] == 300
    assert calculate_shipping_estimate("10001", shipping_profile=GLASS_PANEL_MIRROR)["crating_fee"] == 350
    assert calculate_shipping_estimate("10001", shipping_profile=WINDOW_STANDARD)["crating_fee"] is None


def test_white_glove_fee_needs_profile():
    with_profile = calculate_shipping_estimate("10001", shipping_profile=INTERIOR_WOOD_DOOR, delivery_type=WHITE_GLOVE)
    assert with_profile["white_glove_fee"] == 495
    assert calculate_shipping_estimate("10001", delivery_type=WHITE_GLOVE)["white_glove_fee"] is None
    assert calculate_shipping_estimate("10001", shipping_profile=INTERIOR_WOOD_DOOR)["white_glove_fee"] is None


def test_white_glove_flags():
    assert is_white_glove_allowed(WINDOW_STANDARD)
    assert not is_white_glove_allowed(None)
    assert is_white_glove_recommended(GLASS_PANEL_MIRROR)
    assert not is_white_glove_recommended(INTERIOR_WOOD_DOOR)


class TestEstimateEndpoint:
    def test_estimate(self, client):
        response = client.post("/api/shipping/estimate", json={
            "zip": "94105",
            "deliveryAccess": "RESIDENTIAL",
            "liftgate": True,
            "shippingProfile": GLASS_PANEL_MIRROR,
            "deliveryType": WHITE_GLOVE,
        })
        assert response.status_code == 200
        estimate = response.get_json()["estimate"]
        assert (estimate["estimate_low"], estimate["estimate_high"]) == (1425, 2425)
        assert estimate["crating_fee"] == 350
        assert estimate["white_glove_fee"] == 495
        assert estimate["white_glove_allowed"] is True
        assert estimate["white_glove_recommended"] is True

    def test_invalid_zip(self, client):
        response = client.post("/api/shipping/estimate", json={"zip": ""})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid ZIP code"

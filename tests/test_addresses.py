"""Saved shipping addresses of signed-in users"""
import pytest

from devello.db import db
from devello.models import UserAddress

from conftest import bearer, make_token

HOME = {
    "title": "Home",
    "address_line1": "12 Harbor St",
    "city": "Portland",
    "state": "ME",
    "zip_code": "04101",
}


@pytest.fixture
def add_address(client, auth_headers):
    def add(**overrides):
        response = client.post("/api/user/addresses", headers=auth_headers, json={**HOME, **overrides})
        assert response.status_code == 201
        return response.get_json()["address"]

    return add


class TestAddresses:
    def test_create_defaults_country(self, add_address):
        address = add_address(address_line2="Apt 3", country=None)
        assert address["country"] == "US"
        assert address["address_line2"] == "Apt 3"
        assert address["is_primary"] is False

    def test_country_is_uppercased(self, add_address):
        assert add_address(country="ca")["country"] == "CA"

    def test_missing_fields(self, client, auth_headers):
        response = client.post("/api/user/addresses", headers=auth_headers, json={"title": "Home", "city": "Portland"})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Missing required fields: address_line1, state, zip_code"

    def test_non_text_field(self, client, auth_headers):
        response = client.post("/api/user/addresses", headers=auth_headers, json={**HOME, "zip_code": 4101})
        assert response.status_code == 400

    def test_requires_auth(self, client):
        assert client.get("/api/user/addresses").status_code == 401

    def test_primary_first_then_newest(self, client, auth_headers, add_address):
        first = add_address(title="Office")
        primary = add_address(title="Home", is_primary=True)
        newest = add_address(title="Job site")

        addresses = client.get("/api/user/addresses", headers=auth_headers).get_json()["addresses"]
        assert [a["id"] for a in addresses] == [primary["id"], newest["id"], first["id"]]

    def test_only_one_primary(self, add_address):
        add_address(title="Home", is_primary=True)
        add_address(title="Office", is_primary=True)
        primaries = UserAddress.query.filter_by(is_primary=True).all()
        assert [a.title for a in primaries] == ["Office"]

    def test_set_primary(self, client, auth_headers, add_address):
        home = add_address(title="Home", is_primary=True)
        office = add_address(title="Office")

        response = client.post(f"/api/user/addresses/{office['id']}/set-primary", headers=auth_headers)
        assert response.get_json()["address"]["is_primary"] is True
        assert db.session.get(UserAddress, home["id"]).is_primary is False

    def test_update(self, client, auth_headers, add_address):
        address = add_address()
        response = client.put(f"/api/user/addresses/{address['id']}", headers=auth_headers, json={
            "city": "  South Portland ", "address_line2": "",
        })
        body = response.get_json()["address"]
        assert body["city"] == "South Portland"
        assert body["address_line2"] is None
        assert body["zip_code"] == "04101"

    def test_update_cannot_blank_required_field(self, client, auth_headers, add_address):
        address = add_address()
        response = client.put(f"/api/user/addresses/{address['id']}", headers=auth_headers, json={"city": ""})
        assert response.status_code == 400

    def test_update_to_primary_clears_others(self, client, auth_headers, add_address):
        home = add_address(title="Home", is_primary=True)
        office = add_address(title="Office")
        client.put(f"/api/user/addresses/{office['id']}", headers=auth_headers, json={"is_primary": True})
        assert db.session.get(UserAddress, home["id"]).is_primary is False
        assert db.session.get(UserAddress, office["id"]).is_primary is True

    def test_delete(self, client, auth_headers, add_address):
        address = add_address()
        response = client.delete(f"/api/user/addresses/{address['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert UserAddress.query.count() == 0

    def test_other_users_addresses_are_hidden(self, client, add_address):
        address = add_address()
        other = bearer(make_token(sub="supabase-user-2", email="bob@example.com"))

        assert client.get("/api/user/addresses", headers=other).get_json()["addresses"] == []
        assert client.put(f"/api/user/addresses/{address['id']}", headers=other, json={"city": "Bangor"}).status_code == 404
        assert client.delete(f"/api/user/addresses/{address['id']}", headers=other).status_code == 404
        assert client.post(f"/api/user/addresses/{address['id']}/set-primary", headers=other).status_code == 404
        assert UserAddress.query.count() == 1

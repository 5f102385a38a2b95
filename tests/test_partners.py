"""Partner applications and the admin review flow"""
import pytest

from devello.api.partners import parse_experience_years
from devello.models import Partner

from conftest import sent_messages

APPLICATION = {
    "companyName": "Harbor Glass Co",
    "serviceType": "construction",
    "yearsExperience": "10+",
    "phone": "555-0100",
    "subservices": ["glazing", "mirrors"],
}


@pytest.mark.parametrize("value,expected", [("10+", 10), ("1-2", 1), ("<1", None), (None, None), (7, 7)])
def test_parse_experience_years(value, expected):
    assert parse_experience_years(value) == expected


class TestApply:
    def test_submit(self, client, auth_headers):
        response = client.post("/api/partners/apply", json=APPLICATION, headers=auth_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body["application"]["status"] == "pending"
        assert body["application"]["companyName"] == "Harbor Glass Co"

        partner = Partner.query.one()
        assert partner.experience_years == 10
        assert partner.application_data["yearsExperience"] == "10+"
        assert partner.application_data["subservices"] == ["glazing", "mirrors"]
        assert partner.application_data["materials"] == []
        assert partner.application_data["submitted_email"] == "jane@example.com"

    def test_software_dev_alias(self, client, auth_headers):
        client.post("/api/partners/apply", json=dict(APPLICATION, serviceType="software_dev"), headers=auth_headers)
        assert Partner.query.one().service_type == "software_development"

    def test_invalid_service_type(self, client, auth_headers):
        response = client.post("/api/partners/apply", json=dict(APPLICATION, serviceType="plumbing"), headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid service type"

    def test_missing_fields(self, client, auth_headers):
        response = client.post("/api/partners/apply", json={"serviceType": "construction"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["details"] == "Company name and service type are required"

    def test_one_application_per_user(self, client, auth_headers):
        client.post("/api/partners/apply", json=APPLICATION, headers=auth_headers)
        response = client.post("/api/partners/apply", json=APPLICATION, headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["status"] == "pending"
        assert Partner.query.count() == 1

    def test_requires_auth(self, client):
        assert client.post("/api/partners/apply", json=APPLICATION).status_code == 401


class TestStatus:
    def test_not_a_partner(self, client, auth_headers):
        assert client.get("/api/partners/status", headers=auth_headers).get_json() == {
            "isPartner": False, "status": None, "partner": None,
        }

    def test_pending_then_approved(self, client, auth_headers, admin_headers, smtp):
        client.post("/api/partners/apply", json=APPLICATION, headers=auth_headers)
        body = client.get("/api/partners/status", headers=auth_headers).get_json()
        assert (body["isPartner"], body["status"]) == (False, "pending")

        partner_id = Partner.query.one().id
        response = client.post(f"/api/admin/partners/{partner_id}/approve", json={}, headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()["partner"]["approved_at"] is not None

        body = client.get("/api/partners/status", headers=auth_headers).get_json()
        assert (body["isPartner"], body["status"]) == (True, "approved")

        (message,) = sent_messages(smtp)
        assert message["To"] == "jane@example.com"
        assert message["Subject"] == "Congratulations! Your Partner Application Has Been Approved"


class TestAdminReview:
    def test_reject(self, client, auth_headers, admin_headers, smtp):
        client.post("/api/partners/apply", json=APPLICATION, headers=auth_headers)
        partner_id = Partner.query.one().id

        response = client.post(f"/api/admin/partners/{partner_id}/approve", json={"approve": False}, headers=admin_headers)
        assert response.get_json()["partner"]["status"] == "rejected"
        (message,) = sent_messages(smtp)
        assert message["Subject"] == "Update on Your Partner Application"

    def test_approve_must_be_boolean(self, client, auth_headers, admin_headers):
        client.post("/api/partners/apply", json=APPLICATION, headers=auth_headers)
        partner_id = Partner.query.one().id
        response = client.post(f"/api/admin/partners/{partner_id}/approve", json={"approve": "yes"}, headers=admin_headers)
        assert response.status_code == 400

    def test_list_by_status(self, client, auth_headers, admin_headers):
        client.post("/api/partners/apply", json=APPLICATION, headers=auth_headers)
        assert len(client.get("/api/admin/partners?status=pending", headers=admin_headers).get_json()["partners"]) == 1
        assert client.get("/api/admin/partners?status=approved", headers=admin_headers).get_json()["partners"] == []

    def test_unknown_partner(self, client, admin_headers):
        assert client.post("/api/admin/partners/999/approve", json={}, headers=admin_headers).status_code == 404

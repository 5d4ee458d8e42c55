"""Contract tests for the payment endpoints."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def submit(client: TestClient, tenancy, renter_headers):
    def _submit(month="2024-01", amount=1200, apartment_id=None, headers=None):
        payload = {
            "apartment_id": apartment_id or tenancy.apt_101.id,
            "month": month,
            "amount": amount,
            "payment_method": "bkash",
            "transaction_reference": "8N7A6B5C",
        }
        return client.post("/payments", json=payload, headers=renter_headers if headers is None else headers)

    return _submit


class TestSubmitPaymentContract:
    """POST /payments"""

    def test_created_envelope(self, submit, tenancy):
        response = submit()
        assert response.status_code == 201

        body = response.json()
        assert body["success"] is True
        assert "verification" in body["message"]
        data = body["data"]
        assert data["apartment_id"] == tenancy.apt_101.id
        assert data["month"] == "2024-01"
        assert data["amount"] == 1200.0
        assert data["stored_status"] == "paid"
        assert data["status"] == "paid"
        assert data["verification_status"] == "pending_review"
        assert data["payment_method"] == "bkash"
        assert isinstance(data["amount_display"], str)

    def test_duplicate_is_conflict(self, submit):
        assert submit().status_code == 201

        response = submit(month="2024-01-20")
        assert response.status_code == 409
        body = response.json()
        assert body == {
            "success": False,
            "code": "duplicate_payment",
            "message": body["message"],
        }

    def test_insufficient_amount(self, submit):
        response = submit(amount=1000)
        assert response.status_code == 400
        assert response.json()["code"] == "insufficient_amount"

    def test_vacant_apartment(self, submit, tenancy):
        response = submit(apartment_id=tenancy.apt_103.id)
        assert response.status_code == 409
        assert response.json()["code"] == "no_active_renter"

    def test_unknown_apartment(self, submit):
        response = submit(apartment_id=9999)
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_missing_actor_headers(self, submit):
        response = submit(headers={})
        assert response.status_code == 401
        assert response.json()["code"] == "missing_actor"

    def test_malformed_body(self, client, renter_headers):
        response = client.post("/payments", json={"month": "2024-01"}, headers=renter_headers)
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "validation_error"
        assert "detail" in body

    def test_malformed_month(self, submit):
        response = submit(month="01/2024")
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"


class TestVerifyPaymentContract:
    """POST /payments/{id}/verify and /dispute"""

    def test_verify_then_conflict(self, client, submit, manager_headers):
        payment_id = submit().json()["data"]["id"]

        response = client.post(
            f"/payments/{payment_id}/verify",
            json={"status": "verified", "notes": "Matched statement"},
            headers=manager_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "verified"
        assert data["verifier_id"] == 900
        assert data["notes"] == "Matched statement"

        again = client.post(f"/payments/{payment_id}/verify", json={"status": "rejected"}, headers=manager_headers)
        assert again.status_code == 409
        assert again.json()["code"] == "already_verified"

    def test_invalid_decision(self, client, submit, manager_headers):
        payment_id = submit().json()["data"]["id"]
        response = client.post(f"/payments/{payment_id}/verify", json={"status": "maybe"}, headers=manager_headers)
        assert response.status_code == 422

    def test_unknown_payment(self, client, tenancy, manager_headers):
        response = client.post("/payments/999/verify", json={"status": "verified"}, headers=manager_headers)
        assert response.status_code == 404

    def test_dispute(self, client, submit, manager_headers):
        payment_id = submit().json()["data"]["id"]
        client.post(f"/payments/{payment_id}/verify", json={"status": "verified"}, headers=manager_headers)

        response = client.post(f"/payments/{payment_id}/dispute", json={"notes": "Chargeback"}, headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "disputed"


class TestPaymentListingContract:
    def test_list_with_pagination_and_summary(self, client, submit, manager_headers):
        submit()
        client.post("/payments/generate-monthly", json={"month": "2024-01"}, headers=manager_headers)

        response = client.get("/payments", params={"month": "2024-01", "limit": 1})
        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
        assert len(body["data"]) == 1
        assert body["summary"]["total_count"] == 2
        assert body["summary"]["total_paid"] == 1200.0
        assert "total_paid_display" in body["summary"]

    def test_invalid_page(self, client, tenancy):
        response = client.get("/payments", params={"page": 0})
        assert response.status_code == 422

    def test_generate_monthly(self, client, tenancy, manager_headers):
        response = client.post("/payments/generate-monthly", json={"month": "2024-02"}, headers=manager_headers)
        assert response.status_code == 201
        body = response.json()
        assert body["count"] == 2
        assert {d["stored_status"] for d in body["data"]} == {"pending"}

    def test_pending_months_and_renter_history(self, client, submit, tenancy):
        submit(month="2024-01")
        submit(month="2024-02")

        pending = client.get("/payments/pending").json()["data"]
        assert [p["month"] for p in pending] == ["2024-02", "2024-01"]

        months = client.get("/payments/months").json()["data"]
        assert months == [
            {"month": "2024-02", "label": "February 2024"},
            {"month": "2024-01", "label": "January 2024"},
        ]

        history = client.get(f"/renters/{tenancy.alice.id}/payments").json()["data"]
        assert [p["month"] for p in history] == ["2024-02", "2024-01"]

    def test_get_payment(self, client, submit):
        payment_id = submit().json()["data"]["id"]
        assert client.get(f"/payments/{payment_id}").json()["data"]["id"] == payment_id
        assert client.get("/payments/31337").status_code == 404

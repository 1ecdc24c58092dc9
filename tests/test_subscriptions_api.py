from datetime import datetime, timedelta
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from app.domain.subscriptions.repository import SubscriptionRepository
from app.models import Organization, User


class TestAuthentication:
    """Tests for API key authentication and tenant resolution."""

    def test_missing_credentials_returns_401(self, client):
        response = client.get("/subscriptions")
        assert response.status_code == 401

    def test_unknown_api_key_returns_401(self, client):
        response = client.get("/subscriptions", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_user_without_organization_returns_404(self, client, db):
        from app.auth import hash_api_key

        db.add(User(email="loner@example.com", api_key_hash=hash_api_key("loner-key")))
        db.commit()

        response = client.get("/subscriptions", headers={"Authorization": "Bearer loner-key"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Organization not found"


class TestCreateSubscriptionEndpoint:
    """Tests for POST /subscriptions."""

    def test_create_returns_201_with_alerts(self, client, auth_headers, subscription_payload):
        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Premium Support"
        assert data["billingCycle"] == "MONTHLY"
        assert data["nextBillingDate"] is not None
        assert data["alertDays"] == [30, 15, 7]
        assert data["customer"]["email"] == "jane@example.com"
        assert len(data["alerts"]) == 3
        assert [a["subject"] for a in data["alerts"]] == [
            "Subscription Expiring in 30 Days",
            "Subscription Expiring in 15 Days",
            "Subscription Expiring in 7 Days",
        ]
        assert all(a["status"] == "PENDING" for a in data["alerts"])

    def test_end_date_ten_days_ahead_schedules_only_seven_day_alert(
        self, client, auth_headers, subscription_payload
    ):
        end_date = datetime.fromisoformat(subscription_payload["startDate"]) + timedelta(days=10)
        subscription_payload["endDate"] = end_date.isoformat()

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        alerts = response.json()["alerts"]
        assert len(alerts) == 1
        assert alerts[0]["subject"] == "Subscription Expiring in 7 Days"

    def test_one_time_has_null_next_billing_date(self, client, auth_headers, subscription_payload):
        subscription_payload["billingCycle"] = "ONE_TIME"

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["nextBillingDate"] is None

    def test_offset_timestamps_normalized_to_utc(self, client, auth_headers, subscription_payload):
        subscription_payload["billingCycle"] = "DAILY"
        subscription_payload["startDate"] = "2024-01-01T02:00:00+02:00"

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        data = response.json()
        assert data["startDate"].startswith("2024-01-01T00:00:00")
        assert data["nextBillingDate"].startswith("2024-01-02T00:00:00")

    def test_invalid_billing_cycle_returns_422(self, client, auth_headers, subscription_payload):
        subscription_payload["billingCycle"] = "monthly"

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 422

    def test_negative_amount_returns_422(self, client, auth_headers, subscription_payload):
        subscription_payload["amount"] = -1

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 422

    def test_non_positive_lead_time_returns_422(self, client, auth_headers, subscription_payload):
        subscription_payload["alertDays"] = [30, 0]

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 422

    def test_huge_lead_time_returns_422(self, client, auth_headers, subscription_payload):
        for days in [10**9, 3651]:
            subscription_payload["alertDays"] = [30, days]

            response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

            assert response.status_code == 422

    def test_ten_year_lead_time_accepted(self, client, auth_headers, subscription_payload):
        subscription_payload["alertDays"] = [3650]

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["alerts"] == []

    def test_start_date_at_end_of_calendar_returns_422(
        self, client, auth_headers, subscription_payload
    ):
        subscription_payload["billingCycle"] = "YEARLY"
        subscription_payload["startDate"] = "9999-12-31T00:00:00"

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 422

    def test_end_date_at_start_of_calendar_returns_422(
        self, client, auth_headers, subscription_payload
    ):
        subscription_payload["endDate"] = "0001-01-01T00:00:00"

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 422

    def test_missing_start_date_returns_422(self, client, auth_headers, subscription_payload):
        del subscription_payload["startDate"]

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 422

    def test_other_organization_customer_returns_404(
        self, client, auth_headers, subscription_payload, other_organization
    ):
        subscription_payload["customerId"] = other_organization.customers[0].id

        response = client.post("/subscriptions", json=subscription_payload, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Customer not found"


class TestReadSubscriptions:
    """Tests for GET /subscriptions and GET /subscriptions/{id}."""

    def test_list_is_paginated_newest_first(self, client, auth_headers, subscription_payload):
        for name in ["First", "Second", "Third"]:
            client.post(
                "/subscriptions", json={**subscription_payload, "name": name}, headers=auth_headers
            )

        response = client.get("/subscriptions?page=1&limit=2", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [s["name"] for s in data["subscriptions"]] == ["Third", "Second"]
        assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    def test_list_filters_by_type(self, client, auth_headers, subscription_payload):
        client.post("/subscriptions", json=subscription_payload, headers=auth_headers)
        client.post(
            "/subscriptions", json={**subscription_payload, "type": "PRODUCT"}, headers=auth_headers
        )

        response = client.get("/subscriptions?type=PRODUCT", headers=auth_headers)

        assert [s["type"] for s in response.json()["subscriptions"]] == ["PRODUCT"]

    def test_get_one_includes_alert_count(self, client, auth_headers, subscription_payload):
        created = client.post("/subscriptions", json=subscription_payload, headers=auth_headers).json()

        response = client.get(f"/subscriptions/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["alertCount"] == 3

    def test_other_organization_cannot_read(
        self, client, auth_headers, other_auth_headers, subscription_payload, other_organization
    ):
        created = client.post("/subscriptions", json=subscription_payload, headers=auth_headers).json()

        response = client.get(f"/subscriptions/{created['id']}", headers=other_auth_headers)
        listing = client.get("/subscriptions", headers=other_auth_headers)

        assert response.status_code == 404
        assert listing.json()["pagination"]["total"] == 0


class TestUpdateSubscriptionEndpoint:
    """Tests for PUT /subscriptions/{id}."""

    def test_partial_update_leaves_other_fields(self, client, auth_headers, subscription_payload):
        created = client.post("/subscriptions", json=subscription_payload, headers=auth_headers).json()

        response = client.put(
            f"/subscriptions/{created['id']}", json={"amount": 120.5, "name": None}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["amount"] == 120.5
        assert data["name"] == "Premium Support"
        assert data["nextBillingDate"] == created["nextBillingDate"]
        assert len(data["alerts"]) == 3

    def test_alert_days_update_replaces_pending_alerts(self, client, auth_headers, subscription_payload):
        created = client.post("/subscriptions", json=subscription_payload, headers=auth_headers).json()

        response = client.put(
            f"/subscriptions/{created['id']}", json={"alertDays": [45, 1]}, headers=auth_headers
        )

        data = response.json()
        assert data["alertDays"] == [45, 1]
        assert [a["subject"] for a in data["alerts"]] == [
            "Subscription Expiring in 45 Days",
            "Subscription Expiring in 1 Days",
        ]

    def test_out_of_range_start_date_returns_422(self, client, auth_headers, subscription_payload):
        created = client.post("/subscriptions", json=subscription_payload, headers=auth_headers).json()

        response = client.put(
            f"/subscriptions/{created['id']}",
            json={"startDate": "9999-12-31T00:00:00", "billingCycle": "QUARTERLY"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_store_failure_returns_503_and_keeps_alerts(
        self, client, auth_headers, subscription_payload
    ):
        created = client.post("/subscriptions", json=subscription_payload, headers=auth_headers).json()

        with patch.object(
            SubscriptionRepository, "insert_alerts", side_effect=SQLAlchemyError("db down")
        ):
            response = client.put(
                f"/subscriptions/{created['id']}", json={"alertDays": [2]}, headers=auth_headers
            )

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
        after = client.get(f"/subscriptions/{created['id']}", headers=auth_headers).json()
        assert [a["id"] for a in after["alerts"]] == [a["id"] for a in created["alerts"]]
        assert after["alertDays"] == [30, 15, 7]

    def test_other_organization_cannot_update(
        self, client, auth_headers, other_auth_headers, subscription_payload, other_organization
    ):
        created = client.post("/subscriptions", json=subscription_payload, headers=auth_headers).json()

        response = client.put(
            f"/subscriptions/{created['id']}", json={"name": "Hijack"}, headers=other_auth_headers
        )

        assert response.status_code == 404


class TestDeleteSubscriptionEndpoint:
    """Tests for DELETE /subscriptions/{id}."""

    def test_delete(self, client, auth_headers, subscription_payload):
        created = client.post("/subscriptions", json=subscription_payload, headers=auth_headers).json()

        response = client.delete(f"/subscriptions/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Subscription deleted successfully"}
        assert client.get(f"/subscriptions/{created['id']}", headers=auth_headers).status_code == 404
        assert client.get("/subscriptions/alerts", headers=auth_headers).json()["alerts"] == []

    def test_other_organization_cannot_delete(
        self, client, auth_headers, other_auth_headers, subscription_payload, db, other_organization
    ):
        created = client.post("/subscriptions", json=subscription_payload, headers=auth_headers).json()

        response = client.delete(f"/subscriptions/{created['id']}", headers=other_auth_headers)

        assert response.status_code == 404
        assert db.query(Organization).count() == 2
        assert client.get(f"/subscriptions/{created['id']}", headers=auth_headers).status_code == 200


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}

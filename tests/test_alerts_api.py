from datetime import timedelta
from unittest.mock import AsyncMock, patch

from app.models import SubscriptionAlert
from app.shared.validators import utc_now


def create_subscription(client, auth_headers, payload):
    response = client.post("/subscriptions", json=payload, headers=auth_headers)
    assert response.status_code == 201
    return response.json()


class TestListAlerts:
    """Tests for GET /subscriptions/alerts."""

    def test_lists_alerts_with_subscription_summary(self, client, auth_headers, subscription_payload):
        subscription = create_subscription(client, auth_headers, subscription_payload)

        response = client.get("/subscriptions/alerts", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 3
        scheduled = [a["scheduledFor"] for a in data["alerts"]]
        assert scheduled == sorted(scheduled)
        assert data["alerts"][0]["subscription"] == {
            "id": subscription["id"],
            "name": "Premium Support",
            "type": "SERVICE",
            "status": "ACTIVE",
        }

    def test_filters(self, client, auth_headers, subscription_payload):
        subscription = create_subscription(client, auth_headers, subscription_payload)

        sent = client.get("/subscriptions/alerts?status=SENT", headers=auth_headers).json()
        by_subscription = client.get(
            f"/subscriptions/alerts?subscriptionId={subscription['id']}&type=EXPIRATION",
            headers=auth_headers,
        ).json()

        assert sent["alerts"] == []
        assert by_subscription["pagination"]["total"] == 3

    def test_other_organization_sees_nothing(
        self, client, auth_headers, other_auth_headers, subscription_payload, other_organization
    ):
        create_subscription(client, auth_headers, subscription_payload)

        response = client.get("/subscriptions/alerts", headers=other_auth_headers)

        assert response.json()["alerts"] == []


class TestCreateAlert:
    """Tests for POST /subscriptions/alerts."""

    def test_future_alert_stored_pending(self, client, auth_headers, subscription_payload):
        subscription = create_subscription(client, auth_headers, subscription_payload)
        scheduled_for = (utc_now() + timedelta(days=2)).isoformat()

        with patch("app.email_service.send_subscription_alert_email", new_callable=AsyncMock) as send:
            response = client.post(
                "/subscriptions/alerts",
                json={
                    "subscriptionId": subscription["id"],
                    "type": "RENEWAL",
                    "subject": "Renewal coming up",
                    "message": "Your plan renews soon.",
                    "scheduledFor": scheduled_for,
                },
                headers=auth_headers,
            )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["type"] == "RENEWAL"
        assert data["recipientEmail"] == "jane@example.com"
        send.assert_not_awaited()

    def test_immediate_alert_sent(self, client, auth_headers, subscription_payload):
        subscription = create_subscription(client, auth_headers, subscription_payload)

        with patch("app.email_service.send_subscription_alert_email", new_callable=AsyncMock) as send:
            response = client.post(
                "/subscriptions/alerts",
                json={
                    "subscriptionId": subscription["id"],
                    "type": "PAYMENT_DUE",
                    "subject": "Payment due",
                    "message": "Please settle your invoice.",
                },
                headers=auth_headers,
            )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "SENT"
        assert data["sentAt"] is not None
        send.assert_awaited_once()
        kwargs = send.await_args.kwargs
        assert kwargs["to"] == "jane@example.com"
        assert kwargs["subject"] == "Payment due"
        assert kwargs["subscription_name"] == "Premium Support"
        assert kwargs["organization_name"] == "Acme Corp"

    def test_immediate_alert_failure_recorded(self, client, auth_headers, subscription_payload):
        subscription = create_subscription(client, auth_headers, subscription_payload)

        with patch(
            "app.email_service.send_subscription_alert_email",
            new_callable=AsyncMock,
            side_effect=Exception("Failed to send email: provider down"),
        ):
            response = client.post(
                "/subscriptions/alerts",
                json={
                    "subscriptionId": subscription["id"],
                    "type": "CUSTOM",
                    "subject": "Hello",
                    "message": "Custom note",
                },
                headers=auth_headers,
            )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "FAILED"
        assert "provider down" in data["failureReason"]

    def test_sms_without_phone_fails(self, client, auth_headers, subscription_payload):
        del subscription_payload["customerId"]
        subscription = create_subscription(client, auth_headers, subscription_payload)

        response = client.post(
            "/subscriptions/alerts",
            json={
                "subscriptionId": subscription["id"],
                "type": "CUSTOM",
                "subject": "Hello",
                "message": "Custom note",
                "channel": "SMS",
            },
            headers=auth_headers,
        )

        assert response.json()["status"] == "FAILED"
        assert response.json()["failureReason"] == "No recipient phone number"

    def test_blank_subject_returns_422(self, client, auth_headers, subscription_payload):
        subscription = create_subscription(client, auth_headers, subscription_payload)

        response = client.post(
            "/subscriptions/alerts",
            json={"subscriptionId": subscription["id"], "type": "CUSTOM", "subject": " ", "message": "x"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_other_organization_subscription_returns_404(
        self, client, auth_headers, other_auth_headers, subscription_payload, other_organization
    ):
        subscription = create_subscription(client, auth_headers, subscription_payload)

        response = client.post(
            "/subscriptions/alerts",
            json={"subscriptionId": subscription["id"], "type": "CUSTOM", "subject": "x", "message": "y"},
            headers=other_auth_headers,
        )

        assert response.status_code == 404


class TestProcessAlerts:
    """Tests for PATCH /subscriptions/alerts (cron)."""

    def test_missing_secret_returns_401(self, client):
        assert client.patch("/subscriptions/alerts").status_code == 401

    def test_wrong_secret_returns_401(self, client):
        response = client.patch("/subscriptions/alerts", headers={"Authorization": "Bearer wrong"})
        assert response.status_code == 401

    def test_api_key_is_not_a_cron_secret(self, client, auth_headers):
        assert client.patch("/subscriptions/alerts", headers=auth_headers).status_code == 401

    def test_unconfigured_secret_returns_503(self, client, cron_headers):
        with patch("app.config.CRON_SECRET", None):
            response = client.patch("/subscriptions/alerts", headers=cron_headers)
        assert response.status_code == 503

    def test_dispatches_due_alerts(self, client, db, auth_headers, cron_headers, subscription_payload):
        subscription = create_subscription(client, auth_headers, subscription_payload)
        due = db.query(SubscriptionAlert).filter_by(subscription_id=subscription["id"]).first()
        due.scheduled_for = utc_now() - timedelta(minutes=5)
        db.commit()
        due_id = due.id

        with patch("app.email_service.send_subscription_alert_email", new_callable=AsyncMock) as send:
            response = client.patch("/subscriptions/alerts", headers=cron_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["successful"] == 1
        assert data["failed"] == 0
        assert data["results"] == [
            {"alertId": due_id, "success": True, "channel": "EMAIL", "error": None}
        ]
        send.assert_awaited_once()

        statuses = client.get("/subscriptions/alerts?status=PENDING", headers=auth_headers).json()
        assert statuses["pagination"]["total"] == 2

    def test_nothing_due(self, client, cron_headers):
        response = client.patch("/subscriptions/alerts", headers=cron_headers)

        assert response.status_code == 200
        assert response.json() == {
            "message": "Processed 0 alerts",
            "successful": 0,
            "failed": 0,
            "results": [],
        }

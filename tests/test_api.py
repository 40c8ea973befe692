"""
Tests — HTTP surface
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from tourguide.api import deps
from tourguide.config.settings import Settings
from tourguide.core.logging import user_id as log_user_id
from tourguide.core.security import Identity, JWTManager
from tourguide.main import create_app
from tourguide.models.enums import UserRole
from tourguide.services.payment.webhook_service import PaymentWebhookService

from tests.conftest import VALID_SIGNATURE, webhook_payload

API = "/api/v1"
SECRET = "test-secret"


@pytest.fixture
def client(database, payment_gateway, notification_store, clock, marketplace):
    settings = Settings(JWT_SECRET_KEY=SECRET, ENVIRONMENT="test", DEBUG=False)
    app = create_app(
        settings=settings,
        database=database,
        payment_gateway=payment_gateway,
        notification_store=notification_store,
        clock=clock,
    )
    return TestClient(app)


@pytest.fixture
def auth(marketplace):
    """Authorization headers per seeded user."""
    jwt_manager = JWTManager(SECRET)

    def _headers(user):
        token = jwt_manager.create_access_token(user.id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


def _create_booking(client, auth, marketplace, **overrides):
    body = {
        "guide_id": marketplace.guide.id,
        "type": "INSTANT",
        "duration": 60,
        "meeting_point": "Harbour clock tower",
        "total_price": "60.00",
    }
    body.update(overrides)
    return client.post(f"{API}/bookings", json=body, headers=auth(marketplace.tourist_user))


def _confirm(client, booking_id):
    return client.post(
        f"{API}/webhooks/stripe",
        content=webhook_payload("payment_intent.succeeded", booking_id, f"pi_{booking_id}"),
        headers={"Stripe-Signature": VALID_SIGNATURE},
    )


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get(f"{API}/bookings")
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": {"code": "UNAUTHORIZED", "message": "Missing bearer token", "details": {}},
        }

    def test_bad_token(self, client):
        response = client.get(f"{API}/bookings", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_token_signed_with_other_key(self, client, marketplace):
        token = JWTManager("other-secret").create_access_token(marketplace.tourist_user.id, UserRole.TOURIST)
        response = client.get(f"{API}/bookings", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestBookingsApi:
    def test_create_booking(self, client, auth, marketplace):
        response = _create_booking(client, auth, marketplace)

        assert response.status_code == 201
        body = response.json()
        assert body["booking"]["status"] == "PENDING"
        assert Decimal(body["booking"]["commission"]) == Decimal("9.00")
        assert Decimal(body["booking"]["guide_earnings"]) == Decimal("51.00")
        assert body["payment_intent"]["client_secret"].endswith("_secret")

    def test_request_validation(self, client, auth, marketplace):
        response = _create_booking(client, auth, marketplace, duration=10)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "body.duration" in error["details"]["field_errors"]

    def test_unavailable_guide_conflict(self, client, auth, marketplace):
        response = _create_booking(client, auth, marketplace, guide_id=marketplace.other_guide.id)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "GUIDE_UNAVAILABLE"

    def test_payment_intent_failure(self, client, auth, marketplace, payment_gateway):
        payment_gateway.fail_intents = True

        response = _create_booking(client, auth, marketplace)

        assert response.status_code == 402
        error = response.json()["error"]
        assert error["code"] == "PAYMENT_ERROR"
        booking_id = error["details"]["booking_id"]

        payment_gateway.fail_intents = False
        retry = client.post(
            f"{API}/bookings/{booking_id}/payment-intent",
            headers=auth(marketplace.tourist_user),
        )
        assert retry.status_code == 200
        assert retry.json()["intent_id"] == f"pi_{booking_id}"

    def test_list_and_get(self, client, auth, marketplace):
        booking_id = _create_booking(client, auth, marketplace).json()["booking"]["id"]

        listed = client.get(f"{API}/bookings", headers=auth(marketplace.guide_user))
        assert [b["id"] for b in listed.json()] == [booking_id]

        detail = client.get(f"{API}/bookings/{booking_id}", headers=auth(marketplace.tourist_user))
        assert detail.status_code == 200
        assert detail.json()["messages"] == []

        outsider = client.get(f"{API}/bookings/{booking_id}", headers=auth(marketplace.other_tourist_user))
        assert outsider.status_code == 403
        assert outsider.json()["error"]["code"] == "FORBIDDEN"

        admin = client.get(f"{API}/bookings/{booking_id}", headers=auth(marketplace.admin_user))
        assert admin.status_code == 200

    def test_unknown_booking(self, client, auth, marketplace):
        response = client.get(f"{API}/bookings/missing", headers=auth(marketplace.tourist_user))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_invalid_transition_conflict(self, client, auth, marketplace):
        booking_id = _create_booking(client, auth, marketplace).json()["booking"]["id"]

        response = client.put(f"{API}/bookings/{booking_id}/complete", headers=auth(marketplace.guide_user))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_TRANSITION"

    def test_other_guide_cannot_start(self, client, auth, marketplace):
        booking_id = _create_booking(client, auth, marketplace).json()["booking"]["id"]
        _confirm(client, booking_id)

        response = client.put(f"{API}/bookings/{booking_id}/start", headers=auth(marketplace.other_guide_user))

        assert response.status_code == 403

    def test_cancel_scheduled_booking(self, client, auth, marketplace, clock, payment_gateway):
        scheduled = clock.now_utc().replace(hour=18)  # 6 hours out
        booking_id = _create_booking(
            client, auth, marketplace,
            type="SCHEDULED",
            scheduled_date=scheduled.isoformat(),
            total_price="100.00",
        ).json()["booking"]["id"]
        _confirm(client, booking_id)

        response = client.put(f"{API}/bookings/{booking_id}/cancel", headers=auth(marketplace.tourist_user))

        assert response.status_code == 200
        body = response.json()
        assert body["booking"]["status"] == "CANCELLED"
        assert Decimal(body["refund_percentage"]) == Decimal("0.25")
        assert Decimal(body["refund_amount"]) == Decimal("25.00")
        assert payment_gateway.refund_calls[0]["amount"] == Decimal("25.00")


class TestLifecycleApi:
    def test_booking_to_review(self, client, auth, marketplace):
        booking_id = _create_booking(client, auth, marketplace).json()["booking"]["id"]

        confirmed = _confirm(client, booking_id)
        assert confirmed.status_code == 200
        assert confirmed.json()["confirmed"] is True

        started = client.put(f"{API}/bookings/{booking_id}/start", headers=auth(marketplace.guide_user))
        assert started.json()["status"] == "STARTED"

        located = client.post(
            f"{API}/bookings/{booking_id}/location",
            json={"latitude": 51.5, "longitude": -0.12},
            headers=auth(marketplace.guide_user),
        )
        assert located.status_code == 201

        history = client.get(f"{API}/bookings/{booking_id}/location", headers=auth(marketplace.tourist_user))
        assert len(history.json()) == 1

        completed = client.put(f"{API}/bookings/{booking_id}/complete", headers=auth(marketplace.guide_user))
        assert completed.json()["status"] == "COMPLETED"

        review = client.post(
            f"{API}/reviews",
            json={"booking_id": booking_id, "rating": 5, "comment": "Superb"},
            headers=auth(marketplace.tourist_user),
        )
        assert review.status_code == 201

        duplicate = client.post(
            f"{API}/reviews",
            json={"booking_id": booking_id, "rating": 4},
            headers=auth(marketplace.tourist_user),
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["error"]["code"] == "DUPLICATE_REVIEW"

        listed = client.get(f"{API}/reviews/guide/{marketplace.guide.id}")
        assert listed.json()["total"] == 1
        assert listed.json()["items"][0]["rating"] == 5

        by_booking = client.get(f"{API}/reviews/booking/{booking_id}", headers=auth(marketplace.guide_user))
        assert by_booking.json()["id"] == review.json()["id"]

    def test_location_bounds_rejected(self, client, auth, marketplace):
        booking_id = _create_booking(client, auth, marketplace).json()["booking"]["id"]
        response = client.post(
            f"{API}/bookings/{booking_id}/location",
            json={"latitude": 91, "longitude": 0},
            headers=auth(marketplace.guide_user),
        )
        assert response.status_code == 422

    def test_bad_webhook_signature(self, client, auth, marketplace):
        booking_id = _create_booking(client, auth, marketplace).json()["booking"]["id"]

        response = client.post(
            f"{API}/webhooks/stripe",
            content=webhook_payload("payment_intent.succeeded", booking_id),
            headers={"Stripe-Signature": "forged"},
        )

        assert response.status_code == 402
        booking = client.get(f"{API}/bookings/{booking_id}", headers=auth(marketplace.tourist_user))
        assert booking.json()["status"] == "PENDING"

    def test_webhook_handled_off_the_event_loop(self, client, auth, marketplace, monkeypatch):
        handled_on_loop = []
        handle = PaymentWebhookService.handle

        def recording_handle(service, payload, signature):
            try:
                asyncio.get_running_loop()
                handled_on_loop.append(True)
            except RuntimeError:
                handled_on_loop.append(False)
            return handle(service, payload, signature)

        monkeypatch.setattr(PaymentWebhookService, "handle", recording_handle)
        booking_id = _create_booking(client, auth, marketplace).json()["booking"]["id"]

        assert _confirm(client, booking_id).json()["confirmed"] is True
        assert handled_on_loop == [False]

    def test_payment_after_cancel_is_refunded(self, client, auth, marketplace, payment_gateway, clock):
        scheduled = (clock.now_utc() + timedelta(hours=30)).isoformat()
        booking_id = _create_booking(
            client, auth, marketplace, type="SCHEDULED", scheduled_date=scheduled
        ).json()["booking"]["id"]
        client.put(f"{API}/bookings/{booking_id}/cancel", headers=auth(marketplace.tourist_user))

        response = _confirm(client, booking_id)

        assert response.status_code == 200
        assert response.json()["confirmed"] is False
        assert [call["intent_id"] for call in payment_gateway.refund_calls] == [f"pi_{booking_id}"]


class TestMessagingAndPolling:
    def test_message_delivered_by_polling(self, client, auth, marketplace):
        booking_id = _create_booking(client, auth, marketplace).json()["booking"]["id"]
        guide_headers = auth(marketplace.guide_user)
        client.delete(f"{API}/polling/updates", headers=guide_headers)

        sent = client.post(
            f"{API}/bookings/{booking_id}/messages",
            json={"content": "Running five minutes late"},
            headers=auth(marketplace.tourist_user),
        )
        assert sent.status_code == 201

        polled = client.get(f"{API}/polling/updates", headers=guide_headers).json()
        assert [u["type"] for u in polled["updates"]] == ["message"]
        assert polled["updates"][0]["payload"]["content"] == "Running five minutes late"

        # The clock is pinned, so nothing is newer than the returned cursor
        again = client.get(
            f"{API}/polling/updates",
            params={"since": polled["timestamp"]},
            headers=guide_headers,
        ).json()
        assert again["updates"] == []

        thread = client.get(f"{API}/bookings/{booking_id}/messages", headers=guide_headers).json()
        assert thread[0]["is_read"] is False

        read = client.put(f"{API}/bookings/{booking_id}/messages/read", headers=guide_headers)
        assert read.json() == {"updated": 1}

    def test_empty_message_rejected(self, client, auth, marketplace):
        booking_id = _create_booking(client, auth, marketplace).json()["booking"]["id"]
        response = client.post(
            f"{API}/bookings/{booking_id}/messages",
            json={"content": ""},
            headers=auth(marketplace.tourist_user),
        )
        assert response.status_code == 422

    def test_clear_updates(self, client, auth, marketplace):
        _create_booking(client, auth, marketplace)
        headers = auth(marketplace.tourist_user)

        assert len(client.get(f"{API}/polling/updates", headers=headers).json()["updates"]) == 1
        assert client.delete(f"{API}/polling/updates", headers=headers).status_code == 204
        assert client.get(f"{API}/polling/updates", headers=headers).json()["updates"] == []


class TestMiddleware:
    def test_request_id_and_timing_headers(self, client):
        response = client.get(f"{API}/health", headers={"X-Request-ID": "req-123"})

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Process-Time" in response.headers
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_request_id_generated(self, client):
        response = client.get(f"{API}/health")
        assert response.headers["X-Request-ID"]

    def test_user_id_bound_while_endpoint_runs(self, client, auth, marketplace):
        def log_context(identity: Identity = Depends(deps.get_current_identity)):
            return {"identity": identity.user_id, "log_user_id": log_user_id.get()}

        client.app.add_api_route("/log-context", log_context, methods=["GET"])

        response = client.get("/log-context", headers=auth(marketplace.guide_user))

        assert response.json() == {
            "identity": marketplace.guide_user.id,
            "log_user_id": marketplace.guide_user.id,
        }
        assert log_user_id.get() is None

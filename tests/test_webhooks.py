"""Tests for the webhooks blueprint and Stripe event handling.

Covers:
- Webhook signature verification (missing, invalid)
- Idempotent event processing (duplicate events skipped)
- checkout.session.completed: site marked paid, then deployed
- Publish failure after payment (site failed, event still processed)
- Unpaid / unrelated events
"""

import json
from unittest.mock import patch

import stripe

from conftest import SpyTransport
from sitesmith.extensions import db
from sitesmith.models.site import DEPLOYED, FAILED, PENDING_PAYMENT
from sitesmith.models.stripe_event import StripeEvent
from sitesmith.services import site_service


def _checkout_event(site_id, event_id="evt_checkout_001", payment_status="paid"):
    return {
        "id": event_id,
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_123",
                "payment_intent": "pi_test_123",
                "payment_status": payment_status,
                "amount_total": 4900,
                "metadata": {"site_id": site_id},
            }
        },
    }


def _post(client):
    return client.post(
        "/stripe/webhooks",
        data="{}",
        content_type="application/json",
        headers={"Stripe-Signature": "valid_sig"},
    )


class TestWebhookSignature:
    """Tests for webhook signature validation."""

    def test_missing_signature_returns_400(self, client, seed_data):
        """POST /stripe/webhooks without signature -> 400."""
        resp = client.post(
            "/stripe/webhooks",
            data="{}",
            content_type="application/json",
        )
        assert resp.status_code == 400
        assert b"Missing signature" in resp.data

    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_invalid_signature_returns_400(self, mock_construct, client, seed_data):
        """POST /stripe/webhooks with bad signature -> 400, site untouched."""
        mock_construct.side_effect = stripe.SignatureVerificationError(
            "No signatures found", "bad_sig"
        )

        resp = client.post(
            "/stripe/webhooks",
            data="{}",
            content_type="application/json",
            headers={"Stripe-Signature": "bad_sig"},
        )
        assert resp.status_code == 400
        assert b"Invalid signature" in resp.data
        assert site_service.get_site(seed_data["pending_id"]).status == PENDING_PAYMENT


    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_accepted_with_csrf_enabled(self, mock_construct, client, seed_data, csrf_enabled):
        mock_construct.return_value = {"id": "evt_csrf", "type": "invoice.paid",
                                       "data": {"object": {}}}

        resp = _post(client)

        assert resp.status_code == 200


class TestWebhookIdempotency:
    """Tests for duplicate event handling."""

    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_duplicate_event_returns_200(self, mock_construct, client, seed_data):
        """Duplicate event_id -> 200 with 'already_processed', no state change."""
        db.session.add(StripeEvent(
            stripe_event_id="evt_duplicate_123",
            event_type="checkout.session.completed",
        ))
        db.session.commit()

        mock_construct.return_value = _checkout_event(
            seed_data["pending_id"], event_id="evt_duplicate_123"
        )

        resp = _post(client)
        assert resp.status_code == 200
        assert json.loads(resp.data)["status"] == "already_processed"
        assert site_service.get_site(seed_data["pending_id"]).status == PENDING_PAYMENT

    @patch("sitesmith.services.deployment_service.get_transport")
    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_retried_event_deploys_once(self, mock_construct, mock_get_transport,
                                        client, seed_data):
        transport = SpyTransport()
        mock_get_transport.return_value = transport
        mock_construct.return_value = _checkout_event(seed_data["pending_id"])

        assert _post(client).status_code == 200
        assert _post(client).status_code == 200

        assert transport.calls == [seed_data["pending_id"]]
        assert StripeEvent.query.count() == 1


class TestCheckoutCompleted:
    """Tests for checkout.session.completed webhook."""

    @patch("sitesmith.services.deployment_service.get_transport")
    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_marks_paid_and_deploys(self, mock_construct, mock_get_transport,
                                    client, seed_data):
        mock_get_transport.return_value = SpyTransport()
        mock_construct.return_value = _checkout_event(seed_data["pending_id"])

        resp = _post(client)

        assert resp.status_code == 200
        assert json.loads(resp.data)["status"] == "processed"
        site = site_service.get_site(seed_data["pending_id"])
        assert site.status == DEPLOYED
        assert site.payment_id == "pi_test_123"
        assert site.amount == 4900
        assert site.paid_at is not None
        assert site.deployment_url == "https://site_pending0001.sites.test"

    @patch("sitesmith.services.deployment_service.get_transport")
    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_publish_failure_still_acknowledged(self, mock_construct, mock_get_transport,
                                               client, seed_data):
        """Payment recorded, site failed for retry, Stripe gets a 200."""
        mock_get_transport.return_value = SpyTransport(fail=True)
        mock_construct.return_value = _checkout_event(seed_data["pending_id"])

        resp = _post(client)

        assert resp.status_code == 200
        site = site_service.get_site(seed_data["pending_id"])
        assert site.status == FAILED
        assert site.paid_at is not None
        assert StripeEvent.query.filter_by(stripe_event_id="evt_checkout_001").count() == 1

    @patch("sitesmith.services.deployment_service.get_transport")
    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_unpaid_session_ignored(self, mock_construct, mock_get_transport,
                                    client, seed_data):
        mock_construct.return_value = _checkout_event(
            seed_data["pending_id"], payment_status="unpaid"
        )

        assert _post(client).status_code == 200
        assert site_service.get_site(seed_data["pending_id"]).status == PENDING_PAYMENT
        mock_get_transport.assert_not_called()

    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_missing_site_metadata_ignored(self, mock_construct, client, seed_data):
        event = _checkout_event(seed_data["pending_id"])
        event["data"]["object"]["metadata"] = {}
        mock_construct.return_value = event

        assert _post(client).status_code == 200
        assert site_service.get_site(seed_data["pending_id"]).status == PENDING_PAYMENT

    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_unknown_site_returns_500_for_retry(self, mock_construct, client, seed_data):
        mock_construct.return_value = _checkout_event("site_missing")

        resp = _post(client)

        assert resp.status_code == 500
        assert StripeEvent.query.count() == 0


class TestOtherEvents:

    @patch("sitesmith.services.stripe_service.stripe.Webhook.construct_event")
    def test_unhandled_event_type_recorded(self, mock_construct, client, seed_data):
        mock_construct.return_value = {
            "id": "evt_other_001",
            "type": "customer.created",
            "data": {"object": {}},
        }

        resp = _post(client)

        assert resp.status_code == 200
        assert StripeEvent.query.filter_by(stripe_event_id="evt_other_001").count() == 1

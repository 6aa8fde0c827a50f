"""Stripe service: checkout for a site and payment webhooks.

Responsible for:
- Creating one-time Stripe Checkout Sessions for a pending_payment site
- Verifying webhook signatures
- Dispatching verified events to handlers
- Idempotency via stripe_events table

A site only becomes paid here, from a verified checkout.session.completed
event. No client-reachable route can mark a site paid.
"""

import logging

import stripe
from flask import current_app

from sitesmith.errors import SiteNotDeployable, SitesmithError, TransportError
from sitesmith.extensions import db
from sitesmith.models.site import PENDING_PAYMENT
from sitesmith.models.stripe_event import StripeEvent
from sitesmith.services import deployment_service, site_service

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Checkout
# ──────────────────────────────────────────────

def create_checkout_session(site, customer_email=None):
    """Create a Stripe Checkout Session paying for one site.

    Returns the Stripe checkout session URL.
    Raises SiteNotDeployable if the site is not awaiting payment.
    Raises stripe.StripeError on API failures.
    """
    if site.status != PENDING_PAYMENT:
        raise SiteNotDeployable(site.id, site.status)

    stripe.api_key = current_app.config["STRIPE_SECRET_KEY"]
    app_base_url = current_app.config["APP_BASE_URL"]

    params = {
        "mode": "payment",
        "line_items": [
            {
                "price_data": {
                    "currency": current_app.config["SITE_CURRENCY"],
                    "unit_amount": current_app.config["SITE_PRICE_CENTS"],
                    "product_data": {"name": f"Website: {site.name}"},
                },
                "quantity": 1,
            }
        ],
        "success_url": (
            f"{app_base_url}/sites/{site.id}?checkout=success"
            f"&session_id={{CHECKOUT_SESSION_ID}}"
        ),
        "cancel_url": f"{app_base_url}/sites/{site.id}?checkout=cancel",
        "client_reference_id": site.id,
        "metadata": {
            "site_id": site.id,
            "owner_id": str(site.owner_id),
        },
    }
    if customer_email:
        params["customer_email"] = customer_email

    session = stripe.checkout.Session.create(**params)
    logger.info(f"Checkout session {session.id} created for site {site.id}")
    return session.url


# ──────────────────────────────────────────────
# Webhook Handling
# ──────────────────────────────────────────────

def verify_webhook_signature(payload, sig_header):
    """Verify Stripe webhook signature and construct the event.

    Returns the verified Stripe event object.
    Raises stripe.SignatureVerificationError on invalid signature.
    """
    webhook_secret = current_app.config["STRIPE_WEBHOOK_SECRET"]
    return stripe.Webhook.construct_event(payload, sig_header, webhook_secret)


def handle_webhook_event(event):
    """Apply a verified Stripe event at most once.

    Event types without a handler are still recorded so a replay is cheap.
    A handler failure is not recorded, so Stripe's retry gets another go.

    Returns (success: bool, message: str).
    """
    event_id = event["id"]
    event_type = event["type"]

    if StripeEvent.query.filter_by(stripe_event_id=event_id).first():
        logger.info(f"Stripe event {event_id} already processed, skipping")
        return True, "already_processed"

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.debug(f"No handler for Stripe event type {event_type}")
    else:
        try:
            handler(event)
        except SitesmithError as e:
            logger.error(f"Stripe event {event_id} ({event_type}) failed: {e}", exc_info=True)
            db.session.rollback()
            return False, e.message

    db.session.add(StripeEvent(stripe_event_id=event_id, event_type=event_type))
    db.session.commit()
    return True, "processed"


# ──────────────────────────────────────────────
# Event Handlers
# ──────────────────────────────────────────────

def _handle_checkout_completed(event):
    """Handle a completed (paid) checkout.

    Marks the site from metadata.site_id as paid, then deploys it. A publish
    failure leaves the site failed for a later retry; the payment itself is
    recorded, so the event still counts as processed.
    """
    session = event["data"]["object"]
    metadata = session.get("metadata") or {}
    site_id = metadata.get("site_id")

    if not site_id:
        logger.warning("checkout.session.completed missing site_id metadata")
        return

    if session.get("payment_status") != "paid":
        logger.info(
            f"Checkout for {site_id} not paid yet "
            f"(payment_status={session.get('payment_status')})"
        )
        return

    site_service.mark_paid(
        site_id,
        payment_id=session.get("payment_intent") or session.get("id"),
        amount=session.get("amount_total"),
    )

    try:
        result = deployment_service.deploy(site_id)
    except TransportError as e:
        logger.error(f"Deploy after payment failed for {site_id}, left for retry: {e}")
        return

    logger.info(f"Site {site_id} paid and deployed at {result.url}")


EVENT_HANDLERS = {
    "checkout.session.completed": _handle_checkout_completed,
    # bank debits and other delayed methods settle later with this event
    "checkout.session.async_payment_succeeded": _handle_checkout_completed,
}

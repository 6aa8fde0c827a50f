"""Webhooks blueprint: /stripe/webhooks

The only way a site becomes paid. Stripe posts checkout events here; the
raw body is verified against STRIPE_WEBHOOK_SECRET before anything is
read from it, which is why this blueprint is CSRF-exempt.
"""

import logging

import stripe
from flask import Blueprint, jsonify, request

from sitesmith.services import stripe_service

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/stripe")


@webhooks_bp.route("/webhooks", methods=["POST"])
def stripe_webhook():
    """Receive a payment confirmation from Stripe.

    200 once the event is processed or was already seen. 500 makes Stripe
    retry later, e.g. when the site row could not be written.
    """
    sig_header = request.headers.get("Stripe-Signature")
    if not sig_header:
        logger.warning("Stripe webhook without Stripe-Signature header from %s",
                       request.remote_addr)
        return jsonify({"error": "Missing signature"}), 400

    try:
        event = stripe_service.verify_webhook_signature(request.get_data(), sig_header)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        return jsonify({"error": "Invalid signature"}), 400

    logger.info(f"Stripe event {event['id']} ({event['type']}) received")
    success, message = stripe_service.handle_webhook_event(event)
    if not success:
        logger.error(f"Stripe event {event['id']} not processed, Stripe will retry: {message}")
        return jsonify({"error": message}), 500

    return jsonify({"status": message}), 200

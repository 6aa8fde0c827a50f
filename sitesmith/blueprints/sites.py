"""Sites blueprint: /api/sites/*

JSON API over the blueprint lifecycle. Every route needs a logged-in user
and only ever sees that user's sites.

Routes:
- POST   /api/sites/compose                          compose a blueprint (preview, not saved)
- POST   /api/sites                                  save a blueprint as draft
- POST   /api/sites/archive                          save a blueprint, ready for payment
- GET    /api/sites                                  list own sites
- GET    /api/sites/<site_id>                        site + blueprint
- GET    /api/sites/<site_id>/status                 status + deployment URL (polled after checkout)
- PUT    /api/sites/<site_id>/sections/<section_id>  replace one section's content
- POST   /api/sites/<site_id>/checkout               Stripe Checkout URL
- POST   /api/sites/<site_id>/deploy                 deploy (idempotent)
- POST   /api/sites/<site_id>/assets                 upload an image
- DELETE /api/sites/<site_id>                        delete site + assets

Service errors (SitesmithError) are rendered by the handler in create_app().
"""

import logging

import stripe
from flask import Blueprint, g, jsonify, request
from flask_login import current_user, login_required
from pydantic import ValidationError

from sitesmith.decorators import owned_site_required
from sitesmith.extensions import limiter
from sitesmith.schemas.blueprint import Blueprint as SiteBlueprint
from sitesmith.schemas.intent import UserIntent
from sitesmith.services import deployment_service, site_service, storage_service
from sitesmith.services.composer import BlueprintComposer
from sitesmith.services.stripe_service import create_checkout_session

logger = logging.getLogger(__name__)

sites_bp = Blueprint("sites", __name__, url_prefix="/api/sites")


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _blueprint_from_body():
    """Accept either the bare blueprint document or {"blueprint": {...}}."""
    data = _json_body()
    if data is None:
        return None
    document = data.get("blueprint", data)
    return SiteBlueprint.from_wire(document)


# ──────────────────────────────────────────────
# POST /api/sites/compose
# ──────────────────────────────────────────────

@sites_bp.route("/compose", methods=["POST"])
@login_required
@limiter.limit("20 per minute")
def compose():
    """Turn a business description into a blueprint.

    Body: {businessName, niche, vision|freeformVision, locale, baseTemplateId}
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "invalid_request", "message": "JSON body required."}), 400

    template_id = data.get("baseTemplateId") or data.get("base_template_id")
    if not template_id:
        return jsonify({
            "error": "invalid_request",
            "message": "baseTemplateId is required.",
        }), 400

    try:
        intent = UserIntent.model_validate(data)
    except ValidationError as e:
        return jsonify({
            "error": "invalid_request",
            "message": "Invalid business details.",
            "details": {"errors": e.errors(include_url=False, include_context=False)},
        }), 400

    blueprint = BlueprintComposer().compose(intent, template_id)
    return jsonify({"success": True, "data": blueprint.to_wire()})


# ──────────────────────────────────────────────
# POST /api/sites  +  POST /api/sites/archive
# ──────────────────────────────────────────────

@sites_bp.route("", methods=["POST"])
@login_required
def create_draft():
    blueprint = _blueprint_from_body()
    if blueprint is None:
        return jsonify({"error": "invalid_request", "message": "Blueprint required."}), 400

    site = site_service.create_draft(blueprint, current_user.id, actor_user_id=current_user.id)
    return jsonify(site.to_dict()), 201


@sites_bp.route("/archive", methods=["POST"])
@login_required
def archive():
    """Persist the composed blueprint as pending_payment."""
    blueprint = _blueprint_from_body()
    if blueprint is None:
        return jsonify({"error": "invalid_request", "message": "Blueprint required."}), 400

    site = site_service.archive(blueprint, current_user.id, actor_user_id=current_user.id)
    return jsonify(site.to_dict()), 201


# ──────────────────────────────────────────────
# Reads
# ──────────────────────────────────────────────

@sites_bp.route("", methods=["GET"])
@login_required
def list_sites():
    sites = site_service.list_sites(current_user.id)
    return jsonify([site.to_dict(include_blueprint=False) for site in sites])


@sites_bp.route("/<site_id>", methods=["GET"])
@owned_site_required
def get_site(site_id):
    return jsonify(g.site.to_dict())


@sites_bp.route("/<site_id>/status", methods=["GET"])
@owned_site_required
def site_status(site_id):
    """Lightweight poll target for the post-checkout page."""
    return jsonify({
        "id": g.site.id,
        "status": g.site.status,
        "deployment_url": g.site.deployment_url,
    })


# ──────────────────────────────────────────────
# PUT /api/sites/<site_id>/sections/<section_id>
# ──────────────────────────────────────────────

@sites_bp.route("/<site_id>/sections/<section_id>", methods=["PUT"])
@owned_site_required
def update_section(site_id, section_id):
    data = _json_body()
    content = data.get("content") if data else None
    if not isinstance(content, dict):
        return jsonify({"error": "invalid_request", "message": "content object required."}), 400

    site = site_service.update_section_content(
        site_id, section_id, content, actor_user_id=current_user.id
    )
    return jsonify(site.to_dict())


# ──────────────────────────────────────────────
# POST /api/sites/<site_id>/checkout
# ──────────────────────────────────────────────

@sites_bp.route("/<site_id>/checkout", methods=["POST"])
@owned_site_required
def checkout(site_id):
    """Create a Stripe Checkout Session. The site becomes paid only via webhook."""
    try:
        checkout_url = create_checkout_session(g.site, customer_email=current_user.email)
    except stripe.StripeError as e:
        logger.error(f"Checkout error for {site_id}: {e}", exc_info=True)
        return jsonify({
            "error": "checkout_failed",
            "message": "Something went wrong starting checkout. Please try again.",
        }), 502
    return jsonify({"checkout_url": checkout_url})


# ──────────────────────────────────────────────
# POST /api/sites/<site_id>/deploy
# ──────────────────────────────────────────────

@sites_bp.route("/<site_id>/deploy", methods=["POST"])
@owned_site_required
def deploy(site_id):
    """Publish a paid site. Safe to call repeatedly."""
    result = deployment_service.deploy(site_id)
    return jsonify(result.to_dict())


# ──────────────────────────────────────────────
# POST /api/sites/<site_id>/assets
# ──────────────────────────────────────────────

@sites_bp.route("/<site_id>/assets", methods=["POST"])
@owned_site_required
@limiter.limit("30 per hour")
def upload_asset(site_id):
    file = request.files.get("file")
    ok, error = storage_service.validate_file(file)
    if not ok:
        return jsonify({"error": "invalid_file", "message": error}), 400

    asset = storage_service.upload_asset(file, g.site.owner_id, site_id)
    logger.info(f"Asset {asset['storage_path']} uploaded for {site_id}")
    return jsonify(asset), 201


# ──────────────────────────────────────────────
# DELETE /api/sites/<site_id>
# ──────────────────────────────────────────────

@sites_bp.route("/<site_id>", methods=["DELETE"])
@owned_site_required
def delete_site(site_id):
    site_service.delete_site(site_id, actor_user_id=current_user.id)
    return jsonify({"success": True})

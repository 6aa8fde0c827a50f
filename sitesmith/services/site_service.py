"""Site service: the persistence gateway for sites.

Every write to a Site row goes through here, together with the audit event
that records the transition. Functions commit their own unit of work;
SQLAlchemy failures are rolled back and raised as PersistenceError so the
caller decides whether the write was fatal (archive) or best-effort
(deploy bookkeeping).

Status only moves forward:
    draft -> pending_payment -> paid -> deploying -> deployed
with failed reachable from paid/deploying and retryable back to deploying.
"""

import logging
import re
from datetime import datetime, timezone

import bleach
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from sitesmith.errors import InvalidTransition, PersistenceError, SiteNotFound
from sitesmith.extensions import db
from sitesmith.models.audit import AuditEvent
from sitesmith.models.site import (
    DEPLOYABLE_STATUSES,
    DEPLOYED,
    DEPLOYING,
    DRAFT,
    PAID,
    PAID_STATUSES,
    PENDING_PAYMENT,
    STATUSES,
    Site,
)
from sitesmith.schemas.blueprint import Blueprint
from sitesmith.services import storage_service

logger = logging.getLogger(__name__)

# Columns that are written once, on first entry into their state.
SET_ONCE_COLUMNS = ("paid_at", "deployed_at")


def _sanitize(text):
    """Strip all HTML tags from user-facing text."""
    if text is None:
        return text
    return bleach.clean(text, tags=[], strip=True).strip()


def slugify(value):
    """Lowercase, only a-z 0-9 and hyphens."""
    value = (value or "").lower()
    value = re.sub(r"[^a-z0-9\s-]", "", value)
    value = re.sub(r"[\s-]+", "-", value)
    return value.strip("-")[:100]


def _make_slug(name, site_id):
    suffix = site_id.rsplit("_", 1)[-1][-8:]
    return f"{slugify(name) or 'site'}-{suffix}"


def _commit(what):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database write failed ({what}): {e}")
        raise PersistenceError(f"Could not save {what}") from e


def _log_audit(site_id, action, previous, status, actor_user_id=None, **extra):
    db.session.add(AuditEvent(
        site_id=site_id,
        actor_user_id=actor_user_id,
        action=action,
        metadata_={"from": previous, "to": status, **extra},
    ))


# ──────────────────────────────────────────────
# Reads
# ──────────────────────────────────────────────

def get_site(site_id):
    """Return the Site or raise SiteNotFound.

    Raises PersistenceError when the database cannot be read.
    """
    try:
        site = db.session.get(Site, site_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database read failed (site {site_id}): {e}")
        raise PersistenceError(f"Could not load site {site_id}") from e
    if site is None:
        raise SiteNotFound(site_id)
    return site


def list_sites(owner_id):
    return (
        Site.query
        .filter_by(owner_id=owner_id)
        .order_by(Site.created_at.desc())
        .all()
    )


def find_stale_deploying(older_than):
    """Sites stuck in deploying whose last write precedes older_than."""
    return (
        Site.query
        .filter(Site.status == DEPLOYING, Site.updated_at < older_than)
        .order_by(Site.updated_at)
        .all()
    )


def status_history(site_id):
    """Audit trail of a site's status changes, oldest first."""
    return (
        AuditEvent.query
        .filter_by(site_id=site_id)
        .order_by(AuditEvent.created_at)
        .all()
    )


# ──────────────────────────────────────────────
# Writes
# ──────────────────────────────────────────────

def _apply(site_id, fields):
    site = db.session.get(Site, site_id)
    if site is None:
        site = Site(id=site_id, **fields)
        db.session.add(site)
    else:
        for key, value in fields.items():
            setattr(site, key, value)
    return site


def upsert_site(site_id, **fields):
    """Insert or overwrite a site row. Last writer wins."""
    site = _apply(site_id, fields)
    _commit(f"site {site_id}")
    return site


def set_status(site_id, status, *, action=None, actor_user_id=None, **extra):
    """Write a new status plus any extra columns, with an audit event.

    deployment_url is cleared whenever the new status is not deployed, and
    paid_at / deployed_at keep their first value.
    """
    if status not in STATUSES:
        raise ValueError(f"Unknown site status '{status}'")

    try:
        site = get_site(site_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database read failed (status {status} for {site_id}): {e}")
        raise PersistenceError(f"Could not load site {site_id}") from e
    previous = site.status

    if status == DEPLOYED and not (extra.get("deployment_url") or site.deployment_url):
        raise ValueError("A deployed site needs a deployment_url")

    site.status = status
    if status != DEPLOYED:
        site.deployment_url = None
        extra.pop("deployment_url", None)

    for key, value in extra.items():
        if key in SET_ONCE_COLUMNS and getattr(site, key) is not None:
            continue
        setattr(site, key, value)

    _log_audit(site_id, action or f"site.{status}", previous, status, actor_user_id)
    _commit(f"status {status} for {site_id}")
    logger.info(f"Site {site_id}: {previous} -> {status}")
    return site


def _persist_blueprint(blueprint, owner_id, status, actor_user_id=None):
    if not owner_id:
        raise PersistenceError("An owner is required to save a site")
    if not blueprint.id:
        raise PersistenceError("Blueprint has no id")

    existing = db.session.get(Site, blueprint.id)
    if existing is not None:
        if existing.owner_id != owner_id:
            raise SiteNotFound(blueprint.id)
        if existing.status in PAID_STATUSES or (
            status == DRAFT and existing.status != DRAFT
        ):
            raise InvalidTransition(blueprint.id, existing.status, status)

    previous = existing.status if existing is not None else None
    name = _sanitize(blueprint.name) or "Untitled site"
    site = _apply(blueprint.id, {
        "owner_id": owner_id,
        "name": name,
        "description": _sanitize(blueprint.description),
        "blueprint": blueprint.to_wire(),
        "status": status,
        "slug": existing.slug if existing is not None and existing.slug
        else _make_slug(name, blueprint.id),
    })

    action = "site.archived" if status == PENDING_PAYMENT else "site.saved"
    _log_audit(blueprint.id, action, previous, status, actor_user_id)
    _commit(f"site {blueprint.id}")
    logger.info(f"Site {blueprint.id} saved as {status} for owner {owner_id}")
    return site


def archive(blueprint, owner_id, actor_user_id=None):
    """Persist a composed blueprint, ready for payment (pending_payment).

    Upsert keyed by the blueprint id. Raises PersistenceError when the
    owner is missing or the write fails, InvalidTransition when the site
    has already been paid for.
    """
    return _persist_blueprint(blueprint, owner_id, PENDING_PAYMENT, actor_user_id)


def create_draft(blueprint, owner_id, actor_user_id=None):
    return _persist_blueprint(blueprint, owner_id, DRAFT, actor_user_id)


def mark_paid(site_id, payment_id=None, amount=None):
    """Record a confirmed payment. Only the verified webhook path calls this.

    A site already paid (or further along) keeps its status; only missing
    payment details are filled in.
    """
    site = get_site(site_id)

    if site.status in PAID_STATUSES:
        if site.payment_id is None and payment_id:
            site.payment_id = payment_id
            site.amount = amount
            _commit(f"payment for {site_id}")
        logger.info(f"Site {site_id} already paid ({site.status}), not regressing")
        return site

    if site.status not in (DRAFT, PENDING_PAYMENT):
        raise InvalidTransition(site_id, site.status, PAID)

    return set_status(
        site_id,
        PAID,
        paid_at=datetime.now(timezone.utc),
        payment_id=payment_id,
        amount=amount,
    )


def claim_for_deploy(site_id):
    """Atomically move a site from paid/failed to deploying.

    Single conditional UPDATE; returns True only for the caller whose
    statement changed the row, so concurrent deploys cannot both publish.
    """
    try:
        previous = db.session.scalar(select(Site.status).where(Site.id == site_id))
        result = db.session.execute(
            update(Site)
            .where(Site.id == site_id, Site.status.in_(DEPLOYABLE_STATUSES))
            .values(status=DEPLOYING, deployment_url=None)
        )
        claimed = result.rowcount == 1
        if claimed:
            _log_audit(site_id, "site.deploying", previous, DEPLOYING)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise PersistenceError(f"Could not claim {site_id} for deploy") from e

    if claimed:
        logger.info(f"Site {site_id}: {previous} -> {DEPLOYING} (claimed)")
    return claimed


def update_section_content(site_id, section_id, content, actor_user_id=None):
    """Replace one section's content map and re-validate the blueprint."""
    site = get_site(site_id)
    if site.status == DEPLOYING:
        raise InvalidTransition(
            site_id, site.status, site.status,
            message=f"Site '{site_id}' is being deployed and cannot be edited",
        )

    blueprint = Blueprint.from_wire(site.blueprint).with_section_content(section_id, content)
    site.blueprint = blueprint.to_wire()
    db.session.add(AuditEvent(
        site_id=site_id,
        actor_user_id=actor_user_id,
        action="site.section_updated",
        metadata_={"section_id": section_id},
    ))
    _commit(f"section {section_id} of {site_id}")
    return site


def delete_site(site_id, actor_user_id=None):
    """Delete a site after purging its stored assets.

    If the purge fails the row is kept (StorageError propagates) so the
    assets are never orphaned.
    """
    site = get_site(site_id)
    removed = storage_service.purge_site_assets(site.owner_id, site.id)

    previous = site.status
    db.session.delete(site)
    _log_audit(site_id, "site.deleted", previous, None, actor_user_id, assets_removed=removed)
    _commit(f"deletion of {site_id}")
    logger.info(f"Deleted site {site_id} ({removed} assets purged)")

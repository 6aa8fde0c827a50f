"""Deployment service: publishes a paid site and records the outcome.

deploy() is idempotent: a deployed site returns its recorded URL, a site
another caller is deploying returns the URL it will get, and only the
caller that wins the paid/failed -> deploying claim actually publishes.

Bookkeeping writes around the publish are best-effort: a database failure
there is logged and the deploy carries on. A site left in deploying by such
a failure is picked up by reconcile_stale_deployments() (CLI) or by the
stale check the next deploy() does on read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from flask import current_app

from sitesmith.errors import PersistenceError, SiteNotDeployable, TransportError
from sitesmith.models.site import DEPLOYABLE_STATUSES, DEPLOYED, DEPLOYING, FAILED
from sitesmith.schemas.blueprint import Blueprint
from sitesmith.services import site_service
from sitesmith.services.publish_transport import get_transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeploymentResult:
    success: bool
    url: str | None
    timestamp: datetime

    def to_dict(self):
        return {
            "success": self.success,
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
        }


def _utcnow():
    return datetime.now(timezone.utc)


def _as_utc(value):
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def deployment_url_for(site_id):
    """The public URL a site is served from once deployed."""
    return f"https://{site_id}.{current_app.config['HOSTING_DOMAIN']}"


def _stale_after():
    return timedelta(seconds=current_app.config.get("DEPLOY_STALE_AFTER_SECONDS", 900))


def is_stale(site, now=None):
    """True when a deploying site has not been written to for too long."""
    updated_at = _as_utc(site.updated_at)
    if updated_at is None:
        return True
    return (now or _utcnow()) - updated_at > _stale_after()


def _record(site_id, status, **extra):
    """Best-effort status write; failures are logged, never raised."""
    try:
        site_service.set_status(site_id, status, **extra)
    except PersistenceError as e:
        logger.error(
            f"Could not record {status} for {site_id}, leaving it for "
            f"reconciliation: {e}",
            exc_info=True,
        )


def deploy(site_id, transport=None):
    """Publish a site and return a DeploymentResult.

    Raises SiteNotFound, SiteNotDeployable (not paid yet or unknown
    status) and TransportError (site is left failed, retryable).
    """
    site = site_service.get_site(site_id)

    if site.status == DEPLOYED:
        logger.info(f"Site {site_id} already deployed, returning recorded URL")
        return DeploymentResult(
            True, site.deployment_url, _as_utc(site.deployed_at) or _utcnow()
        )

    if site.status == DEPLOYING:
        if not is_stale(site):
            logger.info(f"Site {site_id} is being deployed by another request")
            return DeploymentResult(True, deployment_url_for(site_id), _utcnow())
        try:
            site = reconcile_site(site, transport)
        except (TransportError, PersistenceError) as e:
            logger.warning(f"Could not reconcile stale deploy of {site_id}: {e}")
            return DeploymentResult(True, deployment_url_for(site_id), _utcnow())
        if site.status == DEPLOYED:
            return DeploymentResult(True, site.deployment_url, _as_utc(site.deployed_at))

    if site.status not in DEPLOYABLE_STATUSES:
        raise SiteNotDeployable(site_id, site.status)

    blueprint = Blueprint.from_wire(site.blueprint)

    # --- Claim (paid|failed -> deploying) ---
    try:
        claimed = site_service.claim_for_deploy(site_id)
    except PersistenceError as e:
        logger.error(f"Deploy claim for {site_id} not recorded, publishing anyway: {e}")
        claimed = True

    if not claimed:
        logger.info(f"Deploy of {site_id} already claimed elsewhere, not publishing")
        return DeploymentResult(True, deployment_url_for(site_id), _utcnow())

    # --- Publish ---
    transport = transport or get_transport()
    try:
        transport.publish(site_id, blueprint)
    except TransportError:
        _record(site_id, FAILED)
        raise

    # --- Record ---
    url = deployment_url_for(site_id)
    deployed_at = _utcnow()
    _record(site_id, DEPLOYED, deployment_url=url, deployed_at=deployed_at)
    logger.info(f"Site {site_id} deployed at {url}")
    return DeploymentResult(True, url, deployed_at)


# ──────────────────────────────────────────────
# Reconciliation
# ──────────────────────────────────────────────

def reconcile_site(site, transport=None):
    """Settle a site stuck in deploying by asking the host what is live.

    Manifest present -> deployed with its URL; absent -> failed (retryable).
    Returns the refreshed Site. TransportError and PersistenceError propagate.
    """
    transport = transport or get_transport()
    site_id = site.id

    if transport.is_published(site_id):
        site_service.set_status(
            site_id,
            DEPLOYED,
            action="site.reconciled",
            deployment_url=deployment_url_for(site_id),
            deployed_at=_utcnow(),
        )
    else:
        site_service.set_status(site_id, FAILED, action="site.reconciled")

    site = site_service.get_site(site_id)
    logger.info(f"Reconciled {site_id}: {DEPLOYING} -> {site.status}")
    return site


def reconcile_stale_deployments(stale_after=None, transport=None):
    """Reconcile every site stuck in deploying for longer than stale_after seconds.

    Returns a summary dict: checked, deployed, failed, errors.
    """
    window = timedelta(seconds=stale_after) if stale_after is not None else _stale_after()
    cutoff = _utcnow() - window
    transport = transport or get_transport()

    summary = {"checked": 0, "deployed": 0, "failed": 0, "errors": 0}
    for site in site_service.find_stale_deploying(cutoff):
        site_id = site.id
        summary["checked"] += 1
        try:
            site = reconcile_site(site, transport)
        except (TransportError, PersistenceError) as e:
            logger.error(f"Reconciliation of {site_id} failed: {e}")
            summary["errors"] += 1
            continue
        summary["deployed" if site.status == DEPLOYED else "failed"] += 1

    logger.info(f"Reconciliation sweep: {summary}")
    return summary

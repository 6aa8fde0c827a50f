"""Shared test fixtures for the Sitesmith test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: an owner, a second user, and one site per lifecycle status
- spy_transport: in-memory publish transport that records every call
"""

from datetime import datetime, timezone

import pytest

from sitesmith import create_app
from sitesmith.errors import TransportError
from sitesmith.extensions import db as _db
from sitesmith.models.site import (
    DEPLOYED,
    DRAFT,
    PAID,
    PENDING_PAYMENT,
    Site,
)
from sitesmith.models.user import User
from sitesmith.services.publish_transport import PublishResult, PublishTransport
from sitesmith.services.template_catalog import TemplateCatalog


def make_blueprint(site_id, template_id="s2-health", name="Care Clinic"):
    """A valid blueprint document from the catalog, with its own id."""
    blueprint = TemplateCatalog().blueprint_for(template_id)
    return blueprint.model_copy(update={"id": site_id, "name": name})


def make_site(session, owner_id, site_id, status, **extra):
    site = Site(
        id=site_id,
        owner_id=owner_id,
        name=f"Site {site_id}",
        blueprint=make_blueprint(site_id).to_wire(),
        status=status,
        **extra,
    )
    session.add(site)
    session.flush()
    return site


def login(client, user_id):
    """Log a user in through the Flask-Login session key."""
    with client.session_transaction() as sess:
        sess["_user_id"] = user_id
        sess["_fresh"] = True


class SpyTransport(PublishTransport):
    """Publish transport double: records publishes, optionally fails."""

    def __init__(self, fail=False, published=None):
        self.fail = fail
        self.published = set(published or ())
        self.calls = []

    def publish(self, site_id, blueprint):
        self.calls.append(site_id)
        if self.fail:
            raise TransportError(f"Publishing {site_id} failed: 530 Login incorrect")
        self.published.add(site_id)
        return PublishResult(path=f"/public_html/{site_id}")

    def is_published(self, site_id):
        return site_id in self.published


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def csrf_enabled(app):
    """Turn CSRF protection on as in production for one test."""
    app.config["WTF_CSRF_ENABLED"] = True
    yield
    app.config["WTF_CSRF_ENABLED"] = False


@pytest.fixture
def spy_transport():
    return SpyTransport()


@pytest.fixture
def seed_data(app, db_session):
    """Seed an owner, another user, and sites in each reachable status.

    Returns a dict of plain ids so tests can use them after the session
    expires the objects.
    """
    owner = User(email="owner@sitesmith.test", full_name="Olive Owner")
    other = User(email="other@sitesmith.test", full_name="Otto Other")
    _db.session.add_all([owner, other])
    _db.session.flush()

    make_site(_db.session, owner.id, "site_draft0001", DRAFT)
    make_site(_db.session, owner.id, "site_pending0001", PENDING_PAYMENT)
    now = datetime.now(timezone.utc)
    make_site(_db.session, owner.id, "site_paid0001", PAID, paid_at=now)
    make_site(
        _db.session, owner.id, "site_live0001", DEPLOYED,
        deployment_url="https://site_live0001.sites.test",
        paid_at=now,
        deployed_at=now,
    )
    _db.session.commit()

    return {
        "owner_id": owner.id,
        "other_id": other.id,
        "draft_id": "site_draft0001",
        "pending_id": "site_pending0001",
        "paid_id": "site_paid0001",
        "deployed_id": "site_live0001",
    }

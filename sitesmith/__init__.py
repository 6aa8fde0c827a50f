import os
import logging

import click
from flask import Flask, jsonify, send_from_directory

from sitesmith.config import config_by_name
from sitesmith.errors import SitesmithError
from sitesmith.extensions import db, migrate, login_manager, csrf, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from sitesmith import models  # noqa: F401

    # --- Register blueprints ---
    from sitesmith.blueprints.sites import sites_bp
    from sitesmith.blueprints.webhooks import webhooks_bp

    app.register_blueprint(sites_bp)
    app.register_blueprint(webhooks_bp)

    # Exempt webhooks from CSRF: raw body needed for Stripe signature verification
    csrf.exempt(webhooks_bp)
    # JSON API: no form to carry a token; session cookie is SameSite=Lax
    csrf.exempt(sites_bp)

    # --- Local file serving (dev only) ---
    if app.debug:
        @app.route("/uploads/<path:filepath>")
        def serve_upload(filepath):
            """Serve uploaded assets from instance/uploads in dev mode."""
            upload_dir = os.path.join(app.instance_path, "uploads")
            return send_from_directory(upload_dir, filepath)

    # --- Error handlers ---
    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_error_handlers(app):
    """JSON bodies for every error the API can return."""

    @app.errorhandler(SitesmithError)
    def handle_service_error(e):
        if e.status_code >= 500:
            app.logger.error(f"{e.code}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": "bad_request", "message": "Bad request."}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "not_found", "message": "Not found."}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "method_not_allowed", "message": "Method not allowed."}), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": "rate_limited", "message": "Too many requests."}), 429

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "internal_error", "message": "Something went wrong."}), 500


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("reconcile-deployments")
    @click.option(
        "--stale-after",
        type=int,
        default=None,
        help="Seconds a site may sit in deploying (default: DEPLOY_STALE_AFTER_SECONDS).",
    )
    def reconcile_deployments(stale_after):
        """Settle sites stuck in deploying by checking the hosting target.

        Manifest live -> deployed, missing -> failed (retryable).

        Usage:
            flask reconcile-deployments
            flask reconcile-deployments --stale-after 300
        """
        from sitesmith.services.deployment_service import reconcile_stale_deployments

        summary = reconcile_stale_deployments(stale_after=stale_after)
        click.echo(
            f"Checked {summary['checked']}: {summary['deployed']} deployed, "
            f"{summary['failed']} failed, {summary['errors']} errors"
        )

    @app.cli.command("list-templates")
    def list_templates():
        """Print the base templates a blueprint can be composed from."""
        from sitesmith.services.template_catalog import TemplateCatalog

        for template in TemplateCatalog().list():
            sections = ", ".join(template.sections)
            click.echo(f"{template.id:<14} {template.category:<12} {sections}")

    @app.cli.command("seed-owner")
    @click.option("--email", default="owner@sitesmith.local", help="Owner email")
    @click.option("--name", default="Demo Owner", help="Owner full name")
    def seed_owner(email, name):
        """Create a site owner for local development.

        Usage:
            flask seed-owner
            flask seed-owner --email me@example.com --name "Jane Doe"
        """
        from sitesmith.models.user import User

        existing = User.query.filter_by(email=email).first()
        if existing:
            click.echo(f"Owner already exists: {email} (id: {existing.id})")
            return

        owner = User(email=email, full_name=name)
        db.session.add(owner)
        db.session.commit()
        click.echo(f"Created owner: {email} (id: {owner.id})")

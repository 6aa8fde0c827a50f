"""Exception hierarchy for the blueprint lifecycle.

Every error raised on purpose by the services derives from SitesmithError,
carries an HTTP status code and a machine-readable code, and is rendered as
JSON by the handler registered in create_app().

Categories:
- Validation (malformed blueprint, unknown template, impossible merge)
- Lifecycle (missing site, illegal status transition, not deployable yet)
- Dependencies (persistence, generative service, publish transport, storage)
"""


class SitesmithError(Exception):
    """Base class for all service errors."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message, *, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self):
        payload = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# ── Validation ────────────────────────────────────────────────────


class BlueprintValidationError(SitesmithError):
    """The blueprint document does not match the schema."""

    status_code = 422
    code = "invalid_blueprint"


class TemplateNotFound(SitesmithError):
    status_code = 404
    code = "template_not_found"

    def __init__(self, template_id):
        super().__init__(
            f"Base template '{template_id}' not found",
            details={"template_id": template_id},
        )
        self.template_id = template_id


class CompositionError(SitesmithError):
    """The composer cannot merge synthesized content into the template."""

    status_code = 422
    code = "composition_failed"


# ── Lifecycle ─────────────────────────────────────────────────────


class SiteNotFound(SitesmithError):
    status_code = 404
    code = "site_not_found"

    def __init__(self, site_id):
        super().__init__(f"Site '{site_id}' not found", details={"site_id": site_id})
        self.site_id = site_id


class InvalidTransition(SitesmithError):
    """A status change would move a site backwards in its lifecycle."""

    status_code = 409
    code = "invalid_transition"

    def __init__(self, site_id, current, target, message=None):
        super().__init__(
            message or f"Site '{site_id}' cannot move from '{current}' to '{target}'",
            details={"site_id": site_id, "current": current, "target": target},
        )
        self.current = current
        self.target = target


class SiteNotDeployable(SitesmithError):
    """Deploy requested for a site that has not been paid for."""

    status_code = 409
    code = "not_deployable"

    def __init__(self, site_id, status):
        super().__init__(
            f"Site '{site_id}' is not payable/deployable yet (status: {status})",
            details={"site_id": site_id, "status": status},
        )
        self.status = status


# ── Dependencies ──────────────────────────────────────────────────


class PersistenceError(SitesmithError):
    code = "persistence_failed"


class GenerationError(SitesmithError):
    """The generative synthesis service failed. Recovered by the composer."""

    status_code = 502
    code = "generation_failed"


class TransportError(SitesmithError):
    """Connection, auth or write failure while publishing a site."""

    status_code = 502
    code = "publish_failed"


class StorageError(SitesmithError):
    status_code = 502
    code = "storage_failed"

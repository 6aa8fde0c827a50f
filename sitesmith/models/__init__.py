# Models package: import all models here so Alembic can discover them.

from sitesmith.models.user import User  # noqa: F401
from sitesmith.models.site import Site  # noqa: F401
from sitesmith.models.stripe_event import StripeEvent  # noqa: F401
from sitesmith.models.audit import AuditEvent  # noqa: F401

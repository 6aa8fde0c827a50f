"""
Custom route decorators for access control.

- owned_site_required: ensures user is logged in AND owns the site named by
  the site_id URL argument. The loaded Site is stored on g.site.
"""

from functools import wraps

from flask import abort, g
from flask_login import current_user, login_required


def owned_site_required(f):
    """Require login + ownership of <site_id>.

    A site owned by someone else answers 404, same as a missing one, so
    site ids cannot be guessed at.
    """

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        from sitesmith.extensions import db
        from sitesmith.models.site import Site

        site = db.session.get(Site, kwargs.get("site_id"))
        if site is None or site.owner_id != current_user.id:
            abort(404)

        g.site = site
        return f(*args, **kwargs)

    return decorated

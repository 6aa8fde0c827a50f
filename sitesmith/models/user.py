"""User model.

The identity that owns sites. Credentials and login flows are handled by
the external auth collaborator; we only need a stable id for Flask-Login's
current_user and for scoping sites and assets.
"""

import uuid

from flask_login import UserMixin

from sitesmith.extensions import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    sites = db.relationship("Site", back_populates="owner", lazy="dynamic")
    audit_events = db.relationship(
        "AuditEvent", back_populates="actor", lazy="dynamic"
    )

    def __repr__(self):
        return f"<User {self.email}>"

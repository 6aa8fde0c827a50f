"""Audit event model.

One row per site lifecycle transition (archived, paid, deploying, deployed,
failed, reconciled, deleted) with the previous and new status in metadata.
Read back in order it is the status history of a site.
"""

import uuid
from datetime import datetime, timezone

from sitesmith.extensions import db


class AuditEvent(db.Model):
    __tablename__ = "audit_events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    site_id = db.Column(db.String(64), nullable=True, index=True)
    actor_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    action = db.Column(db.String(255), nullable=False)  # e.g. "site.deployed"
    metadata_ = db.Column(
        "metadata", db.JSON, default=dict
    )  # extra context, named metadata_ to avoid clashing with SQLAlchemy's metadata
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=db.func.now(),
    )  # python-side default keeps sub-second order for the status history

    # --- Relationships ---
    actor = db.relationship("User", back_populates="audit_events")

    def __repr__(self):
        return f"<AuditEvent {self.action}>"

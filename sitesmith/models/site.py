"""Site model.

The durable record of one generated website: its blueprint document and
its lifecycle status. Only sitesmith.services.site_service writes to it.

Lifecycle:
    draft -> pending_payment -> paid -> deploying -> deployed
                                  \\          \\
                                   `-> failed <-'   (failed -> deploying on retry)

deployment_url is set if and only if status == "deployed".
"""

from sitesmith.extensions import db

DRAFT = "draft"
PENDING_PAYMENT = "pending_payment"
PAID = "paid"
DEPLOYING = "deploying"
DEPLOYED = "deployed"
FAILED = "failed"

# Lifecycle order; "failed" sits beside paid/deploying rather than in the line.
STATUS_ORDER = [DRAFT, PENDING_PAYMENT, PAID, DEPLOYING, DEPLOYED]
STATUSES = STATUS_ORDER + [FAILED]

# Statuses from which the site has been paid for.
PAID_STATUSES = (PAID, DEPLOYING, DEPLOYED, FAILED)

# Statuses a deploy may start from.
DEPLOYABLE_STATUSES = (PAID, FAILED)


class Site(db.Model):
    __tablename__ = "sites"

    STATUSES = STATUSES

    id = db.Column(db.String(64), primary_key=True)  # site_<hex>, set by the composer
    owner_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    slug = db.Column(db.String(120), unique=True, nullable=True)
    blueprint = db.Column(db.JSON, nullable=False)
    status = db.Column(
        db.String(30), default=DRAFT, nullable=False, index=True
    )  # draft | pending_payment | paid | deploying | deployed | failed
    deployment_url = db.Column(db.String(500), nullable=True)

    # --- Payment (recorded from the verified Stripe webhook) ---
    payment_id = db.Column(db.String(255), nullable=True)
    amount = db.Column(db.Integer, nullable=True)  # cents
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deployed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    owner = db.relationship("User", back_populates="sites")

    @property
    def is_known_status(self):
        return self.status in STATUSES

    def to_dict(self, include_blueprint=True):
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "slug": self.slug,
            "status": self.status,
            "deployment_url": self.deployment_url,
            "paid_at": _iso(self.paid_at),
            "deployed_at": _iso(self.deployed_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_blueprint:
            data["blueprint"] = self.blueprint
        return data

    def __repr__(self):
        return f"<Site {self.id} ({self.status})>"


def _iso(value):
    return value.isoformat() if value else None

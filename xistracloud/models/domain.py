"""Custom domain model.

A domain attached to a project. Verification moves it from pending to
verified or failed; dns_records holds the CNAME + TXT records the owner
has to create at their registrar.
"""

import uuid

from xistracloud.extensions import db


class Domain(db.Model):
    __tablename__ = "domains"

    STATUSES = ["pending", "verified", "failed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    domain = db.Column(db.String(253), unique=True, nullable=False)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = db.Column(
        db.String(50), default="pending", nullable=False
    )  # pending | verified | failed
    ssl_enabled = db.Column(db.Boolean, default=False)
    dns_records = db.Column(db.JSON, default=dict)
    verification_token = db.Column(db.String(64), nullable=False)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="domains")

    def to_dict(self):
        return {
            "id": self.id,
            "domain": self.domain,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "status": self.status,
            "ssl_enabled": bool(self.ssl_enabled),
            "dns_records": self.dns_records or {},
            "verification_token": self.verification_token,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Domain {self.domain} ({self.status})>"

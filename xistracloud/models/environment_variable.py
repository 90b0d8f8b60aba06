"""Environment variable model — key/value pairs scoped to a project."""

import uuid

from xistracloud.extensions import db


class EnvironmentVariable(db.Model):
    __tablename__ = "environment_variables"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    key = db.Column(db.String(100), nullable=False)
    value = db.Column(db.Text, nullable=False)
    is_secret = db.Column(db.Boolean, default=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.UniqueConstraint("project_id", "key", name="uq_project_env_key"),
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="environment_variables")

    def to_dict(self, reveal=False):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "key": self.key,
            "value": self.value if (reveal or not self.is_secret) else "********",
            "is_secret": bool(self.is_secret),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<EnvironmentVariable {self.key} project={self.project_id}>"

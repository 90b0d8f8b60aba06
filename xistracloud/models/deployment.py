"""Deployment model.

Audit trail: one row per deploy attempt of a project, independent of the
project's current status.
"""

import uuid

from xistracloud.extensions import db


class Deployment(db.Model):
    __tablename__ = "deployments"

    STATUSES = ["building", "success", "failed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = db.Column(
        db.String(50), default="building", nullable=False
    )  # building | success | failed
    method = db.Column(db.String(50), nullable=True)  # winning deploy strategy
    branch = db.Column(db.String(255), nullable=True)
    commit_hash = db.Column(db.String(64), nullable=True)
    commit_message = db.Column(db.String(500), nullable=True)
    duration_ms = db.Column(db.Integer, nullable=True)
    error = db.Column(db.Text, nullable=True)  # raw stderr of the last failing command
    output = db.Column(db.Text, nullable=True)  # collected command output
    started_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    finished_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="deployments")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "status": self.status,
            "method": self.method,
            "branch": self.branch,
            "commit_hash": self.commit_hash,
            "commit_message": self.commit_message,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Deployment {self.id[:8]} project={self.project_id} ({self.status})>"

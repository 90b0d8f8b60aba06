"""Backup model.

Backup records per project. Scheduling metadata only; the actual snapshot
job runs outside this service.
"""

import uuid

from xistracloud.extensions import db


class Backup(db.Model):
    __tablename__ = "backups"

    TYPES = ["full", "database", "files"]
    SCHEDULES = ["manual", "daily", "weekly"]
    STATUSES = ["pending", "running", "completed", "failed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(20), default="full", nullable=False)  # full | database | files
    schedule = db.Column(db.String(20), default="manual", nullable=False)  # manual | daily | weekly
    status = db.Column(db.String(20), default="pending", nullable=False)
    size = db.Column(db.BigInteger, nullable=True)  # bytes
    retention_days = db.Column(db.Integer, default=30, nullable=False)
    scheduled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="backups")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "name": self.name,
            "type": self.type,
            "schedule": self.schedule,
            "status": self.status,
            "size": self.size,
            "retention_days": self.retention_days,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Backup {self.name} ({self.type})>"

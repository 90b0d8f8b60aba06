"""System models.

- SystemLog: activity feed (deploys, domain changes, user actions). Named
  metadata_ to avoid the SQLAlchemy declarative attribute clash.
- SystemMetric: host resource snapshots for the dashboard.
"""

import uuid

from xistracloud.extensions import db


class SystemLog(db.Model):
    __tablename__ = "system_logs"

    LEVELS = ["info", "success", "warning", "error"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    level = db.Column(db.String(20), default="info", nullable=False, index=True)
    message = db.Column(db.String(500), nullable=False)
    details = db.Column(db.Text, nullable=True)
    source = db.Column(
        db.String(50), default="system", nullable=False, index=True
    )  # deployment | build | container | domain | dns | projects | auth | system
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    metadata_ = db.Column("metadata", db.JSON, default=dict)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now(), index=True
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="logs")

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": self.created_at.isoformat() if self.created_at else None,
            "level": self.level,
            "message": self.message,
            "details": self.details,
            "source": self.source,
            "project_id": self.project_id,
            "project_name": self.project.name if self.project else None,
            "metadata": self.metadata_ or {},
        }

    def __repr__(self):
        return f"<SystemLog {self.level}: {self.message[:40]}>"


class SystemMetric(db.Model):
    __tablename__ = "system_metrics"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    cpu_usage = db.Column(db.Float, nullable=True)  # percent
    memory_usage = db.Column(db.Float, nullable=True)  # percent
    disk_usage = db.Column(db.Float, nullable=True)  # percent
    network_in = db.Column(db.BigInteger, nullable=True)  # bytes
    network_out = db.Column(db.BigInteger, nullable=True)  # bytes
    uptime = db.Column(db.BigInteger, nullable=True)  # seconds
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now(), index=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "cpu_usage": self.cpu_usage,
            "memory_usage": self.memory_usage,
            "disk_usage": self.disk_usage,
            "network_in": self.network_in,
            "network_out": self.network_out,
            "uptime": self.uptime,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<SystemMetric cpu={self.cpu_usage} mem={self.memory_usage}>"

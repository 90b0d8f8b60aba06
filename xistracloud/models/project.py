"""Project model.

A deployed (or deploying) application. Created on deploy request, mutated
on status transitions, deleted on user request. Deleting a project cascades
to its domains, deployments, environment variables and backups.
"""

import uuid

from xistracloud.extensions import db


class Project(db.Model):
    __tablename__ = "projects"

    # -- Valid statuses --
    STATUSES = ["pending", "building", "deployed", "failed", "stopped"]

    # -- Valid status transitions (enforced in deploy_service) --
    VALID_TRANSITIONS = {
        "pending": ["building", "failed"],
        "building": ["deployed", "failed"],
        "deployed": ["building", "stopped"],
        "failed": ["building"],
        "stopped": ["building"],
    }

    # -- How the app ended up running --
    DEPLOY_TYPES = ["docker-compose", "dockerfile", "generated", "template"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True, index=True
    )
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    repository = db.Column(db.String(500), nullable=True)  # git URL, or docker:<template>
    branch = db.Column(db.String(255), nullable=True)
    framework = db.Column(db.String(100), default="unknown")
    status = db.Column(
        db.String(50), default="pending", nullable=False, index=True
    )  # pending | building | deployed | failed | stopped
    deploy_type = db.Column(
        db.String(50), nullable=True
    )  # docker-compose | dockerfile | generated | template
    template_id = db.Column(db.String(50), nullable=True)  # set for catalogue apps
    container_id = db.Column(db.String(128), nullable=True)
    image_id = db.Column(db.String(255), nullable=True)
    compose_path = db.Column(db.String(500), nullable=True)
    port = db.Column(db.Integer, nullable=True)  # published host port
    url = db.Column(db.String(500), nullable=True)
    access_info = db.Column(db.JSON, default=dict)  # credentials / admin URLs for templates
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    owner = db.relationship("User", back_populates="projects")
    domains = db.relationship(
        "Domain",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    deployments = db.relationship(
        "Deployment",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="Deployment.created_at.desc()",
    )
    environment_variables = db.relationship(
        "EnvironmentVariable",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    backups = db.relationship(
        "Backup",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    logs = db.relationship(
        "SystemLog",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def can_transition_to(self, new_status):
        return new_status in self.VALID_TRANSITIONS.get(self.status, [])

    def to_dict(self, with_counts=False):
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "repository": self.repository,
            "branch": self.branch,
            "framework": self.framework,
            "status": self.status,
            "deploy_type": self.deploy_type,
            "template_id": self.template_id,
            "container_id": self.container_id,
            "image_id": self.image_id,
            "compose_path": self.compose_path,
            "port": self.port,
            "url": self.url,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_counts:
            data["deployment_count"] = self.deployments.count()
            data["env_var_count"] = self.environment_variables.count()
        return data

    def __repr__(self):
        return f"<Project {self.name} ({self.status})>"

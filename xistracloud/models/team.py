"""Team models.

- TeamMember: a collaborator on an account owner's projects.
- TeamInvitation: one-time invite token with expiration. Accepting it
  creates the TeamMember row.
"""

import uuid
from datetime import datetime, timezone

from xistracloud.extensions import db


class TeamMember(db.Model):
    __tablename__ = "team_members"

    ROLES = ["admin", "developer", "viewer"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    owner_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False, index=True
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )  # set once the invitee has an account
    name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), default="developer", nullable=False)
    status = db.Column(db.String(20), default="active", nullable=False)  # active | suspended
    joined_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint("owner_id", "email", name="uq_team_owner_email"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }

    def __repr__(self):
        return f"<TeamMember {self.email} ({self.role})>"


class TeamInvitation(db.Model):
    __tablename__ = "team_invitations"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    owner_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False, index=True
    )
    email = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), default="developer", nullable=False)
    message = db.Column(db.String(500), nullable=True)
    token = db.Column(
        db.String(64), unique=True, nullable=False
    )  # cryptographically random
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    invited_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    @property
    def is_expired(self):
        now = datetime.now(timezone.utc)
        expires = self.expires_at
        # SQLite returns naive datetimes; Postgres returns aware ones.
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return now > expires

    @property
    def is_accepted(self):
        return self.accepted_at is not None

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "message": self.message,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "invited_at": self.invited_at.isoformat() if self.invited_at else None,
        }

    def __repr__(self):
        return f"<TeamInvitation token={self.token[:8]}... email={self.email}>"

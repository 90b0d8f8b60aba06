"""Team service — invitations and membership.

Lifecycle of an invitation token:
- invite: create a one-time token tied to the owner's account and email it
- accept: the invitee (logged in with the invited email) consumes the token,
  which creates the TeamMember row
- revoke: the owner deletes a pending invitation
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from flask import current_app

from xistracloud.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from xistracloud.extensions import db
from xistracloud.models.team import TeamInvitation, TeamMember
from xistracloud.services import email_service, log_service

logger = logging.getLogger(__name__)

INVITE_EXPIRES_DAYS = 7


def list_team(owner):
    """Members plus still-pending invitations for ``owner``'s account."""
    members = (
        TeamMember.query.filter_by(owner_id=owner.id)
        .order_by(TeamMember.joined_at.asc())
        .all()
    )
    invitations = [
        inv
        for inv in TeamInvitation.query.filter_by(owner_id=owner.id, accepted_at=None)
        .order_by(TeamInvitation.invited_at.desc())
        .all()
        if not inv.is_expired
    ]
    return members, invitations


def invite_member(owner, email, role="developer", message=None):
    """Create an invitation and email it. Returns the TeamInvitation."""
    email = email.lower().strip()
    if email == owner.email:
        raise ValidationError("You cannot invite yourself")
    if TeamMember.query.filter_by(owner_id=owner.id, email=email).first():
        raise ConflictError("This user is already a team member")

    pending = TeamInvitation.query.filter_by(
        owner_id=owner.id, email=email, accepted_at=None
    ).all()
    if any(not inv.is_expired for inv in pending):
        raise ConflictError("An invitation is already pending for this email")

    invitation = TeamInvitation(
        owner_id=owner.id,
        email=email,
        role=role,
        message=message,
        token=secrets.token_urlsafe(32),
        expires_at=datetime.now(timezone.utc) + timedelta(days=INVITE_EXPIRES_DAYS),
    )
    db.session.add(invitation)
    log_service.record(
        "info",
        f"Invitation sent to {email} ({role})",
        source="team",
        user_id=owner.id,
        commit=False,
    )
    db.session.commit()

    base_url = current_app.config["APP_BASE_URL"].rstrip("/")
    email_service.send_email(
        to=email,
        subject="You're invited to join a team on XistraCloud",
        template="emails/team_invite.html",
        context={
            "inviter": owner.full_name or owner.email,
            "role": role,
            "message": message,
            "invite_url": f"{base_url}/team/accept?token={invitation.token}",
            "expires_at": invitation.expires_at,
        },
    )
    return invitation


def validate_token(token):
    """Look up an invitation token. Raises if it cannot be used."""
    invitation = TeamInvitation.query.filter_by(token=token).first() if token else None
    if invitation is None:
        raise NotFoundError("Invalid invitation link", code="INVITATION_NOT_FOUND")
    if invitation.is_accepted:
        raise ConflictError("This invitation has already been accepted")
    if invitation.is_expired:
        raise ValidationError("This invitation has expired", code="INVITATION_EXPIRED")
    return invitation


def accept_invitation(token, user):
    """Consume an invitation for ``user``. Returns the new TeamMember."""
    invitation = validate_token(token)
    if invitation.email != user.email.lower():
        raise ForbiddenError("This invitation is reserved for a different email address")

    member = TeamMember(
        owner_id=invitation.owner_id,
        user_id=user.id,
        name=user.full_name,
        email=invitation.email,
        role=invitation.role,
        status="active",
    )
    invitation.accepted_at = datetime.now(timezone.utc)
    db.session.add(member)
    log_service.record(
        "success",
        f"{user.email} joined the team as {invitation.role}",
        source="team",
        user_id=invitation.owner_id,
        commit=False,
    )
    db.session.commit()
    return member


def revoke_invitation(owner, invitation_id):
    invitation = db.session.get(TeamInvitation, invitation_id)
    if invitation is None or invitation.owner_id != owner.id:
        raise NotFoundError("Invitation not found")
    db.session.delete(invitation)
    db.session.commit()


def remove_member(owner, member_id):
    member = db.session.get(TeamMember, member_id)
    if member is None or member.owner_id != owner.id:
        raise NotFoundError("Team member not found")
    email = member.email
    db.session.delete(member)
    log_service.record(
        "warning",
        f"{email} removed from the team",
        source="team",
        user_id=owner.id,
        commit=False,
    )
    db.session.commit()

"""Team blueprint — /team/*

Route Map:
  GET    /team                                 — Members + pending invitations
  POST   /team/invitations                     — Invite by email
  POST   /team/invitations/<token>/accept      — Accept (as the invited user)
  DELETE /team/invitations/<id>                — Revoke an invitation
  DELETE /team/members/<id>                    — Remove a member
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from xistracloud.extensions import limiter
from xistracloud.schemas import TeamInviteSchema, validate_json
from xistracloud.services import team_service

team_bp = Blueprint("team", __name__, url_prefix="/team")


@team_bp.route("")
@login_required
def list_team():
    members, invitations = team_service.list_team(current_user)
    return jsonify({
        "members": [m.to_dict() for m in members],
        "invitations": [i.to_dict() for i in invitations],
    })


@team_bp.route("/invitations", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
@validate_json(TeamInviteSchema)
def invite(payload):
    invitation = team_service.invite_member(
        current_user, payload.email, payload.role, payload.message
    )
    return jsonify({"success": True, "invitation": invitation.to_dict()}), 201


@team_bp.route("/invitations/<token>/accept", methods=["POST"])
@login_required
def accept(token):
    member = team_service.accept_invitation(token, current_user)
    return jsonify({"success": True, "member": member.to_dict()})


@team_bp.route("/invitations/<invitation_id>", methods=["DELETE"])
@login_required
def revoke(invitation_id):
    team_service.revoke_invitation(current_user, invitation_id)
    return jsonify({"success": True})


@team_bp.route("/members/<member_id>", methods=["DELETE"])
@login_required
def remove_member(member_id):
    team_service.remove_member(current_user, member_id)
    return jsonify({"success": True})

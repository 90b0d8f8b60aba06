"""Deployments blueprint — /deployments

Read-only audit trail of deploy attempts, newest first.
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from xistracloud.models.deployment import Deployment
from xistracloud.models.project import Project

deployments_bp = Blueprint("deployments", __name__, url_prefix="/deployments")

DEFAULT_LIMIT = 50


@deployments_bp.route("")
@login_required
def list_deployments():
    query = Deployment.query
    if not current_user.is_admin:
        query = query.join(Project).filter(Project.user_id == current_user.id)
    project_id = request.args.get("project")
    if project_id:
        query = query.filter(Deployment.project_id == project_id)
    limit = request.args.get("limit", DEFAULT_LIMIT, type=int)
    deployments = (
        query.order_by(Deployment.created_at.desc())
        .limit(max(1, min(limit, 500)))
        .all()
    )
    return jsonify([d.to_dict() for d in deployments])

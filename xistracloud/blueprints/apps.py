"""Apps blueprint — /apps/*

One-click catalogue apps (WordPress, n8n, databases...). Deployed apps are
ordinary projects with a template_id, so they also show up under /projects.
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from xistracloud.decorators import load_owned_project
from xistracloud.errors import NotFoundError
from xistracloud.extensions import limiter
from xistracloud.models.project import Project
from xistracloud.schemas import AppDeploySchema, validate_json
from xistracloud.services import deploy_service, template_service

apps_bp = Blueprint("apps", __name__, url_prefix="/apps")


def _app_dict(project):
    data = project.to_dict()
    data["access_info"] = project.access_info or {}
    return data


@apps_bp.route("/templates")
def list_templates():
    return jsonify({
        "templates": template_service.TEMPLATES,
        "categories": template_service.CATEGORIES,
    })


@apps_bp.route("/deploy", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
@validate_json(AppDeploySchema)
def deploy_app(payload):
    project = deploy_service.deploy_template(
        current_user, payload.template_id, payload.name, payload.environment
    )
    return jsonify({"success": True, "deployment": _app_dict(project)}), 201


@apps_bp.route("/deployed")
@login_required
def list_deployed():
    query = Project.query.filter(Project.template_id.isnot(None))
    if not current_user.is_admin:
        query = query.filter_by(user_id=current_user.id)
    apps = query.order_by(Project.created_at.desc()).all()
    return jsonify({"apps": [_app_dict(p) for p in apps]})


@apps_bp.route("/deployed/<project_id>", methods=["DELETE"])
@login_required
def delete_deployed(project_id):
    project = load_owned_project(project_id)
    if project.template_id is None:
        raise NotFoundError("App not found")
    deploy_service.delete_project(project)
    return jsonify({"success": True, "message": "App removed"})

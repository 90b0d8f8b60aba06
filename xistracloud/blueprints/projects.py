"""Projects blueprint — /projects/*

Route Map:
  GET    /projects                        — List projects (owned; admins see all)
  POST   /projects                        — Create project (+ auto deploy)
  GET    /projects/<id>                   — Project detail
  DELETE /projects/<id>                   — Tear down + delete
  POST   /projects/<id>/redeploy          — Start a new deploy
  POST   /projects/<id>/stop              — Stop running containers
  GET    /projects/<id>/env               — List environment variables
  POST   /projects/<id>/env               — Add environment variable
  PUT    /projects/<id>/env/<var_id>      — Update environment variable
  DELETE /projects/<id>/env/<var_id>      — Delete environment variable
"""

from flask import Blueprint, current_app, g, jsonify
from flask_login import current_user, login_required

from xistracloud.decorators import owned_project
from xistracloud.errors import ConflictError, DeployInProgressError, NotFoundError
from xistracloud.extensions import db, limiter
from xistracloud.models.environment_variable import EnvironmentVariable
from xistracloud.models.project import Project
from xistracloud.schemas import (
    EnvVarCreateSchema,
    EnvVarUpdateSchema,
    ProjectCreateSchema,
    validate_json,
)
from xistracloud.services import deploy_service, log_service

projects_bp = Blueprint("projects", __name__, url_prefix="/projects")


# ─── Projects ────────────────────────────────────────────────────

@projects_bp.route("")
@login_required
def list_projects():
    query = Project.query
    if not current_user.is_admin:
        query = query.filter_by(user_id=current_user.id)
    projects = query.order_by(Project.created_at.desc()).all()
    return jsonify([p.to_dict(with_counts=True) for p in projects])


@projects_bp.route("", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
@validate_json(ProjectCreateSchema)
def create_project(payload):
    project = deploy_service.create_project(
        current_user,
        name=payload.name,
        repository=payload.repository,
        branch=payload.branch,
        framework=payload.framework,
        description=payload.description,
    )
    if current_app.config.get("AUTO_DEPLOY"):
        try:
            deploy_service.start_deploy(project)
        except DeployInProgressError as e:
            # The project row is already committed; leave it pending.
            log_service.record(
                "warning",
                f"Auto deploy of '{project.name}' skipped: {e.message}",
                source="projects",
                project_id=project.id,
                user_id=project.user_id,
            )
        db.session.refresh(project)
    return jsonify(project.to_dict()), 201


@projects_bp.route("/<project_id>")
@owned_project
def get_project(project_id):
    data = g.project.to_dict(with_counts=True)
    data["access_info"] = g.project.access_info or {}
    return jsonify(data)


@projects_bp.route("/<project_id>", methods=["DELETE"])
@owned_project
def delete_project(project_id):
    snapshot = g.project.to_dict()
    deploy_service.delete_project(g.project)
    return jsonify({
        "success": True,
        "message": "Project deleted successfully",
        "deletedProject": snapshot,
    })


@projects_bp.route("/<project_id>/redeploy", methods=["POST"])
@owned_project
@limiter.limit("10 per minute")
def redeploy_project(project_id):
    deployment = deploy_service.start_deploy(g.project)
    db.session.refresh(g.project)
    return jsonify({
        "success": True,
        "message": "Deployment started",
        "project": g.project.to_dict(),
        "deployment": deployment.to_dict() if deployment else None,
    }), 202


@projects_bp.route("/<project_id>/stop", methods=["POST"])
@owned_project
def stop_project(project_id):
    project = deploy_service.stop_project(g.project)
    return jsonify({"success": True, "project": project.to_dict()})


# ─── Environment variables ───────────────────────────────────────

def _get_env_var(project, var_id):
    var = db.session.get(EnvironmentVariable, var_id)
    if var is None or var.project_id != project.id:
        raise NotFoundError("Environment variable not found")
    return var


@projects_bp.route("/<project_id>/env")
@owned_project
def list_env_vars(project_id):
    env_vars = g.project.environment_variables.order_by(EnvironmentVariable.key).all()
    return jsonify([v.to_dict() for v in env_vars])


@projects_bp.route("/<project_id>/env", methods=["POST"])
@owned_project
@validate_json(EnvVarCreateSchema)
def create_env_var(project_id, payload):
    if g.project.environment_variables.filter_by(key=payload.key).first():
        raise ConflictError(f"Variable {payload.key} already exists")
    var = EnvironmentVariable(
        project_id=g.project.id,
        key=payload.key,
        value=payload.value,
        is_secret=payload.is_secret,
    )
    db.session.add(var)
    log_service.record(
        "info",
        f"Environment variable {payload.key} added",
        source="projects",
        project_id=g.project.id,
        user_id=current_user.id,
        commit=False,
    )
    db.session.commit()
    return jsonify(var.to_dict()), 201


@projects_bp.route("/<project_id>/env/<var_id>", methods=["PUT"])
@owned_project
@validate_json(EnvVarUpdateSchema)
def update_env_var(project_id, var_id, payload):
    var = _get_env_var(g.project, var_id)
    if payload.key is not None and payload.key != var.key:
        if g.project.environment_variables.filter_by(key=payload.key).first():
            raise ConflictError(f"Variable {payload.key} already exists")
        var.key = payload.key
    if payload.value is not None:
        var.value = payload.value
    if payload.is_secret is not None:
        var.is_secret = payload.is_secret
    db.session.commit()
    return jsonify(var.to_dict())


@projects_bp.route("/<project_id>/env/<var_id>", methods=["DELETE"])
@owned_project
def delete_env_var(project_id, var_id):
    var = _get_env_var(g.project, var_id)
    db.session.delete(var)
    db.session.commit()
    return jsonify({"success": True})

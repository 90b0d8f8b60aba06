"""Logs blueprint — /logs

Activity feed. Filters: level, source, project (id), limit (default 100).
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from xistracloud.decorators import load_owned_project
from xistracloud.schemas import LogCreateSchema, validate_json
from xistracloud.services import log_service

logs_bp = Blueprint("logs", __name__, url_prefix="/logs")


@logs_bp.route("")
@login_required
def list_logs():
    entries = log_service.list_logs(
        current_user,
        level=request.args.get("level"),
        source=request.args.get("source"),
        project=request.args.get("project"),
        limit=request.args.get("limit"),
    )
    return jsonify([e.to_dict() for e in entries])


@logs_bp.route("", methods=["POST"])
@login_required
@validate_json(LogCreateSchema)
def create_log(payload):
    if payload.project_id:
        load_owned_project(payload.project_id)
    entry = log_service.record(
        payload.level,
        payload.message,
        source=payload.source,
        project_id=payload.project_id,
        user_id=current_user.id,
        details=payload.details,
        metadata=payload.metadata,
    )
    return jsonify(entry.to_dict()), 201

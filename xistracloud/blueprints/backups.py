"""Backups blueprint — /backups/*

Backup records only: scheduling metadata per project. The snapshot job
itself runs outside the API.
"""

from datetime import datetime, timedelta, timezone

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from xistracloud.decorators import load_owned_project
from xistracloud.errors import NotFoundError
from xistracloud.extensions import db
from xistracloud.models.backup import Backup
from xistracloud.models.project import Project
from xistracloud.schemas import BackupCreateSchema, validate_json
from xistracloud.services import log_service

backups_bp = Blueprint("backups", __name__, url_prefix="/backups")

SCHEDULE_INTERVALS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(weeks=1),
}


@backups_bp.route("")
@login_required
def list_backups():
    query = Backup.query
    if not current_user.is_admin:
        query = query.join(Project).filter(Project.user_id == current_user.id)
    project_id = request.args.get("project")
    if project_id:
        query = query.filter(Backup.project_id == project_id)
    backups = query.order_by(Backup.created_at.desc()).all()
    return jsonify([b.to_dict() for b in backups])


@backups_bp.route("", methods=["POST"])
@login_required
@validate_json(BackupCreateSchema)
def create_backup(payload):
    project = load_owned_project(payload.project_id)
    interval = SCHEDULE_INTERVALS.get(payload.schedule)
    backup = Backup(
        project_id=project.id,
        name=payload.name,
        type=payload.type,
        schedule=payload.schedule,
        retention_days=payload.retention_days,
        status="pending",
        scheduled_at=datetime.now(timezone.utc) + interval if interval else None,
    )
    db.session.add(backup)
    log_service.record(
        "info",
        f"Backup '{payload.name}' created ({payload.type}, {payload.schedule})",
        source="backup",
        project_id=project.id,
        user_id=current_user.id,
        commit=False,
    )
    db.session.commit()
    return jsonify(backup.to_dict()), 201


@backups_bp.route("/<backup_id>", methods=["DELETE"])
@login_required
def delete_backup(backup_id):
    backup = db.session.get(Backup, backup_id)
    if backup is None or (
        not current_user.is_admin and backup.project.user_id != current_user.id
    ):
        raise NotFoundError("Backup not found")
    db.session.delete(backup)
    db.session.commit()
    return jsonify({"success": True})

"""Dashboard blueprint — service banner, health check, stats, system metrics."""

import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from xistracloud import __version__
from xistracloud.decorators import admin_required
from xistracloud.extensions import db
from xistracloud.models.system import SystemMetric
from xistracloud.schemas import MetricCreateSchema, validate_json
from xistracloud.services import stats_service

dashboard_bp = Blueprint("dashboard", __name__)

_started = time.monotonic()

METRICS_LIMIT = 100


@dashboard_bp.route("/")
def index():
    return jsonify({
        "message": "XistraCloud API",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


@dashboard_bp.route("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        db.session.rollback()
        database = "unavailable"
    return jsonify({
        "status": "healthy" if database == "ok" else "degraded",
        "database": database,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _started, 1),
        "version": __version__,
    }), 200 if database == "ok" else 503


@dashboard_bp.route("/dashboard/stats")
@login_required
def stats():
    return jsonify(stats_service.dashboard_stats(current_user))


@dashboard_bp.route("/metrics/system")
@login_required
def list_metrics():
    metrics = (
        SystemMetric.query.order_by(SystemMetric.created_at.desc())
        .limit(METRICS_LIMIT)
        .all()
    )
    return jsonify([m.to_dict() for m in metrics])


@dashboard_bp.route("/metrics/system", methods=["POST"])
@admin_required
@validate_json(MetricCreateSchema)
def record_metric(payload):
    metric = SystemMetric(**payload.model_dump())
    db.session.add(metric)
    db.session.commit()
    return jsonify(metric.to_dict()), 201

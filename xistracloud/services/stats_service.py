"""Dashboard statistics.

Everything is computed from real rows: project counts by status, a
seven-day deployment trend from the deployments table, and a short
activity feed built from the newest projects and domains.
"""

from datetime import datetime, timedelta, timezone

from xistracloud.extensions import db
from xistracloud.models.deployment import Deployment
from xistracloud.models.domain import Domain
from xistracloud.models.project import Project

TREND_DAYS = 7
RECENT_PROJECTS = 5
RECENT_DOMAINS = 5
RECENT_LIMIT = 10

# Project.status -> dashboard bucket
STATUS_BUCKETS = {
    "deployed": "active",
    "building": "building",
    "failed": "error",
    "stopped": "stopped",
    "pending": "pending",
}

ACTIVITY_MESSAGES = {
    "deployed": ("Deployment successful", "success"),
    "building": ("Build in progress...", "warning"),
    "pending": ("Deployment queued", "warning"),
    "failed": ("Build failed - reviewing logs", "error"),
    "stopped": ("Service stopped", "warning"),
}


def _as_utc(value):
    # SQLite returns naive datetimes; Postgres returns aware ones.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _scoped(query, model, user):
    if user is None or user.is_admin:
        return query
    if model is Project:
        return query.filter(Project.user_id == user.id)
    return query.join(Project, model.project_id == Project.id).filter(
        Project.user_id == user.id
    )


def project_stats(user=None):
    counts = dict(
        _scoped(
            db.session.query(Project.status, db.func.count(Project.id)),
            Project,
            user,
        )
        .group_by(Project.status)
        .all()
    )
    return {bucket: counts.get(status, 0) for status, bucket in STATUS_BUCKETS.items()}


def deployment_trend(user=None, days=TREND_DAYS, now=None):
    """Per-day deployment counts for the last ``days`` days, oldest first."""
    today = (now or datetime.now(timezone.utc)).date()
    start = today - timedelta(days=days - 1)
    buckets = {
        (start + timedelta(days=i)).isoformat(): {"deployments": 0, "success": 0, "failed": 0}
        for i in range(days)
    }

    since = datetime.combine(start, datetime.min.time(), tzinfo=timezone.utc)
    rows = (
        _scoped(
            db.session.query(Deployment.created_at, Deployment.status),
            Deployment,
            user,
        )
        .filter(Deployment.created_at >= since)
        .all()
    )
    for created_at, status in rows:
        key = _as_utc(created_at).date().isoformat()
        if key not in buckets:
            continue
        buckets[key]["deployments"] += 1
        if status == "success":
            buckets[key]["success"] += 1
        elif status == "failed":
            buckets[key]["failed"] += 1

    return [{"date": date, **counts} for date, counts in buckets.items()]


def recent_activity(user=None):
    projects = (
        _scoped(Project.query, Project, user)
        .order_by(Project.created_at.desc())
        .limit(RECENT_PROJECTS)
        .all()
    )
    domains = (
        _scoped(Domain.query, Domain, user)
        .order_by(Domain.created_at.desc())
        .limit(RECENT_DOMAINS)
        .all()
    )

    activity = []
    for project in projects:
        message, status = ACTIVITY_MESSAGES.get(project.status, ("Status updated", "info"))
        activity.append({
            "id": project.id,
            "type": "deployment",
            "project": project.name,
            "message": message,
            "created_at": project.created_at,
            "status": status,
        })
    for domain in domains:
        verified = domain.status == "verified"
        activity.append({
            "id": domain.id,
            "type": "domain",
            "project": domain.project.name if domain.project else "Unknown Project",
            "message": "Domain verified successfully" if verified else "Domain configuration updated",
            "created_at": domain.created_at,
            "status": "success" if verified else "warning",
        })

    epoch = datetime.min.replace(tzinfo=timezone.utc)
    activity.sort(key=lambda item: _as_utc(item["created_at"]) or epoch, reverse=True)
    for item in activity:
        item["created_at"] = item["created_at"].isoformat() if item["created_at"] else None
    return activity[:RECENT_LIMIT]


def dashboard_stats(user=None):
    stats = project_stats(user)
    trend = deployment_trend(user)
    total_deployments = sum(day["deployments"] for day in trend)
    total_success = sum(day["success"] for day in trend)
    return {
        "projectStats": stats,
        "deploymentTrend": trend,
        "recentActivity": recent_activity(user),
        "totalProjects": sum(stats.values()),
        "successRate": round(total_success / total_deployments * 100, 1)
        if total_deployments
        else 0,
    }

"""Activity log — writes and queries SystemLog rows.

Mirrors each entry to the Python logger so deploy progress shows up in the
server output as well as in the dashboard feed.
"""

import logging

from xistracloud.extensions import db
from xistracloud.models.project import Project
from xistracloud.models.system import SystemLog

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

_PY_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def record(level, message, source="system", project_id=None, user_id=None,
           details=None, metadata=None, commit=True):
    """Add a log entry. Returns the SystemLog row."""
    if level not in SystemLog.LEVELS:
        level = "info"
    entry = SystemLog(
        level=level,
        message=message[:500],
        details=details,
        source=source,
        project_id=project_id,
        user_id=user_id,
        metadata_=metadata or {},
    )
    db.session.add(entry)
    if commit:
        db.session.commit()
    logger.log(_PY_LEVELS[level], f"[{source}] {message}")
    return entry


def list_logs(user, level=None, source=None, project=None, limit=None):
    """Newest-first log entries visible to ``user``.

    ``project`` filters on a project id. Non-admins only see their own
    entries and entries about their projects.
    """
    try:
        limit = int(limit) if limit is not None else DEFAULT_LIMIT
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    limit = max(1, min(limit, MAX_LIMIT))

    query = SystemLog.query
    if not user.is_admin:
        owned = db.session.query(Project.id).filter(Project.user_id == user.id)
        query = query.filter(
            db.or_(SystemLog.user_id == user.id, SystemLog.project_id.in_(owned))
        )
    if level:
        query = query.filter(SystemLog.level == level)
    if source:
        query = query.filter(SystemLog.source == source)
    if project:
        query = query.filter(SystemLog.project_id == project)

    return query.order_by(SystemLog.created_at.desc()).limit(limit).all()

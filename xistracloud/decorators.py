"""
Custom route decorators for access control.

- admin_required: ensures user is authenticated AND has is_admin=True.
- owned_project: resolves the <project_id> URL parameter to a Project the
  current user may see, exposed as g.project.

Authentication itself is Flask-Login's login_required; the request loader
in extensions.py turns the bearer token into current_user.
"""

from functools import wraps

from flask import g
from flask_login import current_user, login_required

from xistracloud.errors import ForbiddenError, NotFoundError
from xistracloud.extensions import db


def load_owned_project(project_id, user=None):
    """Fetch a project visible to ``user`` (default current_user) or raise 404.

    Admins see every project; everyone else only their own. A project owned
    by someone else is reported as missing, not forbidden.
    """
    from xistracloud.models.project import Project

    user = user or current_user
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    if not user.is_admin and project.user_id != user.id:
        raise NotFoundError("Project not found")
    return project


def admin_required(f):
    """Require login + is_admin flag."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if not current_user.is_admin:
            raise ForbiddenError("Admin access required")
        return f(*args, **kwargs)

    return decorated


def owned_project(f):
    """Require login + ownership of the project named in the URL."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        g.project = load_owned_project(kwargs["project_id"])
        return f(*args, **kwargs)

    return decorated

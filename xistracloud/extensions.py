"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limit; limits are per route
    storage_uri="memory://",
)


@login_manager.request_loader
def load_user_from_request(request):
    """Resolve the Bearer JWT on the request to a User.

    Returns None when no token is present so anonymous routes keep working.
    Invalid or expired tokens raise AuthError, which the app turns into a
    401 with a TOKEN_EXPIRED / INVALID_TOKEN code.
    """
    from xistracloud.services import auth_service

    token = auth_service.extract_bearer_token(request.headers.get("Authorization"))
    if not token:
        return None
    return auth_service.user_from_token(token)


@login_manager.unauthorized_handler
def unauthorized():
    """API-only app: no login view to redirect to."""
    from xistracloud.errors import AuthError

    raise AuthError("Access token required", code="TOKEN_REQUIRED")

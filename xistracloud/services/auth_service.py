"""Auth service — password hashing, JWT issue/verify, user registration.

Tokens are HS256 JWTs signed with JWT_SECRET, carrying ``sub`` (user id)
and ``email``, scoped with a fixed issuer and audience. Verification
errors are mapped onto the API's auth error codes:

    TOKEN_EXPIRED  — signature fine, ``exp`` in the past
    INVALID_TOKEN  — malformed, bad signature, wrong issuer/audience
    AUTH_FAILED    — token valid but the user is gone or deactivated
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from xistracloud.errors import AuthError, ConflictError
from xistracloud.extensions import db
from xistracloud.models.user import User

logger = logging.getLogger(__name__)


def hash_password(password):
    return generate_password_hash(password)


def verify_password(password, password_hash):
    return check_password_hash(password_hash, password)


def generate_token(user):
    """Issue a signed access token for a user."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(seconds=current_app.config["JWT_EXPIRES_IN"]),
        "iss": current_app.config["JWT_ISSUER"],
        "aud": current_app.config["JWT_AUDIENCE"],
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm="HS256")


def verify_token(token):
    """Decode and verify a token. Returns the claims dict or raises AuthError."""
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=["HS256"],
            issuer=current_app.config["JWT_ISSUER"],
            audience=current_app.config["JWT_AUDIENCE"],
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired", code="TOKEN_EXPIRED")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected token: {e}")
        raise AuthError("Invalid token", code="INVALID_TOKEN")


def extract_bearer_token(header_value):
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not header_value:
        return None
    parts = header_value.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def user_from_token(token):
    """Resolve a token to an active User, raising AuthError otherwise."""
    claims = verify_token(token)
    user = db.session.get(User, claims.get("sub"))
    if user is None or not user.is_active:
        raise AuthError("User not found", code="AUTH_FAILED")
    if user.email != claims.get("email"):
        raise AuthError("Token user mismatch", code="AUTH_FAILED")
    return user


def register_user(email, password, full_name=None):
    """Create a new user. Raises ConflictError if the email is taken."""
    email = email.lower().strip()
    if User.query.filter_by(email=email).first():
        raise ConflictError("An account with this email already exists.")

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
    )
    db.session.add(user)
    db.session.commit()
    logger.info(f"User registered: {email}")
    return user


def authenticate(email, password):
    """Check credentials. Returns the User or raises AuthError."""
    user = User.query.filter_by(email=email.lower().strip()).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.warning(f"Failed login for {email}")
        raise AuthError("Invalid email or password", code="INVALID_CREDENTIALS")
    if not user.is_active:
        raise AuthError("Account is disabled", code="ACCOUNT_DISABLED")
    return user

"""Auth blueprint — /auth/*

Stateless JWT auth for the dashboard: register and login return a bearer
token, /auth/me echoes the user the token resolves to.
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from xistracloud.extensions import limiter
from xistracloud.schemas import LoginSchema, RegisterSchema, validate_json
from xistracloud.services import auth_service, log_service

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


# ──────────────────────────────────────────────
# POST /auth/register
# ──────────────────────────────────────────────

@auth_bp.route("/register", methods=["POST"])
@limiter.limit("5 per 15 minutes")
@validate_json(RegisterSchema)
def register(payload):
    user = auth_service.register_user(payload.email, payload.password, payload.name)
    log_service.record("info", f"New account {user.email}", source="auth", user_id=user.id)
    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "token": auth_service.generate_token(user),
    }), 201


# ──────────────────────────────────────────────
# POST /auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per 15 minutes")
@validate_json(LoginSchema)
def login(payload):
    user = auth_service.authenticate(payload.email, payload.password)
    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "token": auth_service.generate_token(user),
    })


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"success": True, "user": current_user.to_dict()})

import logging
import os

import click
from flask import Flask, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from xistracloud.config import config_by_name
from xistracloud.errors import ApiError
from xistracloud.extensions import db, migrate, login_manager, limiter

__version__ = "3.1.0"

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "AUTH_FAILED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    429: "RATE_LIMITED",
}


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.sort_keys = False

    # --- Logging ---
    if not app.testing:
        logging.basicConfig(
            level=app.config.get("LOG_LEVEL", "INFO"),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from xistracloud import models  # noqa: F401

    # --- Request logging ---
    from xistracloud.middleware.request_logging import init_request_logging
    init_request_logging(app)

    # --- Register blueprints ---
    from xistracloud.blueprints.apps import apps_bp
    from xistracloud.blueprints.auth import auth_bp
    from xistracloud.blueprints.backups import backups_bp
    from xistracloud.blueprints.dashboard import dashboard_bp
    from xistracloud.blueprints.deployments import deployments_bp
    from xistracloud.blueprints.domains import domains_bp
    from xistracloud.blueprints.logs import logs_bp
    from xistracloud.blueprints.projects import projects_bp
    from xistracloud.blueprints.team import team_bp

    app.register_blueprint(dashboard_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(apps_bp)
    app.register_blueprint(domains_bp)
    app.register_blueprint(deployments_bp)
    app.register_blueprint(backups_bp)
    app.register_blueprint(team_bp)
    app.register_blueprint(logs_bp)

    # --- Error handlers ---
    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers + CORS ---
    @app.after_request
    def add_security_headers(response):
        """Add security and CORS headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # JSON API: nothing to load, nothing to frame
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        origin = request.headers.get("Origin")
        if origin and origin in app.config["CORS_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Methods"] = (
                "GET, POST, PUT, DELETE, OPTIONS"
            )
            response.headers["Access-Control-Allow-Headers"] = (
                "Content-Type, Authorization"
            )
            response.headers["Vary"] = "Origin"
        return response

    return app


def register_error_handlers(app):
    """Render every error as ``{"success": false, "error", "code"}`` JSON."""

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        if e.status_code >= 500:
            logger.error(f"{request.method} {request.path}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        logger.warning(f"Integrity error on {request.path}: {e.orig}")
        return jsonify({
            "success": False,
            "error": "Resource already exists",
            "code": "CONFLICT",
        }), 409

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({
            "success": False,
            "error": e.description if e.code != 404 else "Endpoint not found",
            "code": HTTP_ERROR_CODES.get(e.code, "HTTP_ERROR"),
        }), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return jsonify({
            "success": False,
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
        }), 500


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("create-db")
    def create_db():
        """Create all tables directly (dev / SQLite; use `flask db upgrade` on Postgres)."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-admin")
    @click.option("--email", default="admin@xistracloud.local", help="Admin email")
    @click.option("--password", default="Admin12345", help="Admin password")
    def seed_admin(email, password):
        """Create (or promote) an admin user.

        Usage:
            flask seed-admin
            flask seed-admin --email admin@example.com --password S3cretPass
        """
        from xistracloud.models.user import User
        from xistracloud.services.auth_service import generate_token, hash_password

        email = email.lower().strip()
        admin = User.query.filter_by(email=email).first()
        if admin:
            admin.is_admin = True
            click.echo(f"Admin user already exists: {email} (ensured is_admin)")
        else:
            admin = User(
                email=email,
                password_hash=hash_password(password),
                full_name="Admin",
                is_admin=True,
            )
            db.session.add(admin)
            click.echo(f"Created admin user: {email}")
        db.session.commit()

        click.echo("")
        click.echo("=" * 60)
        click.echo(f"  Admin:  {email}")
        click.echo(f"  Token:  {generate_token(admin)}")
        click.echo("=" * 60)

    @app.cli.command("cleanup-workdirs")
    @click.option("--dry-run", is_flag=True, help="List what would be removed.")
    def cleanup_workdirs(dry_run):
        """Remove app directories under DEPLOY_ROOT that no project references."""
        import shutil

        from xistracloud.models.project import Project

        root = app.config["DEPLOY_ROOT"]
        if not os.path.isdir(root):
            click.echo(f"Nothing to do: {root} does not exist.")
            return

        in_use = {
            os.path.abspath(os.path.dirname(path))
            for (path,) in db.session.query(Project.compose_path)
            .filter(Project.compose_path.isnot(None))
            .all()
        }
        removed = 0
        for entry in sorted(os.listdir(root)):
            path = os.path.abspath(os.path.join(root, entry))
            if not os.path.isdir(path) or path in in_use:
                continue
            click.echo(f"{'Would remove' if dry_run else 'Removing'} {path}")
            if not dry_run:
                shutil.rmtree(path, ignore_errors=True)
            removed += 1
        click.echo(f"{removed} orphaned director{'y' if removed == 1 else 'ies'}.")

    @app.cli.command("record-metrics")
    def record_metrics():
        """Store one host resource snapshot in system_metrics."""
        from xistracloud.services.metrics_service import record_snapshot

        metric = record_snapshot()
        click.echo(
            f"cpu={metric.cpu_usage}% mem={metric.memory_usage}% "
            f"disk={metric.disk_usage}% uptime={metric.uptime}s"
        )

"""App catalogue — one-click compose templates.

Each catalogue entry maps to a Jinja template under
``templates/compose/<id>.yml``. Rendering fills in the app name, the
published host port and an environment built from caller overrides plus
generated passwords.
"""

import logging
import re
import secrets
import string

from flask import render_template

from xistracloud.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

TEMPLATES = [
    {
        "id": "wordpress",
        "name": "WordPress",
        "description": "Popular CMS for blogs and websites. Includes MySQL.",
        "category": "cms",
        "ports": [80],
        "env_required": ["DB_PASSWORD", "DB_ROOT_PASSWORD"],
        "features": ["Full CMS", "MySQL included", "Admin panel", "Themes and plugins"],
    },
    {
        "id": "n8n",
        "name": "n8n",
        "description": "Workflow automation.",
        "category": "automation",
        "ports": [5678],
        "env_required": ["N8N_USER", "N8N_PASSWORD", "DB_PASSWORD"],
        "features": ["Visual automation", "PostgreSQL included", "API integrations", "Workflows"],
    },
    {
        "id": "mysql",
        "name": "MySQL",
        "description": "MySQL 8.0 relational database.",
        "category": "database",
        "ports": [3306],
        "env_required": ["DB_ROOT_PASSWORD", "DB_NAME", "DB_USER", "DB_PASSWORD"],
        "features": ["MySQL 8.0", "Persistent data", "Custom user", "Configurable port"],
    },
    {
        "id": "postgresql",
        "name": "PostgreSQL",
        "description": "PostgreSQL 16 relational database.",
        "category": "database",
        "ports": [5432],
        "env_required": ["DB_NAME", "DB_USER", "DB_PASSWORD"],
        "features": ["PostgreSQL 16", "Persistent data", "Custom user"],
    },
    {
        "id": "nextjs",
        "name": "Next.js",
        "description": "Next.js starter site served by Node 20.",
        "category": "frontend",
        "ports": [3000],
        "env_required": [],
        "features": ["React framework", "Production build", "Node 20"],
    },
]

CATEGORIES = {
    "cms": {"name": "CMS"},
    "database": {"name": "Database"},
    "automation": {"name": "Automation"},
    "frontend": {"name": "Frontend"},
}

# Values end up inside quoted YAML scalars.
SAFE_VALUE_RE = re.compile(r"^[\w.@\- ]{0,200}$")


def generate_password(length=16):
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def get_template(template_id):
    for template in TEMPLATES:
        if template["id"] == template_id:
            return template
    raise NotFoundError(f"Template '{template_id}' not found", code="TEMPLATE_NOT_FOUND")


def build_environment(name, overrides=None):
    """Defaults plus generated secrets, overridden by caller values."""
    overrides = overrides or {}
    for key, value in overrides.items():
        if not SAFE_VALUE_RE.match(str(value)):
            raise ValidationError(
                "Validation failed",
                details=[{"field": f"environment.{key}", "message": "Value contains invalid characters"}],
            )

    env = {
        "DB_PASSWORD": generate_password(),
        "DB_ROOT_PASSWORD": generate_password(),
        "DB_NAME": "app",
        "DB_USER": "app",
        "N8N_USER": "admin",
        "N8N_PASSWORD": generate_password(),
        "SITE_NAME": name,
        "ADMIN_USER": "admin",
        "ADMIN_EMAIL": "admin@example.com",
        "ADMIN_PASSWORD": generate_password(),
    }
    env.update({k: str(v) for k, v in overrides.items()})
    return env


def render_compose(template_id, app_name, port, env):
    get_template(template_id)
    return render_template(
        f"compose/{template_id}.yml", app_name=app_name, port=port, env=env
    )


def access_info(template_id, port, env, base_domain):
    """URL plus the credentials the user needs to log in."""
    host = base_domain
    if template_id == "mysql":
        url = f"mysql://{host}:{port}"
        info = {
            "host": host,
            "port": port,
            "root_password": env["DB_ROOT_PASSWORD"],
            "database": env["DB_NAME"],
            "user": env["DB_USER"],
            "password": env["DB_PASSWORD"],
        }
    elif template_id == "postgresql":
        url = f"postgresql://{host}:{port}/{env['DB_NAME']}"
        info = {
            "host": host,
            "port": port,
            "database": env["DB_NAME"],
            "user": env["DB_USER"],
            "password": env["DB_PASSWORD"],
        }
    elif template_id == "wordpress":
        url = f"http://{host}:{port}"
        info = {
            "admin_url": f"{url}/wp-admin",
            "username": env["ADMIN_USER"],
            "password": env["ADMIN_PASSWORD"],
            "email": env["ADMIN_EMAIL"],
        }
    elif template_id == "n8n":
        url = f"http://{host}:{port}"
        info = {"username": env["N8N_USER"], "password": env["N8N_PASSWORD"]}
    else:
        url = f"http://{host}:{port}"
        info = {}
    return url, info

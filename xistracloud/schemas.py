"""Request schemas and the validate_json decorator.

Every write endpoint declares a Pydantic model. Unknown fields are dropped,
free-text fields are stripped of HTML with bleach, and all field errors are
reported at once as ``[{field, message}]`` under a 400 VALIDATION_ERROR.
Both snake_case and the camelCase names the dashboard sends are accepted
(``project_id`` / ``projectId``).
"""

import re
from functools import wraps
from typing import Annotated, Literal, Optional

import bleach
from flask import request
from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
)

from xistracloud.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
NAME_RE = re.compile(r"^[a-zA-Z0-9\s\-_]+$")
PERSON_NAME_RE = re.compile(r"^[a-zA-Z\s\-']+$")
ENV_KEY_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")
GIT_URL_RE = re.compile(
    r"^(https?://[^\s/]+/\S+|git@[^\s:]+:\S+|ssh://\S+|git://\S+)$"
)


def _sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(text, tags=[], strip=True).strip()


CleanStr = Annotated[str, AfterValidator(_sanitize)]


def _email(value):
    value = value.lower().strip()
    if not EMAIL_RE.match(value):
        raise ValueError("Email must be valid")
    return value


class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ──────────────────────────────────────────────
# Auth
# ──────────────────────────────────────────────

class LoginSchema(_Schema):
    email: str = Field(max_length=255)
    password: str = Field(min_length=6, max_length=255)

    _check_email = field_validator("email")(_email)


class RegisterSchema(_Schema):
    email: str = Field(max_length=255)
    password: str = Field(min_length=8, max_length=255)
    name: CleanStr = Field(
        min_length=2,
        max_length=100,
        validation_alias=AliasChoices("name", "full_name", "fullName"),
    )

    _check_email = field_validator("email")(_email)

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value):
        if not (
            re.search(r"[a-z]", value)
            and re.search(r"[A-Z]", value)
            and re.search(r"\d", value)
        ):
            raise ValueError(
                "Password must contain at least one lowercase, one uppercase and one number"
            )
        return value

    @field_validator("name")
    @classmethod
    def _person_name(cls, value):
        if not PERSON_NAME_RE.match(value):
            raise ValueError("Name contains invalid characters")
        return value


# ──────────────────────────────────────────────
# Projects
# ──────────────────────────────────────────────

class ProjectCreateSchema(_Schema):
    name: CleanStr = Field(min_length=2, max_length=100)
    repository: str = Field(
        max_length=500,
        validation_alias=AliasChoices("repository", "gitUrl", "git_url"),
    )
    branch: Optional[str] = Field(default=None, max_length=255)
    framework: Optional[CleanStr] = Field(default=None, max_length=100)
    description: Optional[CleanStr] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def _project_name(cls, value):
        if not NAME_RE.match(value):
            raise ValueError("Project name contains invalid characters")
        return value

    @field_validator("repository")
    @classmethod
    def _git_url(cls, value):
        value = value.strip()
        if not GIT_URL_RE.match(value):
            raise ValueError("Git URL must be valid")
        return value


class EnvVarCreateSchema(_Schema):
    key: str = Field(max_length=100)
    value: str = Field(max_length=1000)
    is_secret: bool = Field(
        default=False, validation_alias=AliasChoices("is_secret", "isSecret")
    )

    @field_validator("key")
    @classmethod
    def _env_key(cls, value):
        if not ENV_KEY_RE.match(value):
            raise ValueError(
                "Environment variable key must be uppercase letters, numbers, and underscores only"
            )
        return value


class EnvVarUpdateSchema(EnvVarCreateSchema):
    key: Optional[str] = Field(default=None, max_length=100)
    value: Optional[str] = Field(default=None, max_length=1000)
    is_secret: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_secret", "isSecret")
    )

    @field_validator("key")
    @classmethod
    def _env_key(cls, value):
        if value is not None and not ENV_KEY_RE.match(value):
            raise ValueError(
                "Environment variable key must be uppercase letters, numbers, and underscores only"
            )
        return value


# ──────────────────────────────────────────────
# Apps (catalogue templates)
# ──────────────────────────────────────────────

class AppDeploySchema(_Schema):
    template_id: str = Field(
        min_length=1,
        max_length=50,
        validation_alias=AliasChoices("template_id", "templateId"),
    )
    name: CleanStr = Field(min_length=2, max_length=100)
    environment: dict[str, str] = Field(default_factory=dict)


# ──────────────────────────────────────────────
# Domains
# ──────────────────────────────────────────────

class DomainCreateSchema(_Schema):
    # Format is checked by domain_service after normalisation.
    domain: str = Field(min_length=1, max_length=300)
    project_id: str = Field(
        min_length=1,
        max_length=100,
        validation_alias=AliasChoices("project_id", "projectId"),
    )


# ──────────────────────────────────────────────
# Backups
# ──────────────────────────────────────────────

class BackupCreateSchema(_Schema):
    name: CleanStr = Field(min_length=2, max_length=100)
    type: Literal["full", "database", "files"] = "full"
    project_id: str = Field(
        min_length=1,
        max_length=100,
        validation_alias=AliasChoices("project_id", "projectId"),
    )
    schedule: Literal["manual", "daily", "weekly"] = "manual"
    retention_days: int = Field(
        default=30,
        ge=1,
        le=365,
        validation_alias=AliasChoices("retention_days", "retentionDays"),
    )

    @field_validator("name")
    @classmethod
    def _backup_name(cls, value):
        if not NAME_RE.match(value):
            raise ValueError("Backup name contains invalid characters")
        return value


# ──────────────────────────────────────────────
# Team
# ──────────────────────────────────────────────

class TeamInviteSchema(_Schema):
    email: str = Field(max_length=255)
    role: Literal["admin", "developer", "viewer"] = "developer"
    message: Optional[CleanStr] = Field(default=None, max_length=500)

    _check_email = field_validator("email")(_email)


# ──────────────────────────────────────────────
# Logs & metrics
# ──────────────────────────────────────────────

class LogCreateSchema(_Schema):
    level: Literal["info", "success", "warning", "error"] = "info"
    message: CleanStr = Field(min_length=1, max_length=500)
    details: Optional[CleanStr] = Field(default=None, max_length=5000)
    source: str = Field(default="system", max_length=50)
    project_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )
    metadata: dict = Field(default_factory=dict)


class MetricCreateSchema(_Schema):
    cpu_usage: Optional[float] = Field(default=None, ge=0, le=100)
    memory_usage: Optional[float] = Field(default=None, ge=0, le=100)
    disk_usage: Optional[float] = Field(default=None, ge=0, le=100)
    network_in: Optional[int] = Field(default=None, ge=0)
    network_out: Optional[int] = Field(default=None, ge=0)
    uptime: Optional[int] = Field(default=None, ge=0)


# ──────────────────────────────────────────────
# Decorator
# ──────────────────────────────────────────────

def validate_json(schema):
    """Validate the JSON body against ``schema`` and pass it as ``payload``.

    Usage:
        @projects_bp.route("", methods=["POST"])
        @validate_json(ProjectCreateSchema)
        def create_project(payload): ...
    """

    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                raise ValidationError("Request body must be a JSON object")
            try:
                payload = schema.model_validate(data)
            except PydanticValidationError as e:
                details = [
                    {
                        "field": ".".join(str(part) for part in err["loc"]),
                        "message": err["msg"],
                    }
                    for err in e.errors()
                ]
                raise ValidationError("Validation failed", details=details)
            return f(*args, payload=payload, **kwargs)

        return decorated

    return decorator

"""Deploy service — project lifecycle around the UniversalDeployer.

Flow for a repository project:

    pending/failed/stopped/deployed --> building --> deployed | failed

One Deployment row is written per attempt. Only one deploy per app name
runs at a time in this process; a second request gets DeployInProgressError.
With DEPLOY_ASYNC the project is moved to ``building`` and committed
before the work is handed to a background thread, so the request returns
with the project already in ``building``.

Docker resources (container name, compose project, work dir) are keyed by
``app_key(project)``, the name slug plus the start of the project id, so
two projects with the same name never touch each other's containers.

Catalogue templates skip the cascade: the compose file is rendered,
written under DEPLOY_ROOT/<app key>/ and brought up directly.
"""

import logging
import os
import shutil
import threading
import time
from datetime import datetime, timezone

from flask import current_app

from xistracloud.errors import (
    DeployFailedError,
    DeployInProgressError,
    InvalidTransitionError,
    NotFoundError,
)
from xistracloud.extensions import db
from xistracloud.models.deployment import Deployment
from xistracloud.models.project import Project
from xistracloud.services import log_service, template_service
from xistracloud.services.command_runner import CommandRunner
from xistracloud.services.deployer import (
    CloneError,
    DeployResult,
    RepositoryFetcher,
    UniversalDeployer,
    slugify,
)

logger = logging.getLogger(__name__)

MAX_OUTPUT_CHARS = 20000

_active = set()
_active_guard = threading.Lock()


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

def _claim(name):
    key = slugify(name)
    with _active_guard:
        if key in _active:
            raise DeployInProgressError(f"A deploy of '{name}' is already running")
        _active.add(key)
    return key


def _release(key):
    with _active_guard:
        _active.discard(key)


def is_deploying(name):
    with _active_guard:
        return slugify(name) in _active


def get_runner():
    return CommandRunner(
        timeout=current_app.config["DEPLOY_COMMAND_TIMEOUT"],
        docker_host=current_app.config.get("DOCKER_SOCKET"),
    )


def get_deployer(runner=None):
    return UniversalDeployer(
        runner or get_runner(),
        platforms=current_app.config["BUILD_PLATFORMS"],
        deploy_root=current_app.config["DEPLOY_ROOT"],
        port_range=current_app.config["APP_PORT_RANGE"],
    )


def transition(project, new_status):
    """Move a project to ``new_status`` or raise InvalidTransitionError."""
    if not project.can_transition_to(new_status):
        raise InvalidTransitionError(
            f"Cannot move project from '{project.status}' to '{new_status}'"
        )
    project.status = new_status


def app_key(project):
    """Docker-safe name for a project's container, compose project and work dir."""
    return f"{slugify(project.name)[:41].strip('-')}-{project.id[:8]}"


def app_url(port):
    if not port:
        return None
    return f"http://{current_app.config['APP_BASE_DOMAIN']}:{port}"


# ──────────────────────────────────────────────
# Repository projects
# ──────────────────────────────────────────────

def create_project(user, name, repository, branch=None, framework=None, description=None):
    """Persist a new pending project. Does not start a deploy."""
    project = Project(
        user_id=user.id if user else None,
        name=name,
        repository=repository,
        branch=branch,
        framework=framework or "unknown",
        description=description,
        status="pending",
    )
    db.session.add(project)
    db.session.flush()
    log_service.record(
        "info",
        f"Project '{name}' created",
        source="projects",
        project_id=project.id,
        user_id=project.user_id,
        metadata={"repository": repository},
        commit=False,
    )
    db.session.commit()
    return project


def start_deploy(project):
    """Kick off a deploy for an existing project.

    Returns the Deployment row when run inline, or None when handed to a
    background thread.
    """
    if not project.can_transition_to("building"):
        raise InvalidTransitionError(
            f"Cannot deploy a project in status '{project.status}'"
        )
    key = _claim(project.name)
    app = current_app._get_current_object()

    if app.config.get("DEPLOY_ASYNC"):
        try:
            transition(project, "building")
            db.session.commit()
        except Exception:
            _release(key)
            raise
        thread = threading.Thread(
            target=_deploy_in_background, args=(app, project.id, key)
        )
        thread.daemon = True
        thread.start()
        return None

    try:
        return _deploy(project.id)
    finally:
        _release(key)


def deploy_project(project_id):
    """Run a full deploy of ``project_id`` in the calling thread."""
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    key = _claim(project.name)
    try:
        return _deploy(project_id)
    finally:
        _release(key)


def _deploy_in_background(app, project_id, key):
    with app.app_context():
        try:
            _deploy(project_id)
        except Exception:
            logger.exception(f"Background deploy crashed for project {project_id}")
        finally:
            _release(key)
            db.session.remove()


def _deploy(project_id):
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")

    if project.status != "building":
        transition(project, "building")
    deployment = Deployment(
        project_id=project.id,
        status="building",
        branch=project.branch,
        started_at=datetime.now(timezone.utc),
    )
    db.session.add(deployment)
    log_service.record(
        "info",
        f"Deployment started for '{project.name}'",
        source="deployment",
        project_id=project.id,
        user_id=project.user_id,
        commit=False,
    )
    db.session.commit()

    env = {var.key: var.value for var in project.environment_variables}
    runner = get_runner()
    deployer = get_deployer(runner)
    started = time.monotonic()
    temp_dir = None
    try:
        if project.template_id:
            result = _redeploy_template(project, deployer)
        else:
            temp_dir, commit_hash, commit_message = RepositoryFetcher(runner).clone(
                project.repository, project.branch
            )
            deployment.commit_hash = commit_hash
            deployment.commit_message = commit_message
            result = deployer.deploy_repository(
                project.repository, temp_dir, app_key(project), env=env
            )
    except CloneError as e:
        result = DeployResult(success=False, error=str(e), output=[str(e)])
    except Exception as e:
        logger.exception(f"Deploy of '{project.name}' raised")
        result = DeployResult(success=False, error=f"Unexpected deploy error: {e}")
    finally:
        if temp_dir:
            shutil.rmtree(temp_dir, ignore_errors=True)

    _persist(project, deployment, result, started)
    return deployment


def _redeploy_template(project, deployer):
    """Bring an already rendered catalogue compose file back up."""
    result = deployer.compose_up(app_key(project), project.compose_path)
    output = [line for line in (result.stdout.strip(), result.stderr.strip()) if line]
    if not result.ok:
        return DeployResult(success=False, error=result.error_text, output=output)
    return DeployResult(
        success=True,
        method="template",
        compose_path=project.compose_path,
        port=project.port,
        framework=project.template_id,
        output=output,
    )


def _persist(project, deployment, result, started):
    deployment.duration_ms = int((time.monotonic() - started) * 1000)
    deployment.finished_at = datetime.now(timezone.utc)
    deployment.output = result.output_text[-MAX_OUTPUT_CHARS:] or None

    if result.success:
        transition(project, "deployed")
        project.deploy_type = result.deploy_type
        project.container_id = result.container_id
        project.image_id = result.image_id
        project.compose_path = result.compose_path
        project.port = result.port
        if not project.template_id:
            project.url = app_url(result.port)
        if not project.framework or project.framework == "unknown":
            project.framework = result.framework
        deployment.status = "success"
        deployment.method = result.method
        log_service.record(
            "success",
            f"'{project.name}' deployed via {result.method}",
            source="deployment",
            project_id=project.id,
            user_id=project.user_id,
            metadata={"method": result.method, "port": result.port},
            commit=False,
        )
    else:
        transition(project, "failed")
        deployment.status = "failed"
        deployment.error = result.error
        log_service.record(
            "error",
            f"Deployment of '{project.name}' failed",
            source="deployment",
            project_id=project.id,
            user_id=project.user_id,
            details=result.error,
            commit=False,
        )
    db.session.commit()


# ──────────────────────────────────────────────
# Teardown
# ──────────────────────────────────────────────

def teardown_project(project, deployer=None):
    """Stop whatever is running for ``project``. Best effort, never raises."""
    deployer = deployer or get_deployer()
    slug = app_key(project)
    if project.compose_path:
        deployer.compose_down(slug, project.compose_path)
        app_dir = os.path.dirname(project.compose_path)
        deploy_root = os.path.abspath(current_app.config["DEPLOY_ROOT"])
        if os.path.abspath(app_dir).startswith(deploy_root + os.sep):
            shutil.rmtree(app_dir, ignore_errors=True)
    elif project.container_id:
        deployer.remove_container(slug)


def stop_project(project):
    """deployed --> stopped, removing the running containers."""
    transition(project, "stopped")
    deployer = get_deployer()
    slug = app_key(project)
    if project.compose_path:
        stopped = deployer.runner.run(
            ["docker", "compose", "-p", slug, "-f", project.compose_path, "stop"],
            cwd=os.path.dirname(project.compose_path),
        )
        if not stopped.ok:
            logger.warning(f"compose stop failed for {slug}")
    elif project.container_id:
        deployer.remove_container(slug)
        project.container_id = None
    log_service.record(
        "warning",
        f"Project '{project.name}' stopped",
        source="projects",
        project_id=project.id,
        user_id=project.user_id,
        commit=False,
    )
    db.session.commit()
    return project


def delete_project(project):
    """Tear down and delete a project (cascades to its child rows)."""
    if is_deploying(project.name):
        raise DeployInProgressError(
            f"Cannot delete '{project.name}' while a deploy is running"
        )
    teardown_project(project)
    name, user_id = project.name, project.user_id
    db.session.delete(project)
    log_service.record(
        "info",
        f"Project '{name}' deleted",
        source="projects",
        user_id=user_id,
        commit=False,
    )
    db.session.commit()


# ──────────────────────────────────────────────
# Catalogue templates
# ──────────────────────────────────────────────

def deploy_template(user, template_id, name, environment=None):
    """Render and bring up a catalogue app. Returns the Project."""
    template = template_service.get_template(template_id)
    env = template_service.build_environment(name, environment)
    key = _claim(name)
    try:
        deployer = get_deployer()
        port = deployer.pick_host_port()

        project = Project(
            user_id=user.id if user else None,
            name=name,
            repository=f"docker:{template_id}",
            framework=template_id,
            template_id=template_id,
            deploy_type="template",
            description=template["description"],
            status="pending",
            port=port,
        )
        db.session.add(project)
        transition(project, "building")
        db.session.flush()

        slug = app_key(project)
        app_dir = os.path.join(current_app.config["DEPLOY_ROOT"], slug)
        os.makedirs(app_dir, exist_ok=True)
        compose_path = os.path.join(app_dir, "docker-compose.yml")
        with open(compose_path, "w") as f:
            f.write(template_service.render_compose(template_id, slug, port, env))
        project.compose_path = compose_path

        deployment = Deployment(
            project_id=project.id,
            status="building",
            method="template",
            started_at=datetime.now(timezone.utc),
        )
        db.session.add(deployment)
        db.session.commit()

        started = time.monotonic()
        result = deployer.compose_up(slug, compose_path)
        deployment.duration_ms = int((time.monotonic() - started) * 1000)
        deployment.finished_at = datetime.now(timezone.utc)
        deployment.output = (result.stdout + result.stderr)[-MAX_OUTPUT_CHARS:] or None

        if not result.ok:
            deployer.compose_down(slug, compose_path)
            transition(project, "failed")
            deployment.status = "failed"
            deployment.error = result.error_text
            log_service.record(
                "error",
                f"Template {template_id} deploy of '{name}' failed",
                source="deployment",
                project_id=project.id,
                user_id=project.user_id,
                details=result.error_text,
                commit=False,
            )
            db.session.commit()
            raise DeployFailedError(
                f"Error deploying {template_id}: {result.error_text}"
            )

        url, info = template_service.access_info(
            template_id, port, env, current_app.config["APP_BASE_DOMAIN"]
        )
        transition(project, "deployed")
        project.url = url
        project.access_info = info
        deployment.status = "success"
        log_service.record(
            "success",
            f"{template['name']} deployed as '{name}' on port {port}",
            source="deployment",
            project_id=project.id,
            user_id=project.user_id,
            metadata={"template_id": template_id, "port": port},
            commit=False,
        )
        db.session.commit()
        return project
    finally:
        _release(key)

"""Universal deployer — turns a cloned repository into running containers.

Strategies are tried in a fixed order and the first success wins:

    1. docker-compose   compose file at the repo root, ``compose up -d --build``
    2. buildx           Dockerfile, BuildKit build for BUILD_PLATFORMS, run
    3. docker-build     Dockerfile, classic ``docker build``, run
    4. generated        Dockerfile written from sniffed project markers
                        (package.json, requirements.txt, ...); a plain static
                        image when nothing is recognised

No retries and no racing. Each failed strategy cleans up what it created
(best effort, logged) before the next one runs. The cloned temp directory
itself belongs to the caller.
"""

import json
import logging
import os
import random
import re
import shutil
import tempfile
from dataclasses import dataclass, field

from xistracloud.services.command_runner import CommandRunner

logger = logging.getLogger(__name__)

COMPOSE_FILES = [
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
]
GENERATED_DOCKERFILE = "Dockerfile.xistracloud"
IMAGE_PREFIX = "xistracloud"

# Strategy name -> Project.deploy_type
DEPLOY_TYPE_BY_METHOD = {
    "docker-compose": "docker-compose",
    "buildx": "dockerfile",
    "docker-build": "dockerfile",
    "generated": "generated",
    "template": "template",
}


class CloneError(RuntimeError):
    """Raised when a repository cannot be cloned."""


@dataclass
class DeployResult:
    success: bool
    method: str = None
    container_id: str = None
    image_id: str = None
    compose_path: str = None
    port: int = None
    framework: str = None
    output: list = field(default_factory=list)
    error: str = None

    @property
    def deploy_type(self):
        return DEPLOY_TYPE_BY_METHOD.get(self.method)

    @property
    def output_text(self):
        return "\n".join(self.output)


def slugify(name):
    """Docker-safe name: lowercase alphanumerics and dashes."""
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    return slug[:50].strip("-") or "app"


# ──────────────────────────────────────────────
# Repository fetcher
# ──────────────────────────────────────────────

class RepositoryFetcher:
    """Shallow-clones a repository into a fresh temp directory."""

    def __init__(self, runner=None):
        self.runner = runner or CommandRunner()

    def clone(self, git_url, branch=None):
        """Clone ``git_url``. Returns (temp_dir, commit_hash, commit_message).

        The temp dir is removed again if the clone fails.
        """
        temp_dir = tempfile.mkdtemp(prefix="xistracloud-")
        args = ["git", "clone", "--depth", "1"]
        if branch:
            args += ["--branch", branch]
        args += [git_url, temp_dir]

        result = self.runner.run(args)
        if not result.ok:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise CloneError(f"git clone failed: {result.error_text}")

        commit_hash = commit_message = None
        head = self.runner.run(["git", "log", "-1", "--format=%H%n%s"], cwd=temp_dir)
        if head.ok and head.stdout.strip():
            lines = head.stdout.strip().splitlines()
            commit_hash = lines[0][:64]
            commit_message = lines[1][:500] if len(lines) > 1 else None

        logger.info(f"Cloned {git_url} -> {temp_dir} ({(commit_hash or '?')[:8]})")
        return temp_dir, commit_hash, commit_message


# ──────────────────────────────────────────────
# Generated Dockerfiles
# ──────────────────────────────────────────────

_STATIC_DOCKERFILE = """FROM nginx:alpine
COPY . /usr/share/nginx/html
EXPOSE 80
"""


def _node_dockerfile(repo_dir):
    scripts = {}
    try:
        with open(os.path.join(repo_dir, "package.json")) as f:
            scripts = json.load(f).get("scripts") or {}
    except (OSError, ValueError):
        logger.warning("Unreadable package.json, using default node image")
    build = "RUN npm run build\n" if "build" in scripts else ""
    start = '["npm", "start"]' if "start" in scripts else '["node", "index.js"]'
    return (
        "FROM node:20-alpine\n"
        "WORKDIR /app\n"
        "COPY package*.json ./\n"
        "RUN npm install\n"
        "COPY . .\n"
        f"{build}"
        "ENV PORT=3000\n"
        "EXPOSE 3000\n"
        f"CMD {start}\n"
    )


def _python_entrypoint(repo_dir):
    if os.path.exists(os.path.join(repo_dir, "manage.py")):
        return '["python", "manage.py", "runserver", "0.0.0.0:8000"]'
    for candidate in ("app.py", "main.py", "server.py"):
        if os.path.exists(os.path.join(repo_dir, candidate)):
            return f'["python", "{candidate}"]'
    return '["python", "-m", "http.server", "8000"]'


def _python_dockerfile(repo_dir, install):
    return (
        "FROM python:3.12-slim\n"
        "WORKDIR /app\n"
        "COPY . .\n"
        f"RUN {install}\n"
        "ENV PORT=8000\n"
        "EXPOSE 8000\n"
        f"CMD {_python_entrypoint(repo_dir)}\n"
    )


_GO_DOCKERFILE = """FROM golang:1.22-alpine AS build
WORKDIR /src
COPY . .
RUN go build -o /out/app .

FROM alpine:3.20
COPY --from=build /out/app /usr/local/bin/app
ENV PORT=8080
EXPOSE 8080
CMD ["app"]
"""

_PHP_DOCKERFILE = """FROM php:8.2-apache
COPY --from=composer:2 /usr/bin/composer /usr/bin/composer
WORKDIR /var/www/html
COPY . .
RUN composer install --no-dev --no-interaction || true
EXPOSE 80
"""


def detect_framework(repo_dir):
    """Sniff project markers. Returns (framework, dockerfile_text, port)."""

    def has(name):
        return os.path.exists(os.path.join(repo_dir, name))

    if has("package.json"):
        return "node", _node_dockerfile(repo_dir), 3000
    if has("requirements.txt"):
        return (
            "python",
            _python_dockerfile(repo_dir, "pip install --no-cache-dir -r requirements.txt"),
            8000,
        )
    if has("pyproject.toml"):
        return "python", _python_dockerfile(repo_dir, "pip install --no-cache-dir ."), 8000
    if has("go.mod"):
        return "go", _GO_DOCKERFILE, 8080
    if has("composer.json"):
        return "php", _PHP_DOCKERFILE, 80
    if has("index.html"):
        return "static", _STATIC_DOCKERFILE, 80
    return "generic", _STATIC_DOCKERFILE, 80


def exposed_port(dockerfile_path, default=80):
    """First EXPOSE'd port of a Dockerfile, or ``default``."""
    try:
        with open(dockerfile_path) as f:
            match = re.search(r"^\s*EXPOSE\s+(\d+)", f.read(), re.MULTILINE | re.IGNORECASE)
    except OSError:
        return default
    return int(match.group(1)) if match else default


def published_compose_port(compose_path):
    """First host port published in a compose file (``"8080:80"`` style)."""
    try:
        with open(compose_path) as f:
            text = f.read()
    except OSError:
        return None
    match = re.search(r"""["']?(?:\d+\.\d+\.\d+\.\d+:)?(\d{2,5}):\d{2,5}["']?""", text)
    return int(match.group(1)) if match else None


# ──────────────────────────────────────────────
# Deployer
# ──────────────────────────────────────────────

class UniversalDeployer:
    """Runs the strategy cascade against a cloned repository.

    Example::

        deployer = UniversalDeployer(runner, deploy_root="/srv/apps")
        result = deployer.deploy_repository(url, temp_dir, "My App")
        if result.success:
            print(result.method, result.port)
    """

    def __init__(
        self,
        runner=None,
        platforms="linux/amd64",
        deploy_root=None,
        port_range=(8000, 9999),
    ):
        self.runner = runner or CommandRunner()
        self.platforms = platforms
        self.deploy_root = deploy_root
        self.port_range = port_range

    # -- Public API --

    def deploy_repository(self, git_url, temp_dir, name, env=None):
        """Run the cascade. ``env`` is passed to the app as environment variables."""
        slug = slugify(name)
        env = env or {}
        image = f"{IMAGE_PREFIX}/{slug}:latest"
        output = [f"Deploying {git_url} as {slug}"]
        failures = []

        strategies = [
            ("docker-compose", lambda: self._try_compose(temp_dir, slug, env, output)),
            ("buildx", lambda: self._try_buildx(temp_dir, slug, image, env, output)),
            ("docker-build", lambda: self._try_docker_build(temp_dir, slug, image, env, output)),
            ("generated", lambda: self._try_generated(temp_dir, slug, image, env, output)),
        ]
        for method, attempt in strategies:
            result = attempt()
            if result is None:
                continue  # not applicable to this repo
            if result.success:
                result.method = method
                result.output = output
                logger.info(f"Deployed {slug} via {method} (port {result.port})")
                return result
            failures.append(f"{method}: {result.error}")
            output.append(f"[{method}] failed: {result.error}")
            logger.warning(f"Strategy {method} failed for {slug}: {result.error[:300]}")

        error = "All deployment strategies failed: " + "; ".join(failures)
        return DeployResult(success=False, output=output, error=error)

    def remove_container(self, name_or_id):
        """``docker rm -f``, best effort."""
        result = self.runner.run(["docker", "rm", "-f", name_or_id])
        if not result.ok:
            logger.warning(f"Cleanup: could not remove container {name_or_id}: {result.error_text}")
        return result.ok

    def compose_down(self, project_name, compose_path):
        """``docker compose down``, best effort."""
        args = ["docker", "compose", "-p", project_name]
        if compose_path:
            args += ["-f", compose_path]
        args += ["down", "--remove-orphans"]
        cwd = os.path.dirname(compose_path) if compose_path else None
        if cwd and not os.path.isdir(cwd):
            cwd = None
        result = self.runner.run(args, cwd=cwd)
        if not result.ok:
            logger.warning(f"Cleanup: compose down failed for {project_name}: {result.error_text}")
        return result.ok

    def compose_up(self, project_name, compose_path, build=False):
        args = ["docker", "compose", "-p", project_name, "-f", compose_path, "up", "-d"]
        if build:
            args.append("--build")
        return self.runner.run(args, cwd=os.path.dirname(compose_path))

    def pick_host_port(self):
        low, high = self.port_range
        return random.randint(low, high)

    # -- Strategies (None = not applicable) --

    def _try_compose(self, temp_dir, slug, env, output):
        compose_file = next(
            (f for f in COMPOSE_FILES if os.path.isfile(os.path.join(temp_dir, f))),
            None,
        )
        if compose_file is None:
            return None

        work_dir = temp_dir
        if self.deploy_root:
            # The clone is deleted after the deploy; compose needs its files.
            work_dir = os.path.join(self.deploy_root, slug)
            shutil.rmtree(work_dir, ignore_errors=True)
            shutil.copytree(temp_dir, work_dir, ignore=shutil.ignore_patterns(".git"))
        compose_path = os.path.join(work_dir, compose_file)
        if env:
            with open(os.path.join(work_dir, ".env"), "a") as f:
                f.writelines(f"{k}={v}\n" for k, v in env.items())

        output.append(f"[docker-compose] {compose_file} found")
        result = self.compose_up(slug, compose_path, build=True)
        output.append(result.stdout.strip() or result.stderr.strip())
        if not result.ok:
            self.compose_down(slug, compose_path)
            if work_dir != temp_dir:
                shutil.rmtree(work_dir, ignore_errors=True)
            return DeployResult(success=False, error=result.error_text)

        return DeployResult(
            success=True,
            compose_path=compose_path,
            port=published_compose_port(compose_path),
            framework="docker-compose",
        )

    def _try_buildx(self, temp_dir, slug, image, env, output):
        dockerfile = os.path.join(temp_dir, "Dockerfile")
        if not os.path.isfile(dockerfile):
            return None
        output.append("[buildx] Dockerfile found")
        build = self.runner.run(
            ["docker", "buildx", "build", "--platform", self.platforms,
             "--load", "-t", image, "."],
            cwd=temp_dir,
        )
        if not build.ok:
            return DeployResult(success=False, error=build.error_text)
        return self._run_container(slug, image, exposed_port(dockerfile), env, output, "docker")

    def _try_docker_build(self, temp_dir, slug, image, env, output):
        dockerfile = os.path.join(temp_dir, "Dockerfile")
        if not os.path.isfile(dockerfile):
            return None
        output.append("[docker-build] classic build")
        build = self.runner.run(["docker", "build", "-t", image, "."], cwd=temp_dir)
        if not build.ok:
            return DeployResult(success=False, error=build.error_text)
        return self._run_container(slug, image, exposed_port(dockerfile), env, output, "docker")

    def _try_generated(self, temp_dir, slug, image, env, output):
        framework, dockerfile_text, port = detect_framework(temp_dir)
        dockerfile = os.path.join(temp_dir, GENERATED_DOCKERFILE)
        with open(dockerfile, "w") as f:
            f.write(dockerfile_text)
        output.append(f"[generated] {framework} Dockerfile written")

        build = self.runner.run(
            ["docker", "build", "-f", GENERATED_DOCKERFILE, "-t", image, "."],
            cwd=temp_dir,
        )
        if not build.ok:
            return DeployResult(success=False, error=build.error_text)
        return self._run_container(slug, image, port, env, output, framework)

    def _run_container(self, slug, image, internal_port, env, output, framework):
        # A previous deploy of the same app may still hold the name.
        self.runner.run(["docker", "rm", "-f", slug])

        host_port = self.pick_host_port()
        args = [
            "docker", "run", "-d",
            "--name", slug,
            "--restart", "unless-stopped",
            "--label", f"{IMAGE_PREFIX}.app={slug}",
            "-e", f"PORT={internal_port}",
            "-p", f"{host_port}:{internal_port}",
        ]
        for key, value in env.items():
            args += ["-e", f"{key}={value}"]
        result = self.runner.run(args + [image])
        if not result.ok:
            self.remove_container(slug)
            return DeployResult(success=False, error=result.error_text)

        container_id = result.stdout.strip()[:12]
        output.append(f"Container {container_id} listening on {host_port}")
        return DeployResult(
            success=True,
            container_id=container_id,
            image_id=image,
            port=host_port,
            framework=framework,
        )

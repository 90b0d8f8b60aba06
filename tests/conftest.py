"""Shared test fixtures for the XistraCloud API test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, no rate limits,
  deploys run inline, DEPLOY_ROOT in a temp dir)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- user / admin / other_user: accounts, with auth_headers / admin_headers
- project: a pending project owned by ``user``
- fake_runner: a CommandRunner stand-in that records commands and
  materialises repository files on ``git clone``
"""

import os

import pytest

from xistracloud import create_app
from xistracloud.extensions import db as _db
from xistracloud.models.project import Project
from xistracloud.models.user import User
from xistracloud.services.auth_service import generate_token, hash_password
from xistracloud.services.command_runner import CommandResult


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    app.config["DEPLOY_ROOT"] = str(tmp_path_factory.mktemp("deployed-apps"))
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


def _make_user(email, is_admin=False, full_name="Test User"):
    user = User(
        email=email,
        password_hash=hash_password("Password123"),
        full_name=full_name,
        is_admin=is_admin,
    )
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture
def user(db_session):
    return _make_user("dev@xistracloud.test", full_name="Dev User")


@pytest.fixture
def other_user(db_session):
    return _make_user("other@xistracloud.test", full_name="Other User")


@pytest.fixture
def admin(db_session):
    return _make_user("admin@xistracloud.test", is_admin=True, full_name="Admin User")


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {generate_token(user)}"}


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {generate_token(admin)}"}


@pytest.fixture
def project(user):
    project = Project(
        user_id=user.id,
        name="My App",
        repository="https://github.com/acme/my-app.git",
        branch="main",
        status="pending",
    )
    _db.session.add(project)
    _db.session.commit()
    return project


class FakeRunner:
    """Records every command; fails the ones whose prefix is in ``failures``.

    ``files`` (name -> content) are written into the clone target when a
    ``git clone`` runs, so deploys see a realistic repository layout.
    """

    def __init__(self, files=None, failures=(), run_output="0123456789abcdef\n"):
        self.files = files or {}
        self.failures = [tuple(f) for f in failures]
        self.run_output = run_output
        self.commands = []

    def _fails(self, args):
        return any(tuple(args[: len(prefix)]) == prefix for prefix in self.failures)

    def run(self, args, cwd=None, timeout=None):
        self.commands.append(list(args))
        if self._fails(args):
            return CommandResult(args, 1, stderr=f"{args[1]} exploded")
        if args[:2] == ["git", "clone"]:
            target = args[-1]
            for name, content in self.files.items():
                path = os.path.join(target, name)
                os.makedirs(os.path.dirname(path), exist_ok=True)
                with open(path, "w") as f:
                    f.write(content)
            return CommandResult(args, 0)
        if args[:2] == ["git", "log"]:
            return CommandResult(args, 0, stdout="a1b2c3d4e5f6\nInitial commit\n")
        if args[:2] == ["docker", "run"]:
            return CommandResult(args, 0, stdout=self.run_output)
        return CommandResult(args, 0, stdout="ok")

    def ran(self, *prefix):
        """True if any recorded command starts with ``prefix``."""
        return any(tuple(cmd[: len(prefix)]) == prefix for cmd in self.commands)


@pytest.fixture
def fake_runner():
    """Factory: fake_runner(files={...}, failures=[("docker", "buildx")])."""
    return FakeRunner

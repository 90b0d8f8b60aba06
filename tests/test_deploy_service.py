"""Deploy service tests — lifecycle, persistence and the per-app deploy lock.

Runs inside the app context pushed by the autouse db_session fixture; the
command runner is swapped for the FakeRunner from conftest.
"""

import os
from unittest.mock import patch

import pytest

from xistracloud.errors import DeployInProgressError, InvalidTransitionError, NotFoundError
from xistracloud.extensions import db
from xistracloud.models.environment_variable import EnvironmentVariable
from xistracloud.models.project import Project
from xistracloud.models.system import SystemLog
from xistracloud.services import deploy_service
from xistracloud.services.deployer import slugify

COMPOSE = 'services:\n  web:\n    image: nginx\n    ports:\n      - "8091:80"\n'


class TestTransitions:
    @pytest.mark.parametrize("current,target", [
        ("pending", "building"),
        ("building", "deployed"),
        ("building", "failed"),
        ("deployed", "stopped"),
        ("failed", "building"),
        ("stopped", "building"),
    ])
    def test_allowed(self, project, current, target):
        project.status = current
        deploy_service.transition(project, target)
        assert project.status == target

    @pytest.mark.parametrize("current,target", [
        ("pending", "deployed"),
        ("deployed", "pending"),
        ("stopped", "deployed"),
        ("failed", "stopped"),
    ])
    def test_rejected(self, project, current, target):
        project.status = current
        with pytest.raises(InvalidTransitionError):
            deploy_service.transition(project, target)
        assert project.status == current


@patch("xistracloud.services.deploy_service.get_runner")
class TestDeployProject:
    def test_compose_repo(self, mock_get_runner, app, project, fake_runner):
        runner = fake_runner(files={"docker-compose.yml": COMPOSE})
        mock_get_runner.return_value = runner

        deployment = deploy_service.deploy_project(project.id)

        assert deployment.status == "success"
        assert deployment.method == "docker-compose"
        assert deployment.commit_message == "Initial commit"
        assert deployment.duration_ms is not None
        assert "[docker-compose]" in deployment.output
        assert project.status == "deployed"
        assert project.deploy_type == "docker-compose"
        assert project.port == 8091
        assert project.url == "http://xistracloud.app:8091"
        assert project.compose_path == os.path.join(
            app.config["DEPLOY_ROOT"], deploy_service.app_key(project), "docker-compose.yml"
        )
        clone_dir = runner.commands[0][-1]
        assert not os.path.exists(clone_dir)

    def test_env_vars_reach_container(self, mock_get_runner, project, fake_runner):
        runner = fake_runner(files={"requirements.txt": "flask\n"})
        mock_get_runner.return_value = runner
        db.session.add(EnvironmentVariable(project_id=project.id, key="SECRET_KEY", value="xyz"))
        db.session.commit()

        deploy_service.deploy_project(project.id)

        assert project.framework == "python"
        assert project.deploy_type == "generated"
        run_cmd = next(c for c in runner.commands if c[:2] == ["docker", "run"])
        assert "SECRET_KEY=xyz" in run_cmd

    def test_clone_failure(self, mock_get_runner, project, fake_runner):
        mock_get_runner.return_value = fake_runner(failures=[("git", "clone")])

        deployment = deploy_service.deploy_project(project.id)

        assert deployment.status == "failed"
        assert "git clone failed" in deployment.error
        assert project.status == "failed"
        assert project.url is None
        levels = [log.level for log in SystemLog.query.filter_by(project_id=project.id)]
        assert "error" in levels

    def test_all_strategies_fail(self, mock_get_runner, project, fake_runner):
        mock_get_runner.return_value = fake_runner(failures=[("docker", "build")])

        deployment = deploy_service.deploy_project(project.id)

        assert deployment.status == "failed"
        assert deployment.error.startswith("All deployment strategies failed")
        assert project.status == "failed"

    def test_failed_project_can_redeploy(self, mock_get_runner, project, fake_runner):
        project.status = "failed"
        db.session.commit()
        mock_get_runner.return_value = fake_runner(files={"index.html": "hi"})

        deploy_service.start_deploy(project)

        assert project.status == "deployed"
        assert project.deployments.count() == 1

    def test_template_redeploy_brings_compose_back_up(self, mock_get_runner, app, project, fake_runner):
        runner = fake_runner()
        mock_get_runner.return_value = runner
        project.status = "stopped"
        project.template_id = "n8n"
        project.compose_path = "/srv/apps/my-app/docker-compose.yml"
        project.port = 8200
        project.url = "http://xistracloud.app:8200"
        db.session.commit()

        deployment = deploy_service.deploy_project(project.id)

        assert deployment.status == "success"
        assert deployment.method == "template"
        assert project.status == "deployed"
        assert project.url == "http://xistracloud.app:8200"
        assert not runner.ran("git", "clone")
        assert runner.ran(
            "docker", "compose", "-p", deploy_service.app_key(project),
            "-f", project.compose_path, "up", "-d",
        )

    def test_missing_project(self, mock_get_runner):
        with pytest.raises(NotFoundError):
            deploy_service.deploy_project("missing")


class TestDeployLock:
    def test_second_deploy_of_same_name_rejected(self, project):
        key = deploy_service._claim(project.name)
        try:
            assert deploy_service.is_deploying("my app")
            with pytest.raises(DeployInProgressError):
                deploy_service.start_deploy(project)
            with pytest.raises(DeployInProgressError):
                deploy_service.delete_project(project)
        finally:
            deploy_service._release(key)
        assert not deploy_service.is_deploying(project.name)

    def test_lock_released_after_deploy(self, project, fake_runner):
        with patch("xistracloud.services.deploy_service.get_runner", return_value=fake_runner()):
            deploy_service.deploy_project(project.id)
        assert not deploy_service.is_deploying(project.name)


class TestAppKey:
    def test_same_name_projects_get_distinct_keys(self, project, other_user):
        theirs = Project(
            user_id=other_user.id, name="My App",
            repository="https://github.com/other/my-app.git", status="pending",
        )
        db.session.add(theirs)
        db.session.commit()

        assert deploy_service.app_key(project) == f"my-app-{project.id[:8]}"
        assert deploy_service.app_key(theirs) == f"my-app-{theirs.id[:8]}"
        assert deploy_service.app_key(project) != deploy_service.app_key(theirs)

    def test_long_names_stay_docker_safe(self):
        project = Project(
            id="1a2b3c4d-0000-0000-0000-000000000000",
            name="Very Long Project Name " * 3,
        )
        key = deploy_service.app_key(project)
        assert key == "very-long-project-name-very-long-project-1a2b3c4d"
        assert slugify(key) == key

    @patch("xistracloud.services.deploy_service.get_runner")
    def test_same_name_deploy_and_delete_leave_other_container_alone(
        self, mock_get_runner, project, other_user, fake_runner
    ):
        project.status = "deployed"
        project.container_id = "0123456789ab"
        theirs = Project(
            user_id=other_user.id, name="My App",
            repository="https://github.com/other/my-app.git", status="pending",
        )
        db.session.add(theirs)
        db.session.commit()
        runner = fake_runner(files={"index.html": "<h1>theirs</h1>"})
        mock_get_runner.return_value = runner

        deploy_service.deploy_project(theirs.id)
        deploy_service.delete_project(theirs)

        mine, other = deploy_service.app_key(project), f"my-app-{theirs.id[:8]}"
        assert runner.ran("docker", "rm", "-f", other)
        assert not any(mine in arg for cmd in runner.commands for arg in cmd)
        assert db.session.get(Project, project.id).status == "deployed"


class TestAsyncDeploy:
    def test_project_is_building_before_thread_starts(self, app, project, fake_runner, monkeypatch):
        monkeypatch.setitem(app.config, "DEPLOY_ASYNC", True)
        with patch("xistracloud.services.deploy_service.threading.Thread") as mock_thread:
            assert deploy_service.start_deploy(project) is None
        key = mock_thread.call_args.kwargs["args"][2]
        try:
            mock_thread.return_value.start.assert_called_once()
            db.session.expire_all()
            assert db.session.get(Project, project.id).status == "building"
            assert deploy_service.is_deploying(project.name)

            with patch("xistracloud.services.deploy_service.get_runner",
                       return_value=fake_runner(files={"index.html": "hi"})):
                deployment = deploy_service._deploy(project.id)
        finally:
            deploy_service._release(key)

        assert deployment.status == "success"
        assert project.status == "deployed"
        assert project.deployments.count() == 1


class TestCreateProject:
    def test_create_project_logs(self, user):
        project = deploy_service.create_project(
            user, "API", "https://github.com/acme/api.git", branch="dev"
        )
        assert project.status == "pending"
        assert project.framework == "unknown"
        log = SystemLog.query.filter_by(project_id=project.id).one()
        assert log.message == "Project 'API' created"
        assert log.metadata_ == {"repository": "https://github.com/acme/api.git"}

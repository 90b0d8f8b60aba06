"""Catalogue app tests — template listing, one-click deploy and removal."""

import os
from unittest.mock import patch

from xistracloud.extensions import db
from xistracloud.models.deployment import Deployment
from xistracloud.models.project import Project
from xistracloud.services import deploy_service, template_service


class TestTemplates:
    def test_templates_are_public(self, client):
        response = client.get("/apps/templates")
        assert response.status_code == 200
        data = response.get_json()
        ids = {t["id"] for t in data["templates"]}
        assert {"wordpress", "n8n", "mysql", "postgresql", "nextjs"} <= ids
        assert "database" in data["categories"]

    def test_build_environment_generates_secrets(self):
        env = template_service.build_environment("blog", {"DB_NAME": "wp"})
        assert env["DB_NAME"] == "wp"
        assert env["SITE_NAME"] == "blog"
        assert len(env["DB_PASSWORD"]) == 16
        assert env["DB_PASSWORD"] != env["DB_ROOT_PASSWORD"]

    def test_render_compose(self, app):
        env = template_service.build_environment("blog")
        with app.test_request_context():
            text = template_service.render_compose("wordpress", "blog", 8123, env)
        assert '"8123:80"' in text
        assert f'WORDPRESS_DB_PASSWORD: "{env["DB_PASSWORD"]}"' in text
        assert "container_name: blog" in text


@patch("xistracloud.services.deployer.UniversalDeployer.pick_host_port", return_value=8123)
@patch("xistracloud.services.deploy_service.get_runner")
class TestDeployApp:
    def test_deploy_wordpress(self, mock_get_runner, _port, app, client, auth_headers, fake_runner):
        runner = fake_runner()
        mock_get_runner.return_value = runner

        response = client.post("/apps/deploy", headers=auth_headers, json={
            "templateId": "wordpress",
            "name": "Company Blog",
            "environment": {"ADMIN_EMAIL": "owner@acme.io"},
        })
        assert response.status_code == 201
        app_data = response.get_json()["deployment"]
        assert app_data["status"] == "deployed"
        assert app_data["deploy_type"] == "template"
        assert app_data["template_id"] == "wordpress"
        assert app_data["port"] == 8123
        assert app_data["url"] == "http://xistracloud.app:8123"
        assert app_data["access_info"]["admin_url"] == "http://xistracloud.app:8123/wp-admin"
        assert app_data["access_info"]["email"] == "owner@acme.io"

        key = deploy_service.app_key(Project.query.one())
        assert key.startswith("company-blog-")
        compose_path = os.path.join(app.config["DEPLOY_ROOT"], key, "docker-compose.yml")
        assert app_data["compose_path"] == compose_path
        assert os.path.exists(compose_path)
        assert runner.ran("docker", "compose", "-p", key, "-f", compose_path, "up", "-d")
        assert Deployment.query.one().method == "template"

    def test_unknown_template(self, mock_get_runner, _port, client, auth_headers):
        response = client.post("/apps/deploy", headers=auth_headers, json={
            "template_id": "oracle", "name": "Legacy",
        })
        assert response.status_code == 404
        assert response.get_json()["code"] == "TEMPLATE_NOT_FOUND"

    def test_unsafe_environment_value(self, mock_get_runner, _port, client, auth_headers):
        response = client.post("/apps/deploy", headers=auth_headers, json={
            "template_id": "mysql", "name": "Data", "environment": {"DB_NAME": 'x"\ninjected: 1'},
        })
        assert response.status_code == 400
        assert response.get_json()["details"][0]["field"] == "environment.DB_NAME"

    def test_compose_failure_marks_project_failed(self, mock_get_runner, _port, client, auth_headers, fake_runner):
        runner = fake_runner(failures=[("docker", "compose")])
        mock_get_runner.return_value = runner

        response = client.post("/apps/deploy", headers=auth_headers, json={
            "template_id": "postgresql", "name": "Broken DB",
        })
        assert response.status_code == 500
        assert response.get_json()["code"] == "DEPLOY_FAILED"
        project = Project.query.one()
        assert project.status == "failed"
        assert Deployment.query.one().status == "failed"
        assert runner.ran("docker", "compose", "-p", deploy_service.app_key(project), "-f")
        assert any("down" in cmd for cmd in runner.commands)

    def test_list_deployed_only_templates(self, mock_get_runner, _port, client, auth_headers, project, user):
        db.session.add(Project(
            user_id=user.id, name="Cache", template_id="mysql",
            deploy_type="template", status="deployed", access_info={"port": 9000},
        ))
        db.session.commit()

        response = client.get("/apps/deployed", headers=auth_headers)
        apps = response.get_json()["apps"]
        assert [a["name"] for a in apps] == ["Cache"]
        assert apps[0]["access_info"] == {"port": 9000}

    def test_delete_deployed_app(self, mock_get_runner, _port, app, client, auth_headers, user, fake_runner):
        runner = fake_runner()
        mock_get_runner.return_value = runner
        project = Project(
            user_id=user.id, name="Old Wiki", template_id="nextjs", status="deployed",
        )
        db.session.add(project)
        db.session.flush()
        key = deploy_service.app_key(project)
        app_dir = os.path.join(app.config["DEPLOY_ROOT"], key)
        os.makedirs(app_dir, exist_ok=True)
        compose_path = os.path.join(app_dir, "docker-compose.yml")
        open(compose_path, "w").close()
        project.compose_path = compose_path
        db.session.commit()

        response = client.delete(f"/apps/deployed/{project.id}", headers=auth_headers)
        assert response.status_code == 200
        assert runner.ran("docker", "compose", "-p", key, "-f", compose_path, "down")
        assert not os.path.exists(app_dir)
        assert Project.query.count() == 0

    def test_delete_non_template_project_is_not_found(self, mock_get_runner, _port, client, auth_headers, project):
        response = client.delete(f"/apps/deployed/{project.id}", headers=auth_headers)
        assert response.status_code == 404

"""Domain API tests — registration, normalisation and DNS verification.

DNS-over-HTTPS calls are patched at ``requests.get`` inside the service.
"""

from unittest.mock import MagicMock, patch

import requests

from xistracloud.extensions import db
from xistracloud.models.domain import Domain
from xistracloud.models.project import Project
from xistracloud.services.domain_service import is_valid_domain, normalize_domain


def doh_answer(*values):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"Answer": [{"data": v} for v in values]}
    return response


class TestNormalisation:
    def test_normalize_domain(self):
        assert normalize_domain("HTTPS://www.Shop.Acme.io/path?x=1") == "shop.acme.io"
        assert normalize_domain("acme.io.") == "acme.io"
        assert normalize_domain("acme.io:8443") == "acme.io"

    def test_is_valid_domain(self):
        assert is_valid_domain("shop.acme.io")
        assert is_valid_domain("a-b.co")
        assert not is_valid_domain("nodot")
        assert not is_valid_domain("-bad.io")
        assert not is_valid_domain("bad_underscore.io")
        assert not is_valid_domain("acme.123")
        assert not is_valid_domain(("a" * 60 + ".") * 5 + "io")


class TestCreateDomain:
    def test_create_domain(self, client, auth_headers, project):
        response = client.post("/domains", headers=auth_headers, json={
            "domain": "https://www.Shop.Acme.io/",
            "projectId": project.id,
        })
        assert response.status_code == 201
        domain = response.get_json()["domain"]
        assert domain["domain"] == "shop.acme.io"
        assert domain["status"] == "pending"
        assert domain["ssl_enabled"] is False
        assert domain["project_name"] == "My App"
        assert domain["dns_records"]["txt"]["name"] == "_xistracloud.shop.acme.io"
        assert domain["dns_records"]["txt"]["value"].endswith(domain["verification_token"])

    def test_malformed_domain(self, client, auth_headers, project):
        response = client.post("/domains", headers=auth_headers, json={
            "domain": "not a domain!",
            "project_id": project.id,
        })
        assert response.status_code == 400
        data = response.get_json()
        assert data["error"] == "Invalid domain format"
        assert data["code"] == "INVALID_DOMAIN"

    def test_duplicate_domain(self, client, auth_headers, project):
        body = {"domain": "shop.acme.io", "project_id": project.id}
        assert client.post("/domains", headers=auth_headers, json=body).status_code == 201
        response = client.post("/domains", headers=auth_headers, json={
            "domain": "WWW.shop.acme.io", "project_id": project.id,
        })
        assert response.status_code == 409
        assert response.get_json()["error"] == "Domain already exists"

    def test_unknown_project(self, client, auth_headers):
        response = client.post("/domains", headers=auth_headers, json={
            "domain": "shop.acme.io", "project_id": "nope",
        })
        assert response.status_code == 404

    def test_list_filters_by_project(self, client, auth_headers, project, user):
        second = Project(user_id=user.id, name="Second", status="pending")
        db.session.add(second)
        db.session.commit()
        db.session.add(Domain(domain="one.acme.io", project_id=project.id, verification_token="t1"))
        db.session.add(Domain(domain="two.acme.io", project_id=second.id, verification_token="t2"))
        db.session.commit()

        everything = client.get("/domains", headers=auth_headers).get_json()["domains"]
        assert {d["domain"] for d in everything} == {"one.acme.io", "two.acme.io"}
        filtered = client.get(f"/domains?project={second.id}", headers=auth_headers)
        assert [d["domain"] for d in filtered.get_json()["domains"]] == ["two.acme.io"]

    def test_delete_domain(self, client, auth_headers, project):
        domain = Domain(domain="shop.acme.io", project_id=project.id, verification_token="t1")
        db.session.add(domain)
        db.session.commit()
        domain_id = domain.id
        response = client.delete(f"/domains/{domain_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()["deletedDomain"]["domain"] == "shop.acme.io"
        assert db.session.get(Domain, domain_id) is None


class TestVerifyDomain:
    def _domain(self, project, name="shop.acme.io"):
        domain = Domain(domain=name, project_id=project.id, verification_token="tok123")
        db.session.add(domain)
        db.session.commit()
        return domain

    @patch("xistracloud.services.domain_service.requests.get")
    def test_txt_record_verifies(self, mock_get, client, auth_headers, project):
        mock_get.return_value = doh_answer('"xistracloud-verification=tok123"')
        domain = self._domain(project)

        response = client.post(f"/domains/{domain.id}/verify", headers=auth_headers)
        assert response.status_code == 200
        data = response.get_json()["domain"]
        assert data["status"] == "verified"
        assert data["ssl_enabled"] is True
        assert data["verified_at"] is not None
        params = mock_get.call_args[1]["params"]
        assert params == {"name": "_xistracloud.shop.acme.io", "type": "TXT"}

    @patch("xistracloud.services.domain_service.requests.get")
    def test_cname_verifies(self, mock_get, client, auth_headers, project):
        mock_get.side_effect = [doh_answer(), doh_answer("xistracloud.app.")]
        domain = self._domain(project)

        response = client.post(f"/domains/{domain.id}/verify", headers=auth_headers)
        assert response.get_json()["domain"]["status"] == "verified"

    @patch("xistracloud.services.domain_service.requests.get")
    def test_missing_records_fail(self, mock_get, client, auth_headers, project):
        mock_get.return_value = doh_answer("somewhere-else.net.")
        domain = self._domain(project)

        data = client.post(f"/domains/{domain.id}/verify", headers=auth_headers).get_json()["domain"]
        assert data["status"] == "failed"
        assert "DNS records not found" in data["message"]

    @patch("xistracloud.services.domain_service.requests.get")
    def test_lookup_error_fails(self, mock_get, client, auth_headers, project):
        mock_get.side_effect = requests.exceptions.Timeout()
        domain = self._domain(project)

        data = client.post(f"/domains/{domain.id}/verify", headers=auth_headers).get_json()["domain"]
        assert data["status"] == "failed"
        assert "DNS lookup failed" in data["message"]

    @patch("xistracloud.services.domain_service.requests.get")
    def test_bypass_domain_skips_dns(self, mock_get, client, auth_headers, project):
        domain = self._domain(project, name="demo.acme.io")
        data = client.post(f"/domains/{domain.id}/verify", headers=auth_headers).get_json()["domain"]
        assert data["status"] == "verified"
        mock_get.assert_not_called()

    @patch("xistracloud.services.domain_service.requests.get")
    def test_marker_inside_a_label_still_checks_dns(self, mock_get, client, auth_headers, project):
        mock_get.return_value = doh_answer()
        for name in ("contest.io", "greatestbank.com"):
            domain = self._domain(project, name=name)
            data = client.post(f"/domains/{domain.id}/verify", headers=auth_headers).get_json()["domain"]
            assert data["status"] == "failed"
        assert mock_get.call_count == 4

    @patch("xistracloud.services.domain_service.requests.get")
    def test_non_object_json_fails_lookup(self, mock_get, client, auth_headers, project):
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.return_value = ["not", "an", "object"]
        mock_get.return_value = response
        domain = self._domain(project)

        data = client.post(f"/domains/{domain.id}/verify", headers=auth_headers).get_json()["domain"]
        assert data["status"] == "failed"
        assert "DNS lookup failed" in data["message"]

    def test_already_verified(self, client, auth_headers, project):
        domain = self._domain(project, name="demo.acme.io")
        domain.status = "verified"
        db.session.commit()
        response = client.post(f"/domains/{domain.id}/verify", headers=auth_headers)
        assert response.status_code == 409

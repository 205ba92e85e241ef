"""
Tests for the platform API client against a Flask stub.
"""

from pathlib import Path

import pytest

from issuerctl.core.services.issuer_api import ApiResponse, IssuerApiClient


class TestIssuerApiClient:
    def test_health(self, issuer_api):
        response = IssuerApiClient(issuer_api.url).health()
        assert response.ok
        assert response.status == 200
        assert response.json() == {"status": "up"}
        assert response.url == f"{issuer_api.url}/status"

    def test_create_identity_sends_basic_auth(self, issuer_api):
        client = IssuerApiClient(issuer_api.url, "admin", "admin123")
        response = client.create_identity({"method": "polygonid", "blockchain": "polygon", "network": "amoy"})
        assert response.ok
        assert response.status == 201
        assert issuer_api.identities[0]["didMetadata"]["method"] == "polygonid"

    def test_without_credentials(self, issuer_api):
        response = IssuerApiClient(issuer_api.url).create_identity({"method": "m", "blockchain": "b", "network": "n"})
        assert not response.ok
        assert response.status == 401
        assert response.json() == {"message": "unauthorized"}

    def test_connection_refused(self, settings):
        response = IssuerApiClient(settings.api.url, timeout=2).health()
        assert not response.ok
        assert response.status is None
        assert response.error

    def test_from_env_file(self, tmp_path: Path):
        env = tmp_path / ".env-issuer"
        env.write_text(
            "ISSUER_SERVER_URL=http://issuer.local:3001/\n"
            "ISSUER_API_AUTH_USER=ops\n"
            "ISSUER_API_AUTH_PASSWORD=pw\n"
        )
        client = IssuerApiClient.from_env_file(env, timeout=1)
        assert client.base_url == "http://issuer.local:3001"
        assert client.timeout == 1

    def test_from_missing_env_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            IssuerApiClient.from_env_file(tmp_path / ".env-issuer")


class TestApiResponse:
    def test_non_json_body(self):
        response = ApiResponse(ok=False, url="u", status=502, body="<html>bad gateway</html>")
        assert response.json() is None
        assert response.to_dict()["body"] == "<html>bad gateway</html>"

"""
Integration tests for OpenAPI documentation.

Verifies OpenAPI schema is correctly generated for all endpoints, including
the request bodies documented without FastAPI parsing them.
"""

import pytest
from fastapi.testclient import TestClient

from authgate.api.main import create_app


@pytest.fixture
def schema(settings_factory) -> dict:
    """OpenAPI schema of a freshly built application."""
    return TestClient(create_app(settings_factory())).get("/openapi.json").json()


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    def test_openapi_schema_accessible(self, settings_factory) -> None:
        """OpenAPI schema is accessible at /openapi.json."""
        response = TestClient(create_app(settings_factory())).get("/openapi.json")

        assert response.status_code == 200
        schema = response.json()
        assert "openapi" in schema
        assert "paths" in schema

    def test_title_and_version(self, schema: dict) -> None:
        """OpenAPI schema has correct title and version."""
        assert schema["info"]["title"] == "authgate"
        assert schema["info"]["version"] == "0.1.0"

    @pytest.mark.parametrize(
        ("path", "method"),
        [
            ("/auth/register", "post"),
            ("/auth/login", "post"),
            ("/auth/logout", "post"),
            ("/auth/refresh", "post"),
            ("/auth/session", "get"),
            ("/auth/profile", "patch"),
            ("/auth/account", "delete"),
            ("/auth/logs", "get"),
            ("/health", "get"),
        ],
    )
    def test_endpoint_documented(self, schema: dict, path: str, method: str) -> None:
        """Every endpoint appears with its method."""
        assert method in schema["paths"][path]

    def test_register_request_body_documented(self, schema: dict) -> None:
        """The register body lists name, email and password."""
        register = schema["paths"]["/auth/register"]["post"]
        body = register["requestBody"]["content"]["application/json"]["schema"]

        assert set(body["properties"]) == {"name", "email", "password"}
        assert set(body["required"]) == {"name", "email", "password"}

    def test_logout_body_optional(self, schema: dict) -> None:
        """Logout documents its refresh token body as optional."""
        logout = schema["paths"]["/auth/logout"]["post"]

        assert logout["requestBody"]["required"] is False
        body = logout["requestBody"]["content"]["application/json"]["schema"]
        assert set(body["properties"]) == {"refreshToken"}

    def test_register_error_responses_documented(self, schema: dict) -> None:
        """Register documents its failure statuses."""
        responses = schema["paths"]["/auth/register"]["post"]["responses"]

        assert {"201", "400", "403", "409", "429", "503"} <= set(responses)

    def test_bearer_scheme_documented(self, schema: dict) -> None:
        """Protected routes declare the bearer security scheme."""
        assert "HTTPBearer" in schema["components"]["securitySchemes"]
        assert schema["paths"]["/auth/session"]["get"]["security"] == [{"HTTPBearer": []}]

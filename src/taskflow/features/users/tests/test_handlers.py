"""Tests for auth and user profile API handlers."""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from src.taskflow.auth.dependencies import get_user_directory
from src.taskflow.features.users.directory import UserDirectory
from src.taskflow.main import app
from src.taskflow.tests.fakes import make_token

VERIFY_URL = "/api/auth/verify"
PROFILE_URL = "/api/user/profile"


def auth_headers(token: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {token or make_token()}"}


class TestVerifyToken:
    """POST /api/auth/verify"""

    def test_first_login_creates_user(self, client: TestClient, user_repository) -> None:
        response = client.post(VERIFY_URL, json={"token": make_token()})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["isNewUser"] is True
        user = body["user"]
        assert user["externalId"] == "google-oauth2|1234567890"
        assert user["provider"] == "google"
        assert user["email"] == "user@example.com"
        assert user["name"] == "Test User"
        assert user["avatarUrl"] == "https://example.com/a.png"
        assert user["lastLoginAt"] is not None
        assert user["id"] != user["externalId"]
        assert user_repository.count(user["externalId"]) == 1

    def test_second_login_returns_same_user(self, client: TestClient) -> None:
        first = client.post(VERIFY_URL, json={"token": make_token()}).json()

        second = client.post(VERIFY_URL, json={"token": make_token()}).json()

        assert second["isNewUser"] is False
        assert second["user"]["id"] == first["user"]["id"]

    def test_unstorable_profile_fields_are_normalised(self, client: TestClient) -> None:
        """A blank name or a non-http avatar URL must not fail the insert."""
        token = make_token(user_metadata={"name": "   ", "avatar_url": "data:image/png;base64,AAAA"})

        response = client.post(VERIFY_URL, json={"token": token})

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["name"] == "user@example.com"
        assert user["avatarUrl"] is None

    def test_empty_token_is_400(self, client: TestClient, user_repository) -> None:
        response = client.post(VERIFY_URL, json={"token": ""})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Token cannot be empty"}
        assert user_repository.find_calls == 0

    def test_missing_token_is_400(self, client: TestClient) -> None:
        response = client.post(VERIFY_URL, json={})

        assert response.status_code == 400
        assert response.json()["error"] == "Token is required"

    def test_invalid_json_is_400(self, client: TestClient) -> None:
        response = client.post(
            VERIFY_URL, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON format"

    def test_get_is_405(self, client: TestClient) -> None:
        response = client.get(VERIFY_URL)

        assert response.status_code == 405
        assert response.json() == {"success": False, "error": "Method not allowed"}

    def test_non_json_content_type_is_415(self, client: TestClient) -> None:
        response = client.post(
            VERIFY_URL, content=b"token=abc", headers={"Content-Type": "text/plain"}
        )

        assert response.status_code == 415
        assert response.json()["error"] == "Content-Type must be application/json"

    def test_invalid_signature_is_401(self, client: TestClient, user_repository) -> None:
        token = make_token(secret="another-secret-that-is-long-enough-to-use")

        response = client.post(VERIFY_URL, json={"token": token})

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "認証トークンが無効です"}
        assert user_repository.users == {}

    def test_expired_token_is_401(self, client: TestClient) -> None:
        response = client.post(VERIFY_URL, json={"token": make_token(exp=1, iat=0)})

        assert response.status_code == 401

    def test_unsupported_provider_is_400(self, client: TestClient) -> None:
        token = make_token(app_metadata={"provider": "unknown-provider"})

        response = client.post(VERIFY_URL, json={"token": token})

        assert response.status_code == 400
        assert "unknown-provider" in response.json()["error"]

    def test_database_failure_is_500(self, client: TestClient, db_session) -> None:
        repository = AsyncMock()
        repository.find_by_external_id.side_effect = OSError("connection refused")
        app.dependency_overrides[get_user_directory] = lambda: UserDirectory(repository)

        response = client.post(VERIFY_URL, json={"token": make_token()})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}
        db_session.rollback.assert_awaited_once()


class TestGetUserProfile:
    """GET /api/user/profile"""

    def test_returns_profile(self, client: TestClient, user_repository, rls_setter) -> None:
        user = user_repository.add()

        response = client.get(PROFILE_URL, headers=auth_headers())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == str(user.id)
        assert body["data"]["externalId"] == user.external_id
        assert "external_id" not in body["data"]
        rls_setter.set_current_user.assert_awaited_once()

    def test_profile_does_not_touch_login(self, client: TestClient, user_repository) -> None:
        user = user_repository.add()

        client.get(PROFILE_URL, headers=auth_headers())

        assert user_repository.users[user.id].last_login_at is None

    def test_valid_token_without_user_is_404(self, client: TestClient, user_repository) -> None:
        """A verified caller who never called /auth/verify has no profile yet."""
        response = client.get(PROFILE_URL, headers=auth_headers())

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": {"code": "USER_NOT_FOUND", "message": "ユーザーが見つかりません"},
        }
        assert user_repository.users == {}

    def test_missing_header_is_401(self, client: TestClient) -> None:
        response = client.get(PROFILE_URL)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"

    def test_invalid_token_is_401(self, client: TestClient) -> None:
        response = client.get(PROFILE_URL, headers=auth_headers("invalid.token.value"))

        assert response.status_code == 401

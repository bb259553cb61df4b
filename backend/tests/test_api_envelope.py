"""
HTTP surface: error envelope, auth guards and cookie delivery through
the in-process TestClient.
"""
from unittest.mock import AsyncMock, MagicMock, patch

from auth import create_access_token, hash_password


def _bearer(user_id="USR-1"):
    token = create_access_token({"sub": user_id, "email": "a@example.com"})
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_credentials_use_error_envelope(client):
    response = client.get("/api/v1/users/dashboard")
    assert response.status_code == 401
    assert response.json()["success"] is False
    assert response.json()["message"] == "Unauthorized request"


def test_request_validation_is_400_envelope(client):
    response = client.post("/api/v1/users/login", json={"email": "not-an-email"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"]


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/v1/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found"}


def test_bearer_token_resolves_dashboard_user(client, mock_db):
    mock_db.users.find_one = AsyncMock(return_value={
        "user_id": "USR-1", "email": "a@example.com", "full_name": "Asha Rao",
        "role": "user", "password_hash": "secret-hash", "refresh_token_hash": "h",
    })
    with patch("database.database.get_db", return_value=mock_db):
        response = client.get("/api/v1/users/dashboard", headers=_bearer())
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["user_id"] == "USR-1"
    assert "password_hash" not in user
    assert "refresh_token_hash" not in user


def test_admin_route_forbidden_for_regular_user(client, mock_db):
    mock_db.users.find_one = AsyncMock(return_value={"user_id": "USR-1", "email": "a@example.com", "role": "user"})
    with patch("database.database.get_db", return_value=mock_db):
        response = client.get("/api/v1/admin/stats", headers=_bearer())
    assert response.status_code == 403
    assert response.json()["message"] == "Role: user is not allowed to access this resource"


def test_invalid_api_key_rejected(client, mock_db):
    mock_db.api_keys.find_one_and_update = AsyncMock(return_value=None)
    with patch("database.database.get_db", return_value=mock_db):
        response = client.get("/api/v1/designs/", headers={"X-API-Key": "nope"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or inactive API key"


def test_api_key_cannot_manage_api_keys(client, mock_db):
    mock_db.api_keys.find_one_and_update = AsyncMock(return_value={"key_id": "KEY-1", "user_id": "USR-1"})
    mock_db.users.find_one = AsyncMock(return_value={"user_id": "USR-1", "email": "a@example.com", "role": "user"})
    with patch("database.database.get_db", return_value=mock_db):
        response = client.get("/api/v1/api-keys/", headers={"X-API-Key": "valid"})
    assert response.status_code == 401


def test_login_sets_http_only_cookies(client, mock_db):
    mock_db.users.find_one = AsyncMock(return_value={
        "user_id": "USR-1", "email": "a@example.com", "full_name": "Asha Rao",
        "role": "user", "password_hash": hash_password("Str0ngPass"),
    })
    with patch("database.database.get_db", return_value=mock_db):
        response = client.post("/api/v1/users/login", json={"email": "a@example.com", "password": "Str0ngPass"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["accessToken"]
    cookies = response.headers.get_list("set-cookie")
    assert any(c.startswith("accessToken=") and "HttpOnly" in c for c in cookies)
    assert any(c.startswith("refreshToken=") for c in cookies)


def test_login_wrong_password(client, mock_db):
    mock_db.users.find_one = AsyncMock(return_value={
        "user_id": "USR-1", "email": "a@example.com", "password_hash": hash_password("Str0ngPass"),
    })
    with patch("database.database.get_db", return_value=mock_db):
        response = client.post("/api/v1/users/login", json={"email": "a@example.com", "password": "WrongPass1"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_usage_limit_surfaces_as_403(client, mock_db):
    from datetime import datetime, timezone
    now = datetime.now(timezone.utc)
    mock_db.users.find_one = AsyncMock(return_value={
        "user_id": "USR-1", "email": "a@example.com", "role": "user", "is_premium": False,
        "usage_limits": {"month": now.month, "year": now.year, "ai_suggestions": 5, "color_palettes": 0},
    })
    with patch("database.database.get_db", return_value=mock_db):
        response = client.post("/api/v1/ai/suggestions", json={"prompt": "Poster"}, headers=_bearer())
    assert response.status_code == 403
    assert "5 AI suggestions" in response.json()["message"]


def test_google_login_unconfigured_is_503(client):
    with patch.dict("os.environ", {"GOOGLE_CLIENT_ID": "", "GOOGLE_CLIENT_SECRET": ""}, clear=False):
        response = client.get("/api/v1/auth/google", follow_redirects=False)
    assert response.status_code == 503
    assert response.json()["message"] == "Google OAuth is not configured"

import uuid

import pytest

from gutcheck.models.user import User


pytestmark = pytest.mark.asyncio


async def register_user(client, email: str, **keys):
    return await client.post("/api/v1/auth/register", json={"email": email, **keys})


async def test_register_is_find_or_create(client):
    email = f"user_{uuid.uuid4().hex[:6]}@example.com"

    resp = await register_user(client, email)
    body = resp.json()
    assert resp.status_code == 201
    assert body["success"] is True
    assert body["data"]["user"]["email"] == email
    assert body["data"]["user"]["evaluation"] == {
        "allowed": True, "count": 0, "limit": 10, "hasOwnKey": False, "usableKey": False,
    }
    assert "accessToken" in body["data"]
    assert "accessToken" in resp.cookies

    # Same account for differently-cased input
    again = await register_user(client, "  " + email.upper() + " ")
    assert again.status_code == 201
    assert again.json()["data"]["user"]["email"] == email


async def test_register_invalid_email(client):
    resp = await register_user(client, "not-an-email")
    body = resp.json()
    assert resp.status_code == 400
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"


async def test_register_with_own_keys(client):
    resp = await register_user(client, "byok@example.com", apiKey="sk-user", transcriptionApiKey="gsk-user")
    user = resp.json()["data"]["user"]
    assert user["hasApiKey"] is True
    assert user["hasTranscriptionApiKey"] is True
    assert user["evaluation"]["hasOwnKey"] is True
    assert user["evaluation"]["usableKey"] is True
    # the key itself is never echoed
    assert "sk-user" not in resp.text


async def test_me_requires_auth(client):
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "AUTH_REQUIRED"

    bad = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "AUTH_INVALID_TOKEN"


async def test_me_and_settings_flow(client, auth_header_factory):
    headers = await auth_header_factory("settings@example.com")

    me = await client.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["data"]["transcription"]["count"] == 0

    resp = await client.put(
        "/api/v1/auth/settings",
        json={"apiKey": "sk-user", "preferredModel": "gpt-4o"},
        headers=headers,
    )
    data = resp.json()["data"]
    assert resp.status_code == 200
    assert data["hasApiKey"] is True
    assert data["hasTranscriptionApiKey"] is False
    assert data["preferredModel"] == "gpt-4o"

    # Empty string removes the key, omitted fields stay unchanged
    resp = await client.put("/api/v1/auth/settings", json={"apiKey": ""}, headers=headers)
    data = resp.json()["data"]
    assert data["hasApiKey"] is False
    assert data["preferredModel"] == "gpt-4o"

    fetched = await client.get("/api/v1/auth/settings", headers=headers)
    assert fetched.json()["data"]["hasApiKey"] is False


async def test_cookie_auth_and_logout(client):
    resp = await register_user(client, "cookie@example.com")
    assert "accessToken" in resp.cookies
    token = resp.json()["data"]["accessToken"]

    # no Authorization header: the accessToken cookie is used
    me = await client.get("/api/v1/auth/me", headers={"Cookie": f"accessToken={token}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "cookie@example.com"

    out = await client.post("/api/v1/auth/logout")
    assert out.status_code == 200
    assert out.json()["data"]["loggedOut"] is True


async def test_unreadable_key_reported_as_metered(client, auth_header_factory):
    headers = await auth_header_factory("broken@example.com", apiKey="sk-user")
    await User.filter(email="broken@example.com").update(llm_key_encrypted="%%%not-a-blob%%%", evaluation_count=10)

    me = await client.get("/api/v1/auth/me", headers=headers)
    evaluation = me.json()["data"]["evaluation"]
    assert evaluation["hasOwnKey"] is True
    assert evaluation["usableKey"] is False
    assert evaluation["allowed"] is False

    idea = await client.post("/api/v1/ideas", json={"title": "T", "rawText": "Some idea"}, headers=headers)
    resp = await client.post(f"/api/v1/ideas/{idea.json()['data']['idea']['id']}/analyze", headers=headers)
    assert resp.status_code == 429


async def test_preferred_model_too_long_uses_error_envelope(client, auth_header_factory):
    headers = await auth_header_factory("longmodel@example.com")
    resp = await client.put("/api/v1/auth/settings", json={"preferredModel": "m" * 129}, headers=headers)
    body = resp.json()
    assert resp.status_code == 400
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["field"] == "preferredModel"

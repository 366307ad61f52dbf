import re

import pytest
from sqlalchemy import delete

from auth_service.models.auth import User

COOKIE_RE = re.compile(r"refreshToken=([^;]*)")


def _refresh_cookie(response) -> str:
    header = response.headers.get("set-cookie")
    assert header is not None
    match = COOKIE_RE.search(header)
    assert match is not None
    return match.group(1)


async def _register(client, email="user@example.com", password="longpassword"):
    return await client.post("/api/auth/register", json={"email": email, "password": password})


async def _login(client, email="user@example.com", password="longpassword"):
    return await client.post("/api/auth/login", json={"email": email, "password": password})


async def _refresh(client, token: str | None):
    client.cookies.clear()
    headers = {"Cookie": f"refreshToken={token}"} if token is not None else {}
    return await client.post("/api/auth/refresh", headers=headers)


@pytest.mark.anyio
async def test_register_login_refresh_replay(client) -> None:
    registered = await _register(client)
    assert registered.status_code == 201
    user = registered.json()["user"]
    assert user["email"] == "user@example.com"
    assert "password" not in user and "password_hash" not in user
    assert user["created_at"]

    login = await _login(client)
    assert login.status_code == 200
    body = login.json()
    assert body["accessToken"]
    assert body["user"] == {"id": user["id"], "email": "user@example.com"}

    set_cookie = login.headers["set-cookie"]
    assert "HttpOnly" in set_cookie
    assert "SameSite=strict" in set_cookie or "samesite=strict" in set_cookie.lower()
    assert "Path=/api/auth" in set_cookie
    assert "Max-Age=604800" in set_cookie
    first_refresh = _refresh_cookie(login)

    rotated = await _refresh(client, first_refresh)
    assert rotated.status_code == 200
    assert rotated.json()["accessToken"]
    second_refresh = _refresh_cookie(rotated)
    assert second_refresh != first_refresh

    replay = await _refresh(client, first_refresh)
    assert replay.status_code == 401
    assert replay.json() == {
        "error": {"code": "INVALID_REFRESH_TOKEN", "message": "Invalid refresh token"}
    }

    again = await _refresh(client, second_refresh)
    assert again.status_code == 200


@pytest.mark.anyio
async def test_login_failures_are_uniform(client) -> None:
    await _register(client)

    unknown = await _login(client, email="nobody@example.com")
    wrong = await _login(client, password="wrongpassword")

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()
    assert unknown.json()["error"]["code"] == "INVALID_CREDENTIALS"
    assert "set-cookie" not in unknown.headers


@pytest.mark.anyio
async def test_login_normalizes_email(client) -> None:
    await _register(client, email="Mixed.Case@Example.com")

    response = await _login(client, email="  mixed.case@EXAMPLE.com ")

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "mixed.case@example.com"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload",
    [
        {"email": "not-an-email", "password": "longpassword"},
        {"email": "user@example.com", "password": "short"},
        {"email": "user@example.com"},
        {"password": "longpassword"},
        {},
        {"email": 42, "password": "longpassword"},
    ],
)
async def test_register_rejects_invalid_input(client, payload) -> None:
    response = await client.post("/api/auth/register", json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


@pytest.mark.anyio
async def test_register_duplicate_email_conflicts(client) -> None:
    assert (await _register(client)).status_code == 201

    response = await _register(client, email="USER@example.com")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_TAKEN"


@pytest.mark.anyio
async def test_refresh_without_cookie_matches_garbage_cookie(client) -> None:
    missing = await _refresh(client, None)
    garbage = await _refresh(client, "garbage")

    assert missing.status_code == garbage.status_code == 401
    assert missing.json() == garbage.json()


@pytest.mark.anyio
async def test_me_requires_bearer_token(client) -> None:
    response = await client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.anyio
async def test_me_returns_current_user(client) -> None:
    await _register(client)
    token = (await _login(client)).json()["accessToken"]

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "user@example.com"


@pytest.mark.anyio
async def test_me_rejects_refresh_token(client) -> None:
    await _register(client)
    refresh_token = _refresh_cookie(await _login(client))

    response = await client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {refresh_token}"}
    )

    assert response.status_code == 401


@pytest.mark.anyio
async def test_me_for_deleted_user_is_not_found(client, session_factory) -> None:
    await _register(client)
    login = await _login(client)
    token = login.json()["accessToken"]

    async with session_factory() as session:
        await session.execute(delete(User).where(User.id == login.json()["user"]["id"]))
        await session.commit()

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.anyio
async def test_logout_revokes_refresh_token(client) -> None:
    await _register(client)
    refresh_token = _refresh_cookie(await _login(client))

    client.cookies.clear()
    logout = await client.post(
        "/api/auth/logout", headers={"Cookie": f"refreshToken={refresh_token}"}
    )
    assert logout.status_code == 204
    assert 'refreshToken=""' in logout.headers["set-cookie"] or "Max-Age=0" in logout.headers["set-cookie"]

    response = await _refresh(client, refresh_token)
    assert response.status_code == 401


@pytest.mark.anyio
async def test_logout_without_cookie_still_succeeds(client) -> None:
    client.cookies.clear()

    response = await client.post("/api/auth/logout")

    assert response.status_code == 204


@pytest.mark.anyio
async def test_unknown_route_uses_error_envelope(client) -> None:
    response = await client.get("/api/auth/nope")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"

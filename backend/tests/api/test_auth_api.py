"""Tests for registration, login and session endpoints."""
from collections.abc import Callable

from httpx import AsyncClient, Response

from services.container import Services
from tests.conftest import FakeNotion


async def _register(
    client: AsyncClient,
    email: str = "jane@example.com",
    password: str = "secret123",
    name: str = "Jane",
) -> Response:
    return await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "name": name},
    )


# =============================================================================
# Register
# =============================================================================


async def test__register__returns_session_and_sets_cookie(client: AsyncClient) -> None:
    """Registration issues a bearer token and a session cookie."""
    response = await _register(client)

    assert response.status_code == 201
    data = response.json()
    assert data["token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "jane@example.com"
    assert data["user"]["provider"] == "credentials"
    assert "session" in response.cookies


async def test__register__provisions_collection_in_background(
    client: AsyncClient,
    services: Services,
    fake_notion: FakeNotion,
) -> None:
    """A collection cloned from the template is created and mapped to the new user."""
    await _register(client)

    collection_id = await services.users.get_collection_id("jane@example.com")
    assert collection_id is not None
    created = fake_notion.databases[collection_id]
    assert created["title"][0]["text"]["content"] == "Jane's Blog Database"
    assert set(created["properties"]) == set(fake_notion.databases["template-db"]["properties"])


async def test__register__duplicate_email_returns_409(client: AsyncClient) -> None:
    """The same email cannot register twice."""
    await _register(client)

    response = await _register(client, email="JANE@example.com")

    assert response.status_code == 409
    assert response.json()["detail"] == "User already exists"


async def test__register__short_password_returns_400(client: AsyncClient) -> None:
    """Body validation errors are reported as 400."""
    response = await _register(client, password="123")

    assert response.status_code == 400


# =============================================================================
# Login
# =============================================================================


async def test__login__valid_credentials(client: AsyncClient) -> None:
    """A registered user can log in and the login is counted."""
    await _register(client)

    response = await client.post(
        "/api/auth/login",
        json={"email": "jane@example.com", "password": "secret123"},
    )

    assert response.status_code == 200
    assert response.json()["user"]["login_count"] == 2


async def test__login__wrong_password_returns_401(client: AsyncClient) -> None:
    """Bad credentials are rejected."""
    await _register(client)

    response = await client.post(
        "/api/auth/login",
        json={"email": "jane@example.com", "password": "wrong-password"},
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


# =============================================================================
# Me
# =============================================================================


async def test__me__with_bearer_token(client: AsyncClient) -> None:
    """The issued token authenticates subsequent requests."""
    token = (await _register(client)).json()["token"]
    client.cookies.clear()

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["name"] == "Jane"


async def test__me__with_session_cookie(client: AsyncClient) -> None:
    """The session cookie set at registration is accepted."""
    await _register(client)

    response = await client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["email"] == "jane@example.com"


async def test__me__without_session_returns_401(client: AsyncClient) -> None:
    """Anonymous callers are rejected."""
    response = await client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


async def test__me__invalid_token_returns_401(client: AsyncClient) -> None:
    """Tampered tokens are rejected."""
    response = await client.get(
        "/api/auth/me", headers={"Authorization": "Bearer not-a-real-token"},
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid session"


async def test__me__unknown_user_returns_401(
    client: AsyncClient,
    auth_headers: Callable[..., dict[str, str]],
) -> None:
    """A valid token for a user that no longer exists is rejected."""
    response = await client.get("/api/auth/me", headers=auth_headers(user_id="missing"))

    assert response.status_code == 401

"""Registration, login and the bearer-token gate."""

from conftest import PASSWORD, register
from httpx import AsyncClient


class TestRegister:
    async def test_register_returns_token_and_profile(self, client: AsyncClient):
        response = await client.post("/api/auth/user/register", json={
            "name": "Carol Client",
            "email": "Carol@Example.com",
            "password": PASSWORD,
            "role": "client",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "User registered successfully."
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        user = data["user"]
        assert user["email"] == "carol@example.com"
        assert user["role"] == "client"
        assert (user["xp"], user["level"], user["tasks_completed"]) == (0, 1, 0)
        assert user["badges"] == []
        assert "password_hash" not in user

    async def test_duplicate_email_rejected(self, client: AsyncClient):
        await register(client, "Carol", "client", email="carol@example.com")
        response = await client.post("/api/auth/user/register", json={
            "name": "Other Carol",
            "email": "CAROL@example.com",
            "password": PASSWORD,
            "role": "pm",
        })
        assert response.status_code == 400
        assert response.json()["message"] == "Email already registered."

    async def test_missing_fields_rejected(self, client: AsyncClient):
        response = await client.post("/api/auth/user/register", json={"email": "x@example.com"})
        assert response.status_code == 400
        assert response.json()["message"].startswith("Missing required field")

    async def test_unknown_role_rejected(self, client: AsyncClient):
        response = await client.post("/api/auth/user/register", json={
            "name": "Eve",
            "email": "eve@example.com",
            "password": PASSWORD,
            "role": "admin",
        })
        assert response.status_code == 400

    async def test_short_password_rejected(self, client: AsyncClient):
        response = await client.post("/api/auth/user/register", json={
            "name": "Eve",
            "email": "eve@example.com",
            "password": "abc",
            "role": "developer",
        })
        assert response.status_code == 400
        assert response.json()["message"] == "Password must be at least 6 characters."


class TestLogin:
    async def test_login_success(self, client: AsyncClient):
        await register(client, "Dana", "developer", email="dana@example.com")
        response = await client.post("/api/auth/user/login", json={
            "email": "dana@example.com",
            "password": PASSWORD,
        })
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Login successful."
        assert data["user"]["email"] == "dana@example.com"
        assert data["access_token"]

    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post("/api/auth/user/login", json={
            "email": "nobody@example.com",
            "password": PASSWORD,
        })
        assert response.status_code == 404
        assert response.json()["message"] == "User not found."

    async def test_wrong_password(self, client: AsyncClient):
        await register(client, "Dana", "developer", email="dana@example.com")
        response = await client.post("/api/auth/user/login", json={
            "email": "dana@example.com",
            "password": "wrong-password",
        })
        assert response.status_code == 400
        assert response.json()["message"] == "Incorrect password."


class TestTokenGate:
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/auth/user/me")
        assert response.status_code == 401
        assert response.json()["message"] == "No token provided."

    async def test_me_rejects_garbage_token(self, client: AsyncClient):
        response = await client.get("/api/auth/user/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token."

    async def test_me_returns_profile(self, client: AsyncClient, dev_user: dict):
        response = await client.get("/api/auth/user/me", headers=dev_user["headers"])
        assert response.status_code == 200
        assert response.json()["user"]["id"] == dev_user["id"]

    async def test_list_users(self, client: AsyncClient, client_user: dict, pm_user: dict):
        response = await client.get("/api/auth/user/all", headers=client_user["headers"])
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert {u["id"] for u in data["users"]} == {client_user["id"], pm_user["id"]}

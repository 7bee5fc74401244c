import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from conftest import SUPPLIER_ID, VENDOR_ID, auth_headers
from routers.auth.helpers import auth_helpers

NEW_USER_ID = "88888888-8888-8888-8888-888888888888"


@pytest.fixture
def supabase_auth():
    client = MagicMock()
    with patch.object(auth_helpers, "_supabase", client):
        yield client.auth


def auth_result(user_id=NEW_USER_ID, with_session=True):
    session = SimpleNamespace(access_token="access-token", refresh_token="refresh-token") if with_session else None
    return SimpleNamespace(user=SimpleNamespace(id=user_id), session=session)


@pytest.fixture
def registration():
    return {
        "email": "chai@example.com",
        "password": "secret123",
        "confirm_password": "secret123",
        "full_name": " Sunil Chai Stall ",
        "user_role": "vendor",
        "contact_number": "9800000009",
        "location": "Andheri",
        "preferred_languages": ["Hindi", " "],
    }


class TestRegister:

    async def test_register_creates_profile(self, client, store, supabase_auth, registration):
        supabase_auth.sign_up.return_value = auth_result()

        response = await client.post("/auth/register", json=registration)

        assert response.status_code == 201
        assert response.json()["access_token"] == "access-token"

        metadata = supabase_auth.sign_up.call_args.args[0]["options"]["data"]
        assert metadata["user_role"] == "vendor"
        assert metadata["full_name"] == "Sunil Chai Stall"
        assert metadata["preferred_languages"] == ["Hindi"]

        profile = await store.get_profile(NEW_USER_ID)
        assert profile.user_role == "vendor"
        assert profile.location == "Andheri"

    async def test_register_pending_email_confirmation(self, client, store, supabase_auth, registration):
        supabase_auth.sign_up.return_value = auth_result(with_session=False)

        response = await client.post("/auth/register", json=registration)

        assert response.status_code == 201
        assert response.json()["access_token"] == ""
        assert "verify your account" in response.json()["message"]
        assert await store.get_profile(NEW_USER_ID) is not None

    async def test_password_mismatch(self, client, supabase_auth, registration):
        registration["confirm_password"] = "different"

        response = await client.post("/auth/register", json=registration)

        assert response.status_code == 422
        supabase_auth.sign_up.assert_not_called()

    async def test_requires_a_language(self, client, supabase_auth, registration):
        registration["preferred_languages"] = [" "]

        response = await client.post("/auth/register", json=registration)

        assert response.status_code == 422

    async def test_supabase_failure(self, client, supabase_auth, registration):
        supabase_auth.sign_up.side_effect = RuntimeError("User already registered")

        response = await client.post("/auth/register", json=registration)

        assert response.status_code == 500
        assert response.json()["detail"] == "Registration failed"


class TestLogin:

    async def test_login(self, client, supabase_auth):
        supabase_auth.sign_in_with_password.return_value = auth_result(VENDOR_ID)

        response = await client.post("/auth/login", json={"email": "ravi@example.com", "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["refresh_token"] == "refresh-token"

    async def test_bad_credentials(self, client, supabase_auth):
        supabase_auth.sign_in_with_password.side_effect = RuntimeError("Invalid login credentials")

        response = await client.post("/auth/login", json={"email": "ravi@example.com", "password": "nope"})

        assert response.status_code == 401

    async def test_refresh(self, client, supabase_auth):
        supabase_auth.refresh_session.return_value = auth_result(VENDOR_ID)

        response = await client.post("/auth/refresh", json={"refresh_token": "refresh-token"})

        assert response.status_code == 200
        assert response.json()["access_token"] == "access-token"

    async def test_logout_revokes_callers_session(self, client, supabase_auth, vendor_headers):
        admin = MagicMock()
        with patch.object(auth_helpers, "_admin_client", admin):
            response = await client.post("/auth/logout", headers=vendor_headers)

        assert response.status_code == 200
        token = vendor_headers["Authorization"].split(" ", 1)[1]
        admin.auth.admin.sign_out.assert_called_once_with(token)
        supabase_auth.sign_out.assert_not_called()

    async def test_garbage_token(self, client):
        response = await client.post("/auth/logout", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"


class TestProfileAPI:

    async def test_get_me(self, client, vendor_headers):
        response = await client.get("/users/me", headers=vendor_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == VENDOR_ID
        assert data["full_name"] == "Ravi Chaatwala"
        assert data["preferred_languages"] == ["Hindi", "Marathi"]

    async def test_update_me(self, client, store, supplier_headers):
        response = await client.put(
            "/users/me",
            json={"location": "Hadapsar, Pune", "preferred_languages": ["Marathi"]},
            headers=supplier_headers
        )

        assert response.status_code == 200
        profile = await store.get_profile(SUPPLIER_ID)
        assert profile.location == "Hadapsar, Pune"
        assert profile.preferred_languages == ["Marathi"]
        assert profile.full_name == "Fresh Farms"

    async def test_role_cannot_change(self, client, store, vendor_headers):
        response = await client.put("/users/me", json={"user_role": "supplier"}, headers=vendor_headers)

        assert response.status_code == 400
        assert (await store.get_profile(VENDOR_ID)).user_role == "vendor"

    async def test_missing_profile(self, client):
        response = await client.get("/users/me", headers=auth_headers("99999999-9999-9999-9999-999999999999", "vendor"))

        assert response.status_code == 404

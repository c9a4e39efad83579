"""API tests for login, token checks and admin-only user management."""

import pytest

from pharmacy_pos.core.security import create_user_token, hash_password
from tests.fixtures.data_helpers import add_user

PASSWORD = "correct-horse-battery"


@pytest.fixture
def pharmacist(database):
    return add_user(
        database,
        "efua@pharmacy.test",
        role="pharmacist",
        password_hash=hash_password(PASSWORD),
    )


class TestLogin:
    def test_login_issues_usable_token(self, client, pharmacist):
        response = client.post(
            "/auth/login", json={"email": "Efua@Pharmacy.test", "password": PASSWORD}
        )

        data = response.get_json()["data"]
        assert response.status_code == 200
        assert data["tokenType"] == "Bearer"
        assert data["user"]["role"] == "pharmacist"

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.get_json()["data"]["email"] == "efua@pharmacy.test"

    @pytest.mark.parametrize(
        "email,password",
        [("efua@pharmacy.test", "wrong-password"), ("nobody@pharmacy.test", PASSWORD)],
    )
    def test_bad_credentials_share_one_message(self, client, pharmacist, email, password):
        response = client.post("/auth/login", json={"email": email, "password": password})

        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid email or password"

    def test_missing_password(self, client):
        response = client.post("/auth/login", json={"email": "efua@pharmacy.test"})

        assert response.status_code == 422

    def test_inactive_account_cannot_log_in(self, client, database):
        add_user(
            database,
            "gone@pharmacy.test",
            password_hash=hash_password(PASSWORD),
            is_active=False,
        )

        response = client.post(
            "/auth/login", json={"email": "gone@pharmacy.test", "password": PASSWORD}
        )

        assert response.status_code == 401


class TestTokens:
    def test_token_signed_with_other_secret(self, client, users):
        user = users["admin"]
        token = create_user_token(
            user.id, user.email, user.role, "some-other-secret-of-sufficient-size"
        )

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_deactivated_user_loses_access(self, client, auth_headers, users):
        headers = auth_headers("cashier")
        client.delete(f"/users/{users['cashier'].id}", headers=auth_headers("admin"))

        assert client.get("/auth/me", headers=headers).status_code == 401


class TestUserManagement:
    def test_admin_creates_user_with_default_role(self, client, auth_headers):
        response = client.post(
            "/users",
            json={"email": "Kojo@Pharmacy.test", "name": "Kojo", "password": PASSWORD},
            headers=auth_headers("admin"),
        )

        data = response.get_json()["data"]
        assert response.status_code == 201
        assert data["email"] == "kojo@pharmacy.test"
        assert data["role"] == "cashier"
        assert "password" not in str(data).lower()

    def test_duplicate_email(self, client, auth_headers, users):
        response = client.post(
            "/users",
            json={"email": "cashier@pharmacy.test", "name": "Again", "password": PASSWORD},
            headers=auth_headers("admin"),
        )

        assert response.status_code == 409

    @pytest.mark.parametrize("role", ["manager", "pharmacist", "cashier"])
    def test_only_admin_manages_users(self, client, auth_headers, role):
        assert client.get("/users", headers=auth_headers(role)).status_code == 403

    def test_list_and_filter_by_role(self, client, auth_headers, users):
        everyone = client.get("/users", headers=auth_headers("admin"))
        managers = client.get("/users?role=manager", headers=auth_headers("admin"))

        assert everyone.get_json()["pagination"]["total"] == len(users)
        assert [u["id"] for u in managers.get_json()["data"]] == [users["manager"].id]

    def test_change_role(self, client, auth_headers, users):
        response = client.put(
            f"/users/{users['cashier'].id}",
            json={"role": "pharmacist"},
            headers=auth_headers("admin"),
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["role"] == "pharmacist"

    def test_admin_cannot_deactivate_self(self, client, auth_headers, users):
        response = client.delete(
            f"/users/{users['admin'].id}", headers=auth_headers("admin")
        )

        assert response.status_code == 422

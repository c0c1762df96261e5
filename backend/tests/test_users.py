"""
Tests for profile management, password changes, activity and admin endpoints.
"""

from conftest import STRONG_PASSWORD, bearer, register_user


class TestProfile:
    def test_get_me_hides_secrets(self, client, alice_headers):
        body = client.get("/api/users/me", headers=alice_headers).json()
        assert body["username"] == "alice"
        assert body["is_active"] is True
        assert body["is_admin"] is False
        for hidden in ("password_hash", "totp_secret", "totp_pending_secret"):
            assert hidden not in body

    def test_update_username_only(self, client, alice_headers):
        response = client.put("/api/users/me", json={"username": "alicia"}, headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["username"] == "alicia"
        assert response.json()["email"] == "alice@example.com"

    def test_update_requires_a_field(self, client, alice_headers):
        response = client.put("/api/users/me", json={}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "No fields to update"

    def test_update_to_taken_username(self, client, alice_headers):
        register_user(client, "bob", "bob@example.com")
        response = client.put("/api/users/me", json={"username": "bob"}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Username already taken"

    def test_update_to_taken_email(self, client, alice_headers):
        register_user(client, "bob", "bob@example.com")
        response = client.put("/api/users/me", json={"email": "bob@example.com"}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already taken"

    def test_keeping_own_username_is_allowed(self, client, alice_headers):
        response = client.put(
            "/api/users/me",
            json={"username": "alice", "email": "new@example.com"},
            headers=alice_headers,
        )
        assert response.status_code == 200
        assert response.json()["email"] == "new@example.com"


class TestChangePassword:
    def test_change_password(self, client, alice_headers):
        response = client.post(
            "/api/users/me/change-password",
            json={"currentPassword": STRONG_PASSWORD, "newPassword": "another-long-password"},
            headers=alice_headers,
        )
        assert response.status_code == 200

        old = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": STRONG_PASSWORD}
        )
        assert old.status_code == 401
        new = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "another-long-password"}
        )
        assert new.status_code == 200

    def test_wrong_current_password(self, client, alice_headers):
        response = client.post(
            "/api/users/me/change-password",
            json={"currentPassword": "wrong-password", "newPassword": "another-long-password"},
            headers=alice_headers,
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Current password is incorrect"

    def test_weak_new_password(self, client, alice_headers):
        response = client.post(
            "/api/users/me/change-password",
            json={"currentPassword": STRONG_PASSWORD, "newPassword": "short"},
            headers=alice_headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"].startswith("New password must be at least")

    def test_existing_token_survives_password_change(self, client, alice_headers):
        client.post(
            "/api/users/me/change-password",
            json={"currentPassword": STRONG_PASSWORD, "newPassword": "another-long-password"},
            headers=alice_headers,
        )
        assert client.get("/api/users/me", headers=alice_headers).status_code == 200


class TestActivity:
    def test_activity_newest_first_and_paginated(self, client, alice_headers):
        client.post("/api/auth/login", json={"email": "alice@example.com", "password": STRONG_PASSWORD})
        client.post("/api/users/me/api-keys", json={"name": "ci"}, headers=alice_headers)

        body = client.get("/api/users/me/activity?limit=2", headers=alice_headers).json()
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert [e["action"] for e in body["items"]] == ["create_api_key", "login"]
        assert body["items"][0]["ip_address"] == "testclient"

        page2 = client.get("/api/users/me/activity?limit=2&page=2", headers=alice_headers).json()
        assert [e["action"] for e in page2["items"]] == ["register"]

    def test_activity_is_private(self, client, alice_headers):
        bob = register_user(client, "bob", "bob@example.com")
        body = client.get("/api/users/me/activity", headers=bearer(bob["token"])).json()
        assert [e["action"] for e in body["items"]] == ["register"]


class TestAdmin:
    def test_non_admin_forbidden(self, client, alice_headers):
        response = client.get("/api/users/", headers=alice_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    def test_list_and_search_users(self, client, alice, admin_headers):
        register_user(client, "bob", "bob@example.com")

        everyone = client.get("/api/users/", headers=admin_headers).json()
        assert everyone["total"] == 3

        found = client.get("/api/users/?search=BOB", headers=admin_headers).json()
        assert [u["username"] for u in found["items"]] == ["bob"]

    def test_deactivate_user_blocks_login(self, client, alice, admin_headers):
        user_id = alice["user"]["id"]
        response = client.patch(
            f"/api/users/{user_id}/status", json={"is_active": False}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        login = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": STRONG_PASSWORD}
        )
        assert login.status_code == 401

        # Tokens issued before deactivation remain valid until they expire
        assert client.get("/api/users/me", headers=bearer(alice["token"])).status_code == 200

    def test_status_requires_flag(self, client, alice, admin_headers):
        response = client.patch(
            f"/api/users/{alice['user']['id']}/status", json={}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_status_unknown_user(self, client, admin_headers):
        response = client.patch(
            "/api/users/00000000-0000-0000-0000-000000000000/status",
            json={"is_active": False},
            headers=admin_headers,
        )
        assert response.status_code == 404


class TestPagination:
    def test_activity_page_out_of_range(self, client, alice_headers):
        response = client.get("/api/users/me/activity?page=100000000000000000000", headers=alice_headers)
        assert response.status_code == 400

    def test_admin_list_page_out_of_range(self, client, admin_headers):
        response = client.get("/api/users/?page=100001", headers=admin_headers)
        assert response.status_code == 400

"""Tests for the sharing and invite endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient


def _invite(client, headers, library_id, email, permission="read"):
    return client.post(
        f"/api/v1/libraries/{library_id}/shares",
        json={"email": email, "permission": permission},
        headers=headers,
    )


class TestInvite:
    def test_create_returns_token_and_link(self, client, headers_for, library, owner):
        resp = _invite(client, headers_for(owner), library["id"], "Guest@Example.com", "write")
        assert resp.status_code == 201
        data = resp.json()
        assert data["email"] == "guest@example.com"
        assert data["permission"] == "write"
        assert data["invite_url"].endswith(f"/invite/{data['token']}")

    def test_duplicate_pending(self, client, headers_for, library, owner):
        _invite(client, headers_for(owner), library["id"], "guest@example.com")
        resp = _invite(client, headers_for(owner), library["id"], "guest@example.com")
        assert resp.status_code == 409
        assert resp.json()["code"] == "duplicate_pending_invite"

    def test_existing_member(self, client, headers_for, library, owner, share_with):
        member = share_with(library["id"], owner, "read")
        resp = _invite(client, headers_for(owner), library["id"], member.email)
        assert resp.status_code == 409
        assert resp.json()["code"] == "already_has_access"

    def test_non_admin(self, client, headers_for, library, owner, share_with):
        writer = share_with(library["id"], owner, "write")
        resp = _invite(client, headers_for(writer), library["id"], "x@example.com")
        assert resp.status_code == 403

    def test_bad_permission_value(self, client, headers_for, library, owner):
        resp = _invite(client, headers_for(owner), library["id"], "x@example.com", "owner")
        assert resp.status_code == 422


class TestAccept:
    def test_preview_needs_no_session(self, app, client, headers_for, library, owner):
        token = _invite(client, headers_for(owner), library["id"], "guest@example.com").json()["token"]

        resp = TestClient(app).get(f"/api/v1/invites/{token}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["library"]["name"] == "Portraits"
        assert data["inviter"]["email"] == owner.email
        assert data["permission"] == "read"

    def test_accept(self, client, headers_for, library, owner, make_user):
        guest = make_user("guest@example.com")
        token = _invite(client, headers_for(owner), library["id"], guest.email).json()["token"]

        resp = client.post("/api/v1/invites/accept", json={"token": token}, headers=headers_for(guest))
        assert resp.status_code == 200
        assert resp.json()["id"] == library["id"]

        again = client.post("/api/v1/invites/accept", json={"token": token}, headers=headers_for(guest))
        assert again.status_code == 410
        assert again.json()["code"] == "invalid_or_expired_invite"

    def test_wrong_user(self, client, headers_for, library, owner, make_user):
        make_user("guest@example.com")
        other = make_user("other@example.com")
        token = _invite(client, headers_for(owner), library["id"], "guest@example.com").json()["token"]

        resp = client.post("/api/v1/invites/accept", json={"token": token}, headers=headers_for(other))
        assert resp.status_code == 403
        assert resp.json()["code"] == "email_mismatch"

    def test_expired(self, client, mock_db, headers_for, library, owner, make_user):
        guest = make_user("guest@example.com")
        token = _invite(client, headers_for(owner), library["id"], guest.email).json()["token"]
        mock_db.expire_invite(token)

        assert client.get(f"/api/v1/invites/{token}").status_code == 410
        resp = client.post("/api/v1/invites/accept", json={"token": token}, headers=headers_for(guest))
        assert resp.status_code == 410


class TestManageShares:
    def test_list(self, client, headers_for, library, owner, share_with):
        member = share_with(library["id"], owner, "write")
        _invite(client, headers_for(owner), library["id"], "pending@example.com")

        data = client.get(f"/api/v1/libraries/{library['id']}/shares", headers=headers_for(owner)).json()
        assert [s["user"]["email"] for s in data["shares"]] == [member.email]
        assert [i["email"] for i in data["pending_invites"]] == ["pending@example.com"]
        assert "token" not in data["pending_invites"][0]

    def test_update_and_revoke(self, client, headers_for, library, owner, share_with):
        member = share_with(library["id"], owner, "read")
        url = f"/api/v1/libraries/{library['id']}/shares/{member.id}"

        resp = client.put(url, json={"permission": "admin"}, headers=headers_for(owner))
        assert resp.status_code == 200
        assert resp.json() == {"user_id": member.id, "permission": "admin"}

        assert client.delete(url, headers=headers_for(owner)).status_code == 204
        resp = client.delete(url, headers=headers_for(owner))
        assert resp.status_code == 404
        assert resp.json()["code"] == "no_existing_access"

    def test_owner_untouchable(self, client, headers_for, library, owner, share_with):
        admin = share_with(library["id"], owner, "admin")
        url = f"/api/v1/libraries/{library['id']}/shares/{owner.id}"

        resp = client.put(url, json={"permission": "read"}, headers=headers_for(admin))
        assert resp.status_code == 400
        assert resp.json()["code"] == "cannot_modify_owner"
        assert client.delete(url, headers=headers_for(admin)).status_code == 400

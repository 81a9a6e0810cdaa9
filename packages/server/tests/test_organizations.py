"""
Integration tests for the organization lifecycle.

Tests cover:
- Slug derivation and collisions
- Creation side effects (admin membership, default project)
- Join requests and approval
- Invitations: creation conflicts, acceptance, single use, email binding
- Member listing order and authorization
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from worklog.core.errors import ConflictError, ValidationError
from worklog.models.invitation import Invitation
from worklog.models.user import User
from worklog.services import organizations as org_service
from worklog_shared.schemas.common import slugify
from worklog_shared.schemas.organizations import InviteRequest, OrgCreateRequest


# ---------------------------------------------------------------------------
# Pure helpers (no DB needed)
# ---------------------------------------------------------------------------

class TestSlugify:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Acme Corp", "acme-corp"),
            ("Acme  Corp!", "acme-corp"),
            ("  --Hello   World--  ", "hello-world"),
            ("Ünïcode Café", "ncode-caf"),
            ("a - b", "a-b"),
            ("R&D 2024", "rd-2024"),
        ],
    )
    def test_examples(self, name, expected):
        assert slugify(name) == expected

    @pytest.mark.parametrize("name", ["Acme Corp", "Foo -- Bar", "x!!y", "  Lots   of   Space "])
    def test_slug_shape(self, name):
        slug = slugify(name)
        assert slug == slug.lower()
        assert not slug.startswith("-") and not slug.endswith("-")
        assert "--" not in slug
        assert set(slug) <= set("abcdefghijklmnopqrstuvwxyz0123456789-")

    def test_only_symbols_gives_empty_slug(self):
        assert slugify("!!!") == ""


class TestOrgCreateRequestValidation:
    def test_name_too_short(self):
        with pytest.raises(Exception):
            OrgCreateRequest(name="A")

    def test_name_too_long(self):
        with pytest.raises(Exception):
            OrgCreateRequest(name="x" * 51)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

class TestCreateOrganization:
    async def test_create_sets_up_admin_and_general_project(self, client, login):
        headers, _ = await login("alice@acme.io")
        resp = await client.post("/organizations", json={"name": "Acme Corp"}, headers=headers)
        assert resp.status_code == 201
        org = resp.json()["organization"]
        assert org["name"] == "Acme Corp"
        assert org["slug"] == "acme-corp"

        me = await client.get("/auth/me", headers=headers)
        assert me.json()["organizations"] == [
            {**org, "role": "admin", "status": "active"}
        ]

        projects = await client.get(f"/organizations/{org['id']}/projects", headers=headers)
        assert [p["name"] for p in projects.json()["projects"]] == ["General"]
        assert projects.json()["projects"][0]["description"] == "Default project for general tasks"

    async def test_slug_collision_is_409(self, client, login, create_org):
        alice, _ = await login("alice@acme.io")
        bob, _ = await login("bob@globex.io")
        await create_org(alice, "Acme Corp")

        resp = await client.post("/organizations", json={"name": "Acme  Corp!"}, headers=bob)
        assert resp.status_code == 409
        assert resp.json() == {"error": "Organization name already taken"}

        me = await client.get("/auth/me", headers=bob)
        assert me.json()["organizations"] == []

    async def test_symbol_only_name_is_400(self, client, login):
        headers, _ = await login("alice@acme.io")
        resp = await client.post("/organizations", json={"name": "!!!"}, headers=headers)
        assert resp.status_code == 400

    async def test_requires_authentication(self, client):
        resp = await client.post("/organizations", json={"name": "Acme Corp"})
        assert resp.status_code == 401

    async def test_login_lists_new_org(self, client, login, create_org):
        headers, _ = await login("alice@acme.io")
        await create_org(headers, "Acme Corp")
        _, body = await login("alice@acme.io")
        assert body["needs_organization_selection"] is False
        assert body["organizations"][0]["slug"] == "acme-corp"


# ---------------------------------------------------------------------------
# Join requests
# ---------------------------------------------------------------------------

class TestJoinAndApprove:
    async def test_join_then_approve(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        bob, bob_body = await login("bob@acme.io")

        resp = await client.post(
            "/organizations/join", json={"organization_id": org["id"]}, headers=bob
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "requires_approval": True}

        # Pending members cannot read org data yet
        denied = await client.get(f"/organizations/{org['id']}/projects", headers=bob)
        assert denied.status_code == 403

        members = (await client.get(f"/organizations/{org['id']}/members", headers=admin)).json()
        pending = [m for m in members["members"] if m["status"] == "pending"]
        assert len(pending) == 1
        assert pending[0]["user_id"] == bob_body["user"]["id"]
        assert pending[0]["joined_at"] is None

        resp = await client.post(
            f"/organizations/{org['id']}/members/{pending[0]['id']}/approve", headers=admin
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

        allowed = await client.get(f"/organizations/{org['id']}/projects", headers=bob)
        assert allowed.status_code == 200

    async def test_join_twice_while_pending_is_409(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        bob, _ = await login("bob@acme.io")
        body = {"organization_id": org["id"]}

        assert (await client.post("/organizations/join", json=body, headers=bob)).status_code == 200
        resp = await client.post("/organizations/join", json=body, headers=bob)
        assert resp.status_code == 409
        assert "pending" in resp.json()["error"]

    async def test_join_as_active_member_is_409(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        resp = await client.post(
            "/organizations/join", json={"organization_id": org["id"]}, headers=admin
        )
        assert resp.status_code == 409
        assert "already a member" in resp.json()["error"]

    async def test_join_unknown_org_is_404(self, client, login):
        bob, _ = await login("bob@acme.io")
        resp = await client.post(
            "/organizations/join", json={"organization_id": str(uuid.uuid4())}, headers=bob
        )
        assert resp.status_code == 404

    async def test_approve_twice_is_404(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        bob, _ = await login("bob@acme.io")
        await client.post("/organizations/join", json={"organization_id": org["id"]}, headers=bob)
        members = (await client.get(f"/organizations/{org['id']}/members", headers=admin)).json()
        member_id = next(m["id"] for m in members["members"] if m["status"] == "pending")

        url = f"/organizations/{org['id']}/members/{member_id}/approve"
        assert (await client.post(url, headers=admin)).status_code == 200
        resp = await client.post(url, headers=admin)
        assert resp.status_code == 404

    async def test_non_admin_cannot_approve(self, client, login, create_org, add_member):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        bob = await add_member(org["id"], admin, "bob@acme.io")
        carol, _ = await login("carol@acme.io")
        await client.post("/organizations/join", json={"organization_id": org["id"]}, headers=carol)
        members = (await client.get(f"/organizations/{org['id']}/members", headers=admin)).json()
        member_id = next(m["id"] for m in members["members"] if m["status"] == "pending")

        resp = await client.post(
            f"/organizations/{org['id']}/members/{member_id}/approve", headers=bob
        )
        assert resp.status_code == 403
        assert resp.json() == {"error": "Administrator access required"}


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

class TestInvitations:
    async def _invite(self, client, org_id, headers, email, role="member"):
        return await client.post(
            f"/organizations/{org_id}/invite", json={"email": email, "role": role}, headers=headers
        )

    async def _token_for(self, client, headers):
        resp = await client.get("/auth/me", headers=headers)
        return resp.json()["pending_invitations"][0]["token"]

    async def test_invite_and_accept(self, client, login, create_org):
        admin, admin_body = await login("alice@acme.io", name="Alice")
        org = await create_org(admin)

        resp = await self._invite(client, org["id"], admin, "Bob@Globex.io", role="admin")
        assert resp.status_code == 201
        assert resp.json()["success"] is True
        assert resp.json()["invitation_id"]

        bob, _ = await login("bob@globex.io")
        token = await self._token_for(client, bob)
        resp = await client.post(
            "/organizations/accept-invitation", json={"token": token}, headers=bob
        )
        assert resp.status_code == 200
        assert resp.json()["organization"]["id"] == org["id"]

        members = (await client.get(f"/organizations/{org['id']}/members", headers=bob)).json()
        bob_row = next(m for m in members["members"] if m["email"] == "bob@globex.io")
        assert bob_row["role"] == "admin"
        assert bob_row["status"] == "active"
        assert bob_row["invited_by_name"] == "Alice"
        assert bob_row["joined_at"] is not None

    async def test_accepting_twice_fails(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        await self._invite(client, org["id"], admin, "bob@globex.io")
        bob, _ = await login("bob@globex.io")
        token = await self._token_for(client, bob)

        first = await client.post("/organizations/accept-invitation", json={"token": token}, headers=bob)
        second = await client.post("/organizations/accept-invitation", json={"token": token}, headers=bob)
        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json() == {"error": "Invalid or expired invitation"}

        members = (await client.get(f"/organizations/{org['id']}/members", headers=admin)).json()
        assert sum(m["email"] == "bob@globex.io" for m in members["members"]) == 1

    async def test_unknown_token_is_400(self, client, login):
        bob, _ = await login("bob@globex.io")
        resp = await client.post(
            "/organizations/accept-invitation", json={"token": "no-such-token"}, headers=bob
        )
        assert resp.status_code == 400

    async def test_email_mismatch_leaves_invitation_usable(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        await self._invite(client, org["id"], admin, "bob@globex.io")
        bob, _ = await login("bob@globex.io")
        token = await self._token_for(client, bob)

        mallory, _ = await login("mallory@evil.io")
        resp = await client.post(
            "/organizations/accept-invitation", json={"token": token}, headers=mallory
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invitation email does not match your account"}

        resp = await client.post("/organizations/accept-invitation", json={"token": token}, headers=bob)
        assert resp.status_code == 200

    async def test_accepting_promotes_pending_join_request(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        bob, _ = await login("bob@globex.io")
        await client.post("/organizations/join", json={"organization_id": org["id"]}, headers=bob)
        await self._invite(client, org["id"], admin, "bob@globex.io")
        token = await self._token_for(client, bob)

        resp = await client.post("/organizations/accept-invitation", json={"token": token}, headers=bob)
        assert resp.status_code == 200
        members = (await client.get(f"/organizations/{org['id']}/members", headers=bob)).json()
        rows = [m for m in members["members"] if m["email"] == "bob@globex.io"]
        assert len(rows) == 1
        assert rows[0]["status"] == "active"

    async def test_invite_existing_member_is_409(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        resp = await self._invite(client, org["id"], admin, "alice@acme.io")
        assert resp.status_code == 409

    async def test_duplicate_live_invitation_is_409(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        assert (await self._invite(client, org["id"], admin, "bob@globex.io")).status_code == 201
        resp = await self._invite(client, org["id"], admin, "BOB@globex.io")
        assert resp.status_code == 409

    async def test_member_cannot_invite(self, client, login, create_org, add_member):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        bob = await add_member(org["id"], admin, "bob@acme.io")
        resp = await self._invite(client, org["id"], bob, "carol@acme.io")
        assert resp.status_code == 403

    async def test_list_invitations(self, client, login, create_org):
        admin, _ = await login("alice@acme.io", name="Alice")
        org = await create_org(admin)
        await self._invite(client, org["id"], admin, "bob@globex.io")
        await self._invite(client, org["id"], admin, "carol@globex.io", role="admin")

        resp = await client.get(f"/organizations/{org['id']}/invitations", headers=admin)
        assert resp.status_code == 200
        invitations = resp.json()["invitations"]
        assert {i["email"] for i in invitations} == {"bob@globex.io", "carol@globex.io"}
        assert all(i["invited_by_name"] == "Alice" for i in invitations)


class TestInvitationService:
    """Service-level checks that need direct control over stored rows."""

    async def _setup(self, session):
        alice = User(email="alice@acme.io", name="Alice")
        bob = User(email="bob@globex.io", name="Bob")
        session.add_all([alice, bob])
        await session.flush()
        org = await org_service.create_org("Acme Corp", alice, session)
        invitation = await org_service.invite_user(
            org.id, InviteRequest(email="bob@globex.io"), alice, session
        )
        await session.commit()
        return org, alice, bob, invitation

    async def test_expiry_defaults_to_seven_days(self, session):
        _, _, _, invitation = await self._setup(session)
        delta = invitation.expires_at - invitation.created_at
        assert timedelta(days=6, hours=23) < delta <= timedelta(days=7)

    async def test_expired_invitation_rejected(self, session):
        org, _, bob, invitation = await self._setup(session)
        await session.execute(
            update(Invitation)
            .where(Invitation.id == invitation.id)
            .values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
        )
        await session.commit()

        with pytest.raises(ValidationError, match="Invalid or expired invitation"):
            await org_service.accept_invitation(invitation.token, bob, session)

    async def test_expired_invitation_does_not_block_reinvite(self, session):
        org, alice, _, invitation = await self._setup(session)
        old_token = invitation.token
        await session.execute(
            update(Invitation)
            .where(Invitation.id == invitation.id)
            .values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
        )
        fresh = await org_service.invite_user(
            org.id, InviteRequest(email="bob@globex.io"), alice, session
        )
        assert fresh.id == invitation.id
        assert fresh.token != old_token
        assert fresh.accepted_at is None

    async def test_second_live_row_for_same_email_is_rejected(self, session):
        org, alice, _, invitation = await self._setup(session)
        session.add(
            Invitation(
                organization_id=org.id,
                email="bob@globex.io",
                role=invitation.role,
                invited_by=alice.id,
                token="another-token",
                expires_at=invitation.expires_at,
            )
        )
        with pytest.raises(IntegrityError):
            await session.flush()

    async def test_create_org_slug_conflict(self, session):
        org, alice, _, _ = await self._setup(session)
        with pytest.raises(ConflictError):
            await org_service.create_org("acme corp", alice, session)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class TestMembers:
    async def test_members_ordered_active_then_pending(self, client, login, create_org, add_member):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        carol, _ = await login("carol@acme.io")
        await client.post("/organizations/join", json={"organization_id": org["id"]}, headers=carol)
        await add_member(org["id"], admin, "bob@acme.io")

        resp = await client.get(f"/organizations/{org['id']}/members", headers=admin)
        assert resp.status_code == 200
        rows = resp.json()["members"]
        assert [(m["email"], m["status"]) for m in rows] == [
            ("alice@acme.io", "active"),
            ("bob@acme.io", "active"),
            ("carol@acme.io", "pending"),
        ]

    async def test_non_member_gets_403(self, client, login, create_org):
        admin, _ = await login("alice@acme.io")
        org = await create_org(admin)
        eve, _ = await login("eve@evil.io")
        resp = await client.get(f"/organizations/{org['id']}/members", headers=eve)
        assert resp.status_code == 403
        assert resp.json() == {"error": "You are not an active member of this organization"}

    async def test_unknown_org_is_404(self, client, login):
        headers, _ = await login("alice@acme.io")
        resp = await client.get(f"/organizations/{uuid.uuid4()}/members", headers=headers)
        assert resp.status_code == 404

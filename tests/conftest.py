"""Test fixtures — mock Supabase client and shared test data."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

# bcrypt at its minimum cost keeps password hashing fast in tests
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from prompt_shelf.core.exceptions import RowNotFound, UniqueViolation
from prompt_shelf.db.client import SupabaseClient

# Columns that must be unique together, with an optional row predicate for
# partial indexes.
UNIQUE_CONSTRAINTS: dict[str, list[tuple[tuple[str, ...], Any]]] = {
    "users": [(("email",), None)],
    "library_shares": [(("library_id", "user_id"), None)],
    "library_invites": [
        (("token",), None),
        (("library_id", "email"), lambda r: r.get("accepted_at") is None),
    ],
    "saved_searches": [(("user_id", "library_id", "name"), None)],
}

# parent table -> [(child table, foreign key column)]
CASCADES: dict[str, list[tuple[str, str]]] = {
    "libraries": [
        ("groups", "library_id"),
        ("library_shares", "library_id"),
        ("library_invites", "library_id"),
        ("saved_searches", "library_id"),
    ],
    "groups": [("prompts", "group_id")],
}


class MockSupabaseClient(SupabaseClient):
    """In-memory mock of the Supabase client for testing.

    Emulates the unique indexes, ``on delete cascade`` foreign keys and the
    ``accept_library_invite`` function of the real schema.
    """

    def __init__(self):
        self._tables: dict[str, list[dict[str, Any]]] = {
            "users": [],
            "libraries": [],
            "library_shares": [],
            "library_invites": [],
            "groups": [],
            "prompts": [],
            "saved_searches": [],
            "audit_log": [],
        }
        self._last_ts = datetime.now(timezone.utc)

    def _now(self) -> str:
        # Strictly increasing so "newest first" orderings are deterministic
        ts = max(datetime.now(timezone.utc), self._last_ts + timedelta(microseconds=1))
        self._last_ts = ts
        return ts.isoformat()

    def _check_unique(self, table: str, candidate: dict[str, Any], exclude_id: str | None = None) -> None:
        for columns, applies in UNIQUE_CONSTRAINTS.get(table, []):
            if applies and not applies(candidate):
                continue
            key = tuple(candidate.get(c) for c in columns)
            for row in self._tables.get(table, []):
                if row["id"] == exclude_id or (applies and not applies(row)):
                    continue
                if tuple(row.get(c) for c in columns) == key:
                    raise UniqueViolation(
                        f'duplicate key value violates unique constraint on {table} {columns}'
                    )

    def insert(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        now = self._now()
        record = {"id": str(uuid4()), "created_at": now, "updated_at": now, **data}
        self._check_unique(table, record)
        self._tables.setdefault(table, []).append(record)
        return dict(record)

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        ascending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        rows = self._tables.get(table, [])
        if filters:
            for key, value in filters.items():
                rows = [r for r in rows if r.get(key) == value]
        if order_by:
            rows = sorted(rows, key=lambda r: r.get(order_by, 0), reverse=not ascending)
        if limit:
            rows = rows[:limit]
        return [dict(r) for r in rows]

    def select_in(
        self,
        table: str,
        column: str,
        values: list[Any],
        order_by: str | None = None,
        ascending: bool = True,
    ) -> list[dict[str, Any]]:
        wanted = set(values)
        rows = [r for r in self._tables.get(table, []) if r.get(column) in wanted]
        if order_by:
            rows = sorted(rows, key=lambda r: r.get(order_by, 0), reverse=not ascending)
        return [dict(r) for r in rows]

    def update(self, table: str, id: str, data: dict[str, Any]) -> dict[str, Any]:
        for row in self._tables.get(table, []):
            if row["id"] == id:
                self._check_unique(table, {**row, **data}, exclude_id=id)
                row.update(data)
                row["updated_at"] = self._now()
                return dict(row)
        raise RowNotFound(f"Row {id} not found in {table}")

    def update_where(
        self, table: str, filters: dict[str, Any], data: dict[str, Any]
    ) -> list[dict[str, Any]]:
        updated = []
        for row in self._tables.get(table, []):
            if all(row.get(k) == v for k, v in filters.items()):
                row.update(data)
                updated.append(dict(row))
        return updated

    def delete(self, table: str, id: str) -> None:
        self._tables[table] = [r for r in self._tables.get(table, []) if r["id"] != id]
        for child, column in CASCADES.get(table, []):
            for row in [r for r in self._tables.get(child, []) if r.get(column) == id]:
                self.delete(child, row["id"])

    def delete_where(self, table: str, filters: dict[str, Any]) -> int:
        doomed = [
            r for r in self._tables.get(table, [])
            if all(r.get(k) == v for k, v in filters.items())
        ]
        for row in doomed:
            self.delete(table, row["id"])
        return len(doomed)

    def rpc(self, fn: str, params: dict[str, Any]) -> Any:
        if fn != "accept_library_invite":
            raise NotImplementedError(fn)

        now = datetime.now(timezone.utc)
        invite = next(
            (
                i for i in self._tables["library_invites"]
                if i["id"] == params["p_invite_id"]
                and i.get("accepted_at") is None
                and datetime.fromisoformat(i["expires_at"]) > now
            ),
            None,
        )
        if invite is None:
            raise RowNotFound(f"invite {params['p_invite_id']} is not pending")

        share = self.insert(
            "library_shares",
            {
                "library_id": invite["library_id"],
                "user_id": params["p_user_id"],
                "permission": invite["permission"],
                "invited_by": invite["invited_by"],
                "accepted_at": now.isoformat(),
            },
        )
        invite["accepted_at"] = now.isoformat()
        return share

    def expire_invite(self, token: str) -> None:
        """Push an invite's expiry into the past."""
        for invite in self._tables["library_invites"]:
            if invite["token"] == token:
                invite["expires_at"] = (
                    datetime.now(timezone.utc) - timedelta(minutes=1)
                ).isoformat()

    def reset(self):
        for table in self._tables:
            self._tables[table] = []


@pytest.fixture
def mock_db() -> MockSupabaseClient:
    """Fresh mock database for each test."""
    return MockSupabaseClient()


@pytest.fixture
def audit(mock_db):
    from prompt_shelf.core.audit import AuditLogger

    return AuditLogger(mock_db)


@pytest.fixture
def auth(mock_db):
    from prompt_shelf.core.auth import AuthService

    return AuthService(mock_db)


@pytest.fixture
def resolver(mock_db, audit):
    from prompt_shelf.core.permissions import PermissionResolver

    return PermissionResolver(mock_db, audit=audit)


@pytest.fixture
def gate(resolver):
    from prompt_shelf.core.library_access import LibraryAccessGate

    return LibraryAccessGate(resolver)


@pytest.fixture
def registry(mock_db, gate, audit):
    from prompt_shelf.core.registry import LibraryRegistry

    return LibraryRegistry(mock_db, gate, audit)


@pytest.fixture
def prompts(mock_db, registry):
    from prompt_shelf.core.prompts import PromptRegistry

    return PromptRegistry(mock_db, registry)


@pytest.fixture
def make_user(auth):
    """Factory: register a user and return their SessionUser."""
    counter = iter(range(1, 1000))

    def _make(email: str | None = None, password: str = "correct-horse", name: str | None = None):
        n = next(counter)
        return auth.signup(email or f"user{n}@example.com", password, name or f"User {n}")

    return _make


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com", name="Owner")


@pytest.fixture
def library(registry, owner) -> dict[str, Any]:
    """A public library owned by ``owner``."""
    return registry.create_library(owner, "Portraits", description="Faces and figures")


@pytest.fixture
def share_with(resolver, make_user):
    """Factory: invite a new user to a library at a tier and accept."""

    def _share(library_id: str, inviter, permission: str = "read", email: str | None = None):
        user = make_user(email)
        token = resolver.create_invite(library_id, inviter.id, user.email, permission)
        resolver.accept_invite(token, user.id)
        return user

    return _share


@pytest.fixture
def app(mock_db, auth, audit, resolver, gate, registry, prompts):
    """FastAPI test app with mocked dependencies."""
    from prompt_shelf.core.audit import get_audit_logger
    from prompt_shelf.core.auth import get_auth_service
    from prompt_shelf.core.library_access import get_access_gate
    from prompt_shelf.core.permissions import get_permission_resolver
    from prompt_shelf.core.prompts import get_prompt_registry
    from prompt_shelf.core.registry import get_registry
    from prompt_shelf.core.search import (
        PromptSearch,
        SavedSearchStore,
        get_prompt_search,
        get_saved_searches,
    )
    from prompt_shelf.db.client import get_supabase_client
    from prompt_shelf.main import app as _app

    search = PromptSearch(mock_db, gate)
    saved = SavedSearchStore(mock_db, gate)

    _app.dependency_overrides[get_supabase_client] = lambda: mock_db
    _app.dependency_overrides[get_audit_logger] = lambda: audit
    _app.dependency_overrides[get_auth_service] = lambda: auth
    _app.dependency_overrides[get_permission_resolver] = lambda: resolver
    _app.dependency_overrides[get_access_gate] = lambda: gate
    _app.dependency_overrides[get_registry] = lambda: registry
    _app.dependency_overrides[get_prompt_registry] = lambda: prompts
    _app.dependency_overrides[get_prompt_search] = lambda: search
    _app.dependency_overrides[get_saved_searches] = lambda: saved

    yield _app

    _app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """HTTP test client."""
    return TestClient(app)


@pytest.fixture
def headers_for():
    """Factory: bearer headers carrying a SessionUser's token."""
    from prompt_shelf.core.auth import create_session_token

    def _headers(user) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_session_token(user)}"}

    return _headers

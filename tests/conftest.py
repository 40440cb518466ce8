from __future__ import annotations

import json
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from lila_backend.config.supabase_config import SupabaseConfig
from lila_backend.models.user import UserIdentity
from lila_backend.services.auth_service import IdentityVerifier
from lila_backend.services.chat_store import ChatStore
from lila_backend.services.llm_service import GenerationAdapter
from lila_backend.services.session_service import SessionService

SUPABASE_URL = "https://project.supabase.test"
SERVICE_KEY = "service-key"

ALICE = UserIdentity(id="11111111-1111-1111-1111-111111111111", email="alice@example.com")
BOB = UserIdentity(id="22222222-2222-2222-2222-222222222222", email="bob@example.com")
TOKENS = {"alice-token": ALICE, "bob-token": BOB}


class FakeSupabase:
    """In-memory stand-in for the GoTrue ``/user`` endpoint and the
    PostgREST ``chats`` table, served through :class:`httpx.MockTransport`.
    """

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.patches: list[dict[str, Any]] = []
        self.tokens: dict[str, UserIdentity] = dict(TOKENS)
        self.fail_status: int | None = None
        self.auth_fail_status: int | None = None

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/auth/v1/user":
            return self._auth(request)
        if path == "/rest/v1/chats":
            if self.fail_status is not None:
                return httpx.Response(self.fail_status, json={"message": "database is down"})
            return self._chats(request)
        return httpx.Response(404, json={"message": f"no route {path}"})

    # -- auth ---------------------------------------------------------------

    def _auth(self, request: httpx.Request) -> httpx.Response:
        if self.auth_fail_status is not None:
            return httpx.Response(self.auth_fail_status, json={"msg": "auth is down"})
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        user = self.tokens.get(token)
        if user is None:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(200, json={"id": user.id, "email": user.email, "aud": "authenticated"})

    # -- rest ---------------------------------------------------------------

    def _filters(self, request: httpx.Request) -> dict[str, str]:
        filters = {}
        for key, value in request.url.params.multi_items():
            if key in {"select", "order"}:
                continue
            assert value.startswith("eq."), value
            filters[key] = value[3:]
        return filters

    def _matching(self, filters: dict[str, str]) -> list[dict[str, Any]]:
        return [
            row for row in self.rows
            if all(str(row.get(column)) == expected for column, expected in filters.items())
        ]

    def _chats(self, request: httpx.Request) -> httpx.Response:
        filters = self._filters(request)
        if "id" in filters:
            try:
                uuid.UUID(filters["id"])
            except ValueError:
                return httpx.Response(
                    400,
                    json={"code": "22P02", "message": "invalid input syntax for type uuid"},
                )

        if request.method == "GET":
            rows = self._matching(filters)
            if request.url.params.get("order") == "updated_at.desc":
                rows = sorted(
                    rows,
                    key=lambda row: datetime.fromisoformat(row["updated_at"]),
                    reverse=True,
                )
            select = request.url.params.get("select", "*")
            if select != "*":
                columns = select.split(",")
                rows = [{column: row[column] for column in columns} for row in rows]
            return httpx.Response(200, json=[dict(row) for row in rows])

        if request.method == "POST":
            created = []
            for item in json.loads(request.content):
                row = {"id": str(uuid.uuid4()), **item}
                self.rows.append(row)
                created.append(dict(row))
            return httpx.Response(201, json=created)

        if request.method == "PATCH":
            changes = json.loads(request.content)
            self.patches.append(changes)
            for row in self._matching(filters):
                row.update(changes)
            return httpx.Response(204)

        if request.method == "DELETE":
            doomed = self._matching(filters)
            self.rows = [row for row in self.rows if row not in doomed]
            return httpx.Response(204)

        return httpx.Response(405)


class TickingClock:
    """Clock that advances one second on every reading."""

    def __init__(self) -> None:
        self.current = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def supabase_config() -> SupabaseConfig:
    return SupabaseConfig(url=SUPABASE_URL, key=SERVICE_KEY, timeout=5.0)


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def chat_store(supabase_config: SupabaseConfig, fake_supabase: FakeSupabase, clock: TickingClock) -> ChatStore:
    return ChatStore(supabase_config=supabase_config, transport=fake_supabase.transport, clock=clock)


@pytest.fixture
def verifier(supabase_config: SupabaseConfig, fake_supabase: FakeSupabase) -> IdentityVerifier:
    return IdentityVerifier(supabase_config=supabase_config, transport=fake_supabase.transport)


@pytest.fixture
def generation_adapter() -> MagicMock:
    adapter = MagicMock(spec=GenerationAdapter)
    adapter.generate = AsyncMock(return_value="Hi, I'm Lila!")
    return adapter


@pytest.fixture
def session_service(chat_store: ChatStore, generation_adapter: MagicMock) -> SessionService:
    return SessionService(chat_store=chat_store, generation_adapter=generation_adapter)

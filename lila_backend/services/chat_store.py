"""Ownership-scoped CRUD for chats stored in Supabase.

The gateway talks to the PostgREST endpoint of the ``chats`` table.  Each
operation is a single round trip, except update and delete which first
load the chat's owner so that a missing chat (404) can be told apart
from somebody else's chat (403).  The read path deliberately does not
make that distinction: :meth:`ChatStore.get_chat` filters by owner and
reports another user's chat as not found.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable

import httpx
from loguru import logger

from ..config.supabase_config import SupabaseConfig, get_supabase_config
from ..history.normalizer import read_stored_history
from ..models.chat import DEFAULT_CHAT_TITLE, Chat
from ..models.chat_message import ChatMessage
from ..models.user import UserIdentity
from ..utils import api_client
from ..utils.error_handler import Forbidden, NotFound, ProviderUnavailable

NOT_FOUND_STATUSES = {400, 404, 406}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatStore:
    """Gateway for the ``chats`` collection of the persistence provider."""

    def __init__(
        self,
        supabase_config: SupabaseConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.supabase_config = supabase_config or get_supabase_config()
        self._transport = transport
        self._clock = clock

    @property
    def table_url(self) -> str:
        return f"{self.supabase_config.rest_url}/{self.supabase_config.chats_table}"

    # ------------------------------------------------------------------
    # Operations

    async def list_chats(self, owner: UserIdentity) -> list[Chat]:
        """Return the owner's chats, most recently updated first."""
        response = await self._send(
            "GET",
            params={
                "select": "*",
                "user_id": f"eq.{owner.id}",
                "order": "updated_at.desc",
            },
        )
        self._raise_for_status(response, "list chats")
        rows = response.json() or []
        logger.debug("Listed {} chats for user={}", len(rows), owner.id)
        return [self._to_chat(row) for row in rows]

    async def create_chat(self, owner: UserIdentity) -> Chat:
        """Insert an empty chat with the placeholder title."""
        now = self._clock().isoformat()
        response = await self._send(
            "POST",
            json=[
                {
                    "user_id": owner.id,
                    "title": DEFAULT_CHAT_TITLE,
                    "messages": [],
                    "created_at": now,
                    "updated_at": now,
                }
            ],
            prefer="return=representation",
        )
        self._raise_for_status(response, "create chat")
        rows = response.json() or []
        if not rows:
            logger.error("Insert into {} returned no rows", self.supabase_config.chats_table)
            raise ProviderUnavailable()
        chat = self._to_chat(rows[0])
        logger.debug("Created chat={} for user={}", chat.id, owner.id)
        return chat

    async def get_chat(self, owner: UserIdentity, chat_id: str) -> Chat:
        """Return a chat owned by ``owner``.

        A chat that exists but belongs to another user is reported as
        :class:`NotFound` so that its existence is not revealed.
        """
        response = await self._send(
            "GET",
            params={
                "select": "*",
                "id": f"eq.{chat_id}",
                "user_id": f"eq.{owner.id}",
            },
        )
        rows = self._rows_or_not_found(response, "fetch chat")
        return self._to_chat(rows[0])

    async def get_owner(self, chat_id: str) -> str:
        """Return the owner id of a chat, or raise :class:`NotFound`."""
        response = await self._send(
            "GET",
            params={"select": "user_id", "id": f"eq.{chat_id}"},
        )
        rows = self._rows_or_not_found(response, "look up chat owner")
        return str(rows[0]["user_id"])

    async def ensure_owner(self, owner: UserIdentity, chat_id: str) -> None:
        """Raise :class:`NotFound` or :class:`Forbidden` unless ``owner`` owns the chat."""
        chat_owner = await self.get_owner(chat_id)
        if chat_owner != owner.id:
            logger.warning("User={} denied access to chat={}", owner.id, chat_id)
            raise Forbidden()

    async def update_chat(
        self,
        owner: UserIdentity,
        chat_id: str,
        title: str | None = None,
        messages: list[ChatMessage] | None = None,
    ) -> None:
        """Replace the given fields and refresh ``updated_at``.

        ``updated_at`` is refreshed even when neither field is supplied.
        """
        await self.ensure_owner(owner, chat_id)

        changes: dict[str, Any] = {"updated_at": self._clock().isoformat()}
        if title is not None:
            changes["title"] = title
        if messages is not None:
            changes["messages"] = [message.model_dump(mode="json") for message in messages]

        response = await self._send(
            "PATCH",
            params={"id": f"eq.{chat_id}", "user_id": f"eq.{owner.id}"},
            json=changes,
            prefer="return=minimal",
        )
        self._raise_for_status(response, "update chat")
        logger.debug("Updated chat={} fields={}", chat_id, sorted(changes))

    async def delete_chat(self, owner: UserIdentity, chat_id: str) -> None:
        """Permanently remove a chat owned by ``owner``."""
        await self.ensure_owner(owner, chat_id)

        response = await self._send(
            "DELETE",
            params={"id": f"eq.{chat_id}", "user_id": f"eq.{owner.id}"},
            prefer="return=minimal",
        )
        self._raise_for_status(response, "delete chat")
        logger.debug("Deleted chat={}", chat_id)

    # ------------------------------------------------------------------
    # Helpers

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.supabase_config.key,
            "Authorization": f"Bearer {self.supabase_config.key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _send(
        self,
        method: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        return await api_client.request(
            method,
            self.table_url,
            headers=self._headers(prefer),
            params=params,
            json=json,
            timeout=self.supabase_config.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        logger.error(
            "Failed to {}: provider returned {} {}",
            action,
            response.status_code,
            api_client.error_text(response),
        )
        raise ProviderUnavailable()

    @staticmethod
    def _rows_or_not_found(response: httpx.Response, action: str) -> list[dict[str, Any]]:
        # A rejected id (e.g. a malformed uuid) means there is no such chat
        if response.status_code in NOT_FOUND_STATUSES:
            logger.debug("Lookup rejected ({}): {}", response.status_code, api_client.error_text(response))
            raise NotFound()
        ChatStore._raise_for_status(response, action)
        rows = response.json() or []
        if not rows:
            raise NotFound()
        return rows

    @staticmethod
    def _to_chat(row: dict[str, Any]) -> Chat:
        data = dict(row)
        data["messages"] = read_stored_history(data.get("messages"))
        if data.get("title") is None:
            data["title"] = DEFAULT_CHAT_TITLE
        return Chat.model_validate(data)


@lru_cache()
def get_chat_store() -> ChatStore:
    """Dependency injector for the shared, stateless chat store."""
    return ChatStore()

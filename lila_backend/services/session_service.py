"""Orchestration of chat requests for an authenticated user.

The SessionService receives an already verified identity and routes the
request either to the chat store (list, create, read, update, delete) or
through the history normalizer to the generation adapter.  It holds no
per-request state; all durable state lives with the persistence provider.
"""

from __future__ import annotations

from functools import lru_cache

from loguru import logger

from ..history.normalizer import normalize_history
from ..models.chat import Chat, ChatUpdate
from ..models.generate_request import GenerateRequest
from ..models.user import UserIdentity
from ..utils.error_handler import ValidationFailed
from .chat_store import ChatStore, get_chat_store
from .llm_service import GenerationAdapter, get_generation_adapter


class SessionService:
    """Coordinates the chat store, history normalizer and generation adapter.

    Store and adapter are injected so that the provider choice and the
    persona are decided once, at construction, rather than per request.
    """

    def __init__(self, chat_store: ChatStore, generation_adapter: GenerationAdapter) -> None:
        self.chat_store = chat_store
        self.generation_adapter = generation_adapter

    async def list_chats(self, user: UserIdentity) -> list[Chat]:
        return await self.chat_store.list_chats(user)

    async def create_chat(self, user: UserIdentity) -> Chat:
        chat = await self.chat_store.create_chat(user)
        logger.info("User={} created chat={}", user.id, chat.id)
        return chat

    async def get_chat(self, user: UserIdentity, chat_id: str) -> Chat:
        return await self.chat_store.get_chat(user, chat_id)

    async def update_chat(self, user: UserIdentity, chat_id: str, patch: ChatUpdate) -> None:
        """Apply a partial update; ``messages`` are normalized before storage."""
        messages = normalize_history(patch.messages) if patch.messages is not None else None
        await self.chat_store.update_chat(user, chat_id, title=patch.title, messages=messages)

    async def delete_chat(self, user: UserIdentity, chat_id: str) -> None:
        await self.chat_store.delete_chat(user, chat_id)
        logger.info("User={} deleted chat={}", user.id, chat_id)

    async def generate(self, user: UserIdentity, request: GenerateRequest) -> str:
        """Generate a reply to ``request.message``.

        When ``chatId`` is given, ownership is verified before the model
        is called; a missing chat or another user's chat stops the request
        there.  The new exchange is not written back to the chat: clients
        persist it with a separate update.

        Raises
        ------
        ValidationFailed
            If the message is missing or empty.
        NotFound, Forbidden
            If ``chatId`` does not name a chat owned by ``user``.
        MalformedHistory
            If a history entry cannot be parsed.
        GenerationFailed
            If the language model call fails.
        """
        if not request.message:
            raise ValidationFailed("Message is required")

        if request.chat_id:
            await self.chat_store.ensure_owner(user, request.chat_id)

        history = normalize_history(request.history)
        logger.debug(
            "Generating reply for user={} chat={} with {} prior turns",
            user.id,
            request.chat_id,
            len(history),
        )
        return await self.generation_adapter.generate(history, request.message)


@lru_cache()
def get_session_service() -> SessionService:
    """Dependency injector for SessionService instances.

    FastAPI will call this function to obtain a singleton
    SessionService.  The lru_cache decorator ensures only one
    instance exists.
    """
    return SessionService(
        chat_store=get_chat_store(),
        generation_adapter=get_generation_adapter(),
    )

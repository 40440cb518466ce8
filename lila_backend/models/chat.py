"""Models for the persisted chat aggregate."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from .chat_message import ChatMessage

DEFAULT_CHAT_TITLE = "New Chat"


class Chat(BaseModel):
    """A conversation owned by a single user.

    The owner column is called ``user_id`` in the ``chats`` table and in
    API payloads; :attr:`owner_id` is provided for readability in service
    code.  ``messages`` is always replaced wholesale, never appended to
    in place.
    """

    id: str = Field(..., description="Identifier assigned by the persistence provider.")
    user_id: str = Field(..., description="Identifier of the user who owns this chat.")
    title: str = Field(default=DEFAULT_CHAT_TITLE, description="Free-text label for the chat.")
    messages: List[ChatMessage] = Field(
        default_factory=list,
        description="Chronological list of messages in the chat.",
    )
    created_at: datetime = Field(..., description="Timestamp when the chat was created.")
    updated_at: datetime = Field(..., description="Timestamp of the last mutation.")

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        # bigint primary keys come back from PostgREST as JSON numbers
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def owner_id(self) -> str:
        return self.user_id


class ChatUpdate(BaseModel):
    """Partial update for a chat; absent fields are left untouched.

    ``messages`` is accepted in any shape the history normalizer
    understands and is converted to canonical messages before it is
    stored.
    """

    title: Optional[str] = None
    messages: Optional[List[Any]] = None

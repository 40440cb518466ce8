"""Request model for the generation API."""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GenerateRequest(BaseModel):
    """Represents a request payload for a generated reply.

    ``message`` is the new user turn.  It is optional at the schema level
    so that a missing or empty message is reported by the session service
    as a validation failure with the API's own error body rather than a
    framework-generated 422.  ``chatId`` names a chat the caller must own;
    ``history`` carries prior turns either as flat ``{role, content}``
    objects or as ``{role, parts: [{text}]}`` envelopes.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = Field(
        default=None,
        description="The user's message content.",
    )
    chat_id: Optional[str] = Field(
        default=None,
        alias="chatId",
        description="Optional chat to verify ownership of before generating.",
    )
    history: Optional[List[Any]] = Field(
        default=None,
        description="Prior conversation turns, oldest first.",
    )

    @field_validator("chat_id", mode="before")
    @classmethod
    def _coerce_chat_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

"""History normalization between client, storage and provider formats.

Clients send prior turns either flat (``{"role": "assistant", "content":
"..."}``) or wrapped in the Gemini envelope (``{"role": "model", "parts":
[{"text": "..."}]}``).  Everything is converted to canonical
:class:`ChatMessage` objects before it is stored or handed to a generation
adapter, and rendered back into a provider's wire shape only at the edge.
The order of turns is never changed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from loguru import logger

from ..models.chat_message import ChatMessage
from ..models.enums import MessageRole
from ..utils.error_handler import MalformedHistory

# Provider labels that differ from the canonical role names
ROLE_ALIASES: dict[str, MessageRole] = {"model": MessageRole.ASSISTANT}

GEMINI_ROLES: dict[MessageRole, str] = {
    MessageRole.USER: "user",
    MessageRole.ASSISTANT: "model",
}


def normalize_role(value: Any) -> MessageRole:
    """Map a provider role label onto the canonical role set."""
    if isinstance(value, MessageRole):
        return value
    if not isinstance(value, str):
        raise MalformedHistory(f"Invalid message role: {value!r}")
    label = value.strip().lower()
    if label in ROLE_ALIASES:
        return ROLE_ALIASES[label]
    try:
        return MessageRole(label)
    except ValueError:
        raise MalformedHistory(f"Invalid message role: {value!r}") from None


def _text_from_parts(parts: list[Any]) -> str | None:
    texts: list[str] = []
    for part in parts:
        if isinstance(part, str):
            texts.append(part)
        elif isinstance(part, Mapping) and isinstance(part.get("text"), str):
            texts.append(part["text"])
    if not texts:
        return None
    return "".join(texts)


def extract_text(turn: Mapping[str, Any]) -> str:
    """Return the text of a turn regardless of its envelope.

    A string ``content`` wins; otherwise the text parts of ``content`` (the
    OpenAI list form) or ``parts`` (the Gemini form) are concatenated in
    order.
    """
    content = turn.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        text = _text_from_parts(content)
        if text is not None:
            return text
    parts = turn.get("parts")
    if isinstance(parts, list):
        text = _text_from_parts(parts)
        if text is not None:
            return text
    raise MalformedHistory("Message has no text content")


def normalize_turn(turn: Any) -> ChatMessage:
    """Convert one incoming turn into a canonical :class:`ChatMessage`."""
    if isinstance(turn, ChatMessage):
        return turn
    if not isinstance(turn, Mapping):
        raise MalformedHistory("Each message must be an object")
    role = normalize_role(turn.get("role"))
    return ChatMessage(role=role, content=extract_text(turn))


def normalize_history(turns: Iterable[Any] | None) -> list[ChatMessage]:
    """Normalize a sequence of turns, preserving their order."""
    if turns is None:
        return []
    if isinstance(turns, (str, bytes, Mapping)):
        raise MalformedHistory("History must be a list of messages")
    return [normalize_turn(turn) for turn in turns]


def read_stored_history(turns: Any) -> list[ChatMessage]:
    """Normalize turns loaded from storage, dropping the ones that cannot be read.

    Stored rows may predate the canonical shape or hold non-text parts; a
    bad turn is logged and skipped so the rest of the chat stays readable.
    """
    if turns is None:
        return []
    if isinstance(turns, (str, bytes, Mapping)) or not isinstance(turns, Iterable):
        logger.warning("Ignoring stored messages of type {}", type(turns).__name__)
        return []
    messages = []
    for index, turn in enumerate(turns):
        try:
            messages.append(normalize_turn(turn))
        except MalformedHistory as exc:
            logger.warning("Skipping stored message {}: {}", index, exc.message)
    return messages


def render_openai(messages: Iterable[ChatMessage]) -> list[dict[str, str]]:
    """Render canonical messages as an OpenAI chat message array."""
    return [{"role": message.role.value, "content": message.content} for message in messages]


def render_gemini(messages: Iterable[ChatMessage]) -> list[dict[str, Any]]:
    """Render canonical messages as Gemini ``contents``.

    Gemini only accepts ``user`` and ``model`` turns, so system messages are
    left out here; :func:`system_text` collects them for the session's
    system instruction.
    """
    return [
        {"role": GEMINI_ROLES[message.role], "parts": [{"text": message.content}]}
        for message in messages
        if message.role != MessageRole.SYSTEM
    ]


def system_text(messages: Iterable[ChatMessage]) -> str:
    """Join the content of any system turns found in a history."""
    return "\n\n".join(
        message.content for message in messages if message.role == MessageRole.SYSTEM
    )

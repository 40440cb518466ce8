"""Models representing chat messages."""

from pydantic import BaseModel

from .enums import MessageRole


class ChatMessage(BaseModel):
    """A single turn in a conversation, in canonical form.

    Messages have no identity of their own; they live only inside the
    ``messages`` sequence of their parent :class:`~.chat.Chat` and are
    persisted as a unit with it.  Incoming turns in provider-specific
    shapes are converted by :mod:`lila_backend.history.normalizer` before
    a ``ChatMessage`` is built.
    """

    role: MessageRole
    content: str

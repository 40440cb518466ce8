"""Enumerations used across models."""

from enum import Enum


class MessageRole(str, Enum):
    """Canonical roles for messages in a conversation.

    ``USER`` denotes a human message, ``ASSISTANT`` a reply from the model
    and ``SYSTEM`` an instruction-level message.  Provider wire formats may
    use other labels (Gemini calls the assistant ``model``); those are
    translated by the history normalizer and never stored.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class LlmProvider(str, Enum):
    """Language model backends a generation adapter can target."""

    OPENAI = "openai"
    GEMINI = "gemini"

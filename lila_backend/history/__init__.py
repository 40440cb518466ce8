"""Conversion of conversation history between canonical and provider shapes."""

from .normalizer import (  # noqa: F401
    normalize_history,
    normalize_turn,
    read_stored_history,
    render_gemini,
    render_openai,
)

"""Prompt text used by the generation adapters."""

from .persona import DEFAULT_PERSONA  # noqa: F401

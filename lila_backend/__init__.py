"""Lila chat backend: authenticated chat storage and persona-driven LLM replies."""

__version__ = "0.1.0"

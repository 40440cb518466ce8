"""Expose commonly used model classes at the package level.

Importing these classes here allows consumers to write concise imports like::

    from lila_backend.models import Chat, ChatMessage, GenerateRequest

These names refer to the underlying Pydantic models defined in their
respective modules.
"""

from .chat import Chat, ChatUpdate  # noqa: F401
from .chat_message import ChatMessage  # noqa: F401
from .enums import LlmProvider, MessageRole  # noqa: F401
from .generate_request import GenerateRequest  # noqa: F401
from .generate_response import GenerateResponse, HealthResponse, SuccessResponse  # noqa: F401
from .user import UserIdentity  # noqa: F401

"""Generation adapters wrapping one language model provider each.

Every adapter exposes the same coroutine, :meth:`GenerationAdapter.generate`,
which takes canonical history plus the new user message and returns the
reply text.  The model identifier and sampling parameters are fixed per
adapter; the persona instruction is injected when the adapter is built.

Two calling conventions are implemented behind that interface:

* :class:`OpenAIChatAdapter` sends one flat message array per call
  (persona as a system message, then the history, then the new message).
* :class:`GeminiChatAdapter` starts a :class:`GeminiChatSession` seeded
  with the history and sends only the new message through it.

Both are backed by LangChain chat models and produce identical
observable behaviour: one text reply per user message.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Sequence

from loguru import logger
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from ..config.llm_config import LlmConfig, get_llm_config
from ..history.normalizer import render_gemini, render_openai, system_text
from ..models.chat_message import ChatMessage
from ..models.enums import LlmProvider
from ..utils.error_handler import GenerationFailed

OPENAI_MODEL = "gpt-4o"
GEMINI_MODEL = "gemini-1.5-flash"

TEMPERATURE = 0.9
TOP_P = 0.95
TOP_K = 1
MAX_OUTPUT_TOKENS = 1024


def message_text(result: Any) -> str:
    """Return the text of a chat model result."""
    content = getattr(result, "content", result)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for part in content:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                texts.append(part["text"])
        return "".join(texts)
    return str(content)


class GenerationAdapter(ABC):
    """Uniform "generate reply" operation over one LLM provider."""

    provider: LlmProvider
    model_name: str

    def __init__(self, persona: str, timeout: float = 60.0) -> None:
        self.persona = persona
        self.timeout = timeout

    async def generate(
        self,
        history: Sequence[ChatMessage],
        user_message: str,
        persona: str | None = None,
    ) -> str:
        """Generate the assistant's reply to ``user_message``.

        Parameters
        ----------
        history: Sequence[ChatMessage]
            Canonical prior turns, oldest first.
        user_message: str
            The new user turn.
        persona: str, optional
            Overrides the persona instruction the adapter was built with.

        Raises
        ------
        GenerationFailed
            On any provider error, timeout or empty reply.  The provider's
            message is kept in ``details``.  No retry is attempted.
        """
        instruction = persona or self.persona
        logger.debug(
            "Generating with provider={} model={} history={} turns",
            self.provider.value,
            self.model_name,
            len(history),
        )
        try:
            reply = await asyncio.wait_for(
                self._generate(instruction, list(history), user_message),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("{} generation timed out after {}s", self.provider.value, self.timeout)
            raise GenerationFailed(
                f"{self.provider.value} request timed out after {self.timeout:g}s"
            ) from exc
        except Exception as exc:
            logger.exception("LLM generation failed")
            raise GenerationFailed(str(exc) or type(exc).__name__) from exc

        if not reply or not reply.strip():
            raise GenerationFailed("Language model returned an empty response")
        return reply

    @abstractmethod
    async def _generate(
        self,
        persona: str,
        history: list[ChatMessage],
        user_message: str,
    ) -> str:
        """Provider-specific call; exceptions are translated by :meth:`generate`."""


class OpenAIChatAdapter(GenerationAdapter):
    """Flat message-array convention over the OpenAI chat completions API."""

    provider = LlmProvider.OPENAI
    model_name = OPENAI_MODEL

    def __init__(
        self,
        persona: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
        llm: BaseChatModel | None = None,
    ) -> None:
        super().__init__(persona, timeout)
        if llm is None:
            llm_kwargs: dict[str, object] = {
                "api_key": api_key,
                "model": OPENAI_MODEL,
                "temperature": TEMPERATURE,
                "top_p": TOP_P,
                "max_tokens": MAX_OUTPUT_TOKENS,
                "timeout": timeout,
                "max_retries": 0,
            }
            if base_url:
                llm_kwargs["base_url"] = base_url
            llm = ChatOpenAI(**llm_kwargs)
        self.llm = llm

    @staticmethod
    def build_messages(
        persona: str,
        history: Sequence[ChatMessage],
        user_message: str,
    ) -> list[dict[str, str]]:
        """Concatenate persona, history and the new message into one array."""
        return [
            {"role": "system", "content": persona},
            *render_openai(history),
            {"role": "user", "content": user_message},
        ]

    async def _generate(
        self,
        persona: str,
        history: list[ChatMessage],
        user_message: str,
    ) -> str:
        result = await self.llm.ainvoke(self.build_messages(persona, history, user_message))
        return message_text(result)


class GeminiChatSession:
    """A stateful chat with Gemini.

    The session owns the conversation ``history`` in Gemini ``contents``
    form; callers only send the next user message.  A turn pair is added
    to the history once the model has answered.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        system_instruction: str,
        history: Sequence[dict[str, Any]] | None = None,
    ) -> None:
        self.llm = llm
        self.system_instruction = system_instruction
        self.history: list[dict[str, Any]] = list(history or [])

    def _to_messages(self, contents: Sequence[dict[str, Any]]) -> list[BaseMessage]:
        messages: list[BaseMessage] = [SystemMessage(content=self.system_instruction)]
        for content in contents:
            text = "".join(part.get("text", "") for part in content.get("parts", []))
            if content.get("role") == "model":
                messages.append(AIMessage(content=text))
            else:
                messages.append(HumanMessage(content=text))
        return messages

    async def send_message(self, text: str) -> str:
        user_turn = {"role": "user", "parts": [{"text": text}]}
        result = await self.llm.ainvoke(self._to_messages([*self.history, user_turn]))
        reply = message_text(result)
        self.history.extend([user_turn, {"role": "model", "parts": [{"text": reply}]}])
        return reply


class GeminiChatAdapter(GenerationAdapter):
    """Session-style convention over the Gemini API."""

    provider = LlmProvider.GEMINI
    model_name = GEMINI_MODEL

    def __init__(
        self,
        persona: str,
        api_key: str | None = None,
        timeout: float = 60.0,
        llm: BaseChatModel | None = None,
    ) -> None:
        super().__init__(persona, timeout)
        if llm is None:
            llm = ChatGoogleGenerativeAI(
                model=GEMINI_MODEL,
                google_api_key=api_key,
                temperature=TEMPERATURE,
                top_p=TOP_P,
                top_k=TOP_K,
                max_output_tokens=MAX_OUTPUT_TOKENS,
                timeout=timeout,
                max_retries=0,
            )
        self.llm = llm

    def start_chat(self, persona: str, history: Sequence[ChatMessage]) -> GeminiChatSession:
        """Open a session seeded with ``history``.

        System turns found in the history are appended to the persona,
        since Gemini contents only carry user and model turns.
        """
        extra_instructions = system_text(history)
        instruction = f"{persona}\n\n{extra_instructions}" if extra_instructions else persona
        return GeminiChatSession(self.llm, instruction, render_gemini(history))

    async def _generate(
        self,
        persona: str,
        history: list[ChatMessage],
        user_message: str,
    ) -> str:
        session = self.start_chat(persona, history)
        return await session.send_message(user_message)


def build_generation_adapter(llm_config: LlmConfig | None = None) -> GenerationAdapter:
    """Build the adapter for the configured provider."""
    llm_config = llm_config or get_llm_config()
    logger.info("Using {} generation adapter", llm_config.provider.value)
    if llm_config.provider == LlmProvider.GEMINI:
        return GeminiChatAdapter(
            persona=llm_config.persona,
            api_key=llm_config.gemini_api_key,
            timeout=llm_config.timeout,
        )
    return OpenAIChatAdapter(
        persona=llm_config.persona,
        api_key=llm_config.openai_api_key,
        base_url=llm_config.openai_base_url,
        timeout=llm_config.timeout,
    )


@lru_cache()
def get_generation_adapter() -> GenerationAdapter:
    """Dependency injector for the configured generation adapter."""
    return build_generation_adapter()

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.enums import LlmProvider
from ..prompts.persona import DEFAULT_PERSONA

load_dotenv()


class LlmConfig(BaseSettings):
    """Configuration settings for the language model provider.

    Sampling parameters and model identifiers are fixed by each generation
    adapter; only the provider choice, its credentials, the persona and the
    per-call timeout come from the environment.
    """

    provider: LlmProvider = Field(LlmProvider.OPENAI, alias="LLM_PROVIDER")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY", "gemini_api_key"),
    )
    persona: str = Field(DEFAULT_PERSONA, alias="LILA_PERSONALITY")
    timeout: float = Field(60.0, alias="LLM_TIMEOUT")

    @field_validator("provider", mode="before")
    def validate_provider(cls, value: object) -> object:
        if isinstance(value, str):
            candidate = value.strip().lower()
            if candidate not in {provider.value for provider in LlmProvider}:
                raise ValueError("LLM_PROVIDER must be openai or gemini")
            return candidate
        return value

    @field_validator("persona")
    def validate_persona(cls, value: str) -> str:
        # An empty LILA_PERSONALITY falls back to the built-in persona
        return value.strip() or DEFAULT_PERSONA

    @field_validator("timeout")
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("LLM_TIMEOUT must be positive")
        return value

    @model_validator(mode="after")
    def validate_credentials(self) -> "LlmConfig":
        if self.provider == LlmProvider.OPENAI and not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER is openai")
        if self.provider == LlmProvider.GEMINI and not self.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required when LLM_PROVIDER is gemini")
        return self

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


@lru_cache()
def get_llm_config() -> LlmConfig:
    """Return a cached language model configuration."""

    return LlmConfig()

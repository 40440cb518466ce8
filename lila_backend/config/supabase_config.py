from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Connection settings for the Supabase auth and REST endpoints."""

    url: str = Field(..., alias="SUPABASE_URL")
    key: str = Field(..., alias="SUPABASE_KEY")
    timeout: float = Field(10.0, alias="SUPABASE_TIMEOUT")
    chats_table: str = Field("chats", alias="SUPABASE_CHATS_TABLE")

    @field_validator("url")
    def validate_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("SUPABASE_URL must be an http(s) URL")
        return value

    @field_validator("timeout")
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("SUPABASE_TIMEOUT must be positive")
        return value

    @property
    def auth_url(self) -> str:
        return f"{self.url}/auth/v1"

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


@lru_cache()
def get_supabase_config() -> SupabaseConfig:
    """Return a cached Supabase configuration."""

    return SupabaseConfig()

"""Resolve bearer credentials to user identities via Supabase auth.

The verifier never looks at stored chats; it only asks the auth provider
who a token belongs to.  Every other component receives the resulting
:class:`UserIdentity` and trusts it without re-verifying.
"""

from __future__ import annotations

from functools import lru_cache

import httpx
from loguru import logger

from ..config.supabase_config import SupabaseConfig, get_supabase_config
from ..models.user import UserIdentity
from ..utils import api_client
from ..utils.error_handler import InvalidCredential, ProviderUnavailable, Unauthenticated

BEARER_SCHEME = "bearer"


class IdentityVerifier:
    """Turn an ``Authorization`` header into a verified user identity."""

    def __init__(
        self,
        supabase_config: SupabaseConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.supabase_config = supabase_config or get_supabase_config()
        self._transport = transport

    @staticmethod
    def parse_bearer(authorization: str | None) -> str | None:
        """Return the token from a ``Bearer <token>`` header, else ``None``."""
        if not authorization:
            return None
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != BEARER_SCHEME:
            return None
        return token.strip() or None

    async def verify(self, token: str | None) -> UserIdentity:
        """Ask the auth provider which user ``token`` belongs to.

        Raises
        ------
        Unauthenticated
            If no token was supplied.
        InvalidCredential
            If the provider rejects the token or returns no user.
        ProviderUnavailable
            If the provider cannot be reached or fails internally.
        """
        if not token:
            raise Unauthenticated()

        response = await self._fetch_user(token)
        if response.status_code >= 500:
            logger.error(
                "Auth provider error {}: {}",
                response.status_code,
                api_client.error_text(response),
            )
            raise ProviderUnavailable("Authentication error")
        if response.status_code >= 400:
            logger.debug("Token rejected by auth provider: {}", api_client.error_text(response))
            raise InvalidCredential()

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("Auth provider returned a non-JSON body")
            raise ProviderUnavailable("Authentication error") from exc

        # GoTrue returns the user object directly; some gateways wrap it
        user = payload.get("user", payload) if isinstance(payload, dict) else None
        if not isinstance(user, dict) or not user.get("id"):
            raise InvalidCredential()
        return UserIdentity(id=str(user["id"]), email=user.get("email"))

    async def authenticate(self, authorization: str | None) -> UserIdentity:
        """Parse an ``Authorization`` header and verify its token."""
        return await self.verify(self.parse_bearer(authorization))

    async def _fetch_user(self, token: str) -> httpx.Response:
        try:
            return await api_client.request(
                "GET",
                f"{self.supabase_config.auth_url}/user",
                headers={
                    "apikey": self.supabase_config.key,
                    "Authorization": f"Bearer {token}",
                },
                timeout=self.supabase_config.timeout,
                transport=self._transport,
            )
        except ProviderUnavailable as exc:
            raise ProviderUnavailable("Authentication error") from exc


@lru_cache()
def get_identity_verifier() -> IdentityVerifier:
    """Dependency injector for the shared, stateless identity verifier."""
    return IdentityVerifier()

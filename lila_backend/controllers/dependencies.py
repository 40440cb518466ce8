"""FastAPI dependencies shared by the controllers."""

from typing import Optional

from fastapi import Depends, Header

from ..models.user import UserIdentity
from ..services.auth_service import IdentityVerifier, get_identity_verifier


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> UserIdentity:
    """Resolve the caller from the ``Authorization: Bearer <token>`` header.

    Raises ``Unauthenticated`` or ``InvalidCredential`` (401) before any
    route logic runs, and ``ProviderUnavailable`` (500) when the auth
    provider cannot be reached.
    """
    return await verifier.authenticate(authorization)

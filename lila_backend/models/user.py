"""Identity of an authenticated caller."""

from typing import Optional

from pydantic import BaseModel


class UserIdentity(BaseModel):
    """A user as resolved by the auth provider from a bearer token.

    Only referenced by this service; never persisted.
    """

    id: str
    email: Optional[str] = None

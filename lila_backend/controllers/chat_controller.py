"""API controller for chat CRUD operations.

Every route requires a bearer token.  Failures raised by the session
service are rendered by the application's ``LilaError`` handler; provider
outages are re-raised here with an endpoint-specific message.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from loguru import logger

from ..models.chat import Chat, ChatUpdate
from ..models.generate_response import SuccessResponse
from ..models.user import UserIdentity
from ..services.session_service import SessionService, get_session_service
from ..utils.error_handler import ProviderUnavailable
from .dependencies import get_current_user

router = APIRouter(prefix="/api/chats", tags=["Chats"])


@router.get("", response_model=list[Chat])
async def list_chats_endpoint(
    user: UserIdentity = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> list[Chat]:
    """List the caller's chats, most recently updated first.

    An empty list is returned if the user has no chats.
    """
    logger.info("Listing chats for user: {}", user.id)
    try:
        return await service.list_chats(user)
    except ProviderUnavailable as exc:
        raise ProviderUnavailable("Failed to fetch chats") from exc


@router.post("", response_model=Chat, status_code=status.HTTP_201_CREATED)
async def create_chat_endpoint(
    user: UserIdentity = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> Chat:
    """Create an empty chat with the placeholder title."""
    logger.info("Creating chat for user: {}", user.id)
    try:
        return await service.create_chat(user)
    except ProviderUnavailable as exc:
        raise ProviderUnavailable("Failed to create chat") from exc


@router.get("/{chat_id}", response_model=Chat)
async def get_chat_endpoint(
    chat_id: str,
    user: UserIdentity = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> Chat:
    """Retrieve one of the caller's chats.

    Another user's chat is reported as 404, exactly like a missing one.
    """
    try:
        return await service.get_chat(user, chat_id)
    except ProviderUnavailable as exc:
        raise ProviderUnavailable("Failed to fetch chat") from exc


@router.put("/{chat_id}", response_model=SuccessResponse)
async def update_chat_endpoint(
    chat_id: str,
    patch: Optional[ChatUpdate] = None,
    user: UserIdentity = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> SuccessResponse:
    """Replace a chat's title and/or messages.

    Returns 404 if the chat does not exist and 403 if it belongs to
    another user.
    """
    logger.info("Updating chat {} for user: {}", chat_id, user.id)
    try:
        await service.update_chat(user, chat_id, patch or ChatUpdate())
    except ProviderUnavailable as exc:
        raise ProviderUnavailable("Failed to update chat") from exc
    return SuccessResponse()


@router.delete("/{chat_id}", response_model=SuccessResponse)
async def delete_chat_endpoint(
    chat_id: str,
    user: UserIdentity = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> SuccessResponse:
    """Delete a chat permanently."""
    logger.info("Deleting chat {} for user: {}", chat_id, user.id)
    try:
        await service.delete_chat(user, chat_id)
    except ProviderUnavailable as exc:
        raise ProviderUnavailable("Failed to delete chat") from exc
    return SuccessResponse()

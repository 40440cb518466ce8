"""API controller for reply generation."""

from typing import Optional

from fastapi import APIRouter, Depends
from loguru import logger

from ..models.generate_request import GenerateRequest
from ..models.generate_response import GenerateResponse
from ..models.user import UserIdentity
from ..services.session_service import SessionService, get_session_service
from ..utils.error_handler import ProviderUnavailable
from .dependencies import get_current_user

router = APIRouter(prefix="/api", tags=["Generate"])


@router.post("/generate", response_model=GenerateResponse)
async def generate_endpoint(
    request: Optional[GenerateRequest] = None,
    user: UserIdentity = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> GenerateResponse:
    """Generate the assistant's reply to a user message.

    The request may name a ``chatId`` the caller must own and may carry
    prior turns in ``history``.  The reply is returned but not stored;
    clients save the exchange with ``PUT /api/chats/{id}``.  Generation
    failures return 500 with the provider's error in ``details``; a failed
    ownership lookup returns 500 "Failed to verify chat".
    """
    request = request or GenerateRequest()
    logger.info("Received generate request from user: {} chat: {}", user.id, request.chat_id)
    try:
        reply = await service.generate(user, request)
    except ProviderUnavailable as exc:
        raise ProviderUnavailable("Failed to verify chat") from exc
    logger.info("Reply generated successfully")
    return GenerateResponse(response=reply)

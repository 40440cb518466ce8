"""Response models for the API."""

from pydantic import BaseModel


class GenerateResponse(BaseModel):
    """The assistant's reply to a generation request."""

    response: str


class SuccessResponse(BaseModel):
    """Acknowledgement returned by mutating chat endpoints."""

    success: bool = True


class HealthResponse(BaseModel):
    status: str = "ok"

"""Pydantic models for API request/response schemas."""

from pydantic import BaseModel

from provisioner.models.catalog import ModelSize


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool
    message: str | None = None


class InstallServerRequest(BaseModel):
    """Server installation request."""

    mode: str


class ModelSizeRequest(BaseModel):
    """Model size selection or installation request."""

    size: ModelSize


class StatusResponse(BaseModel):
    """Result of a status request; ``status`` is None when it was debounced."""

    debounced: bool
    status: dict | None = None


class MessagesResponse(BaseModel):
    """Messages posted by the session since the last poll."""

    messages: list[dict]

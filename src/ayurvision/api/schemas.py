"""Pydantic request/response schemas for the AyurVision API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ayurvision.genai.errors import ErrorCategory
from ayurvision.genai.schema import IdentificationResult
from ayurvision.shell import ShellStatus


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    api_key_configured: bool
    model: str
    active_sessions: int


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    category: ErrorCategory | None = Field(default=None, description="Error category, for identification failures")


class FileInfo(BaseModel):
    """Metadata of the selected image."""

    filename: str
    size: int = Field(description="Size in bytes")
    size_display: str
    mime_type: str


class SessionResponse(BaseModel):
    """Current state of the caller's analysis session."""

    status: ShellStatus
    can_identify: bool
    file: FileInfo | None = None
    preview_url: str | None = None
    error: str | None = None
    result: IdentificationResult | None = None

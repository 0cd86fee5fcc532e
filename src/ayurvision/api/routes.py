"""API route definitions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, Response, UploadFile, status
from fastapi.responses import JSONResponse

from ayurvision.api.schemas import ErrorResponse, FileInfo, HealthResponse, SessionResponse
from ayurvision.genai.errors import ErrorCategory, IdentificationError
from ayurvision.genai.schema import IdentificationResult
from ayurvision.intake import ImageIntakeError, read_upload
from ayurvision.shell import ShellState

if TYPE_CHECKING:
    from ayurvision.config import Settings
    from ayurvision.genai.client import PlantIdentifier
    from ayurvision.shell import AnalysisShell, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")

SESSION_KEY = "sid"

_CATEGORY_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.CONFIGURATION: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCategory.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.ACCESS_DENIED: status.HTTP_502_BAD_GATEWAY,
    ErrorCategory.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCategory.NETWORK: status.HTTP_502_BAD_GATEWAY,
    ErrorCategory.EMPTY_RESPONSE: status.HTTP_502_BAD_GATEWAY,
    ErrorCategory.MALFORMED_RESPONSE: status.HTTP_502_BAD_GATEWAY,
    ErrorCategory.ENCODING: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _get_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def _get_identifier(request: Request) -> PlantIdentifier:
    identifier: PlantIdentifier = request.app.state.identifier
    return identifier


def _get_sessions(request: Request) -> SessionRegistry:
    sessions: SessionRegistry = request.app.state.sessions
    return sessions


def get_shell(request: Request) -> AnalysisShell:
    """Return the caller's shell, starting a session if the cookie has none."""
    sessions = _get_sessions(request)
    session_id = request.session.get(SESSION_KEY)
    if not session_id:
        session_id = sessions.new_session_id()
        request.session[SESSION_KEY] = session_id
    return sessions.get_or_create(session_id)


def find_shell(request: Request) -> AnalysisShell | None:
    """Return the caller's shell if one is live. Never starts a session."""
    session_id = request.session.get(SESSION_KEY)
    if not session_id:
        return None
    return _get_sessions(request).get(session_id)


def current_state(request: Request) -> ShellState:
    """The caller's state, or a fresh idle state when there is no live session."""
    shell = find_shell(request)
    return shell.state if shell is not None else ShellState()


def _session_response(state: ShellState) -> SessionResponse:
    file_info = None
    if state.image is not None:
        file_info = FileInfo(
            filename=state.image.filename,
            size=state.image.size,
            size_display=state.image.size_kb,
            mime_type=state.image.mime_type,
        )
    return SessionResponse(
        status=state.status,
        can_identify=state.can_identify,
        file=file_info,
        preview_url=state.preview.url if state.preview is not None else None,
        error=state.error,
        result=state.result,
    )


def _intake_error(exc: ImageIntakeError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    settings = _get_settings(request)
    return HealthResponse(
        status="ok",
        api_key_configured=settings.api_key_configured,
        model=_get_identifier(request).model,
        active_sessions=len(_get_sessions(request)),
    )


@router.post(
    "/identify",
    response_model=IdentificationResult,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
    summary="Identify the plant in an uploaded image",
)
async def identify(request: Request, file: UploadFile) -> JSONResponse:
    """Identify an uploaded image without touching session state.

    A non-plant image is a successful call with ``isPlant`` false.
    """
    settings = _get_settings(request)
    try:
        upload = await read_upload(file, settings.max_file_size)
    except ImageIntakeError as exc:
        return _intake_error(exc)

    try:
        result = await _get_identifier(request).identify(upload.data, upload.mime_type)
    except IdentificationError as exc:
        return JSONResponse(
            status_code=_CATEGORY_STATUS[exc.category],
            content={"detail": exc.message, "category": exc.category.value},
        )
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True, exclude_none=True))


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Current analysis session state",
)
async def get_session(request: Request) -> SessionResponse:
    return _session_response(current_state(request))


@router.post(
    "/session/image",
    response_model=SessionResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
    summary="Select the image to analyze",
)
async def select_image(request: Request, file: UploadFile) -> SessionResponse | JSONResponse:
    """Replace the session's image, clearing any previous result or error."""
    settings = _get_settings(request)
    shell = get_shell(request)
    try:
        upload = await read_upload(file, settings.max_file_size)
    except ImageIntakeError as exc:
        return _intake_error(exc)
    return _session_response(shell.select_image(upload))


@router.post(
    "/session/identify",
    response_model=SessionResponse,
    summary="Analyze the selected image",
)
async def identify_session_image(request: Request) -> SessionResponse:
    """Run identification for the session's image.

    Does nothing when no image is selected or an analysis is already running.
    """
    shell = find_shell(request)
    if shell is None:
        return _session_response(ShellState())
    return _session_response(await shell.identify())


@router.get(
    "/previews/{preview_id}",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Preview image bytes",
)
async def get_preview(request: Request, preview_id: str) -> Response:
    upload = _get_sessions(request).previews.get(preview_id)
    if upload is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "Preview not found"},
        )
    return Response(
        content=upload.data,
        media_type=upload.mime_type,
        headers={"Cache-Control": "no-store"},
    )

"""Transport layer for the generative AI provider.

Architecture:
    PlantIdentifier -> GenerativeTransport.generate_content() -> Gemini REST (httpx)

Transports report failures as ``TransportError`` carrying whatever structured
status the provider returned, so callers classify on fields, not message text.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

import httpx

if TYPE_CHECKING:
    from ayurvision.config import Settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-goog-api-key"
API_KEY_MISSING = "API_KEY_MISSING"


class FailureKind(StrEnum):
    HTTP = "http"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    CONFIGURATION = "configuration"
    PROTOCOL = "protocol"


class TransportError(Exception):
    """A failed provider call.

    Attributes:
        kind: Which layer failed.
        status_code: HTTP status code, when the provider answered.
        status: Provider status name (e.g. ``PERMISSION_DENIED``).
        reason: Provider error reason (e.g. ``API_KEY_INVALID``).
        message: Provider or transport message, for logs only.
    """

    def __init__(
        self,
        kind: FailureKind,
        *,
        status_code: int | None = None,
        status: str | None = None,
        reason: str | None = None,
        message: str = "",
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.status = status
        self.reason = reason
        self.message = message

    def __str__(self) -> str:
        parts = [self.kind.value]
        if self.status_code is not None:
            parts.append(str(self.status_code))
        if self.status:
            parts.append(self.status)
        if self.reason:
            parts.append(self.reason)
        detail = " ".join(parts)
        return f"{detail}: {self.message}" if self.message else detail


class GenerativeTransport(Protocol):
    """Protocol for sending a single generation request to the provider."""

    async def generate_content(self, model: str, payload: dict[str, Any]) -> str | None:
        """Send one ``generateContent`` request.

        Args:
            model: Provider model identifier.
            payload: Request body (contents and generation config).

        Returns:
            The concatenated candidate text, or None when the provider returned no text.

        Raises:
            TransportError: On any provider or transport failure.
        """
        ...


class GeminiRestTransport:
    """Calls the Gemini ``generateContent`` REST endpoint on an injected httpx client."""

    def __init__(self, client: httpx.AsyncClient, api_key: str | None, base_url: str) -> None:
        self._client = client
        self._api_key = api_key.strip() if api_key else None
        self._base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> GeminiRestTransport:
        return cls(client, settings.api_key, settings.api_base_url)

    async def generate_content(self, model: str, payload: dict[str, Any]) -> str | None:
        if not self._api_key:
            raise TransportError(
                kind=FailureKind.CONFIGURATION,
                reason=API_KEY_MISSING,
                message="No API key configured",
            )

        url = f"{self._base_url}/models/{model}:generateContent"
        try:
            response = await self._client.post(
                url,
                json=payload,
                headers={API_KEY_HEADER: self._api_key},
            )
        except httpx.TimeoutException as exc:
            raise TransportError(kind=FailureKind.TIMEOUT, message=str(exc)) from exc
        except httpx.TransportError as exc:
            raise TransportError(kind=FailureKind.CONNECTION, message=str(exc)) from exc

        if response.is_error:
            raise _error_from_response(response)

        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError(
                kind=FailureKind.PROTOCOL,
                status_code=response.status_code,
                message="Provider returned a non-JSON envelope",
            ) from exc
        return extract_text(body)


def extract_text(body: Any) -> str | None:
    """Concatenate the text parts of the first candidate, or None if there are none."""
    if not isinstance(body, dict):
        return None
    candidates = body.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return None
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts") or []
    texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    if not texts:
        return None
    return "".join(texts)


def _string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _error_from_response(response: httpx.Response) -> TransportError:
    """Build a TransportError from a Google API error envelope.

    Envelope shape: ``{"error": {"code", "message", "status", "details": [{"reason"}]}}``.
    Missing or non-string pieces are left as None.
    """
    status: str | None = None
    reason: str | None = None
    message = response.reason_phrase or ""
    try:
        envelope = response.json()
    except ValueError:
        envelope = None

    error = envelope.get("error") if isinstance(envelope, dict) else None
    if isinstance(error, dict):
        status = _string_or_none(error.get("status"))
        message = _string_or_none(error.get("message")) or message
        details = error.get("details")
        for detail in details if isinstance(details, list) else []:
            reason = _string_or_none(detail.get("reason")) if isinstance(detail, dict) else None
            if reason:
                break

    logger.warning("Provider returned HTTP %s (%s)", response.status_code, status or "no status")
    return TransportError(
        kind=FailureKind.HTTP,
        status_code=response.status_code,
        status=status,
        reason=reason,
        message=message,
    )

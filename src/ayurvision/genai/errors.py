"""Categorized identification errors and the provider-failure classification table."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from ayurvision.genai.transport import API_KEY_MISSING, FailureKind, TransportError


class ErrorCategory(StrEnum):
    CONFIGURATION = "configuration"
    INVALID_INPUT = "invalid_input"
    ACCESS_DENIED = "access_denied"
    SERVICE_UNAVAILABLE = "service_unavailable"
    NETWORK = "network"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    ENCODING = "encoding"
    UNKNOWN = "unknown"


MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.CONFIGURATION: (
        "Configuration Error: The API key is missing or invalid. Please contact the site administrator."
    ),
    ErrorCategory.INVALID_INPUT: (
        "Invalid Image: The image could not be processed. "
        "Please try a different, high-quality image in JPG, PNG, or WEBP format."
    ),
    ErrorCategory.ACCESS_DENIED: (
        "Access Denied: The API service is not enabled for this project. Please contact the site administrator."
    ),
    ErrorCategory.SERVICE_UNAVAILABLE: (
        "Service Unavailable: The AI identification service is temporarily down. "
        "Please try again in a few moments."
    ),
    ErrorCategory.NETWORK: (
        "Network Error: Could not connect to the AI service. Please check your internet connection."
    ),
    ErrorCategory.EMPTY_RESPONSE: (
        "The AI model returned an empty response. It may not have been able to identify the plant."
    ),
    ErrorCategory.MALFORMED_RESPONSE: (
        "The AI model returned an unexpected response. Please try a different image."
    ),
    ErrorCategory.ENCODING: "Failed to encode the image for analysis. Please try a different image.",
    ErrorCategory.UNKNOWN: "Failed to identify the plant due to an unexpected issue. Please try again.",
}

_CREDENTIAL_REASONS = frozenset({API_KEY_MISSING, "API_KEY_INVALID", "API_KEY_EXPIRED"})
_SERVER_STATUSES = frozenset({"INTERNAL", "UNAVAILABLE"})


class IdentificationError(Exception):
    """A plant identification failure with a user-facing category and message."""

    def __init__(self, category: ErrorCategory, message: str | None = None) -> None:
        self.category = category
        self.message = message or MESSAGES[category]
        super().__init__(self.message)


def _is_configuration(error: TransportError) -> bool:
    return error.kind is FailureKind.CONFIGURATION or error.reason in _CREDENTIAL_REASONS


def _is_invalid_input(error: TransportError) -> bool:
    return error.status_code == 400 or error.status == "INVALID_ARGUMENT"


def _is_access_denied(error: TransportError) -> bool:
    return error.status_code == 403 or error.status == "PERMISSION_DENIED"


def _is_server_failure(error: TransportError) -> bool:
    if error.status_code is not None and 500 <= error.status_code <= 599:
        return True
    return error.status in _SERVER_STATUSES


def _is_network(error: TransportError) -> bool:
    return error.kind in (FailureKind.CONNECTION, FailureKind.TIMEOUT)


# First match wins; credential problems come first because the provider
# reports an invalid key as a 400.
CLASSIFICATION_TABLE: tuple[tuple[Callable[[TransportError], bool], ErrorCategory], ...] = (
    (_is_configuration, ErrorCategory.CONFIGURATION),
    (_is_invalid_input, ErrorCategory.INVALID_INPUT),
    (_is_access_denied, ErrorCategory.ACCESS_DENIED),
    (_is_server_failure, ErrorCategory.SERVICE_UNAVAILABLE),
    (_is_network, ErrorCategory.NETWORK),
)


def classify(error: TransportError) -> ErrorCategory:
    """Map a transport failure to its error category."""
    for matches, category in CLASSIFICATION_TABLE:
        if matches(error):
            return category
    return ErrorCategory.UNKNOWN


def from_transport_error(error: TransportError) -> IdentificationError:
    return IdentificationError(classify(error))

"""Plant identification client.

Builds the single ``generateContent`` request (fixed prompt, inline base64
image, structured-output schema), sends it through the injected transport,
and parses the reply into an ``IdentificationResult``. Every failure leaves
this module as an ``IdentificationError``. No retries.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from ayurvision.genai.errors import ErrorCategory, IdentificationError, from_transport_error
from ayurvision.genai.schema import RESPONSE_SCHEMA, IdentificationResult
from ayurvision.genai.transport import TransportError

if TYPE_CHECKING:
    from ayurvision.genai.transport import GenerativeTransport

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"

IDENTIFICATION_PROMPT = (
    "Analyze the provided image of a plant from an Ayurvedic perspective. "
    "Identify the primary medicinal plant, its scientific name, and a confidence score. "
    "Provide a list of alternative matches. "
    "Then, give a comprehensive analysis including its botanical classification, "
    "detailed Ayurvedic properties (Rasa, Virya, Vipaka, Prabhava), "
    "its effect on the three Doshas (Vata, Pitta, Kapha), and its traditional uses and dosage. "
    "If the image is not a plant, or cannot be identified, indicate that clearly "
    "by setting 'isPlant' to false."
)

# Upper bound on how much of a bad body goes into the log.
_LOG_BODY_LIMIT = 500


def encode_image(image_bytes: bytes) -> str:
    """Return the base64 text of an image payload.

    Raises:
        IdentificationError: With the ENCODING category for empty or non-bytes input.
    """
    if not image_bytes:
        raise IdentificationError(ErrorCategory.ENCODING)
    try:
        return base64.b64encode(image_bytes).decode("ascii")
    except (TypeError, binascii.Error) as exc:
        raise IdentificationError(ErrorCategory.ENCODING) from exc


def build_payload(image_base64: str, mime_type: str) -> dict[str, Any]:
    """Assemble the request body: prompt text, inline image, and output constraints."""
    return {
        "contents": [
            {
                "parts": [
                    {"text": IDENTIFICATION_PROMPT},
                    {"inline_data": {"mime_type": mime_type, "data": image_base64}},
                ]
            }
        ],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }


def parse_response(text: str | None) -> IdentificationResult:
    """Parse provider text into a validated result.

    Raises:
        IdentificationError: EMPTY_RESPONSE for missing or blank text,
            MALFORMED_RESPONSE for invalid JSON or a schema mismatch.
    """
    json_string = text.strip() if text else ""
    if not json_string:
        raise IdentificationError(ErrorCategory.EMPTY_RESPONSE)

    try:
        data = json.loads(json_string)
    except ValueError as exc:
        logger.error("Failed to parse JSON response from provider: %s", json_string[:_LOG_BODY_LIMIT])
        raise IdentificationError(ErrorCategory.MALFORMED_RESPONSE) from exc

    try:
        return IdentificationResult.model_validate(data)
    except ValidationError as exc:
        logger.error("Provider response does not match the identification schema: %s", exc.errors()[:5])
        raise IdentificationError(ErrorCategory.MALFORMED_RESPONSE) from exc


class PlantIdentifier:
    """Identifies plants in images through a generative AI transport."""

    def __init__(self, transport: GenerativeTransport, model: str = DEFAULT_MODEL) -> None:
        self._transport = transport
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def identify(self, image_bytes: bytes, mime_type: str) -> IdentificationResult:
        """Identify the plant in an image.

        Args:
            image_bytes: Raw image file bytes, already validated as an image.
            mime_type: Image MIME type, e.g. ``image/jpeg``.

        Returns:
            The parsed result. Callers must check ``is_plant`` before display.

        Raises:
            IdentificationError: On local encoding failure, provider failure,
                or an unusable response.
        """
        payload = build_payload(encode_image(image_bytes), mime_type)

        try:
            text = await self._transport.generate_content(self._model, payload)
        except TransportError as exc:
            error = from_transport_error(exc)
            logger.error("Error calling generative AI provider (%s): %s", error.category, exc)
            raise error from exc
        except Exception as exc:
            logger.exception("Unexpected failure calling generative AI provider")
            raise IdentificationError(ErrorCategory.UNKNOWN) from exc

        result = parse_response(text)
        logger.info(
            "Identification complete (is_plant=%s, model=%s)",
            result.is_plant,
            self._model,
        )
        return result

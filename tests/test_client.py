"""Tests for the plant identification client and error classification."""

from __future__ import annotations

import base64
import json
from typing import Any

import pytest

from ayurvision.genai.client import IDENTIFICATION_PROMPT, PlantIdentifier, build_payload, parse_response
from ayurvision.genai.errors import ErrorCategory, IdentificationError, classify
from ayurvision.genai.schema import RESPONSE_SCHEMA
from ayurvision.genai.transport import API_KEY_MISSING, FailureKind, TransportError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeTransport:
    """Records requests and replays a canned text or failure."""

    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def generate_content(self, model: str, payload: dict[str, Any]) -> str | None:
        self.calls.append((model, payload))
        if self.error is not None:
            raise self.error
        return self.text


async def _identify_error(transport: FakeTransport, image: bytes = b"image-bytes") -> IdentificationError:
    identifier = PlantIdentifier(transport)
    with pytest.raises(IdentificationError) as exc_info:
        await identifier.identify(image, "image/jpeg")
    return exc_info.value


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------


class TestRequest:
    async def test_sends_prompt_image_and_schema(self, jpeg_bytes: bytes, plant_json: str) -> None:
        transport = FakeTransport(text=plant_json)
        identifier = PlantIdentifier(transport, model="gemini-test")

        await identifier.identify(jpeg_bytes, "image/png")

        assert len(transport.calls) == 1
        model, payload = transport.calls[0]
        assert model == "gemini-test"
        parts = payload["contents"][0]["parts"]
        assert parts[0] == {"text": IDENTIFICATION_PROMPT}
        assert parts[1]["inline_data"]["mime_type"] == "image/png"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == jpeg_bytes
        config = payload["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"] is RESPONSE_SCHEMA

    def test_prompt_covers_required_analysis(self) -> None:
        for term in ("scientific name", "confidence", "alternative", "Rasa", "Virya", "Vipaka", "Prabhava"):
            assert term in IDENTIFICATION_PROMPT
        for dosha in ("Vata", "Pitta", "Kapha"):
            assert dosha in IDENTIFICATION_PROMPT
        assert "'isPlant' to false" in IDENTIFICATION_PROMPT

    def test_build_payload_keeps_base64_verbatim(self) -> None:
        payload = build_payload("QUJD", "image/webp")
        assert payload["contents"][0]["parts"][1] == {"inline_data": {"mime_type": "image/webp", "data": "QUJD"}}

    async def test_empty_image_fails_before_network(self) -> None:
        transport = FakeTransport(text="{}")
        error = await _identify_error(transport, image=b"")
        assert error.category is ErrorCategory.ENCODING
        assert transport.calls == []


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


class TestResponseParsing:
    async def test_success_returns_full_result(self, jpeg_bytes: bytes, plant_json: str) -> None:
        result = await PlantIdentifier(FakeTransport(text=plant_json)).identify(jpeg_bytes, "image/jpeg")
        assert result.is_plant is True
        assert result.identification is not None
        assert result.identification.plant_name == "Tulsi"

    async def test_surrounding_whitespace_trimmed(self, jpeg_bytes: bytes, plant_json: str) -> None:
        result = await PlantIdentifier(FakeTransport(text=f"\n  {plant_json}  \n")).identify(jpeg_bytes, "image/jpeg")
        assert result.is_plant is True

    async def test_not_a_plant_is_a_successful_call(self, jpeg_bytes: bytes) -> None:
        result = await PlantIdentifier(FakeTransport(text='{"isPlant": false}')).identify(jpeg_bytes, "image/jpeg")
        assert result.is_plant is False

    @pytest.mark.parametrize("text", [None, "", "   ", "\n\t\n"])
    async def test_empty_response(self, text: str | None) -> None:
        error = await _identify_error(FakeTransport(text=text))
        assert error.category is ErrorCategory.EMPTY_RESPONSE
        assert "empty response" in error.message

    @pytest.mark.parametrize("text", ["not json at all", "{'isPlant': true", "```json\n{}\n```"])
    async def test_malformed_response(self, text: str) -> None:
        error = await _identify_error(FakeTransport(text=text))
        assert error.category is ErrorCategory.MALFORMED_RESPONSE
        assert "unexpected response" in error.message

    async def test_schema_mismatch_is_malformed(self, plant_payload: dict[str, Any]) -> None:
        del plant_payload["detailedAnalysis"]
        error = await _identify_error(FakeTransport(text=json.dumps(plant_payload)))
        assert error.category is ErrorCategory.MALFORMED_RESPONSE

    def test_json_array_is_malformed(self) -> None:
        with pytest.raises(IdentificationError) as exc_info:
            parse_response("[1, 2, 3]")
        assert exc_info.value.category is ErrorCategory.MALFORMED_RESPONSE


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class TestErrorClassification:
    @pytest.mark.parametrize(
        ("error", "category"),
        [
            (TransportError(FailureKind.CONFIGURATION, reason=API_KEY_MISSING), ErrorCategory.CONFIGURATION),
            (
                TransportError(FailureKind.HTTP, status_code=400, status="INVALID_ARGUMENT", reason="API_KEY_INVALID"),
                ErrorCategory.CONFIGURATION,
            ),
            (TransportError(FailureKind.HTTP, status_code=400), ErrorCategory.INVALID_INPUT),
            (TransportError(FailureKind.HTTP, status_code=403), ErrorCategory.ACCESS_DENIED),
            (TransportError(FailureKind.HTTP, status="PERMISSION_DENIED"), ErrorCategory.ACCESS_DENIED),
            (TransportError(FailureKind.HTTP, status_code=500), ErrorCategory.SERVICE_UNAVAILABLE),
            (TransportError(FailureKind.HTTP, status_code=503), ErrorCategory.SERVICE_UNAVAILABLE),
            (TransportError(FailureKind.HTTP, status="UNAVAILABLE"), ErrorCategory.SERVICE_UNAVAILABLE),
            (TransportError(FailureKind.CONNECTION, message="Connection refused"), ErrorCategory.NETWORK),
            (TransportError(FailureKind.TIMEOUT), ErrorCategory.NETWORK),
            (TransportError(FailureKind.HTTP, status_code=429), ErrorCategory.UNKNOWN),
            (TransportError(FailureKind.HTTP, status_code=404), ErrorCategory.UNKNOWN),
            (TransportError(FailureKind.PROTOCOL, status_code=200), ErrorCategory.UNKNOWN),
        ],
    )
    def test_classify(self, error: TransportError, category: ErrorCategory) -> None:
        assert classify(error) is category

    async def test_503_surfaces_service_unavailable_message(self) -> None:
        error = await _identify_error(FakeTransport(error=TransportError(FailureKind.HTTP, status_code=503)))
        assert error.category is ErrorCategory.SERVICE_UNAVAILABLE
        assert error.message.startswith("Service Unavailable")
        assert "try again" in error.message

    async def test_missing_credential_is_configuration_error(self) -> None:
        error = await _identify_error(
            FakeTransport(error=TransportError(FailureKind.CONFIGURATION, reason=API_KEY_MISSING))
        )
        assert error.category is ErrorCategory.CONFIGURATION
        assert error.message.startswith("Configuration Error")

    async def test_400_asks_for_different_image(self) -> None:
        error = await _identify_error(FakeTransport(error=TransportError(FailureKind.HTTP, status_code=400)))
        assert error.message.startswith("Invalid Image")

    async def test_connection_failure_is_network_error(self) -> None:
        error = await _identify_error(FakeTransport(error=TransportError(FailureKind.CONNECTION)))
        assert error.category is ErrorCategory.NETWORK
        assert error.message.startswith("Network Error")

    async def test_unexpected_exception_is_generic(self) -> None:
        error = await _identify_error(FakeTransport(error=RuntimeError("boom")))
        assert error.category is ErrorCategory.UNKNOWN
        assert "unexpected issue" in error.message

    async def test_provider_error_chained(self) -> None:
        cause = TransportError(FailureKind.HTTP, status_code=403)
        error = await _identify_error(FakeTransport(error=cause))
        assert error.__cause__ is cause

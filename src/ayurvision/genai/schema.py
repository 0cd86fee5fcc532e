"""Identification result model and the structured-output schema sent to the provider.

The schema is a plain dict in the OpenAPI subset accepted by Gemini's
``responseSchema`` field. Every object lists all of its properties as required,
so partial generations are rejected upstream where the provider enforces it.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator
from pydantic.alias_generators import to_camel

CONFIDENCE_MIN: float = 0.0
CONFIDENCE_MAX: float = 100.0
MAX_ALTERNATIVE_MATCHES: int = 4

# ---------------------------------------------------------------------------
# Structured output schema
# ---------------------------------------------------------------------------


def _string(description: str | None = None) -> dict[str, Any]:
    node: dict[str, Any] = {"type": "STRING"}
    if description:
        node["description"] = description
    return node


def _number(description: str | None = None) -> dict[str, Any]:
    node: dict[str, Any] = {"type": "NUMBER"}
    if description:
        node["description"] = description
    return node


def _array(items: dict[str, Any], description: str | None = None) -> dict[str, Any]:
    node: dict[str, Any] = {"type": "ARRAY", "items": items}
    if description:
        node["description"] = description
    return node


def _object(properties: dict[str, dict[str, Any]], description: str | None = None) -> dict[str, Any]:
    node: dict[str, Any] = {
        "type": "OBJECT",
        "properties": properties,
        "required": list(properties),
    }
    if description:
        node["description"] = description
    return node


RESPONSE_SCHEMA: dict[str, Any] = _object(
    {
        "isPlant": {"type": "BOOLEAN", "description": "Is the image of a plant?"},
        "identification": _object(
            {
                "plantName": _string(),
                "scientificName": _string(),
                "alternativeNames": _array(_string()),
                "confidence": _number("Confidence score from 0 to 100."),
                "description": _string(
                    "A brief, engaging description of the plant and its significance in Ayurveda."
                ),
                "ayurvedicProperties": _array(
                    _string(), "List of key Ayurvedic properties (e.g., Rasayana, Balya)."
                ),
            },
            "The primary identification of the plant.",
        ),
        "alternativeMatches": _array(
            _object({"name": _string(), "confidence": _number()}),
            "Up to 4 alternative plant identifications with confidence scores.",
        ),
        "detailedAnalysis": _object(
            {
                "botanicalClassification": _object(
                    {
                        "family": _string(),
                        "genus": _string(),
                        "partsUsed": _string(),
                        "habitat": _string(),
                    }
                ),
                "ayurvedicProfile": _object(
                    {
                        "rasa": _string("Tastes (e.g., Tikta, Kashaya)"),
                        "virya": _string("Potency (e.g., Ushna, Sheeta)"),
                        "vipaka": _string("Post-digestive effect (e.g., Madhura)"),
                        "prabhava": _string("Special action"),
                    }
                ),
                "doshaEffects": _object(
                    {
                        "vata": _string("Effect on Vata dosha (e.g., Pacifies, Aggravates)"),
                        "pitta": _string("Effect on Pitta dosha"),
                        "kapha": _string("Effect on Kapha dosha"),
                    }
                ),
                "traditionalUses": _object(
                    {
                        "primary": _string(),
                        "secondary": _string(),
                        "dosage": _string("Typical dosage form and amount."),
                    }
                ),
            }
        ),
    }
)


# ---------------------------------------------------------------------------
# Parsed result
# ---------------------------------------------------------------------------


def clamp_confidence(value: float) -> float:
    """Clamp a finite confidence score into the 0-100 range."""
    return min(max(value, CONFIDENCE_MIN), CONFIDENCE_MAX)


Confidence = Annotated[
    float,
    Field(allow_inf_nan=False, description="Confidence score (0-100)"),
    AfterValidator(clamp_confidence),
]


class _WireModel(BaseModel):
    """Base for models exchanged with the provider in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Identification(_WireModel):
    """Primary identification of the plant."""

    plant_name: str
    scientific_name: str
    alternative_names: list[str]
    confidence: Confidence
    description: str
    ayurvedic_properties: list[str]


class AlternativeMatch(_WireModel):
    """A lower-confidence competing identification."""

    name: str
    confidence: Confidence


class BotanicalClassification(_WireModel):
    family: str
    genus: str
    parts_used: str
    habitat: str


class AyurvedicProfile(_WireModel):
    """Rasa (taste), Virya (potency), Vipaka (post-digestive effect), Prabhava (special action)."""

    rasa: str
    virya: str
    vipaka: str
    prabhava: str


class DoshaEffects(_WireModel):
    vata: str
    pitta: str
    kapha: str


class TraditionalUses(_WireModel):
    primary: str
    secondary: str
    dosage: str


class DetailedAnalysis(_WireModel):
    botanical_classification: BotanicalClassification
    ayurvedic_profile: AyurvedicProfile
    dosha_effects: DoshaEffects
    traditional_uses: TraditionalUses


class IdentificationResult(_WireModel):
    """Structured identification returned by the provider.

    When ``is_plant`` is False every other field is None, whatever the
    provider sent alongside it. When it is True all fields are required.
    """

    is_plant: StrictBool
    identification: Identification | None = None
    alternative_matches: list[AlternativeMatch] | None = None
    detailed_analysis: DetailedAnalysis | None = None

    @model_validator(mode="before")
    @classmethod
    def _drop_fields_when_not_a_plant(cls, data: Any) -> Any:
        if isinstance(data, dict):
            gate = data.get("isPlant", data.get("is_plant"))
            if gate is False:
                return {"isPlant": False}
        return data

    @field_validator("alternative_matches")
    @classmethod
    def _limit_alternatives(cls, value: list[AlternativeMatch] | None) -> list[AlternativeMatch] | None:
        if value is None:
            return None
        return value[:MAX_ALTERNATIVE_MATCHES]

    @model_validator(mode="after")
    def _require_fields_for_plants(self) -> IdentificationResult:
        if not self.is_plant:
            return self
        missing = [
            name
            for name in ("identification", "alternative_matches", "detailed_analysis")
            if getattr(self, name) is None
        ]
        if missing:
            raise ValueError(f"missing required fields: {', '.join(missing)}")
        return self

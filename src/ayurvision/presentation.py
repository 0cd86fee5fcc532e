"""Result presentation: view models for an identification result."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ayurvision.genai.schema import IdentificationResult

NAME_SEPARATOR = " • "


class ConfidenceTier(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def css_class(self) -> str:
        return f"score-{self.value}"


def confidence_tier(score: float) -> ConfidenceTier:
    """Bucket a 0-100 confidence score. Thresholds are strict: 80 is MEDIUM, 60 is LOW."""
    if score > 80:
        return ConfidenceTier.HIGH
    if score > 60:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def format_confidence(score: float) -> str:
    return f"{score:.1f}%"


@dataclass(frozen=True)
class AlternativeView:
    name: str
    confidence: str
    tier: ConfidenceTier


@dataclass(frozen=True)
class DetailGroup:
    title: str
    rows: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class ResultView:
    plant_name: str
    names_line: str
    confidence: str
    description: str
    properties: tuple[str, ...]
    alternatives: tuple[AlternativeView, ...]
    details: tuple[DetailGroup, ...]


def build_result_view(result: IdentificationResult) -> ResultView:
    """Flatten a plant identification into display strings.

    Raises:
        ValueError: If the result is not a plant.
    """
    if not result.is_plant or result.identification is None or result.detailed_analysis is None:
        raise ValueError("Only plant identifications can be presented")

    ident = result.identification
    analysis = result.detailed_analysis
    botanical = analysis.botanical_classification
    profile = analysis.ayurvedic_profile
    doshas = analysis.dosha_effects
    uses = analysis.traditional_uses

    return ResultView(
        plant_name=ident.plant_name,
        names_line=NAME_SEPARATOR.join([ident.scientific_name, *ident.alternative_names]),
        confidence=format_confidence(ident.confidence),
        description=ident.description,
        properties=tuple(ident.ayurvedic_properties),
        alternatives=tuple(
            AlternativeView(
                name=match.name,
                confidence=format_confidence(match.confidence),
                tier=confidence_tier(match.confidence),
            )
            for match in result.alternative_matches or []
        ),
        details=(
            DetailGroup(
                "Botanical Classification",
                (
                    ("Family", botanical.family),
                    ("Genus", botanical.genus),
                    ("Parts Used", botanical.parts_used),
                    ("Habitat", botanical.habitat),
                ),
            ),
            DetailGroup(
                "Ayurvedic Properties",
                (
                    ("Rasa", profile.rasa),
                    ("Virya", profile.virya),
                    ("Vipaka", profile.vipaka),
                    ("Prabhava", profile.prabhava),
                ),
            ),
            DetailGroup(
                "Dosha Effects",
                (
                    ("Vata", doshas.vata),
                    ("Pitta", doshas.pitta),
                    ("Kapha", doshas.kapha),
                ),
            ),
            DetailGroup(
                "Traditional Uses",
                (
                    ("Primary", uses.primary),
                    ("Secondary", uses.secondary),
                    ("Dosage", uses.dosage),
                ),
            ),
        ),
    )

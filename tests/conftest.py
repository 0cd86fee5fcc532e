"""Shared fixtures for the AyurVision test suite."""

from __future__ import annotations

import copy
import json
from typing import Any

import pytest

PLANT_PAYLOAD: dict[str, Any] = {
    "isPlant": True,
    "identification": {
        "plantName": "Tulsi",
        "scientificName": "Ocimum tenuiflorum",
        "alternativeNames": ["Holy Basil", "Tulasi"],
        "confidence": 92.5,
        "description": "A sacred aromatic herb revered in Ayurveda as an adaptogen.",
        "ayurvedicProperties": ["Rasayana", "Deepana"],
    },
    "alternativeMatches": [
        {"name": "Sweet Basil", "confidence": 85},
        {"name": "Thai Basil", "confidence": 70},
        {"name": "Lemon Basil", "confidence": 40},
    ],
    "detailedAnalysis": {
        "botanicalClassification": {
            "family": "Lamiaceae",
            "genus": "Ocimum",
            "partsUsed": "Leaves, seeds, root",
            "habitat": "Tropical Asia",
        },
        "ayurvedicProfile": {
            "rasa": "Katu, Tikta",
            "virya": "Ushna",
            "vipaka": "Katu",
            "prabhava": "Krimighna",
        },
        "doshaEffects": {
            "vata": "Pacifies",
            "pitta": "Aggravates in excess",
            "kapha": "Pacifies",
        },
        "traditionalUses": {
            "primary": "Respiratory support",
            "secondary": "Stress relief",
            "dosage": "Fresh juice 10-20 ml daily",
        },
    },
}


@pytest.fixture()
def plant_payload() -> dict[str, Any]:
    """A well-formed plant identification, as the provider returns it."""
    return copy.deepcopy(PLANT_PAYLOAD)


@pytest.fixture()
def plant_json(plant_payload: dict[str, Any]) -> str:
    return json.dumps(plant_payload)


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return b"\xff\xd8\xff\xe0fake jpeg body"

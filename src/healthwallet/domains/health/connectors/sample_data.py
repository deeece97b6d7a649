"""Sample lab panel used when no real extraction provider is configured."""

from __future__ import annotations

import copy
from typing import Any

_SAMPLE_PANEL: list[dict[str, Any]] = [
    {
        "name": "Vitamin D", "value": 22.5, "unit": "ng/mL",
        "reference_range": {"min": 30, "max": 100}, "category": "vitamins", "confidence": 0.85,
    },
    {
        "name": "Vitamin B12", "value": 180, "unit": "pg/mL",
        "reference_range": {"min": 200, "max": 900}, "category": "vitamins", "confidence": 0.85,
    },
    {
        "name": "Ferritin", "value": 18, "unit": "ng/mL",
        "reference_range": {"min": 20, "max": 200}, "category": "vitamins", "confidence": 0.85,
    },
    {
        "name": "Iron", "value": 50, "unit": "ug/dL",
        "reference_range": {"min": 60, "max": 170}, "category": "vitamins", "confidence": 0.85,
    },
    {
        "name": "Folate", "value": 2.5, "unit": "ng/mL",
        "reference_range": {"min": 3, "max": 20}, "category": "vitamins", "confidence": 0.85,
    },
    {
        "name": "Magnesium", "value": 1.6, "unit": "mg/dL",
        "reference_range": {"min": 1.7, "max": 2.2}, "category": "vitamins", "confidence": 0.85,
    },
    {
        "name": "Total Cholesterol", "value": 210, "unit": "mg/dL",
        "reference_range": {"min": 125, "max": 200}, "category": "lipids", "confidence": 0.85,
    },
    {
        "name": "Fasting Glucose", "value": 95, "unit": "mg/dL",
        "reference_range": {"min": 70, "max": 100}, "category": "metabolic", "confidence": 0.85,
    },
]


def get_sample_lab_panel() -> list[dict[str, Any]]:
    """A fresh copy of the sample panel: six low, one high, one optimal."""
    return copy.deepcopy(_SAMPLE_PANEL)

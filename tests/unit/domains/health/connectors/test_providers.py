"""Tests for the lab extraction providers."""

from __future__ import annotations

import asyncio
import json

import pytest

from healthwallet.domains.health.connectors import LabExtractionError, LabExtractionProvider
from healthwallet.domains.health.connectors.providers import (
    SampleLabExtractionProvider,
    StructuredJsonProvider,
)
from healthwallet.domains.health.connectors.sample_data import get_sample_lab_panel


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestStructuredJsonProvider:
    def test_satisfies_protocol(self):
        provider = StructuredJsonProvider()
        assert isinstance(provider, LabExtractionProvider)
        assert provider.provider_name == "structured_json"

    def test_single_report(self, iron_panel):
        doc = json.dumps({"biomarkers": iron_panel, "lab_provider": "Quest"})
        extractions = _run(StructuredJsonProvider().extract(doc))

        assert len(extractions) == 1
        assert extractions[0].biomarkers == iron_panel
        assert extractions[0].lab_provider == "Quest"

    def test_multiple_reports(self, iron_panel):
        doc = json.dumps({"reports": [
            {"biomarkers": iron_panel, "record_date": "2024-01-10"},
            {"biomarkers": [], "correlations": [{"insight": "x"}]},
            "skipped",
        ]})
        extractions = _run(StructuredJsonProvider().extract(doc))

        assert len(extractions) == 2
        assert extractions[0].record_date == "2024-01-10"
        assert extractions[1].correlations == [{"insight": "x"}]

    def test_code_fenced_document(self, iron_panel):
        doc = "Here you go:\n```json\n" + json.dumps({"biomarkers": iron_panel}) + "\n```"
        assert len(_run(StructuredJsonProvider().extract(doc))) == 1

    def test_no_reports(self):
        assert _run(StructuredJsonProvider().extract('{"patient": "x"}')) == []

    def test_non_list_biomarkers_become_empty(self):
        extractions = _run(StructuredJsonProvider().extract('{"biomarkers": "oops"}'))
        assert extractions[0].biomarkers == []

    @pytest.mark.parametrize("doc", ["not json", "[1, 2]", ""])
    def test_unreadable_document(self, doc):
        with pytest.raises(LabExtractionError):
            _run(StructuredJsonProvider().extract(doc))


class TestSampleProvider:
    def test_returns_sample_panel(self):
        provider = SampleLabExtractionProvider()
        extractions = _run(provider.extract("ignored"))

        assert isinstance(provider, LabExtractionProvider)
        assert provider.provider_name == "sample"
        assert extractions[0].lab_provider == "Sample Lab"
        assert len(extractions[0].biomarkers) == 8

    def test_sample_panel_is_a_fresh_copy(self):
        panel = get_sample_lab_panel()
        panel[0]["value"] = -1
        assert get_sample_lab_panel()[0]["value"] == 22.5

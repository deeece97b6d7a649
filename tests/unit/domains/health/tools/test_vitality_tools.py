"""Unit tests for the vitality_score MCP tool."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from healthwallet.core.server.app import create_app
from healthwallet.core.storage.models import LabRecord
from healthwallet.domains.health.domain_logic.health_models import DailyMetric, QuickLog, RecordStatus


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _call(client: Client, tool: str, args: dict | None = None) -> dict:
    result = await client.call_tool(tool, args or {})
    return json.loads(result.content[0].text)


@pytest.fixture
def mcp_app(health_repository, audit_logger):
    return create_app(
        repository_override=health_repository,
        audit_logger_override=audit_logger,
    )


def _score(mcp_app, **args) -> dict:
    async def _check():
        async with Client(mcp_app) as client:
            return await _call(client, "vitality_score", args)
    return _run(_check())


class TestVitalityScore:
    def test_sleep_only_day(self, mcp_app, health_repository):
        health_repository.upsert_daily_metric(DailyMetric(date="2024-03-01", sleep_hours=8))
        result = _score(mcp_app, score_date="2024-03-01", days=2)

        assert result["status"] == "ok"
        assert result["date"] == "2024-03-01"
        assert result["score"] == 75
        assert result["insufficient_data"] is False
        assert result["components"]["sleep"]["weight"] == 0.75
        assert result["clinical_record_id"] is None
        assert result["trend"] == [
            {"date": "2024-02-28", "score": 0},
            {"date": "2024-02-29", "score": 0},
            {"date": "2024-03-01", "score": 75},
        ]

    def test_completed_lab_feeds_clinical(self, mcp_app, health_repository):
        health_repository.upsert_daily_metric(DailyMetric(date="2024-03-01", sleep_hours=8))
        rid = health_repository.save_lab_record(LabRecord(
            id="", source_name="Quest", status=RecordStatus.COMPLETED, wellness_score=80,
        ))
        health_repository.save_lab_record(LabRecord(
            id="", source_name="Quest", status=RecordStatus.PENDING_REVIEW, wellness_score=10,
        ))

        result = _score(mcp_app, score_date="2024-03-01", days=0)
        assert result["clinical_record_id"] == rid
        assert result["components"]["clinical"]["score"] == 80
        assert result["score"] == 76

    def test_streak_feeds_consistency(self, mcp_app, health_repository):
        for day in ("2024-02-28", "2024-02-29", "2024-03-01"):
            health_repository.upsert_quick_log(QuickLog(date=day, mood=3, energy=3))
        result = _score(mcp_app, score_date="2024-03-01", days=1)

        assert result["components"]["consistency"]["value"] == "3-day streak"
        assert result["score"] == 43
        assert [p["score"] for p in result["trend"]] == [29, 43]

    def test_empty_data_bank(self, mcp_app):
        result = _score(mcp_app, score_date="2024-03-01", days=0)
        assert result["score"] == 0
        assert result["components"]["sleep"]["value"] == "No data"

    def test_defaults_to_today(self, mcp_app):
        result = _score(mcp_app)
        assert result["status"] == "ok"
        assert len(result["trend"]) == 8

    @pytest.mark.parametrize("args", [
        {"score_date": "2024-02-30"},
        {"score_date": "2024-03-01", "days": 91},
        {"score_date": "2024-03-01", "days": -1},
    ])
    def test_invalid_input(self, mcp_app, audit_logger, args):
        result = _score(mcp_app, **args)
        assert result["status"] == "error"
        assert audit_logger.get_events(tool_name="vitality_score")[0]["status"] == "failure"

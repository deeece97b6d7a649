"""Unit tests for the retention_offer MCP tool."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from healthwallet.core.server.app import create_app


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


def test_offers_rotate_through_cooldown(mcp_app, health_repository):
    async def _check():
        async with Client(mcp_app) as client:
            return [
                await _call(client, "retention_offer", {"reason_category": "price"})
                for _ in range(4)
            ]
    results = _run(_check())

    assert [r["status"] for r in results] == ["offer", "offer", "offer", "no_offer"]
    assert [r["offer"]["type"] for r in results[:3]] == ["discount", "extension", "pause"]
    assert results[0]["offer"]["title"] == "50% Off for 3 Months"
    assert results[1]["offer"]["title"] == "30 Days Free"

    shown = health_repository.get_previous_offers()
    assert len(shown) == 3
    assert {o.reason_category for o in shown} == {"price"}


def test_unknown_reason_gets_generic_offer(mcp_app):
    async def _check():
        async with Client(mcp_app) as client:
            return await _call(client, "retention_offer", {"reason_category": "bored"})
    result = _run(_check())
    assert result["offer"]["title"] == "25% Off for 3 Months"


def test_offer_is_audited_without_reason_text(mcp_app, audit_logger):
    async def _check():
        async with Client(mcp_app) as client:
            await _call(client, "retention_offer", {"reason_category": "temporary"})
    _run(_check())

    event = audit_logger.get_events(tool_name="retention_offer")[0]
    assert json.loads(event["metadata_json"]) == {"offer_type": "pause"}

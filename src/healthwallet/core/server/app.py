"""HealthWallet Vitality MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from healthwallet.core.audit.logger import AuditLogger
from healthwallet.core.config.settings import get_settings
from healthwallet.core.storage.database import HealthDatabase
from healthwallet.core.storage.encryption import EncryptionError, FieldEncryptor
from healthwallet.core.storage.repository import HealthRepository
from healthwallet.domains.health.connectors import LabExtractionProvider
from healthwallet.domains.health.connectors.providers import StructuredJsonProvider
from healthwallet.domains.health.tools.daily_entry_tools import register_daily_entry_tools
from healthwallet.domains.health.tools.lab_tools import register_lab_tools
from healthwallet.domains.health.tools.retention_tools import register_retention_tools
from healthwallet.domains.health.tools.vitality_tools import register_vitality_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "HealthWallet Vitality"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    extraction_provider_override: LabExtractionProvider | None = None,
    repository_override: HealthRepository | None = None,
    audit_logger_override: AuditLogger | None = None,
) -> FastMCP:
    """Create and configure the HealthWallet MCP server.

    1. Creates the FastMCP server instance
    2. Initializes the encrypted storage layer (health data bank) and audit log
    3. Picks the lab extraction provider
    4. Registers the tools; data bank tools only when storage is available
    """
    settings = get_settings()

    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "HealthWallet: a local health data bank that turns lab reports, "
            "wearable metrics and daily mood logs into biomarker insights and "
            "a daily 0-100 Vitality Score. Wellness guidance only, not diagnosis."
        ),
    )

    # --- Initialize encrypted storage (health data bank) ---
    repository: HealthRepository | None = None
    audit_logger = audit_logger_override
    if repository_override is not None:
        repository = repository_override
    elif settings.encryption_key:
        try:
            encryptor = FieldEncryptor(settings.encryption_key)
            health_db = HealthDatabase(settings.db_path)
            health_db.initialize()
            repository = HealthRepository(health_db, encryptor)
            if audit_logger is None:
                audit_logger = AuditLogger(health_db)
            logger.info(
                "Health data bank initialized: %s (schema v%d)",
                settings.db_path,
                health_db.get_schema_version(),
            )
        except EncryptionError as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing without persistence; data bank tools disabled")
    else:
        logger.warning(
            "No ENCRYPTION_KEY configured, running without persistence. "
            "Set ENCRYPTION_KEY to enable the health data bank."
        )

    extraction_provider = extraction_provider_override or StructuredJsonProvider()

    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "storage_enabled": repository is not None,
            "audit_enabled": audit_logger is not None,
            "extraction_provider": extraction_provider.provider_name,
        }
        if repository is not None:
            status["lab_records_stored"] = repository.count_lab_records()
        return status

    if repository is not None:
        register_daily_entry_tools(server, repository, audit_logger)
        register_lab_tools(
            server,
            repository,
            extraction_provider,
            audit_logger,
            default_diet=settings.default_dietary_preference,
        )
        register_vitality_tools(
            server,
            repository,
            audit_logger,
            trend_days=settings.vitality_trend_days,
            streak_lookback_days=settings.streak_lookback_days,
        )
        register_retention_tools(
            server,
            repository,
            audit_logger,
            cooldown_days=settings.offer_cooldown_days,
        )
        logger.info("Health data bank tools registered")

    return server


# Module-level instance for FastMCP discovery. Lazy: only created when the
# attribute is accessed, not when tests import create_app.
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""Health data repository: CRUD operations for the encrypted data bank.

The repository mediates between domain records (DailyMetric, QuickLog,
LabRecord, ...) and the SQLite database, using FieldEncryptor for the
columns that hold raw health data. Vitality scores are never stored; they
are recomputed from these records on every request.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from healthwallet.core.storage.database import HealthDatabase
from healthwallet.core.storage.encryption import FieldEncryptor
from healthwallet.core.storage.models import LabRecord, ShownOffer
from healthwallet.domains.health.domain_logic.health_models import (
    BiomarkerReading,
    CorrelationInsight,
    DailyMetric,
    QuickLog,
    RecordStatus,
    Severity,
)

logger = logging.getLogger(__name__)

_METRIC_FIELDS = (
    "steps",
    "sleep_hours",
    "hrv_avg_ms",
    "resting_heart_rate",
    "active_energy_kcal",
    "weight_kg",
)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


class HealthRepository:
    """CRUD repository for the single-user health data bank.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        encryptor = FieldEncryptor(key="...")
        repo = HealthRepository(db, encryptor)

        repo.upsert_daily_metric(DailyMetric(date="2024-03-01", steps=9000))
        metrics = repo.get_daily_metrics(since="2024-02-23", until="2024-03-01")
    """

    def __init__(self, database: HealthDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Daily metrics
    # ------------------------------------------------------------------

    def upsert_daily_metric(self, metric: DailyMetric, *, source: str = "manual") -> bool:
        """Insert or merge one day's wearable metrics.

        Fields that are None in ``metric`` keep their stored value, so partial
        syncs from different sources accumulate on the same date.

        Returns:
            True if a new row was created, False if an existing day was updated.
        """
        conn = self._db.connection
        existed = conn.execute(
            "SELECT 1 FROM daily_metrics WHERE date = ?", (metric.date,)
        ).fetchone() is not None

        columns = ", ".join(_METRIC_FIELDS)
        placeholders = ", ".join("?" for _ in _METRIC_FIELDS)
        merges = ",\n                   ".join(
            f"{f} = COALESCE(excluded.{f}, daily_metrics.{f})" for f in _METRIC_FIELDS
        )
        conn.execute(
            f"""INSERT INTO daily_metrics (date, {columns}, source, updated_at)
               VALUES (?, {placeholders}, ?, ?)
               ON CONFLICT(date) DO UPDATE SET
                   {merges},
                   source = excluded.source,
                   updated_at = excluded.updated_at""",
            (
                metric.date,
                *(getattr(metric, f) for f in _METRIC_FIELDS),
                source,
                self._now_iso(),
            ),
        )
        conn.commit()
        logger.debug("Upserted daily metric %s (source=%s)", metric.date, source)
        return not existed

    def get_daily_metric(self, date: str) -> DailyMetric | None:
        row = self._db.connection.execute(
            "SELECT * FROM daily_metrics WHERE date = ?", (date,)
        ).fetchone()
        return self._row_to_metric(row) if row is not None else None

    def get_daily_metrics(
        self,
        *,
        since: str | None = None,
        until: str | None = None,
    ) -> dict[str, DailyMetric]:
        """Daily metrics keyed by date, bounds inclusive, oldest first."""
        conditions: list[str] = []
        params: list[Any] = []
        if since:
            conditions.append("date >= ?")
            params.append(since)
        if until:
            conditions.append("date <= ?")
            params.append(until)

        query = "SELECT * FROM daily_metrics"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY date ASC"

        rows = self._db.connection.execute(query, params).fetchall()
        return {row["date"]: self._row_to_metric(row) for row in rows}

    # ------------------------------------------------------------------
    # Quick logs
    # ------------------------------------------------------------------

    def upsert_quick_log(self, log: QuickLog) -> bool:
        """Insert or replace the quick log for ``log.date``.

        Returns:
            True if a new entry was created, False if the day was overwritten.
        """
        conn = self._db.connection
        existed = conn.execute(
            "SELECT 1 FROM quick_logs WHERE date = ?", (log.date,)
        ).fetchone() is not None

        conn.execute(
            """INSERT INTO quick_logs (date, mood, energy, symptoms_json, notes_enc, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(date) DO UPDATE SET
                   mood = excluded.mood,
                   energy = excluded.energy,
                   symptoms_json = excluded.symptoms_json,
                   notes_enc = excluded.notes_enc,
                   updated_at = excluded.updated_at""",
            (
                log.date,
                log.mood,
                log.energy,
                json.dumps(log.symptoms, separators=(",", ":")),
                self._enc.encrypt(log.notes),
                self._now_iso(),
            ),
        )
        conn.commit()
        logger.debug("Upserted quick log %s", log.date)
        return not existed

    def get_quick_log(self, date: str) -> QuickLog | None:
        row = self._db.connection.execute(
            "SELECT * FROM quick_logs WHERE date = ?", (date,)
        ).fetchone()
        if row is None:
            return None
        return QuickLog(
            date=row["date"],
            mood=row["mood"],
            energy=row["energy"],
            symptoms=json.loads(row["symptoms_json"] or "[]"),
            notes=self._enc.decrypt(row["notes_enc"]),
        )

    def get_logged_dates(
        self,
        *,
        since: str | None = None,
        until: str | None = None,
    ) -> list[str]:
        """Dates with a quick log, ascending. These drive the streak."""
        conditions: list[str] = []
        params: list[Any] = []
        if since:
            conditions.append("date >= ?")
            params.append(since)
        if until:
            conditions.append("date <= ?")
            params.append(until)

        query = "SELECT date FROM quick_logs"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY date ASC"
        return [row[0] for row in self._db.connection.execute(query, params).fetchall()]

    # ------------------------------------------------------------------
    # Lab records
    # ------------------------------------------------------------------

    def save_lab_record(self, record: LabRecord) -> str:
        """Insert or replace a lab record with encrypted readings.

        Args:
            record: If ``record.id`` is empty a UUID is generated.

        Returns:
            The record ID.
        """
        conn = self._db.connection
        rid = record.id or self._new_id()
        now = self._now_iso()
        created = record.created_at or now

        conn.execute(
            """INSERT INTO lab_records (
                id, source_name, status,
                biomarkers_enc, correlations_enc, report_enc,
                wellness_score, health_age, error_message,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                source_name = excluded.source_name,
                status = excluded.status,
                biomarkers_enc = excluded.biomarkers_enc,
                correlations_enc = excluded.correlations_enc,
                report_enc = excluded.report_enc,
                wellness_score = excluded.wellness_score,
                health_age = excluded.health_age,
                error_message = excluded.error_message,
                updated_at = excluded.updated_at""",
            (
                rid,
                record.source_name,
                record.status.value,
                self._enc.encrypt([b.model_dump(mode="json") for b in record.biomarkers]),
                self._enc.encrypt([c.as_dict() for c in record.correlations]),
                self._enc.encrypt(record.report),
                record.wellness_score,
                record.health_age,
                record.error_message,
                created,
                now,
            ),
        )
        conn.commit()
        record.id, record.created_at, record.updated_at = rid, created, now
        logger.info("Saved lab record %s (status=%s)", rid, record.status.value)
        return rid

    def get_lab_record(self, record_id: str) -> LabRecord | None:
        row = self._db.connection.execute(
            "SELECT * FROM lab_records WHERE id = ?", (record_id,)
        ).fetchone()
        return self._row_to_record(row) if row is not None else None

    def require_lab_record(self, record_id: str) -> LabRecord:
        """Like :meth:`get_lab_record` but raises on unknown IDs.

        Raises:
            RepositoryError: If no record has this ID.
        """
        record = self.get_lab_record(record_id)
        if record is None:
            raise RepositoryError(f"Lab record not found: {record_id!r}")
        return record

    def list_lab_records(
        self,
        *,
        status: RecordStatus | None = None,
        limit: int = 20,
    ) -> list[LabRecord]:
        """Lab records, newest first."""
        query = "SELECT * FROM lab_records"
        params: list[Any] = []
        if status is not None:
            query += " WHERE status = ?"
            params.append(status.value)
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)
        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_record(row) for row in rows]

    def count_lab_records(self) -> int:
        row = self._db.connection.execute("SELECT COUNT(*) FROM lab_records").fetchone()
        return row[0]

    def get_latest_completed_record(self) -> LabRecord | None:
        """The most recent completed record: the clinical vitality input."""
        results = self.list_lab_records(status=RecordStatus.COMPLETED, limit=1)
        return results[0] if results else None

    # ------------------------------------------------------------------
    # Retention offers
    # ------------------------------------------------------------------

    def record_offer(
        self,
        offer_type: str,
        title: str,
        *,
        reason_category: str | None = None,
        created_at: str | None = None,
    ) -> str:
        """Remember that an offer was shown, for the cooldown check."""
        oid = self._new_id()
        self._db.connection.execute(
            """INSERT INTO retention_offers (id, offer_type, reason_category, title, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (oid, offer_type, reason_category, title, created_at or self._now_iso()),
        )
        self._db.connection.commit()
        logger.info("Recorded retention offer %s (type=%s)", oid, offer_type)
        return oid

    def get_previous_offers(self, *, since: str | None = None) -> list[ShownOffer]:
        """Offers shown so far, newest first."""
        query = "SELECT * FROM retention_offers"
        params: list[Any] = []
        if since:
            query += " WHERE created_at >= ?"
            params.append(since)
        query += " ORDER BY created_at DESC"
        rows = self._db.connection.execute(query, params).fetchall()
        return [
            ShownOffer(
                id=row["id"],
                offer_type=row["offer_type"],
                title=row["title"],
                reason_category=row["reason_category"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_metric(row: Any) -> DailyMetric:
        return DailyMetric(date=row["date"], **{f: row[f] for f in _METRIC_FIELDS})

    def _row_to_record(self, row: Any) -> LabRecord:
        """Convert a database row to a LabRecord with decrypted data."""
        biomarkers = [
            BiomarkerReading.model_validate(b)
            for b in self._enc.decrypt(row["biomarkers_enc"]) or []
        ]
        correlations = [
            CorrelationInsight(
                markers=c["markers"],
                insight=c["insight"],
                severity=Severity(c["severity"]),
                condition=c.get("condition"),
            )
            for c in self._enc.decrypt(row["correlations_enc"]) or []
        ]
        return LabRecord(
            id=row["id"],
            source_name=row["source_name"],
            status=RecordStatus(row["status"]),
            biomarkers=biomarkers,
            correlations=correlations,
            report=self._enc.decrypt(row["report_enc"]) or {},
            wellness_score=row["wellness_score"],
            health_age=row["health_age"],
            error_message=row["error_message"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

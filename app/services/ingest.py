"""
Ingestion pipeline: feed -> profiles + daily snapshots -> comparisons -> audit.

Public API
----------
IngestionPipeline(session_factory, feed, ...).run(today)            -> RunResult
IngestionPipeline(...).backfill(start, end)                         -> list[RunResult]
IngestionPipeline(...).ingest_records(db, rows, day, top_n, source) -> BatchCounts
select_top(rows, limit)                                             -> list[dict]
validate_backfill_range(start, end, max_days)                        -> int

Run outline
-----------
1. Read run config (living reserve, top-N) from site_config.
2. Fetch the feed. Any fetch error aborts here: no entity writes,
   one UpdateRecord(status="failed").
3. For each of the top-N raw rows, in its own transaction:
     parse FeedRecord -> upsert Entity -> daily change vs day-1 -> upsert Snapshot
   A bad row is rolled back, counted in records_failed, and the loop moves on.
4. Pre-compute comparisons for the day, refresh luxury-purchase
   comparisons, stamp last_manual_update, touch the data source.
5. Write one UpdateRecord: success / partial / failed. Per-record failure
   reasons go into its error_message.

backfill() runs steps 1-5 once per past day against the archived list, oldest
first, without stamping last_manual_update.

Each per-row unit of work and the pre-computation step is retried on
transient store errors (see app.db.retry). Rows are processed sequentially;
the fetch dominates wall-clock time.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, settings as default_settings
from app.core.errors import InvalidDateRangeError, InvalidFeedRecordError
from app.db.retry import run_with_retry
from app.models.update_record import UpdateStatus
from app.schemas.feed import FeedRecord
from app.services.comparison import ComparisonPolicy, precompute_comparisons
from app.services.entity_store import (
    compute_daily_change,
    upsert_entity,
    upsert_snapshot,
)
from app.services.feed import FeedSource
from app.services.luxury import precompute_luxury_comparisons
from app.services.site_config import ConfigKey, load_run_config, set_config_value
from app.services.update_log import (
    BACKFILL_UPDATE,
    DAILY_UPDATE,
    get_data_source_by_name,
    log_update,
    touch_data_source,
)

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 2000


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class BatchCounts:
    created: int = 0
    updated: int = 0
    failed: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.created + self.updated + self.failed


@dataclass
class RunResult:
    status: UpdateStatus
    records_created: int
    records_updated: int
    records_failed: int
    comparisons_created: int
    execution_time_ms: int
    error_message: Optional[str] = None
    update_record_id: Optional[int] = None
    day: Optional[date] = None

    @property
    def success(self) -> bool:
        return self.status != UpdateStatus.failed


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _rank_key(row: Any) -> float:
    rank = row.get("rank") if isinstance(row, dict) else None
    if isinstance(rank, bool) or not isinstance(rank, int) or rank < 1:
        return math.inf
    return rank


def select_top(rows: list[Any], limit: int) -> list[Any]:
    """First `limit` rows by rank; rankless / malformed rows sort last, feed order kept."""
    ordered = sorted(enumerate(rows), key=lambda pair: (_rank_key(pair[1]), pair[0]))
    return [row for _, row in ordered[:limit]]


def _label(row: Any) -> str:
    if isinstance(row, dict):
        return str(row.get("personName") or row.get("uri") or "<unnamed>")
    return f"<{type(row).__name__}>"


def _status_for(counts: BatchCounts) -> UpdateStatus:
    if counts.failed == 0:
        return UpdateStatus.success
    if counts.failed < counts.attempted:
        return UpdateStatus.partial
    return UpdateStatus.failed


def validate_backfill_range(start: date, end: date, max_days: int) -> int:
    """Number of days in `[start, end]`; InvalidDateRangeError unless 1..max_days."""
    span = (end - start).days + 1
    if span < 1 or span > max_days:
        raise InvalidDateRangeError(start, end, max_days)
    return span


def _failure_message(status: UpdateStatus, counts: BatchCounts) -> Optional[str]:
    """Per-record reasons for the audit row, capped at MAX_ERROR_MESSAGE_LENGTH."""
    if not counts.failures:
        return None
    reasons = "; ".join(counts.failures)
    if status == UpdateStatus.failed:
        reasons = f"All {counts.failed} records failed: {reasons}"
    if len(reasons) > MAX_ERROR_MESSAGE_LENGTH:
        reasons = reasons[: MAX_ERROR_MESSAGE_LENGTH - 3] + "..."
    return reasons


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class IngestionPipeline:
    def __init__(
        self,
        session_factory: sessionmaker,
        feed: FeedSource,
        *,
        settings: Settings = default_settings,
        policy: Optional[ComparisonPolicy] = None,
        retry_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session_factory = session_factory
        self.feed = feed
        self.settings = settings
        self.policy = policy or ComparisonPolicy(
            skip_zero_quantity_rows=settings.SKIP_ZERO_QUANTITY_ROWS
        )
        self.retry_attempts = retry_attempts or settings.DB_RETRY_ATTEMPTS
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None
            else settings.DB_RETRY_BASE_DELAY_SECONDS
        )
        self.clock = clock
        self.sleep = sleep

    # -- retry wrapper ------------------------------------------------------

    def _retry(self, db: Session, operation: Callable[[], Any]) -> Any:
        return run_with_retry(
            db,
            operation,
            attempts=self.retry_attempts,
            base_delay=self.retry_base_delay,
            sleep=self.sleep,
        )

    # -- per record ---------------------------------------------------------

    def _process_record(
        self,
        db: Session,
        raw: Any,
        day: date,
        data_source_id: Optional[int],
    ) -> bool:
        """One row, one transaction. Returns was_created."""
        try:
            record = FeedRecord.model_validate(raw)
        except ValidationError as exc:
            fields = [".".join(str(p) for p in e["loc"]) or "<record>" for e in exc.errors()]
            raise InvalidFeedRecordError(
                f"Invalid feed record ({', '.join(fields)})", details={"fields": fields}
            ) from exc
        entity, was_created = upsert_entity(db, record)

        net_worth = record.net_worth_millions
        daily_change = compute_daily_change(db, entity.id, day, net_worth)
        if daily_change is None:
            logger.info(
                "No snapshot on %s for %s; daily change is null",
                day - timedelta(days=1), entity.slug,
            )
        else:
            logger.debug("Daily change for %s: %d", entity.slug, daily_change)

        upsert_snapshot(
            db,
            entity_id=entity.id,
            day=day,
            net_worth=net_worth,
            rank=record.rank,
            daily_change=daily_change,
            data_source_id=data_source_id,
        )
        db.commit()
        return was_created

    def ingest_records(
        self,
        db: Session,
        rows: list[Any],
        day: date,
        top_n: int,
        data_source_id: Optional[int] = None,
    ) -> BatchCounts:
        counts = BatchCounts()
        for index, raw in enumerate(select_top(rows, top_n)):
            try:
                was_created = self._retry(
                    db, lambda: self._process_record(db, raw, day, data_source_id)
                )
            except Exception as exc:  # one bad row must not abort the batch
                db.rollback()
                counts.failed += 1
                counts.failures.append(f"{_label(raw)}: {exc}")
                logger.error("Failed to process record %d (%s): %s", index, _label(raw), exc)
                continue

            if was_created:
                counts.created += 1
            else:
                counts.updated += 1
        return counts

    # -- post-batch ---------------------------------------------------------

    def _finalize_day(
        self,
        db: Session,
        day: date,
        threshold_usd: int,
        data_source_id: Optional[int],
        stamp_last_update: bool = True,
    ) -> int:
        written = precompute_comparisons(db, day, threshold_usd, self.policy)
        # Catalog edits reach luxury rows here.
        precompute_luxury_comparisons(db, policy=self.policy)
        if stamp_last_update:
            set_config_value(db, ConfigKey.LAST_MANUAL_UPDATE, self.clock().isoformat())
        if data_source_id is not None:
            touch_data_source(db, data_source_id)
        db.commit()
        return written

    # -- one day -----------------------------------------------------------

    def _run_day(
        self,
        day: date,
        fetch: Callable[[], list[Any]],
        *,
        update_type: str,
        source_name: str,
        stamp_last_update: bool,
    ) -> RunResult:
        started_at = self.clock()
        t0 = time.perf_counter()

        counts = BatchCounts()
        comparisons_created = 0
        data_source_id: Optional[int] = None
        error_message: Optional[str] = None
        status = UpdateStatus.failed

        logger.info("Starting %s for %s", update_type, day)
        db = self.session_factory()
        try:
            try:
                run_cfg = self._retry(db, lambda: load_run_config(db, self.settings))
                source = self._retry(db, lambda: get_data_source_by_name(db, source_name))
                data_source_id = source.id if source is not None else None
                db.commit()

                rows = fetch()

                counts = self.ingest_records(
                    db, rows, day, run_cfg.top_entity_limit, data_source_id
                )
                comparisons_created = self._retry(
                    db,
                    lambda: self._finalize_day(
                        db, day, run_cfg.wealth_threshold_usd, data_source_id,
                        stamp_last_update=stamp_last_update,
                    ),
                )
                status = _status_for(counts)
                error_message = _failure_message(status, counts)
            except Exception as exc:
                db.rollback()
                status = UpdateStatus.failed
                error_message = str(exc) or type(exc).__name__
                logger.error("%s for %s failed: %s", update_type, day, error_message)

            execution_time_ms = int((time.perf_counter() - t0) * 1000)
            record = self._retry(
                db,
                lambda: log_update(
                    db,
                    update_type=update_type,
                    status=status,
                    started_at=started_at,
                    completed_at=self.clock(),
                    execution_time_ms=execution_time_ms,
                    records_created=counts.created,
                    records_updated=counts.updated,
                    records_failed=counts.failed,
                    comparisons_created=comparisons_created,
                    error_message=error_message,
                    data_source_id=data_source_id,
                ),
            )
        finally:
            db.close()

        logger.info(
            "%s for %s %s in %dms: created=%d updated=%d failed=%d comparisons=%d",
            update_type, day, status.value, execution_time_ms,
            counts.created, counts.updated, counts.failed, comparisons_created,
        )
        return RunResult(
            status=status,
            records_created=counts.created,
            records_updated=counts.updated,
            records_failed=counts.failed,
            comparisons_created=comparisons_created,
            execution_time_ms=execution_time_ms,
            error_message=error_message,
            update_record_id=record.id,
            day=day,
        )

    # -- entry points -------------------------------------------------------

    def run(self, today: Optional[date] = None) -> RunResult:
        """The daily update from the live feed."""
        day = today or self.clock().date()
        return self._run_day(
            day,
            self.feed.fetch,
            update_type=DAILY_UPDATE,
            source_name=self.settings.FEED_SOURCE_NAME,
            stamp_last_update=True,
        )

    def backfill(self, start: date, end: date) -> list[RunResult]:
        """
        Replay archived lists for every day in `[start, end]`, oldest first.

        Each day goes through the same per-record path as the daily update, so
        daily changes chain from one backfilled day to the next. A day whose
        archive can't be fetched is logged as a failed run and skipped.
        Does not stamp last_manual_update.
        """
        span = validate_backfill_range(start, end, self.settings.BACKFILL_MAX_DAYS)

        results = []
        for offset in range(span):
            day = start + timedelta(days=offset)
            results.append(self._run_day(
                day,
                lambda: self.feed.fetch_day(day),
                update_type=BACKFILL_UPDATE,
                source_name=self.settings.FEED_HISTORY_SOURCE_NAME,
                stamp_last_update=False,
            ))
        logger.info(
            "Backfill %s..%s done: %d of %d days ok",
            start, end, sum(1 for r in results if r.success), span,
        )
        return results

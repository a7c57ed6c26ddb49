"""
Update trigger router.

GET /api/cron/update-entities — run the daily ingestion once
GET /api/cron/backfill        — replay archived days in a date range

Gate order: misconfigured secret (500) → bearer credential (401) →
rate gate (429) → pipeline. Backfill checks its date range (422) before the
rate gate. The scheduler calls these with `Authorization: Bearer <CRON_SECRET>`.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings, get_settings
from app.core.errors import RateLimitExceededError, UnauthorizedError, UpdateFailedError
from app.core.security import (
    UPDATE_GATE_KEY,
    RateLimiter,
    get_rate_limiter,
    require_cron_secret,
    verify_bearer,
)
from app.db.base import get_session_factory
from app.schemas.cron import BackfillDay, BackfillSummary, UpdateSummary
from app.services.feed import FeedSource, get_feed_client
from app.services.ingest import IngestionPipeline, validate_backfill_range

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


def get_pipeline(
    session_factory: sessionmaker = Depends(get_session_factory),
    feed: FeedSource = Depends(get_feed_client),
    cfg: Settings = Depends(get_settings),
) -> IngestionPipeline:
    return IngestionPipeline(session_factory, feed, settings=cfg)


def _authorize(authorization: Optional[str], cfg: Settings) -> None:
    secret = require_cron_secret(cfg)
    if not verify_bearer(authorization, secret):
        logger.warning("Rejected update trigger: bad or missing credential")
        raise UnauthorizedError()


def _acquire_gate(limiter: RateLimiter) -> None:
    if not limiter.try_acquire(UPDATE_GATE_KEY):
        retry_after = limiter.retry_after(UPDATE_GATE_KEY)
        logger.warning("Rejected update trigger: rate limited for %ds", retry_after)
        raise RateLimitExceededError(retry_after=retry_after)


@router.get(
    "/update-entities",
    response_model=UpdateSummary,
    response_model_by_alias=True,
    summary="Run the daily entity update",
    responses={
        200: {"description": "Run completed (success or partial)."},
        401: {"description": "Missing or wrong bearer credential."},
        429: {"description": "Called again inside the minimum interval."},
        500: {"description": "Secret misconfigured, or the run failed."},
    },
)
def update_entities(
    authorization: Optional[str] = Header(default=None),
    cfg: Settings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Fetch the external feed, upsert the top-N profiles and today's snapshots,
    pre-compute comparisons and write one update record.

    A run where only some rows failed still answers **200**; the failure
    count is in `recordsFailed`.
    """
    _authorize(authorization, cfg)
    _acquire_gate(limiter)

    result = pipeline.run()
    if not result.success:
        raise UpdateFailedError(
            result.error_message or "Update failed",
            records_created=result.records_created,
            records_updated=result.records_updated,
            records_failed=result.records_failed,
        )

    return UpdateSummary(
        success=True,
        records_created=result.records_created,
        records_updated=result.records_updated,
        records_failed=result.records_failed,
        comparisons_created=result.comparisons_created,
        execution_time_ms=result.execution_time_ms,
    )


@router.get(
    "/backfill",
    response_model=BackfillSummary,
    response_model_by_alias=True,
    summary="Replay archived daily lists for a date range",
    responses={
        401: {"description": "Missing or wrong bearer credential."},
        422: {"description": "end before start, or range longer than the maximum."},
        429: {"description": "Called again inside the minimum interval."},
        500: {"description": "Secret misconfigured."},
    },
)
def backfill(
    start: date = Query(..., description="First day to replay (inclusive)."),
    end: date = Query(..., description="Last day to replay (inclusive)."),
    authorization: Optional[str] = Header(default=None),
    cfg: Settings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Runs the per-record ingestion once per day against the archived list,
    oldest first. Shares the rate gate with the daily update. A day that
    can't be fetched is reported as failed and the rest still run.
    """
    _authorize(authorization, cfg)
    validate_backfill_range(start, end, cfg.BACKFILL_MAX_DAYS)
    _acquire_gate(limiter)

    results = pipeline.backfill(start, end)
    days = [
        BackfillDay(
            date=r.day,
            status=r.status.value,
            records_created=r.records_created,
            records_updated=r.records_updated,
            records_failed=r.records_failed,
            comparisons_created=r.comparisons_created,
            error_message=r.error_message,
        )
        for r in results
    ]
    failed = sum(1 for r in results if not r.success)
    return BackfillSummary(
        success=failed == 0,
        days_requested=len(results),
        days_failed=failed,
        days=days,
    )

"""
Update trigger schemas.

GET /api/cron/update-entities → UpdateSummary
GET /api/cron/backfill        → BackfillSummary
"""
import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UpdateSummary(BaseModel):
    """Counts for one completed ingestion run. Serialized in camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    records_created: int = Field(description="Profiles inserted this run.")
    records_updated: int = Field(description="Existing profiles overwritten this run.")
    records_failed: int = Field(description="Feed rows rolled back and skipped.")
    comparisons_created: int = Field(description="Comparison rows written for the day.")
    execution_time_ms: int


class BackfillDay(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    date: dt.date
    status: str = Field(description="success, partial or failed.")
    records_created: int
    records_updated: int
    records_failed: int
    comparisons_created: int
    error_message: Optional[str] = None


class BackfillSummary(BaseModel):
    """One entry per replayed day, oldest first."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = Field(description="True when no day failed outright.")
    days_requested: int
    days_failed: int
    days: list[BackfillDay]

"""
Catalog, aggregate-stats and update-log schemas.

GET /catalog         → CatalogResponse
GET /catalog/stale   → StaleCatalogResponse
GET /stats           → StatsResponse
GET /updates         → list[UpdateRecordResponse]
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UnitCostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    display_name: str
    cost: Decimal
    unit: str
    description: str
    source: str
    source_url: str
    region: Optional[str]
    category: str
    display_order: int
    last_verified: date


class CatalogResponse(BaseModel):
    requested_region: Optional[str]
    region: str = Field(description="Validated region; unrecognised input becomes Global.")
    resolved_region: str = Field(description="Region the costs were actually taken from.")
    fell_back: bool
    items: list[UnitCostResponse]


class StaleCatalogResponse(BaseModel):
    reference_date: date
    max_age_days: int
    items: list[UnitCostResponse]


class AggregateComparisonItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    display_name: str
    quantity: int
    unit: str
    description: str
    category: str
    cost_per_unit: Decimal


class StatsResponse(BaseModel):
    total_net_worth: int = Field(description="Sum over the top-N entities, USD millions.")
    entity_count: int
    region: str
    resolved_region: str
    usable_wealth_usd: int
    comparisons: list[AggregateComparisonItem]
    last_updated: Optional[datetime]


class UpdateRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    update_type: str
    status: str
    records_created: int
    records_updated: int
    records_failed: int
    comparisons_created: int
    error_message: Optional[str]
    execution_time_ms: Optional[int]
    started_at: datetime
    completed_at: Optional[datetime]

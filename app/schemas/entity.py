"""
Entity schemas.

GET /entities                          → list[TopEntityResponse]
GET /entities/{slug}                   → EntityDetailResponse
GET /entities/{slug}/history           → HistoryResponse
GET /entities/{slug}/comparisons       → EntityComparisonsResponse
GET /entities/{slug}/luxury            → list[LuxuryPurchaseResponse]
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    snapshot_date: date
    net_worth: int = Field(description="Net worth in USD millions.")
    rank: Optional[int]
    daily_change: Optional[int] = Field(
        description="Change vs. the previous day in USD millions; null when that day is missing."
    )


class TopEntityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    name: str
    image_url: Optional[str]
    net_worth: int
    rank: int
    daily_change: Optional[int]
    snapshot_date: date


class EntityDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    name: str
    gender: Optional[str]
    country: Optional[str]
    tags: list[str]
    birth_date: Optional[date]
    image_url: Optional[str]
    bio: Optional[str]
    external_uri: Optional[str]
    updated_at: Optional[datetime]
    latest_snapshot: Optional[SnapshotResponse]


class HistoryResponse(BaseModel):
    slug: str
    days: int
    snapshots: list[SnapshotResponse] = Field(description="Oldest first.")


class ComparisonItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    unit_cost_id: int
    name: str
    display_name: str
    unit: str
    description: str
    category: str
    region: Optional[str]
    source: str
    source_url: str
    cost_per_unit: Decimal
    quantity: int
    wealth_used: int = Field(description="Usable wealth in USD after the living reserve.")
    calculation_date: date


class EntityComparisonsResponse(BaseModel):
    slug: str
    available: bool = Field(
        description="False when nothing is stored for the entity (not the same as a 404)."
    )
    calculation_date: Optional[date]
    items: list[ComparisonItem]


class LuxuryComparisonItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    display_name: str
    unit: str
    category: str
    cost_per_unit: Decimal
    quantity: int


class LuxuryPurchaseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_name: str
    category: str
    cost: int = Field(description="USD.")
    purchase_date: Optional[date]
    description: Optional[str]
    source: str
    source_url: str
    image_url: Optional[str]
    verified: bool
    comparisons: list[LuxuryComparisonItem] = Field(
        description="What the purchase price could have funded, in catalog display order."
    )

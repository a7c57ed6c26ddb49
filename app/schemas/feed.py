"""
External feed records.

The raw feed is a list of loosely-typed dicts. Each one is parsed into a
FeedRecord before any domain logic sees it; a record missing a required
field (name, wealth figure) fails validation and is counted as failed by
the pipeline instead of crashing the run.

Secondary fields are normalised here:
  - protocol-relative image URLs ("//host/x.jpg") become "https://host/x.jpg"
  - birth epochs outside (0, 4_000_000_000) seconds, or non-numeric, are dropped
  - bio lines collapse to the first non-empty line
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Unix seconds; upper bound is ~2096-10-02.
_EPOCH_MIN_EXCLUSIVE = 0
_EPOCH_MAX_EXCLUSIVE = 4_000_000_000


def normalize_image_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    if url.startswith("//"):
        return f"https:{url}"
    return url


def epoch_to_date(value: Any) -> Optional[date]:
    """Convert a Unix-seconds value to a UTC date, or None if it's garbage."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not (_EPOCH_MIN_EXCLUSIVE < value < _EPOCH_MAX_EXCLUSIVE):
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None


class FeedRecord(BaseModel):
    """One person from the real-time list, validated."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uri: Optional[str] = Field(default=None, description="External unique identifier.")
    name: str = Field(alias="personName", min_length=1, max_length=255)
    image_url: Optional[str] = Field(default=None, alias="squareImage")
    country: Optional[str] = Field(default=None, alias="countryOfCitizenship")
    industries: list[str] = Field(default_factory=list)
    final_worth: Decimal = Field(alias="finalWorth", ge=0, description="USD millions.")
    rank: Optional[int] = None
    gender: Optional[str] = None
    birth_date: Optional[date] = Field(default=None, alias="birthDate")
    bio: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        if isinstance(v, str):
            stripped = v.strip()
            if not stripped:
                raise ValueError("personName must not be blank")
            return stripped
        return v

    @field_validator("uri", "country", "gender", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("final_worth", mode="before")
    @classmethod
    def reject_bool_worth(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("finalWorth must be a number")
        return v

    @field_validator("rank")
    @classmethod
    def drop_non_positive_rank(cls, v: Optional[int]) -> Optional[int]:
        if v is None or v < 1:
            return None
        return v

    @field_validator("image_url", mode="before")
    @classmethod
    def promote_image_scheme(cls, v: Any) -> Any:
        return normalize_image_url(v) if isinstance(v, str) else v

    @field_validator("industries", mode="before")
    @classmethod
    def coerce_industries(cls, v: Any) -> list:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if not isinstance(v, (list, tuple)):
            raise ValueError("industries must be a list of strings")
        return [str(item) for item in v if item]

    @field_validator("birth_date", mode="before")
    @classmethod
    def parse_epoch(cls, v: Any) -> Optional[date]:
        return epoch_to_date(v)

    @field_validator("bio", mode="before")
    @classmethod
    def first_bio_line(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if isinstance(v, str):
            v = v.splitlines()
        if not isinstance(v, (list, tuple)):
            return None
        for line in v:
            if isinstance(line, str) and line.strip():
                return line.strip()
        return None

    @property
    def identifier(self) -> str:
        """What the slug is derived from: the URI when present, else the name."""
        return self.uri or self.name

    @property
    def net_worth_millions(self) -> int:
        return int(self.final_worth.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

"""
Key-value configuration store (site_config table).

The pipeline and comparison engine read their tunables here at the start
of each run. Missing rows fall back to the Settings defaults (logged);
rows that exist but don't parse fail closed with ConfigurationError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import ConfigurationError
from app.models.site_config import SiteConfig

logger = logging.getLogger(__name__)


class ConfigKey:
    WEALTH_THRESHOLD   = "wealth_threshold"      # USD living reserve
    TOP_ENTITY_LIMIT   = "top_entity_limit"
    CHART_DAYS_DEFAULT = "chart_days_default"
    LAST_MANUAL_UPDATE = "last_manual_update"


@dataclass
class RunConfig:
    wealth_threshold_usd: int
    top_entity_limit: int


def get_config_value(db: Session, key: str) -> Optional[str]:
    row = db.query(SiteConfig.value).filter(SiteConfig.key == key).first()
    return row.value if row is not None else None


def get_all_config(db: Session) -> dict[str, str]:
    return {row.key: row.value for row in db.query(SiteConfig.key, SiteConfig.value).all()}


def get_int_config(db: Session, key: str, default: int, minimum: int = 0) -> int:
    raw = get_config_value(db, key)
    if raw is None:
        logger.warning("site_config key %r missing, using default %d", key, default)
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(
            f"site_config key '{key}' is not an integer: {raw!r}",
            details={"key": key, "value": raw},
        ) from exc
    if value < minimum:
        raise ConfigurationError(
            f"site_config key '{key}' must be >= {minimum}, got {value}",
            details={"key": key, "value": raw},
        )
    return value


def set_config_value(
    db: Session, key: str, value: str, description: Optional[str] = None
) -> SiteConfig:
    """Upsert a config row. Flushes; the caller commits."""
    row = db.query(SiteConfig).filter(SiteConfig.key == key).first()
    if row is None:
        row = SiteConfig(key=key, value=value, description=description)
        db.add(row)
    else:
        row.value = value
        if description is not None:
            row.description = description
    db.flush()
    return row


def load_run_config(db: Session, cfg: Settings) -> RunConfig:
    return RunConfig(
        wealth_threshold_usd=get_int_config(
            db, ConfigKey.WEALTH_THRESHOLD, cfg.DEFAULT_WEALTH_THRESHOLD_USD, minimum=0
        ),
        top_entity_limit=get_int_config(
            db, ConfigKey.TOP_ENTITY_LIMIT, cfg.DEFAULT_TOP_ENTITY_LIMIT, minimum=1
        ),
    )

"""
Tests for the comparison engine and the unit-cost catalog.

Covers:
- usable wealth floored at zero, floor-division quantities
- non-positive costs rejected with InvalidCatalogEntryError
- region resolution, fallback to Global, EmptyCatalogError
- bulk pre-computation: upsert, zero-quantity policy both ways
- stored comparison reads, aggregate point computation
- stale-cost review
"""
from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.core.errors import EmptyCatalogError, InvalidCatalogEntryError
from app.models import CalculatedComparison, Entity, UnitCost
from app.services.catalog import (
    Region,
    find_stale_costs,
    get_region_costs,
    resolve_region,
)
from app.services.comparison import (
    ComparisonPolicy,
    compute_quantity,
    get_aggregate_comparisons,
    get_entity_comparisons,
    precompute_comparisons,
    usable_wealth_usd,
)
from app.services.entity_store import upsert_snapshot

DAY = date(2026, 3, 10)
THRESHOLD = 10_000_000


def _entity_with_snapshot(db, slug, net_worth, day=DAY) -> Entity:
    entity = Entity(slug=slug, name=slug.title(), tags=[])
    db.add(entity)
    db.flush()
    upsert_snapshot(db, entity.id, day, net_worth, 1, None)
    db.commit()
    return entity


# ---------------------------------------------------------------------------
# Point computation
# ---------------------------------------------------------------------------

class TestPointComputation:
    def test_floor_division_example(self):
        usable = usable_wealth_usd(10_000, THRESHOLD)
        assert usable == 9_990_000_000
        assert compute_quantity(usable, Decimal("15000")) == 666_000

    def test_floor_not_round(self):
        assert compute_quantity(29_999, Decimal("15000")) == 1

    def test_fractional_cost(self):
        assert compute_quantity(100, Decimal("0.30")) == 333

    def test_usable_never_negative(self):
        assert usable_wealth_usd(5, THRESHOLD) == 0
        assert usable_wealth_usd(10, THRESHOLD) == 0

    def test_zero_usable_gives_zero(self):
        assert compute_quantity(0, Decimal("50")) == 0

    @pytest.mark.parametrize("cost", [Decimal("0"), Decimal("-5"), 0])
    def test_non_positive_cost_rejected(self, cost):
        with pytest.raises(InvalidCatalogEntryError) as exc_info:
            compute_quantity(1_000_000, cost, "broken")
        assert exc_info.value.code == "INVALID_CATALOG_ENTRY"
        assert exc_info.value.details["name"] == "broken"


# ---------------------------------------------------------------------------
# Region resolution
# ---------------------------------------------------------------------------

class TestRegions:
    def test_recognised_region(self):
        assert resolve_region("United States") is Region.UNITED_STATES

    def test_unknown_region_maps_to_global(self):
        assert resolve_region("Atlantis") is Region.GLOBAL
        assert resolve_region(None) is Region.GLOBAL

    def test_atlantis_same_as_global(self, db):
        atlantis = get_region_costs(db, "Atlantis")
        default = get_region_costs(db, "Global")
        assert [c.id for c in atlantis.costs] == [c.id for c in default.costs]
        assert atlantis.region is Region.GLOBAL
        assert atlantis.fell_back is False

    def test_region_specific_costs(self, db):
        result = get_region_costs(db, "United States")
        assert [c.name for c in result.costs] == ["us-family-home"]
        assert result.resolved is Region.UNITED_STATES

    def test_empty_region_falls_back_once(self, db):
        db.query(UnitCost).filter(UnitCost.region == "United States").update({"active": False})
        db.commit()
        result = get_region_costs(db, "United States")
        assert result.region is Region.UNITED_STATES
        assert result.resolved is Region.GLOBAL
        assert result.fell_back is True
        assert {c.region for c in result.costs} == {"Global"}

    def test_limit_applied(self, db):
        assert len(get_region_costs(db, "Global", limit=2).costs) == 2

    def test_empty_catalog_is_hard_error(self, db):
        db.query(UnitCost).update({"active": False})
        db.commit()
        with pytest.raises(EmptyCatalogError):
            get_region_costs(db, "Sub-Saharan Africa")


# ---------------------------------------------------------------------------
# Bulk pre-computation
# ---------------------------------------------------------------------------

class TestPrecompute:
    def test_rows_for_every_entity_and_cost(self, db):
        _entity_with_snapshot(db, "alpha", 10_000)
        _entity_with_snapshot(db, "beta", 20_000)
        written = precompute_comparisons(db, DAY, THRESHOLD)
        db.commit()
        active = db.query(UnitCost).filter(UnitCost.active == True).count()  # noqa: E712
        assert written == 2 * active
        assert db.query(CalculatedComparison).count() == 2 * active

    def test_quantities_stored(self, db):
        entity = _entity_with_snapshot(db, "alpha", 10_000)
        precompute_comparisons(db, DAY, THRESHOLD)
        db.commit()
        well = db.query(UnitCost).filter(UnitCost.name == "communityWaterWell").one()
        row = (
            db.query(CalculatedComparison)
            .filter_by(entity_id=entity.id, unit_cost_id=well.id)
            .one()
        )
        assert row.quantity == 666_000
        assert row.wealth_used == 9_990_000_000

    def test_recompute_overwrites(self, db):
        entity = _entity_with_snapshot(db, "alpha", 10_000)
        precompute_comparisons(db, DAY, THRESHOLD)
        db.commit()
        upsert_snapshot(db, entity.id, DAY, 20_000, 1, None)
        db.commit()
        precompute_comparisons(db, DAY, THRESHOLD)
        db.commit()
        well = db.query(UnitCost).filter(UnitCost.name == "communityWaterWell").one()
        rows = db.query(CalculatedComparison).filter_by(unit_cost_id=well.id).all()
        assert len(rows) == 1
        assert rows[0].quantity == (20_000 * 1_000_000 - THRESHOLD) // 15_000

    def test_uses_latest_snapshot_on_or_before_day(self, db):
        _entity_with_snapshot(db, "alpha", 10_000, day=DAY - timedelta(days=3))
        written = precompute_comparisons(db, DAY, THRESHOLD)
        assert written > 0
        db.commit()
        dates = {r.calculation_date for r in db.query(CalculatedComparison).all()}
        assert dates == {DAY}

    def test_zero_rows_skipped_by_default(self, db):
        # 10M net worth minus a 10M reserve leaves nothing usable.
        _entity_with_snapshot(db, "poor", 10)
        written = precompute_comparisons(db, DAY, THRESHOLD)
        db.commit()
        assert written == 0
        assert db.query(CalculatedComparison).count() == 0

    def test_zero_rows_kept_when_policy_off(self, db):
        _entity_with_snapshot(db, "poor", 10)
        written = precompute_comparisons(
            db, DAY, THRESHOLD, ComparisonPolicy(skip_zero_quantity_rows=False)
        )
        db.commit()
        active = db.query(UnitCost).filter(UnitCost.active == True).count()  # noqa: E712
        assert written == active
        assert {r.quantity for r in db.query(CalculatedComparison).all()} == {0}

    def test_same_day_drop_to_zero_removes_row(self, db):
        entity = _entity_with_snapshot(db, "alpha", 10_000)
        precompute_comparisons(db, DAY, THRESHOLD)
        db.commit()
        upsert_snapshot(db, entity.id, DAY, 10, 1, None)
        db.commit()
        precompute_comparisons(db, DAY, THRESHOLD)
        db.commit()
        assert db.query(CalculatedComparison).count() == 0

    def test_inactive_costs_ignored(self, db):
        db.query(UnitCost).filter(UnitCost.name != "waterFilterSystem").update({"active": False})
        db.commit()
        _entity_with_snapshot(db, "alpha", 10_000)
        assert precompute_comparisons(db, DAY, THRESHOLD) == 1


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:
    def test_entity_comparisons_default_to_latest_date(self, db):
        entity = _entity_with_snapshot(db, "alpha", 10_000)
        precompute_comparisons(db, DAY - timedelta(days=1), THRESHOLD)
        precompute_comparisons(db, DAY, THRESHOLD)
        db.commit()
        rows = get_entity_comparisons(db, entity.id)
        assert rows
        assert {r.calculation_date for r in rows} == {DAY}
        categories = [r.category for r in rows]
        assert categories == sorted(categories)

    def test_entity_comparisons_category_filter(self, db):
        entity = _entity_with_snapshot(db, "alpha", 10_000)
        precompute_comparisons(db, DAY, THRESHOLD)
        db.commit()
        rows = get_entity_comparisons(db, entity.id, category="water")
        assert {r.name for r in rows} == {"communityWaterWell", "waterFilterSystem"}

    def test_entity_comparisons_empty(self, db):
        entity = _entity_with_snapshot(db, "alpha", 10_000)
        assert get_entity_comparisons(db, entity.id) == []

    def test_aggregate_comparisons_region_fallback(self, db):
        result = get_aggregate_comparisons(db, 10_000, "Atlantis", THRESHOLD)
        assert result.resolved_region is Region.GLOBAL
        assert result.usable_wealth_usd == 9_990_000_000
        filt = next(i for i in result.items if i.display_name == "Household Water Filter System")
        assert filt.quantity == 9_990_000_000 // 50


# ---------------------------------------------------------------------------
# Catalog review
# ---------------------------------------------------------------------------

class TestStaleCosts:
    def test_nothing_stale_inside_window(self, db):
        assert find_stale_costs(db, date(2025, 12, 1), max_age_days=180) == []

    def test_old_costs_reported(self, db):
        stale = find_stale_costs(db, date(2026, 10, 1), max_age_days=180)
        assert len(stale) == db.query(UnitCost).count()

    def test_inactive_costs_not_reported(self, db):
        db.query(UnitCost).filter(UnitCost.name == "vaccineChild").update({"active": False})
        db.commit()
        names = {c.name for c in find_stale_costs(db, date(2026, 10, 1))}
        assert "vaccineChild" not in names

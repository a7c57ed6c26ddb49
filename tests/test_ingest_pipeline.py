"""
Tests for the ingestion pipeline.

Scenarios:
  A) Batch of 50 with record #37 malformed → 49 ok, 1 failed, status partial
  B) Feed unavailable → no entity writes, one failed UpdateRecord
  C) Every record malformed → status failed
  D) End-to-end: yesterday at 500, today at 600 → delta 100, comparisons
     stored, region "X" falls back to Global
  E) Same-day re-run is idempotent (updates, no duplicates)

Additional coverage:
  - top-N bounding by rank, rankless rows last
  - transient store errors retried per record
  - site_config threshold / top-N honoured; last_manual_update stamped
  - backfill replays archived days oldest first; deltas chain across them
  - per-record failure reasons land in the audit row
"""
from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import FeedUnavailableError, InvalidDateRangeError
from app.models import (
    CalculatedComparison,
    DataSource,
    Entity,
    SiteConfig,
    Snapshot,
    UpdateRecord,
    UpdateStatus,
)
from app.services import ingest as ingest_module
from app.services.comparison import get_aggregate_comparisons
from app.services.entity_store import get_entity_by_slug, get_snapshot, upsert_snapshot
from app.services.ingest import MAX_ERROR_MESSAGE_LENGTH, IngestionPipeline, select_top
from app.services.update_log import get_last_successful_update
from app.services.catalog import Region
from conftest import FakeFeed, TestingSessionLocal, person

DAY = date(2026, 3, 10)


def _fifty_with_bad_37() -> list[dict]:
    rows = [person(i, f"Person {i}", 10_000 + i) for i in range(1, 51)]
    del rows[36]["personName"]
    return rows


# ---------------------------------------------------------------------------
# select_top
# ---------------------------------------------------------------------------

class TestSelectTop:
    def test_sorted_by_rank(self):
        rows = [person(3, "C", 1), person(1, "A", 1), person(2, "B", 1)]
        assert [r["personName"] for r in select_top(rows, 2)] == ["A", "B"]

    def test_rankless_rows_last_in_feed_order(self):
        rows = [{"personName": "X", "finalWorth": 1}, person(1, "A", 1), {"personName": "Y", "finalWorth": 1}]
        assert [r["personName"] for r in select_top(rows, 3)] == ["A", "X", "Y"]

    def test_non_dict_rows_tolerated(self):
        rows = ["garbage", person(1, "A", 1)]
        assert select_top(rows, 5) == [person(1, "A", 1), "garbage"]


# ---------------------------------------------------------------------------
# Scenario A — partial failure
# ---------------------------------------------------------------------------

class TestPartialFailure:
    def test_record_37_malformed(self, db, feed, pipeline):
        feed.rows = _fifty_with_bad_37()
        result = pipeline.run(today=DAY)

        assert result.records_failed == 1
        assert result.records_created + result.records_updated == 49
        assert result.status == UpdateStatus.partial
        assert result.success is True
        assert db.query(Entity).count() == 49

        record = db.get(UpdateRecord, result.update_record_id)
        assert record.status == "partial"
        assert record.records_failed == 1
        assert record.records_created == 49
        assert "personName" in record.error_message
        assert record.error_message == result.error_message

    def test_non_dict_row_counted_as_failure(self, db, feed, pipeline):
        feed.rows = [person(1, "A", 5000), "not a record"]
        result = pipeline.run(today=DAY)
        assert result.records_created == 1
        assert result.records_failed == 1
        assert result.status == UpdateStatus.partial


# ---------------------------------------------------------------------------
# Scenario B — feed failure
# ---------------------------------------------------------------------------

class TestFeedFailure:
    def test_no_writes_and_failed_record(self, db, test_settings):
        feed = FakeFeed(error=FeedUnavailableError("Feed is unavailable: boom"))
        result = IngestionPipeline(TestingSessionLocal, feed, settings=test_settings).run(today=DAY)

        assert result.status == UpdateStatus.failed
        assert result.success is False
        assert "boom" in result.error_message
        assert db.query(Entity).count() == 0
        assert db.query(Snapshot).count() == 0

        records = db.query(UpdateRecord).all()
        assert len(records) == 1
        assert records[0].status == "failed"
        assert records[0].records_created == 0


# ---------------------------------------------------------------------------
# Scenario C — everything fails
# ---------------------------------------------------------------------------

class TestAllFailed:
    def test_status_failed(self, db, feed, pipeline):
        feed.rows = [{"rank": 1, "finalWorth": 10}, {"rank": 2, "personName": ""}]
        result = pipeline.run(today=DAY)
        assert result.status == UpdateStatus.failed
        assert result.records_failed == 2
        assert "All 2 records failed" in result.error_message
        assert db.query(UpdateRecord).one().status == "failed"

    def test_reasons_kept_in_audit_row(self, db, feed, pipeline):
        feed.rows = [{"rank": 1, "finalWorth": 10}, {"rank": 2, "personName": "Bad", "finalWorth": -5}]
        pipeline.run(today=DAY)
        message = db.query(UpdateRecord).one().error_message
        assert "personName" in message
        assert "Bad: " in message

    def test_long_reasons_truncated(self, db, feed, pipeline):
        feed.rows = [{"rank": i, "personName": "x" * 200, "finalWorth": -1} for i in range(1, 40)]
        result = pipeline.run(today=DAY)
        assert len(result.error_message) == MAX_ERROR_MESSAGE_LENGTH
        assert result.error_message.endswith("...")


# ---------------------------------------------------------------------------
# Scenario D — end to end
# ---------------------------------------------------------------------------

class TestEndToEnd:
    def test_delta_comparisons_and_region_fallback(self, db, feed, pipeline):
        entity = Entity(slug="jane-doe", name="Jane Doe", tags=[])
        db.add(entity)
        db.flush()
        upsert_snapshot(db, entity.id, DAY - timedelta(days=1), 500, 1, None)
        db.commit()

        feed.rows = [person(1, "Jane Doe", 600, uri="jane-doe")]
        result = pipeline.run(today=DAY)
        assert result.status == UpdateStatus.success
        assert result.records_updated == 1
        assert result.records_created == 0
        assert result.comparisons_created > 0

        db.expire_all()
        today = get_snapshot(db, entity.id, DAY)
        assert today.net_worth == 600
        assert today.daily_change == 100

        rows = db.query(CalculatedComparison).filter_by(entity_id=entity.id).all()
        assert rows
        assert all(r.quantity > 0 for r in rows)
        assert all(r.wealth_used == 590_000_000 for r in rows)

        scoped = get_aggregate_comparisons(db, 600, "X", 10_000_000)
        assert scoped.resolved_region is Region.GLOBAL
        assert all(i.quantity > 0 for i in scoped.items)

    def test_first_sighting_has_null_delta(self, db, feed, pipeline):
        feed.rows = [person(1, "New Person", 1234)]
        pipeline.run(today=DAY)
        entity = get_entity_by_slug(db, "new-person")
        assert get_snapshot(db, entity.id, DAY).daily_change is None

    def test_unchanged_worth_has_zero_delta(self, db, feed, pipeline):
        feed.rows = [person(1, "Same Person", 1234)]
        pipeline.run(today=DAY - timedelta(days=1))
        pipeline.run(today=DAY)
        entity = get_entity_by_slug(db, "same-person")
        assert get_snapshot(db, entity.id, DAY).daily_change == 0

    def test_data_source_and_config_stamped(self, db, feed, pipeline):
        feed.rows = [person(1, "A", 5000)]
        result = pipeline.run(today=DAY)
        source = db.query(DataSource).one()
        assert source.last_accessed is not None
        assert db.query(Snapshot).one().data_source_id == source.id
        assert db.get(UpdateRecord, result.update_record_id).data_source_id == source.id
        stamp = db.query(SiteConfig).filter_by(key="last_manual_update").one()
        assert stamp.value


# ---------------------------------------------------------------------------
# Scenario E — idempotent same-day re-run
# ---------------------------------------------------------------------------

class TestRerun:
    def test_same_day_rerun_updates_in_place(self, db, feed, pipeline):
        feed.rows = [person(i, f"Person {i}", 5000 + i) for i in range(1, 6)]
        first = pipeline.run(today=DAY)
        second = pipeline.run(today=DAY)

        assert first.records_created == 5
        assert second.records_created == 0
        assert second.records_updated == 5
        assert db.query(Entity).count() == 5
        assert db.query(Snapshot).count() == 5
        assert db.query(CalculatedComparison).count() == first.comparisons_created
        assert db.query(UpdateRecord).count() == 2


# ---------------------------------------------------------------------------
# Backfill
# ---------------------------------------------------------------------------

class TestBackfill:
    def _history(self, *worths):
        start = DAY - timedelta(days=len(worths) - 1)
        return {
            start + timedelta(days=i): [person(1, "Jane Doe", w, uri="jane-doe")]
            for i, w in enumerate(worths)
        }

    def test_deltas_chain_across_backfilled_days(self, db, feed, pipeline):
        feed.history = self._history(500, 550, 530)
        start = DAY - timedelta(days=2)
        results = pipeline.backfill(start, DAY)

        assert [r.day for r in results] == [start, DAY - timedelta(days=1), DAY]
        assert all(r.status == UpdateStatus.success for r in results)
        assert feed.days_fetched == [start, DAY - timedelta(days=1), DAY]
        assert feed.calls == 0

        entity = get_entity_by_slug(db, "jane-doe")
        changes = [
            get_snapshot(db, entity.id, start + timedelta(days=i)).daily_change
            for i in range(3)
        ]
        assert changes == [None, 50, -20]

    def test_audit_rows_and_no_last_update_stamp(self, db, feed, pipeline):
        feed.history = self._history(500, 550)
        pipeline.backfill(DAY - timedelta(days=1), DAY)
        assert [u.update_type for u in db.query(UpdateRecord).all()] == ["backfill", "backfill"]
        assert db.query(SiteConfig).filter_by(key="last_manual_update").first() is None
        assert get_last_successful_update(db) is None

    def test_missing_day_fails_alone(self, db, feed, pipeline):
        history = self._history(500, 550, 530)
        del history[DAY - timedelta(days=1)]
        feed.history = history
        results = pipeline.backfill(DAY - timedelta(days=2), DAY)

        assert [r.status for r in results] == [
            UpdateStatus.success, UpdateStatus.failed, UpdateStatus.success,
        ]
        entity = get_entity_by_slug(db, "jane-doe")
        assert get_snapshot(db, entity.id, DAY).daily_change is None

    def test_daily_run_chains_onto_backfill(self, db, feed, pipeline):
        feed.history = self._history(500, 550)
        pipeline.backfill(DAY - timedelta(days=1), DAY)
        feed.rows = [person(1, "Jane Doe", 600, uri="jane-doe")]
        pipeline.run(today=DAY + timedelta(days=1))

        entity = get_entity_by_slug(db, "jane-doe")
        assert get_snapshot(db, entity.id, DAY + timedelta(days=1)).daily_change == 50

    def test_history_data_source_recorded(self, db, feed, pipeline):
        source = DataSource(name="komed3/rtb-api", url="https://archive.test", status="active")
        db.add(source)
        db.commit()
        feed.history = self._history(500)
        result = pipeline.backfill(DAY, DAY)[0]
        assert db.query(Snapshot).one().data_source_id == source.id
        assert db.get(UpdateRecord, result.update_record_id).data_source_id == source.id

    @pytest.mark.parametrize("start, end", [
        (DAY, DAY - timedelta(days=1)),
        (DAY - timedelta(days=400), DAY),
    ])
    def test_invalid_range(self, db, feed, pipeline, start, end):
        with pytest.raises(InvalidDateRangeError):
            pipeline.backfill(start, end)
        assert feed.days_fetched == []
        assert db.query(UpdateRecord).count() == 0


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestConfig:
    def test_top_n_from_site_config(self, db, feed, pipeline):
        db.query(SiteConfig).filter_by(key="top_entity_limit").update({"value": "3"})
        db.commit()
        feed.rows = [person(i, f"Person {i}", 5000) for i in range(10, 0, -1)]
        result = pipeline.run(today=DAY)
        assert result.records_created == 3
        assert {e.slug for e in db.query(Entity).all()} == {"person-1", "person-2", "person-3"}

    def test_threshold_from_site_config(self, db, feed, pipeline):
        db.query(SiteConfig).filter_by(key="wealth_threshold").update({"value": "0"})
        db.commit()
        feed.rows = [person(1, "A", 1)]
        pipeline.run(today=DAY)
        assert {r.wealth_used for r in db.query(CalculatedComparison).all()} == {1_000_000}

    def test_bad_config_fails_run_before_fetch(self, db, feed, pipeline):
        db.query(SiteConfig).filter_by(key="wealth_threshold").update({"value": "lots"})
        db.commit()
        feed.rows = [person(1, "A", 1)]
        result = pipeline.run(today=DAY)
        assert result.status == UpdateStatus.failed
        assert feed.calls == 0
        assert db.query(Entity).count() == 0


# ---------------------------------------------------------------------------
# Transient errors
# ---------------------------------------------------------------------------

class TestTransientRetry:
    def test_record_retried_after_transient_error(self, db, feed, pipeline, monkeypatch):
        real_upsert = ingest_module.upsert_entity
        calls = {"n": 0}

        def flaky_upsert(session, record):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OperationalError("INSERT", {}, Exception("connection reset"))
            return real_upsert(session, record)

        monkeypatch.setattr(ingest_module, "upsert_entity", flaky_upsert)
        feed.rows = [person(1, "A", 5000)]
        result = pipeline.run(today=DAY)

        assert calls["n"] == 2
        assert result.records_created == 1
        assert result.records_failed == 0

    def test_exhausted_retries_count_as_failure(self, db, feed, pipeline, monkeypatch):
        def always_down(session, record):
            raise OperationalError("INSERT", {}, Exception("connection reset"))

        monkeypatch.setattr(ingest_module, "upsert_entity", always_down)
        feed.rows = [person(1, "A", 5000), person(2, "B", 4000)]
        result = pipeline.run(today=DAY)
        assert result.records_failed == 2
        assert result.status == UpdateStatus.failed

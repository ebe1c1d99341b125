"""Unit tests for performance aggregation."""

from datetime import datetime, timezone

import pytest

from app.services.performance import aggregate_performance, summarize
from app.services.settlement import Outcome
from app.services.signals import MarketType


class TestAggregatePerformance:
    """Test grouping and per-row metrics."""

    def test_counts_and_roi(self, make_record):
        records = [
            make_record(Outcome.WIN, profit=1.0, stake=1.0, pick_id="a"),
            make_record(Outcome.LOSE, profit=-1.0, stake=1.0, pick_id="b"),
            make_record(Outcome.HALF_WIN, profit=0.5, stake=1.0, pick_id="c"),
            make_record(Outcome.PUSH, profit=0.0, stake=1.0, pick_id="d"),
        ]
        row = summarize(records)

        assert row.count == 4
        assert row.decided == 3
        assert row.win_rate == pytest.approx(2 / 3)
        assert row.profit == pytest.approx(0.5)
        assert row.roi == pytest.approx(0.125)

    def test_skips_carry_no_stake(self, make_record):
        records = [
            make_record(Outcome.WIN, profit=1.0, stake=1.0, pick_id="a"),
            make_record(Outcome.SKIP, profit=0.0, stake=1.0, pick_id="b"),
        ]
        row = summarize(records)

        assert row.skips == 1
        assert row.stake == 1.0
        assert row.roi == 1.0

    def test_group_by_strategy_sorted(self, make_record):
        records = [
            make_record(strategy_id="over75", pick_id="a"),
            make_record(strategy_id="anti_price", pick_id="b"),
            make_record(strategy_id="over75", pick_id="c"),
        ]
        rows = aggregate_performance(records)

        assert [r.group["strategy"] for r in rows] == ["anti_price", "over75"]
        assert rows[1].count == 2

    def test_group_by_market_and_competition(self, make_record):
        records = [
            make_record(market=MarketType.TOTAL_GOALS, competition_id=None, pick_id="a"),
            make_record(market=MarketType.HEAD_TO_HEAD, competition_id="39", pick_id="b"),
        ]
        rows = aggregate_performance(records, group_by=("market", "competition"))

        assert {(r.group["market"], r.group["competition"]) for r in rows} == {
            ("TOTAL_GOALS", "unknown"),
            ("HEAD_TO_HEAD", "39"),
        }

    def test_week_starts_monday(self, make_record):
        # 2026-03-14 is a Saturday
        saturday = datetime(2026, 3, 14, 18, 0, tzinfo=timezone.utc)
        monday = datetime(2026, 3, 16, 18, 0, tzinfo=timezone.utc)
        records = [
            make_record(settled_at=saturday, pick_id="a"),
            make_record(settled_at=monday, pick_id="b"),
        ]
        rows = aggregate_performance(records, group_by=("week",))

        assert [r.group["week"] for r in rows] == ["2026-03-09", "2026-03-16"]

    def test_average_clv(self, make_record):
        records = [
            make_record(clv=4.0, pick_id="a"),
            make_record(clv=-2.0, pick_id="b"),
            make_record(pick_id="c"),
        ]
        data = summarize(records).to_dict()

        assert data["avg_clv"] == 1.0
        assert "_clv_values" not in data

    def test_unknown_dimension_rejected(self, make_record):
        with pytest.raises(ValueError, match="league"):
            aggregate_performance([make_record()], group_by=("league",))

    def test_empty_input(self):
        assert aggregate_performance([]) == []
        assert summarize([]).roi == 0.0

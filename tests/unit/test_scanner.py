"""Unit tests for the scan pipeline."""

import asyncio
from datetime import date, timedelta

import pytest

from app.services.risk import RiskState
from app.services.scanner import ScanPipeline
from app.services.signals import (
    MarketType,
    Selection,
    StrategyConfig,
    StrategyConfigSet,
    StrategyRuleEvaluator,
)

OVER_ONLY = StrategyConfigSet(
    strategies={
        "over75": StrategyConfig("over75", params={"minute_min": 72, "total_goals_max": 2}),
    }
)


class FailingEvaluator(StrategyRuleEvaluator):
    """Evaluator that raises for one match id."""

    def evaluate(self, config_set, metrics, odds=None):
        if metrics.match_id == "bad":
            raise RuntimeError("boom")
        return super().evaluate(config_set, metrics, odds)


class TestScanPipeline:
    """Test one-cycle orchestration."""

    def setup_method(self):
        self.risk = RiskState(day=date(2026, 3, 14))

    @pytest.mark.asyncio
    async def test_qualifying_match_emits_pick(self, make_snapshot, kickoff):
        pipeline = ScanPipeline()
        result = await pipeline.run_cycle(
            [make_snapshot(minute=75, home_goals=1)], OVER_ONLY, self.risk, now=kickoff
        )

        assert result.matches == 1
        assert result.qualified == 1
        [pick] = result.picks
        assert pick.market == MarketType.TOTAL_GOALS
        assert pick.selection == Selection.OVER
        assert pick.line == 1.5
        assert pick.price is None
        assert pick.config_version == OVER_ONLY.version

    @pytest.mark.asyncio
    async def test_repeat_cycle_suppressed_by_cooldown(self, make_snapshot, kickoff):
        pipeline = ScanPipeline()
        snapshot = make_snapshot(minute=75)

        first = await pipeline.run_cycle([snapshot], OVER_ONLY, self.risk, now=kickoff)
        second = await pipeline.run_cycle(
            [snapshot], OVER_ONLY, self.risk, now=kickoff + timedelta(minutes=1)
        )

        assert len(first.picks) == 1
        assert second.picks == []
        assert second.suppressed == 1

    @pytest.mark.asyncio
    async def test_non_qualifying_match(self, make_snapshot, kickoff):
        result = await ScanPipeline().run_cycle(
            [make_snapshot(minute=30)], OVER_ONLY, self.risk, now=kickoff
        )
        assert result.qualified == 0
        assert result.picks == []

    @pytest.mark.asyncio
    async def test_fixture_cap(self, make_snapshot, kickoff):
        snapshots = [make_snapshot(match_id=f"m{i}", minute=75) for i in range(3)]
        result = await ScanPipeline(max_fixtures=2).run_cycle(
            snapshots, OVER_ONLY, self.risk, now=kickoff
        )

        assert result.matches == 2
        assert result.skipped_matches == 1
        assert {p.match_id for p in result.picks} == {"m0", "m1"}

    @pytest.mark.asyncio
    async def test_failing_match_does_not_abort_cycle(self, make_snapshot, kickoff):
        pipeline = ScanPipeline(evaluator=FailingEvaluator())
        snapshots = [make_snapshot(match_id="bad", minute=75), make_snapshot(minute=75)]

        result = await pipeline.run_cycle(snapshots, OVER_ONLY, self.risk, now=kickoff)

        assert result.errors == 1
        assert [p.match_id for p in result.picks] == ["m1"]

    @pytest.mark.asyncio
    async def test_slow_match_times_out(self, make_snapshot, kickoff):
        async def slow_stats(match_id):
            await asyncio.sleep(1)
            return [], []

        pipeline = ScanPipeline(stats_fetcher=slow_stats, fetch_timeout=0.01)
        result = await pipeline.run_cycle(
            [make_snapshot(minute=75)], OVER_ONLY, self.risk, now=kickoff
        )

        assert result.errors == 1
        assert result.picks == []

    @pytest.mark.asyncio
    async def test_paused_risk_emits_nothing(self, make_snapshot, kickoff):
        paused = RiskState(day=date(2026, 3, 14), paused=True)
        result = await ScanPipeline().run_cycle(
            [make_snapshot(minute=75)], OVER_ONLY, paused, now=kickoff
        )

        assert result.qualified == 1
        assert result.picks == []
        assert result.suppressed == 1

    @pytest.mark.asyncio
    async def test_reduced_stake_scale_applied(self, make_snapshot, kickoff):
        full = await ScanPipeline().run_cycle(
            [make_snapshot(minute=75)], OVER_ONLY, self.risk, now=kickoff
        )
        reduced_risk = RiskState(day=date(2026, 3, 14), stake_scale=0.5)
        reduced = await ScanPipeline().run_cycle(
            [make_snapshot(minute=75)], OVER_ONLY, reduced_risk, now=kickoff
        )

        assert reduced.picks[0].stake_units == pytest.approx(full.picks[0].stake_units * 0.5, abs=1e-4)

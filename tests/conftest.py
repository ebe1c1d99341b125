"""Pytest configuration and fixtures for LiveEdge tests."""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def kickoff():
    """Fixed reference time for deterministic ids and cooldowns."""
    return datetime(2026, 3, 14, 15, 0, tzinfo=timezone.utc)


def stat_rows(sot=0, shots=0, corners=0, possession=0, yellow=0, red=0):
    """Raw statistic rows in feed format."""
    return (
        {"type": "Shots on Goal", "value": sot},
        {"type": "Total Shots", "value": shots},
        {"type": "Corner Kicks", "value": corners},
        {"type": "Ball Possession", "value": f"{possession}%"},
        {"type": "Yellow Cards", "value": yellow},
        {"type": "Red Cards", "value": red},
    )


@pytest.fixture
def make_snapshot():
    """Factory for match snapshots."""
    from app.services.features import MatchOdds, MatchSnapshot

    def _make(
        match_id="m1",
        minute=60,
        home_goals=0,
        away_goals=0,
        home=None,
        away=None,
        odds=None,
        status="2H",
        competition_id="39",
    ):
        if isinstance(odds, tuple):
            odds = MatchOdds(home=odds[0], draw=odds[1], away=odds[2])
        return MatchSnapshot(
            match_id=match_id,
            competition_id=competition_id,
            minute=minute,
            home_goals=home_goals,
            away_goals=away_goals,
            status=status,
            home_stats=stat_rows(**(home or {})),
            away_stats=stat_rows(**(away or {})),
            odds=odds,
        )

    return _make


@pytest.fixture
def make_metrics(make_snapshot):
    """Factory for metrics records built through the extractor."""
    from app.services.features import extract_metrics

    def _make(**kwargs):
        return extract_metrics(make_snapshot(**kwargs))

    return _make


@pytest.fixture
def make_pick(kickoff):
    """Factory for picks with sensible defaults."""
    from app.services.picks import ConfidenceTier, Pick, compute_pick_id
    from app.services.signals.models import MarketType, Selection

    def _make(
        market=MarketType.HEAD_TO_HEAD,
        selection=Selection.HOME,
        line=None,
        price=2.0,
        edge=0.05,
        stake=1.0,
        strategy_id="attack_pressure",
        match_id="m1",
        emitted_at=None,
        home_goals=0,
        away_goals=0,
        priceable=None,
        edge_ok=True,
        competition_id="39",
    ):
        emitted_at = emitted_at or kickoff
        return Pick(
            pick_id=compute_pick_id(match_id, strategy_id, selection, line, emitted_at),
            strategy_id=strategy_id,
            match_id=match_id,
            selection=selection,
            market=market,
            line=line,
            strength=0.5,
            emitted_at=emitted_at,
            model_probability=0.6,
            stake_units=stake,
            tier=ConfidenceTier.B,
            price=price,
            edge=edge,
            priceable=(price is not None) if priceable is None else priceable,
            edge_ok=edge_ok,
            home_goals=home_goals,
            away_goals=away_goals,
            competition_id=competition_id,
        )

    return _make


@pytest.fixture
def make_record(kickoff):
    """Factory for settlement records."""
    from app.services.settlement import Outcome, SettlementRecord
    from app.services.signals.models import MarketType, Selection

    def _make(
        outcome=Outcome.WIN,
        profit=1.0,
        stake=1.0,
        strategy_id="attack_pressure",
        market=MarketType.HEAD_TO_HEAD,
        emitted_at=None,
        settled_at=None,
        clv=None,
        competition_id="39",
        pick_id=None,
    ):
        emitted_at = emitted_at or kickoff
        return SettlementRecord(
            pick_id=pick_id or f"p-{emitted_at.isoformat()}-{strategy_id}",
            strategy_id=strategy_id,
            match_id="m1",
            market=market,
            selection=Selection.HOME,
            line=None,
            outcome=outcome,
            home_goals=1,
            away_goals=0,
            stake_units=stake,
            price=2.0,
            profit_units=profit,
            emitted_at=emitted_at,
            settled_at=settled_at or emitted_at,
            competition_id=competition_id,
            clv_percent=clv,
        )

    return _make

"""Unit tests for the emission controller."""

import threading
from datetime import date, timedelta

from app.config.engine import DedupConfig
from app.services.emission import EmissionController
from app.services.risk import RiskState
from app.services.signals import MarketType


class TestEmissionController:
    """Test dedup, cooldown and gates."""

    def setup_method(self):
        self.controller = EmissionController(
            DedupConfig(cooldown_minutes=8, min_edge_delta=0.01, min_price_delta=0.05)
        )
        self.risk = RiskState(day=date(2026, 3, 14))

    def test_first_pick_allowed(self, make_pick):
        assert self.controller.allow(make_pick(), self.risk)

    def test_duplicate_within_cooldown_suppressed(self, make_pick, kickoff):
        assert self.controller.allow(make_pick(), self.risk)
        later = make_pick(emitted_at=kickoff + timedelta(minutes=3), edge=0.2, price=3.0)

        decision = self.controller.decide(later, self.risk)
        assert not decision.allowed
        assert decision.reason == "within cooldown"

    def test_after_cooldown_requires_change(self, make_pick, kickoff):
        self.controller.allow(make_pick(edge=0.05, price=2.0), self.risk)
        after = kickoff + timedelta(minutes=8)

        same = make_pick(emitted_at=after, edge=0.055, price=2.02)
        assert not self.controller.allow(same, self.risk)

        moved_edge = make_pick(emitted_at=after, edge=0.07, price=2.0)
        assert self.controller.allow(moved_edge, self.risk)

    def test_price_change_alone_allows(self, make_pick, kickoff):
        self.controller.allow(make_pick(edge=0.05, price=2.0), self.risk)
        moved = make_pick(emitted_at=kickoff + timedelta(minutes=10), edge=0.05, price=2.1)
        assert self.controller.allow(moved, self.risk)

    def test_paused_risk_suppresses_everything(self, make_pick):
        paused = RiskState(day=date(2026, 3, 14), paused=True)
        decision = self.controller.decide(make_pick(), paused)

        assert not decision.allowed
        assert decision.reason == "risk paused"
        assert len(self.controller) == 0

    def test_edge_gate_for_priced_picks(self, make_pick):
        assert not self.controller.allow(make_pick(edge=0.01, edge_ok=False), self.risk)

    def test_unpriced_picks_not_edge_gated(self, make_pick):
        pick = make_pick(
            market=MarketType.ASIAN_HANDICAP, line=1.25, price=None, edge=None
        )
        assert self.controller.allow(pick, self.risk)

    def test_handicap_lines_do_not_dedup_each_other(self, make_pick):
        a = make_pick(market=MarketType.ASIAN_HANDICAP, line=0.25, price=None, edge=None)
        b = make_pick(market=MarketType.ASIAN_HANDICAP, line=0.75, price=None, edge=None)

        assert self.controller.allow(a, self.risk)
        assert self.controller.allow(b, self.risk)

    def test_seed_restores_cooldown(self, make_pick, kickoff):
        self.controller.seed([make_pick()])
        later = make_pick(emitted_at=kickoff + timedelta(minutes=2), edge=0.3)
        assert not self.controller.allow(later, self.risk)

    def test_prune_keeps_keys_in_cooldown(self, make_pick, kickoff):
        self.controller.allow(make_pick(), self.risk)

        assert self.controller.prune(kickoff + timedelta(minutes=5)) == 0
        assert len(self.controller) == 1
        assert self.controller.prune(kickoff + timedelta(days=1)) == 1
        assert len(self.controller) == 0

    def test_concurrent_duplicates_emit_once(self, make_pick):
        pick = make_pick()
        results = []

        def worker():
            results.append(self.controller.allow(pick, self.risk))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1

"""Emission controller.

Decides whether a pick is actually emitted. A pick is suppressed when:
- risk is paused for the day
- it is priced and its edge is below the minimum (edge gate)
- a pick for the same key was emitted within the cooldown, or after the
  cooldown neither edge nor price moved by the minimum delta

The decision and the index update happen under one lock, so concurrent
matches in a cycle never race on the same key.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

import structlog

from app.config.engine import DedupConfig
from app.services.picks import Pick
from app.services.risk import RiskState

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EmissionDecision:
    allowed: bool
    reason: str = ""


@dataclass(frozen=True)
class _LastEmission:
    emitted_at: datetime
    edge: float | None
    price: float | None


def _moved(old: float | None, new: float | None, delta: float) -> bool:
    if old is None or new is None:
        return False
    return abs(new - old) >= delta


class EmissionController:
    """Recent-emission index with cooldown and change gates."""

    def __init__(self, config: DedupConfig | None = None):
        self.config = config or DedupConfig()
        self._lock = threading.Lock()
        self._index: dict[tuple[str, ...], _LastEmission] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._index)

    def decide(self, pick: Pick, risk: RiskState | None = None) -> EmissionDecision:
        """Allow or suppress a pick, recording it on allow."""
        if risk is not None and risk.paused:
            logger.info(
                "emission_suppressed_paused",
                pick_id=pick.pick_id,
                strategy_id=pick.strategy_id,
                daily_profit=risk.daily_profit,
            )
            return EmissionDecision(False, "risk paused")

        if pick.priceable and not pick.edge_ok:
            return EmissionDecision(False, f"edge {pick.edge} below minimum")

        key = pick.dedup_key
        cooldown = timedelta(minutes=self.config.cooldown_minutes)

        with self._lock:
            last = self._index.get(key)
            if last is not None:
                elapsed = pick.emitted_at - last.emitted_at
                if elapsed < cooldown:
                    return EmissionDecision(False, "within cooldown")
                if not (
                    _moved(last.edge, pick.edge, self.config.min_edge_delta)
                    or _moved(last.price, pick.price, self.config.min_price_delta)
                ):
                    return EmissionDecision(False, "no material change")

            self._index[key] = _LastEmission(
                emitted_at=pick.emitted_at,
                edge=pick.edge,
                price=pick.price,
            )

        return EmissionDecision(True)

    def seed(self, picks: Iterable[Pick]) -> None:
        """Rebuild the index from previously emitted picks (latest per key wins)."""
        with self._lock:
            for pick in picks:
                last = self._index.get(pick.dedup_key)
                if last is None or pick.emitted_at > last.emitted_at:
                    self._index[pick.dedup_key] = _LastEmission(
                        emitted_at=pick.emitted_at,
                        edge=pick.edge,
                        price=pick.price,
                    )

    def allow(self, pick: Pick, risk: RiskState | None = None) -> bool:
        return self.decide(pick, risk).allowed

    def prune(self, now: datetime) -> int:
        """
        Drop index entries older than the retention window.

        The window is never shorter than the cooldown, so keys still in
        cooldown are kept.
        """
        window = timedelta(
            minutes=max(self.config.retention_minutes, self.config.cooldown_minutes)
        )
        with self._lock:
            stale = [k for k, v in self._index.items() if now - v.emitted_at > window]
            for key in stale:
                del self._index[key]
        if stale:
            logger.debug("emission_index_pruned", removed=len(stale))
        return len(stale)

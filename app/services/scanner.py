"""Scan cycle orchestration.

One cycle: for every live match, extract metrics, evaluate the enabled
strategies and price the resulting signals (concurrently across matches),
then pass every candidate pick through the emission controller one at a
time. The risk snapshot handed in at cycle start is used for the whole
cycle.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

import structlog

from app.config.engine import EngineConfig
from app.services.emission import EmissionController
from app.services.feed_cache import FeedCache, PriceFetcher, StatsFetcher
from app.services.features import MatchSnapshot, extract_metrics
from app.services.picks import Pick
from app.services.risk import RiskState
from app.services.signals import StrategyConfigSet, StrategyRuleEvaluator
from app.services.staking import price_for, price_signal

logger = structlog.get_logger(__name__)


@dataclass
class ScanResult:
    """Outcome of one scan cycle."""

    picks: list[Pick] = field(default_factory=list)
    matches: int = 0
    skipped_matches: int = 0
    qualified: int = 0
    suppressed: int = 0
    errors: int = 0
    config_version: str = ""

    def to_dict(self) -> dict:
        return {
            "matches": self.matches,
            "skipped_matches": self.skipped_matches,
            "qualified": self.qualified,
            "emitted": len(self.picks),
            "suppressed": self.suppressed,
            "errors": self.errors,
            "config_version": self.config_version,
        }


class ScanPipeline:
    """Runs scan cycles. Holds the emission index across cycles."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        evaluator: StrategyRuleEvaluator | None = None,
        emission: EmissionController | None = None,
        feed_cache: FeedCache | None = None,
        stats_fetcher: StatsFetcher | None = None,
        price_fetcher: PriceFetcher | None = None,
        max_fixtures: int = 60,
        fetch_timeout: float = 15.0,
    ):
        self.config = config or EngineConfig()
        self.evaluator = evaluator or StrategyRuleEvaluator()
        self.emission = emission or EmissionController(self.config.dedup)
        self.feed_cache = feed_cache or FeedCache()
        self.stats_fetcher = stats_fetcher
        self.price_fetcher = price_fetcher
        self.max_fixtures = max_fixtures
        self.fetch_timeout = fetch_timeout

    async def _candidates(
        self,
        snapshot: MatchSnapshot,
        config_set: StrategyConfigSet,
        risk: RiskState,
        now: datetime,
    ) -> tuple[list[Pick], int]:
        """Priced candidate picks for one match, and the qualified signal count."""
        stats = None
        if self.stats_fetcher is not None:
            stats = await self.feed_cache.get_stats(str(snapshot.match_id), self.stats_fetcher)
        metrics = extract_metrics(snapshot, stats)

        odds = snapshot.odds
        if odds is None and self.price_fetcher is not None:
            odds = await self.feed_cache.get_odds(metrics.match_id, self.price_fetcher)

        picks = []
        qualified = 0
        for evaluation in self.evaluator.evaluate(config_set, metrics, odds):
            if not evaluation.qualified:
                continue
            qualified += 1
            picks.append(
                price_signal(
                    evaluation.signal,
                    price_for(evaluation.signal, odds),
                    self.config,
                    stake_scale=risk.stake_scale,
                    emitted_at=now,
                    config_version=config_set.version,
                )
            )
        return picks, qualified

    async def run_cycle(
        self,
        snapshots: Iterable[MatchSnapshot],
        config_set: StrategyConfigSet,
        risk: RiskState,
        now: datetime | None = None,
    ) -> ScanResult:
        """
        Run one scan cycle.

        A failure or timeout for one match is logged and counted; it never
        aborts the cycle.
        """
        now = now or datetime.now(timezone.utc)
        snapshots = list(snapshots)
        result = ScanResult(config_version=config_set.version)

        if len(snapshots) > self.max_fixtures:
            result.skipped_matches = len(snapshots) - self.max_fixtures
            logger.info(
                "scan_fixture_cap_applied",
                available=len(snapshots),
                max_fixtures=self.max_fixtures,
            )
            snapshots = snapshots[: self.max_fixtures]
        result.matches = len(snapshots)

        outcomes = await asyncio.gather(
            *(
                asyncio.wait_for(
                    self._candidates(s, config_set, risk, now),
                    timeout=self.fetch_timeout,
                )
                for s in snapshots
            ),
            return_exceptions=True,
        )

        candidates: list[Pick] = []
        for snapshot, outcome in zip(snapshots, outcomes):
            if isinstance(outcome, asyncio.TimeoutError):
                result.errors += 1
                logger.warning("match_scan_timeout", match_id=snapshot.match_id)
                continue
            if isinstance(outcome, BaseException):
                result.errors += 1
                logger.warning(
                    "match_scan_failed",
                    match_id=snapshot.match_id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                continue
            picks, qualified = outcome
            result.qualified += qualified
            candidates.extend(picks)

        # Emission is sequential; the controller serialises per key as well
        for pick in candidates:
            decision = self.emission.decide(pick, risk)
            if decision.allowed:
                result.picks.append(pick)
                logger.info(
                    "pick_emitted",
                    pick_id=pick.pick_id,
                    strategy_id=pick.strategy_id,
                    match_id=pick.match_id,
                    selection=pick.selection.value,
                    line=pick.line,
                    price=pick.price,
                    edge=pick.edge,
                    stake_units=pick.stake_units,
                    tier=pick.tier.value,
                )
            else:
                result.suppressed += 1
                logger.debug(
                    "pick_suppressed",
                    pick_id=pick.pick_id,
                    strategy_id=pick.strategy_id,
                    reason=decision.reason,
                )

        self.emission.prune(now)
        logger.info("scan_cycle_complete", **result.to_dict())
        return result

"""Runs every enabled strategy against one match."""

import structlog

from app.services.features import MatchOdds, MetricsRecord
from app.services.signals.models import StrategyConfigSet
from app.services.signals.strategies import STRATEGY_REGISTRY, Strategy, StrategyEvaluation

logger = structlog.get_logger(__name__)


class StrategyRuleEvaluator:
    """
    Evaluates a strategy configuration set against a metrics record.

    Strategy instances are stateless and created once per evaluator.
    Unknown strategy ids in the configuration are reported as a rejection
    reason rather than raised, so a typo in the config file only disables
    that one entry.
    """

    def __init__(self, registry: dict[str, type[Strategy]] | None = None):
        self._strategies = {
            sid: cls() for sid, cls in (registry or STRATEGY_REGISTRY).items()
        }

    @property
    def strategy_ids(self) -> list[str]:
        return sorted(self._strategies)

    def evaluate(
        self,
        config_set: StrategyConfigSet,
        metrics: MetricsRecord,
        odds: MatchOdds | None = None,
    ) -> list[StrategyEvaluation]:
        results: list[StrategyEvaluation] = []

        for config in config_set.enabled():
            strategy = self._strategies.get(config.strategy_id)
            if strategy is None:
                results.append(
                    StrategyEvaluation(
                        strategy_id=config.strategy_id,
                        match_id=metrics.match_id,
                        reasons=[f"unknown strategy {config.strategy_id}"],
                    )
                )
                continue

            evaluation = strategy.evaluate(config, metrics, odds)
            if evaluation.qualified:
                logger.debug(
                    "strategy_qualified",
                    strategy_id=config.strategy_id,
                    match_id=metrics.match_id,
                    selection=evaluation.signal.selection.value,
                    strength=evaluation.signal.strength,
                )
            else:
                logger.debug(
                    "strategy_rejected",
                    strategy_id=config.strategy_id,
                    match_id=metrics.match_id,
                    reasons=evaluation.reasons,
                )
            results.append(evaluation)

        return results

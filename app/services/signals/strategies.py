"""Strategy catalogue.

Each strategy is a small class implementing the same contract: given its
configuration, a match's metrics and the current prices, return an
evaluation holding either rejection reasons or a signal. Strategies are
registered by id, so adding one never touches the evaluator.

Side-dependent strategies choose their side first and then measure
strength from that side's metrics only.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from app.services.features import MatchOdds, MetricsRecord
from app.services.features.extractor import clamp
from app.services.signals.models import MarketType, Selection, Signal, StrategyConfig
from app.services.signals.thresholds import check_thresholds, threshold_value

# Strength assigned to signals produced without live statistics
FALLBACK_STRENGTH = 0.25

# Threshold families that still apply when a strategy falls back to prices only
_FALLBACK_KEYS = ("minute_min", "minute_max", "goal_deficit_max")


@dataclass
class StrategyEvaluation:
    """Outcome of one strategy against one match."""

    strategy_id: str
    match_id: str
    reasons: list[str] = field(default_factory=list)
    signal: Signal | None = None

    @property
    def qualified(self) -> bool:
        return not self.reasons and self.signal is not None


STRATEGY_REGISTRY: dict[str, type["Strategy"]] = {}


def register_strategy(cls: type["Strategy"]) -> type["Strategy"]:
    """Class decorator adding a strategy to the registry."""
    STRATEGY_REGISTRY[cls.strategy_id] = cls
    return cls


def get_strategy(strategy_id: str) -> "Strategy | None":
    cls = STRATEGY_REGISTRY.get(strategy_id)
    return cls() if cls else None


def _other(side: str) -> str:
    return "away" if side == "home" else "home"


def _fallback_params(params: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if k in _FALLBACK_KEYS}


class Strategy(ABC):
    """Base class for all strategies."""

    strategy_id: ClassVar[str]
    market: ClassVar[MarketType]

    # Model probability = base + span * strength, bounded later by the staking model
    base_probability: ClassVar[float] = 0.54
    probability_span: ClassVar[float] = 0.06

    @abstractmethod
    def evaluate(
        self,
        config: StrategyConfig,
        metrics: MetricsRecord,
        odds: MatchOdds | None = None,
    ) -> StrategyEvaluation:
        """Evaluate this strategy against a match."""

    def _result(
        self,
        metrics: MetricsRecord,
        reasons: list[str],
        selection: Selection,
        strength: float,
        line: float | None = None,
        fallback: bool = False,
    ) -> StrategyEvaluation:
        evaluation = StrategyEvaluation(
            strategy_id=self.strategy_id,
            match_id=metrics.match_id,
            reasons=list(reasons),
        )
        if reasons:
            return evaluation
        evaluation.signal = Signal(
            strategy_id=self.strategy_id,
            match_id=metrics.match_id,
            selection=selection,
            market=self.market,
            line=line,
            strength=round(clamp(strength, 0.0, 1.0), 4),
            minute=metrics.minute,
            home_goals=metrics.home_goals,
            away_goals=metrics.away_goals,
            competition_id=metrics.competition_id,
            fallback=fallback,
            reason="fallback_no_stats" if fallback else "",
        )
        return evaluation

    def _reject(self, metrics: MetricsRecord, *reasons: str) -> StrategyEvaluation:
        return StrategyEvaluation(
            strategy_id=self.strategy_id,
            match_id=metrics.match_id,
            reasons=list(reasons),
        )


@register_strategy
class AttackPressure(Strategy):
    """Back the side dominating shots, possession and chance quality."""

    strategy_id = "attack_pressure"
    market = MarketType.HEAD_TO_HEAD
    base_probability = 0.58
    probability_span = 0.08

    def evaluate(self, config, metrics, odds=None):
        params = config.params
        if metrics.has_stats:
            side = "home" if metrics.shots_on_target_diff("home") >= 0 else "away"
            reasons = check_thresholds(params, metrics, side)
            strength = (
                0.5 * metrics.pressure_for(side)
                + 0.3 * clamp(metrics.shots_on_target_diff(side) / 10, 0.0, 1.0)
                + 0.2 * clamp(metrics.xg_diff(side), 0.0, 1.0)
            )
            return self._result(metrics, reasons, Selection(side), strength)

        favourite = odds.favourite if odds else None
        if favourite is None:
            return self._reject(metrics, "no live stats and no market favourite")
        reasons = check_thresholds(_fallback_params(params), metrics, favourite)
        fallback_minute = threshold_value(params, "fallback_minute_min")
        fallback_minute = 30 if fallback_minute is None else fallback_minute
        if metrics.minute < fallback_minute:
            reasons.append(f"minute {metrics.minute} below fallback_minute_min {fallback_minute:g}")
        if metrics.goal_diff_for(favourite) > 0:
            reasons.append("favourite already ahead")
        return self._result(
            metrics, reasons, Selection(favourite), FALLBACK_STRENGTH, fallback=True
        )


@register_strategy
class OneSideAttack(Strategy):
    """Back the side with a clear shots-on-target advantage."""

    strategy_id = "one_side_attack"
    market = MarketType.HEAD_TO_HEAD
    base_probability = 0.57
    probability_span = 0.06

    def evaluate(self, config, metrics, odds=None):
        if not metrics.has_stats:
            return self._reject(metrics, "no live stats")
        side = "home" if metrics.shots_on_target_diff("home") >= 0 else "away"
        reasons = check_thresholds(config.params, metrics, side)
        strength = 0.6 * metrics.pressure_for(side) + 0.4 * clamp(
            metrics.shots_on_target_diff(side) / 8, 0.0, 1.0
        )
        return self._result(metrics, reasons, Selection(side), strength)


@register_strategy
class AntiPrice(Strategy):
    """Back the market favourite while it is not winning."""

    strategy_id = "anti_price"
    market = MarketType.HEAD_TO_HEAD
    base_probability = 0.57
    probability_span = 0.07

    def evaluate(self, config, metrics, odds=None):
        favourite = odds.favourite if odds else None
        if favourite is None:
            return self._reject(metrics, "no market favourite")

        params = config.params
        if metrics.has_stats:
            reasons = check_thresholds(params, metrics, favourite)
            strength = 0.5 + 0.5 * metrics.xg_diff(favourite)
            fallback = False
        else:
            reasons = check_thresholds(_fallback_params(params), metrics, favourite)
            fallback_minute = threshold_value(params, "fallback_minute_min")
            fallback_minute = 50 if fallback_minute is None else fallback_minute
            if metrics.minute < fallback_minute:
                reasons.append(
                    f"minute {metrics.minute} below fallback_minute_min {fallback_minute:g}"
                )
            strength = FALLBACK_STRENGTH
            fallback = True

        if metrics.goal_diff_for(favourite) > 0:
            reasons.append("favourite already ahead")
        return self._result(metrics, reasons, Selection(favourite), strength, fallback=fallback)


@register_strategy
class FavoriteComeback(Strategy):
    """Back a favourite trailing by one goal that is still pressing."""

    strategy_id = "favorite_comeback"
    market = MarketType.HEAD_TO_HEAD
    base_probability = 0.57
    probability_span = 0.05

    def evaluate(self, config, metrics, odds=None):
        favourite = odds.favourite if odds else None
        if favourite is None:
            return self._reject(metrics, "no market favourite")
        reasons = check_thresholds(config.params, metrics, favourite)
        if metrics.goal_diff_for(favourite) != -1:
            reasons.append(
                f"favourite goal diff {metrics.goal_diff_for(favourite)} is not -1"
            )
        return self._result(
            metrics, reasons, Selection(favourite), metrics.pressure_for(favourite)
        )


def _next_total_line(metrics: MetricsRecord) -> float:
    """Line that requires one more goal: current total + 0.5."""
    return metrics.total_goals + 0.5


@register_strategy
class Over75(Strategy):
    """Late over on the next half-goal line while the game is still open."""

    strategy_id = "over75"
    market = MarketType.TOTAL_GOALS
    base_probability = 0.50
    probability_span = 0.14

    def evaluate(self, config, metrics, odds=None):
        reasons = check_thresholds(config.params, metrics)
        strength = (metrics.home_pressure + metrics.away_pressure) / 2
        return self._result(
            metrics, reasons, Selection.OVER, strength, line=_next_total_line(metrics)
        )


@register_strategy
class OverMomentum(Strategy):
    """Over on the next half-goal line when both sides keep shooting."""

    strategy_id = "over_momentum"
    market = MarketType.TOTAL_GOALS
    base_probability = 0.50
    probability_span = 0.14

    def evaluate(self, config, metrics, odds=None):
        reasons = check_thresholds(config.params, metrics)
        strength = metrics.shots_on_target_total / 16
        return self._result(
            metrics, reasons, Selection.OVER, strength, line=_next_total_line(metrics)
        )


@register_strategy
class LiveXG(Strategy):
    """Next goal by either side when combined chance quality is high."""

    strategy_id = "live_xg"
    market = MarketType.NEXT_GOAL
    base_probability = 0.50
    probability_span = 0.14

    def evaluate(self, config, metrics, odds=None):
        reasons = check_thresholds(config.params, metrics)
        return self._result(metrics, reasons, Selection.ANY, metrics.xg_total / 2)


@register_strategy
class TrailingHandicap(Strategy):
    """
    Asian handicap on a trailing side that is out-pressing the leader.

    Line = goal deficit + line_offset, rounded to the quarter. With the
    default offset of 0.25 a side one goal down gets +1.25.
    """

    strategy_id = "trailing_handicap"
    market = MarketType.ASIAN_HANDICAP
    base_probability = 0.54
    probability_span = 0.08

    def evaluate(self, config, metrics, odds=None):
        if metrics.goal_diff == 0:
            return self._reject(metrics, "no trailing side")
        if not metrics.has_stats:
            return self._reject(metrics, "no live stats")

        side = "home" if metrics.goal_diff < 0 else "away"
        reasons = check_thresholds(config.params, metrics, side)
        if metrics.pressure_for(side) <= metrics.pressure_for(_other(side)):
            reasons.append("trailing side is not out-pressing the leader")

        offset = threshold_value(config.params, "line_offset")
        offset = 0.25 if offset is None else offset
        deficit = -metrics.goal_diff_for(side)
        line = round((deficit + offset) * 4) / 4
        return self._result(
            metrics, reasons, Selection(side), metrics.pressure_for(side), line=line
        )

"""Strategy rule evaluation for LiveEdge."""

from app.services.signals.evaluator import StrategyRuleEvaluator
from app.services.signals.models import (
    MarketType,
    Selection,
    Signal,
    StrategyConfig,
    StrategyConfigSet,
)
from app.services.signals.strategies import (
    STRATEGY_REGISTRY,
    Strategy,
    StrategyEvaluation,
    get_strategy,
)
from app.services.signals.thresholds import check_thresholds, threshold_value

__all__ = [
    "MarketType",
    "STRATEGY_REGISTRY",
    "Selection",
    "Signal",
    "Strategy",
    "StrategyConfig",
    "StrategyConfigSet",
    "StrategyEvaluation",
    "StrategyRuleEvaluator",
    "check_thresholds",
    "get_strategy",
    "threshold_value",
]

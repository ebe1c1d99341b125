"""Generic strategy thresholds.

Every threshold is optional: a strategy that omits a parameter has no
constraint for it. All bounds are inclusive (``minute == minute_max``
passes, ``minute_max + 1`` fails). Every violated threshold is reported so
near-misses can be diagnosed from the logs.
"""

import math
from typing import Any, Callable, Mapping

import structlog

from app.services.features import MetricsRecord

logger = structlog.get_logger(__name__)


def threshold_value(params: Mapping[str, Any], key: str) -> float | None:
    """
    Read a numeric parameter.

    Returns None when the parameter is absent or malformed (non-numeric,
    boolean, NaN). A malformed value is treated as "no constraint".
    """
    if key not in params or params[key] is None:
        return None
    raw = params[key]
    if isinstance(raw, bool):
        value = None
    else:
        try:
            value = float(raw)
        except (TypeError, ValueError):
            value = None
    if value is None or math.isnan(value) or math.isinf(value):
        logger.warning("threshold_value_ignored", key=key, value=repr(raw))
        return None
    return value


def _side_or_best(metrics: MetricsRecord, side: str | None, fn: Callable[[str], float]) -> float:
    """Value for ``side``, or the larger of both sides when no side is fixed."""
    if side is not None:
        return fn(side)
    return max(fn("home"), fn("away"))


def _fmt(value: float) -> str:
    return f"{value:g}"


def check_thresholds(
    params: Mapping[str, Any],
    metrics: MetricsRecord,
    side: str | None = None,
) -> list[str]:
    """
    Check the generic threshold families against a metrics record.

    Args:
        params: Strategy parameters (unknown keys are ignored here)
        metrics: Match metrics
        side: 'home'/'away' to evaluate differentials from that side's point
            of view; None to use the better side (absolute dominance)

    Returns:
        List of violated thresholds (empty = all passed)
    """
    reasons: list[str] = []

    def lower(key: str, actual: float, label: str) -> None:
        bound = threshold_value(params, key)
        if bound is not None and actual < bound:
            reasons.append(f"{label} {_fmt(actual)} below {key} {_fmt(bound)}")

    def upper(key: str, actual: float, label: str) -> None:
        bound = threshold_value(params, key)
        if bound is not None and actual > bound:
            reasons.append(f"{label} {_fmt(actual)} above {key} {_fmt(bound)}")

    lower("minute_min", metrics.minute, "minute")
    upper("minute_max", metrics.minute, "minute")

    lower("pressure_min", _side_or_best(metrics, side, metrics.pressure_for), "pressure")

    sot_diff = _side_or_best(metrics, side, metrics.shots_on_target_diff)
    lower("sot_diff_min", sot_diff, "shots-on-target diff")
    upper("sot_diff_max", sot_diff, "shots-on-target diff")
    lower("sot_total_min", metrics.shots_on_target_total, "shots-on-target total")

    lower("corner_diff_min", _side_or_best(metrics, side, metrics.corner_diff), "corner diff")
    lower("corner_total_min", metrics.corners_total, "corner total")

    lower(
        "possession_diff_min",
        _side_or_best(metrics, side, metrics.possession_diff),
        "possession diff",
    )
    lower("xg_diff_min", _side_or_best(metrics, side, metrics.xg_diff), "xG diff")

    if side is not None:
        deficit = max(-metrics.goal_diff_for(side), 0)
    else:
        deficit = abs(metrics.goal_diff)
    upper("goal_deficit_max", deficit, "goal deficit")
    upper("total_goals_max", metrics.total_goals, "total goals")

    lower("xg_total_min", metrics.xg_total, "xG total")
    upper("xg_total_max", metrics.xg_total, "xG total")

    return reasons

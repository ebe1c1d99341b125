"""Pick settlement for LiveEdge."""

from app.services.settlement.engine import (
    FinalScore,
    Outcome,
    SettlementEngine,
    SettlementRecord,
    calculate_profit,
    combine_half_outcomes,
    compute_clv_percent,
    settle_asian_handicap,
    settle_pick,
    split_quarter_line,
)

__all__ = [
    "FinalScore",
    "Outcome",
    "SettlementEngine",
    "SettlementRecord",
    "calculate_profit",
    "combine_half_outcomes",
    "compute_clv_percent",
    "settle_asian_handicap",
    "settle_pick",
    "split_quarter_line",
]

"""Performance aggregation over settlement records.

Pure reduction: no I/O. Rows can be grouped by any combination of
strategy, market, day, week (Monday start) and competition.
"""

from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta, timezone
from typing import Any, Callable, Iterable, Sequence

from app.services.settlement.engine import Outcome, SettlementRecord

GROUP_DIMENSIONS: dict[str, Callable[[SettlementRecord], str]] = {}


def _dimension(name: str):
    def register(fn: Callable[[SettlementRecord], str]):
        GROUP_DIMENSIONS[name] = fn
        return fn
    return register


def _settled_day(record: SettlementRecord) -> date:
    ts = record.settled_at
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date()


@_dimension("strategy")
def _by_strategy(record: SettlementRecord) -> str:
    return record.strategy_id


@_dimension("market")
def _by_market(record: SettlementRecord) -> str:
    return record.market.value


@_dimension("day")
def _by_day(record: SettlementRecord) -> str:
    return _settled_day(record).isoformat()


@_dimension("week")
def _by_week(record: SettlementRecord) -> str:
    day = _settled_day(record)
    return (day - timedelta(days=day.weekday())).isoformat()


@_dimension("competition")
def _by_competition(record: SettlementRecord) -> str:
    return record.competition_id or "unknown"


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass
class PerformanceRow:
    """Aggregated results for one group."""

    group: dict[str, str] = field(default_factory=dict)
    count: int = 0
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    half_wins: int = 0
    half_losses: int = 0
    skips: int = 0
    profit: float = 0.0
    stake: float = 0.0
    _clv_values: list[float] = field(default_factory=list, repr=False)

    def add(self, record: SettlementRecord) -> None:
        self.count += 1
        outcome = record.outcome
        if outcome == Outcome.WIN:
            self.wins += 1
        elif outcome == Outcome.LOSE:
            self.losses += 1
        elif outcome == Outcome.PUSH:
            self.pushes += 1
        elif outcome == Outcome.HALF_WIN:
            self.half_wins += 1
        elif outcome == Outcome.HALF_LOSE:
            self.half_losses += 1
        else:
            self.skips += 1
            return
        self.profit += record.profit_units
        self.stake += record.stake_units
        if record.clv_percent is not None:
            self._clv_values.append(record.clv_percent)

    @property
    def decided(self) -> int:
        """Bets with a winner or loser (half results included)."""
        return self.wins + self.losses + self.half_wins + self.half_losses

    @property
    def win_rate(self) -> float:
        return _ratio(self.wins + self.half_wins, self.decided)

    @property
    def roi(self) -> float:
        return _ratio(self.profit, self.stake)

    @property
    def avg_clv(self) -> float | None:
        if not self._clv_values:
            return None
        return sum(self._clv_values) / len(self._clv_values)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("_clv_values")
        data["profit"] = round(self.profit, 4)
        data["stake"] = round(self.stake, 4)
        data["decided"] = self.decided
        data["win_rate"] = round(self.win_rate, 4)
        data["roi"] = round(self.roi, 4)
        data["avg_clv"] = round(self.avg_clv, 2) if self.avg_clv is not None else None
        return data


def aggregate_performance(
    records: Iterable[SettlementRecord],
    group_by: Sequence[str] = ("strategy",),
) -> list[PerformanceRow]:
    """
    Group settlement records and compute per-group performance.

    Raises:
        ValueError: If an unknown grouping dimension is requested
    """
    unknown = [g for g in group_by if g not in GROUP_DIMENSIONS]
    if unknown:
        raise ValueError(f"Unknown group_by dimension(s): {', '.join(unknown)}")

    rows: dict[tuple[str, ...], PerformanceRow] = defaultdict(PerformanceRow)
    for record in records:
        key = tuple(GROUP_DIMENSIONS[g](record) for g in group_by)
        row = rows[key]
        if not row.group:
            row.group = dict(zip(group_by, key))
        row.add(record)

    return [rows[k] for k in sorted(rows)]


def summarize(records: Iterable[SettlementRecord]) -> PerformanceRow:
    """Single overall row across all records."""
    row = PerformanceRow()
    for record in records:
        row.add(record)
    return row

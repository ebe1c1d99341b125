"""Settlement engine.

Settles pending picks against a finished match's final score.

Markets:
- HEAD_TO_HEAD: strict winner; a draw loses both home and away
- TOTAL_GOALS: OVER wins above the line, UNDER below, exact line is PUSH
- ASIAN_HANDICAP: selected side's goal difference plus the line. Quarter
  lines (.25/.75) split the stake over the two adjacent half-step lines
  and combine the two half results
- NEXT_GOAL: ANY wins if a goal was scored after the pick

Anything that cannot be settled becomes SKIP with a reason. Settlement is
idempotent: a pick that already has a record is never settled again.
"""

import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping

import structlog

from app.config.engine import SettlementConfig
from app.services.features import MatchOdds
from app.services.picks import Pick, PickStatus
from app.services.signals.models import MarketType, Selection

logger = structlog.get_logger(__name__)

_EPS = 1e-9


class Outcome(str, Enum):
    """Terminal settlement outcomes."""
    WIN = "WIN"
    LOSE = "LOSE"
    PUSH = "PUSH"
    HALF_WIN = "HALF_WIN"
    HALF_LOSE = "HALF_LOSE"
    SKIP = "SKIP"

    @property
    def is_loss(self) -> bool:
        return self in (Outcome.LOSE, Outcome.HALF_LOSE)

    @property
    def is_win(self) -> bool:
        return self in (Outcome.WIN, Outcome.HALF_WIN)


@dataclass(frozen=True)
class FinalScore:
    """Latest known result for a match."""

    match_id: str
    home_goals: int
    away_goals: int
    status: str
    closing_odds: MatchOdds | None = None

    def is_finished(self, finished_statuses: Iterable[str]) -> bool:
        return (self.status or "").upper() in {s.upper() for s in finished_statuses}


@dataclass(frozen=True)
class SettlementRecord:
    """Outcome of one pick. At most one exists per pick_id."""

    pick_id: str
    strategy_id: str
    match_id: str
    market: MarketType
    selection: Selection
    line: float | None
    outcome: Outcome
    home_goals: int
    away_goals: int
    stake_units: float
    price: float | None
    profit_units: float
    emitted_at: datetime
    settled_at: datetime
    competition_id: str | None = None
    skip_reason: str | None = None
    closing_price: float | None = None
    clv_percent: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["market"] = self.market.value
        data["selection"] = self.selection.value
        data["outcome"] = self.outcome.value
        data["emitted_at"] = self.emitted_at.isoformat()
        data["settled_at"] = self.settled_at.isoformat()
        return data


def _as_line(value: Any) -> float | None:
    """Numeric line, or None when missing or non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        line = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(line) or math.isinf(line):
        return None
    return line


def _sign_outcome(adjusted: float) -> Outcome:
    if adjusted > _EPS:
        return Outcome.WIN
    if adjusted < -_EPS:
        return Outcome.LOSE
    return Outcome.PUSH


def is_quarter_line(line: float) -> bool:
    quarters = line * 4
    return abs(quarters - round(quarters)) < _EPS and round(quarters) % 2 != 0


def split_quarter_line(line: float) -> tuple[float, float] | None:
    """
    Adjacent half-step lines for a quarter line, None otherwise.

    -0.25 -> (-0.5, 0.0), -0.75 -> (-1.0, -0.5),
    +0.25 -> (0.0, 0.5),  +0.75 -> (0.5, 1.0)
    """
    if not is_quarter_line(line):
        return None
    return (line - 0.25, line + 0.25)


def combine_half_outcomes(first: Outcome, second: Outcome) -> Outcome:
    """
    Combine the two halves of a quarter-line bet.

    WIN+WIN=WIN, LOSE+LOSE=LOSE, PUSH+PUSH=PUSH, WIN+PUSH=HALF_WIN,
    LOSE+PUSH=HALF_LOSE. WIN+LOSE cannot happen for adjacent lines and
    falls back to PUSH.
    """
    halves = {first, second}
    if len(halves) == 1:
        return first
    if halves == {Outcome.WIN, Outcome.PUSH}:
        return Outcome.HALF_WIN
    if halves == {Outcome.LOSE, Outcome.PUSH}:
        return Outcome.HALF_LOSE
    logger.warning(
        "settlement_split_inconsistent",
        first=first.value,
        second=second.value,
    )
    return Outcome.PUSH


def settle_asian_handicap(side_goal_diff: int, line: float) -> Outcome:
    """Outcome for a side with ``side_goal_diff`` taking ``line``."""
    split = split_quarter_line(line)
    if split is None:
        return _sign_outcome(side_goal_diff + line)
    low, high = split
    return combine_half_outcomes(
        _sign_outcome(side_goal_diff + low),
        _sign_outcome(side_goal_diff + high),
    )


def calculate_profit(outcome: Outcome, stake: float, price: float) -> float:
    """Realised profit in stake units."""
    if outcome == Outcome.WIN:
        return (price - 1.0) * stake
    if outcome == Outcome.HALF_WIN:
        return (price - 1.0) * stake / 2
    if outcome == Outcome.LOSE:
        return -stake
    if outcome == Outcome.HALF_LOSE:
        return -stake / 2
    return 0.0


def compute_clv_percent(price_taken: float | None, closing_price: float | None) -> float | None:
    """
    Closing line value in percent: (closing - taken) / closing.

    Positive when the price lengthened after the pick was taken.
    """
    if not price_taken or not closing_price or closing_price <= 1.0:
        return None
    return round((closing_price - price_taken) / closing_price * 100, 2)


def _closing_price(pick: Pick, final: FinalScore) -> float | None:
    odds = final.closing_odds
    side = pick.selection.team_side
    if odds is None or pick.market != MarketType.HEAD_TO_HEAD or side is None:
        return None
    return odds.home if side == "home" else odds.away


def _decide(pick: Pick, final: FinalScore) -> tuple[Outcome, str | None]:
    home, away = final.home_goals, final.away_goals
    side = pick.selection.team_side

    if pick.market == MarketType.HEAD_TO_HEAD:
        if side is None:
            return Outcome.SKIP, f"unsupported selection {pick.selection.value} for head-to-head"
        diff = home - away if side == "home" else away - home
        return (Outcome.WIN if diff > 0 else Outcome.LOSE), None

    if pick.market == MarketType.TOTAL_GOALS:
        line = _as_line(pick.line)
        if line is None:
            return Outcome.SKIP, f"non-numeric line {pick.line!r}"
        total = home + away
        if pick.selection == Selection.OVER:
            return _sign_outcome(total - line), None
        if pick.selection == Selection.UNDER:
            return _sign_outcome(line - total), None
        return Outcome.SKIP, f"unsupported selection {pick.selection.value} for total goals"

    if pick.market == MarketType.ASIAN_HANDICAP:
        if side is None:
            return Outcome.SKIP, "missing side for asian handicap"
        line = _as_line(pick.line)
        if line is None:
            return Outcome.SKIP, f"non-numeric line {pick.line!r}"
        if abs(line * 4 - round(line * 4)) > _EPS:
            return Outcome.SKIP, f"line {line:g} is not a quarter-goal multiple"
        diff = home - away if side == "home" else away - home
        return settle_asian_handicap(diff, line), None

    if pick.market == MarketType.NEXT_GOAL:
        if pick.selection != Selection.ANY:
            return Outcome.SKIP, "goal timeline unavailable for side-specific next goal"
        scored_after = (home + away) > (pick.home_goals + pick.away_goals)
        return (Outcome.WIN if scored_after else Outcome.LOSE), None

    return Outcome.SKIP, f"unsupported market {pick.market}"


def settle_pick(
    pick: Pick,
    final: FinalScore,
    config: SettlementConfig | None = None,
    settled_at: datetime | None = None,
) -> SettlementRecord:
    """Settle a single pick against a final score."""
    config = config or SettlementConfig()
    outcome, skip_reason = _decide(pick, final)

    effective_price = pick.price if pick.price else config.unpriced_price
    profit = calculate_profit(outcome, pick.stake_units, effective_price)
    closing = _closing_price(pick, final)

    return SettlementRecord(
        pick_id=pick.pick_id,
        strategy_id=pick.strategy_id,
        match_id=pick.match_id,
        market=pick.market,
        selection=pick.selection,
        line=pick.line,
        outcome=outcome,
        home_goals=final.home_goals,
        away_goals=final.away_goals,
        stake_units=pick.stake_units,
        price=pick.price,
        profit_units=round(profit, 4),
        emitted_at=pick.emitted_at,
        settled_at=settled_at or datetime.now(timezone.utc),
        competition_id=pick.competition_id,
        skip_reason=skip_reason,
        closing_price=closing,
        clv_percent=compute_clv_percent(pick.price, closing),
    )


class SettlementEngine:
    """Settles batches of pending picks."""

    def __init__(self, config: SettlementConfig | None = None):
        self.config = config or SettlementConfig()

    def settle_pending(
        self,
        picks: Iterable[Pick],
        finals: Mapping[str, FinalScore],
        already_settled: Iterable[str] = (),
        settled_at: datetime | None = None,
    ) -> list[SettlementRecord]:
        """
        Settle every pick whose match has finished.

        Picks without a final score or whose match is still in play stay
        pending. Picks already settled, by id or by a terminal status, are
        skipped.

        Returns:
            New settlement records only
        """
        settled = set(already_settled)
        records: list[SettlementRecord] = []

        for pick in picks:
            if pick.pick_id in settled or pick.status != PickStatus.PENDING:
                logger.debug(
                    "settlement_duplicate_ignored",
                    pick_id=pick.pick_id,
                    status=pick.status.value,
                )
                continue

            final = finals.get(pick.match_id)
            if final is None or not final.is_finished(self.config.finished_statuses):
                continue

            record = settle_pick(pick, final, self.config, settled_at)
            settled.add(pick.pick_id)
            records.append(record)

            if record.outcome == Outcome.SKIP:
                logger.info(
                    "pick_skipped",
                    pick_id=pick.pick_id,
                    strategy_id=pick.strategy_id,
                    reason=record.skip_reason,
                )
            else:
                logger.info(
                    "pick_settled",
                    pick_id=pick.pick_id,
                    strategy_id=pick.strategy_id,
                    outcome=record.outcome.value,
                    profit_units=record.profit_units,
                )

        return records

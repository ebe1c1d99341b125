"""Daily risk throttle.

Recomputed once per cycle from the day's settlement records rather than
updated incrementally. The scan cycle takes one snapshot at its start and
uses it for every emission decision in that cycle.
"""

import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable

import structlog

from app.config.engine import RiskConfig
from app.services.settlement.engine import SettlementRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RiskState:
    """Day-scoped risk snapshot."""

    day: date
    daily_profit: float = 0.0
    consecutive_losses: int = 0
    paused: bool = False
    stake_scale: float = 1.0

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "daily_profit": self.daily_profit,
            "consecutive_losses": self.consecutive_losses,
            "paused": self.paused,
            "stake_scale": self.stake_scale,
        }


def _record_day(record: SettlementRecord) -> date:
    ts = record.settled_at
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).date()


def loss_streak(records: Iterable[SettlementRecord]) -> int:
    """
    Trailing consecutive-loss count, walking records in emission order.

    LOSE and HALF_LOSE extend the streak; any other outcome, SKIP
    included, resets it.
    """
    streak = 0
    for record in sorted(records, key=lambda r: r.emitted_at):
        streak = streak + 1 if record.outcome.is_loss else 0
    return streak


def floor_breached(records: Iterable[SettlementRecord], daily_loss_limit: float) -> bool:
    """
    True if running profit, in settlement order, ever reached the floor.

    Checking the running total rather than the final sum keeps the pause
    sticky for a throttle rebuilt from history in a fresh process.
    """
    running = 0.0
    for record in sorted(records, key=lambda r: r.settled_at):
        running += record.profit_units
        if running <= daily_loss_limit + 1e-9:
            return True
    return False


class RiskThrottle:
    """
    Holds the current RiskState.

    ``paused`` is sticky within a day: once the daily floor is breached it
    stays set until the day changes, even if later settlements recover.
    """

    def __init__(self, config: RiskConfig | None = None):
        self.config = config or RiskConfig()
        self._lock = threading.Lock()
        self._state: RiskState | None = None

    @property
    def state(self) -> RiskState:
        with self._lock:
            if self._state is None:
                return RiskState(day=datetime.now(timezone.utc).date())
            return self._state

    def refresh(self, records: Iterable[SettlementRecord], today: date | None = None) -> RiskState:
        """
        Recompute state from settlement records.

        Args:
            records: Settlement records (records from other days are ignored)
            today: Current day (defaults to today, UTC)
        """
        today = today or datetime.now(timezone.utc).date()
        todays = [r for r in records if _record_day(r) == today]

        profit = round(sum(r.profit_units for r in todays), 4)
        streak = loss_streak(todays)
        breached = floor_breached(todays, self.config.daily_loss_limit)

        with self._lock:
            previous = self._state
            was_paused = previous is not None and previous.day == today and previous.paused
            paused = was_paused or breached
            reduced = streak >= self.config.max_consecutive_losses
            state = RiskState(
                day=today,
                daily_profit=profit,
                consecutive_losses=streak,
                paused=paused,
                stake_scale=self.config.reduced_stake_scale if reduced else 1.0,
            )
            self._state = state

        if paused and not was_paused:
            logger.warning(
                "risk_paused",
                day=today.isoformat(),
                daily_profit=profit,
                daily_loss_limit=self.config.daily_loss_limit,
            )
        if previous is not None and previous.day != today:
            logger.info("risk_day_reset", day=today.isoformat())
        if reduced:
            logger.info(
                "risk_stake_reduced",
                consecutive_losses=streak,
                stake_scale=state.stake_scale,
            )
        return state

"""Signal and strategy configuration types."""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class MarketType(str, Enum):
    """Markets a pick can be placed on."""
    HEAD_TO_HEAD = "HEAD_TO_HEAD"
    TOTAL_GOALS = "TOTAL_GOALS"
    NEXT_GOAL = "NEXT_GOAL"
    ASIAN_HANDICAP = "ASIAN_HANDICAP"

    @property
    def requires_line(self) -> bool:
        return self in (MarketType.TOTAL_GOALS, MarketType.ASIAN_HANDICAP)


class Selection(str, Enum):
    """Side of a market a pick backs."""
    HOME = "home"
    AWAY = "away"
    OVER = "over"
    UNDER = "under"
    ANY = "any"  # Next goal by either team

    @property
    def team_side(self) -> str | None:
        """'home'/'away' for team selections, None otherwise."""
        return self.value if self in (Selection.HOME, Selection.AWAY) else None


@dataclass(frozen=True)
class StrategyConfig:
    """A named, enableable rule set. Read-only to the engine."""

    strategy_id: str
    label: str = ""
    enabled: bool = True
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StrategyConfigSet:
    """
    Versioned snapshot of every strategy's configuration for one cycle.

    The version is a content hash, so two loads of an unchanged file share
    a version and log lines from different cycles can be correlated.
    """

    strategies: dict[str, StrategyConfig] = field(default_factory=dict)
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def version(self) -> str:
        payload = {
            sid: {"label": c.label, "enabled": c.enabled, "params": c.params}
            for sid, c in sorted(self.strategies.items())
        }
        blob = json.dumps(payload, sort_keys=True, default=str).encode()
        return hashlib.sha1(blob).hexdigest()[:12]

    def enabled(self) -> list[StrategyConfig]:
        return [c for c in self.strategies.values() if c.enabled]

    def get(self, strategy_id: str) -> StrategyConfig | None:
        return self.strategies.get(strategy_id)


@dataclass(frozen=True)
class Signal:
    """A qualifying strategy outcome, before pricing."""

    strategy_id: str
    match_id: str
    selection: Selection
    market: MarketType
    strength: float
    line: float | None = None

    # Context at scan time
    minute: int = 0
    home_goals: int = 0
    away_goals: int = 0
    competition_id: str | None = None
    fallback: bool = False
    reason: str = ""

    def __post_init__(self) -> None:
        if self.market.requires_line and self.line is None:
            raise ValueError(f"{self.market.value} signal requires a line")
        if not self.market.requires_line and self.line is not None:
            raise ValueError(f"{self.market.value} signal must not carry a line")
        if not 0.0 <= self.strength <= 1.0:
            raise ValueError(f"strength {self.strength} outside [0, 1]")

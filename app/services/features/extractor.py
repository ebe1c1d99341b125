"""Live match feature extraction.

Turns a raw in-play match snapshot into a normalised metrics record used by
every strategy. The extractor is pure: the only optional input beyond the
snapshot is a statistics payload fetched by the caller.

Derived indices (pressure, xG proxy) are relative attacking strength in
[0, 1], NOT calibrated probabilities.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping


class FeatureExtractionError(ValueError):
    """Raised when a snapshot cannot produce a metrics record."""


class StatKey(str, Enum):
    """Statistics the engine reads from a feed, with the labels it accepts."""

    SHOTS_ON_TARGET = "shots_on_target"
    TOTAL_SHOTS = "total_shots"
    CORNERS = "corners"
    YELLOW_CARDS = "yellow_cards"
    RED_CARDS = "red_cards"
    POSSESSION = "possession"

    @property
    def labels(self) -> tuple[str, ...]:
        return _STAT_LABELS[self]


_STAT_LABELS: dict[StatKey, tuple[str, ...]] = {
    StatKey.SHOTS_ON_TARGET: ("shots on goal", "shots on target"),
    StatKey.TOTAL_SHOTS: ("total shots", "shots total", "shots"),
    StatKey.CORNERS: ("corner kicks", "corners"),
    StatKey.YELLOW_CARDS: ("yellow cards",),
    StatKey.RED_CARDS: ("red cards",),
    StatKey.POSSESSION: ("ball possession", "ball possession %", "possession"),
}

# Pressure = w_sot*SOT + w_shots*shots + w_corners*corners, clamped
PRESSURE_WEIGHTS = {"sot": 0.06, "shots": 0.02, "corners": 0.04}
# xG proxy = w_sot*SOT + w_off*off-target shots, clamped
XG_WEIGHTS = {"sot": 0.10, "off_target": 0.03}

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value between min and max."""
    return max(min_val, min(value, max_val))


def parse_stat_value(raw: Any) -> float:
    """
    Parse a raw statistic value into a non-negative number.

    Handles ints/floats, percentage strings ("55%"), and ratio strings
    ("7/12" -> 7, the numerator). Anything missing or unparsable is 0.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).split("/", 1)[0]
        match = _NUMBER.search(text.replace(",", "."))
        if not match:
            return 0.0
        value = float(match.group())
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return max(value, 0.0)


def lookup_stat(rows: Iterable[Mapping[str, Any]] | None, key: StatKey) -> float:
    """Return the value for ``key`` from raw stat rows, defaulting to 0."""
    wanted = key.labels
    for row in rows or ():
        if not isinstance(row, Mapping):
            continue
        label = str(row.get("type") or "").strip().lower()
        if label in wanted:
            return parse_stat_value(row.get("value"))
    return 0.0


@dataclass(frozen=True)
class TeamStats:
    """Per-side statistics; every field defaults to zero, never None."""

    shots_on_target: float = 0.0
    total_shots: float = 0.0
    corners: float = 0.0
    yellow_cards: float = 0.0
    red_cards: float = 0.0
    possession: float = 0.0

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]] | None) -> "TeamStats":
        rows = list(rows or ())
        values = {key.value: lookup_stat(rows, key) for key in StatKey}
        # A side cannot have more shots on target than shots
        values["total_shots"] = max(values["total_shots"], values["shots_on_target"])
        return cls(**values)

    @property
    def cards(self) -> float:
        return self.yellow_cards + self.red_cards

    @property
    def is_empty(self) -> bool:
        return not any(
            (self.shots_on_target, self.total_shots, self.corners, self.possession)
        )


@dataclass(frozen=True)
class MatchOdds:
    """Head-to-head decimal prices for a match, any of which may be missing."""

    home: float | None = None
    draw: float | None = None
    away: float | None = None
    bookmaker: str = ""

    @property
    def favourite(self) -> str | None:
        """'home' or 'away' by shorter price, None if either side is missing."""
        if not self.home or not self.away:
            return None
        return "home" if self.home < self.away else "away"


@dataclass(frozen=True)
class MatchSnapshot:
    """One poll of an in-play match, as delivered by the feed collaborator."""

    match_id: str | None
    home_goals: int | None
    away_goals: int | None
    minute: int = 0
    competition_id: str | None = None
    competition_name: str = ""
    home_team: str = ""
    away_team: str = ""
    status: str = ""
    home_stats: tuple[Mapping[str, Any], ...] = ()
    away_stats: tuple[Mapping[str, Any], ...] = ()
    odds: MatchOdds | None = None
    captured_at: datetime | None = None


@dataclass(frozen=True)
class MetricsRecord:
    """Normalised per-match features consumed by the strategies."""

    match_id: str
    minute: int
    home_goals: int
    away_goals: int
    home: TeamStats = field(default_factory=TeamStats)
    away: TeamStats = field(default_factory=TeamStats)
    home_pressure: float = 0.0
    away_pressure: float = 0.0
    home_xg: float = 0.0
    away_xg: float = 0.0
    competition_id: str | None = None

    @property
    def goal_diff(self) -> int:
        """Home goals minus away goals."""
        return self.home_goals - self.away_goals

    @property
    def total_goals(self) -> int:
        return self.home_goals + self.away_goals

    @property
    def has_stats(self) -> bool:
        return not (self.home.is_empty and self.away.is_empty)

    @property
    def shots_on_target_total(self) -> float:
        return self.home.shots_on_target + self.away.shots_on_target

    @property
    def corners_total(self) -> float:
        return self.home.corners + self.away.corners

    @property
    def xg_total(self) -> float:
        return self.home_xg + self.away_xg

    def stats_for(self, side: str) -> TeamStats:
        return self.home if side == "home" else self.away

    def opponent_stats(self, side: str) -> TeamStats:
        return self.away if side == "home" else self.home

    def pressure_for(self, side: str) -> float:
        return self.home_pressure if side == "home" else self.away_pressure

    def xg_for(self, side: str) -> float:
        return self.home_xg if side == "home" else self.away_xg

    def goal_diff_for(self, side: str) -> int:
        """Goal difference from ``side``'s point of view."""
        return self.goal_diff if side == "home" else -self.goal_diff

    def shots_on_target_diff(self, side: str = "home") -> float:
        own, opp = self.stats_for(side), self.opponent_stats(side)
        return own.shots_on_target - opp.shots_on_target

    def corner_diff(self, side: str = "home") -> float:
        own, opp = self.stats_for(side), self.opponent_stats(side)
        return own.corners - opp.corners

    def possession_diff(self, side: str = "home") -> float:
        own, opp = self.stats_for(side), self.opponent_stats(side)
        return own.possession - opp.possession

    def xg_diff(self, side: str = "home") -> float:
        return self.xg_for(side) - self.xg_for("away" if side == "home" else "home")


def pressure_index(stats: TeamStats) -> float:
    """Relative attack intensity from shots and corners, in [0, 1]."""
    w = PRESSURE_WEIGHTS
    raw = (
        w["sot"] * stats.shots_on_target
        + w["shots"] * stats.total_shots
        + w["corners"] * stats.corners
    )
    return clamp(raw, 0.0, 1.0)


def xg_proxy(stats: TeamStats) -> float:
    """Shot-based stand-in for expected goals, in [0, 1]."""
    w = XG_WEIGHTS
    off_target = max(stats.total_shots - stats.shots_on_target, 0.0)
    raw = w["sot"] * stats.shots_on_target + w["off_target"] * off_target
    return clamp(raw, 0.0, 1.0)


def extract_metrics(
    snapshot: MatchSnapshot,
    stats: tuple[Iterable[Mapping[str, Any]], Iterable[Mapping[str, Any]]] | None = None,
) -> MetricsRecord:
    """
    Build a MetricsRecord from a snapshot.

    Args:
        snapshot: The match poll
        stats: Optional (home_rows, away_rows) from a separate statistics
            fetch. When given it replaces the snapshot's own rows; callers
            pass empty rows when that fetch failed.

    Raises:
        FeatureExtractionError: If the match id or score is missing
    """
    if not snapshot.match_id:
        raise FeatureExtractionError("snapshot has no match id")
    if snapshot.home_goals is None or snapshot.away_goals is None:
        raise FeatureExtractionError(f"snapshot {snapshot.match_id} has no score")

    home_rows, away_rows = stats if stats is not None else (
        snapshot.home_stats,
        snapshot.away_stats,
    )
    home = TeamStats.from_rows(home_rows)
    away = TeamStats.from_rows(away_rows)

    return MetricsRecord(
        match_id=str(snapshot.match_id),
        competition_id=snapshot.competition_id,
        minute=max(int(snapshot.minute or 0), 0),
        home_goals=int(snapshot.home_goals),
        away_goals=int(snapshot.away_goals),
        home=home,
        away=away,
        home_pressure=pressure_index(home),
        away_pressure=pressure_index(away),
        home_xg=xg_proxy(home),
        away_xg=xg_proxy(away),
    )

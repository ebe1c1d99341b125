"""Pick record and deterministic pick identifiers."""

import hashlib
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from app.services.signals.models import MarketType, Selection


class PickStatus(str, Enum):
    """Lifecycle of a pick. PENDING is the only non-terminal state."""
    PENDING = "PENDING"
    WIN = "WIN"
    LOSE = "LOSE"
    PUSH = "PUSH"
    HALF_WIN = "HALF_WIN"
    HALF_LOSE = "HALF_LOSE"
    SKIP = "SKIP"


class ConfidenceTier(str, Enum):
    """Ordered confidence tiers, A highest."""
    A = "A"
    B = "B"
    C = "C"


def bucket_timestamp(ts: datetime, bucket_seconds: int) -> int:
    """Floor a timestamp to the start of its bucket, as epoch seconds."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    epoch = int(ts.timestamp())
    size = max(int(bucket_seconds), 1)
    return epoch - (epoch % size)


def format_line(line: float | None) -> str:
    """Canonical text for a line so 1.0 and 1 hash identically."""
    return "" if line is None else f"{float(line):g}"


def compute_pick_id(
    match_id: str,
    strategy_id: str,
    selection: Selection | str,
    line: float | None,
    emitted_at: datetime,
    bucket_seconds: int = 60,
) -> str:
    """
    Deterministic pick identifier.

    SHA-1 over match id, strategy id, selection, line and the emission
    time floored to ``bucket_seconds``. Recomputing from a stored pick's
    fields yields the same id.
    """
    selection_value = selection.value if isinstance(selection, Selection) else str(selection)
    key = "|".join(
        (
            str(match_id),
            strategy_id,
            selection_value,
            format_line(line),
            str(bucket_timestamp(emitted_at, bucket_seconds)),
        )
    )
    return hashlib.sha1(key.encode()).hexdigest()


@dataclass(frozen=True)
class Pick:
    """A priced, staked signal. Never mutated after emission."""

    pick_id: str
    strategy_id: str
    match_id: str
    selection: Selection
    market: MarketType
    line: float | None
    strength: float
    emitted_at: datetime

    model_probability: float
    stake_units: float
    tier: ConfidenceTier

    # Price-derived; None when no price was available
    price: float | None = None
    implied_probability: float | None = None
    edge: float | None = None
    kelly_fraction: float | None = None
    priceable: bool = False
    edge_ok: bool = True

    # Context at scan time
    minute: int = 0
    home_goals: int = 0
    away_goals: int = 0
    competition_id: str | None = None
    fallback: bool = False
    reason: str = ""
    stake_scale: float = 1.0
    config_version: str = ""
    status: PickStatus = PickStatus.PENDING

    @property
    def dedup_key(self) -> tuple[str, str, str, str]:
        """Emission key; lined markets include the line."""
        line = format_line(self.line) if self.market.requires_line else ""
        return (self.match_id, self.strategy_id, self.selection.value, line)

    def recompute_id(self, bucket_seconds: int = 60) -> str:
        return compute_pick_id(
            self.match_id,
            self.strategy_id,
            self.selection,
            self.line,
            self.emitted_at,
            bucket_seconds,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["selection"] = self.selection.value
        data["market"] = self.market.value
        data["tier"] = self.tier.value
        data["status"] = self.status.value
        data["emitted_at"] = self.emitted_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Pick":
        values = dict(data)
        values["selection"] = Selection(values["selection"])
        values["market"] = MarketType(values["market"])
        values["tier"] = ConfidenceTier(values["tier"])
        values["status"] = PickStatus(values.get("status") or PickStatus.PENDING.value)
        emitted_at = values["emitted_at"]
        if isinstance(emitted_at, str):
            values["emitted_at"] = datetime.fromisoformat(emitted_at)
        return cls(**values)

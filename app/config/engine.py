"""Signal engine configuration.

Defines the pricing, staking, dedup, risk and settlement parameters used by
the scan and settlement cycles. Defaults live here; any value can be
overridden from the ``engine:`` section of defaults.yaml.

Stakes are expressed in units, not currency. Nothing here places a bet.
"""

from dataclasses import dataclass, field, fields, is_dataclass, replace
from typing import Any

import structlog

from app.config.settings import get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TierThreshold:
    """Minimum model probability for a confidence tier."""
    name: str
    min_probability: float


@dataclass(frozen=True)
class EVConfig:
    """Edge and Kelly staking for priced picks."""
    min_edge: float = 0.02
    kelly_multiplier: float = 0.5
    stake_min: float = 0.25
    stake_max: float = 1.5
    # Descending; first threshold met wins, otherwise the last tier
    tiers: tuple[TierThreshold, ...] = (
        TierThreshold("A", 0.62),
        TierThreshold("B", 0.56),
        TierThreshold("C", 0.52),
    )


@dataclass(frozen=True)
class HeuristicStakeConfig:
    """Stake sizing for markets without a live price feed."""
    base_stake: float = 0.5
    strength_weight: float = 0.5
    line_penalty: float = 0.2
    stake_min: float = 0.25
    stake_max: float = 1.0


@dataclass(frozen=True)
class DedupConfig:
    """Re-emission gate for the same match/strategy/selection key."""
    cooldown_minutes: float = 8.0
    min_edge_delta: float = 0.01
    min_price_delta: float = 0.05
    id_bucket_seconds: int = 60
    retention_minutes: float = 240.0


@dataclass(frozen=True)
class RiskConfig:
    """Daily loss floor and losing-streak stake reduction."""
    daily_loss_limit: float = -3.0
    max_consecutive_losses: int = 4
    reduced_stake_scale: float = 0.5


@dataclass(frozen=True)
class SettlementConfig:
    """Settlement rules."""
    finished_statuses: tuple[str, ...] = ("FT", "AET", "PEN")
    # Nominal price used to value WINs on picks emitted without a price
    unpriced_price: float = 2.0


@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration."""

    ev: EVConfig = field(default_factory=EVConfig)
    heuristic_stake: HeuristicStakeConfig = field(default_factory=HeuristicStakeConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    settlement: SettlementConfig = field(default_factory=SettlementConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "EngineConfig":
        """Build a config from a (possibly partial) nested mapping.

        Unknown keys and values of the wrong shape are ignored with a
        warning so a bad override never prevents the engine from starting.
        """
        data = data or {}
        sections = {}
        for f in fields(cls):
            section = data.get(f.name)
            default = f.default_factory()  # type: ignore[misc]
            if not isinstance(section, dict):
                sections[f.name] = default
                continue
            sections[f.name] = _override(default, section, f.name)
        return cls(**sections)


def _override(default: Any, values: dict[str, Any], section: str) -> Any:
    """Return a copy of ``default`` with recognised keys replaced."""
    kwargs = {}
    for f in fields(default):
        if f.name not in values:
            continue
        raw = values[f.name]
        current = getattr(default, f.name)
        try:
            if f.name == "tiers":
                value = tuple(
                    TierThreshold(str(t["name"]), float(t["min_probability"]))
                    for t in raw
                )
                value = tuple(sorted(value, key=lambda t: t.min_probability, reverse=True))
            elif isinstance(current, tuple):
                value = tuple(str(v) for v in raw)
            elif isinstance(current, bool) or is_dataclass(current):
                raise TypeError("unsupported override")
            elif isinstance(current, int):
                value = int(raw)
            else:
                value = float(raw)
        except (TypeError, ValueError, KeyError) as e:
            logger.warning(
                "engine_config_value_ignored",
                section=section,
                key=f.name,
                value=repr(raw),
                error=str(e),
            )
            continue
        kwargs[f.name] = value
    return replace(default, **kwargs)


def get_engine_config() -> EngineConfig:
    """Load the engine configuration from defaults.yaml."""
    settings = get_settings()
    return EngineConfig.from_dict(settings.load_defaults_config().get("engine"))

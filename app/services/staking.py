"""Probability and staking model.

Maps a qualifying signal, plus an optional decimal price, to a pick:

    p        = clamp(base + span * strength [+ late bonus] [- fallback penalty], 0.50, 0.70)
    implied  = 1 / price
    edge     = p - implied
    kelly    = clamp(edge / (price - 1), 0, 1)
    stake    = clamp(kelly * kelly_multiplier, stake_min, stake_max) * stake_scale

Markets without a live price get a heuristic stake from strength and line
size instead of Kelly. The probability bounds are deliberate: the model
never claims an underdog edge and never claims near-certainty.
"""

from datetime import datetime, timezone

from app.config.engine import EngineConfig, EVConfig, HeuristicStakeConfig
from app.services.features import MatchOdds
from app.services.features.extractor import clamp
from app.services.picks import ConfidenceTier, Pick, compute_pick_id
from app.services.signals.models import MarketType, Signal
from app.services.signals.strategies import STRATEGY_REGISTRY

MIN_PROBABILITY = 0.50
MAX_PROBABILITY = 0.70

# Probability adjustments
LATE_GAME_MINUTE = 70
LATE_GAME_BONUS = 0.01
FALLBACK_PENALTY = 0.03

DEFAULT_BASE_PROBABILITY = 0.54
DEFAULT_PROBABILITY_SPAN = 0.06


def model_probability(signal: Signal) -> float:
    """Model win probability for a signal, always within [0.50, 0.70]."""
    strategy = STRATEGY_REGISTRY.get(signal.strategy_id)
    base = strategy.base_probability if strategy else DEFAULT_BASE_PROBABILITY
    span = strategy.probability_span if strategy else DEFAULT_PROBABILITY_SPAN

    p = base + span * clamp(signal.strength, 0.0, 1.0)
    if signal.minute >= LATE_GAME_MINUTE:
        p += LATE_GAME_BONUS
    if signal.fallback:
        p -= FALLBACK_PENALTY
    return round(clamp(p, MIN_PROBABILITY, MAX_PROBABILITY), 4)


def price_for(signal: Signal, odds: MatchOdds | None) -> float | None:
    """
    Live decimal price for the signal's selection.

    Only head-to-head home/away prices are fed live; other markets are
    unpriced. Prices at or below 1.0 are treated as missing.
    """
    if odds is None or signal.market != MarketType.HEAD_TO_HEAD:
        return None
    side = signal.selection.team_side
    if side is None:
        return None
    price = odds.home if side == "home" else odds.away
    if price is None or price <= 1.0:
        return None
    return float(price)


def assign_tier(probability: float, config: EVConfig) -> ConfidenceTier:
    """First descending threshold met, otherwise the lowest tier."""
    for tier in config.tiers:
        if probability >= tier.min_probability:
            return ConfidenceTier(tier.name)
    return ConfidenceTier(config.tiers[-1].name) if config.tiers else ConfidenceTier.C


def kelly_fraction(probability: float, price: float) -> float:
    edge = probability - 1.0 / price
    return clamp(edge / (price - 1.0), 0.0, 1.0)


def kelly_stake(kelly: float, config: EVConfig) -> float:
    return clamp(kelly * config.kelly_multiplier, config.stake_min, config.stake_max)


def heuristic_stake(signal: Signal, config: HeuristicStakeConfig) -> float:
    """Stake for unpriced markets from strength and line magnitude."""
    line = abs(signal.line) if signal.line is not None else 0.0
    raw = (
        config.base_stake
        + config.strength_weight * signal.strength
        - config.line_penalty * line
    )
    return clamp(raw, config.stake_min, config.stake_max)


def price_signal(
    signal: Signal,
    price: float | None,
    config: EngineConfig,
    stake_scale: float = 1.0,
    emitted_at: datetime | None = None,
    config_version: str = "",
) -> Pick:
    """
    Convert a signal into a pick.

    Args:
        signal: Qualifying signal
        price: Decimal price for the selection, or None
        config: Engine configuration
        stake_scale: Risk multiplier from the cycle's risk snapshot
        emitted_at: Emission time (defaults to now, UTC)
        config_version: Strategy config version the signal was produced under
    """
    emitted_at = emitted_at or datetime.now(timezone.utc)
    probability = model_probability(signal)
    tier = assign_tier(probability, config.ev)

    implied = edge = kelly = None
    if price is not None and price > 1.0:
        implied = 1.0 / price
        edge = probability - implied
        kelly = kelly_fraction(probability, price)
        stake = kelly_stake(kelly, config.ev)
        priceable = True
        edge_ok = edge >= config.ev.min_edge
    else:
        price = None
        stake = heuristic_stake(signal, config.heuristic_stake)
        priceable = False
        edge_ok = True

    return Pick(
        pick_id=compute_pick_id(
            signal.match_id,
            signal.strategy_id,
            signal.selection,
            signal.line,
            emitted_at,
            config.dedup.id_bucket_seconds,
        ),
        strategy_id=signal.strategy_id,
        match_id=signal.match_id,
        selection=signal.selection,
        market=signal.market,
        line=signal.line,
        strength=signal.strength,
        emitted_at=emitted_at,
        model_probability=probability,
        stake_units=round(stake * stake_scale, 4),
        tier=tier,
        price=price,
        implied_probability=round(implied, 4) if implied is not None else None,
        edge=round(edge, 4) if edge is not None else None,
        kelly_fraction=round(kelly, 4) if kelly is not None else None,
        priceable=priceable,
        edge_ok=edge_ok,
        minute=signal.minute,
        home_goals=signal.home_goals,
        away_goals=signal.away_goals,
        competition_id=signal.competition_id,
        fallback=signal.fallback,
        reason=signal.reason,
        stake_scale=stake_scale,
        config_version=config_version,
    )

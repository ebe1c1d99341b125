"""PostgreSQL persistence for snapshots, picks and settlements.

Converts between ORM rows and the engine's dataclasses. The engine itself
never imports this module; only tasks and API routes do.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Any, Iterable

import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.engine import RiskConfig
from app.models.domain import MatchSnapshotRow, PickRecord, SettlementRow
from app.services.features import MatchOdds, MatchSnapshot
from app.services.picks import ConfidenceTier, Pick, PickStatus
from app.services.risk import RiskState, RiskThrottle
from app.services.settlement import FinalScore, Outcome, SettlementRecord
from app.services.signals.models import MarketType, Selection

logger = structlog.get_logger(__name__)

# Short status codes of a match in play
LIVE_STATUSES = ("1H", "HT", "2H", "ET", "BT", "P", "LIVE")


def odds_from_json(data: dict[str, Any] | None) -> MatchOdds | None:
    if not data:
        return None
    return MatchOdds(
        home=data.get("home"),
        draw=data.get("draw"),
        away=data.get("away"),
        bookmaker=data.get("bookmaker") or "",
    )


def snapshot_from_row(row: MatchSnapshotRow) -> MatchSnapshot:
    return MatchSnapshot(
        match_id=row.match_id,
        competition_id=row.competition_id,
        competition_name=row.competition_name or "",
        home_team=row.home_team or "",
        away_team=row.away_team or "",
        minute=row.minute or 0,
        home_goals=row.home_goals,
        away_goals=row.away_goals,
        status=row.status,
        home_stats=tuple(row.home_stats or ()),
        away_stats=tuple(row.away_stats or ()),
        odds=odds_from_json(row.odds),
        captured_at=row.captured_at,
    )


def pick_to_row(pick: Pick) -> dict[str, Any]:
    """Column values for a picks insert."""
    return {
        "pick_id": pick.pick_id,
        "strategy_id": pick.strategy_id,
        "match_id": pick.match_id,
        "competition_id": pick.competition_id,
        "market": pick.market.value,
        "selection": pick.selection.value,
        "line": pick.line,
        "strength": pick.strength,
        "model_probability": pick.model_probability,
        "implied_probability": pick.implied_probability,
        "price": pick.price,
        "edge": pick.edge,
        "kelly_fraction": pick.kelly_fraction,
        "stake_units": pick.stake_units,
        "stake_scale": pick.stake_scale,
        "tier": pick.tier.value,
        "priceable": pick.priceable,
        "edge_ok": pick.edge_ok,
        "fallback": pick.fallback,
        "minute": pick.minute,
        "home_goals": pick.home_goals,
        "away_goals": pick.away_goals,
        "reason": pick.reason or None,
        "config_version": pick.config_version or None,
        "status": pick.status.value,
        "emitted_at": pick.emitted_at,
    }


def pick_from_row(row: PickRecord) -> Pick:
    return Pick(
        pick_id=row.pick_id,
        strategy_id=row.strategy_id,
        match_id=row.match_id,
        selection=Selection(row.selection),
        market=MarketType(row.market),
        line=row.line,
        strength=row.strength,
        emitted_at=row.emitted_at,
        model_probability=row.model_probability,
        stake_units=row.stake_units,
        tier=ConfidenceTier(row.tier),
        price=row.price,
        implied_probability=row.implied_probability,
        edge=row.edge,
        kelly_fraction=row.kelly_fraction,
        priceable=row.priceable,
        edge_ok=row.edge_ok,
        minute=row.minute,
        home_goals=row.home_goals,
        away_goals=row.away_goals,
        competition_id=row.competition_id,
        fallback=row.fallback,
        reason=row.reason or "",
        stake_scale=row.stake_scale,
        config_version=row.config_version or "",
        status=PickStatus(row.status),
    )


def settlement_to_row(record: SettlementRecord) -> dict[str, Any]:
    return {
        "pick_id": record.pick_id,
        "strategy_id": record.strategy_id,
        "match_id": record.match_id,
        "competition_id": record.competition_id,
        "market": record.market.value,
        "selection": record.selection.value,
        "line": record.line,
        "outcome": record.outcome.value,
        "skip_reason": record.skip_reason,
        "home_goals": record.home_goals,
        "away_goals": record.away_goals,
        "stake_units": record.stake_units,
        "price": record.price,
        "profit_units": record.profit_units,
        "closing_price": record.closing_price,
        "clv_percent": record.clv_percent,
        "emitted_at": record.emitted_at,
        "settled_at": record.settled_at,
    }


def settlement_from_row(row: SettlementRow) -> SettlementRecord:
    return SettlementRecord(
        pick_id=row.pick_id,
        strategy_id=row.strategy_id,
        match_id=row.match_id,
        market=MarketType(row.market),
        selection=Selection(row.selection),
        line=row.line,
        outcome=Outcome(row.outcome),
        home_goals=row.home_goals,
        away_goals=row.away_goals,
        stake_units=row.stake_units,
        price=row.price,
        profit_units=row.profit_units,
        emitted_at=row.emitted_at,
        settled_at=row.settled_at,
        competition_id=row.competition_id,
        skip_reason=row.skip_reason,
        closing_price=row.closing_price,
        clv_percent=row.clv_percent,
    )


async def load_live_snapshots(db: AsyncSession) -> list[MatchSnapshot]:
    """Snapshots of matches currently in play, most advanced first."""
    result = await db.execute(
        select(MatchSnapshotRow)
        .where(MatchSnapshotRow.status.in_(LIVE_STATUSES))
        .order_by(MatchSnapshotRow.minute.desc(), MatchSnapshotRow.match_id)
    )
    return [snapshot_from_row(r) for r in result.scalars().all()]


async def load_final_scores(
    db: AsyncSession, match_ids: Iterable[str]
) -> dict[str, FinalScore]:
    """Latest score and status for each match. Matches without a score are omitted."""
    ids = list(set(match_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(MatchSnapshotRow).where(MatchSnapshotRow.match_id.in_(ids))
    )
    finals = {}
    for row in result.scalars().all():
        if row.home_goals is None or row.away_goals is None:
            continue
        finals[row.match_id] = FinalScore(
            match_id=row.match_id,
            home_goals=row.home_goals,
            away_goals=row.away_goals,
            status=row.status,
            closing_odds=odds_from_json(row.odds),
        )
    return finals


async def save_picks(db: AsyncSession, picks: Iterable[Pick]) -> int:
    """Insert picks, ignoring ids already stored. Returns rows inserted."""
    values = [pick_to_row(p) for p in picks]
    if not values:
        return 0
    result = await db.execute(
        insert(PickRecord)
        .values(values)
        .on_conflict_do_nothing(index_elements=["pick_id"])
        .returning(PickRecord.pick_id)
    )
    return len(result.scalars().all())


async def load_pending_picks(db: AsyncSession) -> list[Pick]:
    result = await db.execute(
        select(PickRecord)
        .where(PickRecord.status == PickStatus.PENDING.value)
        .order_by(PickRecord.emitted_at)
    )
    return [pick_from_row(r) for r in result.scalars().all()]


async def load_settled_pick_ids(db: AsyncSession, pick_ids: Iterable[str]) -> set[str]:
    ids = list(pick_ids)
    if not ids:
        return set()
    result = await db.execute(
        select(SettlementRow.pick_id).where(SettlementRow.pick_id.in_(ids))
    )
    return set(result.scalars().all())


async def save_settlements(db: AsyncSession, records: Iterable[SettlementRecord]) -> int:
    """
    Insert settlement records and mark their picks settled.

    A record whose pick already has a settlement is dropped by the unique
    constraint, so concurrent settlement passes stay idempotent.
    """
    records = list(records)
    if not records:
        return 0
    result = await db.execute(
        insert(SettlementRow)
        .values([settlement_to_row(r) for r in records])
        .on_conflict_do_nothing(index_elements=["pick_id"])
        .returning(SettlementRow.pick_id)
    )
    inserted = set(result.scalars().all())

    for record in records:
        if record.pick_id not in inserted:
            logger.debug("settlement_duplicate_ignored", pick_id=record.pick_id)
            continue
        await db.execute(
            update(PickRecord)
            .where(PickRecord.pick_id == record.pick_id)
            .values(status=record.outcome.value)
        )
    return len(inserted)


async def load_settlements(
    db: AsyncSession,
    start: datetime | None = None,
    end: datetime | None = None,
    strategy_id: str | None = None,
) -> list[SettlementRecord]:
    """Settlement records settled within [start, end)."""
    query = select(SettlementRow).order_by(SettlementRow.settled_at)
    if start is not None:
        query = query.where(SettlementRow.settled_at >= start)
    if end is not None:
        query = query.where(SettlementRow.settled_at < end)
    if strategy_id:
        query = query.where(SettlementRow.strategy_id == strategy_id)
    result = await db.execute(query)
    return [settlement_from_row(r) for r in result.scalars().all()]


async def load_recent_picks(
    db: AsyncSession,
    limit: int = 100,
    strategy_id: str | None = None,
    status: str | None = None,
) -> list[Pick]:
    query = select(PickRecord).order_by(PickRecord.emitted_at.desc()).limit(limit)
    if strategy_id:
        query = query.where(PickRecord.strategy_id == strategy_id)
    if status:
        query = query.where(PickRecord.status == status.upper())
    result = await db.execute(query)
    return [pick_from_row(r) for r in result.scalars().all()]


async def load_picks_since(db: AsyncSession, since: datetime) -> list[Pick]:
    """Picks emitted at or after ``since``, oldest first."""
    result = await db.execute(
        select(PickRecord)
        .where(PickRecord.emitted_at >= since)
        .order_by(PickRecord.emitted_at)
    )
    return [pick_from_row(r) for r in result.scalars().all()]


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """UTC start of ``now``'s day and of the next day."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    start = datetime.combine(now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


async def load_risk_state(db: AsyncSession, config: RiskConfig, now: datetime) -> RiskState:
    """Risk snapshot for ``now``'s day rebuilt from stored settlements."""
    start, end = day_bounds(now)
    records = await load_settlements(db, start, end)
    return RiskThrottle(config).refresh(records, today=start.date())

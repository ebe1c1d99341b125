"""Emitted picks API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db
from app.services import store

router = APIRouter(prefix="/api/picks", tags=["picks"])


class PickResponse(BaseModel):
    """Emitted pick."""

    pick_id: str
    strategy_id: str
    match_id: str
    competition_id: str | None
    market: str
    selection: str
    line: float | None
    strength: float
    model_probability: float
    implied_probability: float | None
    price: float | None
    edge: float | None
    kelly_fraction: float | None
    stake_units: float
    stake_scale: float
    tier: str
    priceable: bool
    fallback: bool
    minute: int
    home_goals: int
    away_goals: int
    status: str
    emitted_at: datetime


@router.get("", response_model=list[PickResponse])
async def list_picks(
    db: AsyncSession = Depends(get_db),
    strategy_id: str | None = None,
    status: str | None = Query(None, description="PENDING, WIN, LOSE, PUSH, HALF_WIN, HALF_LOSE, SKIP"),
    limit: int = Query(100, ge=1, le=1000),
):
    """List the most recent picks, newest first."""
    picks = await store.load_recent_picks(db, limit=limit, strategy_id=strategy_id, status=status)
    return [
        PickResponse(
            pick_id=p.pick_id,
            strategy_id=p.strategy_id,
            match_id=p.match_id,
            competition_id=p.competition_id,
            market=p.market.value,
            selection=p.selection.value,
            line=p.line,
            strength=p.strength,
            model_probability=p.model_probability,
            implied_probability=p.implied_probability,
            price=p.price,
            edge=p.edge,
            kelly_fraction=p.kelly_fraction,
            stake_units=p.stake_units,
            stake_scale=p.stake_scale,
            tier=p.tier.value,
            priceable=p.priceable,
            fallback=p.fallback,
            minute=p.minute,
            home_goals=p.home_goals,
            away_goals=p.away_goals,
            status=p.status.value,
            emitted_at=p.emitted_at,
        )
        for p in picks
    ]

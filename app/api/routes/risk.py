"""Risk state endpoint."""

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db, get_engine_settings
from app.config.engine import EngineConfig
from app.services.store import load_risk_state

router = APIRouter(prefix="/api/risk", tags=["risk"])


class RiskResponse(BaseModel):
    """Today's risk state and its limits."""

    day: date
    daily_profit: float
    consecutive_losses: int
    paused: bool
    stake_scale: float
    daily_loss_limit: float
    max_consecutive_losses: int


@router.get("", response_model=RiskResponse)
async def get_risk(
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_engine_settings),
):
    """Risk state recomputed from today's settlements."""
    state = await load_risk_state(db, config.risk, datetime.now(timezone.utc))
    return RiskResponse(
        **state.to_dict(),
        daily_loss_limit=config.risk.daily_loss_limit,
        max_consecutive_losses=config.risk.max_consecutive_losses,
    )

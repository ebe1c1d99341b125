"""Performance reporting endpoints."""

from datetime import date, datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db
from app.services import store
from app.services.performance import GROUP_DIMENSIONS, aggregate_performance, summarize

router = APIRouter(prefix="/api/performance", tags=["performance"])


class PerformanceRowResponse(BaseModel):
    """Aggregated results for one group."""

    group: dict[str, str]
    count: int
    decided: int
    wins: int
    losses: int
    pushes: int
    half_wins: int
    half_losses: int
    skips: int
    win_rate: float
    profit: float
    stake: float
    roi: float
    avg_clv: float | None


class PerformanceResponse(BaseModel):
    """Performance report."""

    date_from: date
    date_to: date
    group_by: list[str]
    summary: PerformanceRowResponse
    rows: list[PerformanceRowResponse]


def _parse_group_by(raw: str) -> list[str]:
    dims = [d.strip() for d in raw.split(",") if d.strip()]
    unknown = [d for d in dims if d not in GROUP_DIMENSIONS]
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown group_by: {', '.join(unknown)}. "
            f"Valid: {', '.join(sorted(GROUP_DIMENSIONS))}",
        )
    return dims


@router.get("", response_model=PerformanceResponse)
async def get_performance(
    db: AsyncSession = Depends(get_db),
    group_by: str = Query("strategy", description="Comma-separated: strategy, market, day, week, competition"),
    date_from: date | None = Query(None, description="First settlement day (default: 30 days ago)"),
    date_to: date | None = Query(None, description="Last settlement day, inclusive (default: today)"),
    strategy_id: str | None = None,
):
    """Performance of settled picks over a date range."""
    dims = _parse_group_by(group_by)
    date_to = date_to or datetime.now(timezone.utc).date()
    date_from = date_from or date_to - timedelta(days=30)
    if date_from > date_to:
        raise HTTPException(status_code=400, detail="date_from must not be after date_to")

    start = datetime.combine(date_from, time.min, tzinfo=timezone.utc)
    end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
    records = await store.load_settlements(db, start, end, strategy_id=strategy_id)

    return PerformanceResponse(
        date_from=date_from,
        date_to=date_to,
        group_by=dims,
        summary=PerformanceRowResponse(**summarize(records).to_dict()),
        rows=[PerformanceRowResponse(**r.to_dict()) for r in aggregate_performance(records, dims)],
    )

"""Strategy configuration endpoints."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from app.config import get_settings
from app.services.signals import STRATEGY_REGISTRY
from app.services.strategy_config import (
    StrategyConfigError,
    load_strategy_configs,
    save_strategy_configs,
)

router = APIRouter(prefix="/api/strategies", tags=["strategies"])


class StrategyEntry(BaseModel):
    """One strategy's configuration."""

    label: str = ""
    enabled: bool = True
    params: dict[str, float] = Field(default_factory=dict)


class StrategyResponse(StrategyEntry):
    strategy_id: str
    market: str | None


class StrategiesResponse(BaseModel):
    version: str
    strategies: list[StrategyResponse]


def _response(config_set) -> StrategiesResponse:
    strategies = []
    for sid, config in config_set.strategies.items():
        cls = STRATEGY_REGISTRY.get(sid)
        strategies.append(
            StrategyResponse(
                strategy_id=sid,
                label=config.label,
                enabled=config.enabled,
                params=config.params,
                market=cls.market.value if cls else None,
            )
        )
    return StrategiesResponse(version=config_set.version, strategies=strategies)


@router.get("", response_model=StrategiesResponse)
async def get_strategies():
    """Current strategy configuration."""
    try:
        config_set = load_strategy_configs(get_settings().strategies_path)
    except StrategyConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return _response(config_set)


@router.put("", response_model=StrategiesResponse)
async def replace_strategies(body: dict[str, StrategyEntry]):
    """
    Replace the whole strategy configuration.

    Takes effect at the start of the next scan cycle.
    """
    unknown = sorted(sid for sid in body if sid not in STRATEGY_REGISTRY)
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown strategy id(s): {', '.join(unknown)}",
        )

    data = {sid: entry.model_dump() for sid, entry in body.items()}
    try:
        config_set = save_strategy_configs(data, get_settings().strategies_path)
    except StrategyConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return _response(config_set)

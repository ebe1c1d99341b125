"""Live scan task.

Every minute: load in-play snapshots, rebuild the emission index and risk
state from stored history, run one scan cycle and store the emitted picks.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import redis.asyncio as redis
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.config.engine import EngineConfig, get_engine_config
from app.services import store
from app.services.emission import EmissionController
from app.services.feed_cache import FeedCache
from app.services.scanner import ScanPipeline
from app.services.strategy_config import load_strategy_configs_or_empty
from app.tasks import celery_app
from app.tasks.jobs import run_logged

logger = structlog.get_logger(__name__)


def build_scan_pipeline(
    config: EngineConfig,
    settings: Settings,
    emission: EmissionController,
    redis_client: redis.Redis | None = None,
) -> ScanPipeline:
    """Scan pipeline wired to the Redis feed cache and the cycle limits."""
    feed_cache = FeedCache(
        redis_client,
        stats_ttl=settings.stats_ttl_seconds,
        odds_ttl=settings.odds_ttl_seconds,
    )
    return ScanPipeline(
        config=config,
        emission=emission,
        feed_cache=feed_cache,
        max_fixtures=settings.scan_max_fixtures,
        fetch_timeout=settings.fetch_timeout_seconds,
    )


async def scan_live_matches(
    db: AsyncSession, now: datetime | None = None
) -> dict[str, Any]:
    """
    Run one scan cycle against the stored live snapshots.

    Returns statistics about the cycle.
    """
    settings = get_settings()
    config = get_engine_config()
    now = now or datetime.now(timezone.utc)

    stats: dict[str, Any] = {
        "matches": 0,
        "qualified": 0,
        "emitted": 0,
        "stored": 0,
        "suppressed": 0,
        "errors": 0,
    }

    try:
        config_set = load_strategy_configs_or_empty(settings.strategies_path)
        snapshots = await store.load_live_snapshots(db)
        risk = await store.load_risk_state(db, config.risk, now)

        emission = EmissionController(config.dedup)
        retention = timedelta(minutes=config.dedup.retention_minutes)
        emission.seed(await store.load_picks_since(db, now - retention))

        redis_client = redis.from_url(settings.redis_url)
        try:
            pipeline = build_scan_pipeline(config, settings, emission, redis_client)
            result = await pipeline.run_cycle(snapshots, config_set, risk, now=now)
        finally:
            await redis_client.aclose()

        stats.update(
            matches=result.matches,
            qualified=result.qualified,
            emitted=len(result.picks),
            suppressed=result.suppressed,
            errors=result.errors,
            config_version=result.config_version,
            paused=risk.paused,
            stake_scale=risk.stake_scale,
        )
        stats["stored"] = await store.save_picks(db, result.picks)
        await db.commit()

        logger.info("scan_task_complete", **stats)

    except Exception as e:
        logger.error("scan_task_failed", error=str(e))
        await db.rollback()
        raise

    return stats


# =============================================================================
# Celery Task Wrappers
# =============================================================================

@celery_app.task(name="app.tasks.scan.scan_live_matches_task", soft_time_limit=50, time_limit=58)
def scan_live_matches_task() -> dict[str, Any]:
    """
    Scheduled: Every minute

    Evaluates every live match and stores emitted picks.
    """
    return asyncio.run(run_logged("scan_live_matches", scan_live_matches, "stored"))

"""Pick settlement task.

Every five minutes: settle pending picks whose matches have finished.
Matches still in play are left pending and retried on the next run.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.engine import get_engine_config
from app.services import store
from app.services.settlement import Outcome, SettlementEngine
from app.tasks import celery_app
from app.tasks.jobs import run_logged

logger = structlog.get_logger(__name__)


async def settle_pending_picks(
    db: AsyncSession, now: datetime | None = None
) -> dict[str, Any]:
    """
    Settle every pending pick with a finished match.

    Returns statistics about what was settled.
    """
    config = get_engine_config()
    now = now or datetime.now(timezone.utc)
    engine = SettlementEngine(config.settlement)

    stats = {
        "pending": 0,
        "settled": 0,
        "skipped": 0,
        "stored": 0,
        "errors": 0,
    }

    try:
        pending = await store.load_pending_picks(db)
        stats["pending"] = len(pending)
        if not pending:
            return stats

        finals = await store.load_final_scores(db, (p.match_id for p in pending))
        already = await store.load_settled_pick_ids(db, (p.pick_id for p in pending))

        records = []
        for pick in pending:
            try:
                records.extend(
                    engine.settle_pending([pick], finals, already, settled_at=now)
                )
            except Exception as e:
                logger.error(
                    "pick_settlement_error",
                    pick_id=pick.pick_id,
                    error=str(e),
                )
                stats["errors"] += 1

        stats["settled"] = len(records)
        stats["skipped"] = sum(1 for r in records if r.outcome == Outcome.SKIP)
        stats["stored"] = await store.save_settlements(db, records)
        await db.commit()

        logger.info("settlement_task_complete", **stats)

    except Exception as e:
        logger.error("settlement_task_failed", error=str(e))
        await db.rollback()
        raise

    return stats


# =============================================================================
# Celery Task Wrappers
# =============================================================================

@celery_app.task(name="app.tasks.settlement.settle_pending_picks_task")
def settle_pending_picks_task() -> dict[str, Any]:
    """
    Scheduled: Every 5 minutes

    Settles pending picks against final scores.
    """
    return asyncio.run(run_logged("settle_pending_picks", settle_pending_picks, "stored"))

"""Job run bookkeeping shared by the periodic tasks."""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import get_task_session
from app.models.domain import JobRun

logger = structlog.get_logger(__name__)


async def run_logged(
    job_name: str,
    job: Callable[[AsyncSession], Awaitable[dict[str, Any]]],
    processed_key: str,
) -> dict[str, Any]:
    """
    Run ``job`` in a task session, recording a JobRun row around it.

    Failures are recorded and re-raised for Celery.
    """
    started_at = datetime.now(timezone.utc)
    async with get_task_session() as session:
        job_run = JobRun(job_name=job_name, started_at=started_at, status="running")
        session.add(job_run)
        await session.commit()

        stats: dict[str, Any] = {}
        job_status = "running"
        error_message = None
        try:
            stats = await job(session)
            job_status = "success"
            return stats
        except Exception as e:
            job_status = "failed"
            error_message = str(e)
            raise
        finally:
            job_run.completed_at = datetime.now(timezone.utc)
            job_run.status = job_status
            job_run.error_message = error_message
            job_run.records_processed = stats.get(processed_key, 0)
            job_run.job_metadata = stats
            await session.commit()
            logger.debug(
                "job_run_recorded",
                job_name=job_name,
                status=job_status,
                duration_seconds=(job_run.completed_at - started_at).total_seconds(),
            )

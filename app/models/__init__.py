"""Database models for LiveEdge."""

from app.models.base import Base, async_session_factory, engine, get_task_session
from app.models.domain import JobRun, MatchSnapshotRow, PickRecord, SettlementRow

__all__ = [
    # Base
    "Base",
    "engine",
    "async_session_factory",
    "get_task_session",
    # Domain models
    "MatchSnapshotRow",
    "PickRecord",
    "SettlementRow",
    "JobRun",
]

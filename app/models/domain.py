"""Domain models for LiveEdge.

Tables:
- match_snapshots: latest in-play state per match, written by the external
  feed ingester and read by the scan cycle
- picks: emitted picks (status moves from PENDING to an outcome once)
- settlements: one row per settled pick
- job_runs: task audit log
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class MatchSnapshotRow(Base, TimestampMixin):
    """
    Latest poll of a live match.

    One row per match, upserted by the ingester on every poll. Statistic
    rows are stored as delivered ({"type", "value"} objects); odds hold the
    head-to-head prices as {"home", "draw", "away", "bookmaker"}.
    """

    __tablename__ = "match_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    match_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    competition_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    competition_name: Mapped[str] = mapped_column(String(200), default="")
    home_team: Mapped[str] = mapped_column(String(200), default="")
    away_team: Mapped[str] = mapped_column(String(200), default="")

    minute: Mapped[int] = mapped_column(Integer, default=0)
    home_goals: Mapped[int | None] = mapped_column(Integer, nullable=True)
    away_goals: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, doc="Short status: 1H, HT, 2H, FT, AET, PEN, ..."
    )

    home_stats: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONB, nullable=True)
    away_stats: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONB, nullable=True)
    odds: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index("idx_match_snapshots_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<MatchSnapshotRow {self.match_id} {self.status} {self.minute}'>"


class PickRecord(Base):
    """An emitted pick. Only ``status`` changes after insert."""

    __tablename__ = "picks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pick_id: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    strategy_id: Mapped[str] = mapped_column(String(50), nullable=False)
    match_id: Mapped[str] = mapped_column(String(50), nullable=False)
    competition_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    market: Mapped[str] = mapped_column(String(20), nullable=False)
    selection: Mapped[str] = mapped_column(String(10), nullable=False)
    line: Mapped[float | None] = mapped_column(Float, nullable=True)
    strength: Mapped[float] = mapped_column(Float, nullable=False)

    model_probability: Mapped[float] = mapped_column(Float, nullable=False)
    implied_probability: Mapped[float | None] = mapped_column(Float, nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    edge: Mapped[float | None] = mapped_column(Float, nullable=True)
    kelly_fraction: Mapped[float | None] = mapped_column(Float, nullable=True)
    stake_units: Mapped[float] = mapped_column(Float, nullable=False)
    stake_scale: Mapped[float] = mapped_column(Float, default=1.0)
    tier: Mapped[str] = mapped_column(String(2), nullable=False)
    priceable: Mapped[bool] = mapped_column(Boolean, default=False)
    edge_ok: Mapped[bool] = mapped_column(Boolean, default=True)
    fallback: Mapped[bool] = mapped_column(Boolean, default=False)

    # Match state at emission
    minute: Mapped[int] = mapped_column(Integer, default=0)
    home_goals: Mapped[int] = mapped_column(Integer, default=0)
    away_goals: Mapped[int] = mapped_column(Integer, default=0)

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    config_version: Mapped[str | None] = mapped_column(String(20), nullable=True)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="PENDING")
    emitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("idx_picks_pending", "match_id", postgresql_where=(status == "PENDING")),
        Index("idx_picks_emitted", "emitted_at"),
        Index("idx_picks_strategy", "strategy_id", "emitted_at"),
    )

    def __repr__(self) -> str:
        return f"<PickRecord {self.strategy_id} {self.selection} on {self.match_id} ({self.status})>"


class SettlementRow(Base):
    """Settlement of one pick. The unique pick_id makes settlement idempotent."""

    __tablename__ = "settlements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pick_id: Mapped[str] = mapped_column(
        String(40), ForeignKey("picks.pick_id"), unique=True, nullable=False
    )
    strategy_id: Mapped[str] = mapped_column(String(50), nullable=False)
    match_id: Mapped[str] = mapped_column(String(50), nullable=False)
    competition_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    market: Mapped[str] = mapped_column(String(20), nullable=False)
    selection: Mapped[str] = mapped_column(String(10), nullable=False)
    line: Mapped[float | None] = mapped_column(Float, nullable=True)

    outcome: Mapped[str] = mapped_column(
        String(10), nullable=False, doc="WIN, LOSE, PUSH, HALF_WIN, HALF_LOSE, SKIP"
    )
    skip_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    home_goals: Mapped[int] = mapped_column(Integer, nullable=False)
    away_goals: Mapped[int] = mapped_column(Integer, nullable=False)

    stake_units: Mapped[float] = mapped_column(Float, nullable=False)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    profit_units: Mapped[float] = mapped_column(Float, nullable=False)
    closing_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    clv_percent: Mapped[float | None] = mapped_column(
        Float, nullable=True, doc="(price - closing) / closing * 100"
    )

    emitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    settled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index("idx_settlements_settled", "settled_at"),
        Index("idx_settlements_strategy", "strategy_id", "settled_at"),
    )

    def __repr__(self) -> str:
        return f"<SettlementRow {self.pick_id} {self.outcome} {self.profit_units:+.2f}>"


class JobRun(Base):
    """Task execution audit log."""

    __tablename__ = "job_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_name: Mapped[str] = mapped_column(String(100), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, doc="'running', 'success', 'failed'"
    )
    records_processed: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSONB, nullable=True
    )

    def __repr__(self) -> str:
        return f"<JobRun {self.job_name} status={self.status}>"

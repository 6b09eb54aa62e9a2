"""SQLAlchemy models for local scorecard state storage.

Only the reconciled state is stored, one row per managed scorecard. The
remote service stays the source of truth for everything it tracks; this
table keeps what it never echoes back (level and check group keys).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ScorecardState(Base):
    """The persisted state of one managed scorecard."""

    __tablename__ = "scorecard_states"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    scorecard_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_scorecard_states_scorecard_id", "scorecard_id"),
    )

"""
db/models/ai_insight.py

Insight records saved against a dashboard dataset.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.dashboard_data import DashboardData


class AIInsight(Base, TimestampMixin):
    __tablename__ = "ai_insights"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    dashboard_data_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("dashboard_data.id", ondelete="CASCADE"),
        nullable=False,
    )
    source_key: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Identifier the insight had in its generated batch",
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False)

    dashboard_data: Mapped["DashboardData"] = relationship("DashboardData", back_populates="insights")

    __table_args__ = (
        Index("ix_ai_insights_dashboard_data_position", "dashboard_data_id", "position"),
    )

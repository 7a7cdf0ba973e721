"""
db/models/dashboard_data.py

Saved dashboard dataset: source descriptor plus the loaded rows.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, Index, String, true
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.ai_insight import AIInsight

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class DashboardData(Base, TimestampMixin):
    __tablename__ = "dashboard_data"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    data_source: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="csv | firestore | api",
    )
    data_config: Mapped[dict[str, Any] | None] = mapped_column(
        JSONDocument,
        nullable=True,
        comment="Source descriptor, e.g. file name or project/collection",
    )
    data: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    insights: Mapped[list["AIInsight"]] = relationship(
        "AIInsight",
        back_populates="dashboard_data",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="AIInsight.position",
    )

    __table_args__ = (Index("ix_dashboard_data_source_active", "data_source", "is_active"),)

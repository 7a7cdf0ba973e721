"""
app/repositories/dashboard_store.py

Persistence for saved dashboard datasets and their insight records.

The store is built once at process start and shared by every request. Two
backends exist: an in-process dictionary store (the default) and a
SQLAlchemy store over the ``dashboard_data`` / ``ai_insights`` tables.
Saved insights receive fresh ids; the id they carried in their generated
batch is kept as ``source_key``.
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.tabular import TabularRecord
from db.models.ai_insight import AIInsight
from db.models.dashboard_data import DashboardData
from llm_synthesis.schema import InsightRecord

logger = logging.getLogger(__name__)


class DashboardDataNotFoundError(LookupError):
    """Raised when no saved dataset exists for an id."""


class InsightNotFoundError(LookupError):
    """Raised when no saved insight exists for an id under a dataset."""


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class SavedDashboardData:
    id: str
    data_source: str
    data_config: dict[str, Any] | None
    records: tuple[TabularRecord, ...]
    is_active: bool = True
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class SavedInsight:
    """
    Insight record as stored against one dataset.

    Title and description are user-editable and are not re-validated.
    """

    id: str
    dashboard_data_id: str
    type: str
    title: str
    description: str
    confidence: float
    source_key: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


class DashboardStore(ABC):
    """
    Save and load dashboard datasets and their insights.
    """

    @abstractmethod
    def save_dashboard_data(
        self,
        *,
        data_source: str,
        records: Sequence[TabularRecord],
        data_config: dict[str, Any] | None = None,
    ) -> SavedDashboardData:
        """Persist one dataset and return it with its new id."""

    @abstractmethod
    def get_dashboard_data(self, dashboard_data_id: str) -> SavedDashboardData:
        """
        Raises
        ------
        DashboardDataNotFoundError
        """

    @abstractmethod
    def save_insights(
        self,
        dashboard_data_id: str,
        insights: Sequence[InsightRecord],
    ) -> list[SavedInsight]:
        """Append insights to a saved dataset, preserving their order."""

    @abstractmethod
    def get_insights(self, dashboard_data_id: str) -> list[SavedInsight]:
        """Insights of a saved dataset in save order."""

    @abstractmethod
    def update_insight(
        self,
        dashboard_data_id: str,
        insight_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> SavedInsight:
        """
        Apply a title and/or description edit.

        Raises
        ------
        DashboardDataNotFoundError, InsightNotFoundError
        """

    def close(self) -> None:
        """Release backend resources. No-op by default."""


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryDashboardStore(DashboardStore):
    """
    Dictionary-backed store; contents live as long as the process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._datasets: dict[str, SavedDashboardData] = {}
        self._insights: dict[str, list[SavedInsight]] = {}

    def save_dashboard_data(
        self,
        *,
        data_source: str,
        records: Sequence[TabularRecord],
        data_config: dict[str, Any] | None = None,
    ) -> SavedDashboardData:
        saved = SavedDashboardData(
            id=str(uuid.uuid4()),
            data_source=data_source,
            data_config=dict(data_config) if data_config is not None else None,
            records=tuple(records),
        )
        with self._lock:
            self._datasets[saved.id] = saved
            self._insights[saved.id] = []
        logger.info("Dashboard data saved id=%s source=%s rows=%d", saved.id, data_source, len(saved.records))
        return saved

    def get_dashboard_data(self, dashboard_data_id: str) -> SavedDashboardData:
        with self._lock:
            saved = self._datasets.get(dashboard_data_id)
        if saved is None:
            raise DashboardDataNotFoundError(f"Dashboard data not found: {dashboard_data_id}")
        return saved

    def save_insights(
        self,
        dashboard_data_id: str,
        insights: Sequence[InsightRecord],
    ) -> list[SavedInsight]:
        created = [
            SavedInsight(
                id=str(uuid.uuid4()),
                dashboard_data_id=dashboard_data_id,
                type=insight.type,
                title=insight.title,
                description=insight.description,
                confidence=insight.confidence,
                source_key=insight.id,
            )
            for insight in insights
        ]
        with self._lock:
            if dashboard_data_id not in self._datasets:
                raise DashboardDataNotFoundError(f"Dashboard data not found: {dashboard_data_id}")
            self._insights[dashboard_data_id].extend(created)
        return created

    def get_insights(self, dashboard_data_id: str) -> list[SavedInsight]:
        with self._lock:
            if dashboard_data_id not in self._datasets:
                raise DashboardDataNotFoundError(f"Dashboard data not found: {dashboard_data_id}")
            return list(self._insights[dashboard_data_id])

    def update_insight(
        self,
        dashboard_data_id: str,
        insight_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> SavedInsight:
        with self._lock:
            if dashboard_data_id not in self._datasets:
                raise DashboardDataNotFoundError(f"Dashboard data not found: {dashboard_data_id}")
            insights = self._insights[dashboard_data_id]
            for index, insight in enumerate(insights):
                if insight.id != insight_id:
                    continue
                updated = replace(
                    insight,
                    title=insight.title if title is None else title,
                    description=insight.description if description is None else description,
                    updated_at=_utcnow(),
                )
                insights[index] = updated
                return updated
        raise InsightNotFoundError(f"Insight not found: {insight_id}")


# ---------------------------------------------------------------------------
# SQLAlchemy backend
# ---------------------------------------------------------------------------


class SQLAlchemyDashboardStore(DashboardStore):
    """
    Store backed by the ``dashboard_data`` and ``ai_insights`` tables.

    Each operation runs in its own session and transaction.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def save_dashboard_data(
        self,
        *,
        data_source: str,
        records: Sequence[TabularRecord],
        data_config: dict[str, Any] | None = None,
    ) -> SavedDashboardData:
        with self._session_factory() as session, session.begin():
            row = DashboardData(
                data_source=data_source,
                data_config=dict(data_config) if data_config is not None else None,
                data=[record.to_plain() for record in records],
                is_active=True,
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            saved = self._to_saved_data(row)
        logger.info("Dashboard data saved id=%s source=%s rows=%d", saved.id, data_source, len(saved.records))
        return saved

    def get_dashboard_data(self, dashboard_data_id: str) -> SavedDashboardData:
        with self._session_factory() as session:
            return self._to_saved_data(self._require_data(session, dashboard_data_id))

    def save_insights(
        self,
        dashboard_data_id: str,
        insights: Sequence[InsightRecord],
    ) -> list[SavedInsight]:
        with self._session_factory() as session, session.begin():
            self._require_data(session, dashboard_data_id)
            existing = session.execute(
                select(AIInsight.position)
                .where(AIInsight.dashboard_data_id == dashboard_data_id)
                .order_by(AIInsight.position.desc())
            ).scalars().first()
            start = 0 if existing is None else existing + 1

            rows = [
                AIInsight(
                    dashboard_data_id=dashboard_data_id,
                    source_key=insight.id,
                    position=start + offset,
                    type=insight.type,
                    title=insight.title,
                    description=insight.description,
                    confidence=Decimal(str(round(insight.confidence, 2))),
                )
                for offset, insight in enumerate(insights)
            ]
            session.add_all(rows)
            session.flush()
            for row in rows:
                session.refresh(row)
            return [self._to_saved_insight(row) for row in rows]

    def get_insights(self, dashboard_data_id: str) -> list[SavedInsight]:
        with self._session_factory() as session:
            self._require_data(session, dashboard_data_id)
            rows = session.execute(
                select(AIInsight)
                .where(AIInsight.dashboard_data_id == dashboard_data_id)
                .order_by(AIInsight.position.asc())
            ).scalars().all()
            return [self._to_saved_insight(row) for row in rows]

    def update_insight(
        self,
        dashboard_data_id: str,
        insight_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> SavedInsight:
        with self._session_factory() as session, session.begin():
            self._require_data(session, dashboard_data_id)
            row = session.execute(
                select(AIInsight).where(
                    AIInsight.id == insight_id,
                    AIInsight.dashboard_data_id == dashboard_data_id,
                )
            ).scalars().first()
            if row is None:
                raise InsightNotFoundError(f"Insight not found: {insight_id}")
            if title is not None:
                row.title = title
            if description is not None:
                row.description = description
            session.flush()
            session.refresh(row)
            return self._to_saved_insight(row)

    @staticmethod
    def _require_data(session: Session, dashboard_data_id: str) -> DashboardData:
        row = session.get(DashboardData, dashboard_data_id)
        if row is None:
            raise DashboardDataNotFoundError(f"Dashboard data not found: {dashboard_data_id}")
        return row

    @staticmethod
    def _to_saved_data(row: DashboardData) -> SavedDashboardData:
        return SavedDashboardData(
            id=row.id,
            data_source=row.data_source,
            data_config=row.data_config,
            records=tuple(TabularRecord.from_plain(item) for item in row.data or []),
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _to_saved_insight(row: AIInsight) -> SavedInsight:
        return SavedInsight(
            id=row.id,
            dashboard_data_id=row.dashboard_data_id,
            type=row.type,
            title=row.title,
            description=row.description,
            confidence=float(row.confidence),
            source_key=row.source_key,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


def build_dashboard_store(backend: str) -> DashboardStore:
    """
    Build the configured store backend (``memory`` or ``database``).
    """
    if backend == "memory":
        return InMemoryDashboardStore()
    if backend == "database":
        from db.session import get_session_factory

        return SQLAlchemyDashboardStore(get_session_factory())
    raise ValueError(f"Unknown dashboard store backend {backend!r}.")

"""
Relational storage backend.

Implements the PaperStore protocol on top of SQLAlchemy so that any
database with a SQLAlchemy dialect (SQLite, PostgreSQL, ...) can hold the
date partitions and the cache partition.

Tables:
- papers: one row per (paper_id, date) with the full summary as JSON
- day_meta: one row per date with the ordered list of imported ids
- cache_entries: one row per cache key with its logical cache date
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional

from sqlalchemy import JSON, String, create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from .models import CacheEntry, DayMeta, PaperSummary, StoredPaper, utc_now_iso

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all storage tables."""

    pass


class PaperRecord(Base):
    """
    A summarized paper inside a date partition.

    Attributes:
        paper_id: Catalog identifier (e.g. arXiv accession number).
        date: Partition date (YYYY-MM-DD).
        title: Paper title, duplicated out of the payload for browsing.
        fetched_at: Import timestamp.
        payload: Full PaperSummary in its persisted JSON shape.
    """

    __tablename__ = "papers"

    paper_id: Mapped[str] = mapped_column(String(200), primary_key=True)
    date: Mapped[str] = mapped_column(String(10), primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(1000))
    fetched_at: Mapped[str] = mapped_column(String(40))
    payload: Mapped[dict] = mapped_column(JSON)

    def __repr__(self) -> str:
        return f"<PaperRecord(paper_id={self.paper_id}, date={self.date})>"


class DayMetaRecord(Base):
    """Index of the paper ids imported under one date."""

    __tablename__ = "day_meta"

    date: Mapped[str] = mapped_column(String(10), primary_key=True)
    paper_ids: Mapped[List[str]] = mapped_column(JSON)
    fetched_at: Mapped[str] = mapped_column(String(40))

    def to_model(self) -> DayMeta:
        return DayMeta(date=self.date, paper_ids=list(self.paper_ids or []), fetched_at=self.fetched_at)


class CacheRecord(Base):
    """A cached payload stamped with its logical cache date."""

    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(500), primary_key=True)
    cache_date: Mapped[str] = mapped_column(String(10))
    data: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)


class SqlStore:
    """PaperStore backed by a relational database."""

    def __init__(self, url: str = "sqlite:///data/papers.db", echo: bool = False) -> None:
        """Initialize the store and create missing tables.

        Args:
            url: SQLAlchemy database URL
            echo: Log emitted SQL
        """
        self.url = url
        self._ensure_sqlite_dir(url)
        self.engine = create_engine(url, echo=echo, future=True)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)
        Base.metadata.create_all(self.engine)
        logger.info(f"SQL store ready at {make_url(url).render_as_string(hide_password=True)}")

    @staticmethod
    def _ensure_sqlite_dir(url: str) -> None:
        parsed = make_url(url)
        if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    def day_exists(self, date: str) -> bool:
        with self.Session() as session:
            return session.get(DayMetaRecord, date) is not None

    def save_paper(self, date: str, paper: PaperSummary) -> None:
        with self.Session.begin() as session:
            session.merge(
                PaperRecord(
                    paper_id=paper.id,
                    date=date,
                    title=paper.title,
                    fetched_at=paper.fetched_at,
                    payload=paper.to_dict(),
                )
            )

    def save_day_meta(self, meta: DayMeta) -> None:
        with self.Session.begin() as session:
            session.merge(
                DayMetaRecord(
                    date=meta.date,
                    paper_ids=list(meta.paper_ids),
                    fetched_at=meta.fetched_at,
                )
            )

    def add_to_day_meta(self, date: str, paper_id: str) -> DayMeta:
        with self.Session.begin() as session:
            record = session.get(DayMetaRecord, date, with_for_update=True)
            if record is None:
                record = DayMetaRecord(date=date, paper_ids=[paper_id], fetched_at=utc_now_iso())
                session.add(record)
            else:
                ids = list(record.paper_ids or [])
                if paper_id not in ids:
                    ids.append(paper_id)
                # Reassign so the JSON column is flagged dirty.
                record.paper_ids = ids
                record.fetched_at = utc_now_iso()
            return record.to_model()

    def get_day_meta(self, date: str) -> DayMeta | None:
        with self.Session() as session:
            record = session.get(DayMetaRecord, date)
            return record.to_model() if record else None

    def get_paper(self, date: str, paper_id: str) -> PaperSummary | None:
        with self.Session() as session:
            record = session.get(PaperRecord, (paper_id, date))
            return PaperSummary.from_dict(record.payload) if record else None

    def get_papers_for_date(self, date: str) -> list[PaperSummary]:
        with self.Session() as session:
            records = session.scalars(
                select(PaperRecord)
                .where(PaperRecord.date == date)
                .order_by(PaperRecord.fetched_at, PaperRecord.paper_id)
            ).all()
            return [PaperSummary.from_dict(r.payload) for r in records]

    def get_available_dates(self) -> list[str]:
        with self.Session() as session:
            return list(
                session.scalars(select(DayMetaRecord.date).order_by(DayMetaRecord.date.desc())).all()
            )

    def find_paper_by_id(self, paper_id: str) -> StoredPaper | None:
        with self.Session() as session:
            record = session.scalars(
                select(PaperRecord)
                .join(DayMetaRecord, DayMetaRecord.date == PaperRecord.date)
                .where(PaperRecord.paper_id == paper_id)
                .order_by(PaperRecord.date.desc())
                .limit(1)
            ).first()
            if record is None:
                return None
            return StoredPaper(paper=PaperSummary.from_dict(record.payload), date=record.date)

    def get_cache_entry(self, key: str) -> CacheEntry | None:
        with self.Session() as session:
            record = session.get(CacheRecord, key)
            if record is None:
                return None
            return CacheEntry(cache_date=record.cache_date, data=record.data)

    def put_cache_entry(self, key: str, entry: CacheEntry) -> None:
        with self.Session.begin() as session:
            session.merge(CacheRecord(key=key, cache_date=entry.cache_date, data=entry.data))

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()

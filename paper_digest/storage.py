"""Date-partitioned storage for imported papers and cached payloads."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

from .models import CacheEntry, DayMeta, PaperSummary, StoredPaper, utc_now_iso

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def safe_name(value: str) -> str:
    """Replace characters that are unsafe in file names with underscores."""
    return _UNSAFE_CHARS.sub("_", value)


class PaperStore(Protocol):
    """Protocol for persistence backends.

    Reads on missing resources return None (or an empty list). Writes
    propagate the underlying storage error to the caller.
    """

    def day_exists(self, date: str) -> bool:
        """Check whether a DayMeta record exists for date."""
        ...

    def save_paper(self, date: str, paper: PaperSummary) -> None:
        """Upsert a paper keyed by (paper.id, date)."""
        ...

    def save_day_meta(self, meta: DayMeta) -> None:
        """Upsert a DayMeta record, replacing its id list wholesale."""
        ...

    def add_to_day_meta(self, date: str, paper_id: str) -> DayMeta:
        """Merge paper_id into the DayMeta for date as one atomic step."""
        ...

    def get_day_meta(self, date: str) -> DayMeta | None:
        ...

    def get_paper(self, date: str, paper_id: str) -> PaperSummary | None:
        ...

    def get_papers_for_date(self, date: str) -> list[PaperSummary]:
        ...

    def get_available_dates(self) -> list[str]:
        """Return all dates with a DayMeta record, newest first."""
        ...

    def find_paper_by_id(self, paper_id: str) -> StoredPaper | None:
        """Return the paper from the newest date partition that holds it."""
        ...

    def get_cache_entry(self, key: str) -> CacheEntry | None:
        ...

    def put_cache_entry(self, key: str, entry: CacheEntry) -> None:
        ...


class FileStore:
    """Store papers as JSON files in a directory tree.

    Layout::

        <root>/papers/<YYYY-MM-DD>/meta.json
        <root>/papers/<YYYY-MM-DD>/<paper-id>.json
        <root>/cache/<key>.json
    """

    def __init__(self, root: Path | str = "data") -> None:
        """Initialize file store.

        Args:
            root: Directory holding the papers/ and cache/ trees
        """
        self.root = Path(root)
        self.papers_dir = self.root / "papers"
        self.cache_dir = self.root / "cache"
        self.papers_dir.mkdir(parents=True, exist_ok=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _date_dir(self, date: str) -> Path:
        return self.papers_dir / date

    def _paper_file(self, date: str, paper_id: str) -> Path:
        return self._date_dir(date) / f"{safe_name(paper_id)}.json"

    def _meta_file(self, date: str) -> Path:
        return self._date_dir(date) / "meta.json"

    def _cache_file(self, key: str) -> Path:
        parts = [safe_name(p) for p in key.split("/") if p not in ("", ".", "..")]
        if not parts:
            raise ValueError(f"Invalid cache key: {key!r}")
        parts[-1] = f"{parts[-1]}.json"
        return self.cache_dir.joinpath(*parts)

    def _read_json(self, path: Path) -> Any | None:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Unreadable JSON at {path}: {e}")
            return None

    def _write_json(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def day_exists(self, date: str) -> bool:
        return self._meta_file(date).exists()

    def save_paper(self, date: str, paper: PaperSummary) -> None:
        self._write_json(self._paper_file(date, paper.id), paper.to_dict())

    def save_day_meta(self, meta: DayMeta) -> None:
        self._write_json(self._meta_file(meta.date), meta.to_dict())

    def add_to_day_meta(self, date: str, paper_id: str) -> DayMeta:
        # No await between read and write, so the merge cannot interleave
        # with another coroutine on the same event loop.
        existing = self.get_day_meta(date)
        if existing is None:
            meta = DayMeta(date=date, paper_ids=[paper_id], fetched_at=utc_now_iso())
        else:
            meta = existing.merged(paper_id)
        self.save_day_meta(meta)
        return meta

    def get_day_meta(self, date: str) -> DayMeta | None:
        data = self._read_json(self._meta_file(date))
        if not isinstance(data, dict):
            return None
        try:
            return DayMeta.from_dict(data)
        except KeyError:
            return None

    def get_paper(self, date: str, paper_id: str) -> PaperSummary | None:
        data = self._read_json(self._paper_file(date, paper_id))
        if not isinstance(data, dict):
            return None
        try:
            paper = PaperSummary.from_dict(data)
        except KeyError:
            return None
        # distinct ids can share a sanitised file name
        if paper.id != paper_id:
            return None
        return paper

    def get_papers_for_date(self, date: str) -> list[PaperSummary]:
        meta = self.get_day_meta(date)
        if meta is None:
            return []

        papers = []
        for paper_id in meta.paper_ids:
            paper = self.get_paper(date, paper_id)
            if paper is not None:
                papers.append(paper)
        return papers

    def get_available_dates(self) -> list[str]:
        if not self.papers_dir.exists():
            return []
        dates = [
            d.name
            for d in self.papers_dir.iterdir()
            if d.is_dir() and DATE_PATTERN.match(d.name) and (d / "meta.json").exists()
        ]
        return sorted(dates, reverse=True)

    def find_paper_by_id(self, paper_id: str) -> StoredPaper | None:
        for date in self.get_available_dates():
            paper = self.get_paper(date, paper_id)
            if paper is not None:
                return StoredPaper(paper=paper, date=date)
        return None

    def get_cache_entry(self, key: str) -> CacheEntry | None:
        data = self._read_json(self._cache_file(key))
        if not isinstance(data, dict) or "cacheDate" not in data:
            return None
        return CacheEntry.from_dict(data)

    def put_cache_entry(self, key: str, entry: CacheEntry) -> None:
        self._write_json(self._cache_file(key), entry.to_dict())


def get_store(url: str | None = None) -> PaperStore:
    """Get the storage backend for a connection string.

    Args:
        url: ``file://<dir>`` or a plain directory path selects the file
            backend; any other URL with a scheme (``sqlite:///...``,
            ``postgresql://...``) selects the SQL backend. Defaults to
            the ``data`` directory.

    Returns:
        PaperStore instance
    """
    if not url:
        return FileStore()
    if url.startswith("file://"):
        return FileStore(url[len("file://"):] or "data")
    if "://" in url:
        from .sql_storage import SqlStore

        return SqlStore(url)
    return FileStore(url)

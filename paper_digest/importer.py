"""Paper import pipeline: resolve, download, summarize, persist."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .models import BatchImportResult, PaperSummary, StoredPaper
from .pdf import PdfDownloader
from .resolver import MetadataResolver

if TYPE_CHECKING:
    from .sources.huggingface import HuggingFaceClient
    from .storage import PaperStore
    from .summarizer import PaperSummarizer

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3


def today_date() -> str:
    """Return the current UTC date (YYYY-MM-DD)."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


class PaperImporter:
    """Imports papers into a store, at most once per paper id."""

    def __init__(
        self,
        store: PaperStore,
        resolver: MetadataResolver,
        summarizer: PaperSummarizer,
        downloader: PdfDownloader | None = None,
    ):
        """Initialize importer.

        Args:
            store: Persistence backend
            resolver: Metadata resolver for catalog lookups
            summarizer: Summarization service
            downloader: PDF downloader (default: PdfDownloader())
        """
        self.store = store
        self.resolver = resolver
        self.summarizer = summarizer
        self.downloader = downloader or PdfDownloader()
        self._in_flight: dict[str, asyncio.Task[PaperSummary]] = {}

    async def import_paper(self, paper_id: str) -> PaperSummary:
        """Import a paper end-to-end.

        Returns the stored summary unchanged if the paper was already
        imported under any date. Metadata lookup failures degrade to a
        placeholder record; download, summarization and storage failures
        propagate. Concurrent calls for the same id share one import.

        Args:
            paper_id: Catalog identifier

        Returns:
            The persisted PaperSummary
        """
        existing = self.store.find_paper_by_id(paper_id)
        if existing is not None:
            logger.info(f"Paper {paper_id} already imported on {existing.date}, skipping")
            return existing.paper

        pending = self._in_flight.get(paper_id)
        if pending is not None:
            logger.info(f"Paper {paper_id} is already being imported, waiting")
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._import_new(paper_id))
        self._in_flight[paper_id] = task
        try:
            return await task
        finally:
            if self._in_flight.get(paper_id) is task:
                del self._in_flight[paper_id]

    async def _import_new(self, paper_id: str) -> PaperSummary:
        date = today_date()
        paper_info = await self.resolver.resolve_or_synthesize(paper_id)

        logger.info(f"Downloading PDF for {paper_id}")
        async with self.downloader.downloaded(paper_info.pdf_url, paper_info.id) as pdf_path:
            logger.info(f"Summarizing {paper_id}")
            summary = await self.summarizer.summarize(pdf_path, paper_info)
            self.store.save_paper(date, summary)
            self.store.add_to_day_meta(date, summary.id)

        logger.info(f"Imported {paper_id} under {date}")
        return summary

    async def _import_chunk(self, chunk: list[str], result: BatchImportResult) -> None:
        outcomes = await asyncio.gather(
            *(self.import_paper(paper_id) for paper_id in chunk),
            return_exceptions=True,
        )
        for paper_id, outcome in zip(chunk, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(f"Batch import failed for {paper_id}: {outcome}")
                result.failed.append(paper_id)
                result.errors[paper_id] = str(outcome) or type(outcome).__name__
            else:
                result.warmed.append(paper_id)

    async def batch_import_papers(
        self, paper_ids: list[str], concurrency: int = DEFAULT_CONCURRENCY
    ) -> BatchImportResult:
        """Import many papers, at most `concurrency` at a time.

        Already-imported ids are classified as skipped up front. The rest
        run in fixed-size chunks; each chunk settles completely before the
        next starts. A failing paper is recorded and never aborts the batch.

        Args:
            paper_ids: Catalog identifiers
            concurrency: Chunk size (maximum imports in flight)

        Returns:
            BatchImportResult with warmed, failed and skipped ids
        """
        concurrency = max(1, concurrency)
        result = BatchImportResult()

        to_import: list[str] = []
        for paper_id in paper_ids:
            if self.store.find_paper_by_id(paper_id) is not None:
                result.skipped.append(paper_id)
            else:
                to_import.append(paper_id)

        if not to_import:
            logger.info(f"All papers already imported (skipped={len(result.skipped)})")
            return result

        logger.info(f"Batch importing {len(to_import)} papers (concurrency={concurrency})")

        for i in range(0, len(to_import), concurrency):
            await self._import_chunk(to_import[i : i + concurrency], result)

        logger.info(
            f"Batch import complete: warmed={len(result.warmed)} "
            f"failed={len(result.failed)} skipped={len(result.skipped)}"
        )
        return result

    async def get_or_import(self, paper_id: str) -> StoredPaper:
        """Return a stored paper with its date, importing it on demand."""
        existing = self.store.find_paper_by_id(paper_id)
        if existing is not None:
            return existing

        logger.info(f"Paper {paper_id} not in storage, importing on demand")
        summary = await self.import_paper(paper_id)
        stored = self.store.find_paper_by_id(summary.id)
        return stored or StoredPaper(paper=summary, date=today_date())

    async def fetch_daily(
        self,
        huggingface: HuggingFaceClient,
        limit: int = 5,
        force: bool = False,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> BatchImportResult | None:
        """Import today's most upvoted papers from the daily index.

        Args:
            huggingface: Daily index client
            limit: Number of top papers to import
            force: Run even if today's partition already exists
            concurrency: Chunk size for the batch import

        Returns:
            BatchImportResult, or None if today was already fetched
        """
        date = today_date()
        if not force and self.store.day_exists(date):
            logger.info(f"Papers already fetched for {date}")
            return None

        papers = await huggingface.fetch_daily_papers(limit=limit)
        logger.info(f"Fetched {len(papers)} daily papers from HuggingFace")
        return await self.batch_import_papers([p.id for p in papers], concurrency=concurrency)

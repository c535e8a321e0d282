"""Shared test fixtures for paper-digest tests."""

import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from paper_digest.models import (
    FetchedPaper,
    FigureReference,
    PaperSummary,
    arxiv_abs_url,
    arxiv_pdf_url,
    utc_now_iso,
)
from paper_digest.pdf import PdfDownloadError
from paper_digest.sql_storage import SqlStore
from paper_digest.storage import FileStore

SUMMARY_RESPONSE = {
    "summary": "A **new** method for testing.",
    "technicalDetails": "### Method\nWe minimise $L = \\\\sum_i x_i$.",
    "keyFindings": ["Finding one", "Finding two"],
    "diagrams": [{"figureNumber": "Figure 1", "description": "Overview", "pageNumber": 2}],
    "mermaidDiagrams": [{"title": "Pipeline", "code": "flowchart LR\n  A --> B"}],
    "tldr": "Tests pass.",
}


def make_fetched(paper_id: str, title: str | None = None, authors: list[str] | None = None) -> FetchedPaper:
    """Build a FetchedPaper for tests."""
    return FetchedPaper(
        id=paper_id,
        title=title or f"Paper {paper_id}",
        authors=authors if authors is not None else ["Alice Smith"],
        arxiv_url=arxiv_abs_url(paper_id),
        pdf_url=arxiv_pdf_url(paper_id),
        upvotes=3,
        published_at="2025-01-15T00:00:00+00:00",
        media_urls=[],
    )


def make_summary(paper_id: str, title: str | None = None) -> PaperSummary:
    """Build a PaperSummary for tests."""
    return PaperSummary(
        id=paper_id,
        title=title or f"Paper {paper_id}",
        authors=["Alice Smith", "Bob Johnson"],
        arxiv_url=arxiv_abs_url(paper_id),
        pdf_url=arxiv_pdf_url(paper_id),
        summary="Summary text.",
        technical_details="Details.",
        key_findings=["Finding"],
        diagrams=[FigureReference("Figure 1", "Overview", 1)],
        tldr="Short.",
        upvotes=5,
        published_at="2025-01-15T00:00:00+00:00",
        fetched_at=utc_now_iso(),
        media_urls=["https://example.com/video.mp4"],
    )


class FakeResolver:
    """Resolver that records calls and tracks how many run at once."""

    def __init__(self, known: dict[str, FetchedPaper] | None = None, delay: float = 0.01):
        self.known = known or {}
        self.delay = delay
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def resolve(self, paper_id: str) -> FetchedPaper | None:
        self.calls.append(paper_id)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return self.known.get(paper_id, make_fetched(paper_id))

    async def resolve_or_synthesize(self, paper_id: str) -> FetchedPaper:
        paper = await self.resolve(paper_id)
        return paper or FetchedPaper.synthetic(paper_id)


class FakeSummarizer:
    """Summarizer that builds summaries without an LLM."""

    def __init__(self, fail_ids: set[str] | None = None):
        self.fail_ids = fail_ids or set()
        self.calls: list[str] = []
        self.seen_paths: list[Path] = []

    async def summarize(self, pdf_path, paper: FetchedPaper) -> PaperSummary:
        self.calls.append(paper.id)
        self.seen_paths.append(Path(pdf_path))
        assert Path(pdf_path).exists()
        if paper.id in self.fail_ids:
            raise ValueError(f"summarization failed for {paper.id}")
        summary = make_summary(paper.id, title=paper.title)
        summary.authors = list(paper.authors)
        return summary


class FakeDownloader:
    """Downloader that writes placeholder PDFs into a temp directory."""

    def __init__(self, tmp_dir: Path, fail_ids: set[str] | None = None):
        self.tmp_dir = tmp_dir
        self.fail_ids = fail_ids or set()
        self.created: list[Path] = []

    @asynccontextmanager
    async def downloaded(self, pdf_url: str, paper_id: str):
        if paper_id in self.fail_ids:
            raise PdfDownloadError(f"Failed to download {pdf_url}: 404")
        path = self.tmp_dir / f"{paper_id}.pdf"
        path.write_bytes(b"%PDF-1.4 test")
        self.created.append(path)
        try:
            yield path
        finally:
            path.unlink(missing_ok=True)


@pytest.fixture
def file_store(tmp_path: Path) -> FileStore:
    """Return a file store rooted in a temp directory."""
    return FileStore(tmp_path / "data")


@pytest.fixture
def sql_store(tmp_path: Path):
    """Return a SQLite-backed store in a temp directory."""
    store = SqlStore(f"sqlite:///{tmp_path / 'db' / 'papers.db'}")
    yield store
    store.dispose()


@pytest.fixture(params=["file", "sql"])
def store(request, tmp_path: Path):
    """Return each storage backend in turn."""
    if request.param == "file":
        yield FileStore(tmp_path / "data")
    else:
        sql = SqlStore(f"sqlite:///{tmp_path / 'papers.db'}")
        yield sql
        sql.dispose()


@pytest.fixture
def pdf_dir(tmp_path: Path) -> Path:
    path = tmp_path / "pdfs"
    path.mkdir()
    return path


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def fake_summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def fake_downloader(pdf_dir: Path) -> FakeDownloader:
    return FakeDownloader(pdf_dir)


@pytest.fixture
def mock_llm() -> MagicMock:
    """Return a mock chat model that answers with a valid summary."""
    mock = MagicMock()
    mock.prompts = []

    async def mock_ainvoke(messages) -> MagicMock:
        mock.prompts.append(messages)
        response = MagicMock()
        response.content = json.dumps(SUMMARY_RESPONSE)
        return response

    mock.ainvoke = mock_ainvoke
    return mock


@pytest.fixture
def mock_arxiv_response() -> str:
    """Return a sample arXiv API Atom response."""
    fixtures_dir = Path(__file__).parent / "fixtures"
    return (fixtures_dir / "arxiv_response.xml").read_text()

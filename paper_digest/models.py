"""Data models for paper-digest."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def arxiv_abs_url(paper_id: str) -> str:
    return f"https://arxiv.org/abs/{paper_id}"


def arxiv_pdf_url(paper_id: str) -> str:
    return f"https://arxiv.org/pdf/{paper_id}"


@dataclass
class FigureReference:
    """A figure or table referenced by a summary.

    Attributes:
        figure_number: Label as printed in the paper (e.g. "Figure 1").
        description: What the figure shows.
        page_number: 1-indexed PDF page the figure appears on.
    """

    figure_number: str
    description: str
    page_number: int

    def to_dict(self) -> dict:
        return {
            "figureNumber": self.figure_number,
            "description": self.description,
            "pageNumber": self.page_number,
        }

    @classmethod
    def from_dict(cls, data: dict) -> FigureReference:
        try:
            page = int(data.get("pageNumber", 1))
        except (TypeError, ValueError):
            page = 1
        return cls(
            figure_number=str(data.get("figureNumber", "")),
            description=str(data.get("description", "")),
            page_number=page,
        )


@dataclass
class DiagramSpec:
    """A diagram rendered from source code (mermaid)."""

    title: str
    code: str

    def to_dict(self) -> dict:
        return {"title": self.title, "code": self.code}

    @classmethod
    def from_dict(cls, data: dict) -> DiagramSpec:
        return cls(title=str(data.get("title", "")), code=str(data.get("code", "")))


@dataclass
class FetchedPaper:
    """Paper metadata resolved from a catalog source.

    Transient: consumed by the importer and superseded by PaperSummary.
    """

    id: str
    title: str
    authors: list[str]
    arxiv_url: str
    pdf_url: str
    upvotes: int = 0
    published_at: str = ""
    media_urls: list[str] = field(default_factory=list)
    thumbnail: str | None = None

    @classmethod
    def synthetic(cls, paper_id: str) -> FetchedPaper:
        """Placeholder record used when no catalog source knows the paper."""
        return cls(
            id=paper_id,
            title=paper_id,
            authors=[],
            arxiv_url=arxiv_abs_url(paper_id),
            pdf_url=arxiv_pdf_url(paper_id),
            upvotes=0,
            published_at=utc_now_iso(),
            media_urls=[],
        )


@dataclass
class PaperSummary:
    """An imported paper with its LLM-generated summary."""

    id: str
    title: str
    authors: list[str]
    arxiv_url: str
    pdf_url: str
    summary: str
    technical_details: str
    key_findings: list[str]
    diagrams: list[FigureReference]
    tldr: str
    upvotes: int = 0
    published_at: str = ""
    fetched_at: str = ""
    media_urls: list[str] = field(default_factory=list)
    mermaid_diagrams: list[DiagramSpec] = field(default_factory=list)
    thumbnail: str | None = None

    def to_dict(self) -> dict:
        """Convert to the persisted JSON shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "arxivUrl": self.arxiv_url,
            "pdfUrl": self.pdf_url,
            "summary": self.summary,
            "technicalDetails": self.technical_details,
            "keyFindings": list(self.key_findings),
            "diagrams": [d.to_dict() for d in self.diagrams],
            "mermaidDiagrams": [d.to_dict() for d in self.mermaid_diagrams],
            "tldr": self.tldr,
            "upvotes": self.upvotes,
            "publishedAt": self.published_at,
            "fetchedAt": self.fetched_at,
            "mediaUrls": list(self.media_urls),
        }
        if self.thumbnail is not None:
            data["thumbnail"] = self.thumbnail
        return data

    @classmethod
    def from_dict(cls, data: dict) -> PaperSummary:
        """Build from the persisted JSON shape."""
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            authors=list(data.get("authors", [])),
            arxiv_url=data.get("arxivUrl", ""),
            pdf_url=data.get("pdfUrl", ""),
            summary=data.get("summary", ""),
            technical_details=data.get("technicalDetails", ""),
            key_findings=list(data.get("keyFindings", [])),
            diagrams=[FigureReference.from_dict(d) for d in data.get("diagrams") or []],
            mermaid_diagrams=[
                DiagramSpec.from_dict(d) for d in data.get("mermaidDiagrams") or []
            ],
            tldr=data.get("tldr", ""),
            upvotes=int(data.get("upvotes") or 0),
            published_at=data.get("publishedAt", ""),
            fetched_at=data.get("fetchedAt", ""),
            media_urls=list(data.get("mediaUrls") or []),
            thumbnail=data.get("thumbnail"),
        )


@dataclass
class DayMeta:
    """Index of the papers imported under one date partition."""

    date: str
    paper_ids: list[str]
    fetched_at: str

    def merged(self, paper_id: str, fetched_at: str | None = None) -> DayMeta:
        """Return a copy with paper_id appended if absent (set-union merge)."""
        paper_ids = list(self.paper_ids)
        if paper_id not in paper_ids:
            paper_ids.append(paper_id)
        return DayMeta(
            date=self.date,
            paper_ids=paper_ids,
            fetched_at=fetched_at or utc_now_iso(),
        )

    def to_dict(self) -> dict:
        return {"date": self.date, "paperIds": list(self.paper_ids), "fetchedAt": self.fetched_at}

    @classmethod
    def from_dict(cls, data: dict) -> DayMeta:
        return cls(
            date=data["date"],
            paper_ids=list(data.get("paperIds", [])),
            fetched_at=data.get("fetchedAt", ""),
        )


@dataclass
class StoredPaper:
    """A paper together with the date partition it was found under."""

    paper: PaperSummary
    date: str


@dataclass
class CacheEntry:
    """A cached payload stamped with the logical date it was written on."""

    cache_date: str
    data: Any

    def to_dict(self) -> dict:
        return {"cacheDate": self.cache_date, "data": self.data}

    @classmethod
    def from_dict(cls, data: dict) -> CacheEntry:
        return cls(cache_date=data["cacheDate"], data=data.get("data"))


@dataclass
class BatchImportResult:
    """Outcome of a batch import. Every input id lands in exactly one bucket."""

    warmed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.warmed) + len(self.failed) + len(self.skipped)

    def to_dict(self) -> dict:
        return {
            "warmed": list(self.warmed),
            "failed": list(self.failed),
            "skipped": list(self.skipped),
            "errors": dict(self.errors),
        }


@dataclass
class ArxivPaper:
    """A paper returned by an arXiv category search."""

    id: str
    title: str
    authors: list[str]
    abstract: str
    categories: list[str]
    published_at: str
    pdf_url: str
    arxiv_url: str


@dataclass
class PaperTags:
    """LLM-assigned tags for a feed entry."""

    ml_tag: str = "Other"
    app_tag: str = "General"
    description: str = ""


@dataclass
class FeedPaper:
    """A tagged paper in a topic feed."""

    id: str
    title: str
    authors: list[str]
    abstract: str
    description: str
    ml_tag: str
    app_tag: str
    arxiv_url: str
    pdf_url: str
    published_at: str
    source: str
    media_urls: list[str] = field(default_factory=list)
    thumbnail: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "abstract": self.abstract,
            "description": self.description,
            "mlTag": self.ml_tag,
            "appTag": self.app_tag,
            "arxivUrl": self.arxiv_url,
            "pdfUrl": self.pdf_url,
            "publishedAt": self.published_at,
            "mediaUrls": list(self.media_urls),
            "source": self.source,
        }
        if self.thumbnail is not None:
            data["thumbnail"] = self.thumbnail
        return data

    @classmethod
    def from_dict(cls, data: dict) -> FeedPaper:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            authors=list(data.get("authors", [])),
            abstract=data.get("abstract", ""),
            description=data.get("description", ""),
            ml_tag=data.get("mlTag", "Other"),
            app_tag=data.get("appTag", "General"),
            arxiv_url=data.get("arxivUrl", ""),
            pdf_url=data.get("pdfUrl", ""),
            published_at=data.get("publishedAt", ""),
            source=data.get("source", ""),
            media_urls=list(data.get("mediaUrls") or []),
            thumbnail=data.get("thumbnail"),
        )

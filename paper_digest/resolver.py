"""Paper metadata resolution across catalog sources."""

from __future__ import annotations

import logging

from .models import FetchedPaper
from .sources.arxiv import ArxivClient
from .sources.huggingface import HuggingFaceClient

logger = logging.getLogger(__name__)


class MetadataResolver:
    """Resolves paper metadata from the daily index, then the arXiv API."""

    def __init__(
        self,
        huggingface: HuggingFaceClient | None = None,
        arxiv: ArxivClient | None = None,
    ):
        """Initialize resolver.

        Args:
            huggingface: Daily-aggregation index client (queried first)
            arxiv: Per-id lookup client (queried second)
        """
        self.huggingface = huggingface or HuggingFaceClient()
        self.arxiv = arxiv or ArxivClient()

    async def resolve(self, paper_id: str) -> FetchedPaper | None:
        """Resolve metadata for a paper.

        Args:
            paper_id: Catalog identifier

        Returns:
            FetchedPaper, or None if neither source knows the paper
        """
        try:
            paper = await self.huggingface.find_paper(paper_id)
            if paper is not None:
                return paper
            logger.info(f"{paper_id} not in HuggingFace daily index, trying arXiv")
        except Exception as e:
            logger.warning(f"HuggingFace lookup failed for {paper_id}: {e}")

        try:
            paper = await self.arxiv.lookup(paper_id)
            if paper is not None:
                return paper
        except Exception as e:
            logger.warning(f"arXiv lookup failed for {paper_id}: {e}")

        logger.warning(f"No metadata found for {paper_id}")
        return None

    async def resolve_or_synthesize(self, paper_id: str) -> FetchedPaper:
        """Resolve metadata, falling back to a placeholder record."""
        paper = await self.resolve(paper_id)
        if paper is None:
            return FetchedPaper.synthetic(paper_id)
        return paper

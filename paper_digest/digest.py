"""Cached topic feeds and trend briefs."""

from __future__ import annotations

import logging

from .cache import DailyCache
from .models import FeedPaper, PaperTags
from .sources.arxiv import ArxivClient
from .sources.huggingface import HuggingFaceClient
from .summarizer import batch_generate_tags, generate_trends
from .topics import (
    get_arxiv_categories,
    get_subtopic_label,
    get_topic_label,
    is_huggingface_source,
)

logger = logging.getLogger(__name__)

FEED_SIZE = 10
ARXIV_FEED_FETCH = 30
TREND_ITEMS = 50
NO_PAPERS_MESSAGE = "No papers found for this period."


class DigestService:
    """Builds topic feeds and trend briefs, cached until the daily rollover."""

    def __init__(
        self,
        cache: DailyCache,
        llm,
        huggingface: HuggingFaceClient | None = None,
        arxiv: ArxivClient | None = None,
    ):
        """Initialize service.

        Args:
            cache: Daily cache for computed results
            llm: LangChain chat model for tags and trend briefs
            huggingface: Daily index client
            arxiv: arXiv search client
        """
        self.cache = cache
        self.llm = llm
        self.huggingface = huggingface or HuggingFaceClient()
        self.arxiv = arxiv or ArxivClient()

    async def _raw_feed(self, topic: str, subtopic: str) -> list[FeedPaper]:
        if is_huggingface_source(topic, subtopic):
            hf_papers = await self.huggingface.fetch_daily_papers(limit=FEED_SIZE)
            return [
                FeedPaper(
                    id=p.id,
                    title=p.title,
                    authors=p.authors,
                    abstract="",
                    description="",
                    ml_tag="Other",
                    app_tag="General",
                    arxiv_url=p.arxiv_url,
                    pdf_url=p.pdf_url,
                    published_at=p.published_at,
                    source="huggingface",
                    media_urls=p.media_urls,
                    thumbnail=p.thumbnail,
                )
                for p in hf_papers
            ]

        categories = get_arxiv_categories(topic, subtopic)
        if not categories:
            return []
        arxiv_papers = await self.arxiv.search(categories, max_results=ARXIV_FEED_FETCH)
        return [
            FeedPaper(
                id=p.id,
                title=p.title,
                authors=p.authors,
                abstract=p.abstract,
                description="",
                ml_tag="Other",
                app_tag="General",
                arxiv_url=p.arxiv_url,
                pdf_url=p.pdf_url,
                published_at=p.published_at,
                source="arxiv",
            )
            for p in arxiv_papers[:FEED_SIZE]
        ]

    async def get_feed(self, topic: str = "ai", subtopic: str = "everything", refresh: bool = False) -> list[FeedPaper]:
        """Get the tagged feed for a topic.

        Args:
            topic: Topic id
            subtopic: Subtopic id
            refresh: Skip the cache check and rebuild

        Returns:
            Tagged feed papers
        """
        cache_key = f"feed/{topic}-{subtopic}"
        if not refresh:
            cached = self.cache.get_cached(cache_key)
            if cached:
                return [FeedPaper.from_dict(p) for p in cached]

        papers = await self._raw_feed(topic, subtopic)
        if not papers:
            return []

        try:
            tags = await batch_generate_tags(
                self.llm, [{"title": p.title, "abstract": p.abstract} for p in papers]
            )
        except Exception as e:
            logger.warning(f"Tagging failed for {cache_key}, using defaults: {e}")
            tags = []

        for i, paper in enumerate(papers):
            tag = tags[i] if i < len(tags) else PaperTags()
            paper.ml_tag = tag.ml_tag
            paper.app_tag = tag.app_tag
            paper.description = tag.description or paper.abstract[:200]

        self.cache.set_cache(cache_key, [p.to_dict() for p in papers])
        return papers

    async def get_trends(
        self,
        topic: str = "ai",
        subtopic: str = "everything",
        date_range: str = "month",
        refresh: bool = False,
    ) -> str:
        """Get the trend brief for a topic over a date range.

        Args:
            topic: Topic id
            subtopic: Subtopic id
            date_range: "day", "week" or "month"
            refresh: Skip the cache check and regenerate

        Returns:
            Markdown brief, or an empty string for unknown topics
        """
        cache_key = f"trends/{topic}-{subtopic}-{date_range}"
        if not refresh:
            cached = self.cache.get_cached(cache_key)
            if cached:
                return cached

        if is_huggingface_source(topic, subtopic):
            items = await self.huggingface.fetch_recent_items(TREND_ITEMS, date_range)
        else:
            categories = get_arxiv_categories(topic, subtopic)
            if not categories:
                return ""
            items = await self.arxiv.fetch_recent_items(categories, TREND_ITEMS, date_range)

        if not items:
            return NO_PAPERS_MESSAGE

        content = await generate_trends(
            self.llm,
            items,
            get_topic_label(topic),
            get_subtopic_label(topic, subtopic),
            date_range,
        )
        self.cache.set_cache(cache_key, content)
        return content

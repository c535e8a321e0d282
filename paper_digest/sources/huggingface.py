"""HuggingFace Daily Papers client."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import httpx

from ..models import FetchedPaper, arxiv_abs_url, arxiv_pdf_url

logger = logging.getLogger(__name__)

HUGGINGFACE_API_URL = "https://huggingface.co/api/daily_papers"

RANGE_DAYS = {"day": 1, "week": 7, "month": 30}


def date_n_days_ago(n: int) -> str:
    """Return the UTC date n days before today (YYYY-MM-DD)."""
    return (datetime.now(timezone.utc) - timedelta(days=n)).strftime("%Y-%m-%d")


def to_fetched_paper(item: dict) -> FetchedPaper:
    """Map a daily-papers item to a FetchedPaper."""
    paper_data = item.get("paper", {})
    paper_id = paper_data.get("id", "")

    authors = [
        author.get("name", "")
        for author in paper_data.get("authors", [])
        if author.get("name")
    ]

    return FetchedPaper(
        id=paper_id,
        title=item.get("title") or paper_data.get("title", ""),
        authors=authors,
        arxiv_url=arxiv_abs_url(paper_id),
        pdf_url=arxiv_pdf_url(paper_id),
        upvotes=item.get("numUpvotes") or 0,
        published_at=paper_data.get("publishedAt", ""),
        media_urls=item.get("mediaUrls") or paper_data.get("mediaUrls") or [],
        thumbnail=item.get("thumbnail"),
    )


class HuggingFaceClient:
    """Client for the HuggingFace Daily Papers index."""

    def __init__(self, timeout: float = 10.0):
        """Initialize client.

        Args:
            timeout: Request timeout in seconds
        """
        self.timeout = timeout

    async def fetch_for_date(self, date: str | None = None) -> list[dict]:
        """Fetch the raw daily-papers list.

        Args:
            date: Index date (YYYY-MM-DD). If None, the API's current day.

        Returns:
            List of raw items, empty on any request failure
        """
        params = {"date": date} if date else None
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(HUGGINGFACE_API_URL, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"HuggingFace API error for date={date}: {e}")
            return []
        except ValueError as e:
            logger.error(f"HuggingFace API returned invalid JSON for date={date}: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Unexpected HuggingFace response type: {type(data).__name__}")
            return []
        return data

    async def find_paper(self, paper_id: str, date: str | None = None) -> FetchedPaper | None:
        """Find a paper in the daily index by its paper id.

        The daily list is small, so it is scanned linearly.

        Args:
            paper_id: Catalog id to look for
            date: Index date, or None for the current day

        Returns:
            FetchedPaper, or None if the id is not listed
        """
        for item in await self.fetch_for_date(date):
            if item.get("paper", {}).get("id") == paper_id:
                return to_fetched_paper(item)
        return None

    async def fetch_daily_papers(self, limit: int = 10, lookback_days: int = 7) -> list[FetchedPaper]:
        """Fetch the most upvoted papers of the most recent non-empty day.

        Args:
            limit: Maximum number of papers to return
            lookback_days: How many days back to look for a non-empty index

        Returns:
            Papers sorted by upvotes, descending
        """
        data: list[dict] = []
        for days_back in range(lookback_days):
            date = date_n_days_ago(days_back)
            data = await self.fetch_for_date(date)
            logger.info(f"HuggingFace returned {len(data)} papers for {date}")
            if data:
                break

        data.sort(key=lambda item: item.get("numUpvotes") or 0, reverse=True)
        return [to_fetched_paper(item) for item in data[:limit]]

    async def fetch_recent_items(self, limit: int, date_range: str = "month") -> list[dict]:
        """Collect unique papers over a date range.

        Args:
            limit: Maximum number of items
            date_range: "day", "week" or "month"

        Returns:
            List of {"title", "abstract"} dicts, newest day first
        """
        days = RANGE_DAYS.get(date_range, 30)
        dates = [date_n_days_ago(i) for i in range(days)]
        batches = await asyncio.gather(*(self.fetch_for_date(d) for d in dates))

        seen: set[str] = set()
        items: list[dict] = []
        for batch in batches:
            for item in batch:
                paper_data = item.get("paper", {})
                paper_id = paper_data.get("id")
                if not paper_id or paper_id in seen:
                    continue
                seen.add(paper_id)
                items.append(
                    {
                        "title": item.get("title") or paper_data.get("title", ""),
                        "abstract": item.get("summary") or paper_data.get("summary", ""),
                    }
                )
                if len(items) >= limit:
                    return items
        return items

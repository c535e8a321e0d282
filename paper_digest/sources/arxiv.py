"""ArXiv API client for paper lookup and category search."""

import asyncio
import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone

import httpx

from ..models import ArxivPaper, FetchedPaper, arxiv_abs_url, arxiv_pdf_url, utc_now_iso

logger = logging.getLogger(__name__)

_ENTRY_TITLE = re.compile(r"<entry>[\s\S]*?<title>([\s\S]*?)</title>")
_AUTHOR_NAME = re.compile(r"<author>\s*<name>([^<]+)</name>")
_PAPER_ID = re.compile(r"(\d{4}\.\d{4,5})")

RANGE_DAYS = {"day": 1, "week": 7, "month": 30}

NS = {
    "atom": "http://www.w3.org/2005/Atom",
    "arxiv": "http://arxiv.org/schemas/atom",
}


def clean_text(text: str) -> str:
    """Collapse runs of whitespace."""
    return re.sub(r"\s+", " ", text).strip()


def extract_paper_id(id_url: str) -> str:
    """Pull the accession number out of an arXiv id URL."""
    match = _PAPER_ID.search(id_url)
    if match:
        return match.group(1)
    return re.sub(r"v\d+$", "", id_url.split("/abs/")[-1])


class ArxivClient:
    """Client for the arXiv export API."""

    BASE_URL = "http://export.arxiv.org/api/query"

    def __init__(self, timeout: float = 10.0, search_timeout: float = 20.0, retry_delay: float = 3.0):
        """Initialize client.

        Args:
            timeout: Timeout for single-id lookups in seconds
            search_timeout: Timeout for category searches in seconds
            retry_delay: Delay before retrying a failed search
        """
        self.timeout = timeout
        self.search_timeout = search_timeout
        self.retry_delay = retry_delay

    async def lookup(self, paper_id: str) -> FetchedPaper | None:
        """Look up one paper by id.

        The Atom response is matched with regular expressions; only the
        title and author names are extracted.

        Args:
            paper_id: arXiv accession number

        Returns:
            FetchedPaper, or None if the request fails or no entry matches
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    self.BASE_URL,
                    params={"id_list": paper_id, "max_results": 1},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error(f"arXiv lookup failed for {paper_id}: {e}")
                return None

        xml_data = response.text
        title_match = _ENTRY_TITLE.search(xml_data)
        if not title_match:
            return None

        return FetchedPaper(
            id=paper_id,
            title=clean_text(title_match.group(1)),
            authors=[m.strip() for m in _AUTHOR_NAME.findall(xml_data)],
            arxiv_url=arxiv_abs_url(paper_id),
            pdf_url=arxiv_pdf_url(paper_id),
            upvotes=0,
            published_at=utc_now_iso(),
            media_urls=[],
        )

    def _build_search_query(self, categories: list[str], date_range: str | None) -> str:
        cat_query = "+OR+".join(f"cat:{cat}" for cat in categories)
        if not date_range:
            return cat_query

        now = datetime.now(timezone.utc)
        start = now - timedelta(days=RANGE_DAYS.get(date_range, 30))
        return (
            f"{cat_query}+AND+submittedDate:"
            f"[{start.strftime('%Y%m%d')}0000+TO+{now.strftime('%Y%m%d')}2359]"
        )

    async def _fetch_with_retry(self, url: str, retries: int = 1) -> str:
        for attempt in range(retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.search_timeout) as client:
                    response = await client.get(url)
                    response.raise_for_status()
                    return response.text
            except httpx.HTTPError as e:
                logger.warning(f"arXiv API attempt {attempt + 1} failed for {url}: {e}")
                if attempt >= retries:
                    raise
                await asyncio.sleep(self.retry_delay)
        raise RuntimeError("unreachable")

    def parse_feed(self, xml_data: str) -> list[ArxivPaper]:
        """Parse an Atom feed into ArxivPaper records."""
        papers: list[ArxivPaper] = []
        try:
            root = ET.fromstring(xml_data)
        except ET.ParseError as e:
            logger.error(f"Failed to parse arXiv XML: {e}")
            return papers

        for entry in root.findall("atom:entry", NS):
            id_elem = entry.find("atom:id", NS)
            if id_elem is None or id_elem.text is None:
                continue
            paper_id = extract_paper_id(id_elem.text)

            title_elem = entry.find("atom:title", NS)
            summary_elem = entry.find("atom:summary", NS)
            published_elem = entry.find("atom:published", NS)

            authors: list[str] = []
            for a in entry.findall("atom:author", NS):
                name_elem = a.find("atom:name", NS)
                if name_elem is not None and name_elem.text:
                    authors.append(name_elem.text.strip())

            categories = [c.get("term") for c in entry.findall("atom:category", NS) if c.get("term")]

            papers.append(
                ArxivPaper(
                    id=paper_id,
                    title=clean_text(title_elem.text or "") if title_elem is not None else "",
                    authors=authors,
                    abstract=(summary_elem.text or "").strip() if summary_elem is not None else "",
                    categories=categories,
                    published_at=(published_elem.text or "") if published_elem is not None else "",
                    pdf_url=arxiv_pdf_url(paper_id),
                    arxiv_url=arxiv_abs_url(paper_id),
                )
            )
        return papers

    async def search(
        self,
        categories: list[str],
        max_results: int = 30,
        date_range: str | None = None,
    ) -> list[ArxivPaper]:
        """Search recent papers in the given categories.

        Args:
            categories: arXiv category codes (e.g. ["cs.AI", "cs.LG"])
            max_results: Maximum number of papers to fetch
            date_range: Optional "day", "week" or "month" submission window

        Returns:
            Papers sorted by submission date, newest first

        Raises:
            httpx.HTTPError: If the request still fails after one retry
        """
        search_query = self._build_search_query(categories, date_range)
        url = (
            f"{self.BASE_URL}?"
            f"search_query={search_query}&"
            f"start=0&"
            f"max_results={max_results}&"
            f"sortBy=submittedDate&"
            f"sortOrder=descending"
        )
        logger.info(f"Fetching arXiv papers: {url}")

        xml_data = await self._fetch_with_retry(url)
        if "<entry>" not in xml_data:
            logger.warning(f"No arXiv entries for categories: {', '.join(categories)}")
            return []

        papers = self.parse_feed(xml_data)
        logger.info(f"Got {len(papers)} arXiv papers for {', '.join(categories)}")
        return papers

    async def fetch_recent_items(
        self, categories: list[str], limit: int, date_range: str = "month"
    ) -> list[dict]:
        """Return {"title", "abstract"} dicts with abstracts cut to 200 characters."""
        papers = await self.search(categories, max_results=limit, date_range=date_range)
        return [{"title": p.title, "abstract": p.abstract[:200].strip()} for p in papers]

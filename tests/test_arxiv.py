"""Tests for paper_digest.sources.arxiv module."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from paper_digest.sources.arxiv import ArxivClient, clean_text, extract_paper_id

LOOKUP_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>ArXiv Query: id_list=2501.00001</title>
  <entry>
    <id>http://arxiv.org/abs/2501.00001v1</id>
    <title>Attention Is
      Still All You Need</title>
    <author>
      <name> Alice Smith </name>
    </author>
    <author>
      <name>Bob Johnson</name>
    </author>
  </entry>
</feed>
"""

EMPTY_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>ArXiv Query: id_list=9999.99999</title>
</feed>
"""


def mock_http(mock_client_class, text: str | None = None, side_effect=None) -> AsyncMock:
    mock_response = MagicMock()
    mock_response.text = text
    mock_response.raise_for_status = MagicMock()

    mock_async_client = AsyncMock()
    if side_effect is not None:
        mock_async_client.get.side_effect = side_effect
    else:
        mock_async_client.get.return_value = mock_response
    mock_async_client.__aenter__.return_value = mock_async_client
    mock_async_client.__aexit__.return_value = None
    mock_client_class.return_value = mock_async_client
    return mock_async_client


class TestHelpers:
    def test_clean_text(self) -> None:
        assert clean_text("  A\n   study  of\tthings ") == "A study of things"

    def test_extract_paper_id_strips_version(self) -> None:
        assert extract_paper_id("http://arxiv.org/abs/2501.00001v2") == "2501.00001"

    def test_extract_paper_id_old_style(self) -> None:
        assert extract_paper_id("http://arxiv.org/abs/hep-th/9901001v1") == "hep-th/9901001"
        assert extract_paper_id("http://arxiv.org/abs/math/0601001") == "math/0601001"


class TestLookup:
    """Tests for single-id lookup."""

    @pytest.mark.asyncio
    async def test_lookup_success(self) -> None:
        """Test the title and authors are extracted from the first entry."""
        client = ArxivClient()

        with patch("paper_digest.sources.arxiv.httpx.AsyncClient") as mock_client_class:
            mock_client = mock_http(mock_client_class, LOOKUP_RESPONSE)
            paper = await client.lookup("2501.00001")

        assert paper is not None
        assert paper.id == "2501.00001"
        assert paper.title == "Attention Is Still All You Need"
        assert paper.authors == ["Alice Smith", "Bob Johnson"]
        assert paper.pdf_url == "https://arxiv.org/pdf/2501.00001"
        assert paper.upvotes == 0
        assert paper.published_at
        assert mock_client.get.call_args.kwargs["params"] == {
            "id_list": "2501.00001",
            "max_results": 1,
        }

    @pytest.mark.asyncio
    async def test_lookup_no_entry(self) -> None:
        client = ArxivClient()

        with patch("paper_digest.sources.arxiv.httpx.AsyncClient") as mock_client_class:
            mock_http(mock_client_class, EMPTY_RESPONSE)
            assert await client.lookup("9999.99999") is None

    @pytest.mark.asyncio
    async def test_lookup_http_error(self) -> None:
        """Test request failures are reported as a miss."""
        client = ArxivClient()

        with patch("paper_digest.sources.arxiv.httpx.AsyncClient") as mock_client_class:
            mock_http(mock_client_class, side_effect=httpx.HTTPError("Connection failed"))
            assert await client.lookup("2501.00001") is None


class TestSearch:
    """Tests for category search."""

    def test_parse_feed(self, mock_arxiv_response: str) -> None:
        """Test Atom entries are parsed into ArxivPaper records."""
        papers = ArxivClient().parse_feed(mock_arxiv_response)

        assert len(papers) == 3
        first = papers[0]
        assert first.id == "2501.00001"
        assert first.title == "Test Paper One: A Study in Machine Learning"
        assert first.authors == ["Alice Smith", "Bob Johnson"]
        assert first.abstract == "This paper studies machine learning."
        assert first.categories == ["cs.AI", "cs.LG"]
        assert first.arxiv_url == "https://arxiv.org/abs/2501.00001"

    def test_parse_feed_invalid_xml(self) -> None:
        assert ArxivClient().parse_feed("<feed><entry>") == []

    def test_build_search_query(self) -> None:
        client = ArxivClient()
        assert client._build_search_query(["cs.AI", "cs.LG"], None) == "cat:cs.AI+OR+cat:cs.LG"

        query = client._build_search_query(["cs.AI"], "week")
        assert query.startswith("cat:cs.AI+AND+submittedDate:[")
        assert query.endswith("2359]")

    @pytest.mark.asyncio
    async def test_search_success(self, mock_arxiv_response: str) -> None:
        client = ArxivClient()

        with patch("paper_digest.sources.arxiv.httpx.AsyncClient") as mock_client_class:
            mock_client = mock_http(mock_client_class, mock_arxiv_response)
            papers = await client.search(["cs.AI"], max_results=10)

        assert [p.id for p in papers] == ["2501.00001", "2501.00002", "2501.00003"]
        url = mock_client.get.call_args.args[0]
        assert "search_query=cat:cs.AI" in url
        assert "max_results=10" in url
        assert "sortBy=submittedDate" in url

    @pytest.mark.asyncio
    async def test_search_no_entries(self) -> None:
        client = ArxivClient()

        with patch("paper_digest.sources.arxiv.httpx.AsyncClient") as mock_client_class:
            mock_http(mock_client_class, EMPTY_RESPONSE)
            assert await client.search(["cs.AI"]) == []

    @pytest.mark.asyncio
    async def test_search_retries_once(self, mock_arxiv_response: str) -> None:
        """Test a failed search is retried once after a delay."""
        client = ArxivClient(retry_delay=0)
        ok = MagicMock()
        ok.text = mock_arxiv_response
        ok.raise_for_status = MagicMock()

        with patch("paper_digest.sources.arxiv.httpx.AsyncClient") as mock_client_class:
            mock_client = mock_http(
                mock_client_class, side_effect=[httpx.HTTPError("Connection reset"), ok]
            )
            papers = await client.search(["cs.AI"])

        assert mock_client.get.await_count == 2
        assert len(papers) == 3

    @pytest.mark.asyncio
    async def test_search_raises_after_retry(self) -> None:
        client = ArxivClient(retry_delay=0)

        with patch("paper_digest.sources.arxiv.httpx.AsyncClient") as mock_client_class:
            mock_client = mock_http(mock_client_class, side_effect=httpx.HTTPError("Connection failed"))
            with pytest.raises(httpx.HTTPError):
                await client.search(["cs.AI"])

        assert mock_client.get.await_count == 2

    @pytest.mark.asyncio
    async def test_fetch_recent_items(self, mock_arxiv_response: str) -> None:
        client = ArxivClient()

        with patch("paper_digest.sources.arxiv.httpx.AsyncClient") as mock_client_class:
            mock_http(mock_client_class, mock_arxiv_response)
            items = await client.fetch_recent_items(["cs.AI"], limit=3, date_range="month")

        assert items[0] == {
            "title": "Test Paper One: A Study in Machine Learning",
            "abstract": "This paper studies machine learning.",
        }
        assert len(items) == 3

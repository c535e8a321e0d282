"""Tests for HuggingFace client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from paper_digest.sources.huggingface import HuggingFaceClient, to_fetched_paper

DAILY_ITEMS = [
    {
        "paper": {
            "id": "2501.00001",
            "title": "Paper-level title",
            "authors": [{"name": "Alice Smith"}, {"name": "Bob Johnson"}, {"user": "x"}],
            "publishedAt": "2025-01-15T00:00:00.000Z",
            "summary": "Abstract one.",
        },
        "title": "Item Title One",
        "numUpvotes": 12,
        "thumbnail": "https://cdn/thumb1.png",
        "mediaUrls": ["https://cdn/video1.mp4"],
    },
    {
        "paper": {
            "id": "2501.00002",
            "title": "Second Paper",
            "authors": [{"name": "Carol Williams"}],
            "publishedAt": "2025-01-15T00:00:00.000Z",
            "summary": "Abstract two.",
            "mediaUrls": ["https://cdn/fig2.png"],
        },
        "numUpvotes": 40,
    },
]


def mock_http(mock_client_class, data=None, side_effect=None) -> AsyncMock:
    """Wire a patched httpx.AsyncClient to return data."""
    # httpx response.json() is synchronous, so use MagicMock not AsyncMock
    mock_response = MagicMock()
    mock_response.json.return_value = data
    mock_response.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.get.side_effect = side_effect
    else:
        mock_client.get.return_value = mock_response
    mock_client_class.return_value.__aenter__.return_value = mock_client
    return mock_client


class TestToFetchedPaper:
    """Tests for item mapping."""

    def test_item_fields_win(self) -> None:
        """Test item-level title and media take precedence."""
        paper = to_fetched_paper(DAILY_ITEMS[0])

        assert paper.id == "2501.00001"
        assert paper.title == "Item Title One"
        assert paper.authors == ["Alice Smith", "Bob Johnson"]
        assert paper.arxiv_url == "https://arxiv.org/abs/2501.00001"
        assert paper.pdf_url == "https://arxiv.org/pdf/2501.00001"
        assert paper.upvotes == 12
        assert paper.media_urls == ["https://cdn/video1.mp4"]
        assert paper.thumbnail == "https://cdn/thumb1.png"

    def test_falls_back_to_paper_fields(self) -> None:
        paper = to_fetched_paper(DAILY_ITEMS[1])

        assert paper.title == "Second Paper"
        assert paper.media_urls == ["https://cdn/fig2.png"]
        assert paper.thumbnail is None

    def test_missing_upvotes_and_media(self) -> None:
        paper = to_fetched_paper({"paper": {"id": "x", "title": "T"}})

        assert paper.upvotes == 0
        assert paper.media_urls == []
        assert paper.authors == []


class TestHuggingFaceClient:
    """Tests for the HuggingFaceClient class."""

    def test_init_default_timeout(self) -> None:
        """Test client initializes with default timeout."""
        assert HuggingFaceClient().timeout == 10.0

    @pytest.mark.asyncio
    async def test_fetch_for_date_passes_date(self) -> None:
        """Test the date is sent as a query parameter."""
        client = HuggingFaceClient()

        with patch("paper_digest.sources.huggingface.httpx.AsyncClient") as mock_client_class:
            mock_client = mock_http(mock_client_class, DAILY_ITEMS)
            items = await client.fetch_for_date("2025-01-15")

        assert items == DAILY_ITEMS
        assert mock_client.get.call_args.kwargs["params"] == {"date": "2025-01-15"}

    @pytest.mark.asyncio
    async def test_fetch_for_date_http_error(self) -> None:
        """Test request failures yield an empty list."""
        client = HuggingFaceClient()

        with patch("paper_digest.sources.huggingface.httpx.AsyncClient") as mock_client_class:
            mock_http(mock_client_class, side_effect=httpx.HTTPError("Connection failed"))
            assert await client.fetch_for_date() == []

    @pytest.mark.asyncio
    async def test_fetch_for_date_unexpected_shape(self) -> None:
        client = HuggingFaceClient()

        with patch("paper_digest.sources.huggingface.httpx.AsyncClient") as mock_client_class:
            mock_http(mock_client_class, {"error": "rate limited"})
            assert await client.fetch_for_date() == []

    @pytest.mark.asyncio
    async def test_find_paper_hit(self) -> None:
        client = HuggingFaceClient()

        with patch("paper_digest.sources.huggingface.httpx.AsyncClient") as mock_client_class:
            mock_http(mock_client_class, DAILY_ITEMS)
            paper = await client.find_paper("2501.00002")

        assert paper is not None
        assert paper.title == "Second Paper"
        assert paper.upvotes == 40

    @pytest.mark.asyncio
    async def test_find_paper_miss(self) -> None:
        client = HuggingFaceClient()

        with patch("paper_digest.sources.huggingface.httpx.AsyncClient") as mock_client_class:
            mock_http(mock_client_class, DAILY_ITEMS)
            assert await client.find_paper("2501.99999") is None

    @pytest.mark.asyncio
    async def test_fetch_daily_papers_sorted_by_upvotes(self) -> None:
        """Test the daily list is sorted by upvotes and truncated."""
        client = HuggingFaceClient()

        with patch.object(client, "fetch_for_date", AsyncMock(return_value=list(DAILY_ITEMS))):
            papers = await client.fetch_daily_papers(limit=1)

        assert [p.id for p in papers] == ["2501.00002"]

    @pytest.mark.asyncio
    async def test_fetch_daily_papers_looks_back(self) -> None:
        """Test empty days are skipped until a populated one is found."""
        client = HuggingFaceClient()
        fetch = AsyncMock(side_effect=[[], [], list(DAILY_ITEMS)])

        with patch.object(client, "fetch_for_date", fetch):
            papers = await client.fetch_daily_papers(limit=5, lookback_days=7)

        assert fetch.await_count == 3
        assert [p.id for p in papers] == ["2501.00002", "2501.00001"]

    @pytest.mark.asyncio
    async def test_fetch_daily_papers_nothing_found(self) -> None:
        client = HuggingFaceClient()

        with patch.object(client, "fetch_for_date", AsyncMock(return_value=[])):
            assert await client.fetch_daily_papers(lookback_days=3) == []

    @pytest.mark.asyncio
    async def test_fetch_recent_items_deduplicates(self) -> None:
        """Test papers listed on several days appear once."""
        client = HuggingFaceClient()

        with patch.object(client, "fetch_for_date", AsyncMock(return_value=list(DAILY_ITEMS))):
            items = await client.fetch_recent_items(limit=10, date_range="week")

        assert items == [
            {"title": "Item Title One", "abstract": "Abstract one."},
            {"title": "Second Paper", "abstract": "Abstract two."},
        ]

    @pytest.mark.asyncio
    async def test_fetch_recent_items_limit(self) -> None:
        client = HuggingFaceClient()

        with patch.object(client, "fetch_for_date", AsyncMock(return_value=list(DAILY_ITEMS))):
            items = await client.fetch_recent_items(limit=1, date_range="day")

        assert len(items) == 1

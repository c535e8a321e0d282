"""PDF download into scoped temporary files."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import httpx

from .storage import safe_name

logger = logging.getLogger(__name__)


class PdfDownloadError(Exception):
    """Raised when a PDF cannot be fetched."""

    pass


class PdfDownloader:
    """Downloads paper PDFs to temporary files that are always removed."""

    def __init__(self, timeout: float = 60.0, tmp_dir: Path | str | None = None):
        """Initialize downloader.

        Args:
            timeout: Download timeout in seconds
            tmp_dir: Directory for temporary files (system default if None)
        """
        self.timeout = timeout
        self.tmp_dir = Path(tmp_dir) if tmp_dir else None

    async def fetch(self, pdf_url: str) -> bytes:
        """Fetch PDF bytes.

        Raises:
            PdfDownloadError: On any HTTP failure
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(pdf_url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise PdfDownloadError(f"Failed to download {pdf_url}: {e}") from e

    @asynccontextmanager
    async def downloaded(self, pdf_url: str, paper_id: str) -> AsyncIterator[Path]:
        """Download a PDF and yield its temporary path.

        The file is deleted when the block exits, whether it succeeds or
        raises.
        """
        content = await self.fetch(pdf_url)

        fd, name = tempfile.mkstemp(
            prefix=f"paper_{safe_name(paper_id)}_",
            suffix=".pdf",
            dir=self.tmp_dir,
        )
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            logger.info(f"Downloaded {len(content)} bytes for {paper_id}")
            yield path
        finally:
            try:
                path.unlink()
            except FileNotFoundError:
                pass

"""Paper catalog sources for paper-digest."""

from .arxiv import ArxivClient
from .huggingface import HuggingFaceClient

__all__ = ["ArxivClient", "HuggingFaceClient"]

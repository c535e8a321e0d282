"""Paper Digest - research paper import pipeline with LLM summaries."""

from .cache import DailyCache, current_logical_date
from .config_env import ConfigError, DigestConfig, load_config_from_env
from .digest import DigestService
from .importer import PaperImporter
from .models import (
    BatchImportResult,
    CacheEntry,
    DayMeta,
    DiagramSpec,
    FeedPaper,
    FetchedPaper,
    FigureReference,
    PaperSummary,
    StoredPaper,
)
from .pdf import PdfDownloader, PdfDownloadError
from .resolver import MetadataResolver
from .scheduler import DailyFetchScheduler
from .sources.arxiv import ArxivClient
from .sources.huggingface import HuggingFaceClient
from .storage import FileStore, PaperStore, get_store
from .summarizer import (
    MalformedResponseError,
    PaperSummarizer,
    SummarizationError,
    get_llm_for_provider,
    parse_llm_json,
)

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "MetadataResolver",
    "PaperImporter",
    "PaperSummarizer",
    "PdfDownloader",
    "get_llm_for_provider",
    "parse_llm_json",
    # Storage and cache
    "DailyCache",
    "FileStore",
    "PaperStore",
    "current_logical_date",
    "get_store",
    # Sources
    "ArxivClient",
    "HuggingFaceClient",
    # Services
    "DailyFetchScheduler",
    "DigestService",
    # Models
    "BatchImportResult",
    "CacheEntry",
    "DayMeta",
    "DiagramSpec",
    "FeedPaper",
    "FetchedPaper",
    "FigureReference",
    "PaperSummary",
    "StoredPaper",
    # Configuration and errors
    "ConfigError",
    "DigestConfig",
    "MalformedResponseError",
    "PdfDownloadError",
    "SummarizationError",
    "load_config_from_env",
]

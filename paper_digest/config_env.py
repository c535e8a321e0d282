"""Environment variable configuration for paper-digest."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .storage import PaperStore, get_store
from .summarizer import get_llm_for_provider


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


@dataclass
class DigestConfig:
    """Runtime configuration."""

    # LLM settings
    llm_provider: str = "google"
    llm_model: str | None = None
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None
    google_api_key: str | None = None

    # Storage
    store_url: str = "file://data"

    # Import settings
    import_concurrency: int = 3
    daily_paper_limit: int = 5

    # Timeouts (seconds)
    http_timeout: float = 10.0
    pdf_timeout: float = 60.0
    llm_timeout: float = 300.0

    def create_store(self) -> PaperStore:
        """Build the storage backend selected by store_url."""
        return get_store(self.store_url)

    def create_llm(self, max_tokens: int = 16384):
        """Build the chat model for the configured provider."""
        return get_llm_for_provider(
            self.llm_provider,
            anthropic_api_key=self.anthropic_api_key,
            openai_api_key=self.openai_api_key,
            google_api_key=self.google_api_key,
            model=self.llm_model,
            max_tokens=max_tokens,
            timeout=self.llm_timeout,
        )


def parse_list(value: str) -> list[str]:
    """Parse comma-separated list, stripping whitespace."""
    if not value.strip():
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_int(name: str, default: int, errors: list[str], minimum: int = 1) -> int:
    raw = os.environ.get(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer")
        return default
    if value < minimum:
        errors.append(f"{name} must be at least {minimum}")
        return default
    return value


def _parse_float(name: str, default: float, errors: list[str]) -> float:
    raw = os.environ.get(name, str(default))
    try:
        value = float(raw)
    except ValueError:
        errors.append(f"{name} must be a number")
        return default
    if value <= 0:
        errors.append(f"{name} must be positive")
        return default
    return value


def load_config_from_env(require_llm: bool = True) -> DigestConfig:
    """Load configuration from environment variables.

    Optional environment variables:
        LLM_PROVIDER: LLM provider (default: "google")
        LLM_MODEL: Model name override
        GOOGLE_API_KEY, ANTHROPIC_API_KEY, OPENAI_API_KEY: API keys
        PAPER_STORE_URL: Storage connection string (default: "file://data")
        IMPORT_CONCURRENCY: Papers imported at once (default: 3)
        DAILY_PAPER_LIMIT: Papers imported by the daily fetch (default: 5)
        HTTP_TIMEOUT, PDF_TIMEOUT, LLM_TIMEOUT: Per-call deadlines in seconds

    Args:
        require_llm: Require an API key for the chosen provider

    Returns:
        DigestConfig instance

    Raises:
        ConfigError: If variables are missing or invalid
    """
    errors: list[str] = []

    llm_provider = os.environ.get("LLM_PROVIDER", "google").strip().lower()
    if llm_provider not in ("google", "anthropic", "openai"):
        errors.append(f"LLM_PROVIDER must be one of google, anthropic, openai (got '{llm_provider}')")

    anthropic_api_key = os.environ.get("ANTHROPIC_API_KEY")
    openai_api_key = os.environ.get("OPENAI_API_KEY")
    google_api_key = os.environ.get("GOOGLE_API_KEY") or os.environ.get("GEMINI_API_KEY")

    # Validate API key for chosen provider
    if require_llm:
        if llm_provider == "google" and not google_api_key:
            errors.append("GOOGLE_API_KEY is required when LLM_PROVIDER=google")
        elif llm_provider == "anthropic" and not anthropic_api_key:
            errors.append("ANTHROPIC_API_KEY is required when LLM_PROVIDER=anthropic")
        elif llm_provider == "openai" and not openai_api_key:
            errors.append("OPENAI_API_KEY is required when LLM_PROVIDER=openai")

    store_url = os.environ.get("PAPER_STORE_URL", "file://data").strip()
    if not store_url:
        errors.append("PAPER_STORE_URL must not be empty")

    import_concurrency = _parse_int("IMPORT_CONCURRENCY", 3, errors)
    daily_paper_limit = _parse_int("DAILY_PAPER_LIMIT", 5, errors)
    http_timeout = _parse_float("HTTP_TIMEOUT", 10.0, errors)
    pdf_timeout = _parse_float("PDF_TIMEOUT", 60.0, errors)
    llm_timeout = _parse_float("LLM_TIMEOUT", 300.0, errors)

    if errors:
        raise ConfigError("Configuration errors:\n- " + "\n- ".join(errors))

    return DigestConfig(
        llm_provider=llm_provider,
        llm_model=os.environ.get("LLM_MODEL") or None,
        anthropic_api_key=anthropic_api_key,
        openai_api_key=openai_api_key,
        google_api_key=google_api_key,
        store_url=store_url,
        import_concurrency=import_concurrency,
        daily_paper_limit=daily_paper_limit,
        http_timeout=http_timeout,
        pdf_timeout=pdf_timeout,
        llm_timeout=llm_timeout,
    )

"""LLM-based paper summarization, tagging and trend analysis."""

from __future__ import annotations

import base64
import json
import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from langchain_core.messages import HumanMessage

from .models import (
    DiagramSpec,
    FetchedPaper,
    FigureReference,
    PaperSummary,
    PaperTags,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "google": "gemini-2.5-pro",
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
}

SUMMARY_PROMPT = """You are an expert science communicator. Given a research paper PDF, produce a structured JSON summary.

All text fields support Markdown and LaTeX math ($...$ inline, $$...$$ display).

Your response must be valid JSON with exactly these fields:
{
  "summary": "A 3-4 paragraph markdown explanation for a smart general audience.",
  "technicalDetails": "A markdown technical breakdown with ### subheadings and LaTeX for key formulas.",
  "keyFindings": ["Each finding as a 1-2 sentence markdown string."],
  "diagrams": [{"figureNumber": "Figure 1", "description": "What this figure shows", "pageNumber": 1}],
  "mermaidDiagrams": [{"title": "Descriptive Title", "code": "Valid mermaid flowchart code"}],
  "tldr": "A single punchy sentence."
}

Rules:
- Escape backslashes in JSON strings: write \\\\alpha, not \\alpha
- List every figure and table; pageNumber is the exact 1-indexed PDF page
- Produce 1-2 compact mermaid flowcharts (5-10 nodes, short labels, ASCII node ids)"""

TRENDS_PROMPT = """You are a research trend analyst. Given {count} recent paper titles from {topic}/{subtopic} ({range}), write a sharp analysis in 100 words or fewer. No filler, no preamble.

Use these exact headers:

## Gaps & Issues
2-3 bullet points on unsolved problems and where current approaches fail.

## Research Opportunities
2-3 bullet points on promising directions, combining insights from these papers.

Titles:
{titles}"""

TAGS_PROMPT = """For each paper below, produce a JSON object with exactly these fields:
- "mlTag": one of ["LLMs", "Vision", "RL", "Generative", "Optimization", "Graph", "Theory", "Systems", "Data", "Other"]
- "appTag": one of ["Healthcare", "Robotics", "Code", "Science", "Education", "Finance", "NLP", "Security", "Retrieval", "General"]
- "description": a 2-3 sentence markdown description with **bold** key terms.

Return a JSON array of objects in the same order as the papers."""


class SummarizationError(Exception):
    """Raised when the LLM cannot produce a usable result."""

    pass


class MalformedResponseError(SummarizationError):
    """Raised when LLM output cannot be parsed as JSON by any strategy."""

    pass


# JSON recovery chain. Each tier takes the raw response text and either
# returns the decoded value or raises ValueError.


def strict_parse(text: str) -> Any:
    """Tier 1: parse the response as-is."""
    return json.loads(text)


def _outermost_span(text: str, opener: str) -> str:
    closer = "}" if opener == "{" else "]"
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        raise ValueError(f"No {opener}...{closer} block in response")
    return text[start : end + 1]


def extract_json_object(text: str, opener: str = "{") -> Any:
    """Tier 2: parse the largest brace-delimited substring."""
    return json.loads(_outermost_span(text, opener))


_STRAY_BACKSLASH = re.compile(r'(?<!\\)\\(?!["\\/bfnrtu])')


def _escape_control_chars(text: str) -> str:
    """Escape raw control characters that appear inside string literals."""
    out: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ord(ch) < 0x20:
                out.append(f"\\u{ord(ch):04x}")
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return "".join(out)


def repair_json_escapes(text: str, opener: str = "{") -> Any:
    """Tier 3: double stray backslashes and escape control characters, then parse."""
    candidate = _outermost_span(text, opener)
    candidate = _STRAY_BACKSLASH.sub(r"\\\\", candidate)
    return json.loads(_escape_control_chars(candidate))


def parse_llm_json(text: str, opener: str = "{") -> Any:
    """Parse LLM output, escalating through the recovery tiers.

    Args:
        text: Raw model response
        opener: "{" for an object response, "[" for an array response

    Returns:
        Decoded JSON value

    Raises:
        MalformedResponseError: If every tier fails
    """
    tiers: list[tuple[str, Callable[[str], Any]]] = [
        ("strict", strict_parse),
        ("extract", lambda t: extract_json_object(t, opener)),
        ("repair", lambda t: repair_json_escapes(t, opener)),
    ]
    failures: list[str] = []
    for name, tier in tiers:
        try:
            value = tier(text)
        except ValueError as e:
            failures.append(f"{name}: {e}")
            continue
        if failures:
            logger.warning(f"Recovered LLM JSON with '{name}' parse after: {'; '.join(failures)}")
        return value

    raise MalformedResponseError("Failed to parse LLM response as JSON (" + "; ".join(failures) + ")")


def response_text(response: Any) -> str:
    """Extract the text of a LangChain chat response."""
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content)


def build_summary(parsed: Any, paper: FetchedPaper) -> PaperSummary:
    """Combine parsed LLM output with resolved metadata."""
    if not isinstance(parsed, dict) or "summary" not in parsed:
        raise MalformedResponseError("LLM response is missing the 'summary' field")

    return PaperSummary(
        id=paper.id,
        title=paper.title,
        authors=list(paper.authors),
        arxiv_url=paper.arxiv_url,
        pdf_url=paper.pdf_url,
        summary=parsed.get("summary") or "",
        technical_details=parsed.get("technicalDetails") or "",
        key_findings=list(parsed.get("keyFindings") or []),
        diagrams=[FigureReference.from_dict(d) for d in parsed.get("diagrams") or [] if isinstance(d, dict)],
        mermaid_diagrams=[
            DiagramSpec.from_dict(d) for d in parsed.get("mermaidDiagrams") or [] if isinstance(d, dict)
        ],
        tldr=parsed.get("tldr") or "",
        upvotes=paper.upvotes,
        published_at=paper.published_at,
        fetched_at=utc_now_iso(),
        media_urls=list(paper.media_urls),
        thumbnail=paper.thumbnail,
    )


class PaperSummarizer:
    """Summarizes paper PDFs with a multimodal chat model."""

    def __init__(self, llm):
        """Initialize summarizer.

        Args:
            llm: LangChain chat model that accepts PDF file content blocks
        """
        self.llm = llm

    def build_message(self, pdf_bytes: bytes, title: str) -> HumanMessage:
        return HumanMessage(
            content=[
                {"type": "text", "text": SUMMARY_PROMPT},
                {
                    "type": "file",
                    "source_type": "base64",
                    "mime_type": "application/pdf",
                    "data": base64.b64encode(pdf_bytes).decode("ascii"),
                },
                {
                    "type": "text",
                    "text": f'Please analyze this paper: "{title}" and produce the JSON summary as specified.',
                },
            ]
        )

    async def summarize(self, pdf_path: Path | str, paper: FetchedPaper) -> PaperSummary:
        """Summarize a downloaded paper.

        Args:
            pdf_path: Path to the PDF file
            paper: Resolved metadata

        Returns:
            PaperSummary combining metadata and the generated sections

        Raises:
            MalformedResponseError: If the model output cannot be parsed
        """
        pdf_bytes = Path(pdf_path).read_bytes()
        response = await self.llm.ainvoke([self.build_message(pdf_bytes, paper.title)])
        parsed = parse_llm_json(response_text(response))
        return build_summary(parsed, paper)


async def generate_trends(
    llm,
    items: list[dict],
    topic_label: str,
    subtopic_label: str,
    range_label: str,
) -> str:
    """Write a short gaps-and-opportunities brief for a set of papers."""
    titles = "\n".join(f"{i + 1}. {item['title']}" for i, item in enumerate(items))
    prompt = TRENDS_PROMPT.format(
        count=len(items),
        topic=topic_label,
        subtopic=subtopic_label,
        range=range_label,
        titles=titles,
    )
    response = await llm.ainvoke(prompt)
    return response_text(response).strip()


async def batch_generate_tags(llm, items: list[dict]) -> list[PaperTags]:
    """Tag a batch of papers in one request.

    Raises:
        MalformedResponseError: If the response is not a JSON array
    """
    papers_text = "\n".join(
        f'{i + 1}. Title: "{item["title"]}" | Abstract: "{item.get("abstract", "")[:300]}"'
        for i, item in enumerate(items)
    )
    response = await llm.ainvoke(f"{TAGS_PROMPT}\n\nPapers:\n{papers_text}")
    parsed = parse_llm_json(response_text(response), opener="[")
    if not isinstance(parsed, list):
        raise MalformedResponseError("Tag response is not a JSON array")

    tags = []
    for entry in parsed:
        if not isinstance(entry, dict):
            entry = {}
        tags.append(
            PaperTags(
                ml_tag=entry.get("mlTag") or "Other",
                app_tag=entry.get("appTag") or "General",
                description=entry.get("description") or "",
            )
        )
    return tags


def get_llm_for_provider(
    provider: str,
    anthropic_api_key: str | None = None,
    openai_api_key: str | None = None,
    google_api_key: str | None = None,
    model: str | None = None,
    max_tokens: int = 16384,
    timeout: float = 300.0,
):
    """Get a chat model instance for the specified provider.

    Args:
        provider: One of "google", "anthropic", or "openai"
        anthropic_api_key: Anthropic API key (required for anthropic provider)
        openai_api_key: OpenAI API key (required for openai provider)
        google_api_key: Google API key (required for google provider)
        model: Model name override
        max_tokens: Output token limit
        timeout: Per-call deadline in seconds

    Returns:
        LangChain chat model instance

    Raises:
        ValueError: If provider is unknown or API key is missing
        ImportError: If required langchain package is not installed
    """
    model = model or DEFAULT_MODELS.get(provider)

    if provider == "google":
        if not google_api_key:
            raise ValueError("google_api_key is required for google provider")
        try:
            from langchain_google_genai import ChatGoogleGenerativeAI

            return ChatGoogleGenerativeAI(
                model=model,
                google_api_key=google_api_key,
                max_output_tokens=max_tokens,
                timeout=timeout,
            )
        except ImportError as e:
            raise ImportError(
                "langchain-google-genai not installed. Install with: pip install paper-digest[google]"
            ) from e

    elif provider == "anthropic":
        if not anthropic_api_key:
            raise ValueError("anthropic_api_key is required for anthropic provider")
        try:
            from langchain_anthropic import ChatAnthropic

            return ChatAnthropic(
                model=model,
                api_key=anthropic_api_key,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except ImportError as e:
            raise ImportError(
                "langchain-anthropic not installed. Install with: pip install paper-digest[anthropic]"
            ) from e

    elif provider == "openai":
        if not openai_api_key:
            raise ValueError("openai_api_key is required for openai provider")
        try:
            from langchain_openai import ChatOpenAI

            return ChatOpenAI(
                model=model,
                api_key=openai_api_key,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except ImportError as e:
            raise ImportError(
                "langchain-openai not installed. Install with: pip install paper-digest[openai]"
            ) from e

    else:
        raise ValueError(f"Unknown provider: {provider}. Use 'google', 'anthropic', or 'openai'")

"""
Display formatting for comparison results.

Everything here is a pure function of its arguments; the CLI and the GUI
both render cards through render_card().
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from llm_compare.types import ProviderResult, RateLimitInfo, ResultMetadata, ResultStatus

NOT_AVAILABLE = "N/A"


def format_model_name(identifier: Optional[str]) -> str:
    """'gpt-4o-mini' -> 'Gpt 4o Mini'."""
    if not identifier:
        return "Unknown Model"
    return " ".join(part[:1].upper() + part[1:] for part in identifier.split("-"))


def format_response_time(ms: Optional[float]) -> str:
    if not ms:
        return NOT_AVAILABLE
    if ms < 1000:
        return f"{ms}ms"
    return f"{ms / 1000:.2f}s"


def format_duration(seconds: Optional[float]) -> str:
    """Quota reset countdowns. Fractions of a second are dropped."""
    if not seconds:
        return NOT_AVAILABLE
    total = int(seconds)
    if total < 60:
        return f"{total}s"
    if total < 3600:
        return f"{total // 60}m {total % 60}s"
    return f"{total // 3600}h {(total % 3600) // 60}m"


def format_timestamp(value: Union[datetime, str, None]) -> str:
    if not value:
        return NOT_AVAILABLE
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_count(n: int) -> str:
    return f"{n:,}"


def grid_columns(count: int) -> int:
    if count <= 1:
        return 1
    if count == 2:
        return 2
    return 3


@dataclass(frozen=True)
class MetadataSection:
    title: str
    rows: list[tuple[str, str]] = field(default_factory=list)


def _usage_rows(m: ResultMetadata) -> list[tuple[str, str]]:
    rows = []
    if m.prompt_tokens is not None:
        rows.append(("Prompt Tokens", format_count(m.prompt_tokens)))
    if m.completion_tokens is not None:
        rows.append(("Generation Tokens", format_count(m.completion_tokens)))
    if m.total_tokens is not None:
        rows.append(("Total Tokens", format_count(m.total_tokens)))
    if m.latency_ms is not None:
        rows.append(("Response Time", format_response_time(m.latency_ms)))
    return rows


def _rate_limit_rows(rl: RateLimitInfo) -> list[tuple[str, str]]:
    # Providers that do not report a limit send 0, so zero limits are hidden.
    # A remaining count of 0 means the quota is exhausted and stays visible.
    rows = []
    if rl.requests_limit:
        rows.append(("Request Limit", format_count(rl.requests_limit)))
    if rl.requests_remaining is not None:
        rows.append(("Requests Remaining", format_count(rl.requests_remaining)))
    if rl.tokens_limit:
        rows.append(("Token Limit", format_count(rl.tokens_limit)))
    if rl.tokens_remaining is not None:
        rows.append(("Tokens Remaining", format_count(rl.tokens_remaining)))
    if rl.reset_after_seconds:
        rows.append(("Limit Resets In", format_duration(rl.reset_after_seconds)))
    return rows


def _model_rows(m: ResultMetadata) -> list[tuple[str, str]]:
    rows = []
    if m.model_version:
        rows.append(("Model Version", m.model_version))
    if m.finish_reason:
        rows.append(("Finish Reason", m.finish_reason))
    if m.completed_at:
        rows.append(("Timestamp", format_timestamp(m.completed_at)))
    return rows


def metadata_sections(metadata: Optional[ResultMetadata]) -> list[MetadataSection]:
    if metadata is None:
        return []
    sections = [MetadataSection("Usage & Performance", _usage_rows(metadata))]
    if metadata.rate_limit is not None:
        sections.append(MetadataSection("Rate Limits", _rate_limit_rows(metadata.rate_limit)))
    sections.append(MetadataSection("Model Details", _model_rows(metadata)))
    return [s for s in sections if s.rows]


def render_card(result: ProviderResult, *, show_metadata: bool = False) -> str:
    lines = [f"{result.display_name}  ({result.provider_id})", "-" * 40]

    if result.status is ResultStatus.PENDING:
        lines.append("Generating...")
        return "\n".join(lines)

    if result.status is ResultStatus.ERROR:
        lines.append("Error:")
        lines.append(result.error_message or "")
        return "\n".join(lines)

    text = result.text or ""
    lines.append(text)
    lines.append("")
    lines.append(f"✓ Generated  {len(text)} chars")

    if show_metadata:
        for section in metadata_sections(result.metadata):
            lines.append("")
            lines.append(f"[{section.title}]")
            for label, value in section.rows:
                lines.append(f"  {label}: {value}")

    return "\n".join(lines)

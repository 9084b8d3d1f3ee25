import re
from datetime import datetime, timezone

from llm_compare.presenter import (
    format_count,
    format_duration,
    format_model_name,
    format_response_time,
    format_timestamp,
    grid_columns,
    metadata_sections,
    render_card,
)
from llm_compare.types import ProviderResult, RateLimitInfo, ResultMetadata


def test_format_response_time():
    assert format_response_time(500) == "500ms"
    assert format_response_time(999) == "999ms"
    assert format_response_time(2500) == "2.50s"
    assert format_response_time(1000) == "1.00s"
    assert format_response_time(None) == "N/A"
    assert format_response_time(0) == "N/A"
    assert format_response_time(2500) == format_response_time(2500)


def test_format_duration():
    assert format_duration(45) == "45s"
    assert format_duration(90) == "1m 30s"
    assert format_duration(3599) == "59m 59s"
    assert format_duration(3600) == "1h 0m"
    assert format_duration(7384) == "2h 3m"
    assert format_duration(90.7) == "1m 30s"
    assert format_duration(None) == "N/A"
    assert format_duration(0) == "N/A"


def test_format_model_name():
    assert format_model_name("gpt-x") == "Gpt X"
    assert format_model_name("claude-3-5-sonnet") == "Claude 3 5 Sonnet"
    assert format_model_name("openai") == "Openai"
    assert format_model_name("") == "Unknown Model"
    assert format_model_name(None) == "Unknown Model"


def test_format_timestamp():
    assert format_timestamp(None) == "N/A"
    assert format_timestamp("yesterday-ish") == "yesterday-ish"
    pattern = r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$"
    assert re.match(pattern, format_timestamp(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)))
    assert re.match(pattern, format_timestamp("2024-05-01T12:00:00Z"))


def test_format_count_and_grid():
    assert format_count(1234567) == "1,234,567"
    assert [grid_columns(n) for n in (0, 1, 2, 3, 7)] == [1, 1, 2, 3, 3]


def test_metadata_sections_omit_absent_fields():
    m = ResultMetadata(total_tokens=42, latency_ms=850)
    sections = metadata_sections(m)
    assert [s.title for s in sections] == ["Usage & Performance"]
    assert sections[0].rows == [("Total Tokens", "42"), ("Response Time", "850ms")]

    assert metadata_sections(None) == []
    assert metadata_sections(ResultMetadata()) == []

    (details,) = metadata_sections(ResultMetadata(completed_at="Tue May 1 12:00"))
    assert details.title == "Model Details"
    assert details.rows == [("Timestamp", "Tue May 1 12:00")]


def test_rate_limit_rows_hide_zero_limits_but_keep_zero_remaining():
    m = ResultMetadata(
        rate_limit=RateLimitInfo(
            requests_limit=0,
            requests_remaining=None,
            tokens_limit=30000,
            tokens_remaining=0,
            reset_after_seconds=90,
        )
    )
    (section,) = metadata_sections(m)
    assert section.title == "Rate Limits"
    assert section.rows == [
        ("Token Limit", "30,000"),
        ("Tokens Remaining", "0"),
        ("Limit Resets In", "1m 30s"),
    ]


def test_render_card_states():
    pending = ProviderResult.pending("gpt-x", "Gpt X")
    assert "Generating..." in render_card(pending)
    assert render_card(pending).startswith("Gpt X  (gpt-x)")

    failed = ProviderResult.pending("claude-y", "Claude Y")
    failed.settle_error("rate limited")
    card = render_card(failed, show_metadata=True)
    assert "Error:" in card and "rate limited" in card

    ok = ProviderResult.pending("gpt-x", "Gpt X")
    ok.settle_success("Gravity bends spacetime.", ResultMetadata(model_version="gpt-x-2024", latency_ms=2500))
    plain = render_card(ok)
    assert "Gravity bends spacetime." in plain
    assert "24 chars" in plain
    assert "Model Version" not in plain

    detailed = render_card(ok, show_metadata=True)
    assert "[Model Details]" in detailed
    assert "Model Version: gpt-x-2024" in detailed
    assert "Response Time: 2.50s" in detailed

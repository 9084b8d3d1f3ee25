import json
from datetime import datetime, timezone
from unittest.mock import patch

import httpx
import pytest
import respx

from llm_compare.clients.rest import RestBackendClient
from llm_compare.errors import BackendError, HealthCheckError, ProviderCallError

BASE = "http://backend.test/api"


def _client():
    return RestBackendClient(base_url=BASE + "/")


@pytest.mark.asyncio
@respx.mock
async def test_compare_one_parses_metadata():
    mock = {
        "responses": [{
            "llm": "openai",
            "response": "hello",
            "metadata": {
                "promptTokens": 12,
                "generationTokens": 30,
                "totalTokens": 42,
                "responseTime": 850,
                "model": "gpt-4o-mini-2024-07-18",
                "finishReason": "STOP",
                "timestamp": "2024-05-01T12:00:00Z",
                "rateLimit": {
                    "requestsLimit": 500,
                    "requestsRemaining": 499,
                    "tokensLimit": 30000,
                    "tokensRemaining": 0,
                    "resetAfter": 0,
                },
            },
        }]
    }
    route = respx.post(f"{BASE}/llm/compare").respond(200, json=mock)

    reply = await _client().compare_one("hi", "openai")

    assert json.loads(route.calls.last.request.content) == {"prompt": "hi", "llms": ["openai"]}
    assert reply.text == "hello"
    m = reply.metadata
    assert (m.prompt_tokens, m.completion_tokens, m.total_tokens) == (12, 30, 42)
    assert m.latency_ms == 850
    assert m.model_version == "gpt-4o-mini-2024-07-18"
    assert m.finish_reason == "STOP"
    assert m.completed_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert m.rate_limit.requests_remaining == 499
    assert m.rate_limit.tokens_remaining == 0
    assert m.rate_limit.reset_after_seconds == 0


@pytest.mark.asyncio
@respx.mock
async def test_compare_one_without_metadata_still_reports_latency():
    respx.post(f"{BASE}/llm/compare").respond(200, json={"responses": [{"llm": "ollama", "response": "hi"}]})

    reply = await _client().compare_one("hi", "ollama")
    assert reply.text == "hi"
    assert reply.metadata.latency_ms is not None
    assert reply.metadata.total_tokens is None


@pytest.mark.asyncio
@respx.mock
async def test_error_prefixed_entry_becomes_provider_error():
    respx.post(f"{BASE}/llm/compare").respond(
        200, json={"responses": [{"llm": "anthropic", "response": "Error: overloaded_error"}]}
    )
    with pytest.raises(ProviderCallError) as ei:
        await _client().compare_one("hi", "anthropic")
    assert str(ei.value) == "overloaded_error"
    assert ei.value.provider_id == "anthropic"


@pytest.mark.asyncio
@respx.mock
async def test_explicit_error_field_becomes_provider_error():
    respx.post(f"{BASE}/llm/compare").respond(
        200, json={"responses": [{"llm": "openai", "error": "quota exceeded"}]}
    )
    with pytest.raises(ProviderCallError, match="quota exceeded"):
        await _client().compare_one("hi", "openai")


@pytest.mark.asyncio
@respx.mock
async def test_error_body_on_unknown_model():
    respx.post(f"{BASE}/llm/compare").respond(
        404,
        json={
            "timestamp": "2024-05-01T12:00:00Z",
            "status": 404,
            "error": "Model Not Found",
            "message": "The following models are not available: foo",
        },
    )
    with pytest.raises(ProviderCallError) as ei:
        await _client().compare_one("hi", "foo")
    assert str(ei.value) == "HTTP 404: Model Not Found: The following models are not available: foo"


@pytest.mark.asyncio
@respx.mock
async def test_non_json_error_status():
    respx.post(f"{BASE}/llm/compare").respond(500, text="boom")
    with pytest.raises(ProviderCallError, match="HTTP 500 Internal Server Error"):
        await _client().compare_one("hi", "openai")


@pytest.mark.asyncio
@respx.mock
async def test_malformed_payloads():
    route = respx.post(f"{BASE}/llm/compare")

    route.respond(200, text="<html>oops</html>")
    with pytest.raises(ProviderCallError, match="Malformed response"):
        await _client().compare_one("hi", "openai")

    route.respond(200, json={"responses": [{"llm": "anthropic", "response": "hi"}]})
    with pytest.raises(ProviderCallError, match="no result for 'openai'"):
        await _client().compare_one("hi", "openai")

    route.respond(200, json={"responses": [{"llm": 7, "response": "hi"}]})
    with pytest.raises(ProviderCallError) as ei:
        await _client().compare_one("hi", "openai")
    assert str(ei.value).startswith("Malformed response: Schema validation error: responses.0.llm:")
    assert "\n" not in str(ei.value)


@pytest.mark.asyncio
@respx.mock
async def test_unparsable_timestamp_keeps_answer_and_raw_text():
    respx.post(f"{BASE}/llm/compare").respond(
        200,
        json={"responses": [{
            "llm": "gpt-x",
            "response": "Gravity is...",
            "metadata": {"totalTokens": 5, "timestamp": "Tue May 1 12:00"},
        }]},
    )

    reply = await _client().compare_one("hi", "gpt-x")

    assert reply.text == "Gravity is..."
    assert reply.metadata.total_tokens == 5
    assert reply.metadata.completed_at == "Tue May 1 12:00"


@pytest.mark.asyncio
@respx.mock
async def test_invalid_metadata_field_is_dropped_not_fatal():
    respx.post(f"{BASE}/llm/compare").respond(
        200,
        json={"responses": [{
            "llm": "openai",
            "response": "x",
            "metadata": {"totalTokens": -1, "promptTokens": 3, "model": "gpt-4o"},
        }]},
    )

    with patch("llm_compare.clients.rest.logger") as log:
        reply = await _client().compare_one("hi", "openai")

    assert reply.text == "x"
    m = reply.metadata
    assert m.total_tokens is None
    assert (m.prompt_tokens, m.model_version) == (3, "gpt-4o")
    assert m.latency_ms is not None
    log.warning.assert_called_once()
    assert log.warning.call_args.args == ("metadata_invalid",)
    assert log.warning.call_args.kwargs["error"].startswith("totalTokens:")


@pytest.mark.asyncio
@respx.mock
async def test_transport_failures():
    route = respx.post(f"{BASE}/llm/compare")

    route.mock(side_effect=httpx.ConnectError("connection refused"))
    with pytest.raises(ProviderCallError, match="Request failed: ConnectError: connection refused"):
        await _client().compare_one("hi", "openai")

    route.mock(side_effect=httpx.ReadTimeout("slow"))
    with pytest.raises(ProviderCallError, match="timed out"):
        await _client().compare_one("hi", "openai")


@pytest.mark.asyncio
@respx.mock
async def test_available_providers():
    route = respx.get(f"{BASE}/llm/available")

    route.respond(200, json=["openai", "anthropic", "ollama"])
    assert await _client().available_providers() == ["openai", "anthropic", "ollama"]

    route.respond(503)
    with pytest.raises(BackendError):
        await _client().available_providers()

    route.respond(200, json={"not": "a list"})
    with pytest.raises(BackendError, match="Malformed provider list"):
        await _client().available_providers()


@pytest.mark.asyncio
@respx.mock
async def test_check_health():
    route = respx.get(f"{BASE}/llm/health")

    route.respond(204)
    await _client().check_health()

    route.respond(404)
    with pytest.raises(HealthCheckError, match="HTTP 404"):
        await _client().check_health()

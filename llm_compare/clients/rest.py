import dataclasses
import time

import httpx
from pydantic import TypeAdapter, ValidationError

from llm_compare.clients.base import ComparisonBackend
from llm_compare.errors import BackendError, HealthCheckError, ProviderCallError
from llm_compare.logging_setup import get_logger
from llm_compare.schemas import (
    CompareRequestJSON,
    CompareResponseJSON,
    ErrorResponseJSON,
    MetadataJSON,
    ModelResponseJSON,
    parse_json_with_schema,
    summarize_validation_error,
)
from llm_compare.types import ProviderReply, ResultMetadata

logger = get_logger(__name__)

HEALTHY_STATUSES = (200, 204)
ERROR_PREFIX = "Error: "

_provider_list = TypeAdapter(list[str])


def _describe_exc(e: Exception) -> str:
    # httpx timeouts often carry an empty message
    text = str(e).strip()
    return f"{type(e).__name__}: {text}" if text else type(e).__name__


def _describe_http_error(r: httpx.Response) -> str:
    parsed, _ = parse_json_with_schema(r.text, ErrorResponseJSON)
    detail = parsed.describe() if parsed else None
    return f"HTTP {r.status_code}: {detail}" if detail else f"HTTP {r.status_code} {r.reason_phrase}".rstrip()


def _pick_entry(entries: list[ModelResponseJSON], provider_id: str) -> ModelResponseJSON:
    for e in entries:
        if e.llm == provider_id:
            return e
    unnamed = [e for e in entries if e.llm is None]
    if len(entries) == 1 and unnamed:
        return unnamed[0]
    raise ProviderCallError(f"Malformed response: no result for '{provider_id}'", provider_id=provider_id)


def _parse_metadata(raw: dict | None, provider_id: str) -> ResultMetadata:
    """
    Metadata is best effort: fields that fail validation are dropped and the
    rest is kept. The answer text never depends on it.
    """
    if raw is None:
        return ResultMetadata()
    try:
        return MetadataJSON.model_validate(raw).to_metadata()
    except ValidationError as ve:
        logger.warning("metadata_invalid", provider=provider_id, error=summarize_validation_error(ve))
        bad = {err["loc"][0] for err in ve.errors() if err.get("loc")}

    try:
        return MetadataJSON.model_validate({k: v for k, v in raw.items() if k not in bad}).to_metadata()
    except ValidationError:
        return ResultMetadata()


def _normalize_entry(entry: ModelResponseJSON, provider_id: str, latency_ms: int) -> ProviderReply:
    if entry.error:
        raise ProviderCallError(entry.error, provider_id=provider_id)

    text = entry.response
    if text is None:
        raise ProviderCallError("Malformed response: missing response text", provider_id=provider_id)

    # The backend reports provider failures as an "Error: ..." response without metadata.
    if entry.metadata is None and text.startswith(ERROR_PREFIX):
        raise ProviderCallError(text[len(ERROR_PREFIX):].strip() or text, provider_id=provider_id)

    metadata = _parse_metadata(entry.metadata, provider_id)
    if metadata.latency_ms is None:
        metadata = dataclasses.replace(metadata, latency_ms=latency_ms)
    return ProviderReply(provider_id=provider_id, text=text, metadata=metadata)


class RestBackendClient(ComparisonBackend):
    """
    Talks to the comparison REST service:
      GET  /llm/health, GET /llm/available, POST /llm/compare
    One POST per provider, so each provider call succeeds or fails on its own.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_s: float = 120.0,
        health_timeout_s: float = 5.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.health_timeout_s = health_timeout_s
        self.headers = {"Content-Type": "application/json"}

    async def available_providers(self) -> list[str]:
        url = f"{self.base_url}/llm/available"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                r = await client.get(url, headers=self.headers)
        except httpx.HTTPError as e:
            raise BackendError(f"Could not list providers: {_describe_exc(e)}") from e

        if r.is_error:
            raise BackendError(f"Could not list providers: {_describe_http_error(r)}")
        try:
            return _provider_list.validate_json(r.text)
        except ValidationError as e:
            raise BackendError(f"Malformed provider list: {e}") from e

    async def compare_one(self, prompt: str, provider_id: str) -> ProviderReply:
        url = f"{self.base_url}/llm/compare"
        payload = CompareRequestJSON(prompt=prompt, llms=[provider_id]).model_dump(exclude_none=True)

        t0 = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                r = await client.post(url, headers=self.headers, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderCallError(f"Request timed out ({_describe_exc(e)})", provider_id=provider_id) from e
        except httpx.HTTPError as e:
            raise ProviderCallError(f"Request failed: {_describe_exc(e)}", provider_id=provider_id) from e
        latency_ms = int((time.perf_counter() - t0) * 1000)

        if r.is_error:
            raise ProviderCallError(_describe_http_error(r), provider_id=provider_id)

        parsed, err = parse_json_with_schema(r.text, CompareResponseJSON)
        if parsed is None:
            raise ProviderCallError(f"Malformed response: {err}", provider_id=provider_id)

        entry = _pick_entry(parsed.responses, provider_id)
        return _normalize_entry(entry, provider_id, latency_ms)

    async def check_health(self) -> None:
        url = f"{self.base_url}/llm/health"
        try:
            async with httpx.AsyncClient(timeout=self.health_timeout_s) as client:
                r = await client.get(url)
        except httpx.HTTPError as e:
            raise HealthCheckError(_describe_exc(e)) from e

        if r.status_code not in HEALTHY_STATUSES:
            logger.debug("health_check_status", status=r.status_code)
            raise HealthCheckError(f"HTTP {r.status_code}")

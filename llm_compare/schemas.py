from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from llm_compare.types import RateLimitInfo, ResultMetadata


# Wire payloads of the comparison backend (camelCase on the wire)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RateLimitJSON(_WireModel):
    requests_limit: int | None = Field(default=None, ge=0, alias="requestsLimit")
    requests_remaining: int | None = Field(default=None, ge=0, alias="requestsRemaining")
    tokens_limit: int | None = Field(default=None, ge=0, alias="tokensLimit")
    tokens_remaining: int | None = Field(default=None, ge=0, alias="tokensRemaining")
    reset_after: float | None = Field(default=None, ge=0, alias="resetAfter")

    def to_rate_limit(self) -> RateLimitInfo:
        return RateLimitInfo(
            requests_limit=self.requests_limit,
            requests_remaining=self.requests_remaining,
            tokens_limit=self.tokens_limit,
            tokens_remaining=self.tokens_remaining,
            reset_after_seconds=self.reset_after,
        )


class MetadataJSON(_WireModel):
    prompt_tokens: int | None = Field(default=None, ge=0, alias="promptTokens")
    generation_tokens: int | None = Field(default=None, ge=0, alias="generationTokens")
    total_tokens: int | None = Field(default=None, ge=0, alias="totalTokens")
    response_time: int | None = Field(default=None, ge=0, alias="responseTime")
    model: str | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")
    # Left to right: ISO strings become datetimes, anything else is kept as text.
    timestamp: datetime | str | None = Field(default=None, union_mode="left_to_right")
    rate_limit: RateLimitJSON | None = Field(default=None, alias="rateLimit")

    def to_metadata(self) -> ResultMetadata:
        return ResultMetadata(
            prompt_tokens=self.prompt_tokens,
            completion_tokens=self.generation_tokens,
            total_tokens=self.total_tokens,
            latency_ms=self.response_time,
            model_version=self.model or None,
            finish_reason=self.finish_reason or None,
            completed_at=self.timestamp,
            rate_limit=self.rate_limit.to_rate_limit() if self.rate_limit else None,
        )


class ModelResponseJSON(_WireModel):
    llm: str | None = None
    response: str | None = None
    error: str | None = None
    # Validated separately so a bad field cannot discard the answer.
    metadata: dict[str, Any] | None = None


class CompareResponseJSON(_WireModel):
    responses: list[ModelResponseJSON] = Field(default_factory=list)


class CompareRequestJSON(_WireModel):
    prompt: str = Field(min_length=1)
    llms: list[str] | None = None


class ErrorResponseJSON(_WireModel):
    """Error body returned by the backend on non-2xx statuses."""
    timestamp: str | None = None
    status: int | None = None
    error: str | None = None
    message: str | None = None
    details: dict[str, str] | None = None

    def describe(self) -> str | None:
        parts = [p for p in (self.error, self.message) if p]
        if self.details:
            parts.append(", ".join(f"{k}: {v}" for k, v in self.details.items()))
        return ": ".join(parts) if parts else None


T = TypeVar("T", bound=BaseModel)


def summarize_validation_error(ve: ValidationError, limit: int = 3) -> str:
    """One clause per failing field, e.g. "responses.0.llm: Input should be a valid string"."""
    parts = []
    for err in ve.errors()[:limit]:
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    extra = ve.error_count() - limit
    if extra > 0:
        parts.append(f"(+{extra} more)")
    return "; ".join(parts)


def parse_json_with_schema(raw_text: str, schema: Type[T]) -> tuple[T | None, str | None]:
    """
    Parse a JSON body into schema. Never raises.
    Returns (parsed_or_none, error_or_none).
    """
    try:
        data = json.loads(raw_text)
    except (TypeError, ValueError) as e:
        return None, f"JSON parse error: {e}"
    try:
        return schema.model_validate(data), None
    except ValidationError as ve:
        return None, f"Schema validation error: {summarize_validation_error(ve)}"

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from llm_compare.errors import ResultAlreadySettled


class ResultStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class RateLimitInfo:
    requests_limit: Optional[int] = None
    requests_remaining: Optional[int] = None
    tokens_limit: Optional[int] = None
    tokens_remaining: Optional[int] = None
    reset_after_seconds: Optional[float] = None


@dataclass(frozen=True)
class ResultMetadata:
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    latency_ms: Optional[int] = None
    model_version: Optional[str] = None
    finish_reason: Optional[str] = None
    completed_at: Union[datetime, str, None] = None
    rate_limit: Optional[RateLimitInfo] = None


@dataclass(frozen=True)
class ProviderReply:
    """Normalized successful answer from one provider."""
    provider_id: str
    text: str
    metadata: Optional[ResultMetadata] = None


@dataclass
class ProviderResult:
    """
    One slot in a comparison run. Created pending; settled exactly once,
    either to SUCCESS (text + metadata) or to ERROR (error_message).
    """
    provider_id: str
    display_name: str
    status: ResultStatus = ResultStatus.PENDING
    text: Optional[str] = None
    error_message: Optional[str] = None
    metadata: Optional[ResultMetadata] = None

    @classmethod
    def pending(cls, provider_id: str, display_name: str) -> ProviderResult:
        return cls(provider_id=provider_id, display_name=display_name)

    @property
    def is_pending(self) -> bool:
        return self.status is ResultStatus.PENDING

    @property
    def is_settled(self) -> bool:
        return not self.is_pending

    def _ensure_pending(self) -> None:
        if not self.is_pending:
            raise ResultAlreadySettled(
                f"{self.provider_id} already settled as {self.status.value}"
            )

    def settle_success(self, text: str, metadata: ResultMetadata | None = None) -> None:
        self._ensure_pending()
        self.text = text
        self.metadata = metadata
        self.status = ResultStatus.SUCCESS

    def settle_error(self, message: str) -> None:
        self._ensure_pending()
        self.error_message = message or "Unknown error"
        self.status = ResultStatus.ERROR

    def copy(self) -> ProviderResult:
        return dataclasses.replace(self)

from __future__ import annotations

import asyncio
import uuid
from typing import Any, AsyncIterator, Callable, Coroutine, Iterable, Iterator, Optional

from llm_compare.clients.base import ComparisonBackend
from llm_compare.errors import InvalidInput, ProviderCallError
from llm_compare.logging_setup import get_logger
from llm_compare.presenter import format_model_name
from llm_compare.types import ProviderReply, ProviderResult

logger = get_logger(__name__)

SettledCallback = Callable[[ProviderResult], None]

CANCELLED_MESSAGE = "Cancelled"


def _validate_prompt(prompt: str) -> None:
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidInput("Prompt must not be empty.")


def _normalize_provider_ids(provider_ids: Iterable[str]) -> list[str]:
    """Strip and de-duplicate, keeping first-seen order."""
    if isinstance(provider_ids, str):
        raise InvalidInput(f"Provider ids must be a list of ids, not a string: {provider_ids!r}")
    seen: dict[str, None] = {}
    for pid in provider_ids:
        if not isinstance(pid, str) or not pid.strip():
            raise InvalidInput(f"Invalid provider id: {pid!r}")
        seen.setdefault(pid.strip(), None)
    return list(seen)


class ComparisonRun:
    """
    Result collection of one comparison.

    Entries are created pending, all at once and in request order, before any
    call is issued. Each provider's task settles only its own entry, and an
    entry settles at most once. Readers always get copies.
    """

    def __init__(
        self,
        prompt: str,
        provider_ids: list[str],
        *,
        on_settled: Optional[SettledCallback] = None,
    ):
        self.run_id = uuid.uuid4().hex[:12]
        self.prompt = prompt
        self.provider_ids = tuple(provider_ids)
        self._results = [ProviderResult.pending(pid, format_model_name(pid)) for pid in provider_ids]
        self._tasks: list[asyncio.Task] = []
        self._task_index: dict[asyncio.Task, int] = {}
        self._on_settled = on_settled

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[ProviderResult]:
        return iter(self.snapshot())

    def snapshot(self) -> list[ProviderResult]:
        return [r.copy() for r in self._results]

    def get(self, provider_id: str) -> ProviderResult:
        for r in self._results:
            if r.provider_id == provider_id:
                return r.copy()
        raise KeyError(provider_id)

    @property
    def pending_count(self) -> int:
        return sum(1 for r in self._results if r.is_pending)

    @property
    def done(self) -> bool:
        return self.pending_count == 0

    async def wait(self) -> list[ProviderResult]:
        """Wait for every provider to settle; returns the final snapshot."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        return self.snapshot()

    async def as_settled(self) -> AsyncIterator[ProviderResult]:
        """
        Yield each entry as its provider settles, in completion order.
        Entries that settled before iteration started come first.
        """
        remaining = set(self._tasks)
        while remaining:
            done, remaining = await asyncio.wait(remaining, return_when=asyncio.FIRST_COMPLETED)
            for idx in sorted(self._task_index[t] for t in done):
                yield self._results[idx].copy()

    def cancel(self) -> None:
        """Stop this run's in-flight calls; their entries settle as errors."""
        for idx, r in enumerate(self._results):
            if r.is_pending:
                self._settle_error(idx, CANCELLED_MESSAGE)
        for t in self._tasks:
            t.cancel()

    def _start(self, factory: Callable[[int], Coroutine[Any, Any, int]]) -> None:
        for idx, pid in enumerate(self.provider_ids):
            task = asyncio.create_task(factory(idx), name=f"compare:{self.run_id}:{pid}")
            self._tasks.append(task)
            self._task_index[task] = idx

    def _settle_success(self, idx: int, reply: ProviderReply) -> bool:
        result = self._results[idx]
        if not result.is_pending:
            return False
        result.settle_success(reply.text, reply.metadata)
        self._notify(result)
        return True

    def _settle_error(self, idx: int, message: str) -> bool:
        result = self._results[idx]
        if not result.is_pending:
            return False
        result.settle_error(message)
        self._notify(result)
        return True

    def _notify(self, result: ProviderResult) -> None:
        if self._on_settled is None:
            return
        try:
            self._on_settled(result.copy())
        except Exception:
            # callback errors stay out of the provider tasks
            logger.exception("settled_callback_failed", run_id=self.run_id, provider=result.provider_id)


class ComparisonOrchestrator:
    def __init__(self, backend: ComparisonBackend, *, call_timeout_s: float = 120.0):
        self.backend = backend
        self.call_timeout_s = call_timeout_s

    async def compare(
        self,
        prompt: str,
        provider_ids: Optional[Iterable[str]] = None,
        *,
        on_settled: Optional[SettledCallback] = None,
    ) -> ComparisonRun:
        """
        Fan prompt out to every provider concurrently and return the run right
        away; entries update in place as providers settle.

        An empty selection means the backend's default provider set.
        Raises InvalidInput for a blank prompt or a bare string selection,
        and BackendError when the default set cannot be fetched; either way
        no entries are created and nothing is sent.
        """
        _validate_prompt(prompt)
        ids = _normalize_provider_ids([] if provider_ids is None else provider_ids)
        if not ids:
            ids = _normalize_provider_ids(await self.backend.available_providers())
            logger.info("default_providers_resolved", providers=ids)

        run = ComparisonRun(prompt, ids, on_settled=on_settled)
        logger.info("comparison_started", run_id=run.run_id, providers=ids)
        if not ids:
            logger.warning("comparison_without_providers", run_id=run.run_id)

        run._start(lambda idx: self._call_one(run, idx))
        return run

    async def _call_one(self, run: ComparisonRun, idx: int) -> int:
        pid = run.provider_ids[idx]
        try:
            reply = await asyncio.wait_for(
                self.backend.compare_one(run.prompt, pid),
                timeout=self.call_timeout_s,
            )
        except ProviderCallError as e:
            logger.warning("provider_failed", run_id=run.run_id, provider=pid, error=str(e))
            run._settle_error(idx, str(e))
        except asyncio.TimeoutError:
            logger.warning("provider_timed_out", run_id=run.run_id, provider=pid, timeout_s=self.call_timeout_s)
            run._settle_error(idx, f"Timed out after {self.call_timeout_s:g}s")
        except asyncio.CancelledError:
            run._settle_error(idx, CANCELLED_MESSAGE)
            raise
        except Exception as e:
            logger.exception("provider_crashed", run_id=run.run_id, provider=pid)
            run._settle_error(idx, f"Unexpected error: {e}")
        else:
            if run._settle_success(idx, reply):
                logger.info("provider_settled", run_id=run.run_id, provider=pid, chars=len(reply.text))
        return idx

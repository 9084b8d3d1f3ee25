# llm_compare/app.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from llm_compare.orchestrator import ComparisonOrchestrator, ComparisonRun
from llm_compare.types import ProviderResult


@dataclass(frozen=True)
class RunCallbacks:
    """
    Shared callback bundle used by BOTH CLI and GUI.
    CLI prints to console; GUI updates cards.
    """
    on_started: Optional[Callable[[ComparisonRun], None]] = None
    on_settled: Optional[Callable[[ProviderResult], None]] = None
    on_finished: Optional[Callable[[ComparisonRun], None]] = None


async def start_comparison(
    *,
    orchestrator: ComparisonOrchestrator,
    prompt: str,
    provider_ids: Iterable[str] | None = None,
    callbacks: RunCallbacks | None = None,
) -> ComparisonRun:
    """
    Start a run and hand it to on_started while every entry is still pending.
    Does not wait for providers.
    """
    cb = callbacks or RunCallbacks()
    run = await orchestrator.compare(prompt, provider_ids, on_settled=cb.on_settled)
    if cb.on_started:
        cb.on_started(run)
    return run


async def run_comparison(
    *,
    orchestrator: ComparisonOrchestrator,
    prompt: str,
    provider_ids: Iterable[str] | None = None,
    callbacks: RunCallbacks | None = None,
) -> ComparisonRun:
    """
    Shared orchestration used by BOTH CLI and GUI: start, stream settlements
    through callbacks, return once every provider has settled.
    """
    cb = callbacks or RunCallbacks()
    run = await start_comparison(
        orchestrator=orchestrator,
        prompt=prompt,
        provider_ids=provider_ids,
        callbacks=cb,
    )
    await run.wait()
    if cb.on_finished:
        cb.on_finished(run)
    return run

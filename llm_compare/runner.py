from llm_compare import settings
from llm_compare.app import run_comparison
from llm_compare.clients.rest import RestBackendClient
from llm_compare.health import HealthMonitor, HealthState
from llm_compare.orchestrator import ComparisonOrchestrator


def build_backend(base_url: str | None = None, *, call_timeout_s: float | None = None) -> RestBackendClient:
    return RestBackendClient(
        base_url=base_url or settings.API_BASE_URL,
        timeout_s=call_timeout_s or settings.CALL_TIMEOUT_S,
        health_timeout_s=settings.HEALTH_TIMEOUT_S,
    )


def build_orchestrator(backend=None, *, call_timeout_s: float | None = None) -> ComparisonOrchestrator:
    backend = backend or build_backend(call_timeout_s=call_timeout_s)
    return ComparisonOrchestrator(backend, call_timeout_s=call_timeout_s or settings.CALL_TIMEOUT_S)


def build_health_monitor(backend=None, *, state: HealthState | None = None, on_change=None) -> HealthMonitor:
    return HealthMonitor(
        backend or build_backend(),
        state=state,
        interval_s=settings.HEALTH_INTERVAL_S,
        timeout_s=settings.HEALTH_TIMEOUT_S,
        on_change=on_change,
    )


async def ask_all(prompt: str, provider_ids=None):
    """One-shot comparison against the configured backend; returns the final results."""
    run = await run_comparison(orchestrator=build_orchestrator(), prompt=prompt, provider_ids=provider_ids)
    return run.snapshot()

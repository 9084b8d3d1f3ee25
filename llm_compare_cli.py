# llm_compare_cli.py
import argparse
import asyncio

from llm_compare import settings
from llm_compare.app import RunCallbacks, run_comparison
from llm_compare.errors import BackendError, InvalidInput
from llm_compare.health import HealthMonitor, HealthStatus
from llm_compare.logging_setup import configure_logging
from llm_compare.presenter import render_card
from llm_compare.runner import build_backend, build_orchestrator
from llm_compare.types import ResultStatus


def _make_callbacks(verbose: bool, show_metadata: bool) -> RunCallbacks:
    def on_started(run):
        print(f"\n=== Comparing {len(run)} provider(s): {', '.join(run.provider_ids)} ===")

    def on_settled(r):
        if r.status is ResultStatus.SUCCESS:
            status = f"OK  chars={len(r.text or '')}"
        else:
            status = f"ERR: {r.error_message}"
        print(f"[done] {r.provider_id:12} {status}")
        if verbose:
            print("\n" + render_card(r, show_metadata=show_metadata) + "\n")

    def on_finished(run):
        print("=== DONE ===")

    return RunCallbacks(on_started=on_started, on_settled=on_settled, on_finished=on_finished)


async def _check_health(backend) -> int:
    monitor = HealthMonitor(backend, timeout_s=settings.HEALTH_TIMEOUT_S)
    status = await monitor.poll_once()
    if status is HealthStatus.HEALTHY:
        print(f"Backend reachable: {backend.base_url}")
        return 0
    print(f"Backend server unreachable: {backend.base_url} ({monitor.state.last_error})")
    return 1


async def _list_providers(backend) -> int:
    try:
        providers = await backend.available_providers()
    except BackendError as e:
        print(f"Could not list providers: {e}")
        return 1
    for p in providers:
        print(p)
    return 0


async def _run(args) -> int:
    backend = build_backend(args.api_url, call_timeout_s=args.timeout)

    if args.health:
        return await _check_health(backend)
    if args.list:
        return await _list_providers(backend)

    if args.prompt is None:
        print("A prompt is required (or use --health / --list).")
        return 2

    orchestrator = build_orchestrator(backend, call_timeout_s=args.timeout)
    callbacks = _make_callbacks(verbose=args.verbose, show_metadata=args.show_metadata)

    try:
        run = await run_comparison(
            orchestrator=orchestrator,
            prompt=args.prompt,
            provider_ids=args.llm,
            callbacks=callbacks,
        )
    except InvalidInput as e:
        print(f"Invalid input: {e}")
        return 2
    except BackendError as e:
        print(f"Backend error: {e}")
        return 1

    if not args.verbose:
        for r in run.snapshot():
            print("\n" + render_card(r, show_metadata=args.show_metadata))

    failed = sum(1 for r in run.snapshot() if r.status is ResultStatus.ERROR)
    return 0 if failed == 0 else 3


def main():
    ap = argparse.ArgumentParser(description="Compare LLM responses side by side")
    ap.add_argument("prompt", nargs="?", default=None, help="Prompt text")
    ap.add_argument(
        "--llm",
        action="append",
        default=None,
        help="Provider id to include (repeatable). Default: every provider the backend offers",
    )
    ap.add_argument("--api-url", default=None, help=f"Backend base URL (default: {settings.API_BASE_URL})")
    ap.add_argument("--timeout", type=float, default=None, help="Per-provider timeout in seconds")

    ap.add_argument("--show-metadata", action="store_true", help="Print token usage, rate limits and model details")
    ap.add_argument("--verbose", action="store_true", help="Print each card as soon as its provider finishes")
    ap.add_argument("--health", action="store_true", help="Check backend reachability once and exit")
    ap.add_argument("--list", action="store_true", help="List available providers and exit")
    ap.add_argument("--log-level", default=None, help="Log level (default: LLM_COMPARE_LOG_LEVEL or INFO)")

    args = ap.parse_args()
    configure_logging(level=args.log_level)
    raise SystemExit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Demo Runner Script

Runs a dispatch through the Prompt Relay coordinator against the in-memory
session backend and reports the per-provider outcome.

This script:
1. Builds a coordinator on a simulated browser
2. Optionally marks providers unreachable or slow to load
3. Optionally closes a provider tab between two dispatches
4. Dispatches the prompt to one or all providers
5. Prints a summary table

Usage:
    python scripts/run_demo.py "Explain entropy"                 # Send to all
    python scripts/run_demo.py "Hi" --provider claude            # One provider
    python scripts/run_demo.py "Hi" --unreachable grok           # Simulate failure
    python scripts/run_demo.py "Hi" --load-delay 0.5 --timeout 200
    python scripts/run_demo.py "Hi" --close-tab chatgpt          # Recover a closed tab
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from prompt_relay.config import Settings, configure_logging
from prompt_relay.dispatcher import DeliveryResult, DispatchCoordinator
from prompt_relay.registry import build_provider_registry
from prompt_relay.schemas import RequestContext
from prompt_relay.sessions import InMemorySessionBackend


def print_results(title: str, results: list[DeliveryResult]) -> None:
    """Print one line per provider result."""
    print()
    print(title)
    print("-" * 72)
    print(f"{'Provider':<12} {'Status':<8} {'Session':<8} {'Latency':>10}  Error")
    print("-" * 72)
    for result in results:
        print(
            f"{result.provider_id:<12} {result.status.value:<8} "
            f"{result.session_id or '-':<8} {result.latency_ms:>8.1f}ms  "
            f"{result.error_code or ''}"
        )
    print("-" * 72)
    sent = sum(1 for r in results if r.success)
    print(f"Sent: {sent}/{len(results)}")


async def run(args: argparse.Namespace) -> int:
    settings = Settings(
        readiness_timeout_ms=args.timeout,
        log_level="DEBUG" if args.verbose else "WARNING",
        disabled_providers=args.disable,
    )
    configure_logging(settings)

    providers = build_provider_registry(settings.disabled_providers)
    backend = InMemorySessionBackend(load_delay=args.load_delay)
    for provider_id in args.unreachable:
        provider = providers.get_provider(provider_id)
        if provider is None:
            print(f"Unknown provider: {provider_id}", file=sys.stderr)
            return 2
        backend.set_unreachable(provider.endpoint_locator)

    coordinator = DispatchCoordinator(providers, backend, settings=settings)
    coordinator.start()
    context = RequestContext(prompt=args.prompt)

    try:
        if args.provider:
            result = await coordinator.dispatch_one(args.provider, context)
            print_results(f"Dispatch to {args.provider}", [result])
            return 0 if result.success else 1

        outcome = await coordinator.dispatch_all(context)
        print_results("Dispatch to all enabled providers", outcome.results)

        if args.close_tab:
            handle = coordinator.registry.get(args.close_tab)
            if handle is None:
                print(f"\nNo open tab for {args.close_tab}; nothing to close")
            else:
                print(f"\nClosing tab {handle.session_id} for {args.close_tab}")
                backend.close_session(handle.session_id)
                outcome = await coordinator.dispatch_all(context)
                print_results("Dispatch after closing a tab", outcome.results)

        return 0 if not outcome.failed else 1
    finally:
        await coordinator.aclose()


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run a Prompt Relay dispatch against a simulated browser"
    )
    parser.add_argument("prompt", help="Prompt text to deliver")
    parser.add_argument("--provider", help="Send to a single provider instead of all")
    parser.add_argument(
        "--unreachable",
        action="append",
        default=[],
        metavar="PROVIDER",
        help="Provider whose tab fails to open (repeatable)",
    )
    parser.add_argument(
        "--disable",
        action="append",
        default=[],
        metavar="PROVIDER",
        help="Provider excluded from send-to-all (repeatable)",
    )
    parser.add_argument(
        "--load-delay",
        type=float,
        default=0.0,
        help="Seconds a simulated tab takes to load",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=10_000,
        help="Readiness timeout in milliseconds",
    )
    parser.add_argument(
        "--close-tab",
        metavar="PROVIDER",
        help="Close this provider's tab and dispatch again",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())

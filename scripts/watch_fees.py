#!/usr/bin/env python3
"""Watch fee estimates from the command line, printing every state change."""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from feewatch.engine import FeeWatchEngine
from feewatch.errors import ConfigurationError
from feewatch.models.async_value import last_value, status_of
from feewatch.state.models import RefreshContext, RefreshState


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keep a fee-estimate snapshot fresh")
    parser.add_argument("--config-dir", help="Directory containing feewatch.yaml")
    parser.add_argument("--endpoint", help="Endpoint name to start with")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    return parser.parse_args(argv)


def print_state(state: RefreshState, context: RefreshContext) -> None:
    fees = last_value(context.fees)
    line = f"[{state.value}] endpoint={context.endpoint} fees={status_of(context.fees)}"
    if fees is not None:
        line += (
            f" fastest={fees.fastest_fee:g} half_hour={fees.half_hour_fee:g}"
            f" hour={fees.hour_fee:g} economy={fees.economy_fee:g}"
        )
    if context.retries:
        line += f" retries={context.retries}"
    print(line, flush=True)


async def run(args: argparse.Namespace) -> None:
    overrides = {}
    if args.endpoint:
        overrides["fetch"] = {"default_endpoint": args.endpoint}
    if args.log_level or args.json_logs:
        overrides["logging"] = {}
        if args.log_level:
            overrides["logging"]["level"] = args.log_level.upper()
        if args.json_logs:
            overrides["logging"]["format_json"] = True

    engine = FeeWatchEngine(config_dir=args.config_dir, overrides=overrides, setup_logging=True)
    engine.subscribe(print_state)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass  # Windows

    await engine.run_forever(stop_event)


def main():
    args = parse_args()
    try:
        asyncio.run(run(args))
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()

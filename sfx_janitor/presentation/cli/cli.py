"""
CLI Module

Architectural Intent:
- Command-line entry point for the janitor
- Selects between the "stale" and "mute" tasks
- Delegates to application use cases via composition root
- Supports --verbose/--debug flags for log level control

Every failure is logged and ends the process with exit status 1.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import NoReturn

from sfx_janitor.application.dtos.janitor_dtos import MuteDetectorRequest
from sfx_janitor.domain.errors import ConfigurationError, JanitorError
from sfx_janitor.domain.value_objects.duration import InvalidDurationError
from sfx_janitor.infrastructure.config import load_config
from sfx_janitor.infrastructure.logging import configure_logging, parse_level

logger = logging.getLogger("sfx_janitor.cli")

TASK_STALE = "stale"
TASK_MUTE = "mute"
TASKS = (TASK_STALE, TASK_MUTE)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sfx-janitor",
        description="SignalFx janitor: clear stale incidents or mute a detector",
    )
    parser.add_argument(
        "--task",
        default=os.environ.get("JANITOR_TASK", TASK_STALE),
        help="Task to run: 'stale' (default) or 'mute'",
    )
    parser.add_argument(
        "--detector",
        default=os.environ.get("JANITOR_DETECTOR", ""),
        help="Detector ID to mute (mute task)",
    )
    parser.add_argument(
        "--duration",
        default=os.environ.get("JANITOR_DURATION", ""),
        help="How long to mute for, e.g. 45m or 1h30m (mute task)",
    )
    parser.add_argument(
        "--description",
        default=os.environ.get("JANITOR_DESCRIPTION", ""),
        help="Extra context appended to the mute reason",
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to JSON config file"
    )
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Keep clearing remaining incidents after a failure",
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit structured JSON logs"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    return parser


def _fail(message: str, debug: bool) -> NoReturn:
    if debug:
        logger.exception(message)
    else:
        logger.error(message)
    sys.exit(1)


async def async_main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        configure_logging(level=logging.INFO, json_format=args.json_logs)
        _fail(f"Configure parse error: {e}", args.debug)

    # Configure logging based on flags
    if args.debug:
        configure_logging(level=logging.DEBUG, json_format=args.json_logs)
    elif args.verbose:
        configure_logging(level=logging.INFO, json_format=args.json_logs)
    else:
        configure_logging(
            level=parse_level(config.log_level), json_format=args.json_logs
        )

    if args.task not in TASKS:
        _fail(f"unexpected task: {args.task}", False)

    mute_request = None
    if args.task == TASK_MUTE:
        try:
            mute_request = MuteDetectorRequest(
                detector=args.detector,
                duration=args.duration,
                description=args.description,
            )
        except ValueError as e:
            _fail(str(e), False)

    from sfx_janitor.composition_root import create_container
    from sfx_janitor.infrastructure.telemetry.otel_exporter import create_exporter

    try:
        telemetry = await create_exporter(
            config.telemetry.endpoint, insecure=config.telemetry.insecure
        )
    except ValueError as e:
        _fail(f"Configure parse error: {e}", args.debug)

    try:
        try:
            container = create_container(
                config,
                telemetry=telemetry,
                fail_fast=False if args.continue_on_error else None,
            )
        except ConfigurationError as e:
            _fail(str(e), False)

        if args.task == TASK_STALE:
            await _run_stale(container, args.debug)
        else:
            await _run_mute(container, mute_request, args.debug)
    finally:
        await telemetry.shutdown()


async def _run_stale(container, debug: bool) -> None:
    try:
        result = await container.resolve_stale.execute()
    except JanitorError as e:
        _fail(f"error resolving incidents: {e}", debug)

    print(
        f"[+] {result.found} incidents found, {len(result.cleared)} cleared, "
        f"{len(result.skipped)} left open"
    )
    if not result.success:
        _fail(
            f"error resolving incidents: failed to clear {', '.join(result.failed)}",
            False,
        )


async def _run_mute(container, request: MuteDetectorRequest, debug: bool) -> None:
    try:
        result = await container.mute_detector.execute(request)
    except InvalidDurationError as e:
        _fail(f"error parsing duration: {e}", debug)
    except (JanitorError, ValueError) as e:
        _fail(f"error muting detector: {e}", debug)

    print(
        f"[+] Detector {result.detector} muted until {result.stop_ms} "
        f"({result.description})"
    )


def main():
    asyncio.run(async_main())


if __name__ == "__main__":
    main()

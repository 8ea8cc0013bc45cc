from __future__ import annotations

import argparse
import logging
import signal
import threading
from pathlib import Path
from typing import Any

from endpoint_scout.collectors import ProcessResolutionError, resolve_process
from endpoint_scout.config import DEFAULT_CONFIG_PATH, ScoutConfig, apply_overrides, ensure_config_file, load_config
from endpoint_scout.inference import run_inference
from endpoint_scout.logging import configure_logging
from endpoint_scout.ping import PingError, ping, summarize_ping
from endpoint_scout.report import render_json, render_text

logger = logging.getLogger("endpoint_scout")

EXIT_OK = 0
EXIT_NO_MATCH = 1
EXIT_CONFIG = 2
EXIT_PROCESS = 3
EXIT_PING = 4


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    mapping = {
        "port_min": "port_min",
        "port_max": "port_max",
        "duration": "sample_seconds",
        "tick": "tick_seconds",
        "ping_count": "ping_count",
    }
    updates: dict[str, Any] = {}
    for arg_name, field_name in mapping.items():
        value = getattr(args, arg_name, None)
        if value is not None:
            updates[field_name] = value
    return updates


def _load(args: argparse.Namespace) -> ScoutConfig:
    path = Path(args.config).expanduser() if args.config else DEFAULT_CONFIG_PATH
    config = load_config(path)
    return apply_overrides(config, _cli_overrides(args))


def _register_signal_handlers(stop_event: threading.Event) -> dict[int, Any]:
    def _handler(signum: int, frame: Any) -> None:
        del frame
        logger.info("received signal %s, ending sampling window", signum)
        stop_event.set()

    previous: dict[int, Any] = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handler)
    return previous


def _restore_signal_handlers(previous: dict[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def cmd_init(args: argparse.Namespace) -> int:
    try:
        path = ensure_config_file(Path(args.config).expanduser() if args.config else DEFAULT_CONFIG_PATH)
    except (OSError, ValueError) as exc:
        logger.error("unable to initialize config: %s", exc)
        return EXIT_CONFIG
    print(f"initialized config: {path}")
    return EXIT_OK


def cmd_run(args: argparse.Namespace) -> int:
    try:
        config = _load(args)
    except ValueError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG

    try:
        handle = resolve_process(args.process, on_ambiguous=config.on_ambiguous)
    except ProcessResolutionError as exc:
        logger.error("%s", exc)
        return EXIT_PROCESS

    stop_event = threading.Event()
    previous = _register_signal_handlers(stop_event)
    try:
        result = run_inference(config, handle, stop_event=stop_event)
    finally:
        _restore_signal_handlers(previous)

    render = render_json if args.json else render_text
    if result.dominant is None:
        print(render(result))
        return EXIT_NO_MATCH

    summary = None
    if not args.no_ping:
        host = result.dominant.endpoint.address
        try:
            replies = ping(host, config.ping_count, config.ping_timeout_seconds)
        except PingError as exc:
            logger.error("ping failed: %s", exc)
            print(render(result))
            return EXIT_PING
        summary = summarize_ping(host, replies)

    print(render(result, summary))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="endpoint-scout",
        description="find the server a process talks to most and ping it",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="write a default config file")
    init_parser.add_argument("--config", type=str, default=None, help="path to config.toml")
    init_parser.add_argument("--verbose", action="store_true")
    init_parser.set_defaults(func=cmd_init)

    run_parser = subparsers.add_parser("run", help="sample a process and ping its dominant server")
    run_parser.add_argument("process", help="process name (e.g. game.exe) or pid")
    run_parser.add_argument("--config", type=str, default=None, help="path to config.toml")
    run_parser.add_argument("--port-min", type=int, default=None, help="lowest remote port to consider")
    run_parser.add_argument("--port-max", type=int, default=None, help="highest remote port to consider")
    run_parser.add_argument("--duration", type=float, default=None, help="sampling window in seconds")
    run_parser.add_argument("--tick", type=float, default=None, help="seconds between connection snapshots")
    run_parser.add_argument("--ping-count", type=int, default=None, help="echo requests to send")
    run_parser.add_argument("--no-ping", action="store_true", help="only identify the server")
    run_parser.add_argument("--json", action="store_true", help="emit the result as JSON")
    run_parser.add_argument("--verbose", action="store_true")
    run_parser.add_argument("--log-json", action="store_true", help="write log lines as JSON to stderr")
    run_parser.set_defaults(func=cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(bool(getattr(args, "verbose", False)), json_lines=bool(getattr(args, "log_json", False)))
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())

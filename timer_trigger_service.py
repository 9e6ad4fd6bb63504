"""CLI entry point for the timer-triggered tempsense HTTP runner."""
from __future__ import annotations

import json
import signal
import sys
from pathlib import Path

from timertrigger.cli import build_parser, layer_from_args
from timertrigger.config import ConfigError, ConfigLayer, load_config_layer, resolve_config
from timertrigger.logsink import configure_logging
from timertrigger.scheduler import SchedulerSession
from timertrigger.service import ServiceRunner, SessionSupervisor

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    file_layer = ConfigLayer()
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f'Config file not found: {config_path}', file=sys.stderr)
            return EXIT_USAGE
    try:
        if args.config:
            file_layer = load_config_layer(config_path)
        config = resolve_config(file_layer, layer_from_args(args))
    except ConfigError as exc:
        print(f'ERROR: {exc}', file=sys.stderr)
        return EXIT_USAGE

    if args.print_config:
        print(json.dumps(config.to_dict(), indent=2))
        return EXIT_OK

    logger = configure_logging(config.log_dir)

    session = SchedulerSession(config)
    health_api_port = args.health_api_port if args.health_api_port and args.health_api_port > 0 else 0
    runner = ServiceRunner(
        SessionSupervisor(session),
        health_api_host=args.health_api_host if health_api_port > 0 else None,
        health_api_port=health_api_port,
    )

    if runner.health_api_address:
        host, port = runner.health_api_address
        logger.info('Health API listening on http://%s:%d/health', host, port)

    def signal_handler(signum, frame):
        session.request_stop(f'Received shutdown signal {signum}, stopping scheduler.')

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    # Windows doesn't have SIGHUP
    if hasattr(signal, 'SIGHUP'):
        signal.signal(signal.SIGHUP, signal_handler)

    try:
        clean = runner.run()
    except Exception as exc:  # pylint: disable=broad-except
        logger.error('Scheduler failed: %s', exc)
        return EXIT_FAILURE
    finally:
        stats = session.stats
        logger.info(
            'Run summary: ticks=%d failures=%d extensions=%d extendedS=%d',
            stats.ticks,
            stats.failures,
            stats.extensions,
            int(stats.extended_s),
        )
    return EXIT_OK if clean else EXIT_FAILURE


if __name__ == '__main__':
    raise SystemExit(main(sys.argv[1:]))

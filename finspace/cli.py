"""
Command line entry point for the fin-space daemon.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from finspace.config import base_config
from finspace.config.space_config import SpaceConfig, load_space_config
from finspace.monitoring.app import StatusServer
from finspace.orchestrator import SpaceOrchestrator
from finspace.storage.errors import ConfigError

logger = logging.getLogger('finspace')


def setup_logging(level: str = 'INFO', log_file: Optional[str] = None):
    """Configure console and optional file logging with consistent format."""
    formatter = logging.Formatter(base_config.LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        except OSError as e:
            logger.error(f"Unable to write to log file {log_file}: {e}")
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Keep incoming and archive disks above their free space thresholds'
    )
    parser.add_argument('--config', default=base_config.CONFIG_PATH,
                        help='Path to the JSON configuration file')
    parser.add_argument('--debug', action='store_true',
                        help='Dry run: log every deletion and move without performing it')
    parser.add_argument('--once', action='store_true',
                        help='Run a single round and exit')
    parser.add_argument('--log-level', default=base_config.LOG_LEVEL,
                        help='Logging level (DEBUG, INFO, WARNING, ERROR)')
    parser.add_argument('--metrics-port', type=int, default=None,
                        help='Serve /metrics and /health on this port')
    return parser.parse_args(argv)


def resolve_metrics_port(cli_port: Optional[int]) -> Optional[int]:
    if cli_port is not None:
        return cli_port
    if base_config.METRICS_PORT:
        try:
            return int(base_config.METRICS_PORT)
        except ValueError:
            raise ConfigError(f"FINSPACE_METRICS_PORT must be an integer, got {base_config.METRICS_PORT!r}")
    return None


async def run(config: SpaceConfig, once: bool = False):
    orchestrator = SpaceOrchestrator.build(config)

    server = None
    if config.metrics_port:
        server = StatusServer(orchestrator, config.metrics_host, config.metrics_port)
        await server.start()

    try:
        await orchestrator.run_forever(max_rounds=1 if once else None)
    finally:
        if server is not None:
            await server.stop()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_space_config(args.config).with_overrides(
            debug=args.debug or base_config.DEBUG_OVERRIDE,
            metrics_port=resolve_metrics_port(args.metrics_port),
        )
    except ConfigError as e:
        logger.error(f"Fatal error: {e.message}")
        return 1

    setup_logging(args.log_level, config.log_file)
    if config.debug:
        logger.info("Running in debug mode: no files will be deleted or moved")

    try:
        asyncio.run(run(config, once=args.once))
    except KeyboardInterrupt:
        logger.info("Shutting down fin-space")
    return 0


if __name__ == '__main__':
    sys.exit(main())

"""Command line entry point: poll quotes and keep a CSV snapshot up to date."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Optional, Sequence

from quote_poller import __version__
from quote_poller.data.clients import QuoteFetcher
from quote_poller.data.polling import PollLoop, Scheduler
from quote_poller.data.yahoo_client import YahooQuoteClient
from quote_poller.infra.config import ConfigError, PollerConfig, load_config
from quote_poller.infra.logging import configure_logging
from quote_poller.infra.persistence import CsvSnapshotWriter, WriteError

EXIT_OK = 0
EXIT_WRITE_FAILED = 1
EXIT_BAD_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quote-poller",
        description="Poll the latest quote for each stock and write them to a CSV snapshot.",
    )
    parser.add_argument("-d", "--delay", type=int, help="Time between pulls in seconds, 0 to run once (default 300)")
    parser.add_argument("-s", "--stocks", help="Comma-separated list of stocks to track")
    parser.add_argument("-c", "--csv", help="Output CSV file (default out.csv)")
    parser.add_argument("--config", help="Optional YAML config file; flags override its values")
    parser.add_argument("--log-level", help="Log level (default INFO)")
    parser.add_argument("--log-format", choices=("json", "text"), default="json")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_client(config: PollerConfig, logger: logging.Logger) -> YahooQuoteClient:
    return YahooQuoteClient(
        base_url=config.base_url,
        interval=config.interval,
        lookback=config.range,
        timeout=config.timeout,
        logger=logger.getChild("client"),
    )


def build_loop(
    config: PollerConfig,
    fetcher: QuoteFetcher,
    logger: logging.Logger,
    scheduler: Optional[Scheduler] = None,
) -> PollLoop:
    return PollLoop(
        fetcher=fetcher,
        writer=CsvSnapshotWriter(logger=logger.getChild("snapshot")),
        symbols=config.symbols,
        destination=config.csv_path,
        delay=config.delay,
        scheduler=scheduler,
        logger=logger.getChild("loop"),
    )


def run(config: PollerConfig, fetcher: QuoteFetcher, scheduler: Optional[Scheduler] = None) -> int:
    """Run the poll loop to completion and map the outcome to an exit code."""

    logger = logging.getLogger("quote_poller")
    if not config.symbols:
        logger.warning("No stocks configured; snapshots will contain only the header row.")

    loop = build_loop(config, fetcher, logger, scheduler)
    previous = {sig: signal.signal(sig, lambda signum, frame: loop.stop()) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        loop.run()
    except WriteError as exc:
        logger.exception(
            "Snapshot write failed, exiting: %s", exc, extra={"event": "write_failed", "path": exc.destination}
        )
        return EXIT_WRITE_FAILED
    finally:
        for sig, handler in previous.items():
            # None means the old handler was not installed from Python.
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or "INFO", fmt=args.log_format)
    logger = logging.getLogger("quote_poller")

    try:
        config = load_config(
            args.config,
            overrides={"delay": args.delay, "stocks": args.stocks, "csv": args.csv, "log_level": args.log_level},
        )
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc, extra={"event": "config_error"})
        return EXIT_BAD_CONFIG
    configure_logging(config.log_level, fmt=args.log_format)

    client = build_client(config, logger)
    try:
        return run(config, client)
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())

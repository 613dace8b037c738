"""Main entry point for FIRDS reference data ingestion."""
import argparse
import asyncio
import logging
import signal
import sys
from datetime import date

from firds.core.config import ConfigError, load_config
from firds.core.orchestrator import Orchestrator
from firds.models import FileStatus, FileType, FirdsSource

logger = logging.getLogger(__name__)


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="python -m firds",
        description="FIRDS ingestion - download, validate and classify instrument reference data",
    )

    parser.add_argument(
        "-c", "--config",
        default="config/default.yaml",
        help="Path to configuration file (default: config/default.yaml)",
    )

    parser.add_argument(
        "--from",
        dest="start",
        required=True,
        type=date.fromisoformat,
        help="First publication date to ingest (YYYY-MM-DD)",
    )

    parser.add_argument(
        "--to",
        dest="end",
        type=date.fromisoformat,
        help="Last publication date to ingest (YYYY-MM-DD, default: same as --from)",
    )

    parser.add_argument(
        "--source",
        choices=[s.value for s in FirdsSource],
        help="Override the configured source",
    )

    parser.add_argument(
        "--file-type",
        dest="file_types",
        action="append",
        choices=[t.value for t in FileType],
        help="Override the configured file types (repeatable)",
    )

    parser.add_argument(
        "-o", "--output",
        help="Override the configured output directory",
    )

    parser.add_argument(
        "-l", "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(args)


def setup_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=getattr(logging, level),
        format=log_format,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from external libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def main(args: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 when every file completed, 1 on error or quarantined files)
    """
    parsed_args = parse_args(args)

    setup_logging(parsed_args.log_level)

    logger.info("FIRDS ingestion starting...")
    logger.info(f"Config: {parsed_args.config}")

    orchestrator = None

    try:
        config = load_config(parsed_args.config)
        if parsed_args.source:
            config.source.name = FirdsSource(parsed_args.source)
        if parsed_args.file_types:
            config.source.file_types = [FileType(t) for t in parsed_args.file_types]
        if parsed_args.output:
            config.data_store.path = parsed_args.output

        orchestrator = Orchestrator(config)

        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down...")
            if orchestrator:
                orchestrator.stop()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        end = parsed_args.end or parsed_args.start
        ledgers = orchestrator.start(orchestrator.criteria(parsed_args.start, end))

        failed = [ledger for ledger in ledgers if ledger.status is not FileStatus.COMPLETED]
        for ledger in failed:
            logger.warning(f"{ledger.descriptor.file_name}: {ledger.status.value} ({ledger.terminal_error})")
        return 1 if failed else 0

    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Interrupted, ingestion cancelled")
        return 1

    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

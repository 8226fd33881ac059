"""
Command line entry point: runs one feed processing pass.
"""

import argparse
import sys
from typing import Optional

import yaml
from pydantic import ValidationError

from writeup_hunter import __version__
from writeup_hunter.config import Config, PipelineConfig, get_config, load_config_from_yaml, set_config
from writeup_hunter.core.pipeline import create_pipeline
from writeup_hunter.exceptions import WriteupHunterError
from writeup_hunter.logger import get_logger, setup_logger
from writeup_hunter.notifications.base import ConsoleNotifier, Notifier
from writeup_hunter.notifications.telegram import TelegramNotifier

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="writeup-hunter",
        description="Poll write-up feeds and post new keyword matches to Telegram",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log notifications instead of sending them (no credentials needed)",
    )
    parser.add_argument("--window-days", type=int, help="Only notify items newer than N days")
    parser.add_argument("--feeds-file", help="Feed URL list")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, ...)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Build the configuration and apply command line overrides."""
    config = load_config_from_yaml(args.config) if args.config else get_config()

    if args.dry_run:
        config.dry_run = True
    if args.window_days is not None:
        config.pipeline = PipelineConfig(**{**config.pipeline.model_dump(), "window_days": args.window_days})
    if args.feeds_file:
        config.storage.feeds_file = args.feeds_file

    return set_config(config)


def build_notifier(config: Config) -> Notifier:
    """Telegram notifier, or the console notifier for dry runs.

    Raises:
        ConfigError: If Telegram credentials are missing
    """
    if config.dry_run:
        return ConsoleNotifier()
    return TelegramNotifier.from_config(config.telegram)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except (ValidationError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        setup_logger(level=args.log_level)
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logger(level=args.log_level)

    try:
        notifier = build_notifier(config)
    except WriteupHunterError as e:
        logger.error(str(e))
        return 1

    try:
        pipeline = create_pipeline(notifier, config)
        stats = pipeline.run()
    except WriteupHunterError as e:
        logger.error(str(e))
        return 1
    finally:
        notifier.close()

    logger.info(
        f"Pass finished: {stats.articles_found} notifications, "
        f"{stats.feeds_failed}/{stats.feeds_total} feeds failed "
        f"({stats.success_rate:.0%} fetched)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

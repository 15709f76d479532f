"""Command-line interface for bulk indexing runs."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError

from gsc_indexer import __version__
from gsc_indexer.config import ConfigurationError, Settings, get_settings
from gsc_indexer.main import IndexOptions, index
from gsc_indexer.services.google_credentials import GoogleCredentialsError
from gsc_indexer.services.session_pool import IndexingRunError
from gsc_indexer.utils.console import ConsoleReporter
from gsc_indexer.utils.logging import setup_logging


def _split_urls(value: str) -> list[str]:
    return [url.strip() for url in value.split(",") if url.strip()]


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""

    parser = argparse.ArgumentParser(
        prog="gsc-indexer",
        description=(
            "Check the Google indexing status of a site's pages and request "
            "indexing for the ones that are not indexed yet"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "site",
        help="Domain (example.com) or URL-prefix property (https://example.com/)",
    )
    parser.add_argument(
        "--client-email",
        "-c",
        help="Service account client email (overrides GIS_CLIENT_EMAIL)",
    )
    parser.add_argument(
        "--private-key",
        "-k",
        help="Service account private key (overrides GIS_PRIVATE_KEY)",
    )
    parser.add_argument(
        "--path",
        "-p",
        type=Path,
        help="Path to a service account JSON file, object or array of keys",
    )
    parser.add_argument(
        "--urls",
        "-u",
        type=_split_urls,
        help="Comma separated pages to process instead of the sitemaps",
    )
    parser.add_argument(
        "--rpm-retry",
        action="store_true",
        default=None,
        help="Wait and retry when the per-minute quota is exceeded",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        help="Directory for per-site status cache files (default: .cache)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        help="Maximum concurrent status checks (default: 50)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Diagnostic log level (default: WARNING)",
    )
    return parser


def _settings_from_args(args: argparse.Namespace, settings: Settings) -> Settings:
    overrides: dict[str, object] = {}
    if args.cache_dir is not None:
        overrides["GIS_CACHE_DIR"] = args.cache_dir
    if args.concurrency is not None:
        if args.concurrency <= 0:
            raise ConfigurationError("--concurrency must be greater than zero")
        overrides["GIS_BATCH_CONCURRENCY"] = args.concurrency
    if args.log_level is not None:
        overrides["LOG_LEVEL"] = args.log_level
    return settings.model_copy(update=overrides) if overrides else settings


def _describe_invalid_settings(error: ValidationError) -> str:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )
    return f"Invalid configuration: {problems}"


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI; returns the process exit code."""

    parser = create_parser()
    args = parser.parse_args(argv)
    reporter = ConsoleReporter()

    try:
        settings = _settings_from_args(args, get_settings())
        setup_logging(settings)
        options = IndexOptions(
            client_email=args.client_email,
            private_key=args.private_key,
            path=args.path,
            urls=args.urls,
            rpm_retry=args.rpm_retry,
        )
        asyncio.run(index(args.site, options, settings=settings, reporter=reporter))
    except ValidationError as error:
        reporter.error(_describe_invalid_settings(error))
        return 1
    except (ConfigurationError, GoogleCredentialsError, IndexingRunError) as error:
        reporter.error(str(error))
        return 1
    except KeyboardInterrupt:
        reporter.error("Interrupted.")
        return 130

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

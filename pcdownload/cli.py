"""Command line interface for pcdownload."""

import argparse, json, logging, sys
from pathlib import Path

from pcdownload.catalog import get_collection, get_item
from pcdownload.pipeline import download_item


log = logging.getLogger(__name__)


def _resolve_log_level(args: argparse.Namespace) -> int:
    """Resolve effective logging level from explicit level or verbosity flags."""
    if args.log_level is not None:
        return getattr(logging, args.log_level)

    # Start from INFO, then apply -v and -q offsets with DEBUG/ERROR clamp.
    level = logging.INFO - (10 * int(args.verbose)) + (10 * int(args.quiet))
    return max(logging.DEBUG, min(logging.ERROR, level))


def _configure_logging(args: argparse.Namespace) -> None:
    """Configure stdlib logging using Python default handler routing."""
    effective_level = _resolve_log_level(args)
    root_logger = logging.getLogger()
    root_logger.setLevel(effective_level)
    if not root_logger.handlers:
        logging.basicConfig(level=effective_level)


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2))


def main_cli(args: argparse.Namespace) -> int:
    """Run the CLI command selected by parsed arguments."""
    # Route item download command.
    if args.command == "download":
        result = download_item(
            collection_id=args.collection,
            item_id=args.item,
            directory=args.directory,
            api_url=args.api_url,
            token_url=args.token_url,
            fail_fast_signing=args.strict_signing,
            show_progress=not args.no_progress and sys.stderr.isatty(),
            logger=log,
        )
        print(result.record_fp)
        return 0

    # Route read-only lookups.
    if args.command == "item":
        _print_json(get_item(args.collection, args.item, api_url=args.api_url))
        return 0

    if args.command == "collection":
        _print_json(get_collection(args.collection, api_url=args.api_url))
        return 0

    raise ValueError(f"unsupported command path: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Run the pcdownload CLI and return an exit code."""
    args = _parse_arguments(argv)
    _configure_logging(args)
    try:
        return main_cli(args)
    except Exception as err:
        log.error(f"{err}")
        log.debug("unhandled CLI exception", exc_info=True)
        return 1


def _parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for pcdownload."""
    parser = argparse.ArgumentParser(
        prog="pcdownload",
        description="Download Planetary Computer STAC items and their assets.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeatable).",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease logging verbosity (repeatable).",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default=None,
        help="Explicit log level override.",
    )
    parser.add_argument(
        "--api-url",
        default=None,
        help="STAC API base URL. Defaults to $PCDOWNLOAD_API_URL or the Planetary Computer API.",
    )
    parser.add_argument(
        "--token-url",
        default=None,
        help="SAS token endpoint base URL. Defaults to $PCDOWNLOAD_TOKEN_URL or the Planetary Computer endpoint.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Register download command.
    download_parser = subparsers.add_parser("download", help="Download an item and all of its assets.")
    download_parser.add_argument("collection", help="STAC collection id.")
    download_parser.add_argument("item", help="STAC item id.")
    download_parser.add_argument(
        "directory",
        nargs="?",
        type=Path,
        default=None,
        help="Output directory. Defaults to the current working directory.",
    )
    download_parser.add_argument(
        "--strict-signing",
        action="store_true",
        help="Abort the run when any asset href cannot be signed.",
    )
    download_parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable per-asset progress bars.",
    )

    # Register read-only lookup commands.
    item_parser = subparsers.add_parser("item", help="Print a STAC item as JSON.")
    item_parser.add_argument("collection", help="STAC collection id.")
    item_parser.add_argument("item", help="STAC item id.")

    collection_parser = subparsers.add_parser("collection", help="Print a STAC collection as JSON.")
    collection_parser.add_argument("collection", help="STAC collection id.")
    return parser.parse_args(argv)


if __name__ == "__main__":
    raise SystemExit(main())

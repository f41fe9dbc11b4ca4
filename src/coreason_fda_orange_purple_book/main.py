# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Entry point for the FDA Orange Book / Purple Book service."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger

from coreason_fda_orange_purple_book.config import get_db_path, get_max_age_days
from coreason_fda_orange_purple_book.exceptions import FdaBookError
from coreason_fda_orange_purple_book.service import OrangePurpleBookService
from coreason_fda_orange_purple_book.tools import BookMethod, execute_book_method
from coreason_fda_orange_purple_book.utils.logger import setup_logging


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="FDA Orange Book / Purple Book service")
    parser.add_argument(
        "--db-path",
        type=Path,
        default=get_db_path(),
        help="Location of the local SQLite store",
    )
    parser.add_argument(
        "--max-age-days",
        type=int,
        default=get_max_age_days(),
        help="Rebuild the store once it is older than this many days",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Also write JSON logs to this directory",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Download FDA data and build the store if missing or stale")
    build.add_argument("--force", action="store_true", help="Rebuild even if the store is fresh")

    query = subparsers.add_parser("query", help="Run one query and print the JSON result")
    query.add_argument("method", choices=[m.value for m in BookMethod])
    query.add_argument("--drug-name", type=str, default=None)
    query.add_argument("--nda-number", type=str, default=None)
    query.add_argument("--years-ahead", type=int, default=5)
    query.add_argument("--reference-product", type=str, default=None)
    query.add_argument("--no-generics", action="store_true", help="Exclude ANDA products from searches")

    subparsers.add_parser("serve", help="Run the MCP server over stdio")

    return parser.parse_args(args)


async def run_build(service: OrangePurpleBookService, force: bool = False) -> None:
    """
    Warm the store, optionally forcing a rebuild.

    Args:
        service: The service owning the store.
        force: Discard the existing store first.
    """
    if force and service.db_path.exists():
        logger.info(f"Forcing rebuild of {service.db_path}")
        service.close()
        service.db_path.unlink()

    await service.ensure_ready()
    metadata = service.get_metadata()
    if metadata is not None:
        logger.info(f"Store version {metadata.version} built at {metadata.created_at}")


async def run_query(service: OrangePurpleBookService, parsed_args: argparse.Namespace) -> bool:
    """Execute one tool method and print the envelope. Returns whether it succeeded."""
    envelope = await execute_book_method(
        service,
        {
            "method": parsed_args.method,
            "drug_name": parsed_args.drug_name,
            "nda_number": parsed_args.nda_number,
            "years_ahead": parsed_args.years_ahead,
            "reference_product": parsed_args.reference_product,
            "include_generics": not parsed_args.no_generics,
        },
    )
    print(json.dumps(envelope, indent=2))
    return bool(envelope["success"])


def run_server(service: OrangePurpleBookService) -> None:
    from coreason_fda_orange_purple_book.server import create_server

    create_server(service).run()


def main(args: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parsed_args = parse_args(args)
    setup_logging(log_dir=parsed_args.log_dir)

    service = OrangePurpleBookService(db_path=parsed_args.db_path, max_age_days=parsed_args.max_age_days)

    try:
        if parsed_args.command == "build":
            asyncio.run(run_build(service, force=parsed_args.force))
        elif parsed_args.command == "query":
            if not asyncio.run(run_query(service, parsed_args)):
                sys.exit(1)
        else:
            run_server(service)
    except FdaBookError as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)
    finally:
        service.close()


if __name__ == "__main__":  # pragma: no cover
    main()

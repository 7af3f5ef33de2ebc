"""
Ruten Shoplist — Command Line Entrypoint

Configures structlog, resolves a shopping list against the card store and
prints the aggregated shop list as JSON.

Run via:
    python -m rutenshop.main 12345+UR:2 67890+SR
    python -m rutenshop.main --file shopping_list.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from rutenshop.config import settings
from rutenshop.data_access import DataAccessService
from rutenshop.pipeline import ProductRequest, ShopListResult
from rutenshop.pipeline.shop_list import ShopListService


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    # Configure stdlib logging first (for third-party libraries)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------


def parse_item(raw: str) -> ProductRequest:
    """
    Parse "<product_name>[:<count>]" into a ProductRequest.

    >>> parse_item("12345+UR:2").count
    2
    """
    product_name, sep, count = raw.rpartition(":")
    if not sep:
        return ProductRequest(product_name=raw, count=1)
    try:
        return ProductRequest(product_name=product_name, count=int(count))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid item {raw!r}: count must be an integer") from e


def load_shopping_list(path: Path) -> list[ProductRequest]:
    """Read a JSON array of {"product_name", "count"} objects."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return [ProductRequest.model_validate(item) for item in data]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Find Ruten shops that carry the cards on a shopping list.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m rutenshop.main 12345+UR:2 67890+SR
  python -m rutenshop.main --file shopping_list.json
""",
    )
    parser.add_argument(
        "items",
        nargs="*",
        type=parse_item,
        help="Items as <card id>+<rarity>[:<count>] (count defaults to 1).",
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="JSON file with a list of {\"product_name\", \"count\"} objects.",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Card store URL (default: DATABASE_URL setting).",
    )
    args = parser.parse_args(argv)
    if not args.items and args.file is None:
        parser.error("give at least one item or --file")
    return args


def result_to_dict(result: ShopListResult) -> dict[str, Any]:
    return {
        "shops": [shop.model_dump(mode="json") for shop in result.shops],
        "errors": [
            {"stage": error.stage.value, "subject": error.subject, "message": error.message}
            for error in result.errors
        ],
    }


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


async def main(argv: list[str] | None = None) -> int:
    """
    Aggregate the shopping list and print the result.

    Returns:
        Process exit code: 0 when at least one shop was found, 1 otherwise.
    """
    args = parse_args(argv)
    _configure_logging(log_level=settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)

    shopping_list = list(args.items)
    if args.file is not None:
        shopping_list.extend(load_shopping_list(args.file))

    data_access = DataAccessService(database_url=args.database_url)
    try:
        result = await ShopListService(shopping_list, data_access).get_shop_list()
    except Exception as e:
        logger.error(
            "shop_list_fatal_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        await data_access.dispose()

    print(json.dumps(result_to_dict(result), ensure_ascii=False, indent=2))
    return 0 if result.shops else 1


def run() -> None:
    """Console script entrypoint."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

"""Tests for the command line entrypoint."""

from __future__ import annotations

import argparse
import json
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rutenshop import main as cli
from rutenshop.errors import CardNotFoundError
from rutenshop.pipeline import (
    AccumulatedError,
    AggregationStage,
    Shop,
    ShopListResult,
    ShopProduct,
)


SAMPLE_RESULT = ShopListResult(
    shops=[
        Shop(
            id="shopA",
            products={"12345+UR": ShopProduct(id="A", price=Decimal("100"), quantity_available=2)},
            ship_prices={"SEVEN": Decimal("60")},
            free_ship={"SEVEN": Decimal("499")},
        )
    ],
    errors=[
        AccumulatedError(
            stage=AggregationStage.RESOLVE,
            subject="99999+UR",
            message="Card data not found for 99999 UR",
            error=CardNotFoundError("99999", "UR"),
        )
    ],
)


class TestParseItem:
    def test_with_count(self) -> None:
        item = cli.parse_item("12345+UR:2")
        assert item.product_name == "12345+UR"
        assert item.count == 2

    def test_default_count(self) -> None:
        item = cli.parse_item("12345+UR")
        assert item.product_name == "12345+UR"
        assert item.count == 1

    def test_count_clamped(self) -> None:
        assert cli.parse_item("12345+UR:9").count == 3

    def test_bad_count(self) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_item("12345+UR:two")


def test_parse_args_requires_items_or_file() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args([])


def test_parse_args_items() -> None:
    args = cli.parse_args(["12345+UR:2", "67890+SER", "--database-url", "sqlite+aiosqlite:///x.db"])

    assert [item.product_name for item in args.items] == ["12345+UR", "67890+SER"]
    assert args.database_url == "sqlite+aiosqlite:///x.db"
    assert args.file is None


def test_load_shopping_list(tmp_path: Path) -> None:
    path = tmp_path / "list.json"
    path.write_text(
        json.dumps([{"product_name": "12345+UR", "count": 5}, {"product_name": "67890+SER"}]),
        encoding="utf-8",
    )

    items = cli.load_shopping_list(path)

    assert [(item.product_name, item.count) for item in items] == [("12345+UR", 3), ("67890+SER", 1)]


def test_result_to_dict() -> None:
    data = cli.result_to_dict(SAMPLE_RESULT)

    assert data["shops"][0]["id"] == "shopA"
    assert data["shops"][0]["products"]["12345+UR"]["price"] == "100"
    assert data["errors"] == [
        {"stage": "resolve", "subject": "99999+UR", "message": "Card data not found for 99999 UR"}
    ]


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_main_prints_result_and_disposes(capsys: pytest.CaptureFixture[str]) -> None:
    data_access = MagicMock()
    data_access.dispose = AsyncMock()
    service = MagicMock()
    service.get_shop_list = AsyncMock(return_value=SAMPLE_RESULT)

    with patch.object(cli, "_configure_logging"), \
         patch.object(cli, "DataAccessService", return_value=data_access) as da_cls, \
         patch.object(cli, "ShopListService", return_value=service) as service_cls:
        exit_code = await cli.main(["12345+UR:2", "--database-url", "sqlite+aiosqlite:///x.db"])

    assert exit_code == 0
    da_cls.assert_called_once_with(database_url="sqlite+aiosqlite:///x.db")
    shopping_list = service_cls.call_args.args[0]
    assert [item.product_name for item in shopping_list] == ["12345+UR"]
    data_access.dispose.assert_awaited_once()

    output = json.loads(capsys.readouterr().out)
    assert output["shops"][0]["id"] == "shopA"
    assert output["errors"][0]["stage"] == "resolve"


@pytest.mark.asyncio
async def test_main_exit_code_when_no_shops(capsys: pytest.CaptureFixture[str]) -> None:
    data_access = MagicMock()
    data_access.dispose = AsyncMock()
    service = MagicMock()
    service.get_shop_list = AsyncMock(return_value=ShopListResult(shops=[], errors=[]))

    with patch.object(cli, "_configure_logging"), \
         patch.object(cli, "DataAccessService", return_value=data_access), \
         patch.object(cli, "ShopListService", return_value=service):
        exit_code = await cli.main(["12345+UR"])

    assert exit_code == 1
    assert json.loads(capsys.readouterr().out) == {"shops": [], "errors": []}


@pytest.mark.asyncio
async def test_main_disposes_on_fatal_error() -> None:
    data_access = MagicMock()
    data_access.dispose = AsyncMock()
    service = MagicMock()
    service.get_shop_list = AsyncMock(side_effect=ConnectionError("database down"))

    with patch.object(cli, "_configure_logging"), \
         patch.object(cli, "DataAccessService", return_value=data_access), \
         patch.object(cli, "ShopListService", return_value=service):
        with pytest.raises(ConnectionError):
            await cli.main(["12345+UR"])

    data_access.dispose.assert_awaited_once()

"""
Tests for the product listing filter.

Each stage is checked on its own, then the full chain on realistic titles.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from rutenshop.config import settings
from rutenshop.engine.listing_filter import (
    contains_all_keywords,
    filter_listings,
    has_foreign_edition_marker,
    indicates_rarity,
    is_fan_made,
    is_unopened_pack,
)
from tests.helpers import make_listing


class TestKeywordContainment:
    def test_all_tokens_present(self) -> None:
        assert contains_all_keywords("遊戲王 12345 UR 青眼白龍", "12345+UR")

    def test_case_insensitive(self) -> None:
        assert contains_all_keywords("遊戲王 12345 ur 青眼白龍", "12345+UR")

    def test_missing_token(self) -> None:
        assert not contains_all_keywords("遊戲王 12345 青眼白龍", "12345+UR")

    def test_whitespace_separated_tokens(self) -> None:
        assert contains_all_keywords("QCCU-JP001 UR 青眼白龍", "QCCU-JP001 UR")


class TestExclusionMarkers:
    @pytest.mark.parametrize("title", ["12345 UR 簡中版", "12345 UR 韓版", "12345 UR 英文版", "12345 � UR"])
    def test_foreign_edition(self, title: str) -> None:
        assert has_foreign_edition_marker(title)

    def test_japanese_print_kept(self) -> None:
        assert not has_foreign_edition_marker("12345 UR 日版 青眼白龍")

    @pytest.mark.parametrize("title", ["12345 UR 自製卡", "12345 UR diy", "同人 12345 UR"])
    def test_fan_made(self, title: str) -> None:
        assert is_fan_made(title)

    @pytest.mark.parametrize("title", ["12345 UR 未拆 補充包", "QCCU 原盒 12345"])
    def test_unopened_pack(self, title: str) -> None:
        assert is_unopened_pack(title)

    def test_single_card_not_a_pack(self) -> None:
        assert not is_unopened_pack("12345 UR 青眼白龍 單卡")

    def test_markers_come_from_settings(self) -> None:
        with patch.object(settings, "FAN_MADE_MARKERS", ["影印"]):
            assert is_fan_made("12345 UR 影印")
            assert not is_fan_made("12345 UR 自製")


class TestIndicatesRarity:
    def test_standalone_code(self) -> None:
        assert indicates_rarity("12345 SR 青眼白龍", "SR")

    def test_code_inside_longer_code_does_not_count(self) -> None:
        assert not indicates_rarity("67890 PSER 黑魔導", "SER")

    def test_code_next_to_cjk_counts(self) -> None:
        assert indicates_rarity("67890黑魔導SER", "SER")

    def test_case_insensitive(self) -> None:
        assert indicates_rarity("12345 sr", "SR")

    def test_empty_rarity(self) -> None:
        assert not indicates_rarity("12345 SR", "")


class TestFilterListings:
    def test_rejects_other_rarity_of_same_card(self) -> None:
        """An SR listing of a card printed in UR and SR is not a UR listing."""
        listings = [
            make_listing("12345 UR 青眼白龍", id="A"),
            make_listing("12345 UR SR 青眼白龍", id="B"),
            make_listing("12345 UR 簡中 青眼白龍", id="C"),
        ]

        result = filter_listings(listings, "12345+UR", ["UR", "SR"])

        assert [x.id for x in result] == ["A"]

    def test_longer_rarity_requested(self) -> None:
        listings = [
            make_listing("67890 PSER 黑魔導", id="A"),
            make_listing("67890 PSER SER 黑魔導", id="B"),
        ]

        result = filter_listings(listings, "67890+PSER", ["SER", "PSER"])

        assert [x.id for x in result] == ["A"]

    def test_shorter_rarity_requested(self) -> None:
        """Requesting SER must drop listings that say PSER."""
        listings = [
            make_listing("67890 SER 黑魔導", id="A"),
            make_listing("67890 SER PSER 黑魔導", id="B"),
        ]

        result = filter_listings(listings, "67890+SER", ["SER", "PSER"])

        assert [x.id for x in result] == ["A"]

    def test_single_rarity_skips_disambiguation(self) -> None:
        listings = [make_listing("55555 N SR 灰流麗", id="A")]

        result = filter_listings(listings, "55555+N", ["N"])

        assert [x.id for x in result] == ["A"]

    def test_stages_chain(self) -> None:
        listings = [
            make_listing("12345 UR 自製", id="fan"),
            make_listing("12345 UR 未拆卡包", id="pack"),
            make_listing("12345 韓版 UR", id="kr"),
            make_listing("54321 UR", id="other"),
            make_listing("12345 UR 青眼白龍 美品", id="ok"),
        ]

        result = filter_listings(listings, "12345+UR", ["UR", "SR"])

        assert [x.id for x in result] == ["ok"]

    def test_truncates_keeping_order(self) -> None:
        listings = [make_listing(f"12345 UR #{i}", id=f"L{i}") for i in range(15)]

        result = filter_listings(listings, "12345+UR", ["UR", "SR"])

        assert [x.id for x in result] == [f"L{i}" for i in range(10)]

    def test_truncation_limit_configurable(self) -> None:
        listings = [make_listing(f"12345 UR #{i}", id=f"L{i}") for i in range(5)]

        with patch.object(settings, "LISTING_FILTER_MAX_RESULTS", 2):
            result = filter_listings(listings, "12345+UR", ["UR"])

        assert [x.id for x in result] == ["L0", "L1"]

    def test_empty_input(self) -> None:
        assert filter_listings([], "12345+UR", ["UR", "SR"]) == []

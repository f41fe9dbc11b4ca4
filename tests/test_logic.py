# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Tests for the pure analytics in gold.logic."""

from datetime import date
from pathlib import Path
from typing import Any

import pytest

from coreason_fda_orange_purple_book.gold.logic import (
    build_fts_query,
    compute_patent_cliff,
    interchangeability,
    normalize_application_number,
    parse_fda_date,
    split_brand_and_generic,
    split_reference_and_biosimilars,
    therapeutic_equivalents,
)
from coreason_fda_orange_purple_book.silver.models import (
    OrangeBookExclusivity,
    OrangeBookPatent,
    OrangeBookProduct,
    PurpleBookBiologic,
)
from coreason_fda_orange_purple_book.silver.orange_book import parse_orange_book_archive

TODAY = date(2025, 1, 1)


def _product(**overrides: Any) -> OrangeBookProduct:
    values = {
        "ingredient": "ATORVASTATIN CALCIUM",
        "dosage_form": "TABLET",
        "route": "ORAL",
        "trade_name": "LIPITOR",
        "applicant": "VIATRIS",
        "applicant_full_name": "VIATRIS SPECIALTY LLC",
        "strength": "EQ 10MG BASE",
        "appl_type": "N",
        "appl_no": "020702",
        "product_no": "001",
        "te_code": "AB",
        "approval_date": "Dec 17, 1996",
        "rld": "Yes",
        "rs": "No",
        "type": "RX",
    }
    values.update(overrides)
    return OrangeBookProduct(**values)


def _patent(no: str, expires: str, use: str = "") -> OrangeBookPatent:
    return OrangeBookPatent(
        appl_type="N",
        appl_no="020702",
        product_no="001",
        patent_no=no,
        patent_expire_date=expires,
        drug_substance_flag="",
        drug_product_flag="",
        patent_use_code=use,
        delist_flag="",
        submission_date="",
    )


def _exclusivity(code: str, expires: str) -> OrangeBookExclusivity:
    return OrangeBookExclusivity(
        appl_type="N", appl_no="020702", product_no="001", exclusivity_code=code, exclusivity_date=expires
    )


class TestHelpers:
    """Query text, dates and application numbers."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("ibuprofen", '"ibuprofen"'),
            ("  insulin   glargine ", '"insulin" "glargine"'),
            ("adalimumab-adbm", '"adalimumab-adbm"'),
            ('say "hi"', '"say" """hi"""'),
            ("- ( ) *", ""),
            ("ibu*", '"ibu"*'),
            ("adalim** humira", '"adalim"* "humira"'),
            ("advil OR lipitor", '"advil" OR "lipitor"'),
            ("OR advil OR OR lipitor OR", '"advil" OR "lipitor"'),
            ("advil or lipitor", '"advil" "or" "lipitor"'),
            ("OR", ""),
            ("", ""),
        ],
    )
    def test_build_fts_query(self, text: str, expected: str) -> None:
        assert build_fts_query(text) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Jun 28, 2031", date(2031, 6, 28)),
            ("2031-06-28", date(2031, 6, 28)),
            ("20310628", date(2031, 6, 28)),
            ("06/28/2031", date(2031, 6, 28)),
            ("Approved Prior to Jan 1, 1982", None),
            ("", None),
            (None, None),
            ("soon", None),
        ],
    )
    def test_parse_fda_date(self, value: str | None, expected: date | None) -> None:
        assert parse_fda_date(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [("20702", "020702"), (" 020702 ", "020702"), ("999999", "999999"), ("BN12345", "BN12345")],
    )
    def test_normalize_application_number(self, value: str, expected: str) -> None:
        assert normalize_application_number(value) == expected


class TestOrangeBookPartitions:
    """Brand/generic and therapeutic-equivalence partitions."""

    def test_split_brand_and_generic(self, orange_book_zip: Path) -> None:
        products = parse_orange_book_archive(orange_book_zip).products
        ibuprofen = [p for p in products if p.ingredient == "IBUPROFEN"]

        result = split_brand_and_generic(ibuprofen)
        assert [p.trade_name for p in result.brand_products] == ["ADVIL"]
        assert len(result.generic_products) == 2
        assert result.total_count == 3

        brands_only = split_brand_and_generic(ibuprofen, include_generics=False)
        assert brands_only.generic_products == []
        assert brands_only.total_count == 1

    def test_te_partition_is_total(self, orange_book_zip: Path) -> None:
        """Every generic lands in exactly one of the two TE lists."""
        products = parse_orange_book_archive(orange_book_zip).products
        search = split_brand_and_generic(products)

        result = therapeutic_equivalents(search)

        rated = {p.appl_no for p in result.te_rated_generics}
        unrated = {p.appl_no for p in result.non_te_generics}
        assert rated == {"071935"}
        assert unrated == {"072096"}
        assert len(result.te_rated_generics) + len(result.non_te_generics) == len(search.generic_products)

    def test_rld_prefers_flagged_brand(self) -> None:
        search = split_brand_and_generic([_product(trade_name="OTHER", rld="No"), _product(rld="Yes")])
        assert therapeutic_equivalents(search).reference_listed_drug.trade_name == "LIPITOR"

    def test_rld_falls_back_to_first_brand(self) -> None:
        search = split_brand_and_generic([_product(trade_name="FIRST", rld="No"), _product(rld="No")])
        assert therapeutic_equivalents(search).reference_listed_drug.trade_name == "FIRST"

    def test_no_brand(self) -> None:
        search = split_brand_and_generic([_product(appl_type="A", te_code="AB1")])
        result = therapeutic_equivalents(search)
        assert result.reference_listed_drug is None
        assert len(result.te_rated_generics) == 1


class TestPatentCliff:
    """Loss-of-exclusivity computation."""

    def test_estimate_is_latest_patent_when_later(self) -> None:
        patents = [_patent("5273995", "Jun 28, 2031", "U-123"), _patent("6126971", "Jan 19, 2030")]
        exclusivity = [_exclusivity("PED", "Sep 1, 2031"), _exclusivity("NCE", "Mar 1, 2028")]

        forecast = compute_patent_cliff(_product(), patents, exclusivity, years_ahead=5, today=TODAY)
        summary = forecast.patent_cliff_analysis

        assert forecast.drug == "LIPITOR"
        assert summary.next_expiration == "2030-01-19"
        assert summary.all_patents_expire == "2031-06-28"
        assert summary.exclusivity_expires == "2028-03-01"
        assert summary.generic_entry_estimate == "2031-06-28"
        assert summary.years_until_loe == 6.5
        assert summary.loe_within_horizon is False
        assert [p.no for p in forecast.patents] == ["6126971", "5273995"]
        assert forecast.patents[1].use == "U-123"
        assert [e.code for e in forecast.exclusivity] == ["NCE", "PED"]

    def test_estimate_is_exclusivity_when_later(self) -> None:
        forecast = compute_patent_cliff(
            _product(), [_patent("1", "Jan 1, 2026")], [_exclusivity("NCE", "Jan 1, 2027")], today=TODAY
        )
        summary = forecast.patent_cliff_analysis
        assert summary.generic_entry_estimate == "2027-01-01"
        assert summary.loe_within_horizon is True

    def test_only_exclusivity(self) -> None:
        forecast = compute_patent_cliff(_product(), [], [_exclusivity("ODE", "Jul 4, 2029")], today=TODAY)
        summary = forecast.patent_cliff_analysis
        assert summary.next_expiration is None
        assert summary.all_patents_expire is None
        assert summary.generic_entry_estimate == "2029-07-04"

    def test_no_dates(self) -> None:
        """Without any dated patent or exclusivity there is no estimate."""
        forecast = compute_patent_cliff(_product(), [_patent("1", "")], [], today=TODAY)
        summary = forecast.patent_cliff_analysis
        assert summary.generic_entry_estimate is None
        assert summary.years_until_loe is None
        assert summary.loe_within_horizon is None
        assert forecast.patents == []

    def test_dates_sorted_chronologically_not_lexically(self) -> None:
        patents = [_patent("A", "Mar 1, 2027"), _patent("B", "Dec 1, 2026"), _patent("C", "Apr 1, 2030")]
        forecast = compute_patent_cliff(_product(), patents, [], today=TODAY)
        assert [p.no for p in forecast.patents] == ["B", "A", "C"]
        assert forecast.patent_cliff_analysis.next_expiration == "2026-12-01"

    def test_years_ahead_is_echoed(self) -> None:
        forecast = compute_patent_cliff(_product(), [_patent("1", "Jan 1, 2031")], [], years_ahead=10, today=TODAY)
        assert forecast.years_ahead == 10
        assert forecast.patent_cliff_analysis.loe_within_horizon is True

    def test_drug_falls_back_to_ingredient(self) -> None:
        forecast = compute_patent_cliff(_product(trade_name=""), [], [], today=TODAY)
        assert forecast.drug == "ATORVASTATIN CALCIUM"

    def test_serialized_alias(self) -> None:
        forecast = compute_patent_cliff(_product(), [_patent("1", "Jan 1, 2026")], [], today=TODAY)
        dumped = forecast.model_dump(by_alias=True)
        assert "yearsUntilLOE" in dumped["patentCliffAnalysis"]
        assert "generic_entry_estimate" not in dumped["patentCliffAnalysis"]


class TestBiologicPartitions:
    """Reference/biosimilar and interchangeability partitions."""

    def test_split_reference_and_biosimilars(self, biologics: list[PurpleBookBiologic]) -> None:
        result = split_reference_and_biosimilars(biologics)
        assert result.reference_product is not None
        assert result.reference_product.bla_number == "125057"
        assert [b.bla_number for b in result.biosimilars] == ["761024", "761058"]
        assert result.total_count == 3

    def test_interchangeable_partition_is_total(self, biologics: list[PurpleBookBiologic]) -> None:
        search = split_reference_and_biosimilars(biologics)
        result = interchangeability("humira", search)

        assert result.reference_product == "HUMIRA"
        assert [b.bla_number for b in result.interchangeable_biosimilars] == ["761058"]
        assert [b.bla_number for b in result.similar_but_not_interchangeable] == ["761024"]
        assert len(result.interchangeable_biosimilars) + len(result.similar_but_not_interchangeable) == len(
            search.biosimilars
        )

    def test_reference_name_falls_back_to_input(self, biologics: list[PurpleBookBiologic]) -> None:
        result = interchangeability("adalimumab", split_reference_and_biosimilars(biologics[1:]))
        assert result.reference_product == "adalimumab"
        assert len(result.interchangeable_biosimilars) == 1

    def test_empty(self) -> None:
        result = split_reference_and_biosimilars([])
        assert result.reference_product is None
        assert result.total_count == 0

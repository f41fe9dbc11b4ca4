# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Shared fixtures: a small Orange Book archive, sample biologics and a built store."""

import asyncio
import zipfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest

from coreason_fda_orange_purple_book.gold.models import DatabaseMetadata
from coreason_fda_orange_purple_book.gold.store import build_store
from coreason_fda_orange_purple_book.service import OrangePurpleBookService
from coreason_fda_orange_purple_book.silver.models import PurpleBookBiologic
from coreason_fda_orange_purple_book.silver.orange_book import parse_orange_book_archive

PRODUCTS_HEADER = (
    "Ingredient~DF;Route~Trade_Name~Applicant~Strength~Appl_Type~Appl_No~Product_No~"
    "TE_Code~Approval_Date~RLD~RS~Type~Applicant_Full_Name"
)
PATENTS_HEADER = (
    "Appl_Type~Appl_No~Product_No~Patent_No~Patent_Expire_Date_Text~Drug_Substance_Flag~"
    "Drug_Product_Flag~Patent_Use_Code~Delist_Flag~Submission_Date"
)
EXCLUSIVITY_HEADER = "Appl_Type~Appl_No~Product_No~Exclusivity_Code~Exclusivity_Date"

PRODUCT_LINES = [
    "IBUPROFEN~TABLET;ORAL~ADVIL~PFIZER~200MG~N~018989~001~AB~19840101~Yes~No~RX~PFIZER INC",
    "IBUPROFEN~TABLET;ORAL~IBUPROFEN~AMNEAL~200MG~A~071935~001~AB~Jun 12, 1987~No~No~OTC~AMNEAL PHARMACEUTICALS",
    "IBUPROFEN~TABLET;ORAL~IBUPROFEN~LEGACY~200MG~A~072096~001~BX~Aug 3, 1988~No~No~OTC~LEGACY PHARMACEUTICALS",
    "ATORVASTATIN CALCIUM~TABLET;ORAL~LIPITOR~VIATRIS~EQ 10MG BASE~N~020702~001~AB~Dec 17, 1996~Yes~No~RX~VIATRIS SPECIALTY LLC",
    "ATORVASTATIN CALCIUM~TABLET;ORAL~LIPITOR~VIATRIS~EQ 20MG BASE~N~020702~002~AB~Dec 17, 1996~Yes~No~RX~VIATRIS SPECIALTY LLC",
]
PATENT_LINES = [
    "N~020702~001~5273995~Jun 28, 2031~Y~~U-123~~",
    "N~020702~001~6126971~Jan 19, 2030~~Y~~~Dec 1, 2010",
]
EXCLUSIVITY_LINES = [
    "N~020702~002~PED~Sep 1, 2031",
    "N~020702~001~NCE~Mar 1, 2028",
]


def _text(header: str, lines: list[str]) -> str:
    return "\n".join([header, *lines]) + "\n"


def write_orange_book_zip(
    path: Path,
    products: Optional[list[str]] = None,
    patents: Optional[list[str]] = None,
    exclusivity: Optional[list[str]] = None,
    folder: str = "",
    omit: tuple[str, ...] = (),
) -> Path:
    """Write an Orange Book style archive; members named in ``omit`` are left out."""
    members = {
        "products.txt": _text(PRODUCTS_HEADER, PRODUCT_LINES if products is None else products),
        "patent.txt": _text(PATENTS_HEADER, PATENT_LINES if patents is None else patents),
        "exclusivity.txt": _text(EXCLUSIVITY_HEADER, EXCLUSIVITY_LINES if exclusivity is None else exclusivity),
    }
    with zipfile.ZipFile(path, "w") as zf:
        for name, text in members.items():
            if name not in omit:
                zf.writestr(f"{folder}{name}", text)
    return path


def make_biologic(**overrides: Any) -> PurpleBookBiologic:
    """Build a biologic with blank defaults for every field not given."""
    values: dict[str, Any] = {
        "bla_number": "125057",
        "proper_name": "adalimumab",
        "proprietary_name": "HUMIRA",
        "bla_type": "351(a)",
        "date_of_licensure": "2002-12-31",
        "licensure_status": "Licensed",
        "marketing_status": "Rx",
        "applicant": "AbbVie Inc.",
        "applicant_full_name": "AbbVie Inc.",
        "strength": "40 mg/0.8 mL",
        "dosage_form": "Injection",
        "route_of_administration": "Subcutaneous",
        "reference_product_proper_name": "",
        "reference_product_proprietary_name": "",
        "biosimilar": False,
        "interchangeable": False,
        "interchangeable_date": "",
        "exclusivity_expiration_date": "",
        "orphan_exclusivity": "",
        "pediatric_exclusivity": "",
    }
    values.update(overrides)
    return PurpleBookBiologic(**values)


@pytest.fixture
def zip_factory() -> Callable[..., Path]:
    """Expose the archive writer to tests that need a custom archive."""
    return write_orange_book_zip


@pytest.fixture
def orange_book_zip(tmp_path: Path) -> Path:
    """The default sample archive."""
    return write_orange_book_zip(tmp_path / "orange-book.zip")


@pytest.fixture
def biologics() -> list[PurpleBookBiologic]:
    """A reference biologic, one plain biosimilar and one interchangeable biosimilar."""
    biosimilar = {
        "proper_name": "adalimumab",
        "bla_type": "351(k)",
        "reference_product_proper_name": "adalimumab",
        "reference_product_proprietary_name": "HUMIRA",
        "biosimilar": True,
    }
    return [
        make_biologic(),
        make_biologic(
            bla_number="761024",
            proprietary_name="AMJEVITA",
            applicant="Amgen Inc.",
            applicant_full_name="Amgen Inc.",
            date_of_licensure="2016-09-23",
            **biosimilar,
        ),
        make_biologic(
            bla_number="761058",
            proprietary_name="CYLTEZO",
            applicant="Boehringer Ingelheim",
            applicant_full_name="Boehringer Ingelheim",
            date_of_licensure="2017-08-25",
            interchangeable=True,
            interchangeable_date="2021-10-15",
            **biosimilar,
        ),
    ]


@pytest.fixture
def metadata() -> DatabaseMetadata:
    return DatabaseMetadata(
        version="2025-01",
        orange_book_date="2025-01-15",
        purple_book_date="2025-01-15",
        created_at="2025-01-15T00:00:00+00:00",
        updated_at="2025-01-15T00:00:00+00:00",
        purple_book_source_url="https://purplebooksearch.fda.gov/files/2025/purplebook-search-january-data-download.xlsx",
    )


@pytest.fixture
def store_path(
    tmp_path: Path,
    orange_book_zip: Path,
    biologics: list[PurpleBookBiologic],
    metadata: DatabaseMetadata,
) -> Path:
    """A fully built store from the sample archive and biologics."""
    path = tmp_path / "db" / "orange-purple-book.db"
    build_store(path, parse_orange_book_archive(orange_book_zip), biologics, metadata)
    return path


@pytest.fixture
def ready_service(store_path: Path) -> Iterator[OrangePurpleBookService]:
    """A service opened on the prebuilt sample store."""
    service = OrangePurpleBookService(db_path=store_path, max_age_days=30, source=MagicMock())
    asyncio.run(service.ensure_ready())
    yield service
    service.close()

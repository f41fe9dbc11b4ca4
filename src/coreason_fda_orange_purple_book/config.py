# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Configuration module for the FDA Orange Book / Purple Book service."""

import os
from pathlib import Path
from typing import Final

from loguru import logger


class FdaConfig:
    """Configuration constants for the Orange Book and Purple Book pipeline."""

    # Source Definition
    ORANGE_BOOK_URL: Final[str] = "https://www.fda.gov/media/76860/download"
    PURPLE_BOOK_URL_TEMPLATE: Final[str] = (
        "https://purplebooksearch.fda.gov/files/{year}/purplebook-search-{month}-data-download.xlsx"
    )
    MONTH_NAMES: Final[tuple[str, ...]] = (
        "january",
        "february",
        "march",
        "april",
        "may",
        "june",
        "july",
        "august",
        "september",
        "october",
        "november",
        "december",
    )
    SPREADSHEET_CONTENT_TYPES: Final[tuple[str, ...]] = (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-excel",
    )
    REQUEST_TIMEOUT: Final[int] = 120  # seconds
    USER_AGENT: Final[str] = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Local Storage
    DEFAULT_DB_PATH: Final[Path] = Path("data/orange-purple-book.db")
    DEFAULT_MAX_AGE_DAYS: Final[int] = 30
    ORANGE_BOOK_FILENAME: Final[str] = "orange-book.zip"
    PURPLE_BOOK_FILENAME: Final[str] = "purple-book.xlsx"

    # Orange Book archive members
    FILE_PRODUCTS: Final[str] = "products.txt"
    FILE_PATENTS: Final[str] = "patent.txt"
    FILE_EXCLUSIVITY: Final[str] = "exclusivity.txt"

    # Parsing
    DELIMITER: Final[str] = "~"
    ENCODING: Final[str] = "utf-8"
    ENCODING_ERRORS: Final[str] = "replace"  # Handling for potential encoding issues (lossy)
    PRODUCT_FIELD_COUNT: Final[int] = 14
    PATENT_FIELD_COUNT: Final[int] = 10
    EXCLUSIVITY_FIELD_COUNT: Final[int] = 5

    # Purple Book: title row + header row precede the data
    PURPLE_BOOK_SKIP_ROWS: Final[int] = 2
    # Header labels drift between publications, so columns are addressed by position.
    PURPLE_BOOK_COLUMNS: Final[dict[str, int]] = {
        "applicant": 1,
        "bla_number": 2,
        "proprietary_name": 3,
        "proper_name": 4,
        "bla_type": 5,
        "strength": 6,
        "dosage_form": 7,
        "route_of_administration": 8,
        "marketing_status": 10,
        "licensure_status": 11,
        "approval_date": 12,
        "reference_product_proper_name": 13,
        "reference_product_proprietary_name": 14,
        "date_of_first_licensure": 20,
        "exclusivity_expiration_date": 21,
        "first_interchangeable_exclusivity": 22,
        "orphan_exclusivity": 24,
    }
    BIOSIMILAR_BLA_TYPE: Final[str] = "351(k)"

    # Querying
    SEARCH_LIMIT: Final[int] = 100
    BRAND_APPL_TYPE: Final[str] = "N"
    GENERIC_APPL_TYPE: Final[str] = "A"
    SUBSTITUTABLE_TE_PREFIX: Final[str] = "AB"
    APPLICATION_NUMBER_WIDTH: Final[int] = 6
    DAYS_PER_YEAR: Final[float] = 365.25


def get_db_path() -> Path:
    """Return the store location, honouring ``FDA_BOOK_DB_PATH``."""
    value = os.getenv("FDA_BOOK_DB_PATH")
    return Path(value) if value else FdaConfig.DEFAULT_DB_PATH


def get_max_age_days() -> int:
    """
    Return the staleness threshold in days, honouring ``FDA_BOOK_MAX_AGE_DAYS``.

    Invalid or non-positive values fall back to the default.
    """
    value = os.getenv("FDA_BOOK_MAX_AGE_DAYS")
    if not value:
        return FdaConfig.DEFAULT_MAX_AGE_DAYS
    try:
        days = int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid FDA_BOOK_MAX_AGE_DAYS={value!r}")
        return FdaConfig.DEFAULT_MAX_AGE_DAYS
    if days <= 0:
        logger.warning(f"Ignoring non-positive FDA_BOOK_MAX_AGE_DAYS={value!r}")
        return FdaConfig.DEFAULT_MAX_AGE_DAYS
    return days

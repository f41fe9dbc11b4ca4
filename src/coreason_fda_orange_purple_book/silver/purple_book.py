# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Parsing of the Purple Book Excel download using Polars."""

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Sequence

import polars as pl
from loguru import logger

from coreason_fda_orange_purple_book.config import FdaConfig
from coreason_fda_orange_purple_book.exceptions import SourceConnectionError, SourceSchemaError
from coreason_fda_orange_purple_book.silver.models import PurpleBookBiologic

COLUMNS = FdaConfig.PURPLE_BOOK_COLUMNS
NOT_APPLICABLE = "N/A"
MIDNIGHT_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}[ T]00:00:00(\.0+)?$")


def _cell_to_str(value: Any) -> str:
    """
    Coerce a spreadsheet cell to a trimmed string.

    Empty cells become "" rather than None, integral floats drop their ".0",
    and dates are rendered as ISO strings. Timestamps at midnight that were
    already stringified (mixed-type columns) are cut back to the date.
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if MIDNIGHT_TIMESTAMP.match(text):
        return text[:10]
    return text


def _cell(row: Sequence[Any], field: str) -> str:
    """Look up a field by its fixed column position, tolerating short rows."""
    index = COLUMNS[field]
    if index >= len(row):
        return ""
    return _cell_to_str(row[index])


def is_biosimilar(bla_type: str, reference_product_proper_name: str) -> bool:
    """A biologic is a biosimilar if licensed under 351(k) or if it names a reference product."""
    has_reference = reference_product_proper_name not in ("", NOT_APPLICABLE)
    return bla_type == FdaConfig.BIOSIMILAR_BLA_TYPE or has_reference


def parse_purple_book_row(row: Sequence[Any]) -> Optional[PurpleBookBiologic]:
    """
    Map one positional worksheet row to a biologic record.

    Args:
        row: Cell values in column order.

    Returns:
        The parsed record, or None when the row has no BLA number.
    """
    bla_number = _cell(row, "bla_number")
    if not bla_number:
        return None

    bla_type = _cell(row, "bla_type")
    reference_proper_name = _cell(row, "reference_product_proper_name")
    first_interchangeable = _cell(row, "first_interchangeable_exclusivity")
    applicant = _cell(row, "applicant")

    return PurpleBookBiologic(
        bla_number=bla_number,
        proper_name=_cell(row, "proper_name"),
        proprietary_name=_cell(row, "proprietary_name"),
        bla_type=bla_type,
        date_of_licensure=_cell(row, "date_of_first_licensure") or _cell(row, "approval_date"),
        licensure_status=_cell(row, "licensure_status"),
        marketing_status=_cell(row, "marketing_status"),
        applicant=applicant,
        applicant_full_name=applicant,  # The download only carries one applicant column
        strength=_cell(row, "strength"),
        dosage_form=_cell(row, "dosage_form"),
        route_of_administration=_cell(row, "route_of_administration"),
        reference_product_proper_name=reference_proper_name,
        reference_product_proprietary_name=_cell(row, "reference_product_proprietary_name"),
        biosimilar=is_biosimilar(bla_type, reference_proper_name),
        interchangeable=first_interchangeable != "",
        interchangeable_date=first_interchangeable,
        exclusivity_expiration_date=_cell(row, "exclusivity_expiration_date"),
        orphan_exclusivity=_cell(row, "orphan_exclusivity"),
        pediatric_exclusivity="",  # Not published in the current layout
    )


def parse_purple_book_workbook(path: Path) -> list[PurpleBookBiologic]:
    """
    Parse the first sheet of a Purple Book workbook.

    The first two rows (title and header) are skipped and the remaining rows
    are mapped through ``FdaConfig.PURPLE_BOOK_COLUMNS``.

    Args:
        path: Path to the downloaded ``.xlsx`` file.

    Returns:
        Biologic records in sheet order.

    Raises:
        SourceConnectionError: If the file does not exist.
        SourceSchemaError: If the workbook cannot be read.
    """
    logger.info(f"Parsing Purple Book workbook: {path}")

    if not path.exists():
        raise SourceConnectionError(f"Workbook not found at {path}")

    try:
        df = pl.read_excel(
            path,
            sheet_id=1,
            has_header=False,
            read_options={"header_row": None, "skip_rows": FdaConfig.PURPLE_BOOK_SKIP_ROWS},
        )
    except Exception as e:
        logger.error(f"Failed to read Purple Book workbook {path}: {e}")
        raise SourceSchemaError(f"File at {path} is not a readable Purple Book workbook.") from e

    # Title and header rows are skipped by the reader so column types are
    # inferred from data rows only
    data_rows = df.rows()
    logger.info(f"Found {len(data_rows)} rows in Purple Book")

    biologics = []
    for row in data_rows:
        biologic = parse_purple_book_row(row)
        if biologic is not None:
            biologics.append(biologic)

    logger.info(f"Parsed {len(biologics)} biologics from Purple Book")
    return biologics

# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Parsing of the tilde-delimited Orange Book data files."""

import zipfile
from collections.abc import Iterator
from pathlib import Path

from loguru import logger

from coreason_fda_orange_purple_book.config import FdaConfig
from coreason_fda_orange_purple_book.exceptions import MalformedArchiveError, SourceConnectionError, SourceSchemaError
from coreason_fda_orange_purple_book.silver.models import (
    OrangeBookData,
    OrangeBookExclusivity,
    OrangeBookPatent,
    OrangeBookProduct,
)

ARCHIVE_MEMBERS: tuple[str, ...] = (
    FdaConfig.FILE_PRODUCTS,
    FdaConfig.FILE_PATENTS,
    FdaConfig.FILE_EXCLUSIVITY,
)


def extract_orange_book_texts(zip_path: Path) -> dict[str, str]:
    """
    Read the products, patent and exclusivity files out of the Orange Book ZIP.

    Members are matched by case-insensitive substring on their names, so files
    nested in a folder inside the archive are still found.

    Args:
        zip_path: Path to the downloaded archive.

    Returns:
        A mapping from the canonical member name (e.g. ``products.txt``) to its decoded text.

    Raises:
        SourceConnectionError: If the archive does not exist.
        SourceSchemaError: If the file is not a ZIP archive.
        MalformedArchiveError: If any of the three required files is missing.
    """
    logger.info(f"Extracting Orange Book files from {zip_path}")

    if not zip_path.exists():
        raise SourceConnectionError(f"ZIP file not found at {zip_path}")

    texts: dict[str, str] = {}
    try:
        with zipfile.ZipFile(zip_path, "r") as zip_ref:
            for member in zip_ref.infolist():
                if member.is_dir():
                    continue
                name = member.filename.lower()
                for required in ARCHIVE_MEMBERS:
                    if required in name and required not in texts:
                        raw = zip_ref.read(member)
                        texts[required] = raw.decode(FdaConfig.ENCODING, errors=FdaConfig.ENCODING_ERRORS)
                        logger.debug(f"Found {required} ({len(raw) // 1024} KB)")
                        break
    except zipfile.BadZipFile as e:
        logger.error(f"Invalid ZIP file: {e}")
        raise SourceSchemaError(f"File at {zip_path} is not a valid ZIP archive.") from e

    missing = [name for name in ARCHIVE_MEMBERS if name not in texts]
    if missing:
        logger.error(f"Orange Book archive is missing {missing}")
        raise MalformedArchiveError(f"Orange Book archive missing required files: {', '.join(missing)}")

    return texts


def _iter_rows(text: str, min_fields: int, label: str) -> Iterator[list[str]]:
    """
    Yield the trimmed fields of each data line in a tilde-delimited file.

    The first non-blank line is the header and is discarded. Lines with fewer
    than ``min_fields`` fields are skipped.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    skipped = 0
    for line in lines[1:]:
        fields = [field.strip() for field in line.split(FdaConfig.DELIMITER)]
        if len(fields) < min_fields:
            skipped += 1
            continue
        yield fields
    if skipped:
        logger.debug(f"Skipped {skipped} malformed lines in {label}")


def parse_products(text: str) -> list[OrangeBookProduct]:
    """
    Parse ``products.txt``.

    Layout: Ingredient~DF;Route~Trade_Name~Applicant~Strength~Appl_Type~Appl_No~
    Product_No~TE_Code~Approval_Date~RLD~RS~Type~Applicant_Full_Name
    """
    products = []
    for fields in _iter_rows(text, FdaConfig.PRODUCT_FIELD_COUNT, FdaConfig.FILE_PRODUCTS):
        # "TABLET;ORAL" -> dosage form before the first ';', the rest is the route
        dosage_form, _, route = fields[1].partition(";")
        products.append(
            OrangeBookProduct(
                ingredient=fields[0],
                dosage_form=dosage_form,
                route=route,
                trade_name=fields[2],
                applicant=fields[3],
                strength=fields[4],
                appl_type=fields[5],
                appl_no=fields[6],
                product_no=fields[7],
                te_code=fields[8],
                approval_date=fields[9],
                rld=fields[10],
                rs=fields[11],
                type=fields[12],
                applicant_full_name=fields[13],
            )
        )

    logger.info(f"Parsed {len(products)} products")
    return products


def parse_patents(text: str) -> list[OrangeBookPatent]:
    """
    Parse ``patent.txt``.

    Layout: Appl_Type~Appl_No~Product_No~Patent_No~Patent_Expire_Date_Text~
    Drug_Substance_Flag~Drug_Product_Flag~Patent_Use_Code~Delist_Flag~Submission_Date
    """
    patents = [
        OrangeBookPatent(
            appl_type=fields[0],
            appl_no=fields[1],
            product_no=fields[2],
            patent_no=fields[3],
            patent_expire_date=fields[4],
            drug_substance_flag=fields[5],
            drug_product_flag=fields[6],
            patent_use_code=fields[7],
            delist_flag=fields[8],
            submission_date=fields[9],
        )
        for fields in _iter_rows(text, FdaConfig.PATENT_FIELD_COUNT, FdaConfig.FILE_PATENTS)
    ]

    logger.info(f"Parsed {len(patents)} patents")
    return patents


def parse_exclusivity(text: str) -> list[OrangeBookExclusivity]:
    """
    Parse ``exclusivity.txt``.

    Layout: Appl_Type~Appl_No~Product_No~Exclusivity_Code~Exclusivity_Date
    """
    exclusivity = [
        OrangeBookExclusivity(
            appl_type=fields[0],
            appl_no=fields[1],
            product_no=fields[2],
            exclusivity_code=fields[3],
            exclusivity_date=fields[4],
        )
        for fields in _iter_rows(text, FdaConfig.EXCLUSIVITY_FIELD_COUNT, FdaConfig.FILE_EXCLUSIVITY)
    ]

    logger.info(f"Parsed {len(exclusivity)} exclusivity entries")
    return exclusivity


def parse_orange_book_archive(zip_path: Path) -> OrangeBookData:
    """
    Parse a complete Orange Book ZIP archive.

    Args:
        zip_path: Path to the downloaded archive.

    Returns:
        Products, patents and exclusivity records in file order.
    """
    texts = extract_orange_book_texts(zip_path)
    return OrangeBookData(
        products=parse_products(texts[FdaConfig.FILE_PRODUCTS]),
        patents=parse_patents(texts[FdaConfig.FILE_PATENTS]),
        exclusivity=parse_exclusivity(texts[FdaConfig.FILE_EXCLUSIVITY]),
    )

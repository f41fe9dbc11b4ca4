# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Building and opening the local SQLite store for Orange Book and Purple Book data."""

import os
import sqlite3
from pathlib import Path
from typing import Optional

from loguru import logger

from coreason_fda_orange_purple_book.gold.models import DatabaseMetadata
from coreason_fda_orange_purple_book.silver.models import (
    OrangeBookData,
    OrangeBookExclusivity,
    OrangeBookPatent,
    OrangeBookProduct,
    PurpleBookBiologic,
)

SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS products (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      ingredient TEXT NOT NULL,
      dosage_form TEXT,
      route TEXT,
      trade_name TEXT,
      applicant TEXT,
      applicant_full_name TEXT,
      strength TEXT,
      appl_type TEXT NOT NULL,
      appl_no TEXT NOT NULL,
      product_no TEXT NOT NULL,
      te_code TEXT,
      approval_date TEXT,
      rld TEXT,
      rs TEXT,
      type TEXT,
      UNIQUE(appl_type, appl_no, product_no)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patents (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      appl_type TEXT NOT NULL,
      appl_no TEXT NOT NULL,
      product_no TEXT NOT NULL,
      patent_no TEXT,
      patent_expire_date TEXT,
      drug_substance_flag TEXT,
      drug_product_flag TEXT,
      patent_use_code TEXT,
      delist_flag TEXT,
      submission_date TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS exclusivity (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      appl_type TEXT NOT NULL,
      appl_no TEXT NOT NULL,
      product_no TEXT NOT NULL,
      exclusivity_code TEXT,
      exclusivity_date TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS biologics (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      bla_number TEXT UNIQUE NOT NULL,
      proper_name TEXT,
      proprietary_name TEXT,
      bla_type TEXT,
      date_of_licensure TEXT,
      licensure_status TEXT,
      marketing_status TEXT,
      applicant TEXT,
      applicant_full_name TEXT,
      strength TEXT,
      dosage_form TEXT,
      route_of_administration TEXT,
      reference_product_proper_name TEXT,
      reference_product_proprietary_name TEXT,
      biosimilar INTEGER NOT NULL DEFAULT 0,
      interchangeable INTEGER NOT NULL DEFAULT 0,
      interchangeable_date TEXT,
      exclusivity_expiration_date TEXT,
      orphan_exclusivity TEXT,
      pediatric_exclusivity TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS metadata (
      key TEXT PRIMARY KEY,
      value TEXT NOT NULL
    )
    """,
)

INDEXES: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS idx_products_ingredient ON products(ingredient)",
    "CREATE INDEX IF NOT EXISTS idx_products_trade_name ON products(trade_name)",
    "CREATE INDEX IF NOT EXISTS idx_products_appl_no ON products(appl_type, appl_no)",
    "CREATE INDEX IF NOT EXISTS idx_products_te_code ON products(te_code)",
    "CREATE INDEX IF NOT EXISTS idx_products_rld ON products(rld)",
    "CREATE INDEX IF NOT EXISTS idx_patents_appl_no ON patents(appl_type, appl_no)",
    "CREATE INDEX IF NOT EXISTS idx_patents_patent_no ON patents(patent_no)",
    "CREATE INDEX IF NOT EXISTS idx_patents_expire_date ON patents(patent_expire_date)",
    "CREATE INDEX IF NOT EXISTS idx_exclusivity_appl_no ON exclusivity(appl_type, appl_no)",
    "CREATE INDEX IF NOT EXISTS idx_exclusivity_code ON exclusivity(exclusivity_code)",
    "CREATE INDEX IF NOT EXISTS idx_exclusivity_date ON exclusivity(exclusivity_date)",
    "CREATE INDEX IF NOT EXISTS idx_biologics_bla ON biologics(bla_number)",
    "CREATE INDEX IF NOT EXISTS idx_biologics_proper_name ON biologics(proper_name)",
    "CREATE INDEX IF NOT EXISTS idx_biologics_proprietary_name ON biologics(proprietary_name)",
    "CREATE INDEX IF NOT EXISTS idx_biologics_reference ON biologics(reference_product_proper_name)",
    "CREATE INDEX IF NOT EXISTS idx_biologics_biosimilar ON biologics(biosimilar)",
    "CREATE INDEX IF NOT EXISTS idx_biologics_interchangeable ON biologics(interchangeable)",
)

FULL_TEXT_SEARCH: tuple[str, ...] = (
    "CREATE VIRTUAL TABLE IF NOT EXISTS products_fts USING fts5(ingredient, trade_name, applicant_full_name)",
    "DELETE FROM products_fts",
    """
    INSERT INTO products_fts(rowid, ingredient, trade_name, applicant_full_name)
    SELECT id, ingredient, trade_name, applicant_full_name FROM products
    """,
    "CREATE VIRTUAL TABLE IF NOT EXISTS biologics_fts USING fts5(proper_name, proprietary_name, applicant_full_name)",
    "DELETE FROM biologics_fts",
    """
    INSERT INTO biologics_fts(rowid, proper_name, proprietary_name, applicant_full_name)
    SELECT id, proper_name, proprietary_name, applicant_full_name FROM biologics
    """,
)

PRODUCT_COLUMNS: tuple[str, ...] = (
    "ingredient",
    "dosage_form",
    "route",
    "trade_name",
    "applicant",
    "applicant_full_name",
    "strength",
    "appl_type",
    "appl_no",
    "product_no",
    "te_code",
    "approval_date",
    "rld",
    "rs",
    "type",
)

PATENT_COLUMNS: tuple[str, ...] = (
    "appl_type",
    "appl_no",
    "product_no",
    "patent_no",
    "patent_expire_date",
    "drug_substance_flag",
    "drug_product_flag",
    "patent_use_code",
    "delist_flag",
    "submission_date",
)

EXCLUSIVITY_COLUMNS: tuple[str, ...] = (
    "appl_type",
    "appl_no",
    "product_no",
    "exclusivity_code",
    "exclusivity_date",
)

BIOLOGIC_COLUMNS: tuple[str, ...] = (
    "bla_number",
    "proper_name",
    "proprietary_name",
    "bla_type",
    "date_of_licensure",
    "licensure_status",
    "marketing_status",
    "applicant",
    "applicant_full_name",
    "strength",
    "dosage_form",
    "route_of_administration",
    "reference_product_proper_name",
    "reference_product_proprietary_name",
    "biosimilar",
    "interchangeable",
    "interchangeable_date",
    "exclusivity_expiration_date",
    "orphan_exclusivity",
    "pediatric_exclusivity",
)


def _insert_sql(table: str, columns: tuple[str, ...], replace: bool) -> str:
    verb = "INSERT OR REPLACE" if replace else "INSERT"
    placeholders = ", ".join("?" for _ in columns)
    return f"{verb} INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables. Safe to call on an existing store."""
    logger.info("Creating database schema...")
    with conn:
        for statement in SCHEMA:
            conn.execute(statement)


def insert_products(conn: sqlite3.Connection, products: list[OrangeBookProduct]) -> None:
    """Insert products in one transaction; a repeated (appl_type, appl_no, product_no) replaces the earlier row."""
    logger.info(f"Inserting {len(products)} products...")
    with conn:
        conn.executemany(
            _insert_sql("products", PRODUCT_COLUMNS, replace=True),
            [tuple(getattr(p, column) for column in PRODUCT_COLUMNS) for p in products],
        )


def insert_patents(conn: sqlite3.Connection, patents: list[OrangeBookPatent]) -> None:
    logger.info(f"Inserting {len(patents)} patents...")
    with conn:
        conn.executemany(
            _insert_sql("patents", PATENT_COLUMNS, replace=False),
            [tuple(getattr(p, column) for column in PATENT_COLUMNS) for p in patents],
        )


def insert_exclusivity(conn: sqlite3.Connection, exclusivity: list[OrangeBookExclusivity]) -> None:
    logger.info(f"Inserting {len(exclusivity)} exclusivity entries...")
    with conn:
        conn.executemany(
            _insert_sql("exclusivity", EXCLUSIVITY_COLUMNS, replace=False),
            [tuple(getattr(e, column) for column in EXCLUSIVITY_COLUMNS) for e in exclusivity],
        )


def insert_biologics(conn: sqlite3.Connection, biologics: list[PurpleBookBiologic]) -> None:
    """Insert biologics in one transaction; a repeated BLA number replaces the earlier row."""
    logger.info(f"Inserting {len(biologics)} biologics...")
    with conn:
        conn.executemany(
            _insert_sql("biologics", BIOLOGIC_COLUMNS, replace=True),
            [tuple(getattr(b, column) for column in BIOLOGIC_COLUMNS) for b in biologics],
        )


def insert_metadata(conn: sqlite3.Connection, metadata: DatabaseMetadata) -> None:
    with conn:
        conn.executemany(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
            list(metadata.model_dump().items()),
        )
    logger.info("Metadata inserted")


def create_indexes(conn: sqlite3.Connection) -> None:
    logger.info("Creating indexes...")
    with conn:
        for statement in INDEXES:
            conn.execute(statement)


def create_full_text_search(conn: sqlite3.Connection) -> None:
    """Create and populate the FTS5 shadow tables keyed by the source row ids."""
    logger.info("Creating full-text search tables...")
    with conn:
        for statement in FULL_TEXT_SEARCH:
            conn.execute(statement)


def _remove_database_files(path: Path) -> None:
    for candidate in (path, Path(f"{path}-wal"), Path(f"{path}-shm")):
        candidate.unlink(missing_ok=True)


def build_store(
    path: Path,
    orange_book: OrangeBookData,
    purple_book: list[PurpleBookBiologic],
    metadata: DatabaseMetadata,
) -> None:
    """
    Build the complete store at ``path``.

    The store is written to a sibling ``.building`` file and moved into place
    only once indexing and checkpointing have finished, so readers never see a
    partially built file and a refresh always replaces the previous store.

    Args:
        path: Final location of the SQLite file.
        orange_book: Parsed Orange Book records.
        purple_book: Parsed Purple Book records.
        metadata: Provenance to persist alongside the data.
    """
    logger.info(f"Building database at {path}...")
    path.parent.mkdir(parents=True, exist_ok=True)
    building = path.with_name(f"{path.name}.building")
    _remove_database_files(building)

    conn = sqlite3.connect(building)
    try:
        conn.execute("PRAGMA journal_mode = WAL")
        create_schema(conn)

        insert_products(conn, orange_book.products)
        insert_patents(conn, orange_book.patents)
        insert_exclusivity(conn, orange_book.exclusivity)
        insert_biologics(conn, purple_book)
        insert_metadata(conn, metadata)

        create_indexes(conn)
        create_full_text_search(conn)

        conn.execute("PRAGMA optimize")
        conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
    except Exception:
        conn.close()
        _remove_database_files(building)
        raise
    conn.close()

    # Drop the previous store's WAL side files before swapping the new file in.
    for side_file in (Path(f"{path}-wal"), Path(f"{path}-shm")):
        side_file.unlink(missing_ok=True)
    os.replace(building, path)
    logger.info("Database built successfully")


def open_store(path: Path) -> sqlite3.Connection:
    """Open the store for querying with dict-like rows."""
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def read_metadata(conn: sqlite3.Connection) -> Optional[DatabaseMetadata]:
    """
    Load the metadata rows of an open store.

    Returns:
        The stored metadata, or None if the table is empty or incomplete.
    """
    rows = conn.execute("SELECT key, value FROM metadata").fetchall()
    values = {row[0]: row[1] for row in rows}
    if not values:
        return None
    try:
        return DatabaseMetadata.model_validate(values)
    except ValueError as e:
        logger.warning(f"Store metadata is incomplete: {e}")
        return None

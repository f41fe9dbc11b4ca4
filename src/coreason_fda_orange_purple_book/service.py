# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Query service over the local Orange Book / Purple Book store."""

import asyncio
import sqlite3
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from coreason_fda_orange_purple_book.config import FdaConfig, get_db_path, get_max_age_days
from coreason_fda_orange_purple_book.exceptions import (
    ApplicationNotFoundError,
    DatabaseNotInitializedError,
    DrugNotFoundError,
)
from coreason_fda_orange_purple_book.gold.logic import (
    build_fts_query,
    compute_patent_cliff,
    interchangeability,
    normalize_application_number,
    split_brand_and_generic,
    split_reference_and_biosimilars,
    therapeutic_equivalents,
)
from coreason_fda_orange_purple_book.gold.models import (
    ApplicationSummary,
    BiosimilarSearchResult,
    DatabaseMetadata,
    InterchangeabilityResult,
    OrangeBookSearchResult,
    PatentCliffForecast,
    PatentExclusivityResult,
    TherapeuticEquivalentsResult,
)
from coreason_fda_orange_purple_book.gold.store import build_store, open_store, read_metadata
from coreason_fda_orange_purple_book.silver.models import (
    OrangeBookExclusivity,
    OrangeBookPatent,
    OrangeBookProduct,
    PurpleBookBiologic,
)
from coreason_fda_orange_purple_book.silver.orange_book import parse_orange_book_archive
from coreason_fda_orange_purple_book.silver.purple_book import parse_purple_book_workbook
from coreason_fda_orange_purple_book.source import DownloadProgress, FdaBookSource

SECONDS_PER_DAY = 24 * 60 * 60
PROGRESS_LOG_STEP = 20  # percent

PRODUCT_SEARCH_SQL = """
    SELECT p.* FROM products p
    JOIN products_fts fts ON p.id = fts.rowid
    WHERE products_fts MATCH ?
    ORDER BY p.trade_name, p.ingredient
    LIMIT ?
"""

BIOLOGIC_SEARCH_SQL = """
    SELECT b.* FROM biologics b
    JOIN biologics_fts fts ON b.id = fts.rowid
    WHERE biologics_fts MATCH ?
    ORDER BY b.proprietary_name, b.proper_name
    LIMIT ?
"""

APPLICATION_LOOKUP_SQL = """
    SELECT * FROM products
    WHERE appl_no = ?
    ORDER BY CASE WHEN appl_type = ? THEN 0 ELSE 1 END, id
    LIMIT 1
"""


class OrangePurpleBookService:
    """
    Owns the local store and answers Orange Book / Purple Book queries.

    The store is downloaded and built lazily on the first ``ensure_ready``
    call and rebuilt once the file is older than ``max_age_days``. Concurrent
    callers share a single in-flight build.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        max_age_days: Optional[int] = None,
        source: Optional[FdaBookSource] = None,
        work_dir: Optional[Path] = None,
    ) -> None:
        """
        Initialize the service without touching the network or the disk.

        Args:
            db_path: Location of the SQLite store. Defaults to ``FDA_BOOK_DB_PATH`` or the config default.
            max_age_days: Staleness threshold. Defaults to ``FDA_BOOK_MAX_AGE_DAYS`` or 30.
            source: Downloader to use, mainly for injection in tests.
            work_dir: Parent for temporary download directories. Defaults to the system temp dir.
        """
        self.db_path = db_path or get_db_path()
        self.max_age_days = max_age_days or get_max_age_days()
        self.source = source or FdaBookSource()
        self.work_dir = work_dir
        self._connection: Optional[sqlite3.Connection] = None
        self._init_task: Optional[asyncio.Task[None]] = None
        self._logged_progress: dict[str, int] = {}

    @property
    def is_ready(self) -> bool:
        return self._connection is not None

    def is_store_fresh(self) -> bool:
        """Check that the store file exists and is younger than ``max_age_days``."""
        if not self.db_path.exists():
            return False

        age_seconds = time.time() - self.db_path.stat().st_mtime
        if age_seconds > self.max_age_days * SECONDS_PER_DAY:
            logger.warning(
                f"Database is {round(age_seconds / SECONDS_PER_DAY)} days old (max: {self.max_age_days} days)"
            )
            return False
        return True

    async def ensure_ready(self) -> None:
        """
        Make sure a fresh store is open, downloading and building it if needed.

        Callers arriving while a build is running await that same build. A
        caller that is cancelled stops waiting but does not abort the build.

        Raises:
            FdaSourceError: If the sources could not be downloaded or parsed.
        """
        if self._connection is not None and self.is_store_fresh():
            return

        if self._init_task is None:
            self._init_task = asyncio.create_task(self._initialize())
            self._init_task.add_done_callback(self._clear_init_task)

        await asyncio.shield(self._init_task)

    def _clear_init_task(self, task: "asyncio.Task[None]") -> None:
        if self._init_task is task:
            self._init_task = None
        if not task.cancelled():
            # Mark the outcome as retrieved even if every caller gave up waiting.
            task.exception()

    async def _initialize(self) -> None:
        if self.is_store_fresh():
            logger.info("Using existing Orange/Purple Book database")
            self._open()
            return

        logger.info("Orange/Purple Book database not found or stale. Downloading...")
        self.close()
        try:
            await asyncio.to_thread(self._download_and_build)
        except Exception as e:
            logger.error(f"Failed to download and build database: {e}")
            raise

        logger.info("Database ready")
        self._open()

    def _open(self) -> None:
        self.close()
        self._connection = open_store(self.db_path)

    def _download_and_build(self) -> None:
        """Download, parse and build the store. Runs in a worker thread."""
        if self.work_dir is not None:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        temp_dir = Path(tempfile.mkdtemp(prefix="fda-books-", dir=self.work_dir))
        self._logged_progress.clear()

        try:
            sources = self.source.download_all(temp_dir, self._log_progress)

            logger.info("Parsing data files...")
            orange_book = parse_orange_book_archive(sources.orange_book_path)
            purple_book = parse_purple_book_workbook(sources.purple_book_path)

            now = datetime.now(timezone.utc)
            metadata = DatabaseMetadata(
                version=now.strftime("%Y-%m"),
                orange_book_date=now.date().isoformat(),
                purple_book_date=now.date().isoformat(),
                created_at=now.isoformat(),
                updated_at=now.isoformat(),
                purple_book_source_url=sources.purple_book_url,
            )
            build_store(self.db_path, orange_book, purple_book, metadata)
        finally:
            self.source.cleanup(temp_dir)

    def _log_progress(self, progress: DownloadProgress) -> None:
        step = progress.percent - progress.percent % PROGRESS_LOG_STEP
        if step > self._logged_progress.get(progress.name, -1):
            self._logged_progress[progress.name] = step
            logger.info(f"{progress.name}: {progress.percent}%")

    def _db(self) -> sqlite3.Connection:
        if self._connection is None:
            raise DatabaseNotInitializedError("Database not initialized. Call ensure_ready() first.")
        return self._connection

    def search_brand_and_generic_products(
        self, drug_name: str, include_generics: bool = True
    ) -> OrangeBookSearchResult:
        """
        Search Orange Book products by ingredient, trade name or applicant.

        Args:
            drug_name: Free-text drug name.
            include_generics: When False, ANDA products are left out of the result and the count.

        Returns:
            Brand and generic products, at most ``FdaConfig.SEARCH_LIMIT`` rows in total.
        """
        db = self._db()
        query = build_fts_query(drug_name)
        if not query:
            return split_brand_and_generic([], include_generics)

        rows = db.execute(PRODUCT_SEARCH_SQL, (query, FdaConfig.SEARCH_LIMIT)).fetchall()
        products = [OrangeBookProduct.model_validate(dict(row)) for row in rows]
        return split_brand_and_generic(products, include_generics)

    def find_therapeutic_equivalents(self, drug_name: str) -> TherapeuticEquivalentsResult:
        """Find the reference listed drug for a name and split its generics by AB rating."""
        return therapeutic_equivalents(self.search_brand_and_generic_products(drug_name, include_generics=True))

    def _listings(
        self, appl_type: str, appl_no: str
    ) -> tuple[list[OrangeBookPatent], list[OrangeBookExclusivity]]:
        """Patents and exclusivity filed under one (appl_type, appl_no) application."""
        db = self._db()
        key = (appl_type, appl_no)
        patents = db.execute("SELECT * FROM patents WHERE appl_type = ? AND appl_no = ? ORDER BY id", key).fetchall()
        exclusivity = db.execute(
            "SELECT * FROM exclusivity WHERE appl_type = ? AND appl_no = ? ORDER BY id", key
        ).fetchall()
        return (
            [OrangeBookPatent.model_validate(dict(row)) for row in patents],
            [OrangeBookExclusivity.model_validate(dict(row)) for row in exclusivity],
        )

    def get_patents_and_exclusivity(self, application_number: str) -> PatentExclusivityResult:
        """
        Look up the patents and exclusivity listed for an application.

        Patents and exclusivity are matched on (appl_type, appl_no) only, so
        every product number under the application shares them.

        Args:
            application_number: NDA/ANDA number; short numeric values are zero-padded.

        Returns:
            The application summary with its patents and exclusivity.

        Raises:
            ApplicationNotFoundError: If no product carries the application number.
        """
        db = self._db()
        appl_no = normalize_application_number(application_number)

        # An NDA and an ANDA can share a number; the NDA carries the listings
        product = db.execute(APPLICATION_LOOKUP_SQL, (appl_no, FdaConfig.BRAND_APPL_TYPE)).fetchone()
        if product is None:
            raise ApplicationNotFoundError(f"No product found for application {application_number}")

        patents, exclusivity = self._listings(product["appl_type"], appl_no)

        return PatentExclusivityResult(
            application=ApplicationSummary(
                appl_no=product["appl_no"],
                appl_type=product["appl_type"],
                trade_name=product["trade_name"],
                ingredient=product["ingredient"],
            ),
            patents=patents,
            exclusivity=exclusivity,
        )

    def forecast_patent_cliff(self, drug_name: str, years_ahead: int = 5) -> PatentCliffForecast:
        """
        Forecast loss of exclusivity for the first brand product matching a name.

        Raises:
            DrugNotFoundError: If the name matches no brand product.
        """
        search = self.search_brand_and_generic_products(drug_name, include_generics=False)
        if not search.brand_products:
            raise DrugNotFoundError(f"No brand product found for {drug_name}")

        product = search.brand_products[0]
        patents, exclusivity = self._listings(product.appl_type, product.appl_no)
        return compute_patent_cliff(product, patents, exclusivity, years_ahead=years_ahead)

    def search_biosimilars(self, drug_name: str) -> BiosimilarSearchResult:
        """Search the Purple Book and separate the reference product from its biosimilars."""
        db = self._db()
        query = build_fts_query(drug_name)
        if not query:
            return split_reference_and_biosimilars([])

        rows = db.execute(BIOLOGIC_SEARCH_SQL, (query, FdaConfig.SEARCH_LIMIT)).fetchall()
        return split_reference_and_biosimilars([PurpleBookBiologic.model_validate(dict(row)) for row in rows])

    def get_interchangeable_biosimilars(self, reference_product_name: str) -> InterchangeabilityResult:
        return interchangeability(reference_product_name, self.search_biosimilars(reference_product_name))

    def get_metadata(self) -> Optional[DatabaseMetadata]:
        """Return the provenance of the open store, or None before it is ready."""
        if self._connection is None:
            return None
        return read_metadata(self._connection)

    def close(self) -> None:
        """Close the store connection if one is open."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

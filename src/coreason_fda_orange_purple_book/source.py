# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Source module for downloading the FDA Orange Book and Purple Book files."""

import shutil
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Final, Optional

import requests
from loguru import logger
from pydantic import BaseModel, ConfigDict

from coreason_fda_orange_purple_book.config import FdaConfig
from coreason_fda_orange_purple_book.exceptions import (
    FdaSourceError,
    SourceConnectionError,
    SourceSchemaError,
    SourceUnavailableError,
)

ORANGE_BOOK: Final[str] = "Orange Book"
PURPLE_BOOK: Final[str] = "Purple Book"


class DownloadProgress(BaseModel):
    """Bytes received so far for one download."""

    model_config = ConfigDict(frozen=True)

    name: str
    loaded: int
    total: int
    percent: int


class DownloadedSources(BaseModel):
    """Where ``download_all`` left the two source files."""

    model_config = ConfigDict(frozen=True)

    orange_book_path: Path
    purple_book_path: Path
    purple_book_url: str


ProgressCallback = Callable[[DownloadProgress], None]


def purple_book_candidate_urls(today: date) -> list[str]:
    """
    List the Purple Book URLs to try, most recent publication first.

    The current month back to January of the current year, then December back
    to January of the previous year.

    Args:
        today: The reference date.

    Returns:
        Candidate URLs in the order they should be attempted.
    """
    candidates = []
    for month_index in range(today.month - 1, -1, -1):
        candidates.append(_purple_book_url(today.year, month_index))
    for month_index in range(11, -1, -1):
        candidates.append(_purple_book_url(today.year - 1, month_index))
    return candidates


def _purple_book_url(year: int, month_index: int) -> str:
    return FdaConfig.PURPLE_BOOK_URL_TEMPLATE.format(year=year, month=FdaConfig.MONTH_NAMES[month_index])


class FdaBookSource:
    """Manages downloading the Orange Book archive and the Purple Book workbook."""

    CHUNK_SIZE: Final[int] = 8192

    def __init__(
        self,
        orange_book_url: str = FdaConfig.ORANGE_BOOK_URL,
        timeout: int = FdaConfig.REQUEST_TIMEOUT,
    ) -> None:
        """
        Initialize the source.

        Args:
            orange_book_url: The URL to download the Orange Book ZIP from.
            timeout: Per-request timeout in seconds.
        """
        self.orange_book_url = orange_book_url
        self.timeout = timeout

    def download_file(
        self,
        url: str,
        destination: Path,
        name: str,
        on_progress: Optional[ProgressCallback] = None,
        allowed_content_types: Optional[tuple[str, ...]] = None,
    ) -> None:
        """
        Stream a URL to a local file.

        Args:
            url: The URL to fetch. Redirects are followed.
            destination: The local file path to write.
            name: Human-readable source name used in progress reports and logs.
            on_progress: Called after every chunk with the bytes received so far.
            allowed_content_types: If given, the response content type must contain one of these.

        Raises:
            SourceSchemaError: If the URL answers 404 or with an unexpected content type.
            SourceConnectionError: If the download fails for any other reason.
        """
        logger.info(f"Downloading {name} from {url} to {destination}")
        try:
            with requests.get(
                url,
                stream=True,
                timeout=self.timeout,
                headers={"User-Agent": FdaConfig.USER_AGENT},
            ) as response:
                response.raise_for_status()

                content_type = response.headers.get("content-type", "")
                if allowed_content_types and not any(t in content_type for t in allowed_content_types):
                    raise SourceSchemaError(f"Invalid content type {content_type!r} from {url}")

                total = int(response.headers.get("content-length") or 0)
                loaded = 0
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                        f.write(chunk)
                        loaded += len(chunk)
                        if on_progress is not None:
                            percent = round(loaded / total * 100) if total else 0
                            on_progress(DownloadProgress(name=name, loaded=loaded, total=total, percent=percent))
            logger.info(f"{name} downloaded successfully ({loaded / 1024 / 1024:.1f} MB)")
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                logger.warning(f"Download link not found (404): {url}")
                raise SourceSchemaError(f"Download link not found: {url}") from e
            logger.warning(f"HTTP error during download: {e}")
            raise SourceConnectionError(f"HTTP error downloading from {url}: {e}") from e
        except requests.RequestException as e:
            logger.warning(f"Failed to download {name}: {e}")
            raise SourceConnectionError(f"Failed to download from {url}: {e}") from e

    def download_orange_book(self, destination: Path, on_progress: Optional[ProgressCallback] = None) -> None:
        """
        Download the Orange Book ZIP archive.

        Raises:
            SourceUnavailableError: If the download fails.
        """
        try:
            self.download_file(self.orange_book_url, destination, ORANGE_BOOK, on_progress)
        except FdaSourceError as e:
            logger.error(f"Orange Book unavailable: {e}")
            raise SourceUnavailableError(f"Orange Book unavailable from {self.orange_book_url}: {e}") from e

    def download_purple_book(
        self,
        destination: Path,
        on_progress: Optional[ProgressCallback] = None,
        today: Optional[date] = None,
    ) -> str:
        """
        Download the most recent Purple Book workbook.

        The URL embeds the publication year and month, so candidates are tried
        from the current month backwards until one returns a spreadsheet.

        Args:
            destination: The local file path to write.
            on_progress: Progress callback.
            today: Reference date for the candidate list, defaults to the current date.

        Returns:
            The URL that was downloaded.

        Raises:
            SourceUnavailableError: If every candidate in the current and previous year failed.
        """
        today = today or date.today()
        last_error: Optional[Exception] = None

        for url in purple_book_candidate_urls(today):
            try:
                self.download_file(
                    url,
                    destination,
                    PURPLE_BOOK,
                    on_progress,
                    allowed_content_types=FdaConfig.SPREADSHEET_CONTENT_TYPES,
                )
                return url
            except FdaSourceError as e:
                logger.debug(f"Purple Book candidate failed: {url}: {e}")
                last_error = e

        logger.error(f"Purple Book unavailable for {today.year} and {today.year - 1}")
        raise SourceUnavailableError(
            f"Failed to download Purple Book from {today.year} or {today.year - 1}. Last error: {last_error}"
        )

    def download_all(self, directory: Path, on_progress: Optional[ProgressCallback] = None) -> DownloadedSources:
        """
        Download both source files into a directory.

        Args:
            directory: Target directory, created if missing. The caller owns its cleanup.
            on_progress: Progress callback shared by both downloads.

        Returns:
            The paths of both files and the Purple Book URL used.
        """
        directory.mkdir(parents=True, exist_ok=True)
        orange_book_path = directory / FdaConfig.ORANGE_BOOK_FILENAME
        purple_book_path = directory / FdaConfig.PURPLE_BOOK_FILENAME

        logger.info("Downloading Orange/Purple Book data...")
        self.download_orange_book(orange_book_path, on_progress)
        purple_book_url = self.download_purple_book(purple_book_path, on_progress)

        return DownloadedSources(
            orange_book_path=orange_book_path,
            purple_book_path=purple_book_path,
            purple_book_url=purple_book_url,
        )

    def cleanup(self, path: Path) -> None:
        """
        Delete a file or directory.

        Args:
            path: Path to the file or directory to delete.
        """
        if not path.exists():
            return

        try:
            if path.is_file():
                path.unlink()
            elif path.is_dir():
                shutil.rmtree(path)
            logger.debug(f"Cleaned up {path}")
        except OSError as e:
            logger.warning(f"Failed to cleanup {path}: {e}")

# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Exception hierarchy for the Orange Book / Purple Book service."""


class FdaBookError(Exception):
    """Base class for all errors raised by this package."""

    code: str = "FDA_BOOK_ERROR"


class FdaSourceError(FdaBookError):
    """Raised when an FDA source file cannot be obtained or read."""

    code = "SOURCE_ERROR"


class SourceConnectionError(FdaSourceError):
    """Raised when a download fails at the transport level."""

    code = "SOURCE_CONNECTION_ERROR"


class SourceUnavailableError(SourceConnectionError):
    """Raised when every download candidate for a source has failed."""

    code = "SOURCE_UNAVAILABLE"


class SourceSchemaError(FdaSourceError):
    """Raised when a source exists but does not have the expected shape."""

    code = "SOURCE_SCHEMA_ERROR"


class MalformedArchiveError(SourceSchemaError):
    """Raised when the Orange Book archive lacks one of its required text files."""

    code = "MALFORMED_ARCHIVE"


class DatabaseNotInitializedError(FdaBookError):
    """Raised when a query runs before the local store is ready."""

    code = "DATABASE_NOT_INITIALIZED"


class ApplicationNotFoundError(FdaBookError):
    """Raised when an exact application number lookup matches nothing."""

    code = "APPLICATION_NOT_FOUND"


class DrugNotFoundError(FdaBookError):
    """Raised when a drug name resolves to no brand product."""

    code = "DRUG_NOT_FOUND"


class ToolInputError(FdaBookError):
    """Raised when a tool call lacks the parameters its method needs."""

    code = "VALIDATION_ERROR"

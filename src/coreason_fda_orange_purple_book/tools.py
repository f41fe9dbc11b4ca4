# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Dispatch of tool calls onto the Orange/Purple Book query service."""

import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from coreason_fda_orange_purple_book.exceptions import FdaBookError, ToolInputError
from coreason_fda_orange_purple_book.service import OrangePurpleBookService

TOOL_NAME = "fda_orange_purple_book"
PROGRESS_TOTAL = 3.0

# Receives (progress, stage) as the call moves through its stages
ProgressCallback = Callable[[float, str], Awaitable[None]]


class BookMethod(str, Enum):
    """Methods exposed through the tool."""

    SEARCH_ORANGE_BOOK = "search_orange_book"
    GET_THERAPEUTIC_EQUIVALENTS = "get_therapeutic_equivalents"
    GET_PATENT_EXCLUSIVITY = "get_patent_exclusivity"
    ANALYZE_PATENT_CLIFF = "analyze_patent_cliff"
    SEARCH_PURPLE_BOOK = "search_purple_book"
    GET_BIOSIMILAR_INTERCHANGEABILITY = "get_biosimilar_interchangeability"


class BookToolRequest(BaseModel):
    """Parameters accepted by the tool. Which ones are required depends on ``method``."""

    model_config = ConfigDict(frozen=True)

    method: BookMethod
    drug_name: Optional[str] = None
    search_term: Optional[str] = None
    include_generics: bool = True
    nda_number: Optional[str] = None
    years_ahead: int = Field(default=5, ge=0)
    reference_product: Optional[str] = None


def _require(value: Optional[str], message: str) -> str:
    if not value or not value.strip():
        raise ToolInputError(message)
    return value


def resolve_call(service: OrangePurpleBookService, request: BookToolRequest) -> Callable[[], BaseModel]:
    """
    Bind a request to the service operation it names.

    Parameters are checked here, before the store is touched, so a bad call
    never triggers a download.

    Raises:
        ToolInputError: If a required parameter is missing.
    """
    method = request.method
    name_message = f"drug_name or search_term is required for {method.value}"

    if method is BookMethod.SEARCH_ORANGE_BOOK:
        drug_name = _require(request.drug_name or request.search_term, name_message)
        return partial(service.search_brand_and_generic_products, drug_name, request.include_generics)
    if method is BookMethod.GET_THERAPEUTIC_EQUIVALENTS:
        return partial(service.find_therapeutic_equivalents, _require(request.drug_name or request.search_term, name_message))
    if method is BookMethod.GET_PATENT_EXCLUSIVITY:
        nda_number = _require(request.nda_number, f"nda_number is required for {method.value}")
        return partial(service.get_patents_and_exclusivity, nda_number)
    if method is BookMethod.ANALYZE_PATENT_CLIFF:
        drug_name = _require(request.drug_name or request.search_term, name_message)
        return partial(service.forecast_patent_cliff, drug_name, request.years_ahead)
    if method is BookMethod.SEARCH_PURPLE_BOOK:
        return partial(service.search_biosimilars, _require(request.drug_name or request.search_term, name_message))

    reference = request.reference_product or request.drug_name or request.search_term
    return partial(
        service.get_interchangeable_biosimilars,
        _require(reference, f"reference_product, drug_name or search_term is required for {method.value}"),
    )


def _envelope_metadata(request_id: str, started: float) -> dict[str, Any]:
    return {
        "executionTime": round((time.perf_counter() - started) * 1000),
        "requestId": request_id,
        "tool": TOOL_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def execute_book_method(
    service: OrangePurpleBookService,
    params: dict[str, Any],
    request_id: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> dict[str, Any]:
    """
    Validate tool parameters, make sure the store is ready and run the query.

    Args:
        service: The query service owning the store.
        params: Raw tool arguments, including ``method``.
        request_id: Correlation id, generated when omitted.
        on_progress: Awaited with ``(progress, stage)`` out of ``PROGRESS_TOTAL``
            at "initializing", "executing" and "complete". The first stage
            covers the download and build on a cold store.

    Returns:
        A JSON-ready envelope: ``{"success", "data" | "error", "metadata"}``.
    """
    started = time.perf_counter()
    request_id = request_id or uuid.uuid4().hex

    try:
        request = BookToolRequest.model_validate(params)
        call = resolve_call(service, request)
        logger.info(f"[{request_id}] Executing {request.method.value}")
        if on_progress is not None:
            await on_progress(0.0, "initializing")
        await service.ensure_ready()
        if on_progress is not None:
            await on_progress(1.0, "executing")
        result = call()
    except ValidationError as e:
        logger.warning(f"[{request_id}] Invalid tool parameters: {e}")
        return {
            "success": False,
            "error": {"error": str(e), "code": ToolInputError.code},
            "metadata": _envelope_metadata(request_id, started),
        }
    except FdaBookError as e:
        logger.error(f"[{request_id}] {type(e).__name__}: {e}")
        return {
            "success": False,
            "error": {"error": str(e), "code": e.code},
            "metadata": _envelope_metadata(request_id, started),
        }

    if on_progress is not None:
        await on_progress(2.0, "complete")

    return {
        "success": True,
        "data": result.model_dump(mode="json", by_alias=True),
        "metadata": _envelope_metadata(request_id, started),
    }

# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""MCP server exposing the Orange/Purple Book tool."""

import json
from typing import Optional

from mcp.server.fastmcp import Context, FastMCP

from coreason_fda_orange_purple_book.service import OrangePurpleBookService
from coreason_fda_orange_purple_book.tools import PROGRESS_TOTAL, TOOL_NAME, BookMethod, execute_book_method

TOOL_DESCRIPTION = (
    "FDA Orange Book (approved drugs, therapeutic equivalence, patents and exclusivity) and "
    "Purple Book (licensed biologics, biosimilars and interchangeability) lookup. "
    f"Methods: {', '.join(m.value for m in BookMethod)}. "
    "The local database is downloaded from FDA on first use."
)


def create_server(service: OrangePurpleBookService) -> FastMCP:
    """
    Build the MCP server around an existing service.

    Args:
        service: The query service the tool delegates to.

    Returns:
        A FastMCP server with the single ``fda_orange_purple_book`` tool registered.
    """
    mcp = FastMCP("FDA Orange/Purple Book")

    @mcp.tool(name=TOOL_NAME, description=TOOL_DESCRIPTION)
    async def fda_orange_purple_book(
        method: str,
        ctx: Context,
        drug_name: Optional[str] = None,
        search_term: Optional[str] = None,
        include_generics: bool = True,
        nda_number: Optional[str] = None,
        years_ahead: int = 5,
        reference_product: Optional[str] = None,
    ) -> str:
        async def report_progress(progress: float, stage: str) -> None:
            await ctx.report_progress(progress, PROGRESS_TOTAL, message=stage)

        envelope = await execute_book_method(
            service,
            {
                "method": method,
                "drug_name": drug_name,
                "search_term": search_term,
                "include_generics": include_generics,
                "nda_number": nda_number,
                "years_ahead": years_ahead,
                "reference_product": reference_product,
            },
            on_progress=report_progress,
        )
        return json.dumps(envelope, indent=2)

    return mcp

# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Business logic over records read from the store."""

from datetime import date, datetime, timedelta
from typing import Optional, TypeVar

from coreason_fda_orange_purple_book.config import FdaConfig
from coreason_fda_orange_purple_book.gold.models import (
    BiosimilarSearchResult,
    ExclusivityExpiry,
    InterchangeabilityResult,
    OrangeBookSearchResult,
    PatentCliffForecast,
    PatentCliffSummary,
    PatentExpiry,
    TherapeuticEquivalentsResult,
)
from coreason_fda_orange_purple_book.silver.models import (
    OrangeBookExclusivity,
    OrangeBookPatent,
    OrangeBookProduct,
    PurpleBookBiologic,
)

FDA_DATE_FORMATS: tuple[str, ...] = ("%b %d, %Y", "%Y-%m-%d", "%Y%m%d", "%m/%d/%Y")
FTS_OR = "OR"

T = TypeVar("T")


def build_fts_query(text: str) -> str:
    """
    Turn free text into an FTS5 MATCH expression.

    Every whitespace-separated token is quoted so punctuation in drug names
    (hyphens, parentheses, trademark signs) cannot break the query syntax.
    Tokens are implicitly AND-ed. A trailing ``*`` keeps its prefix meaning
    (``ibu*``) and a bare uppercase ``OR`` between two terms is kept as the
    operator. Returns "" when nothing searchable remains.
    """
    parts: list[str] = []
    for token in text.split():
        if token == FTS_OR:
            if parts and parts[-1] != FTS_OR:
                parts.append(FTS_OR)
            continue
        word = token.rstrip("*")
        if not any(ch.isalnum() for ch in word):
            continue
        suffix = "*" if word != token else ""
        parts.append('"' + word.replace('"', '""') + '"' + suffix)

    while parts and parts[-1] == FTS_OR:
        parts.pop()
    return " ".join(parts)


def parse_fda_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an FDA date string (e.g. 'Jan 1, 1982').

    ISO, compact YYYYMMDD and US slash dates are accepted as well.

    Args:
        value: Date string from the source.

    Returns:
        The parsed date, or None if empty, invalid or 'Approved prior to ...'.
    """
    if not value or "approved prior to" in value.lower():
        return None

    for fmt in FDA_DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    return None


def normalize_application_number(value: str) -> str:
    """Trim an application number and zero-pad numeric values to the Orange Book's 6 digits."""
    value = value.strip()
    if value.isdigit():
        return value.zfill(FdaConfig.APPLICATION_NUMBER_WIDTH)
    return value


def split_brand_and_generic(products: list[OrangeBookProduct], include_generics: bool = True) -> OrangeBookSearchResult:
    """
    Partition search hits by application type.

    ``total_count`` reflects only the products actually returned.
    """
    brand_products = [p for p in products if p.appl_type == FdaConfig.BRAND_APPL_TYPE]
    generic_products = (
        [p for p in products if p.appl_type == FdaConfig.GENERIC_APPL_TYPE] if include_generics else []
    )
    return OrangeBookSearchResult(
        brand_products=brand_products,
        generic_products=generic_products,
        total_count=len(brand_products) + len(generic_products),
    )


def is_substitutable(product: OrangeBookProduct) -> bool:
    """AB-rated products are FDA-determined therapeutic equivalents."""
    return product.te_code.startswith(FdaConfig.SUBSTITUTABLE_TE_PREFIX)


def therapeutic_equivalents(search: OrangeBookSearchResult) -> TherapeuticEquivalentsResult:
    """
    Pick the reference listed drug and split generics by AB rating.

    The RLD is the brand product flagged ``rld == "Yes"``, falling back to the
    first brand product.
    """
    rld = next((p for p in search.brand_products if p.rld == "Yes"), None)
    if rld is None and search.brand_products:
        rld = search.brand_products[0]

    return TherapeuticEquivalentsResult(
        reference_listed_drug=rld,
        te_rated_generics=[p for p in search.generic_products if is_substitutable(p)],
        non_te_generics=[p for p in search.generic_products if not is_substitutable(p)],
    )


def _latest(*candidates: Optional[date]) -> Optional[date]:
    dated = sorted((d for d in candidates if d is not None), reverse=True)
    return dated[0] if dated else None


def _sort_by_date(pairs: list[tuple[Optional[date], T]]) -> list[tuple[date, T]]:
    """Drop undated entries and sort the rest ascending by date."""
    dated = [(d, item) for d, item in pairs if d is not None]
    return sorted(dated, key=lambda pair: pair[0])


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def compute_patent_cliff(
    product: OrangeBookProduct,
    patents: list[OrangeBookPatent],
    exclusivity: list[OrangeBookExclusivity],
    years_ahead: int = 5,
    today: Optional[date] = None,
) -> PatentCliffForecast:
    """
    Estimate when generic competition becomes possible for a brand product.

    Generic entry is blocked by patents and by exclusivity alike, so the
    estimate is the later of the last patent expiry and the first exclusivity
    expiry. Entries with unparseable dates are left out of the analysis.

    Args:
        product: The brand product being analysed.
        patents: Patents listed against its application.
        exclusivity: Exclusivity grants listed against its application.
        years_ahead: Horizon used for ``loe_within_horizon``; it does not filter the lists.
        today: Reference date, defaults to the current date.

    Returns:
        The forecast with ISO-formatted summary dates.
    """
    today = today or date.today()

    dated_patents = _sort_by_date([(parse_fda_date(p.patent_expire_date), p) for p in patents])
    dated_exclusivity = _sort_by_date([(parse_fda_date(e.exclusivity_date), e) for e in exclusivity])

    next_expiration = dated_patents[0][0] if dated_patents else None
    all_patents_expire = dated_patents[-1][0] if dated_patents else None
    exclusivity_expires = dated_exclusivity[0][0] if dated_exclusivity else None
    estimate = _latest(all_patents_expire, exclusivity_expires)

    years_until_loe = None
    within_horizon = None
    if estimate is not None:
        years_until_loe = round((estimate - today).days / FdaConfig.DAYS_PER_YEAR, 1)
        horizon = today + timedelta(days=round(years_ahead * FdaConfig.DAYS_PER_YEAR))
        within_horizon = estimate <= horizon

    return PatentCliffForecast(
        drug=product.trade_name or product.ingredient,
        years_ahead=years_ahead,
        patent_cliff_analysis=PatentCliffSummary(
            next_expiration=_iso(next_expiration),
            all_patents_expire=_iso(all_patents_expire),
            exclusivity_expires=_iso(exclusivity_expires),
            generic_entry_estimate=_iso(estimate),
            years_until_loe=years_until_loe,
            loe_within_horizon=within_horizon,
        ),
        patents=[PatentExpiry(no=p.patent_no, expires=d.isoformat(), use=p.patent_use_code) for d, p in dated_patents],
        exclusivity=[ExclusivityExpiry(code=e.exclusivity_code, expires=d.isoformat()) for d, e in dated_exclusivity],
    )


def split_reference_and_biosimilars(biologics: list[PurpleBookBiologic]) -> BiosimilarSearchResult:
    """The first non-biosimilar hit is the reference product; flagged biosimilars are the candidates."""
    return BiosimilarSearchResult(
        reference_product=next((b for b in biologics if not b.biosimilar), None),
        biosimilars=[b for b in biologics if b.biosimilar],
        total_count=len(biologics),
    )


def interchangeability(reference_product_name: str, search: BiosimilarSearchResult) -> InterchangeabilityResult:
    """Split the biosimilars of a search result by their interchangeable flag."""
    reference = search.reference_product
    return InterchangeabilityResult(
        reference_product=(reference.proprietary_name if reference and reference.proprietary_name else reference_product_name),
        interchangeable_biosimilars=[b for b in search.biosimilars if b.interchangeable],
        similar_but_not_interchangeable=[b for b in search.biosimilars if not b.interchangeable],
    )

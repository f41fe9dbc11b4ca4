# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Pydantic models for query results served from the local store."""

from typing import Optional

from pydantic import BaseModel, Field

from coreason_fda_orange_purple_book.silver.models import (
    RECORD_CONFIG,
    OrangeBookExclusivity,
    OrangeBookPatent,
    OrangeBookProduct,
    PurpleBookBiologic,
)


class DatabaseMetadata(BaseModel):
    """
    Provenance of a built store, persisted one row per key.
    """

    model_config = RECORD_CONFIG

    version: str = Field(description="YYYY-MM build tag")
    orange_book_date: str
    purple_book_date: str
    created_at: str
    updated_at: str
    purple_book_source_url: str = ""


class OrangeBookSearchResult(BaseModel):
    """Products matching a drug name, split into brand (NDA) and generic (ANDA)."""

    model_config = RECORD_CONFIG

    brand_products: list[OrangeBookProduct]
    generic_products: list[OrangeBookProduct]
    total_count: int


class TherapeuticEquivalentsResult(BaseModel):
    """The reference listed drug and its generics split by AB rating."""

    model_config = RECORD_CONFIG

    reference_listed_drug: Optional[OrangeBookProduct] = None
    te_rated_generics: list[OrangeBookProduct]
    non_te_generics: list[OrangeBookProduct]


class ApplicationSummary(BaseModel):
    model_config = RECORD_CONFIG

    appl_no: str
    appl_type: str
    trade_name: str
    ingredient: str


class PatentExclusivityResult(BaseModel):
    """Patents and exclusivity attached to one application number."""

    model_config = RECORD_CONFIG

    application: ApplicationSummary
    patents: list[OrangeBookPatent]
    exclusivity: list[OrangeBookExclusivity]


class PatentCliffSummary(BaseModel):
    """
    Key loss-of-exclusivity dates for one drug, as ISO ``YYYY-MM-DD`` strings.

    ``generic_entry_estimate`` is the later of ``all_patents_expire`` and
    ``exclusivity_expires`` since generic entry is blocked by both.
    """

    model_config = RECORD_CONFIG

    next_expiration: Optional[str] = None
    all_patents_expire: Optional[str] = None
    exclusivity_expires: Optional[str] = None
    generic_entry_estimate: Optional[str] = None
    years_until_loe: Optional[float] = Field(default=None, alias="yearsUntilLOE")
    loe_within_horizon: Optional[bool] = None


class PatentExpiry(BaseModel):
    model_config = RECORD_CONFIG

    no: str
    expires: str
    use: str


class ExclusivityExpiry(BaseModel):
    model_config = RECORD_CONFIG

    code: str
    expires: str


class PatentCliffForecast(BaseModel):
    """Patent cliff analysis for the first brand product matching a drug name."""

    model_config = RECORD_CONFIG

    drug: str
    years_ahead: int
    patent_cliff_analysis: PatentCliffSummary
    patents: list[PatentExpiry]
    exclusivity: list[ExclusivityExpiry]


class BiosimilarSearchResult(BaseModel):
    """Biologics matching a name: the reference product and its biosimilars."""

    model_config = RECORD_CONFIG

    reference_product: Optional[PurpleBookBiologic] = None
    biosimilars: list[PurpleBookBiologic]
    total_count: int


class InterchangeabilityResult(BaseModel):
    """Biosimilars of a reference product split by interchangeability."""

    model_config = RECORD_CONFIG

    reference_product: str
    interchangeable_biosimilars: list[PurpleBookBiologic]
    similar_but_not_interchangeable: list[PurpleBookBiologic]

# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_fda_orange_purple_book

"""Pydantic models for parsed Orange Book and Purple Book records."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RECORD_CONFIG = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class OrangeBookProduct(BaseModel):
    """
    One approved drug product from the Orange Book ``products.txt`` file.

    Values are the raw trimmed strings published by FDA.
    """

    model_config = RECORD_CONFIG

    id: Optional[int] = Field(default=None, description="Row id once persisted")
    ingredient: str
    dosage_form: str
    route: str
    trade_name: str
    applicant: str
    applicant_full_name: str
    strength: str
    appl_type: str = Field(description="N for NDA (brand), A for ANDA (generic)")
    appl_no: str
    product_no: str
    te_code: str = Field(description="Therapeutic Equivalence code, e.g. AB, AN, BX")
    approval_date: str
    rld: str = Field(description="Reference Listed Drug flag: Yes or No")
    rs: str = Field(description="Reference Standard flag: Yes or No")
    type: str = Field(description="RX, OTC, or DISCN")


class OrangeBookPatent(BaseModel):
    """
    One patent listed against an application in ``patent.txt``.
    """

    model_config = RECORD_CONFIG

    id: Optional[int] = None
    appl_type: str
    appl_no: str
    product_no: str
    patent_no: str
    patent_expire_date: str
    drug_substance_flag: str
    drug_product_flag: str
    patent_use_code: str
    delist_flag: str
    submission_date: str


class OrangeBookExclusivity(BaseModel):
    """
    One exclusivity grant listed in ``exclusivity.txt``.
    """

    model_config = RECORD_CONFIG

    id: Optional[int] = None
    appl_type: str
    appl_no: str
    product_no: str
    exclusivity_code: str = Field(description="NCE, ODE, PED, etc.")
    exclusivity_date: str


class OrangeBookData(BaseModel):
    """The three record sets parsed out of one Orange Book archive."""

    model_config = RECORD_CONFIG

    products: list[OrangeBookProduct]
    patents: list[OrangeBookPatent]
    exclusivity: list[OrangeBookExclusivity]


class PurpleBookBiologic(BaseModel):
    """
    One licensed biologic from the Purple Book workbook.

    ``biosimilar`` and ``interchangeable`` are derived when the row is parsed.
    """

    model_config = RECORD_CONFIG

    id: Optional[int] = None
    bla_number: str
    proper_name: str
    proprietary_name: str
    bla_type: str = Field(description="351(a) for originators, 351(k) for biosimilars")
    date_of_licensure: str
    licensure_status: str
    marketing_status: str
    applicant: str
    applicant_full_name: str
    strength: str
    dosage_form: str
    route_of_administration: str
    reference_product_proper_name: str
    reference_product_proprietary_name: str
    biosimilar: bool
    interchangeable: bool
    interchangeable_date: str
    exclusivity_expiration_date: str
    orphan_exclusivity: str
    pediatric_exclusivity: str

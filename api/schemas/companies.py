from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CompanyListItem(BaseModel):
    enterprise_number: str
    status: str
    juridical_form: Optional[str] = None
    start_date: Optional[str] = None
    names: List[str] = Field(default_factory=list)
    juridical_form_group: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class CompanyListResponse(BaseModel):
    items: List[CompanyListItem]
    total: int
    page: int
    page_size: int

    model_config = ConfigDict(extra="ignore")


class DenominationOut(BaseModel):
    language: str
    type_of_denomination: str
    denomination: str


class AddressOut(BaseModel):
    type_of_address: str
    country_nl: Optional[str] = None
    country_fr: Optional[str] = None
    zipcode: Optional[str] = None
    municipality_nl: Optional[str] = None
    municipality_fr: Optional[str] = None
    street_nl: Optional[str] = None
    street_fr: Optional[str] = None
    house_number: Optional[str] = None
    box: Optional[str] = None
    extra_address_info: Optional[str] = None
    date_striking_off: Optional[str] = None


class ContactOut(BaseModel):
    entity_contact: str
    contact_type: str
    value: str


class ActivityOut(BaseModel):
    activity_group: str
    nace_version: int
    nace_code: str
    nace_label: Optional[str] = None
    classification: str


class CompanyDetail(BaseModel):
    """Enterprise with its related rows and human-readable labels."""

    enterprise_number: str
    status: str
    status_label: Optional[str] = None
    juridical_situation: str
    juridical_situation_label: Optional[str] = None
    type_of_enterprise: str
    type_of_enterprise_label: Optional[str] = None
    juridical_form: Optional[str] = None
    juridical_form_label: Optional[str] = None
    juridical_form_display: Optional[str] = None
    juridical_form_group: Optional[str] = None
    juridical_form_cac: Optional[str] = None
    start_date: Optional[str] = None

    denominations: List[DenominationOut] = Field(default_factory=list)
    addresses: List[AddressOut] = Field(default_factory=list)
    contacts: List[ContactOut] = Field(default_factory=list)
    activities: List[ActivityOut] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

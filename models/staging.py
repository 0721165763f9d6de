"""Staging tables (`kbo_stg`).

Loosely typed mirrors of the source CSV files: one TEXT column per source
header, in header order. The column order is the contract the staging
loader checks each file's header against. Staging tables are truncated and
refilled on every run.
"""

from sqlalchemy import Column, Table, Text

from db import STAGING_SCHEMA
from models import Base


def _staging_table(name: str, *columns: str) -> Table:
    return Table(
        name,
        Base.metadata,
        *(Column(c, Text, nullable=True) for c in columns),
        schema=STAGING_SCHEMA,
    )


code = _staging_table("code", "Category", "Code", "Language", "Description")

enterprise = _staging_table(
    "enterprise",
    "EnterpriseNumber",
    "Status",
    "JuridicalSituation",
    "TypeOfEnterprise",
    "JuridicalForm",
    "JuridicalFormCAC",
    "StartDate",
)

establishment = _staging_table(
    "establishment", "EstablishmentNumber", "StartDate", "EnterpriseNumber"
)

branch = _staging_table("branch", "Id", "StartDate", "EnterpriseNumber")

denomination = _staging_table(
    "denomination", "EntityNumber", "Language", "TypeOfDenomination", "Denomination"
)

address = _staging_table(
    "address",
    "EntityNumber",
    "TypeOfAddress",
    "CountryNL",
    "CountryFR",
    "Zipcode",
    "MunicipalityNL",
    "MunicipalityFR",
    "StreetNL",
    "StreetFR",
    "HouseNumber",
    "Box",
    "ExtraAddressInfo",
    "DateStrikingOff",
)

contact = _staging_table(
    "contact", "EntityNumber", "EntityContact", "ContactType", "Value"
)

activity = _staging_table(
    "activity",
    "EntityNumber",
    "ActivityGroup",
    "NaceVersion",
    "NaceCode",
    "Classification",
)

meta = _staging_table("meta", "Variable", "Value")

# NACEBEL 2025 code list, published separately from the KBO extract.
nacebel2025 = _staging_table(
    "nacebel2025",
    "LEVEL",
    "CODE",
    "NATIONAL_TITLE_BE_NL",
    "NATIONAL_TITLE_BE_FR",
    "NATIONAL_TITLE_BE_DE",
    "NATIONAL_TITLE_BE_EN",
)

STAGING_TABLES: tuple[Table, ...] = (
    code,
    enterprise,
    establishment,
    branch,
    denomination,
    address,
    contact,
    activity,
    meta,
    nacebel2025,
)

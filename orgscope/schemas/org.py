from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class GroupCompanyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    created_at: datetime | None = None


class CountryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    iso2: str
    iso3: str
    name: str
    default_currency_code: str | None = None


class LegalEntityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    group_company_id: int
    country_id: int
    code: str
    name: str
    functional_currency_code: str
    status: str


class OperatingUnitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    legal_entity_id: int
    code: str
    name: str
    unit_type: str
    status: str


class OrgTreeOut(BaseModel):
    tenant_id: int
    groups: list[GroupCompanyOut]
    countries: list[CountryOut]
    legal_entities: list[LegalEntityOut]
    operating_units: list[OperatingUnitOut]
    rbac_source: str | None
    tenant_wide_scope: bool


class GroupCompanyListOut(BaseModel):
    tenant_id: int
    rows: list[GroupCompanyOut]


class CountryListOut(BaseModel):
    tenant_id: int
    rows: list[CountryOut]


class LegalEntityListOut(BaseModel):
    tenant_id: int
    rows: list[LegalEntityOut]


class OperatingUnitListOut(BaseModel):
    tenant_id: int
    rows: list[OperatingUnitOut]

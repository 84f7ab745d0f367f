from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReportRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    report_id: str
    date_from: date
    date_to: date
    location_ids: tuple[str, ...] = ()
    franchisee_id: str | None = None
    employee_id: str | None = None
    filters: dict[str, str] = Field(default_factory=dict)
    timezone: str | None = None

    @field_validator("location_ids", mode="before")
    @classmethod
    def _dedupe_locations(cls, value):
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        return tuple(dict.fromkeys(item.strip() for item in value if item and item.strip()))

    def cache_key(self) -> tuple:
        return (
            self.report_id,
            self.date_from,
            self.date_to,
            tuple(sorted(self.location_ids)),
            tuple(sorted(self.filters.items())),
        )


class DocumentHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    report_id: str
    report_name: str
    category: str
    orientation: str
    date_from: date
    date_to: date
    locations: list[str]
    location_label: str
    filter_summary: str
    generated_at: datetime
    timezone: str
    timezone_label: str


class DocumentSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    columns: list[str]
    rows: list[dict[str, Any]]
    note: str | None = None


class ReconciliationBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    gross_sales: Decimal
    refunds: Decimal
    voids: Decimal
    discounts: Decimal
    net_sales: Decimal
    tax: Decimal
    tips: Decimal
    tender_cash: Decimal
    tender_card: Decimal
    tender_gift: Decimal
    expected_net: Decimal
    variance: Decimal
    tender_expected: Decimal | None = None
    tender_variance: Decimal | None = None
    status: str


class DocumentFooter(BaseModel):
    model_config = ConfigDict(frozen=True)

    definitions: dict[str, str]
    version: str


class ReportDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    header: DocumentHeader
    sections: list[DocumentSection]
    reconciliation: ReconciliationBlock | None = None
    footer: DocumentFooter


class ReportCatalogEntry(BaseModel):
    report_id: str
    display_name: str
    priority: str
    category: str
    requires_payroll_permission: bool
    orientation: str


class ReportCatalogResponse(BaseModel):
    role: str
    payroll_permission: bool
    reports: list[ReportCatalogEntry]

"""Records exchanged with the eAccounting API.

Wire names are camelCase; Python attributes are snake_case. Unknown fields
returned by the API are kept (``extra="allow"``) so nothing is silently dropped.

Create requests carry the fields the API requires. Update payloads have every
field optional; only fields the caller explicitly set are serialized, which
keeps "omitted" distinct from "set to null".
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class EAccountingModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize only the fields that were explicitly set, using API names."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


# ---------------------------------------------------------------------------
# Auth + pagination
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class AccessCredential:
    access_token: str
    refresh_token: str | None = None
    expires_in_seconds: int | None = None
    token_type: str = "Bearer"
    scope: str | None = None
    expires_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.expires_at is None and self.expires_in_seconds is not None:
            self.expires_at = datetime.now(timezone.utc) + timedelta(
                seconds=self.expires_in_seconds
            )

    @classmethod
    def from_token_response(cls, payload: dict[str, Any]) -> "AccessCredential":
        expires_in = payload.get("expires_in")
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in_seconds=int(expires_in) if expires_in is not None else None,
            token_type=payload.get("token_type") or "Bearer",
            scope=payload.get("scope"),
        )

    def is_expired(self, now: datetime | None = None, *, leeway_seconds: int = 0) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expires_at - timedelta(seconds=leeway_seconds) <= now


class PaginationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1)

    def to_query(self) -> dict[str, int]:
        return {"page": self.page, "pageSize": self.page_size}


class PaginationMeta(EAccountingModel):
    current_page: int
    page_size: int = Field(ge=1)
    total_count: int = Field(ge=0)
    total_pages: int = Field(ge=0)


T = TypeVar("T")


class PaginatedResult(BaseModel, Generic[T]):
    meta: PaginationMeta
    data: list[T] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_envelope(self) -> "PaginatedResult[T]":
        if len(self.data) > self.meta.page_size:
            raise ValueError(
                f"page holds {len(self.data)} items but pageSize is {self.meta.page_size}"
            )
        expected = math.ceil(self.meta.total_count / self.meta.page_size)
        if self.meta.total_pages != expected:
            raise ValueError(
                f"totalPages={self.meta.total_pages} does not match "
                f"ceil({self.meta.total_count}/{self.meta.page_size})={expected}"
            )
        return self


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


class Customer(EAccountingModel):
    id: str | None = None
    customer_number: str | None = None
    corporate_identity_number: str | None = None
    contact_person_email: str | None = None
    contact_person_name: str | None = None
    contact_person_phone: str | None = None
    currency_code: str | None = None
    email_address: str | None = None
    email_address_invoice: str | None = None
    invoice_city: str | None = None
    invoice_country_code: str | None = None
    invoice_postal_code: str | None = None
    invoice_street_address1: str | None = None
    invoice_street_address2: str | None = None
    is_private_person: bool | None = None
    name: str
    is_active: bool | None = None
    payment_terms_id: str | None = None
    phone_number: str | None = None
    our_reference: str | None = None
    your_reference: str | None = None
    note: str | None = None
    is_blocked: bool | None = None
    credit_limit: float | None = None
    created_utc: str | None = None
    modified_utc: str | None = None


class CreateCustomerRequest(EAccountingModel):
    name: str = Field(min_length=1)
    customer_number: str | None = None
    corporate_identity_number: str | None = None
    email_address: str | None = None
    invoice_city: str | None = None
    invoice_country_code: str | None = None
    invoice_postal_code: str | None = None
    invoice_street_address1: str | None = None
    invoice_street_address2: str | None = None
    is_private_person: bool | None = None
    phone_number: str | None = None
    is_active: bool | None = None


class CustomerUpdate(EAccountingModel):
    name: str | None = None
    customer_number: str | None = None
    corporate_identity_number: str | None = None
    email_address: str | None = None
    invoice_city: str | None = None
    invoice_country_code: str | None = None
    invoice_postal_code: str | None = None
    invoice_street_address1: str | None = None
    invoice_street_address2: str | None = None
    is_private_person: bool | None = None
    phone_number: str | None = None
    is_active: bool | None = None
    payment_terms_id: str | None = None
    note: str | None = None


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------


class Article(EAccountingModel):
    id: str | None = None
    article_number: str | None = None
    description: str | None = None
    name: str
    unit_price: float | None = None
    unit_abbreviation: str | None = None
    unit: str | None = None
    is_active: bool | None = None
    vat_rate_id: str | None = None
    account_number: str | None = None
    is_stock_item: bool | None = None
    stock_balance: float | None = None
    cost_price: float | None = None
    created_utc: str | None = None
    modified_utc: str | None = None


class CreateArticleRequest(EAccountingModel):
    name: str = Field(min_length=1)
    article_number: str | None = None
    description: str | None = None
    unit_price: float | None = None
    unit: str | None = None
    vat_rate_id: str | None = None
    account_number: str | None = None
    is_stock_item: bool | None = None
    cost_price: float | None = None


class ArticleUpdate(EAccountingModel):
    name: str | None = None
    article_number: str | None = None
    description: str | None = None
    unit_price: float | None = None
    unit: str | None = None
    is_active: bool | None = None
    vat_rate_id: str | None = None
    account_number: str | None = None
    is_stock_item: bool | None = None
    cost_price: float | None = None


# ---------------------------------------------------------------------------
# Customer invoices
# ---------------------------------------------------------------------------


class InvoiceRow(EAccountingModel):
    article_id: str | None = None
    article_number: str | None = None
    description: str | None = None
    quantity: float
    unit_price: float | None = None
    discount_percentage: float | None = None
    vat_rate_id: str | None = None
    account_number: str | None = None
    unit: str | None = None
    line_number: int | None = None
    # Computed by the API.
    total_amount_excluding_vat: float | None = None
    total_vat_amount: float | None = None
    total_amount: float | None = None


class CustomerInvoice(EAccountingModel):
    id: str | None = None
    invoice_number: int | None = None
    customer_id: str
    customer_name: str | None = None
    invoice_date: str
    due_date: str
    delivery_date: str | None = None
    currency_code: str | None = None
    our_reference: str | None = None
    your_reference: str | None = None
    invoice_rows: list[InvoiceRow] = Field(default_factory=list)
    total_amount: float | None = None
    total_vat_amount: float | None = None
    total_amount_excluding_vat: float | None = None
    total_rounding_amount: float | None = None
    is_paid: bool | None = None
    is_credit_invoice: bool | None = None
    terms: str | None = None
    note: str | None = None
    invoice_text: str | None = None
    status: str | None = None
    voucher_number: int | None = None
    created_utc: str | None = None
    modified_utc: str | None = None


class CustomerInvoiceDraft(CustomerInvoice):
    is_draft: bool = True


class CreateInvoiceRequest(EAccountingModel):
    customer_id: str = Field(min_length=1)
    invoice_date: str
    due_date: str
    delivery_date: str | None = None
    currency_code: str | None = None
    our_reference: str | None = None
    your_reference: str | None = None
    invoice_rows: list[InvoiceRow] = Field(min_length=1)
    terms: str | None = None
    note: str | None = None
    invoice_text: str | None = None


class InvoiceUpdate(EAccountingModel):
    customer_id: str | None = None
    invoice_date: str | None = None
    due_date: str | None = None
    delivery_date: str | None = None
    currency_code: str | None = None
    our_reference: str | None = None
    your_reference: str | None = None
    invoice_rows: list[InvoiceRow] | None = None
    terms: str | None = None
    note: str | None = None
    invoice_text: str | None = None


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------


class Supplier(EAccountingModel):
    id: str | None = None
    supplier_number: str | None = None
    name: str
    corporate_identity_number: str | None = None
    contact_person_name: str | None = None
    contact_person_email: str | None = None
    contact_person_phone: str | None = None
    email_address: str | None = None
    phone_number: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country_code: str | None = None
    currency_code: str | None = None
    bank_account_number: str | None = None
    bic: str | None = None
    iban: str | None = None
    payment_terms_id: str | None = None
    is_active: bool | None = None
    created_utc: str | None = None
    modified_utc: str | None = None


class CreateSupplierRequest(EAccountingModel):
    name: str = Field(min_length=1)
    supplier_number: str | None = None
    corporate_identity_number: str | None = None
    email_address: str | None = None
    phone_number: str | None = None
    address1: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country_code: str | None = None
    is_active: bool | None = None


class SupplierUpdate(EAccountingModel):
    name: str | None = None
    supplier_number: str | None = None
    corporate_identity_number: str | None = None
    email_address: str | None = None
    phone_number: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country_code: str | None = None
    is_active: bool | None = None


class SupplierInvoice(EAccountingModel):
    id: str | None = None
    supplier_id: str
    supplier_number: str | None = None
    supplier_name: str | None = None
    invoice_number: str
    invoice_date: str
    due_date: str
    payment_date: str | None = None
    currency_code: str | None = None
    total_amount: float
    total_vat_amount: float | None = None
    is_paid: bool | None = None
    created_utc: str | None = None
    modified_utc: str | None = None


class CreateSupplierInvoiceRequest(EAccountingModel):
    supplier_id: str = Field(min_length=1)
    invoice_number: str
    invoice_date: str
    due_date: str
    currency_code: str | None = None
    total_amount: float
    total_vat_amount: float | None = None


# ---------------------------------------------------------------------------
# Reference data + vouchers
# ---------------------------------------------------------------------------


class PaymentTerm(EAccountingModel):
    id: str | None = None
    name: str
    name_english: str | None = None
    number_of_days: int
    is_active: bool | None = None


class VatRate(EAccountingModel):
    id: str | None = None
    name: str
    rate_percentage: float
    is_active: bool | None = None


class FiscalYear(EAccountingModel):
    id: str | None = None
    start_date: str
    end_date: str
    is_locked: bool | None = None


class Account(EAccountingModel):
    id: str | None = None
    number: str
    name: str
    is_active: bool | None = None
    is_summary_account: bool | None = None
    vat_rate_id: str | None = None


class VoucherRow(EAccountingModel):
    account_number: str
    debit_amount: float | None = None
    credit_amount: float | None = None
    transaction_text: str | None = None


class Voucher(EAccountingModel):
    id: str | None = None
    voucher_number: int | None = None
    voucher_date: str
    voucher_text: str | None = None
    voucher_rows: list[VoucherRow] = Field(default_factory=list)
    created_utc: str | None = None
    modified_utc: str | None = None


class CreateVoucherRequest(EAccountingModel):
    voucher_date: str
    voucher_text: str | None = None
    voucher_rows: list[VoucherRow] = Field(min_length=1)

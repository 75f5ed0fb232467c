"""Resource clients: one per remote entity type.

Each operation is exactly one transport call. Values the API computes
(row totals, invoice totals, numbers) are decoded as returned, never derived
client-side.
"""

from __future__ import annotations

from typing import Any, Generic, Mapping, TypeVar
from urllib.parse import quote

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import UnknownServerError, ValidationError
from .models import (
    Account,
    Article,
    ArticleUpdate,
    CreateArticleRequest,
    CreateCustomerRequest,
    CreateInvoiceRequest,
    CreateSupplierInvoiceRequest,
    CreateSupplierRequest,
    CreateVoucherRequest,
    Customer,
    CustomerInvoice,
    CustomerInvoiceDraft,
    CustomerUpdate,
    EAccountingModel,
    FiscalYear,
    InvoiceUpdate,
    PaginatedResult,
    PaginationRequest,
    PaymentTerm,
    Supplier,
    SupplierInvoice,
    SupplierUpdate,
    VatRate,
    Voucher,
)
from .transport import Transport

E = TypeVar("E", bound=BaseModel)
M = TypeVar("M", bound=BaseModel)

Payload = BaseModel | Mapping[str, Any]


def _field_errors(exc: PydanticValidationError) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
        out.setdefault(field, []).append(err.get("msg", "invalid"))
    return out


def coerce_payload(model: type[M], data: Payload) -> M:
    """Validate caller input against `model` before anything is sent."""
    if isinstance(data, model):
        return data
    raw = data.model_dump(exclude_unset=True, by_alias=True) if isinstance(data, BaseModel) else data
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid {model.__name__}",
            field_errors=_field_errors(exc),
        ) from exc


def decode(model: type[M], payload: Any) -> M:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise UnknownServerError(
            f"Unexpected {model.__name__} payload: {exc.error_count()} validation error(s)",
            field_errors=_field_errors(exc),
        ) from exc


class ReadOnlyResource(Generic[E]):
    path: str = ""
    model: type[BaseModel] = BaseModel

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def _item_path(self, id: str, *suffix: str) -> str:
        if not id:
            raise ValidationError("id is required", field_errors={"id": ["required"]})
        return "/".join([self.path, quote(str(id), safe=""), *suffix])

    def _decode(self, payload: Any) -> E:
        return decode(self.model, payload)  # type: ignore[return-value]

    def _decode_page(self, payload: Any) -> PaginatedResult[E]:
        return decode(PaginatedResult[self.model], payload)  # type: ignore[name-defined]

    def get_all(self, pagination: PaginationRequest | None = None) -> PaginatedResult[E]:
        pagination = pagination or PaginationRequest()
        payload = self._transport.request("GET", self.path, query=pagination.to_query())
        return self._decode_page(payload)

    def get(self, id: str) -> E:
        return self._decode(self._transport.request("GET", self._item_path(id)))


class CreatableResource(ReadOnlyResource[E]):
    create_model: type[EAccountingModel] = EAccountingModel

    def create(self, data: Payload) -> E:
        request = coerce_payload(self.create_model, data)
        payload = self._transport.request("POST", self.path, body=request.to_wire())
        return self._decode(payload)


class ResourceClient(CreatableResource[E]):
    """Full CRUD for one entity type."""

    update_model: type[EAccountingModel] = EAccountingModel
    update_method: str = "PUT"

    def update(self, id: str, partial: Payload) -> E:
        """Send only the supplied fields; the server keeps the rest."""
        request = coerce_payload(self.update_model, partial)
        payload = self._transport.request(
            self.update_method,
            self._item_path(id),
            body=request.to_wire(),
        )
        return self._decode(payload)

    def delete(self, id: str) -> None:
        # A second delete of the same id surfaces NotFound from the API.
        self._transport.request("DELETE", self._item_path(id))


class SearchableResource(ResourceClient[E]):
    search_param: str = "q"

    def search(
        self,
        query: str,
        pagination: PaginationRequest | None = None,
    ) -> PaginatedResult[E]:
        pagination = pagination or PaginationRequest()
        params: dict[str, Any] = {self.search_param: query, **pagination.to_query()}
        payload = self._transport.request("GET", self.path, query=params)
        return self._decode_page(payload)


def _payment_body(payment_date: str, amount: float) -> dict[str, Any]:
    return {"paymentDate": payment_date, "amount": amount}


# ---------------------------------------------------------------------------
# Concrete resources
# ---------------------------------------------------------------------------


class CustomersResource(SearchableResource[Customer]):
    path = "/customers"
    model = Customer
    create_model = CreateCustomerRequest
    update_model = CustomerUpdate


class ArticlesResource(SearchableResource[Article]):
    path = "/articles"
    model = Article
    create_model = CreateArticleRequest
    update_model = ArticleUpdate


class InvoicesResource(SearchableResource[CustomerInvoice]):
    path = "/customerinvoices"
    model = CustomerInvoice
    create_model = CreateInvoiceRequest
    update_model = InvoiceUpdate

    def send_email(self, id: str, email_address: str | None = None) -> None:
        body = {"emailAddress": email_address} if email_address else {}
        self._transport.request("POST", self._item_path(id, "email"), body=body)

    def mark_as_paid(self, id: str, payment_date: str, amount: float) -> CustomerInvoice:
        """Register a payment; voucher bookkeeping happens server-side."""
        payload = self._transport.request(
            "POST",
            self._item_path(id, "payments"),
            body=_payment_body(payment_date, amount),
        )
        return self._decode(payload)

    def create_credit(self, id: str) -> CustomerInvoice:
        payload = self._transport.request("POST", self._item_path(id, "credit"))
        return self._decode(payload)


class InvoiceDraftsResource(ResourceClient[CustomerInvoiceDraft]):
    path = "/customerinvoicedrafts"
    model = CustomerInvoiceDraft
    create_model = CreateInvoiceRequest
    update_model = InvoiceUpdate

    def convert_to_invoice(self, id: str) -> CustomerInvoice:
        payload = self._transport.request("POST", self._item_path(id, "convert"))
        return decode(CustomerInvoice, payload)


class SuppliersResource(SearchableResource[Supplier]):
    path = "/suppliers"
    model = Supplier
    create_model = CreateSupplierRequest
    update_model = SupplierUpdate


class SupplierInvoicesResource(CreatableResource[SupplierInvoice]):
    path = "/supplierinvoices"
    model = SupplierInvoice
    create_model = CreateSupplierInvoiceRequest

    def mark_as_paid(self, id: str, payment_date: str, amount: float) -> SupplierInvoice:
        payload = self._transport.request(
            "POST",
            self._item_path(id, "payments"),
            body=_payment_body(payment_date, amount),
        )
        return self._decode(payload)


class PaymentTermsResource(ReadOnlyResource[PaymentTerm]):
    path = "/termsofpayment"
    model = PaymentTerm


class VatRatesResource(ReadOnlyResource[VatRate]):
    path = "/vatcodes"
    model = VatRate


class FiscalYearsResource(ReadOnlyResource[FiscalYear]):
    path = "/fiscalyears"
    model = FiscalYear


class AccountsResource(ReadOnlyResource[Account]):
    path = "/accounts"
    model = Account


class VouchersResource(CreatableResource[Voucher]):
    path = "/vouchers"
    model = Voucher
    create_model = CreateVoucherRequest

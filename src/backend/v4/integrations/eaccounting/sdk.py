from __future__ import annotations

from .config import PRODUCTION_API_URL, EAccountingSettings
from .models import AccessCredential
from .oauth import TokenManager
from .resources import (
    AccountsResource,
    ArticlesResource,
    CustomersResource,
    FiscalYearsResource,
    InvoiceDraftsResource,
    InvoicesResource,
    PaymentTermsResource,
    SupplierInvoicesResource,
    SuppliersResource,
    VatRatesResource,
    VouchersResource,
)
from .transport import Transport


class EAccounting:
    """Entry point: one token manager and one transport shared by every resource.

    The access token may be omitted and supplied later via `set_access_token`;
    until then every resource call raises `ConfigurationError`.
    """

    def __init__(
        self,
        access_token: str | AccessCredential | None = None,
        *,
        api_url: str = PRODUCTION_API_URL,
        token_manager: TokenManager | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.token_manager = token_manager or TokenManager(timeout_seconds=timeout_seconds)
        if access_token is not None:
            self.token_manager.set_access_token(access_token)

        self._transport = Transport(
            base_url=api_url,
            token_manager=self.token_manager,
            timeout_seconds=timeout_seconds,
        )

        self.customers = CustomersResource(self._transport)
        self.articles = ArticlesResource(self._transport)
        self.invoices = InvoicesResource(self._transport)
        self.invoice_drafts = InvoiceDraftsResource(self._transport)
        self.suppliers = SuppliersResource(self._transport)
        self.supplier_invoices = SupplierInvoicesResource(self._transport)
        self.payment_terms = PaymentTermsResource(self._transport)
        self.vat_rates = VatRatesResource(self._transport)
        self.fiscal_years = FiscalYearsResource(self._transport)
        self.accounts = AccountsResource(self._transport)
        self.vouchers = VouchersResource(self._transport)

    @classmethod
    def from_settings(cls, settings: EAccountingSettings) -> "EAccounting":
        token_manager = TokenManager(
            identity_url=settings.identity_url,
            timeout_seconds=settings.timeout_seconds,
        )
        if settings.access_token:
            token_manager.set_access_token(
                AccessCredential(
                    access_token=settings.access_token,
                    refresh_token=settings.refresh_token,
                    expires_at=settings.token_expires_at,
                )
            )
        return cls(
            api_url=settings.api_url,
            token_manager=token_manager,
            timeout_seconds=settings.timeout_seconds,
        )

    @property
    def transport(self) -> Transport:
        return self._transport

    def set_access_token(self, token: str | AccessCredential) -> None:
        self.token_manager.set_access_token(token)

    def get_access_token(self) -> str | None:
        return self.token_manager.get_access_token()

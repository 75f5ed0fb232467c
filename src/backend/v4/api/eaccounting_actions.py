"""eAccounting actions: SDK calls normalized to `{success, data|error}`.

These are the seam between the HTTP router and the client. They catch
`ApiError` (and only that), log it, and turn it into a failure envelope so the
router never has to know the error taxonomy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping

from pydantic import BaseModel

from src.backend.v4.integrations.eaccounting import (
    DEFAULT_SCOPE,
    AccessCredential,
    ApiError,
    ConfigurationError,
    EAccounting,
    EAccountingSettings,
    PaginationRequest,
    ValidationError,
)
from src.backend.v4.integrations.eaccounting.resources import coerce_payload
from src.backend.v4.integrations.eaccounting.token_store import save_tokens

logger = logging.getLogger(__name__)

CRUD_RESOURCES = ("customers", "articles", "invoices", "suppliers")


@dataclass(slots=True)
class ActionResult:
    success: bool
    data: Any = None
    error: str | None = None
    field_errors: dict[str, list[str]] | None = None
    http_status: int = 200

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success}
        if self.success:
            if self.data is not None:
                out["data"] = self.data
            return out
        out["error"] = self.error
        if self.field_errors:
            out["fieldErrors"] = self.field_errors
        return out


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value


def _http_status_for(exc: ApiError) -> int:
    if isinstance(exc, ConfigurationError):
        return 503
    if exc.status_code is None:
        # Local validation never reached the API.
        return 422 if isinstance(exc, ValidationError) else 502
    if 400 <= exc.status_code < 500:
        return exc.status_code
    return 502


def run_action(description: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> ActionResult:
    try:
        result = fn(*args, **kwargs)
    except ApiError as e:
        logger.error(f"Failed to {description}: {e}")
        return ActionResult(
            success=False,
            error=e.message or f"Failed to {description}",
            field_errors=e.field_errors or None,
            http_status=_http_status_for(e),
        )
    return ActionResult(success=True, data=_jsonable(result))


def _resource(sdk: EAccounting, name: str) -> Any:
    if name not in CRUD_RESOURCES:
        raise ValueError(f"Unknown resource: {name}")
    return getattr(sdk, name)


def _pagination(page: int, page_size: int) -> PaginationRequest:
    return coerce_payload(PaginationRequest, {"page": page, "page_size": page_size})


# ---------------------------------------------------------------------------
# Generic CRUD
# ---------------------------------------------------------------------------


def list_items(sdk: EAccounting, resource: str, page: int = 1, page_size: int = 50) -> ActionResult:
    client = _resource(sdk, resource)
    return run_action(
        f"fetch {resource}",
        lambda: client.get_all(_pagination(page, page_size)),
    )


def get_item(sdk: EAccounting, resource: str, item_id: str) -> ActionResult:
    client = _resource(sdk, resource)
    return run_action(f"fetch {resource} item", client.get, item_id)


def create_item(sdk: EAccounting, resource: str, data: Mapping[str, Any]) -> ActionResult:
    client = _resource(sdk, resource)
    return run_action(f"create {resource} item", client.create, data)


def update_item(
    sdk: EAccounting,
    resource: str,
    item_id: str,
    data: Mapping[str, Any],
) -> ActionResult:
    client = _resource(sdk, resource)
    return run_action(f"update {resource} item", client.update, item_id, data)


def delete_item(sdk: EAccounting, resource: str, item_id: str) -> ActionResult:
    client = _resource(sdk, resource)
    return run_action(f"delete {resource} item", client.delete, item_id)


def search_items(
    sdk: EAccounting,
    resource: str,
    query: str,
    page: int = 1,
    page_size: int = 50,
) -> ActionResult:
    client = _resource(sdk, resource)
    return run_action(
        f"search {resource}",
        lambda: client.search(query, _pagination(page, page_size)),
    )


# ---------------------------------------------------------------------------
# Invoices, drafts, supplier invoices
# ---------------------------------------------------------------------------


def send_invoice_email(sdk: EAccounting, item_id: str, email_address: str | None = None) -> ActionResult:
    return run_action("send invoice email", sdk.invoices.send_email, item_id, email_address)


def mark_invoice_as_paid(sdk: EAccounting, item_id: str, payment_date: str, amount: float) -> ActionResult:
    return run_action("mark invoice as paid", sdk.invoices.mark_as_paid, item_id, payment_date, amount)


def create_credit_invoice(sdk: EAccounting, item_id: str) -> ActionResult:
    return run_action("create credit invoice", sdk.invoices.create_credit, item_id)


def list_invoice_drafts(sdk: EAccounting, page: int = 1, page_size: int = 50) -> ActionResult:
    return run_action(
        "fetch invoice drafts",
        lambda: sdk.invoice_drafts.get_all(_pagination(page, page_size)),
    )


def create_invoice_draft(sdk: EAccounting, data: Mapping[str, Any]) -> ActionResult:
    return run_action("create invoice draft", sdk.invoice_drafts.create, data)


def convert_draft_to_invoice(sdk: EAccounting, item_id: str) -> ActionResult:
    return run_action("convert draft to invoice", sdk.invoice_drafts.convert_to_invoice, item_id)


def list_supplier_invoices(sdk: EAccounting, page: int = 1, page_size: int = 50) -> ActionResult:
    return run_action(
        "fetch supplier invoices",
        lambda: sdk.supplier_invoices.get_all(_pagination(page, page_size)),
    )


def create_supplier_invoice(sdk: EAccounting, data: Mapping[str, Any]) -> ActionResult:
    return run_action("create supplier invoice", sdk.supplier_invoices.create, data)


def mark_supplier_invoice_as_paid(
    sdk: EAccounting,
    item_id: str,
    payment_date: str,
    amount: float,
) -> ActionResult:
    return run_action(
        "mark supplier invoice as paid",
        sdk.supplier_invoices.mark_as_paid,
        item_id,
        payment_date,
        amount,
    )


# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------


def get_authorization_url(
    settings: EAccountingSettings,
    sdk: EAccounting,
    state: str,
) -> str:
    client_id, _secret, redirect_uri = settings.require_oauth()
    return sdk.token_manager.build_authorization_url(client_id, redirect_uri, DEFAULT_SCOPE, state)


def _store_credential(
    settings: EAccountingSettings,
    sdk: EAccounting,
    credential: AccessCredential,
) -> dict[str, Any]:
    sdk.set_access_token(credential)
    save_tokens(settings.tokens_path, credential)
    # Tokens stay server-side; callers only learn when they expire.
    return {
        "tokenType": credential.token_type,
        "scope": credential.scope,
        "expiresIn": credential.expires_in_seconds,
        "expiresAt": credential.expires_at.isoformat() if credential.expires_at else None,
        "hasRefreshToken": bool(credential.refresh_token),
    }


def handle_auth_callback(settings: EAccountingSettings, sdk: EAccounting, code: str) -> ActionResult:
    def _exchange() -> dict[str, Any]:
        client_id, client_secret, redirect_uri = settings.require_oauth()
        credential = sdk.token_manager.exchange_code_for_token(
            client_id, client_secret, redirect_uri, code
        )
        return _store_credential(settings, sdk, credential)

    return run_action("exchange code for token", _exchange)


def refresh_access_token(
    settings: EAccountingSettings,
    sdk: EAccounting,
    refresh_token: str | None = None,
) -> ActionResult:
    def _refresh() -> dict[str, Any]:
        client_id, client_secret, _redirect = settings.require_oauth()
        held = sdk.token_manager.credential
        token = refresh_token or (held.refresh_token if held else None) or settings.refresh_token
        if not token:
            raise ConfigurationError("No refresh token available. Complete the OAuth flow first.")
        credential = sdk.token_manager.refresh_token(client_id, client_secret, token)
        if not credential.refresh_token:
            # No rotation: the spent refresh token stays valid.
            credential = replace(credential, refresh_token=token)
        return _store_credential(settings, sdk, credential)

    return run_action("refresh token", _refresh)

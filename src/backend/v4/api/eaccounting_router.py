"""eAccounting API Router.

OAuth2 start/callback/refresh plus JSON endpoints over the eAccounting
actions. Every data endpoint answers with `{success, data|error}`.
"""

import logging
import secrets
import time
from enum import Enum
from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.backend.v4.api import eaccounting_actions as actions
from src.backend.v4.integrations.eaccounting import (
    ConfigurationError,
    EAccounting,
    EAccountingSettings,
)

logger = logging.getLogger(__name__)

eaccounting_router = APIRouter(prefix="/eaccounting", tags=["eAccounting"])

_STATE_TTL_SECONDS = 600
_STATE_STORE: dict[str, float] = {}


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------


class CrudResource(str, Enum):
    customers = "customers"
    articles = "articles"
    invoices = "invoices"
    suppliers = "suppliers"


class _WireBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaymentRequest(_WireBody):
    payment_date: str
    amount: float


class InvoiceEmailRequest(_WireBody):
    email_address: str | None = None


class RefreshRequest(_WireBody):
    refresh_token: str | None = None


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------


def get_sdk(request: Request) -> EAccounting:
    return request.app.state.eaccounting


def get_settings(request: Request) -> EAccountingSettings:
    return request.app.state.eaccounting_settings


def _respond(result: actions.ActionResult) -> JSONResponse:
    return JSONResponse(status_code=result.http_status, content=result.to_dict())


def _prune_states(now: float) -> None:
    expired = [s for s, created in _STATE_STORE.items() if now - created > _STATE_TTL_SECONDS]
    for s in expired:
        _STATE_STORE.pop(s, None)


def _error_redirect(reason: str) -> RedirectResponse:
    return RedirectResponse(url=f"/?error={quote(reason, safe='')}")


# ---------------------------------------------------------------------------
# OAuth endpoints
# ---------------------------------------------------------------------------


@eaccounting_router.get("/auth/start")
def eaccounting_oauth_start(
    settings: EAccountingSettings = Depends(get_settings),
    sdk: EAccounting = Depends(get_sdk),
):
    now = time.time()
    _prune_states(now)
    state = secrets.token_urlsafe(24)
    try:
        url = actions.get_authorization_url(settings, sdk, state)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    _STATE_STORE[state] = now
    return RedirectResponse(url=url)


@eaccounting_router.get("/auth/callback")
def eaccounting_oauth_callback(
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    settings: EAccountingSettings = Depends(get_settings),
    sdk: EAccounting = Depends(get_sdk),
):
    if error:
        return _error_redirect(error)
    if not code:
        return _error_redirect("missing_code")

    created = _STATE_STORE.pop(state, None) if state else None
    if created is None:
        raise HTTPException(status_code=400, detail="Invalid or expired state.")
    if time.time() - created > _STATE_TTL_SECONDS:
        raise HTTPException(status_code=400, detail="State expired.")

    result = actions.handle_auth_callback(settings, sdk, code)
    if not result.success:
        return _error_redirect(result.error or "auth_failed")
    logger.info("eAccounting OAuth flow completed")
    return RedirectResponse(url="/?auth=success")


@eaccounting_router.post("/auth/refresh")
def eaccounting_oauth_refresh(
    body: RefreshRequest | None = None,
    settings: EAccountingSettings = Depends(get_settings),
    sdk: EAccounting = Depends(get_sdk),
):
    token = body.refresh_token if body else None
    return _respond(actions.refresh_access_token(settings, sdk, token))


# ---------------------------------------------------------------------------
# Invoice drafts + supplier invoices (declared before the generic routes)
# ---------------------------------------------------------------------------


@eaccounting_router.get("/invoice-drafts")
def list_invoice_drafts(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.list_invoice_drafts(sdk, page, page_size))


@eaccounting_router.post("/invoice-drafts")
def create_invoice_draft(
    data: dict[str, Any] = Body(...),
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.create_invoice_draft(sdk, data))


@eaccounting_router.post("/invoice-drafts/{item_id}/convert")
def convert_invoice_draft(item_id: str, sdk: EAccounting = Depends(get_sdk)):
    return _respond(actions.convert_draft_to_invoice(sdk, item_id))


@eaccounting_router.get("/supplier-invoices")
def list_supplier_invoices(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.list_supplier_invoices(sdk, page, page_size))


@eaccounting_router.post("/supplier-invoices")
def create_supplier_invoice(
    data: dict[str, Any] = Body(...),
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.create_supplier_invoice(sdk, data))


@eaccounting_router.post("/supplier-invoices/{item_id}/payments")
def mark_supplier_invoice_paid(
    item_id: str,
    body: PaymentRequest,
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(
        actions.mark_supplier_invoice_as_paid(sdk, item_id, body.payment_date, body.amount)
    )


@eaccounting_router.post("/invoices/{item_id}/email")
def send_invoice_email(
    item_id: str,
    body: InvoiceEmailRequest | None = None,
    sdk: EAccounting = Depends(get_sdk),
):
    email = body.email_address if body else None
    return _respond(actions.send_invoice_email(sdk, item_id, email))


@eaccounting_router.post("/invoices/{item_id}/payments")
def mark_invoice_paid(
    item_id: str,
    body: PaymentRequest,
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.mark_invoice_as_paid(sdk, item_id, body.payment_date, body.amount))


@eaccounting_router.post("/invoices/{item_id}/credit")
def create_credit_invoice(item_id: str, sdk: EAccounting = Depends(get_sdk)):
    return _respond(actions.create_credit_invoice(sdk, item_id))


# ---------------------------------------------------------------------------
# Generic CRUD
# ---------------------------------------------------------------------------


@eaccounting_router.get("/{resource}")
def list_resource(
    resource: CrudResource,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.list_items(sdk, resource.value, page, page_size))


@eaccounting_router.get("/{resource}/search")
def search_resource(
    resource: CrudResource,
    q: str = Query(...),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.search_items(sdk, resource.value, q, page, page_size))


@eaccounting_router.get("/{resource}/{item_id}")
def get_resource_item(
    resource: CrudResource,
    item_id: str,
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.get_item(sdk, resource.value, item_id))


@eaccounting_router.post("/{resource}")
def create_resource_item(
    resource: CrudResource,
    data: dict[str, Any] = Body(...),
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.create_item(sdk, resource.value, data))


@eaccounting_router.patch("/{resource}/{item_id}")
def update_resource_item(
    resource: CrudResource,
    item_id: str,
    data: dict[str, Any] = Body(...),
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.update_item(sdk, resource.value, item_id, data))


@eaccounting_router.delete("/{resource}/{item_id}")
def delete_resource_item(
    resource: CrudResource,
    item_id: str,
    sdk: EAccounting = Depends(get_sdk),
):
    return _respond(actions.delete_item(sdk, resource.value, item_id))

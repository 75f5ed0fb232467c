"""In-memory stand-in for the eAccounting API.

The fake is installed by monkeypatching `requests.request`, the same seam the
client uses, so every test exercises the real transport + decoding code.
"""

from __future__ import annotations

import copy
import itertools
import json
import math
from collections import defaultdict
from types import SimpleNamespace
from typing import Any
from urllib.parse import urlparse


API_URL = "https://api.test/v2"
IDENTITY_URL = "https://identity.test"

REQUIRED_FIELDS = {
    "customers": ["name"],
    "articles": ["name"],
    "suppliers": ["name"],
    "customerinvoices": ["customerId", "invoiceDate", "dueDate"],
    "customerinvoicedrafts": ["customerId", "invoiceDate", "dueDate"],
}


class FakeResp:
    def __init__(
        self,
        status_code: int,
        payload: Any = None,
        text: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.headers = headers or {}

    def json(self):
        return json.loads(self.text)


class FakeEAccountingApi:
    def __init__(self) -> None:
        self.store: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.calls: list[SimpleNamespace] = []
        self.token_response = FakeResp(
            200,
            {
                "access_token": "fresh-access",
                "refresh_token": "fresh-refresh",
                "expires_in": 3600,
                "token_type": "Bearer",
                "scope": "ea:api ea:sales offline_access",
            },
        )
        self._ids = itertools.count(1)

    def __call__(self, method, url, headers=None, params=None, json=None, data=None, auth=None, timeout=None):
        self.calls.append(
            SimpleNamespace(
                method=method,
                url=url,
                headers=headers or {},
                params=params,
                json=json,
                data=data,
                auth=auth,
                timeout=timeout,
            )
        )
        parsed = urlparse(url)
        if parsed.path.endswith("/connect/token"):
            return self.token_response

        parts = [p for p in parsed.path.split("/") if p][1:]  # drop "v2"
        query = dict(params or [])
        collection = parts[0]
        item_id = parts[1] if len(parts) > 1 else None
        action = parts[2] if len(parts) > 2 else None

        if action:
            return self._action(collection, item_id, action, json or {})
        if method == "GET" and item_id is None:
            return self._list(collection, query)
        if method == "GET":
            return self._get(collection, item_id)
        if method == "POST":
            return self._create(collection, json or {})
        if method == "PUT":
            return self._update(collection, item_id, json or {})
        if method == "DELETE":
            return self._delete(collection, item_id)
        return FakeResp(405, {"message": "Method not allowed"})

    @property
    def resource_calls(self) -> list[SimpleNamespace]:
        return [c for c in self.calls if not c.url.endswith("/connect/token")]

    # -- handlers ----------------------------------------------------------

    def _list(self, collection: str, query: dict[str, str]) -> FakeResp:
        items = list(self.store[collection].values())
        needle = query.get("q")
        if needle:
            items = [
                i for i in items
                if any(needle.lower() in str(v).lower() for v in i.values() if isinstance(v, str))
            ]
        page = int(query.get("page", 1))
        page_size = int(query.get("pageSize", 50))
        start = (page - 1) * page_size
        return FakeResp(
            200,
            {
                "meta": {
                    "currentPage": page,
                    "pageSize": page_size,
                    "totalCount": len(items),
                    "totalPages": math.ceil(len(items) / page_size),
                },
                "data": items[start:start + page_size],
            },
        )

    def _get(self, collection: str, item_id: str) -> FakeResp:
        item = self.store[collection].get(item_id)
        if item is None:
            return FakeResp(404, {"message": f"{collection}/{item_id} not found"})
        return FakeResp(200, item)

    def _create(self, collection: str, body: dict[str, Any]) -> FakeResp:
        missing = [f for f in REQUIRED_FIELDS.get(collection, []) if not body.get(f)]
        if missing:
            return FakeResp(
                400,
                {"message": "Validation failed", "errors": {f: ["This field is required."] for f in missing}},
            )
        record = copy.deepcopy(body)
        record["id"] = f"{collection[:3]}-{next(self._ids)}"
        if collection in ("customerinvoices", "customerinvoicedrafts"):
            self._compute_invoice_totals(record)
        self.store[collection][record["id"]] = record
        return FakeResp(201, record)

    def _update(self, collection: str, item_id: str, body: dict[str, Any]) -> FakeResp:
        item = self.store[collection].get(item_id)
        if item is None:
            return FakeResp(404, {"message": f"{collection}/{item_id} not found"})
        item.update(copy.deepcopy(body))
        return FakeResp(200, item)

    def _delete(self, collection: str, item_id: str) -> FakeResp:
        if self.store[collection].pop(item_id, None) is None:
            return FakeResp(404, {"message": f"{collection}/{item_id} not found"})
        return FakeResp(204)

    def _action(self, collection: str, item_id: str, action: str, body: dict[str, Any]) -> FakeResp:
        item = self.store[collection].get(item_id)
        if item is None:
            return FakeResp(404, {"message": f"{collection}/{item_id} not found"})
        if action == "email":
            return FakeResp(204)
        if action == "payments":
            item["isPaid"] = True
            item["paymentDate"] = body.get("paymentDate")
            return FakeResp(200, item)
        if action == "credit":
            credit = dict(item, id=f"cus-{next(self._ids)}", isCreditInvoice=True)
            credit["totalAmount"] = -(item.get("totalAmount") or 0)
            self.store[collection][credit["id"]] = credit
            return FakeResp(201, credit)
        if action == "convert":
            invoice = {k: v for k, v in item.items() if k != "isDraft"}
            invoice["id"] = f"cus-{next(self._ids)}"
            self.store[collection].pop(item_id)
            self.store["customerinvoices"][invoice["id"]] = invoice
            return FakeResp(201, invoice)
        return FakeResp(404, {"message": "Unknown action"})

    def _compute_invoice_totals(self, record: dict[str, Any]) -> None:
        total = 0.0
        for row in record.get("invoiceRows", []):
            unit_price = row.get("unitPrice")
            if unit_price is None and row.get("articleId"):
                unit_price = self.store["articles"][row["articleId"]].get("unitPrice", 0.0)
            row["unitPrice"] = unit_price
            row["totalAmount"] = row["quantity"] * (unit_price or 0.0)
            total += row["totalAmount"]
        record["totalAmount"] = total

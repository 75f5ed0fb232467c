from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests

from src.backend.tests.fakes import FakeResp
from src.backend.v4.integrations.eaccounting import (
    AuthError,
    ConfigurationError,
    NetworkError,
    NotFound,
    RateLimited,
    TokenManager,
    Transport,
    UnknownServerError,
    ValidationError,
)
from src.backend.v4.integrations.eaccounting.errors import error_from_response


def _transport(token: str | None = "tok") -> Transport:
    return Transport(
        base_url="https://api.test/v2/",
        token_manager=TokenManager(access_token=token),
    )


def _install(monkeypatch, resp: FakeResp) -> SimpleNamespace:
    seen = SimpleNamespace(calls=0, method=None, url=None, headers=None, params=None, json=None)

    def fake_request(method, url, headers=None, params=None, json=None, timeout=None):
        seen.calls += 1
        seen.method = method
        seen.url = url
        seen.headers = headers
        seen.params = params
        seen.json = json
        return resp

    monkeypatch.setattr("requests.request", fake_request)
    return seen


def test_request_attaches_bearer_and_sorts_query(monkeypatch) -> None:
    seen = _install(monkeypatch, FakeResp(200, {"ok": True}))

    out = _transport().request("get", "customers", query={"pageSize": 10, "page": 2, "q": None})

    assert out == {"ok": True}
    assert seen.method == "GET"
    assert seen.url == "https://api.test/v2/customers"
    assert seen.headers["Authorization"] == "Bearer tok"
    assert seen.params == [("page", "2"), ("pageSize", "10")]
    assert seen.json is None


def test_request_serializes_body_as_json(monkeypatch) -> None:
    seen = _install(monkeypatch, FakeResp(201, {"id": "1", "name": "Acme"}))

    _transport().request("POST", "/customers", body={"name": "Acme"})

    assert seen.json == {"name": "Acme"}
    assert seen.headers["Content-Type"] == "application/json"


def test_no_content_returns_none(monkeypatch) -> None:
    _install(monkeypatch, FakeResp(204))
    assert _transport().request("DELETE", "/customers/1") is None


def test_missing_token_fails_before_any_request(monkeypatch) -> None:
    seen = _install(monkeypatch, FakeResp(200, {}))

    with pytest.raises(ConfigurationError) as exc_info:
        _transport(token=None).request("GET", "/customers")

    assert exc_info.value.status_code is None
    assert not isinstance(exc_info.value, NetworkError)
    assert seen.calls == 0


@pytest.mark.parametrize(
    "status, payload, expected",
    [
        (401, {"message": "Token expired"}, AuthError),
        (403, {"message": "Forbidden"}, AuthError),
        (404, {"message": "Not found"}, NotFound),
        (400, {"message": "Bad request"}, ValidationError),
        (409, {"message": "Conflict"}, UnknownServerError),
        (500, {"message": "Boom"}, UnknownServerError),
    ],
)
def test_non_2xx_maps_to_typed_error(monkeypatch, status, payload, expected) -> None:
    seen = _install(monkeypatch, FakeResp(status, payload))

    with pytest.raises(expected) as exc_info:
        _transport().request("GET", "/customers/1")

    assert exc_info.value.status_code == status
    assert exc_info.value.message == payload["message"]
    # Never retried.
    assert seen.calls == 1


def test_field_errors_are_extracted(monkeypatch) -> None:
    _install(
        monkeypatch,
        FakeResp(422, {"message": "Invalid", "errors": {"name": ["Required"], "email": "Bad format"}}),
    )

    with pytest.raises(ValidationError) as exc_info:
        _transport().request("POST", "/customers", body={})

    assert exc_info.value.field_errors == {"name": ["Required"], "email": ["Bad format"]}


def test_rate_limited_exposes_retry_after(monkeypatch) -> None:
    _install(monkeypatch, FakeResp(429, {"message": "Slow down"}, headers={"Retry-After": "7"}))

    with pytest.raises(RateLimited) as exc_info:
        _transport().request("GET", "/customers")

    assert exc_info.value.retry_after == 7.0


def test_network_failure_has_no_status(monkeypatch) -> None:
    def fake_request(method, url, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr("requests.request", fake_request)

    with pytest.raises(NetworkError) as exc_info:
        _transport().request("GET", "/customers")

    assert exc_info.value.status_code is None


def test_invalid_json_on_success_is_unknown_server_error(monkeypatch) -> None:
    _install(monkeypatch, FakeResp(200, text="<html>oops</html>"))

    with pytest.raises(UnknownServerError):
        _transport().request("GET", "/customers")


def test_error_from_response_reads_visma_validation_list() -> None:
    err = error_from_response(
        400,
        '{"DeveloperErrorMessage": "Invalid model", '
        '"ValidationErrors": [{"Field": "Name", "Message": "Required"}]}',
    )
    assert isinstance(err, ValidationError)
    assert err.message == "Invalid model"
    assert err.field_errors == {"Name": ["Required"]}


def test_error_from_response_without_body_uses_status() -> None:
    err = error_from_response(502, "")
    assert isinstance(err, UnknownServerError)
    assert str(err) == "HTTP 502: HTTP 502"

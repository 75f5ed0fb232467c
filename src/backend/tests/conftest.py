import pytest

from src.backend.tests.fakes import API_URL, FakeEAccountingApi
from src.backend.v4.integrations.eaccounting import EAccounting


@pytest.fixture
def fake_api(monkeypatch) -> FakeEAccountingApi:
    api = FakeEAccountingApi()
    monkeypatch.setattr("requests.request", api)
    return api


@pytest.fixture
def sdk(fake_api) -> EAccounting:
    return EAccounting("test-token", api_url=API_URL)

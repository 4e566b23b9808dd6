from dataclasses import dataclass, field
from typing import Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from country_sync.config import Settings
from country_sync.database import create_engine, create_session_maker, init_db
from country_sync.main import create_app
from country_sync.models import Country
from country_sync.reconciliation import Reconciler, fixed_multiplier
from country_sync.renderer import SummaryRenderer
from country_sync.sources import ExternalSourceClient
from country_sync.store import CountryStore

COUNTRIES_URL = "https://countries.test/v2/all"
RATES_URL = "https://rates.test/v6/latest/USD"

NIGERIA = {
    "name": "Nigeria",
    "capital": "Abuja",
    "region": "Africa",
    "population": 200000000,
    "flag": "https://flagcdn.com/ng.svg",
    "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
}
GHANA = {
    "name": "Ghana",
    "capital": "Accra",
    "region": "Africa",
    "population": 31072940,
    "flag": "https://flagcdn.com/gh.svg",
    "currencies": [{"code": "GHS"}],
}
CANADA = {
    "name": "Canada",
    "capital": "Ottawa",
    "region": "Americas",
    "population": 38005238,
    "flag": "https://flagcdn.com/ca.svg",
    "currencies": [{"code": "CAD"}],
}
ANTARCTICA = {
    "name": "Antarctica",
    "region": "Polar",
    "population": 1000,
    "currencies": [],
}
RATES = {"NGN": 1500.0, "GHS": 15.0, "CAD": 1.25, "USD": 1.0}


@dataclass
class FakeSources:
    """Serves canned payloads for both external APIs through httpx.MockTransport."""

    countries: object = field(default_factory=lambda: [NIGERIA, GHANA, CANADA, ANTARCTICA])
    rates: object = field(default_factory=lambda: {"result": "success", "rates": dict(RATES)})
    countries_status: int = 200
    rates_status: int = 200
    countries_error: Optional[Exception] = None
    rates_error: Optional[Exception] = None
    calls: list = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.host)
        if request.url.host == "countries.test":
            if self.countries_error is not None:
                raise self.countries_error
            return httpx.Response(self.countries_status, json=self.countries)
        if self.rates_error is not None:
            raise self.rates_error
        return httpx.Response(self.rates_status, json=self.rates)

    def client(self) -> ExternalSourceClient:
        return ExternalSourceClient(
            COUNTRIES_URL, RATES_URL, timeout_ms=5000, transport=httpx.MockTransport(self.handler)
        )


@pytest.fixture
def sources():
    return FakeSources()


@pytest.fixture
def renderer(tmp_path):
    return SummaryRenderer(tmp_path / "cache" / "summary.png", top_n=5)


@pytest.fixture
async def store(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await init_db(engine)
    yield CountryStore(create_session_maker(engine))
    await engine.dispose()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        CACHE_DIR=str(tmp_path / "cache"),
        ENVIRONMENT="development",
        REFRESH_INTERVAL_SECONDS=0,
    )


@pytest.fixture
def api(settings, sources, renderer):
    app = create_app(
        settings,
        source_client=sources.client(),
        reconciler=Reconciler(fixed_multiplier(1500.0)),
        renderer=renderer,
    )
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def production_api(settings, sources, renderer):
    app = create_app(
        settings.model_copy(update={"ENVIRONMENT": "production"}),
        source_client=sources.client(),
        reconciler=Reconciler(fixed_multiplier(1500.0)),
        renderer=renderer,
    )
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


async def count_rows(store):
    async with store.session_maker() as session:
        result = await session.execute(select(func.count()).select_from(Country))
        return result.scalar_one()

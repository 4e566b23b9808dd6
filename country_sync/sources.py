import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Generic, List, Optional, Tuple, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from country_sync.schemas import CountrySource, ExchangeRatePayload

logger = logging.getLogger(__name__)

T = TypeVar("T")

COUNTRIES_SOURCE = "RestCountries API"
EXCHANGE_SOURCE = "Exchange Rate API"

_country_list = TypeAdapter(List[CountrySource])


@dataclass
class FetchResult(Generic[T]):
    """Outcome of a single external fetch: data on success, a message otherwise."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: T) -> "FetchResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "FetchResult[T]":
        return cls(success=False, error=error)


class ExternalSourceClient:
    """
    Fetches the two independent datasets used by a refresh.

    Each fetch is a single attempt with its own timeout. Failures never raise:
    they come back as a failed FetchResult carrying a generic message, and the
    cause is logged here.
    """

    def __init__(
        self,
        countries_url: str,
        exchange_url: str,
        timeout_ms: int = 30000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.countries_url = countries_url
        self.exchange_url = exchange_url
        self.timeout = timeout_ms / 1000
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": "Mozilla/5.0"},
            transport=self._transport,
        )

    async def _get_json(self, url: str):
        async with self._client() as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()

    # ============================================================================
    # FETCHES
    # ============================================================================

    async def fetch_countries(self) -> FetchResult[List[CountrySource]]:
        """
        Fetch country data from the countries API.

        Returns:
            FetchResult with the validated list of countries
        """
        logger.info(f"Fetching countries from {self.countries_url} (timeout {self.timeout}s)")
        try:
            payload = await self._get_json(self.countries_url)
            if not isinstance(payload, list):
                raise ValueError(f"expected a list, got {type(payload).__name__}")
            countries = _country_list.validate_python(payload)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout while fetching countries: {e!r}")
            return FetchResult.fail(f"Could not fetch data from {COUNTRIES_SOURCE}")
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            # ValueError also covers JSON decode errors
            logger.error(f"Error fetching countries: {e}")
            return FetchResult.fail(f"Could not fetch data from {COUNTRIES_SOURCE}")

        logger.info(f"Fetched {len(countries)} countries")
        return FetchResult.ok(countries)

    async def fetch_exchange_rates(self) -> FetchResult[Dict[str, float]]:
        """
        Fetch exchange rates from the exchange rate API.

        Returns:
            FetchResult with a mapping of currency code to rate
            (e.g., {"NGN": 1600.23, "USD": 1.0})
        """
        logger.info(f"Fetching exchange rates from {self.exchange_url} (timeout {self.timeout}s)")
        try:
            payload = await self._get_json(self.exchange_url)
            if not isinstance(payload, dict) or "rates" not in payload:
                raise ValueError("no rates found in response")
            rates = ExchangeRatePayload.model_validate(payload).rates
        except httpx.TimeoutException as e:
            logger.error(f"Timeout while fetching exchange rates: {e!r}")
            return FetchResult.fail(f"Could not fetch data from {EXCHANGE_SOURCE}")
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.error(f"Error fetching exchange rates: {e}")
            return FetchResult.fail(f"Could not fetch data from {EXCHANGE_SOURCE}")

        logger.info(f"Fetched {len(rates)} exchange rates")
        return FetchResult.ok(rates)

    async def fetch_all(
        self,
    ) -> Tuple[FetchResult[List[CountrySource]], FetchResult[Dict[str, float]]]:
        """Run both fetches concurrently; both are always attempted."""
        countries, rates = await asyncio.gather(
            self.fetch_countries(), self.fetch_exchange_rates()
        )
        return countries, rates

"""
Merges fetched countries with the exchange rate table.

The estimated GDP is `population * multiplier / exchange_rate`, where the
multiplier is drawn uniformly from [1000, 2000) for every country on every
refresh. The variance between runs is intentional: the figure is a simulated
estimate, not an economic formula. Tests inject a fixed multiplier instead of
asserting on ranges.
"""

import random
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Set

from country_sync.models import CountryData
from country_sync.schemas import CountrySource

MULTIPLIER_MIN = 1000.0
MULTIPLIER_MAX = 2000.0

INSERT = "insert"
UPDATE = "update"

MultiplierSource = Callable[[], float]


def uniform_multiplier() -> float:
    return random.uniform(MULTIPLIER_MIN, MULTIPLIER_MAX)


def fixed_multiplier(value: float) -> MultiplierSource:
    return lambda: value


@dataclass(frozen=True)
class UpsertOp:
    action: str
    row: CountryData


class Reconciler:
    def __init__(self, multiplier: MultiplierSource = uniform_multiplier):
        self.multiplier = multiplier

    def estimate_gdp(self, population: int, exchange_rate: Optional[float]) -> Optional[float]:
        """
        Calculate estimated GDP using formula:
        estimated_gdp = population × random(1000–2000) ÷ exchange_rate

        Args:
            population: Country population
            exchange_rate: Exchange rate against USD

        Returns:
            Estimated GDP or None if there is no usable rate
        """
        if exchange_rate is None:
            return None
        return population * self.multiplier() / exchange_rate

    def merge(self, country: CountrySource, rates: Dict[str, float]) -> CountryData:
        """Build the full target row for one country."""
        currency_code = country.currency_code

        if currency_code is None:
            exchange_rate = None
            estimated_gdp = 0.0
        else:
            exchange_rate = rates.get(currency_code)
            # a zero or negative rate cannot be divided by
            if exchange_rate is not None and exchange_rate <= 0:
                exchange_rate = None
            estimated_gdp = self.estimate_gdp(country.population, exchange_rate)

        return CountryData(
            name=country.name,
            capital=country.capital,
            region=country.region,
            population=country.population,
            currency_code=currency_code,
            exchange_rate=exchange_rate,
            estimated_gdp=estimated_gdp,
            flag_url=country.flag,
        )

    def reconcile(
        self,
        countries: List[CountrySource],
        rates: Dict[str, float],
        existing_names: Iterable[str] = (),
    ) -> List[UpsertOp]:
        """
        Turn fetched countries into upsert intents.

        Args:
            countries: Countries from the countries API
            rates: Currency code to exchange rate
            existing_names: Names already stored, any case

        Returns:
            One UpsertOp per country, in source order
        """
        known: Set[str] = {name.lower() for name in existing_names}
        ops: List[UpsertOp] = []

        for country in countries:
            key = country.name.lower()
            action = UPDATE if key in known else INSERT
            known.add(key)
            ops.append(UpsertOp(action=action, row=self.merge(country, rates)))

        return ops

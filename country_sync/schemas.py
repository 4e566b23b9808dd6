"""
Pydantic schemas for external source payloads and API responses.
Separates the API layer and the source feeds from the database models.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime


# ============================================================================
# EXTERNAL SOURCE PAYLOADS
# ============================================================================


class CurrencySource(BaseModel):
    """One entry of a country's `currencies` array."""

    code: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None


class CountrySource(BaseModel):
    """
    One country as returned by the countries API.
    Unknown fields are ignored; only `name` is required.
    """

    name: str
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int = Field(default=0, ge=0)
    flag: Optional[str] = None
    currencies: List[CurrencySource] = Field(default_factory=list)

    @field_validator("population", mode="before")
    @classmethod
    def _population_default(cls, value):
        return 0 if value is None else value

    @field_validator("currencies", mode="before")
    @classmethod
    def _currencies_default(cls, value):
        return [] if value is None else value

    @property
    def currency_code(self) -> Optional[str]:
        """First declared currency code, or None when no currency is declared."""
        if not self.currencies:
            return None
        return self.currencies[0].code or None


class ExchangeRatePayload(BaseModel):
    """Exchange rate API body; only the `rates` map is used."""

    rates: Dict[str, float]


# ============================================================================
# API RESPONSES
# ============================================================================


class CountryResponse(BaseModel):
    """
    Response schema for country data.
    Used in GET /countries and GET /countries/:name
    """

    id: int
    name: str
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int
    currency_code: Optional[str] = None
    exchange_rate: Optional[float] = None
    estimated_gdp: Optional[float] = None
    flag_url: Optional[str] = None
    last_refreshed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "name": "Nigeria",
                "capital": "Abuja",
                "region": "Africa",
                "population": 206139589,
                "currency_code": "NGN",
                "exchange_rate": 1600.23,
                "estimated_gdp": 25767448125.2,
                "flag_url": "https://flagcdn.com/ng.svg",
                "last_refreshed_at": "2025-10-22T18:00:00Z",
            }
        }


class RefreshResponse(BaseModel):
    """
    Response after refreshing country data.
    Used in POST /countries/refresh
    """

    message: str
    total_countries: int
    last_refreshed_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Countries refreshed successfully",
                "total_countries": 250,
                "last_refreshed_at": "2025-10-22T18:00:00Z",
            }
        }


class StatusResponse(BaseModel):
    """
    System status response.
    Used in GET /status
    """

    total_countries: int
    last_refreshed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "total_countries": 250,
                "last_refreshed_at": "2025-10-22T18:00:00Z",
            }
        }


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """
    Standard error response for all error cases.
    Used in 404, 500, 503 responses
    """

    error: str
    details: Optional[str] = None

    class Config:
        json_schema_extra = {"example": {"error": "Country not found"}}


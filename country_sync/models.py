from sqlmodel import Column, Field, SQLModel
from sqlalchemy import TIMESTAMP, Index, func
from sqlalchemy.types import TypeDecorator
from typing import Optional
from datetime import datetime, UTC


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always loads as UTC, even on SQLite."""

    impl = TIMESTAMP(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


class CountryData(SQLModel):
    """Mutable fields of a country row, as produced by reconciliation."""

    name: str = Field(unique=True, nullable=False, index=True)
    capital: Optional[str] = Field(default=None)
    region: Optional[str] = Field(default=None, index=True)
    population: int = Field(default=0, nullable=False, ge=0)
    currency_code: Optional[str] = Field(default=None, index=True)
    exchange_rate: Optional[float] = Field(default=None)
    estimated_gdp: Optional[float] = Field(default=None)
    flag_url: Optional[str] = Field(default=None)


class Country(CountryData, table=True):
    __tablename__ = "countries"
    id: Optional[int] = Field(default=None, primary_key=True)
    last_refreshed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(UTCDateTime(), nullable=False)
    )


# One row per name regardless of case
Index("ix_countries_name_lower", func.lower(Country.__table__.c.name), unique=True)


class RefreshMetadata(SQLModel, table=True):
    __tablename__ = "refresh_metadata"
    id: int = Field(primary_key=True, default=1)
    total_countries: int = Field(default=0, nullable=False)
    last_refreshed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(UTCDateTime(), nullable=True)
    )

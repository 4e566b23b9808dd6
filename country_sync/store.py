import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import List, Optional, Set

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from country_sync.models import Country, RefreshMetadata
from country_sync.reconciliation import UpsertOp

logger = logging.getLogger(__name__)

METADATA_ID = 1

SORT_ORDERS = {
    "gdp_desc": Country.estimated_gdp.desc(),
    "gdp_asc": Country.estimated_gdp.asc(),
    "name_asc": Country.name.asc(),
    "name_desc": Country.name.desc(),
}
DEFAULT_SORT = "name_asc"


@dataclass
class RefreshSummary:
    inserted: int
    updated: int
    total_countries: int
    last_refreshed_at: datetime


class CountryStore:
    """Country rows plus the refresh metadata singleton."""

    def __init__(self, session_maker: sessionmaker):
        self.session_maker = session_maker
        # Serializes writers in this process; SQLite does not lock the lookup SELECTs
        self._write_lock = asyncio.Lock()

    # ============================================================================
    # REFRESH
    # ============================================================================

    async def apply_refresh(self, ops: List[UpsertOp]) -> RefreshSummary:
        """
        Apply a whole batch of upserts and the metadata update in one transaction.

        The case-insensitive name lookup done here decides insert vs. update,
        so a concurrent refresh that committed first is updated, not duplicated.
        Writers share a lock, so overlapping refreshes apply one after the other
        and the last to commit wins.
        Any failure rolls the whole batch back and propagates.

        Args:
            ops: Upsert intents from the reconciler

        Returns:
            RefreshSummary with counts and the refresh timestamp
        """
        inserted = updated = 0

        async with self._write_lock, self.session_maker() as session:
            refresh_time = datetime.now(UTC)
            async with session.begin():
                for op in ops:
                    existing = await self._find_by_name(session, op.row.name)
                    values = op.row.model_dump()

                    if existing:
                        # Overwrite every mutable field, keep the stored id and name
                        values.pop("name")
                        for field, value in values.items():
                            setattr(existing, field, value)
                        existing.last_refreshed_at = refresh_time
                        updated += 1
                    else:
                        session.add(Country(**values, last_refreshed_at=refresh_time))
                        inserted += 1

                total = await self._recompute_metadata(session, refresh_time)

        logger.info(
            f"Refresh committed: {inserted} inserted, {updated} updated, {total} total"
        )
        return RefreshSummary(
            inserted=inserted,
            updated=updated,
            total_countries=total,
            last_refreshed_at=refresh_time,
        )

    async def existing_names(self) -> Set[str]:
        """Lower-cased names of every stored country."""
        async with self.session_maker() as session:
            result = await session.execute(select(Country.name))
            return {name.lower() for name in result.scalars().all()}

    # ============================================================================
    # QUERIES
    # ============================================================================

    async def list_countries(
        self,
        region: Optional[str] = None,
        currency: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> List[Country]:
        """
        Get countries with optional filters and sorting.

        Args:
            region: Filter by region (exact match)
            currency: Filter by currency_code (exact match)
            sort: gdp_desc, gdp_asc, name_asc or name_desc; anything else sorts by name

        Returns:
            List of Country objects
        """
        stmt = select(Country)

        if region:
            stmt = stmt.where(Country.region == region)
        if currency:
            stmt = stmt.where(Country.currency_code == currency)

        stmt = stmt.order_by(SORT_ORDERS.get(sort or DEFAULT_SORT, SORT_ORDERS[DEFAULT_SORT]))

        async with self.session_maker() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_country(self, name: str) -> Optional[Country]:
        """Get a single country by name (case-insensitive)."""
        async with self.session_maker() as session:
            return await self._find_by_name(session, name)

    async def delete_country(self, name: str) -> bool:
        """
        Delete a country by name (case-insensitive).

        The metadata total is recomputed afterwards in its own transaction.

        Returns:
            True if deleted, False if not found
        """
        async with self._write_lock, self.session_maker() as session:
            async with session.begin():
                country = await self._find_by_name(session, name)
                if country is None:
                    return False
                await session.delete(country)

        async with self.session_maker() as session:
            async with session.begin():
                total = await self._recompute_metadata(session)

        logger.info(f"Deleted country {name!r}, {total} remaining")
        return True

    async def get_top_by_estimated_value(self, limit: int = 5) -> List[Country]:
        """Top N countries by estimated GDP, skipping those without an estimate."""
        stmt = (
            select(Country)
            .where(Country.estimated_gdp.is_not(None))
            .order_by(Country.estimated_gdp.desc())
            .limit(limit)
        )
        async with self.session_maker() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_metadata(self) -> RefreshMetadata:
        """Metadata singleton; an empty one if nothing was ever refreshed."""
        async with self.session_maker() as session:
            metadata = await session.get(RefreshMetadata, METADATA_ID)
        return metadata or RefreshMetadata(id=METADATA_ID, total_countries=0)

    # ============================================================================
    # HELPERS
    # ============================================================================

    async def _find_by_name(self, session: AsyncSession, name: str) -> Optional[Country]:
        stmt = select(Country).where(func.lower(Country.name) == func.lower(name))
        result = await session.execute(stmt)
        return result.scalars().first()

    async def _recompute_metadata(
        self, session: AsyncSession, refresh_time: Optional[datetime] = None
    ) -> int:
        """Set total_countries to COUNT(*); also stamp the refresh time when given."""
        result = await session.execute(select(func.count()).select_from(Country))
        total = result.scalar_one()

        metadata = await session.get(RefreshMetadata, METADATA_ID)
        if metadata is None:
            metadata = RefreshMetadata(id=METADATA_ID)
            session.add(metadata)

        metadata.total_countries = total
        if refresh_time is not None:
            metadata.last_refreshed_at = refresh_time
        return total

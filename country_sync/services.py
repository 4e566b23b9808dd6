import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from country_sync.errors import ExternalSourceUnavailable
from country_sync.reconciliation import Reconciler
from country_sync.renderer import SummaryRenderer
from country_sync.sources import ExternalSourceClient
from country_sync.store import CountryStore

logger = logging.getLogger(__name__)


@dataclass
class RefreshOutcome:
    total_countries: int
    last_refreshed_at: datetime
    inserted: int
    updated: int
    image_rendered: bool
    render_error: Optional[str] = None


class RefreshService:
    """Runs one refresh cycle: fetch, reconcile, persist, then render."""

    def __init__(
        self,
        client: ExternalSourceClient,
        reconciler: Reconciler,
        store: CountryStore,
        renderer: SummaryRenderer,
        top_n: int = 5,
    ):
        self.client = client
        self.reconciler = reconciler
        self.store = store
        self.renderer = renderer
        self.top_n = top_n

    async def refresh(self) -> RefreshOutcome:
        """
        Fetch both sources and refresh every country.

        Phase 1 (persist) is all-or-nothing and its errors propagate.
        Phase 2 (render) is best-effort: a failure is logged and reported
        on the outcome, the committed refresh stands.

        Returns:
            RefreshOutcome with totals and the render status

        Raises:
            ExternalSourceUnavailable: If either source failed; nothing is written
        """
        logger.info("Starting refresh")
        countries_result, rates_result = await self.client.fetch_all()

        for result in (countries_result, rates_result):
            if not result.success:
                raise ExternalSourceUnavailable(result.error)

        # Phase 1: transactional
        existing = await self.store.existing_names()
        ops = self.reconciler.reconcile(countries_result.data, rates_result.data, existing)
        logger.info(f"Processing {len(ops)} countries")
        summary = await self.store.apply_refresh(ops)

        # Phase 2: best-effort
        image_rendered, render_error = True, None
        try:
            top_countries = await self.store.get_top_by_estimated_value(self.top_n)
            await asyncio.to_thread(
                self.renderer.render,
                total_countries=summary.total_countries,
                top_countries=top_countries,
                last_refreshed_at=summary.last_refreshed_at,
            )
        except Exception as e:
            logger.exception("Failed to generate summary image")
            image_rendered, render_error = False, str(e)

        return RefreshOutcome(
            total_countries=summary.total_countries,
            last_refreshed_at=summary.last_refreshed_at,
            inserted=summary.inserted,
            updated=summary.updated,
            image_rendered=image_rendered,
            render_error=render_error,
        )

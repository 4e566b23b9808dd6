import asyncio
import logging

from country_sync.errors import ExternalSourceUnavailable
from country_sync.services import RefreshService

logger = logging.getLogger(__name__)


async def run_periodic_refresh(service: RefreshService, interval_seconds: float) -> None:
    """Refresh every `interval_seconds` until cancelled; failures never stop the loop."""
    logger.info(f"Periodic refresh enabled every {interval_seconds}s")
    while True:
        try:
            outcome = await service.refresh()
            logger.info(f"Scheduled refresh done: {outcome.total_countries} countries")
        except ExternalSourceUnavailable as e:
            logger.warning(f"Scheduled refresh skipped: {e.details}")
        except Exception:
            logger.exception("Scheduled refresh failed")
        await asyncio.sleep(interval_seconds)

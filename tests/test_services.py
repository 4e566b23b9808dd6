import asyncio
import threading

import pytest

from country_sync.errors import ExternalSourceUnavailable
from country_sync.reconciliation import Reconciler, fixed_multiplier
from country_sync.services import RefreshService

from conftest import count_rows


class BrokenRenderer:
    def render(self, **kwargs):
        raise OSError("disk full")


def make_service(sources, store, renderer):
    return RefreshService(
        client=sources.client(),
        reconciler=Reconciler(fixed_multiplier(1500.0)),
        store=store,
        renderer=renderer,
        top_n=5,
    )


async def test_refresh_persists_and_renders(sources, store, renderer):
    outcome = await make_service(sources, store, renderer).refresh()

    assert outcome.total_countries == 4
    assert outcome.inserted == 4
    assert outcome.image_rendered
    assert outcome.render_error is None
    assert renderer.exists()
    assert (await store.get_metadata()).total_countries == 4


async def test_countries_failure_leaves_store_untouched(sources, store, renderer):
    service = make_service(sources, store, renderer)
    await service.refresh()
    before = await store.get_metadata()

    sources.countries_status = 503
    with pytest.raises(ExternalSourceUnavailable) as excinfo:
        await service.refresh()

    assert "RestCountries" in excinfo.value.details
    after = await store.get_metadata()
    assert after.total_countries == before.total_countries
    assert after.last_refreshed_at == before.last_refreshed_at


async def test_rates_failure_writes_nothing(sources, store, renderer):
    sources.rates = {"no": "rates"}

    with pytest.raises(ExternalSourceUnavailable):
        await make_service(sources, store, renderer).refresh()

    assert await count_rows(store) == 0
    assert not renderer.exists()


async def test_render_failure_does_not_fail_refresh(sources, store):
    outcome = await make_service(sources, store, BrokenRenderer()).refresh()

    assert outcome.total_countries == 4
    assert not outcome.image_rendered
    assert outcome.render_error == "disk full"
    assert await count_rows(store) == 4


async def test_overlapping_refreshes_both_succeed(sources, store, renderer):
    first = make_service(sources, store, renderer)
    second = make_service(sources, store, renderer)

    outcomes = await asyncio.gather(first.refresh(), second.refresh())

    assert [o.total_countries for o in outcomes] == [4, 4]
    assert sorted(o.inserted for o in outcomes) == [0, 4]
    assert await count_rows(store) == 4
    metadata = await store.get_metadata()
    assert metadata.last_refreshed_at == max(o.last_refreshed_at for o in outcomes)


class ThreadRecordingRenderer:
    def __init__(self):
        self.thread_id = None

    def render(self, **kwargs):
        self.thread_id = threading.get_ident()


async def test_render_runs_off_the_event_loop(sources, store):
    renderer = ThreadRecordingRenderer()

    outcome = await make_service(sources, store, renderer).refresh()

    assert outcome.image_rendered
    assert renderer.thread_id is not None
    assert renderer.thread_id != threading.get_ident()

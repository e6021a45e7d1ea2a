"""Tests for the SQLite job/history store."""

from __future__ import annotations

import asyncio

import pytest

from airsweep.exceptions import StoreError
from airsweep.models import HistoryRecord
from airsweep.storage.base import ChannelStatus, HistoryStore
from airsweep.storage.sqlite_store import SqliteStore


def _job_fields(**overrides):
    fields = dict(
        url_template="https://x.test/s?q=1",
        scrape_url="https://s.test/scrape",
        amenities=["4", "7"],
        adults=2,
        min_bedrooms=1,
        days=3,
        nights=2,
    )
    fields.update(overrides)
    return fields


def _record(job_id: int, room: str) -> HistoryRecord:
    return HistoryRecord(
        job=job_id,
        room=room,
        price=99.0,
        position=1,
        available=True,
        checkin="2024-06-01",
        checkout="2024-06-03",
        source_url="https://x.test/s?q=1",
    )


def test_store_satisfies_protocol(store):
    assert isinstance(store, HistoryStore)


def test_create_and_get_job(store):
    job = store.create_job(_job_fields(price_max=300))
    assert job.id > 0
    assert job.amenities == ("4", "7")
    assert job.price_max == 300
    assert job.qtd == 0
    assert store.get_job(job.id) == job
    assert store.get_job(9999) is None


def test_select_latest_job(store):
    store.create_job(_job_fields(url_template="https://x.test/first"))
    second = store.create_job(_job_fields(url_template="https://x.test/second"))
    latest = asyncio.run(store.select_latest_job())
    assert latest is not None
    assert latest.id == second.id


def test_select_latest_job_empty(store):
    assert asyncio.run(store.select_latest_job()) is None


def test_history_scoped_by_job(store):
    a = store.create_job(_job_fields())
    b = store.create_job(_job_fields())

    async def _go():
        await store.insert_history([_record(a.id, "r1"), _record(a.id, "r2")])
        await store.insert_history([_record(b.id, "r3")])
        await store.delete_history(a.id)
        return await store.count_history(a.id), await store.count_history(b.id)

    assert asyncio.run(_go()) == (0, 1)
    assert store.list_history(b.id)[0]["room_id"] == "r3"


def test_update_job_qtd(store):
    job = store.create_job(_job_fields())
    asyncio.run(store.update_job(job.id, {"qtd": 42}))
    assert store.get_job(job.id).qtd == 42


def test_update_job_rejects_unknown_field(store):
    job = store.create_job(_job_fields())
    with pytest.raises(StoreError) as info:
        asyncio.run(store.update_job(job.id, {"id; DROP TABLE jobs": 1}))
    assert info.value.operation == "update_job"


def test_operations_after_close_raise_store_error(tmp_path):
    s = SqliteStore(tmp_path / "closed.db")
    s.close()
    with pytest.raises(StoreError) as info:
        asyncio.run(s.count_history(1))
    assert info.value.operation == "count_history"


def test_creation_events_delivered_to_channel(store):
    async def _go():
        jobs, statuses = [], []
        channel = store.subscribe_jobs(jobs.append, lambda s, e: statuses.append(s))
        await asyncio.sleep(0)
        created = store.create_job(_job_fields())
        await asyncio.sleep(0)
        channel.unsubscribe()
        store.create_job(_job_fields())
        await asyncio.sleep(0)
        return created, jobs, statuses

    created, jobs, statuses = asyncio.run(_go())
    assert statuses == [ChannelStatus.SUBSCRIBED]
    assert [j.id for j in jobs] == [created.id]


def test_close_reports_channel_error(tmp_path):
    s = SqliteStore(tmp_path / "events.db")

    async def _go():
        statuses = []
        s.subscribe_jobs(lambda j: None, lambda st, e: statuses.append(st))
        await asyncio.sleep(0)
        s.close()
        await asyncio.sleep(0)
        s.subscribe_jobs(lambda j: None, lambda st, e: statuses.append(st))
        await asyncio.sleep(0)
        return statuses

    assert asyncio.run(_go()) == [
        ChannelStatus.SUBSCRIBED,
        ChannelStatus.CHANNEL_ERROR,
        ChannelStatus.CHANNEL_ERROR,
    ]


def test_job_row_maps_to_job_fields(store):
    job = store.create_job(_job_fields(price_max=300))
    loaded = store.get_job(job.id)
    assert loaded.url_template == "https://x.test/s?q=1"
    assert loaded.scrape_url == "https://s.test/scrape"
    assert (loaded.adults, loaded.min_bedrooms) == (2, 1)
    assert (loaded.days, loaded.nights) == (3, 2)

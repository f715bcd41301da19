import asyncio
from contextlib import asynccontextmanager

import pytest

from app.config import settings
from app.db import helpers
from app.features.dialer_capacity.repository.lock_repository import CapacityLockRepository


def _fake_table(row_count: int, calls: list):
    rows = [{"id": i} for i in range(row_count)]

    async def fake_fetch_all(query, params=()):
        calls.append(params)
        limit, offset = params[-2], params[-1]
        return rows[offset : offset + limit]

    return fake_fetch_all


@pytest.mark.asyncio
async def test_paginated_read_collects_every_page(monkeypatch):
    calls = []
    monkeypatch.setattr(helpers, "fetch_all", _fake_table(2500, calls))

    rows = await helpers.fetch_all_paginated(
        "SELECT id FROM contacts WHERE user_id = %s ORDER BY id", ("user-123",), page_size=1000
    )

    assert len(rows) == 2500
    assert rows[-1] == {"id": 2499}
    assert calls == [("user-123", 1000, 0), ("user-123", 1000, 1000), ("user-123", 1000, 2000)]


@pytest.mark.asyncio
async def test_exact_multiple_reads_one_empty_page(monkeypatch):
    calls = []
    monkeypatch.setattr(helpers, "fetch_all", _fake_table(4, calls))

    rows = await helpers.fetch_all_paginated("SELECT id FROM t ORDER BY id", page_size=2)

    assert len(rows) == 4
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_page_size_must_be_positive():
    with pytest.raises(ValueError):
        await helpers.fetch_all_paginated("SELECT 1", page_size=0)


def test_chunked_splits_into_bounded_slices():
    assert list(helpers.chunked(list(range(7)), 3)) == [[0, 1, 2], [3, 4, 5], [6]]
    assert list(helpers.chunked([], 50)) == []


def test_chunked_rejects_zero_size():
    with pytest.raises(ValueError):
        list(helpers.chunked([1], 0))


class _FakeCursor:
    def __init__(self, row):
        self._row = row

    async def fetchone(self):
        return self._row


class _FakeLockServer:
    """Session advisory locks keyed by connection, plus pool checkout accounting."""

    def __init__(self):
        self.holders: dict[str, object] = {}
        self.checked_out = 0
        self.max_checked_out = 0
        self.attempts = 0

    async def get_db_connection(self):
        return self._connection()

    @asynccontextmanager
    async def _connection(self):
        self.checked_out += 1
        self.max_checked_out = max(self.max_checked_out, self.checked_out)
        try:
            yield _FakeLockConnection(self)
        finally:
            self.checked_out -= 1


class _FakeLockConnection:
    def __init__(self, server: _FakeLockServer):
        self.server = server

    async def execute(self, query, params=()):
        key = params[0]
        holders = self.server.holders
        if "pg_try_advisory_lock" in query:
            self.server.attempts += 1
            if holders.get(key) in (None, self):
                holders[key] = self
                return _FakeCursor({"locked": True})
            return _FakeCursor({"locked": False})
        if holders.get(key) is self:
            del holders[key]
        return _FakeCursor({"pg_advisory_unlock": True})


@pytest.fixture
def lock_server(monkeypatch):
    server = _FakeLockServer()
    monkeypatch.setattr(helpers, "get_db_connection", server.get_db_connection)
    return server


@pytest.mark.asyncio
async def test_concurrent_passes_for_one_key_use_one_connection(lock_server):
    inside = []

    async def pass_(name):
        async with helpers.advisory_lock("dialer_capacity:u1", timeout=5, poll_interval=0.01):
            inside.append(name)
            assert len(lock_server.holders) == 1
            await asyncio.sleep(0.01)

    await asyncio.gather(*(pass_(i) for i in range(8)))

    assert sorted(inside) == list(range(8))
    assert lock_server.max_checked_out == 1
    assert lock_server.checked_out == 0
    assert lock_server.holders == {}
    assert helpers._local_locks == {}


@pytest.mark.asyncio
async def test_lock_held_elsewhere_times_out_without_holding_a_connection(lock_server):
    lock_server.holders["dialer_capacity:u1"] = object()

    with pytest.raises(helpers.DatabaseError) as exc_info:
        async with helpers.advisory_lock("dialer_capacity:u1", timeout=0.05, poll_interval=0.01):
            pytest.fail("entered a lock held by another session")

    assert exc_info.value.operation == "advisory_lock"
    assert exc_info.value.recoverable is True
    assert lock_server.attempts >= 2
    assert lock_server.checked_out == 0


@pytest.mark.asyncio
async def test_lock_released_elsewhere_is_acquired_on_a_later_attempt(lock_server):
    lock_server.holders["dialer_capacity:u1"] = other = object()
    observed = []

    async def release_later():
        await asyncio.sleep(0.03)
        observed.append(lock_server.checked_out)
        del lock_server.holders["dialer_capacity:u1"]

    async def take():
        async with helpers.advisory_lock("dialer_capacity:u1", timeout=2, poll_interval=0.01):
            assert lock_server.holders["dialer_capacity:u1"] is not other

    await asyncio.gather(release_later(), take())

    # Waiting between attempts keeps nothing checked out
    assert observed == [0]
    assert lock_server.holders == {}


@pytest.mark.asyncio
async def test_different_keys_are_held_together(lock_server):
    async with helpers.advisory_lock("dialer_capacity:u1", timeout=1):
        async with helpers.advisory_lock("dialer_capacity:u2", timeout=1):
            assert set(lock_server.holders) == {"dialer_capacity:u1", "dialer_capacity:u2"}
            assert lock_server.checked_out == 2

    assert lock_server.checked_out == 0


@pytest.mark.asyncio
async def test_lock_is_released_when_the_block_raises(lock_server):
    with pytest.raises(RuntimeError):
        async with helpers.advisory_lock("dialer_capacity:u1", timeout=1):
            raise RuntimeError("boom")

    assert lock_server.holders == {}
    assert lock_server.checked_out == 0
    assert helpers._local_locks == {}


@pytest.mark.asyncio
async def test_user_lock_uses_configured_wait(lock_server, monkeypatch):
    monkeypatch.setattr(settings, "DIALER_LOCK_TIMEOUT_SECONDS", 0.05)
    monkeypatch.setattr(settings, "DIALER_LOCK_POLL_INTERVAL_SECONDS", 0.01)
    lock_server.holders[CapacityLockRepository.lock_key("user-123")] = object()

    with pytest.raises(helpers.DatabaseError):
        async with CapacityLockRepository.user_lock("user-123"):
            pytest.fail("entered a lock held by another session")

    assert lock_server.checked_out == 0

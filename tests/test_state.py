"""Tests for BotState: RW lock, place info cache, catalog reload and vote board."""
import asyncio

import pytest

from app.state import MAX_SEARCH_RESULTS, BotState, RWLock, VoteRecord
from rivnefish.models import Place
from tests.fakes import CATALOG, make_info


class CountingFetcher:
    def __init__(self, results=None, delay: float = 0.0):
        self.results = results or {}
        self.delay = delay
        self.calls: list[int] = []

    async def __call__(self, place_id):
        self.calls.append(place_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.results.get(place_id)


# ---------------------------------------------------------------------------
# RWLock
# ---------------------------------------------------------------------------


class TestRWLock:
    @pytest.mark.asyncio
    async def test_readers_share_the_lock(self):
        lock = RWLock()
        both_inside = asyncio.Event()

        async def reader():
            async with lock.read():
                if lock.readers == 2:
                    both_inside.set()
                await asyncio.wait_for(both_inside.wait(), timeout=1)

        await asyncio.gather(reader(), reader())
        assert lock.readers == 0

    @pytest.mark.asyncio
    async def test_writer_waits_for_readers(self):
        lock = RWLock()
        order = []
        release_reader = asyncio.Event()

        async def reader():
            async with lock.read():
                order.append("read-start")
                await release_reader.wait()
                order.append("read-end")

        async def writer():
            async with lock.write():
                order.append("write")

        reader_task = asyncio.create_task(reader())
        await asyncio.sleep(0)
        writer_task = asyncio.create_task(writer())
        await asyncio.sleep(0.01)
        assert order == ["read-start"]

        release_reader.set()
        await asyncio.gather(reader_task, writer_task)
        assert order == ["read-start", "read-end", "write"]

    @pytest.mark.asyncio
    async def test_waiting_writer_blocks_new_readers(self):
        lock = RWLock()
        order = []
        release_first = asyncio.Event()

        async def first_reader():
            async with lock.read():
                await release_first.wait()

        async def writer():
            async with lock.write():
                order.append("write")

        async def late_reader():
            async with lock.read():
                order.append("late-read")

        tasks = [asyncio.create_task(first_reader())]
        await asyncio.sleep(0)
        tasks.append(asyncio.create_task(writer()))
        await asyncio.sleep(0)
        tasks.append(asyncio.create_task(late_reader()))
        await asyncio.sleep(0.01)
        assert order == []

        release_first.set()
        await asyncio.gather(*tasks)
        assert order == ["write", "late-read"]

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        lock = RWLock()
        with pytest.raises(RuntimeError):
            async with lock.write():
                raise RuntimeError("boom")
        assert not lock.locked_for_write
        async with lock.read():
            assert lock.readers == 1

    @pytest.mark.asyncio
    async def test_reader_cancelled_while_releasing_frees_the_lock(self):
        lock = RWLock()
        leave = asyncio.Event()

        async def reader():
            async with lock.read():
                await leave.wait()

        task = asyncio.create_task(reader())
        await asyncio.sleep(0)
        assert lock.readers == 1

        # Hold the condition so the release has to wait for it, then cancel.
        await lock._cond.acquire()
        leave.set()
        for _ in range(3):
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        lock._cond.release()

        assert lock.readers == 0

        async def take_write():
            async with lock.write():
                return lock.locked_for_write

        assert await asyncio.wait_for(take_write(), timeout=1)

    @pytest.mark.asyncio
    async def test_writer_cancelled_while_releasing_frees_the_lock(self):
        lock = RWLock()
        leave = asyncio.Event()

        async def writer():
            async with lock.write():
                await leave.wait()

        task = asyncio.create_task(writer())
        await asyncio.sleep(0)
        assert lock.locked_for_write

        await lock._cond.acquire()
        leave.set()
        for _ in range(3):
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        lock._cond.release()

        assert not lock.locked_for_write

        async def take_read():
            async with lock.read():
                return lock.readers

        assert await asyncio.wait_for(take_read(), timeout=1) == 1


# ---------------------------------------------------------------------------
# Place info cache
# ---------------------------------------------------------------------------


class TestPlaceInfoCache:
    @pytest.mark.asyncio
    async def test_second_lookup_served_from_cache(self):
        state = BotState()
        fetch = CountingFetcher({1: make_info(1)})

        first = await state.get_info_for(1, fetch)
        second = await state.get_info_for(1, fetch)

        assert fetch.calls == [1]
        assert first == second == make_info(1)

    @pytest.mark.asyncio
    async def test_failed_fetch_is_cached_as_absent(self):
        state = BotState()
        fetch = CountingFetcher({})

        assert await state.get_info_for(7, fetch) is None
        assert await state.get_info_for(7, fetch) is None
        assert fetch.calls == [7]
        assert await state.cache_size() == 1

    @pytest.mark.asyncio
    async def test_concurrent_misses_may_fetch_twice(self):
        state = BotState()
        fetch = CountingFetcher({1: make_info(1)}, delay=0.01)

        results = await asyncio.gather(
            state.get_info_for(1, fetch),
            state.get_info_for(1, fetch),
        )

        # No single-flight: both callers fetch and both get the value.
        assert fetch.calls == [1, 1]
        assert results == [make_info(1), make_info(1)]
        assert await state.cache_size() == 1

    @pytest.mark.asyncio
    async def test_fetch_runs_outside_the_lock(self):
        state = BotState()
        seen = {}

        async def fetch(place_id):
            seen["readers"] = state.lock.readers
            seen["writer"] = state.lock.locked_for_write
            return make_info(place_id)

        await state.get_info_for(1, fetch)
        assert seen == {"readers": 0, "writer": False}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class TestCatalog:
    @pytest.mark.asyncio
    async def test_reload_clears_every_cache_entry(self):
        state = BotState()
        fetch = CountingFetcher({i: make_info(i) for i in range(50)})
        for i in range(50):
            await state.get_info_for(i, fetch)
        assert await state.cache_size() == 50

        await state.reload([Place(100, "New Lake")], [])

        assert await state.cache_size() == 0
        assert await state.matching_ids("new") == [100]

    @pytest.mark.asyncio
    async def test_lookup_after_reload_fetches_again(self):
        state = BotState()
        fetch = CountingFetcher({1: make_info(1)})
        await state.get_info_for(1, fetch)

        await state.reload(CATALOG, [])
        await state.get_info_for(1, fetch)

        assert fetch.calls == [1, 1]

    @pytest.mark.asyncio
    async def test_substring_match_in_catalog_order(self):
        state = BotState()
        await state.reload(CATALOG, [])
        assert await state.matching_ids("dni") == [1, 2]
        assert await state.matching_ids("DNI") == [1, 2]
        assert await state.matching_ids("river") == [3]
        assert await state.matching_ids("sea") == []

    @pytest.mark.asyncio
    async def test_matches_are_truncated(self):
        state = BotState()
        await state.reload([Place(i, f"Lake {i}") for i in range(25)], [])
        ids = await state.matching_ids("lake")
        assert ids == list(range(MAX_SEARCH_RESULTS))

    @pytest.mark.asyncio
    async def test_empty_query_returns_top_ids_in_order(self):
        state = BotState()
        await state.reload(CATALOG, [])
        await state.set_top([3, 1, 42])
        assert await state.matching_ids("") == [3, 1, 42]

    @pytest.mark.asyncio
    async def test_whitespace_is_part_of_the_query(self):
        state = BotState()
        await state.reload([Place(1, "Dnister Lake"), Place(2, "Big Lake")], [])
        await state.set_top([2])
        assert await state.matching_ids(" dni") == []
        assert await state.matching_ids(" lake") == [1, 2]
        assert await state.matching_ids(" ") == [1, 2]

    @pytest.mark.asyncio
    async def test_set_top_replaces_previous_list(self):
        state = BotState()
        await state.set_top([1, 2])
        assert await state.set_top([5]) == 1
        assert await state.matching_ids("") == [5]


# ---------------------------------------------------------------------------
# Vote board
# ---------------------------------------------------------------------------


class TestVoteBoard:
    @pytest.mark.asyncio
    async def test_toggle_unknown_message_is_not_found(self):
        state = BotState()
        assert await state.toggle_vote(42, 7) is None

    @pytest.mark.asyncio
    async def test_toggle_casts_then_undoes(self):
        state = BotState()
        await state.register_report(99, "https://rivnefish.com/reports/1")

        first = await state.toggle_vote(99, 7)
        second = await state.toggle_vote(99, 7)

        assert first.voters == {7}
        assert second.voters == set()
        assert second.target_url == "https://rivnefish.com/reports/1"

    @pytest.mark.asyncio
    async def test_toggle_twice_restores_voters(self):
        state = BotState()
        await state.register_report(99, "url")
        await state.toggle_vote(99, 1)
        await state.toggle_vote(99, 2)
        before = (await state.get_votes(99)).voters

        await state.toggle_vote(99, 3)
        after = await state.toggle_vote(99, 3)

        assert after.voters == before == {1, 2}

    @pytest.mark.asyncio
    async def test_register_keeps_existing_votes(self):
        state = BotState()
        await state.register_report(99, "url")
        await state.toggle_vote(99, 7)

        record = await state.register_report(99, "other-url")

        assert record.voters == {7}
        assert record.target_url == "url"

    @pytest.mark.asyncio
    async def test_returned_record_is_a_copy(self):
        state = BotState()
        await state.register_report(99, "url")
        record = await state.toggle_vote(99, 7)
        record.voters.add(8)
        assert (await state.get_votes(99)).voters == {7}

    @pytest.mark.asyncio
    async def test_concurrent_toggles_by_different_users(self):
        state = BotState()
        await state.register_report(99, "url")
        await asyncio.gather(*(state.toggle_vote(99, uid) for uid in range(20)))
        assert (await state.get_votes(99)).count == 20

    @pytest.mark.asyncio
    async def test_load_votes_replaces_board(self):
        state = BotState()
        await state.register_report(1, "old")

        await state.load_votes({2: VoteRecord("new", {5})})

        assert await state.get_votes(1) is None
        snapshot = await state.snapshot_votes()
        assert snapshot == {2: VoteRecord("new", {5})}

import asyncio

import pytest

from roadguide.errors import NoResult
from roadguide.ranker import CandidateRanker

from conftest import P0


@pytest.fixture
def snapshots():
    return []


@pytest.fixture
def ranker(provider, config, sleep, snapshots):
    return CandidateRanker(provider, config, on_change=snapshots.append, sleep=sleep)


def test_rapid_typing_runs_one_lookup_for_the_last_query(ranker, provider, sleep):
    async def scenario():
        ranker.origin = P0
        ranker.update_query("A")
        ranker.update_query("B")
        await ranker.wait_idle()

    asyncio.run(scenario())

    assert [call for call in provider.calls if call[0] == "search"] == [("search", "B")]
    assert sleep.durations == pytest.approx([0.3, 0.0, 0.2, 0.4, 0.6, 0.8])


def test_only_first_five_candidates_are_enriched(ranker, provider):
    async def scenario():
        ranker.origin = P0
        ranker.update_query("Main")
        await ranker.wait_idle()

    asyncio.run(scenario())

    candidates = ranker.candidates
    assert len(candidates) == 8
    assert provider.count("resolve") == 5
    assert provider.count("route") == 5
    for candidate in candidates[:5]:
        assert candidate.is_pending is False
        assert candidate.coordinate is not None
        assert candidate.distance is not None
        assert candidate.travel_time == 60.0
    for candidate in candidates[5:]:
        assert candidate.is_pending is False
        assert candidate.distance is None


def test_candidates_are_pending_until_enriched(ranker, snapshots):
    async def scenario():
        ranker.origin = P0
        ranker.update_query("Main")
        await ranker.wait_idle()

    asyncio.run(scenario())

    first = snapshots[0]
    assert [c.title for c in first] == [f"Main {i}" for i in range(8)]
    assert [c.is_pending for c in first] == [True] * 5 + [False] * 3


def test_without_origin_candidates_are_not_enriched(ranker, provider):
    async def scenario():
        ranker.update_query("Main")
        await ranker.wait_idle()

    asyncio.run(scenario())

    assert len(ranker.candidates) == 8
    assert all(not c.is_pending for c in ranker.candidates)
    assert provider.count("resolve") == 0


def test_one_failed_candidate_does_not_affect_the_others(ranker, provider):
    provider.fail_resolve = {"Main 1"}

    async def scenario():
        ranker.origin = P0
        ranker.update_query("Main")
        await ranker.wait_idle()

    asyncio.run(scenario())

    candidates = ranker.candidates
    assert candidates[1].is_pending is False
    assert candidates[1].distance is None
    for i in (0, 2, 3, 4):
        assert candidates[i].distance is not None


def test_superseded_query_never_reaches_the_list(ranker, snapshots):
    async def scenario():
        ranker.origin = P0
        ranker.update_query("Old")
        await asyncio.sleep(0)  # let the first debounce start
        ranker.update_query("New")
        await ranker.wait_idle()

    asyncio.run(scenario())

    for snapshot in snapshots:
        assert all(c.title.startswith("New") for c in snapshot)
    assert ranker.candidates[0].title == "New 0"


@pytest.mark.parametrize("call", ["resolve", "route"])
def test_query_replaced_during_enrichment_is_not_merged(ranker, provider, snapshots, call):
    async def scenario():
        ranker.origin = P0
        # The user keeps typing while the first candidate is being measured
        provider.interrupts[call] = lambda: ranker.update_query("New")
        ranker.update_query("Old")
        await ranker.wait_idle()
        await ranker.wait_idle()

    asyncio.run(scenario())

    old_resolves = [c for c in provider.calls if c[0] == "resolve" and c[1].startswith("Old")]
    assert len(old_resolves) == 1
    for snapshot in snapshots:
        for candidate in snapshot:
            if candidate.title.startswith("Old"):
                assert candidate.coordinate is None
                assert candidate.distance is None

    candidates = ranker.candidates
    assert [c.title for c in candidates] == [f"New {i}" for i in range(8)]
    assert all(c.distance is not None for c in candidates[:5])


def test_empty_query_clears_without_lookup(ranker, provider, snapshots):
    async def scenario():
        ranker.update_query("Main")
        await ranker.wait_idle()
        ranker.update_query("   ")

    asyncio.run(scenario())

    assert ranker.candidates == []
    assert snapshots[-1] == []
    assert provider.count("search") == 1


def test_completion_failure_yields_empty_list(ranker, provider):
    provider.search_error = NoResult()

    async def scenario():
        ranker.update_query("Main")
        await ranker.wait_idle()

    asyncio.run(scenario())
    assert ranker.candidates == []

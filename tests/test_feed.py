"""Unit tests for feed strategies (random, circular, constant)."""

from __future__ import annotations

import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from loadfeed.exceptions import ConfigurationError, DataSourceNotFoundError, EmptyResultError
from loadfeed.feed import CircularFeed, ConstantFeed, RandomFeed, build_feed, create_feed
from loadfeed.models import DataSourceConfig, FeedStrategy, InvocationContext, Record, SourceKind


def ctx(worker_id: int = 0, invocation: int = 1) -> InvocationContext:
    return InvocationContext(worker_id=worker_id, invocation_number=invocation)


@pytest.mark.parametrize("strategy", list(FeedStrategy))
def test_empty_record_set_rejected(strategy: FeedStrategy) -> None:
    with pytest.raises(EmptyResultError):
        create_feed([], strategy)


def test_create_feed_parses_strategy_names(records: list[Record]) -> None:
    assert isinstance(create_feed(records, "Random"), RandomFeed)
    assert isinstance(create_feed(records, " circular "), CircularFeed)
    assert isinstance(create_feed(records, FeedStrategy.CONSTANT), ConstantFeed)


def test_create_feed_unknown_strategy(records: list[Record]) -> None:
    with pytest.raises(ConfigurationError, match="Unknown feed strategy 'sequential'"):
        create_feed(records, "sequential")


def test_circular_sequential_order_wraps(records: list[Record]) -> None:
    feed = CircularFeed(records)
    got = [feed.get_next(ctx()) for _ in range(7)]
    assert got == [records[i % 3] for i in range(7)]
    assert feed.position == 7


def test_circular_concurrent_advances_exactly(records: list[Record]) -> None:
    feed = CircularFeed(records)
    calls = 3000

    with ThreadPoolExecutor(max_workers=16) as pool:
        got = list(pool.map(lambda i: feed.get_next(ctx(i % 16, i)), range(calls)))

    assert feed.position == calls
    counts = Counter(r["postid"] for r in got)
    # 3000 steps over 3 records visit each record exactly 1000 times
    assert counts == {"1": 1000, "2": 1000, "3": 1000}


def test_constant_same_worker_same_record(records: list[Record]) -> None:
    feed = ConstantFeed(records)
    first = feed.get_next(ctx(worker_id=1, invocation=1))
    for i in range(2, 20):
        assert feed.get_next(ctx(worker_id=1, invocation=i)) is first


def test_constant_distinct_workers_within_record_count(records: list[Record]) -> None:
    feed = ConstantFeed(records)
    assigned = [feed.get_next(ctx(worker_id=w)) for w in range(len(records))]
    assert len({id(r) for r in assigned}) == len(records)
    assert feed.assigned_workers() == 3


def test_constant_more_workers_than_records_wraps(records: list[Record]) -> None:
    feed = ConstantFeed(records)
    assert feed.get_next(ctx(worker_id=4)) is records[1]
    assert feed.get_next(ctx(worker_id=1)) is records[1]


def test_constant_concurrent_first_access_single_assignment(records: list[Record]) -> None:
    feed = ConstantFeed(records)
    barrier = threading.Barrier(8)

    def first_call(_: int) -> Record:
        barrier.wait()
        return feed.get_next(ctx(worker_id=5))

    with ThreadPoolExecutor(max_workers=8) as pool:
        got = list(pool.map(first_call, range(8)))
    assert all(r is got[0] for r in got)
    assert feed.assigned_workers() == 1


def test_random_returns_records_from_set(records: list[Record]) -> None:
    feed = RandomFeed(records)
    seen = {id(feed.get_next(ctx())) for _ in range(300)}
    assert seen <= {id(r) for r in records}
    # 300 uniform draws over 3 records miss one with negligible probability
    assert len(seen) == 3


def test_random_seeded_is_reproducible(records: list[Record]) -> None:
    a = RandomFeed(records, seed=42)
    b = RandomFeed(records, seed=42)
    assert [a.get_next(ctx()) for _ in range(50)] == [b.get_next(ctx()) for _ in range(50)]


def test_random_concurrent_threads(records: list[Record]) -> None:
    feed = RandomFeed(records)
    with ThreadPoolExecutor(max_workers=8) as pool:
        got = list(pool.map(lambda i: feed.get_next(ctx(i)), range(800)))
    assert len(got) == 800
    assert all(r in records for r in got)


def test_build_feed_from_csv(posts_csv: Path) -> None:
    feed = build_feed(DataSourceConfig(kind=SourceKind.CSV, file_path=str(posts_csv), feed_strategy=FeedStrategy.CIRCULAR))
    assert isinstance(feed, CircularFeed)
    assert len(feed) == 3
    assert feed.get_next(ctx())["postid"] == "1"


def test_build_feed_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DataSourceNotFoundError):
        build_feed(DataSourceConfig(kind=SourceKind.CSV, file_path=str(tmp_path / "nope.csv")))

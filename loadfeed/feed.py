"""Feed strategies: hand out one Record per invocation under concurrent access.

One Feed per scenario, built once after its record set loads. get_next() is the
only shared mutable state touched per invocation; every strategy is safe to call
from any number of threads or tasks.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Sequence

from .datasource import load_records
from .exceptions import ConfigurationError, EmptyResultError
from .logging_config import get_logger
from .models import DataSourceConfig, FeedStrategy, InvocationContext, Record

logger = get_logger("feed")


class Feed:
    """Base feed over a non-empty, read-only record set."""

    strategy: FeedStrategy

    def __init__(self, records: Sequence[Record]) -> None:
        if not records:
            raise EmptyResultError(
                "Cannot build a feed over an empty record set",
                context={"strategy": self.strategy.value},
            )
        self._records: tuple[Record, ...] = tuple(records)

    @property
    def records(self) -> tuple[Record, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def get_next(self, context: InvocationContext) -> Record:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(records={len(self._records)})"


class RandomFeed(Feed):
    """Uniform random pick on every call.

    Each thread draws from its own generator, so callers never queue behind a shared lock.
    With a seed, thread N's generator is seeded with (seed, N) for reproducible runs.
    """

    strategy = FeedStrategy.RANDOM

    def __init__(self, records: Sequence[Record], seed: int | None = None) -> None:
        super().__init__(records)
        self._seed = seed
        self._local = threading.local()
        self._thread_count = 0
        self._thread_count_lock = threading.Lock()

    def _generator(self) -> random.Random:
        rng = getattr(self._local, "rng", None)
        if rng is None:
            if self._seed is None:
                rng = random.Random()
            else:
                with self._thread_count_lock:
                    stripe = self._thread_count
                    self._thread_count += 1
                rng = random.Random(f"{self._seed}:{stripe}")
            self._local.rng = rng
        return rng

    def get_next(self, context: InvocationContext) -> Record:
        records = self._records
        return records[self._generator().randrange(len(records))]


class CircularFeed(Feed):
    """Records in load order, wrapping after the last.

    N calls advance the shared counter by exactly N; which caller sees which index under a race
    is unspecified.
    """

    strategy = FeedStrategy.CIRCULAR

    def __init__(self, records: Sequence[Record]) -> None:
        super().__init__(records)
        self._counter = 0
        self._lock = threading.Lock()

    @property
    def position(self) -> int:
        """Total number of records handed out so far."""
        with self._lock:
            return self._counter

    def get_next(self, context: InvocationContext) -> Record:
        with self._lock:
            step = self._counter
            self._counter = step + 1
        return self._records[step % len(self._records)]


class ConstantFeed(Feed):
    """One fixed record per worker for the feed's lifetime.

    Worker w gets record w mod N, claimed on its first call. More workers than records
    wrap, so several workers may share a record.
    """

    strategy = FeedStrategy.CONSTANT

    def __init__(self, records: Sequence[Record]) -> None:
        super().__init__(records)
        self._assignments: dict[int, Record] = {}
        self._lock = threading.Lock()

    def get_next(self, context: InvocationContext) -> Record:
        worker_id = context.worker_id
        # Lock-free fast path: dict reads are atomic and entries are never replaced
        record = self._assignments.get(worker_id)
        if record is not None:
            return record
        with self._lock:
            return self._assignments.setdefault(worker_id, self._records[worker_id % len(self._records)])

    def assigned_workers(self) -> int:
        with self._lock:
            return len(self._assignments)


_FEEDS: dict[FeedStrategy, type[Feed]] = {
    FeedStrategy.RANDOM: RandomFeed,
    FeedStrategy.CIRCULAR: CircularFeed,
    FeedStrategy.CONSTANT: ConstantFeed,
}


def create_feed(
    records: Sequence[Record],
    strategy: FeedStrategy | str,
    seed: int | None = None,
) -> Feed:
    """Build the feed for strategy over records.

    Raises:
        ConfigurationError: strategy is not recognized
        EmptyResultError: records is empty
    """
    try:
        strategy = FeedStrategy(strategy.strip().lower() if isinstance(strategy, str) else strategy)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown feed strategy '{strategy}'. Supported strategies: {', '.join(s.value for s in FeedStrategy)}",
            original_error=e,
        ) from e
    if strategy == FeedStrategy.RANDOM:
        return RandomFeed(records, seed=seed)
    return _FEEDS[strategy](records)


def build_feed(source: DataSourceConfig, seed: int | None = None) -> Feed:
    """Load source and wrap the records in its configured feed."""
    records = load_records(source)
    feed = create_feed(records, source.feed_strategy, seed=seed)
    logger.debug("Built %s over %d records", type(feed).__name__, len(feed))
    return feed

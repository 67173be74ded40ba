"""Data models for the loadfeed templating engine.

Optimized for high-frequency invocation:
- __slots__ on hot-path classes to reduce memory and improve access speed
- Records are immutable and shared read-only across concurrent invocations
- Enums for type safety without runtime overhead
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# Sentinel status categories; numeric HTTP statuses are rendered as str(int).
TIMEOUT_STATUS = "TIMEOUT"
ERROR_STATUS = "ERROR"

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_PROVIDER = "sqlite"


class HttpMethod(str, Enum):
    """HTTP methods a request template may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class FeedStrategy(str, Enum):
    """Record selection policy."""

    RANDOM = "random"  # Uniform pick on every call
    CIRCULAR = "circular"  # Load order, wrapping after the last record
    CONSTANT = "constant"  # One fixed record per worker


class SourceKind(str, Enum):
    """Backend a record set is loaded from."""

    CSV = "csv"
    DATABASE = "database"


class Record(Mapping[str, str]):
    """One row of test data: column name -> string value, case-insensitive lookup.

    Iteration yields column names with their original casing, in load order.
    Duplicate column names (in any casing) keep the position of the first
    occurrence and the value of the last one.
    """

    __slots__ = ("_names", "_values")

    def __init__(self, items: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> None:
        names: dict[str, str] = {}
        values: dict[str, str] = {}
        pairs = items.items() if isinstance(items, Mapping) else items
        for name, value in pairs:
            folded = name.casefold()
            names.setdefault(folded, name)
            values[folded] = value
        self._names = names
        self._values = values

    @classmethod
    def from_row(cls, columns: list[str], row: Iterable[str]) -> "Record":
        return cls(zip(columns, row))

    def __getitem__(self, key: str) -> str:
        return self._values[key.casefold()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._names.values())

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        inner = ", ".join(f"{name!r}: {self._values[folded]!r}" for folded, name in self._names.items())
        return f"Record({{{inner}}})"


@dataclass(slots=True)
class DataSourceConfig:
    """Where a scenario's records come from and how they are handed out."""

    kind: SourceKind
    file_path: str | None = None
    provider_name: str = DEFAULT_PROVIDER
    connection_string: str | None = None
    query: str | None = None
    feed_strategy: FeedStrategy = FeedStrategy.RANDOM


@dataclass(slots=True, frozen=True)
class RequestTemplate:
    """Declarative, pre-substitution description of one HTTP call. Immutable after load."""

    method: HttpMethod
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None
    expected_status: int | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    step_name: str | None = None
    data_source: DataSourceConfig | None = None

    @property
    def label(self) -> str:
        return self.step_name or f"{self.method.value} {self.url}"


@dataclass(slots=True, frozen=True)
class ScenarioConfig:
    name: str
    request: RequestTemplate


@dataclass(slots=True)
class RunConfig:
    """Reference driver settings from YAML."""

    users: int = 1
    duration_seconds: float = 10.0
    iterations: int = 0  # 0 = run for duration, >0 = run N invocations per worker
    think_time_ms: float = 0.0


@dataclass(slots=True, frozen=True)
class InvocationContext:
    """Per-call identity supplied by the driver."""

    worker_id: int
    invocation_number: int
    scenario_name: str = ""


class PreparedRequest:
    """A fully substituted request, ready for the transport."""

    __slots__ = ("method", "url", "headers", "body")

    def __init__(self, method: str, url: str, headers: dict[str, str], body: bytes | None = None) -> None:
        self.method = method
        self.url = url
        self.headers = headers
        self.body = body

    def __repr__(self) -> str:
        return f"PreparedRequest(method={self.method!r}, url={self.url!r})"


@dataclass(slots=True, frozen=True)
class TransportResponse:
    status_code: int
    size_bytes: int = 0


@dataclass(slots=True, frozen=True)
class Completed:
    response: TransportResponse


@dataclass(slots=True, frozen=True)
class TimedOut:
    timeout_ms: int


@dataclass(slots=True, frozen=True)
class TransportFailed:
    error: str


CallResult = Union[Completed, TimedOut, TransportFailed]


class RequestOutcome:
    """Classified result of one invocation, handed back to the driver.

    Uses __slots__: this is the most allocated object during a run.
    """

    __slots__ = ("ok", "status_category", "size_bytes", "message", "step", "elapsed_ms")

    def __init__(
        self,
        ok: bool,
        status_category: str,
        size_bytes: int = 0,
        message: str | None = None,
        step: str = "",
        elapsed_ms: float = 0.0,
    ) -> None:
        self.ok = ok
        self.status_category = status_category
        self.size_bytes = size_bytes
        self.message = message
        self.step = step
        self.elapsed_ms = elapsed_ms

    def __repr__(self) -> str:
        return (
            f"RequestOutcome(ok={self.ok}, status={self.status_category!r}, "
            f"size={self.size_bytes}, step={self.step!r})"
        )

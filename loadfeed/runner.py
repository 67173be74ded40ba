"""Reference driver: prepare scenarios, run virtual users, tally outcomes.

Any external scheduler can call engine.execute_request directly; this module is the
minimal one shipped with loadfeed. Constant load only: `users` workers per scenario,
for `duration_seconds` or until each worker finished `iterations` invocations.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator

from .config import load_config, validate_run_config
from .engine import Send, execute_request
from .exceptions import ConfigurationError
from .feed import Feed, build_feed
from .logging_config import get_logger
from .models import InvocationContext, RequestOutcome, RequestTemplate, RunConfig, ScenarioConfig
from .transport import HttpxTransport, create_client

logger = get_logger("runner")

# Result queue maximum size
RESULT_QUEUE_MAXSIZE = 50_000

QueueItem = tuple[str, RequestOutcome]


@dataclass(slots=True)
class PreparedScenario:
    """A scenario whose data is loaded and whose feed is ready for traffic."""

    name: str
    template: RequestTemplate
    feed: Feed | None = None


@dataclass(slots=True)
class ScenarioSummary:
    """Outcome counts for one scenario."""

    name: str
    step: str
    ok: int = 0
    failed: int = 0
    status_counts: Counter[str] = field(default_factory=Counter)
    last_error: str | None = None

    @property
    def total(self) -> int:
        return self.ok + self.failed

    def add(self, outcome: RequestOutcome) -> None:
        if outcome.ok:
            self.ok += 1
        else:
            self.failed += 1
            if outcome.message:
                self.last_error = outcome.message
        self.status_counts[outcome.status_category] += 1


def prepare_scenario(scenario: ScenarioConfig) -> PreparedScenario:
    """Load the scenario's data source and build its feed.

    Loader and feed errors propagate: a scenario with missing or empty data must not start.
    """
    template = scenario.request
    feed = build_feed(template.data_source) if template.data_source is not None else None
    logger.info(
        "Initialized scenario '%s': %s %s (data: %s)",
        scenario.name,
        template.method.value,
        template.url,
        f"{len(feed)} records, {feed.strategy.value}" if feed is not None else "none",
    )
    return PreparedScenario(name=scenario.name, template=template, feed=feed)


async def run_worker(
    scenario: PreparedScenario,
    worker_id: int,
    send: Send,
    think_time_ms: float,
    result_queue: asyncio.Queue[QueueItem | None],
    stop_event: asyncio.Event,
    iterations: int,
) -> None:
    """
    Single virtual user: invokes the scenario repeatedly until stop_event.

    Args:
        scenario: Prepared scenario (template + optional feed)
        worker_id: Stable identity of this worker, used by the constant feed
        send: Transport callback
        think_time_ms: Delay before each invocation
        result_queue: Queue to put (scenario name, outcome) into
        stop_event: Event to signal worker termination
        iterations: 0 = infinite until stop; >0 = run this many invocations then exit

    Note:
        Always sends None sentinel to result_queue when exiting.
    """
    invocation = 0
    is_set = stop_event.is_set
    try:
        while not is_set():
            if think_time_ms > 0:
                await asyncio.sleep(think_time_ms / 1000.0)
            invocation += 1
            context = InvocationContext(worker_id, invocation, scenario.name)
            outcome = await execute_request(scenario.template, scenario.feed, context, send)
            await result_queue.put((scenario.name, outcome))
            if iterations > 0 and invocation >= iterations:
                break
    except asyncio.CancelledError:
        pass
    finally:
        await result_queue.put(None)


async def collect_results(
    result_queue: asyncio.Queue[QueueItem | None],
    num_workers: int,
) -> AsyncIterator[QueueItem]:
    """Consume queue until all workers send sentinel."""
    done = 0
    while done < num_workers:
        item = await result_queue.get()
        if item is None:
            done += 1
            continue
        yield item


async def run_scenarios(
    scenarios: list[ScenarioConfig],
    config: RunConfig,
    send: Send,
) -> list[ScenarioSummary]:
    """Prepare every scenario, then drive them concurrently and summarize outcomes.

    All scenarios are prepared before the first request, so a data error in any one
    aborts the run before traffic starts.
    """
    validate_run_config(config)
    if not scenarios:
        raise ConfigurationError("No scenarios to run")

    prepared = [await asyncio.to_thread(prepare_scenario, s) for s in scenarios]
    summaries = {p.name: ScenarioSummary(name=p.name, step=p.template.label) for p in prepared}

    result_queue: asyncio.Queue[QueueItem | None] = asyncio.Queue(maxsize=RESULT_QUEUE_MAXSIZE)
    stop_event = asyncio.Event()
    workers = [
        asyncio.create_task(
            run_worker(p, worker_id, send, config.think_time_ms, result_queue, stop_event, config.iterations)
        )
        for p in prepared
        for worker_id in range(config.users)
    ]

    async def consume() -> None:
        async for name, outcome in collect_results(result_queue, len(workers)):
            summaries[name].add(outcome)

    consumer_task = asyncio.create_task(consume())
    await asyncio.wait(workers, timeout=config.duration_seconds)
    stop_event.set()
    await asyncio.gather(*workers)
    await consumer_task

    for summary in summaries.values():
        logger.info(
            "Completed scenario '%s': total=%d ok=%d failed=%d",
            summary.name, summary.total, summary.ok, summary.failed,
        )
    return list(summaries.values())


async def run_test(
    config_path: str | Path,
    config_override: RunConfig | None = None,
    http2: bool = True,
) -> list[ScenarioSummary]:
    """Load the YAML scenario file and run it against the real network via httpx."""
    run_config, scenarios = await asyncio.to_thread(load_config, config_path)
    if config_override is not None:
        run_config = config_override
    logger.info(
        "Starting run: scenarios=%d, users=%s, duration=%ss, iterations=%s",
        len(scenarios), run_config.users, run_config.duration_seconds, run_config.iterations,
    )
    async with create_client(http2=http2) as client:
        return await run_scenarios(scenarios, run_config, HttpxTransport(client))

"""Request execution: template + record -> transport call -> classified outcome.

This module provides the per-invocation path:
- build_request: Substitute URL, headers and body from a single record
- call_with_timeout: Timeout-aware transport wrapper returning a tagged result
- classify: Pure mapping from tagged result to RequestOutcome
- execute_request: The full invocation, called by the driver

Nothing here holds shared mutable state; the Feed is the only shared object touched.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from .feed import Feed
from .logging_config import get_logger
from .models import (
    ERROR_STATUS,
    TIMEOUT_STATUS,
    CallResult,
    Completed,
    InvocationContext,
    PreparedRequest,
    Record,
    RequestOutcome,
    RequestTemplate,
    TimedOut,
    TransportFailed,
    TransportResponse,
)
from .templating import substitute, substitute_headers

logger = get_logger("engine")

# Transport callback: sends one request, returns (status, payload size) or raises.
Send = Callable[[PreparedRequest], Awaitable[TransportResponse]]

BODY_CONTENT_TYPE = "application/json; charset=utf-8"
# Nanoseconds to milliseconds conversion
NS_TO_MS = 1_000_000


def build_request(template: RequestTemplate, record: Record | None) -> PreparedRequest:
    """Build the concrete request; every part substitutes from the same record.

    Without a record the template values are used literally.
    """
    if record is None:
        url = template.url
        headers = dict(template.headers)
        body = template.body
    else:
        url = substitute(template.url, record)
        headers = substitute_headers(template.headers, record)
        body = substitute(template.body, record) if template.body is not None else None

    body_bytes = None
    if body is not None:
        body_bytes = body.encode("utf-8")
        if "content-type" not in {k.lower() for k in headers}:
            headers["Content-Type"] = BODY_CONTENT_TYPE
    return PreparedRequest(template.method.value, url, headers, body_bytes)


async def call_with_timeout(send: Send, request: PreparedRequest, timeout_ms: int) -> CallResult:
    """Run one transport call bounded by timeout_ms.

    On timeout the in-flight call is cancelled, not abandoned. Cancellation of the
    calling task itself still propagates. Only this deadline yields TimedOut; a
    TimeoutError raised by the transport itself is a TransportFailed.
    """
    task = asyncio.ensure_future(send(request))
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000.0)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if not done:
        task.cancel()
        await asyncio.wait({task})
        return TimedOut(timeout_ms)
    try:
        response = task.result()
    except Exception as e:  # noqa: BLE001
        return TransportFailed(f"{type(e).__name__}: {e}")
    return Completed(response)


def classify(template: RequestTemplate, result: CallResult, elapsed_ms: float = 0.0) -> RequestOutcome:
    """Turn a tagged transport result into the outcome reported to the driver."""
    step = template.label
    if isinstance(result, TimedOut):
        return RequestOutcome(
            ok=False,
            status_category=TIMEOUT_STATUS,
            message=f"Request timed out after {result.timeout_ms} ms",
            step=step,
            elapsed_ms=elapsed_ms,
        )
    if isinstance(result, TransportFailed):
        return RequestOutcome(
            ok=False,
            status_category=ERROR_STATUS,
            message=result.error,
            step=step,
            elapsed_ms=elapsed_ms,
        )

    status = result.response.status_code
    size = result.response.size_bytes
    if template.expected_status is not None and status != template.expected_status:
        return RequestOutcome(
            ok=False,
            status_category=str(status),
            size_bytes=size,
            message=f"Expected status {template.expected_status}, got {status}",
            step=step,
            elapsed_ms=elapsed_ms,
        )
    return RequestOutcome(
        ok=True,
        status_category=str(status),
        size_bytes=size,
        step=step,
        elapsed_ms=elapsed_ms,
    )


async def execute_request(
    template: RequestTemplate,
    feed: Feed | None,
    context: InvocationContext,
    send: Send,
) -> RequestOutcome:
    """Execute one invocation of template and classify it.

    Args:
        template: Read-only request template
        feed: Record feed, or None for static requests (no substitution)
        context: Worker identity and invocation number from the driver
        send: Transport callback

    Returns:
        RequestOutcome; timeouts and status mismatches are failed outcomes, never raised.
    """
    record = feed.get_next(context) if feed is not None else None
    request = build_request(template, record)

    start_ns = time.perf_counter_ns()
    result = await call_with_timeout(send, request, template.timeout_ms)
    elapsed_ms = (time.perf_counter_ns() - start_ns) / NS_TO_MS
    outcome = classify(template, result, elapsed_ms)

    fields = {"scenario": context.scenario_name, "step": outcome.step, "invocation": context.invocation_number}
    if isinstance(result, TimedOut):
        logger.warning(
            "Scenario=%s Step=%s Invocation=%d timed out after %d ms",
            context.scenario_name, outcome.step, context.invocation_number, template.timeout_ms,
            extra={**fields, "timeout_ms": template.timeout_ms},
        )
    elif outcome.ok:
        logger.debug(
            "Scenario=%s Step=%s Invocation=%d StatusCode=%s",
            context.scenario_name, outcome.step, context.invocation_number, outcome.status_category,
            extra={**fields, "status_code": outcome.status_category},
        )
    return outcome

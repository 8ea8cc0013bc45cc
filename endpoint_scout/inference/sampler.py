from __future__ import annotations

import ipaddress
import logging
import threading
import time
from collections.abc import Callable, Sequence
from functools import partial

from endpoint_scout.collectors.connections import query_established_tcp
from endpoint_scout.models import ConnectionRecord, ConnectionState, Endpoint, ProcessHandle, SampleReport

logger = logging.getLogger(__name__)

ConnectionQuery = Callable[[ProcessHandle], Sequence[ConnectionRecord]]


def is_ipv4_literal(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def to_observation(record: ConnectionRecord, port_min: int, port_max: int) -> Endpoint | None:
    """Return the endpoint of an established IPv4 connection inside the port range."""
    if record.state != ConnectionState.ESTABLISHED:
        return None
    if not port_min <= record.remote_port <= port_max:
        return None
    if not is_ipv4_literal(record.remote_address):
        return None
    return Endpoint(address=record.remote_address, port=record.remote_port)


def validate_window(port_min: int, port_max: int, duration: float, tick_interval: float) -> None:
    if not 0 <= port_min <= 65535 or not 0 <= port_max <= 65535:
        raise ValueError(f"ports must be within 0..65535, got {port_min}..{port_max}")
    if port_min > port_max:
        raise ValueError(f"port_min ({port_min}) must not exceed port_max ({port_max})")
    if duration <= 0:
        raise ValueError(f"sample duration must be positive, got {duration}")
    if tick_interval <= 0:
        raise ValueError(f"tick interval must be positive, got {tick_interval}")


def sample(
    handle: ProcessHandle,
    port_min: int,
    port_max: int,
    duration: float,
    tick_interval: float,
    *,
    query: ConnectionQuery | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    stop_event: threading.Event | None = None,
) -> SampleReport:
    """Observe the connections of ``handle`` for ``duration`` seconds.

    The deadline is checked before each tick, so the last tick that starts
    inside the window always runs to completion and at least one tick runs.
    A connection alive for N ticks yields N observations. Ticks whose query
    fails contribute nothing.

    When ``stop_event`` is given the sampler waits on it between ticks and
    stops at the next tick boundary once it is set.
    """
    validate_window(port_min, port_max, duration, tick_interval)
    fetch = query or partial(query_established_tcp, raise_errors=True)

    report = SampleReport()
    deadline = clock() + duration
    while clock() < deadline:
        if stop_event is not None and stop_event.is_set():
            logger.info("sampling stopped early after %d ticks", report.ticks)
            break

        report.ticks += 1
        try:
            records = fetch(handle)
        except Exception as exc:
            report.failed_ticks += 1
            logger.debug("tick %d: connection query failed: %s", report.ticks, exc)
            records = []

        matched = 0
        for record in records:
            endpoint = to_observation(record, port_min, port_max)
            if endpoint is not None:
                report.observations.append(endpoint)
                matched += 1
        logger.debug("tick %d: %d connections, %d matched", report.ticks, len(records), matched)

        remaining = deadline - clock()
        if remaining <= 0:
            break
        # never wait past the end of the window
        pause = min(tick_interval, remaining)
        if stop_event is not None:
            stop_event.wait(timeout=pause)
        else:
            sleep(pause)
    return report

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from endpoint_scout.config import ScoutConfig
from endpoint_scout.inference.sampler import ConnectionQuery, sample
from endpoint_scout.inference.selector import count_endpoints, select_dominant
from endpoint_scout.models import InferenceResult, ProcessHandle

logger = logging.getLogger(__name__)


def run_inference(
    config: ScoutConfig,
    handle: ProcessHandle,
    *,
    query: ConnectionQuery | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    stop_event: threading.Event | None = None,
) -> InferenceResult:
    logger.info(
        "sampling %s for %.1fs every %.2fs, remote ports %d-%d",
        handle,
        config.sample_seconds,
        config.tick_seconds,
        config.port_min,
        config.port_max,
    )
    report = sample(
        handle,
        config.port_min,
        config.port_max,
        config.sample_seconds,
        config.tick_seconds,
        query=query,
        clock=clock,
        sleep=sleep,
        stop_event=stop_event,
    )
    dominant = select_dominant(report.observations)
    result = InferenceResult(
        process=handle,
        dominant=dominant,
        observation_total=len(report.observations),
        distinct_endpoints=len(count_endpoints(report.observations)),
        ticks=report.ticks,
        failed_ticks=report.failed_ticks,
    )
    if report.failed_ticks:
        logger.warning("%d of %d ticks could not read the connection table", report.failed_ticks, report.ticks)
    if dominant is None:
        logger.info("no matching connection observed in %d ticks", report.ticks, extra={"ticks": report.ticks})
    else:
        logger.info(
            "dominant endpoint %s seen %d times",
            dominant.endpoint,
            dominant.count,
            extra={"ticks": report.ticks, "distinct_endpoints": result.distinct_endpoints},
        )
    return result

from __future__ import annotations

import json
from typing import Any

from endpoint_scout.models import InferenceResult, PingSummary


def _fmt_ms(value: float | None) -> str:
    return "-" if value is None else f"{value:.1f} ms"


def render_text(result: InferenceResult, ping_summary: PingSummary | None = None) -> str:
    lines = [
        f"Process:   {result.process}",
        f"Sampling:  {result.ticks} ticks, {result.observation_total} observations, "
        f"{result.distinct_endpoints} distinct endpoints",
    ]
    if result.failed_ticks:
        lines.append(f"Warning:   {result.failed_ticks} ticks could not read the connection table")

    if result.dominant is None:
        lines.append("Server:    no match found")
        return "\n".join(lines)

    share = result.dominant.count * 100.0 / result.observation_total
    lines.append(f"Server:    {result.dominant.endpoint} ({result.dominant.count} observations, {share:.0f}%)")
    if ping_summary is None:
        return "\n".join(lines)

    lines.append(
        f"Ping:      {ping_summary.received}/{ping_summary.sent} replies, "
        f"{ping_summary.loss_percent:.0f}% loss"
    )
    for index, rtt in enumerate(ping_summary.replies, start=1):
        lines.append(f"  #{index:<3} {'timeout' if rtt is None else _fmt_ms(rtt)}")
    if ping_summary.received:
        lines.append(
            f"Latency:   min {_fmt_ms(ping_summary.min_ms)}  avg {_fmt_ms(ping_summary.avg_ms)}  "
            f"max {_fmt_ms(ping_summary.max_ms)}  jitter {_fmt_ms(ping_summary.jitter_ms)}"
        )
    return "\n".join(lines)


def render_json(result: InferenceResult, ping_summary: PingSummary | None = None) -> str:
    payload: dict[str, Any] = {
        "process": result.process.model_dump(mode="json"),
        "found": result.found,
        "server": None,
        "observation_count": 0,
        "observation_total": result.observation_total,
        "distinct_endpoints": result.distinct_endpoints,
        "ticks": result.ticks,
        "failed_ticks": result.failed_ticks,
        "ping": ping_summary.model_dump(mode="json") if ping_summary is not None else None,
    }
    if result.dominant is not None:
        payload["server"] = result.dominant.endpoint.model_dump(mode="json")
        payload["observation_count"] = result.dominant.count
    return json.dumps(payload, ensure_ascii=True, separators=(",", ":"))

"""ICMP echo through the operating system ``ping`` binary.

Raw ICMP sockets need elevated privileges on most systems, the system binary
does not. Output is parsed per reply so every echo request maps to either a
round-trip time in milliseconds or ``None`` for a timeout.
"""
from __future__ import annotations

import logging
import math
import re
import subprocess
import sys
from statistics import mean

from endpoint_scout.models import PingSummary

logger = logging.getLogger(__name__)

PING_BIN = "ping"

_UNIX_REPLY = re.compile(r"(icmp_)?seq=(\d+).*?time[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)
_WINDOWS_REPLY = re.compile(r"time[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)
_WINDOWS_LOST = ("request timed out", "destination host unreachable", "destination net unreachable", "general failure")

# BSD-derived and BusyBox pings number echo requests from 0, iputils from 1
_ZERO_BASED_SEQ = ("darwin", "freebsd", "openbsd", "netbsd")


class PingError(RuntimeError):
    pass


def build_command(host: str, count: int, timeout_seconds: float, platform: str | None = None) -> list[str]:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return [PING_BIN, "-n", str(count), "-w", str(int(timeout_seconds * 1000)), host]
    if platform.startswith("darwin"):
        # macOS takes the per-reply wait in milliseconds
        return [PING_BIN, "-c", str(count), "-W", str(int(timeout_seconds * 1000)), host]
    return [PING_BIN, "-c", str(count), "-W", str(max(1, math.ceil(timeout_seconds))), host]


def _parse_windows(output: str, count: int) -> list[float | None]:
    replies: list[float | None] = []
    for line in output.splitlines():
        lowered = line.strip().lower()
        if lowered.startswith("reply from"):
            match = _WINDOWS_REPLY.search(line)
            replies.append(float(match.group(1)) if match else None)
        elif any(marker in lowered for marker in _WINDOWS_LOST):
            replies.append(None)
    replies = replies[:count]
    replies.extend([None] * (count - len(replies)))
    return replies


def _parse_unix(output: str, count: int, platform: str) -> list[float | None]:
    replies: list[float | None] = [None] * count
    for match in _UNIX_REPLY.finditer(output):
        # BusyBox prints a bare "seq="
        zero_based = match.group(1) is None or platform.startswith(_ZERO_BASED_SEQ)
        index = int(match.group(2)) - (0 if zero_based else 1)
        if 0 <= index < count and replies[index] is None:
            replies[index] = float(match.group(3))
    return replies


def parse_ping_output(output: str, count: int, platform: str | None = None) -> list[float | None]:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return _parse_windows(output, count)
    return _parse_unix(output, count, platform)


def ping(host: str, count: int, timeout_seconds: float = 2.0) -> list[float | None]:
    if count < 1:
        raise ValueError(f"ping count must be at least 1, got {count}")
    if not host or host.startswith("-"):
        raise ValueError(f"invalid ping target: {host!r}")

    cmd = build_command(host, count, timeout_seconds)
    budget = count * (timeout_seconds + 1.0) + 5.0
    logger.debug("running %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=False,
            timeout=budget,
            errors="replace",
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise PingError(f"unable to run {PING_BIN}: {exc}") from exc

    replies = parse_ping_output(result.stdout, count)
    if result.returncode not in (0, 1) and not any(item is not None for item in replies):
        # 0 and 1 mean replies / no replies; anything else is a usage or host error
        detail = (result.stderr or result.stdout).strip().splitlines()
        raise PingError(detail[-1] if detail else f"{PING_BIN} exited with status {result.returncode}")
    return replies


def summarize_ping(host: str, replies: list[float | None]) -> PingSummary:
    received = [item for item in replies if item is not None]
    sent = len(replies)
    summary = PingSummary(
        host=host,
        replies=list(replies),
        sent=sent,
        received=len(received),
        loss_percent=round((sent - len(received)) * 100.0 / sent, 1) if sent else 0.0,
    )
    if received:
        summary.min_ms = round(min(received), 2)
        summary.avg_ms = round(mean(received), 2)
        summary.max_ms = round(max(received), 2)
    if len(received) >= 2:
        summary.jitter_ms = round(mean(abs(b - a) for a, b in zip(received, received[1:])), 2)
    return summary

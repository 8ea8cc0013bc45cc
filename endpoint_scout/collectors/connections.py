from __future__ import annotations

import logging
from typing import Any

import psutil

from endpoint_scout.models import ConnectionRecord, ConnectionState, ProcessHandle

logger = logging.getLogger(__name__)


def _remote_pair(raddr: Any) -> tuple[str, int] | None:
    if not raddr:
        return None
    ip = getattr(raddr, "ip", None)
    port = getattr(raddr, "port", None)
    if ip is None or port is None:
        if isinstance(raddr, tuple) and len(raddr) >= 2:
            ip, port = raddr[0], raddr[1]
        else:
            return None
    return str(ip), int(port)


def _open_process(handle: ProcessHandle) -> psutil.Process:
    proc = psutil.Process(handle.pid)
    if handle.create_time is not None and proc.create_time() != handle.create_time:
        # pid was recycled by another process
        raise psutil.NoSuchProcess(handle.pid, handle.name)
    return proc


def query_established_tcp(handle: ProcessHandle, raise_errors: bool = False) -> list[ConnectionRecord]:
    """Snapshot the TCP connection table of one process.

    Rows without a remote address (listeners, half-open sockets) are dropped;
    the state of every remaining row is reported as the OS gave it, so callers
    still decide what counts as established.

    Failures (process gone, access denied, platform errors) return an empty
    list unless ``raise_errors`` is set, in which case the psutil or OS error
    propagates to the caller.
    """
    try:
        conns = _open_process(handle).net_connections(kind="tcp")
    except (psutil.Error, OSError) as exc:
        if raise_errors:
            raise
        logger.debug("connection query failed for %s: %s", handle, exc)
        return []

    records: list[ConnectionRecord] = []
    for conn in conns:
        pair = _remote_pair(getattr(conn, "raddr", None))
        if pair is None:
            continue
        address, port = pair
        records.append(
            ConnectionRecord(
                remote_address=address,
                remote_port=port,
                state=ConnectionState.parse(getattr(conn, "status", "")),
            )
        )
    return records

from __future__ import annotations

import logging

import psutil

from endpoint_scout.models import ProcessHandle

logger = logging.getLogger(__name__)

PROCESS_ATTRS = ["pid", "name", "create_time"]


class ProcessResolutionError(LookupError):
    pass


class ProcessNotFoundError(ProcessResolutionError):
    def __init__(self, query: str) -> None:
        super().__init__(f"no running process matches {query!r}")
        self.query = query


class AmbiguousProcessError(ProcessResolutionError):
    def __init__(self, query: str, candidates: list[ProcessHandle]) -> None:
        pids = ", ".join(str(item.pid) for item in candidates)
        super().__init__(f"{len(candidates)} processes match {query!r} (pids {pids}); pass a pid instead")
        self.query = query
        self.candidates = candidates


def _normalize_name(name: str) -> str:
    lowered = name.strip().lower()
    if lowered.endswith(".exe"):
        return lowered[: -len(".exe")]
    return lowered


def _handle_for_pid(pid: int) -> ProcessHandle:
    try:
        proc = psutil.Process(pid)
        with proc.oneshot():
            return ProcessHandle(pid=proc.pid, name=proc.name(), create_time=proc.create_time())
    except psutil.NoSuchProcess as exc:
        raise ProcessNotFoundError(str(pid)) from exc
    except psutil.AccessDenied:
        # name may be hidden from us, the pid itself is still usable
        return ProcessHandle(pid=pid, name=f"pid-{pid}")


def find_processes(name: str) -> list[ProcessHandle]:
    wanted = _normalize_name(name)
    matches: list[ProcessHandle] = []
    for proc in psutil.process_iter(attrs=PROCESS_ATTRS):
        try:
            info = proc.info
            proc_name = str(info.get("name") or "")
            if not proc_name or _normalize_name(proc_name) != wanted:
                continue
            create_time = info.get("create_time")
            matches.append(
                ProcessHandle(
                    pid=int(info["pid"]),
                    name=proc_name,
                    create_time=float(create_time) if create_time is not None else None,
                )
            )
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return matches


def resolve_process(name_or_id: str, on_ambiguous: str = "first") -> ProcessHandle:
    """Turn a process name or pid into a single handle.

    Ambiguous names are resolved to the first enumerated match (lowest pid)
    with a warning, or rejected when ``on_ambiguous`` is ``"fail"``.
    """
    query = name_or_id.strip()
    if query.isdigit():
        return _handle_for_pid(int(query))

    matches = find_processes(query)
    if not matches:
        raise ProcessNotFoundError(query)
    if len(matches) == 1:
        return matches[0]

    if on_ambiguous == "fail":
        raise AmbiguousProcessError(query, matches)

    chosen = matches[0]
    logger.warning(
        "%d processes match %r, using first match pid %d (others: %s)",
        len(matches),
        query,
        chosen.pid,
        ", ".join(str(item.pid) for item in matches[1:]),
    )
    return chosen

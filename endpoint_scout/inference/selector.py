from __future__ import annotations

from collections.abc import Iterable

from endpoint_scout.models import DominantEndpoint, Endpoint


def count_endpoints(observations: Iterable[Endpoint]) -> dict[Endpoint, int]:
    """Count observations per endpoint, keyed in first-appearance order."""
    counts: dict[Endpoint, int] = {}
    for endpoint in observations:
        counts[endpoint] = counts.get(endpoint, 0) + 1
    return counts


def select_dominant(observations: Iterable[Endpoint]) -> DominantEndpoint | None:
    """Pick the most observed endpoint, or ``None`` when nothing was observed.

    Ties go to the endpoint seen first: ``counts`` iterates in first-appearance
    order and a later endpoint only wins with a strictly higher count.
    """
    best: Endpoint | None = None
    best_count = 0
    for endpoint, count in count_endpoints(observations).items():
        if count > best_count:
            best = endpoint
            best_count = count
    if best is None:
        return None
    return DominantEndpoint(endpoint=best, count=best_count)

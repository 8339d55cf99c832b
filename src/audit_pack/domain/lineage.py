"""Correction-lineage closure over time-entry correction links."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping

from audit_pack.domain.models import CorrectionClosure, CorrectionLinkNode


def build_correction_closure(
    seed_nodes: Iterable[CorrectionLinkNode],
    lookup_by_id: Mapping[str, CorrectionLinkNode],
) -> CorrectionClosure:
    """Return every id transitively reachable from ``seed_nodes``.

    Links are followed in all three directions (previous, replaces,
    superseded-by). Seeds not present in ``lookup_by_id`` still contribute
    their own links. An id that is linked to but missing from the lookup is
    included, but its own links cannot be followed, so callers must pass a
    transitively complete lookup.

    Both result tuples are sorted lexicographically, never in discovery
    order, so the result depends only on the seed id set and the lookup.
    """
    seeds = list(seed_nodes)
    seed_by_id = {node.id: node for node in seeds}
    seed_ids = set(seed_by_id)

    visited: set[str] = set(seed_ids)
    queue: deque[str] = deque(sorted(seed_ids))

    while queue:
        node_id = queue.popleft()
        node = lookup_by_id.get(node_id) or seed_by_id.get(node_id)
        if node is None:
            continue
        for linked_id in node.linked_ids():
            if linked_id not in visited:
                visited.add(linked_id)
                queue.append(linked_id)

    node_ids = tuple(sorted(visited))
    expanded = tuple(node_id for node_id in node_ids if node_id not in seed_ids)
    return CorrectionClosure(node_ids=node_ids, expanded_outside_range=expanded)

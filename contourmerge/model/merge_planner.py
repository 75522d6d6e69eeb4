"""Plan the operations that merge a drag-source slice onto a drop-target slice."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from contourmerge.model.dataset import Vertex
from contourmerge.model.edit_commands import DeleteVertex, MutationOp, ReplaceVertices
from contourmerge.model.slice import Slice

logger = logging.getLogger(__name__)


def have_same_endpoints(first: Sequence[Vertex], second: Sequence[Vertex]) -> bool:
    return first[0] is second[0] and first[-1] is second[-1]


def have_reversed_endpoints(first: Sequence[Vertex], second: Sequence[Vertex]) -> bool:
    return first[0] is second[-1] and first[-1] is second[0]


def are_direction_aligned(first: Sequence[Vertex], second: Sequence[Vertex]) -> bool:
    """Return True if ``first`` and ``second`` run in the same direction.

    Shared endpoints decide directly. Otherwise the endpoints of ``first``
    are paired with those of ``second`` both ways and the pairing with the
    smaller total distance wins; a tie counts as aligned.
    """
    if have_same_endpoints(first, second):
        return True
    if have_reversed_endpoints(first, second):
        return False

    ends_a = np.array([first[0].position, first[-1].position], dtype=float)
    ends_b = np.array([second[0].position, second[-1].position], dtype=float)
    straight = np.hypot(*(ends_a - ends_b).T).sum()
    crossed = np.hypot(*(ends_a - ends_b[::-1]).T).sum()
    return bool(straight <= crossed)


def are_slices_direction_aligned(source: Slice | None, target: Slice | None) -> bool:
    if source is None or target is None:
        return False
    return are_direction_aligned(source.vertices(), target.vertices())


def build_source_change_ops(
    sources: Sequence[Slice], target: Slice
) -> list[ReplaceVertices]:
    """Replace each source's run with the target's nodes, reversed where needed.

    Raises :class:`InvariantError` if a closed source polyline would break.
    """
    target_nodes = tuple(target.vertices())
    reversed_nodes = tuple(reversed(target_nodes))
    ops: list[ReplaceVertices] = []
    for source in sources:
        new_nodes = target_nodes if are_slices_direction_aligned(source, target) else reversed_nodes
        ops.append(
            ReplaceVertices(
                source=source,
                new_vertices=new_nodes,
                replacement=source.replace_vertices(new_nodes),
                planned_nodes=source.polyline.vertices,
            )
        )
    return ops


def build_vertex_delete_ops(
    sources: Sequence[Slice], target: Slice
) -> list[DeleteVertex]:
    """Delete the source nodes nothing else needs once the merge is done.

    A node survives if a polyline outside the merge references it, if it is
    tagged, or if the target reuses it.
    """
    if not sources:
        raise ValueError("sources must not be empty.")

    source_polylines = {source.polyline for source in sources}
    ops: list[DeleteVertex] = []
    seen: set[Vertex] = set()
    for vertex in sources[0].vertices():
        if vertex in seen:
            continue
        seen.add(vertex)
        if not vertex.referrers <= source_polylines:
            continue
        if vertex.is_tagged or target.contains_vertex(vertex):
            continue
        ops.append(DeleteVertex(vertex))
    return ops


def plan_merge(
    drag_source: Slice | None,
    drop_target: Slice | None,
    *,
    report_slings: bool = True,
) -> list[MutationOp]:
    """Return the ordered operations merging ``drag_source`` onto ``drop_target``.

    An empty list means there is nothing to merge. Integrity failures raise
    :class:`InvariantError` before any operation is returned.
    """
    if drag_source is None or drop_target is None:
        logger.debug("Merge plan skipped: drag source or drop target missing")
        return []
    if drag_source.polyline is drop_target.polyline:
        logger.debug(
            "Merge plan skipped: source and target share polyline %s",
            drag_source.polyline.polyline_id,
        )
        return []

    sources = drag_source.find_equivalent_slices()
    if not sources:
        # only possible for a source on a detached polyline
        sources = [drag_source]

    if report_slings:
        for source in sources:
            if source.has_slings():
                logger.warning("Slice %s participates in a sling", source)

    ops: list[MutationOp] = []
    ops.extend(build_source_change_ops(sources, drop_target))
    ops.extend(build_vertex_delete_ops(sources, drop_target))
    logger.debug(
        "Merge plan for %s onto %s: %d source(s), %d op(s)",
        drag_source,
        drop_target,
        len(sources),
        len(ops),
    )
    return ops

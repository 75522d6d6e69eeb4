"""Slices: contiguous, possibly wrapping, runs of a polyline's vertices."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, Sequence

from contourmerge.model.dataset import Polyline, Vertex
from contourmerge.model.invariants import has_slings, validate_closed_ring

logger = logging.getLogger(__name__)


# NOTE:
# ``start`` is always the lower index. With in_direction=True the slice is
# the nodes [start, start+1, ..., end]. With in_direction=False (closed
# polylines only) it wraps through the join node and consists of
# [end, end+1, ..., len-2, 0, 1, ..., start].
@dataclass(frozen=True)
class Slice:
    polyline: Polyline
    start: int
    end: int
    in_direction: bool = True

    def __post_init__(self) -> None:
        count = len(self.polyline)
        if not 0 <= self.start < count:
            raise ValueError(f"start out of range, got {self.start} (nodes={count}).")
        if not 0 <= self.end < count:
            raise ValueError(f"end out of range, got {self.end} (nodes={count}).")
        if self.start >= self.end:
            raise ValueError(
                f"expected start < end, got start={self.start}, end={self.end}."
            )
        closed = self.polyline.is_closed
        if not self.in_direction and not closed:
            raise ValueError("in_direction=False is only supported on closed polylines.")
        if closed and self.start == 0 and self.end == count - 1:
            raise ValueError(
                "For a closed polyline, start and end must not both refer to the join node."
            )

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    @property
    def start_vertex(self) -> Vertex:
        return self.polyline.vertex(self.start)

    @property
    def end_vertex(self) -> Vertex:
        return self.polyline.vertex(self.end)

    @property
    def start_tear_off_index(self) -> int | None:
        """Index of the node the slice is torn off from at its lower end.

        ``None`` when the slice touches the start of an open polyline, or
        covers the whole ring of a closed one.
        """
        count = len(self.polyline)
        if not self.polyline.is_closed:
            return self.start - 1 if self.start > 0 else None

        first, last = (self.start, self.end) if self.in_direction else (self.end, self.start)
        lower = first - 1
        if lower < 0:
            lower = count - 2
        return None if lower == last else lower

    @property
    def end_tear_off_index(self) -> int | None:
        """Index of the node the slice is torn off from at its upper end."""
        count = len(self.polyline)
        if not self.polyline.is_closed:
            return self.end + 1 if self.end < count - 1 else None

        first, last = (self.start, self.end) if self.in_direction else (self.end, self.start)
        upper = last + 1
        if upper >= count - 1:
            upper = 0
        return None if upper == first else upper

    @property
    def start_tear_off_vertex(self) -> Vertex | None:
        index = self.start_tear_off_index
        return None if index is None else self.polyline.vertex(index)

    @property
    def end_tear_off_vertex(self) -> Vertex | None:
        index = self.end_tear_off_index
        return None if index is None else self.polyline.vertex(index)

    @property
    def num_segments(self) -> int:
        if self.in_direction:
            return self.end - self.start
        return self.start + (len(self.polyline) - 1 - self.end)

    def opposite(self) -> "Slice | None":
        """Return the complementary arc of a closed polyline, ``None`` for open ones."""
        if not self.polyline.is_closed:
            return None
        return Slice(self.polyline, self.start, self.end, not self.in_direction)

    # ------------------------------------------------------------------
    # Node sequences
    # ------------------------------------------------------------------
    def vertices(self) -> list[Vertex]:
        nodes = self.polyline.vertices
        if self.in_direction:
            return list(nodes[self.start : self.end + 1])
        # the last node is the join node shared with index 0
        return list(nodes[self.end : len(nodes) - 1]) + list(nodes[: self.start + 1])

    def contains_vertex(self, vertex: Vertex) -> bool:
        return any(candidate is vertex for candidate in self.vertices())

    def has_slings(self) -> bool:
        return has_slings(self.polyline, self.vertices())

    def replace_vertices(self, new_vertices: Sequence[Vertex]) -> Polyline:
        """Return a detached copy of the polyline with this slice replaced.

        The polyline itself is never touched. For closed polylines the result
        is validated and :class:`InvariantError` raised if the ring breaks.
        """
        replacement = list(new_vertices)
        nodes = list(self.polyline.vertices)
        if not replacement:
            return self.polyline.detached_copy(nodes)

        if not self.polyline.is_closed:
            nodes[self.start : self.end + 1] = replacement
            return self.polyline.detached_copy(nodes)

        last = len(nodes) - 1
        if not self.in_direction:
            del nodes[self.end :]
            del nodes[: self.start + 1]
            nodes[0:0] = replacement
            nodes.append(replacement[0])
        elif self.start == 0:
            nodes.pop()
            del nodes[: self.end + 1]
            nodes[0:0] = replacement
            nodes.append(replacement[0])
        elif self.end == last:
            del nodes[self.start :]
            del nodes[0]
            nodes.extend(replacement)
            nodes.append(nodes[0])
        else:
            nodes[self.start : self.end + 1] = replacement

        validate_closed_ring(nodes, self.polyline.polyline_id)
        return self.polyline.detached_copy(nodes)

    # ------------------------------------------------------------------
    # Equivalent slices
    # ------------------------------------------------------------------
    def as_slice_in(self, other: Polyline) -> "Slice | None":
        return build_slice(other, self.vertices())

    def find_equivalent_slices(self) -> list["Slice"]:
        """Return the slices of every polyline carrying this slice's vertex run."""
        candidates = sorted(self.start_vertex.referrers, key=lambda p: p.polyline_id)
        found: list[Slice] = []
        for candidate in candidates:
            if len(candidate) < 2:
                continue
            equivalent = self.as_slice_in(candidate)
            if equivalent is not None:
                found.append(equivalent)
        return found

    def __str__(self) -> str:
        return (
            f"<slice polyline={self.polyline.polyline_id}, start={self.start}, "
            f"end={self.end}, in_direction={self.in_direction}>"
        )


@dataclass(frozen=True)
class SliceBoundary:
    start: int
    end: int

    def normalized(self, count: int) -> "SliceBoundary":
        """Map indices found in a doubled ring node list back onto the ring."""
        return SliceBoundary(
            self.start % count,
            (self.end + 1) % count if self.end >= count else self.end,
        )


def find_slice_boundary(
    vertices: Sequence[Vertex], sequence: Sequence[Vertex]
) -> SliceBoundary | None:
    """Return the boundary of the first contiguous run of ``sequence`` in ``vertices``."""
    if len(vertices) < 2:
        raise ValueError(f"expected at least 2 polyline nodes, got {len(vertices)}.")
    if len(sequence) < 2:
        raise ValueError(f"expected at least 2 sequence nodes, got {len(sequence)}.")

    span = len(sequence)
    for start in range(len(vertices) - span + 1):
        if all(vertices[start + j] is sequence[j] for j in range(span)):
            return SliceBoundary(start, start + span - 1)
    return None


def _slice_from_open_boundary(polyline: Polyline, boundary: SliceBoundary) -> Slice:
    return Slice(polyline, boundary.start, boundary.end)


def _slice_from_ring_boundary(polyline: Polyline, boundary: SliceBoundary) -> Slice | None:
    count = len(polyline)
    b = boundary.normalized(count)
    if b.start == 0 and b.end == count - 1:
        # the run covers the whole ring; there's no arc to slice
        return None
    if b.start < b.end:
        return Slice(polyline, b.start, b.end)
    return Slice(polyline, b.end, b.start, in_direction=False)


def build_slice(polyline: Polyline, sequence: Sequence[Vertex]) -> Slice | None:
    """Find ``sequence`` (or its reverse) as a run of ``polyline`` and return its slice."""
    if len(sequence) < 2:
        raise ValueError(f"expected at least 2 sequence nodes, got {len(sequence)}.")
    if len(polyline) < 2:
        raise ValueError(f"expected at least 2 polyline nodes, got {len(polyline)}.")

    nodes = list(polyline.vertices)
    if polyline.is_closed:
        haystack = nodes[:-1] + nodes
        to_slice = _slice_from_ring_boundary
    else:
        haystack = nodes
        to_slice = _slice_from_open_boundary

    for candidate in (list(sequence), list(reversed(sequence))):
        boundary = find_slice_boundary(haystack, candidate)
        if boundary is not None:
            return to_slice(polyline, boundary)
    return None


def _nearest_selected(indices: set[int], positions: Iterable[int]) -> int | None:
    for position in positions:
        if position in indices:
            return position
    return None


def slice_from_selection(
    polyline: Polyline, reference_index: int, selected_indices: Iterable[int]
) -> Slice | None:
    """Derive the slice around the segment ``(reference_index, reference_index + 1)``.

    The slice is bounded by the nearest selected nodes on either side of the
    reference segment. Returns ``None`` when no slice exists there.
    """
    count = len(polyline)
    if count < 2:
        logger.debug("Slice derivation skipped: polyline %s has %d node(s)", polyline, count)
        return None
    li = reference_index
    if not 0 <= li < count - 1:
        logger.debug(
            "Slice derivation skipped: reference index %s out of range (nodes=%d)", li, count
        )
        return None

    selected = set(selected_indices)

    if not polyline.is_closed:
        last = count - 1
        lower = _nearest_selected(selected, range(li, -1, -1))
        upper = _nearest_selected(selected, range(li + 1, last + 1))
        lower = 0 if lower is None else lower
        upper = last if upper is None else upper
        if lower == upper:
            return None
        return Slice(polyline, lower, upper)

    if len(selected) < 2:
        logger.debug(
            "Slice derivation skipped: closed polyline %s needs 2 selected nodes, got %d",
            polyline.polyline_id,
            len(selected),
        )
        return None

    lower = _nearest_selected(selected, range(li, -1, -1))
    if lower is None:
        lower = _nearest_selected(selected, range(count - 1, li, -1))
    upper = _nearest_selected(selected, range(li + 1, count - 1))
    if upper is None:
        upper = _nearest_selected(selected, range(0, li))
        if upper == 0:
            upper = count - 1
    if lower is None or upper is None:
        return None

    if lower < upper:
        if upper == count - 1:
            return Slice(polyline, 0, lower, in_direction=False)
        return Slice(polyline, lower, upper)
    if lower == upper:
        return Slice(polyline, 0, upper, in_direction=False)
    return Slice(polyline, upper, lower, in_direction=False)

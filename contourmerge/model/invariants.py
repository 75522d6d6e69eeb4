"""Invariant checks for closed polylines produced by slice edits."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from contourmerge.model.dataset import Polyline, Vertex


class InvariantError(ValueError):
    """Raised when an edited polyline violates a structural invariant."""


def assert_min_ring_length(vertices: Sequence["Vertex"], polyline_id: int) -> None:
    """Assert a closed ring keeps at least three node slots."""

    if len(vertices) < 3:
        raise InvariantError(
            f"Closed polyline {polyline_id} would shrink to {len(vertices)} node(s); "
            "at least 3 are required."
        )


def assert_ring_closed(vertices: Sequence["Vertex"], polyline_id: int) -> None:
    """Assert the first and last node of a ring are the identical vertex."""

    if not vertices or vertices[0] is not vertices[-1]:
        raise InvariantError(
            f"Closed polyline {polyline_id} is no longer closed after the edit."
        )


def assert_no_adjacent_duplicates(vertices: Sequence["Vertex"], polyline_id: int) -> None:
    """Assert no two immediately adjacent nodes are the same vertex.

    Checked along the whole node list, not only around a splice boundary.
    """

    for index in range(len(vertices) - 1):
        if vertices[index] is vertices[index + 1]:
            raise InvariantError(
                f"Closed polyline {polyline_id} has vertex {vertices[index].vertex_id} "
                f"repeated at positions {index} and {index + 1}."
            )


def validate_closed_ring(vertices: Sequence["Vertex"], polyline_id: int) -> None:
    """Run all post-edit checks for a closed polyline."""

    assert_min_ring_length(vertices, polyline_id)
    assert_ring_closed(vertices, polyline_id)
    assert_no_adjacent_duplicates(vertices, polyline_id)


def has_slings(polyline: "Polyline", candidates: Sequence["Vertex"]) -> bool:
    """Return True when one of ``candidates`` occurs twice along ``polyline``.

    The join node of a closed polyline is visited once. This is a diagnostic;
    nothing gates on it.
    """

    wanted = set(candidates)
    nodes = polyline.vertices
    if polyline.is_closed:
        nodes = nodes[:-1]
    seen: set["Vertex"] = set()
    for vertex in nodes:
        if vertex in seen:
            return True
        if vertex in wanted:
            seen.add(vertex)
    return False

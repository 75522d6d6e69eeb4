"""Tests for splicing new vertices into open and closed polylines."""

from __future__ import annotations

import pytest

from contourmerge.model.dataset import Dataset, Polyline, Vertex
from contourmerge.model.invariants import InvariantError, validate_closed_ring
from contourmerge.model.slice import Slice


def _make_vertices(dataset: Dataset, count: int, y: float = 0.0) -> list[Vertex]:
    return [dataset.create_vertex((float(i), y)) for i in range(count)]


def _make_ring(dataset: Dataset, distinct: int = 5) -> tuple[Polyline, list[Vertex]]:
    nodes = _make_vertices(dataset, distinct)
    return dataset.create_polyline(nodes + [nodes[0]]), nodes


def test_open_replace_splices_at_start() -> None:
    dataset = Dataset()
    nodes = _make_vertices(dataset, 5)
    m1, m2 = _make_vertices(dataset, 2, y=1.0)
    way = dataset.create_polyline(nodes)

    result = Slice(way, 1, 3).replace_vertices([m1, m2])

    assert list(result.vertices) == [nodes[0], m1, m2, nodes[4]]
    assert list(way.vertices) == nodes
    assert result.polyline_id == way.polyline_id
    assert result.is_detached


def test_closed_interior_replace_keeps_join_node() -> None:
    dataset = Dataset()
    ring, n = _make_ring(dataset)
    m1, m2, m3 = _make_vertices(dataset, 3, y=1.0)

    result = Slice(ring, 1, 3).replace_vertices([m1, m2, m3])

    assert list(result.vertices) == [n[0], m1, m2, m3, n[4], n[0]]


def test_closed_replace_from_join_node_recloses_on_new_first_vertex() -> None:
    dataset = Dataset()
    ring, n = _make_ring(dataset)
    m1, m2 = _make_vertices(dataset, 2, y=1.0)

    result = Slice(ring, 0, 2).replace_vertices([m1, m2])

    assert list(result.vertices) == [m1, m2, n[3], n[4], m1]
    assert result.is_closed


def test_closed_replace_up_to_join_node_drops_old_join() -> None:
    dataset = Dataset()
    ring, n = _make_ring(dataset)
    m1, m2 = _make_vertices(dataset, 2, y=1.0)

    result = Slice(ring, 3, 5).replace_vertices([m1, m2])

    assert list(result.vertices) == [n[1], n[2], m1, m2, n[1]]
    assert result.is_closed


def test_closed_wrapping_replace() -> None:
    dataset = Dataset()
    ring, n = _make_ring(dataset)
    m1, m2 = _make_vertices(dataset, 2, y=1.0)

    result = Slice(ring, 1, 3, in_direction=False).replace_vertices([m1, m2])

    assert list(result.vertices) == [m1, m2, n[2], m1]


@pytest.mark.parametrize(
    "start,end,in_direction",
    [(0, 2, True), (1, 3, True), (2, 5, True), (1, 3, False), (0, 2, False), (3, 5, False)],
)
def test_closed_replace_always_yields_valid_ring(start: int, end: int, in_direction: bool) -> None:
    dataset = Dataset()
    ring, _ = _make_ring(dataset)
    replacement = _make_vertices(dataset, 3, y=2.0)

    result = Slice(ring, start, end, in_direction).replace_vertices(replacement)

    validate_closed_ring(result.vertices, result.polyline_id)


def test_closed_replace_too_short_raises_invariant_error() -> None:
    dataset = Dataset()
    ring, _ = _make_ring(dataset, distinct=3)
    (m1,) = _make_vertices(dataset, 1, y=1.0)

    with pytest.raises(InvariantError):
        Slice(ring, 0, 2).replace_vertices([m1])


def test_closed_replace_with_adjacent_duplicate_raises_invariant_error() -> None:
    dataset = Dataset()
    ring, n = _make_ring(dataset)
    (m1,) = _make_vertices(dataset, 1, y=1.0)

    with pytest.raises(InvariantError):
        Slice(ring, 1, 3).replace_vertices([n[0], m1])

    assert list(ring.vertices) == n + [n[0]]


def test_empty_replacement_returns_unchanged_copy() -> None:
    dataset = Dataset()
    ring, n = _make_ring(dataset)

    result = Slice(ring, 1, 3).replace_vertices([])

    assert list(result.vertices) == list(ring.vertices)
    assert result is not ring

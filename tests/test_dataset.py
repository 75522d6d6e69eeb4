"""Tests for the dataset's vertex/polyline bookkeeping."""

from __future__ import annotations

import pytest

from contourmerge.model.dataset import Dataset, Polyline, Vertex


def _make_dataset():
    dataset = Dataset()
    n = [dataset.create_vertex((float(x), 0.0)) for x in range(4)]
    way = dataset.create_polyline(n)
    return dataset, n, way


def test_referrers_follow_node_list_changes() -> None:
    dataset, n, way = _make_dataset()

    dataset.set_polyline_vertices(way, [n[0], n[2], n[3]])

    assert n[1].referrers == frozenset()
    assert n[2].referrers == frozenset({way})


def test_removed_polyline_releases_its_vertices() -> None:
    dataset, n, way = _make_dataset()

    dataset.remove_polyline(way)

    assert all(not v.referrers for v in n)
    assert way.is_detached
    assert not dataset.contains_polyline(way)


def test_detached_copy_is_not_a_referrer() -> None:
    _, n, way = _make_dataset()

    copy = way.detached_copy([n[0], n[1]])

    assert copy.is_detached
    assert list(copy.vertices) == [n[0], n[1]]
    assert n[0].referrers == frozenset({way})


def test_internal_state_is_not_a_constructor_argument() -> None:
    with pytest.raises(TypeError):
        Polyline(polyline_id=1, _vertices=[])
    with pytest.raises(TypeError):
        Vertex(vertex_id=1, position=(0.0, 0.0), _referrers=set())


def test_delete_and_undelete_vertex() -> None:
    dataset, n, way = _make_dataset()
    removed: list[object] = []
    dataset.vertices_removed.connect(removed.append)

    with pytest.raises(ValueError):
        dataset.delete_vertex(n[1])

    dataset.set_polyline_vertices(way, [n[0], n[2], n[3]])
    dataset.delete_vertex(n[1])
    assert n[1].is_deleted
    assert not dataset.contains_vertex(n[1])
    assert removed == [(n[1],)]

    dataset.undelete_vertex(n[1])
    assert dataset.contains_vertex(n[1])
    with pytest.raises(ValueError):
        dataset.undelete_vertex(n[1])

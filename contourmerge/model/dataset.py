"""In-memory outline dataset: vertices shared by reference across polylines."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import itertools
import logging
from typing import Iterable, Iterator, Mapping, Sequence

from PyQt5 import QtCore

Point = tuple[float, float]

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Vertex:
    """A positioned vertex, compared by identity.

    ``referrers`` only ever contains polylines registered in ``dataset``;
    detached polyline copies never show up there.
    """

    vertex_id: int
    position: Point
    tags: dict[str, str] = field(default_factory=dict)
    dataset: "Dataset | None" = None
    _referrers: set["Polyline"] = field(default_factory=set, init=False, repr=False)
    _deleted: bool = field(default=False, init=False, repr=False)

    @property
    def referrers(self) -> frozenset["Polyline"]:
        return frozenset(self._referrers)

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    @property
    def is_tagged(self) -> bool:
        return bool(self.tags)

    def _add_referrer(self, polyline: "Polyline") -> None:
        self._referrers.add(polyline)

    def _discard_referrer(self, polyline: "Polyline") -> None:
        self._referrers.discard(polyline)

    def _set_deleted(self, deleted: bool) -> None:
        self._deleted = deleted

    def __repr__(self) -> str:
        return f"Vertex({self.vertex_id})"


@dataclass(eq=False)
class Polyline:
    """Ordered vertex references, closed iff first and last are the same vertex."""

    polyline_id: int
    dataset: "Dataset | None" = None
    _vertices: list[Vertex] = field(default_factory=list, init=False, repr=False)

    @property
    def vertices(self) -> tuple[Vertex, ...]:
        return tuple(self._vertices)

    @property
    def is_closed(self) -> bool:
        return len(self._vertices) >= 2 and self._vertices[0] is self._vertices[-1]

    @property
    def is_detached(self) -> bool:
        return self.dataset is None

    def vertex(self, index: int) -> Vertex:
        return self._vertices[index]

    def index_of(self, vertex: Vertex) -> int:
        """Return the first position of ``vertex``, or -1 if it is not on this polyline."""
        for index, candidate in enumerate(self._vertices):
            if candidate is vertex:
                return index
        return -1

    def detached_copy(self, vertices: Iterable[Vertex] | None = None) -> "Polyline":
        """Return a value copy sharing this polyline's id but owned by no dataset."""
        nodes = list(self._vertices if vertices is None else vertices)
        copy = Polyline(polyline_id=self.polyline_id)
        copy._set_nodes(nodes)
        return copy

    def _set_nodes(self, vertices: Iterable[Vertex]) -> None:
        self._vertices = list(vertices)

    def __len__(self) -> int:
        return len(self._vertices)

    def __repr__(self) -> str:
        ids = ",".join(str(v.vertex_id) for v in self._vertices)
        return f"Polyline({self.polyline_id}: [{ids}])"


@dataclass(frozen=True)
class PolylineSegment:
    """The edge between ``lower_index`` and ``lower_index + 1`` of a polyline."""

    polyline: Polyline
    lower_index: int

    @property
    def upper_index(self) -> int:
        return self.lower_index + 1

    @property
    def first_vertex(self) -> Vertex:
        return self.polyline.vertex(self.lower_index)

    @property
    def second_vertex(self) -> Vertex:
        return self.polyline.vertex(self.upper_index)


class Dataset(QtCore.QObject):
    """Mutable vertex/polyline graph that publishes change notifications.

    ``vertices_added`` and ``vertices_removed`` carry a tuple of vertices,
    ``nodes_changed`` carries the polyline whose node list changed and
    ``data_changed`` is emitted once after a :meth:`batch_update`.
    """

    vertices_added = QtCore.pyqtSignal(object)
    vertices_removed = QtCore.pyqtSignal(object)
    nodes_changed = QtCore.pyqtSignal(object)
    data_changed = QtCore.pyqtSignal()

    def __init__(self, parent: QtCore.QObject | None = None) -> None:
        super().__init__(parent)
        self._vertex_ids = itertools.count(1)
        self._polyline_ids = itertools.count(1)
        self._vertices: dict[int, Vertex] = {}
        self._polylines: dict[int, Polyline] = {}
        self._batch_depth = 0
        self._pending_change = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def vertices(self) -> tuple[Vertex, ...]:
        return tuple(v for v in self._vertices.values() if not v.is_deleted)

    @property
    def polylines(self) -> tuple[Polyline, ...]:
        return tuple(self._polylines.values())

    def contains_vertex(self, vertex: Vertex) -> bool:
        return (
            vertex.dataset is self
            and self._vertices.get(vertex.vertex_id) is vertex
            and not vertex.is_deleted
        )

    def contains_polyline(self, polyline: Polyline) -> bool:
        return self._polylines.get(polyline.polyline_id) is polyline

    def polyline(self, polyline_id: int) -> Polyline:
        return self._polylines[polyline_id]

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    def create_vertex(
        self, position: Point, tags: Mapping[str, str] | None = None
    ) -> Vertex:
        vertex = Vertex(
            vertex_id=next(self._vertex_ids),
            position=(float(position[0]), float(position[1])),
            tags=dict(tags or {}),
            dataset=self,
        )
        self._vertices[vertex.vertex_id] = vertex
        self._notify(self.vertices_added, (vertex,))
        return vertex

    def create_polyline(self, vertices: Sequence[Vertex]) -> Polyline:
        self._require_live_vertices(vertices)
        polyline = Polyline(polyline_id=next(self._polyline_ids), dataset=self)
        self._polylines[polyline.polyline_id] = polyline
        self._attach(polyline, vertices)
        return polyline

    def set_polyline_vertices(self, polyline: Polyline, vertices: Sequence[Vertex]) -> None:
        if not self.contains_polyline(polyline):
            raise ValueError(f"{polyline!r} is not owned by this dataset.")
        self._require_live_vertices(vertices)
        for vertex in polyline.vertices:
            vertex._discard_referrer(polyline)
        self._attach(polyline, vertices)
        self._notify(self.nodes_changed, polyline)

    def remove_polyline(self, polyline: Polyline) -> None:
        if not self.contains_polyline(polyline):
            raise ValueError(f"{polyline!r} is not owned by this dataset.")
        for vertex in polyline.vertices:
            vertex._discard_referrer(polyline)
        del self._polylines[polyline.polyline_id]
        polyline.dataset = None
        self._notify(self.nodes_changed, polyline)

    def delete_vertex(self, vertex: Vertex) -> None:
        if not self.contains_vertex(vertex):
            raise ValueError(f"{vertex!r} is not a live vertex of this dataset.")
        if vertex.referrers:
            raise ValueError(
                f"{vertex!r} is still referenced by {len(vertex.referrers)} polyline(s)."
            )
        vertex._set_deleted(True)
        self._notify(self.vertices_removed, (vertex,))

    def undelete_vertex(self, vertex: Vertex) -> None:
        if vertex.dataset is not self or not vertex.is_deleted:
            raise ValueError(f"{vertex!r} is not a deleted vertex of this dataset.")
        vertex._set_deleted(False)
        self._notify(self.vertices_added, (vertex,))

    @contextmanager
    def batch_update(self) -> Iterator["Dataset"]:
        """Suppress per-change signals and emit a single ``data_changed`` at the end."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending_change:
                self._pending_change = False
                logger.debug("Dataset batch update finished, emitting data_changed")
                self.data_changed.emit()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _attach(self, polyline: Polyline, vertices: Sequence[Vertex]) -> None:
        polyline._set_nodes(vertices)
        for vertex in polyline.vertices:
            vertex._add_referrer(polyline)

    def _require_live_vertices(self, vertices: Iterable[Vertex]) -> None:
        for vertex in vertices:
            if not self.contains_vertex(vertex):
                raise ValueError(f"{vertex!r} is not a live vertex of this dataset.")

    def _notify(self, signal, payload) -> None:
        if self._batch_depth:
            self._pending_change = True
            return
        signal.emit(payload)

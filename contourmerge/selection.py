from __future__ import annotations

import logging

from PyQt5 import QtCore

from contourmerge.config import MergeSettings
from contourmerge.model.dataset import Dataset, Polyline, PolylineSegment, Vertex
from contourmerge.model.merge_planner import plan_merge
from contourmerge.model.edit_commands import MergeCommand, MutationOp
from contourmerge.model.slice import Slice, slice_from_selection

logger = logging.getLogger(__name__)


class SelectionState(QtCore.QObject):
    """Vertices marked as slice boundaries in one editing session.

    The state listens to its dataset and prunes vertices that were deleted,
    left the dataset or lost their last polyline.
    """

    selectionChanged = QtCore.pyqtSignal(object)

    def __init__(
        self,
        dataset: Dataset,
        settings: MergeSettings | None = None,
        parent: QtCore.QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._dataset = dataset
        self._settings = settings or MergeSettings()
        self._selected: list[Vertex] = []
        self._drag_start_segment: PolylineSegment | None = None
        self._drop_segment: PolylineSegment | None = None
        self._attached = False
        self._attach()

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def settings(self) -> MergeSettings:
        return self._settings

    @property
    def selected_vertices(self) -> tuple[Vertex, ...]:
        return tuple(self._selected)

    # ------------------------------------------------------------------
    # Selecting vertices
    # ------------------------------------------------------------------
    def is_selected(self, vertex: Vertex) -> bool:
        self._require_owned(vertex)
        return any(candidate is vertex for candidate in self._selected)

    def select_vertex(self, vertex: Vertex) -> None:
        if self.is_selected(vertex):
            return
        if not self._dataset.contains_vertex(vertex):
            raise ValueError(f"{vertex!r} is deleted and can't be selected.")
        if not vertex.referrers:
            raise ValueError(f"{vertex!r} is not on any polyline and can't be selected.")
        self._selected.append(vertex)
        logger.debug("Selected %r (selection size %d)", vertex, len(self._selected))
        self.selectionChanged.emit(self.selected_vertices)

    def deselect_vertex(self, vertex: Vertex) -> None:
        if not self.is_selected(vertex):
            return
        self._selected = [candidate for candidate in self._selected if candidate is not vertex]
        logger.debug("Deselected %r (selection size %d)", vertex, len(self._selected))
        self.selectionChanged.emit(self.selected_vertices)

    def toggle_selected(self, vertex: Vertex) -> None:
        if self.is_selected(vertex):
            self.deselect_vertex(vertex)
        else:
            self.select_vertex(vertex)

    def clear_selection(self) -> None:
        if not self._selected:
            return
        self._selected = []
        logger.debug("Selection cleared")
        self.selectionChanged.emit(self.selected_vertices)

    def reset(self) -> None:
        self._drag_start_segment = None
        self._drop_segment = None
        self.clear_selection()

    def selected_polylines(self) -> set[Polyline]:
        return {polyline for vertex in self._selected for polyline in vertex.referrers}

    def selected_vertices_on(self, polyline: Polyline) -> list[Vertex]:
        return [vertex for vertex in self._selected if polyline in vertex.referrers]

    def selected_indices_on(self, polyline: Polyline) -> list[int]:
        return sorted(polyline.index_of(vertex) for vertex in self.selected_vertices_on(polyline))

    # ------------------------------------------------------------------
    # Slices and drag/drop
    # ------------------------------------------------------------------
    def slice_from_segment(self, segment: PolylineSegment | None) -> Slice | None:
        if segment is None:
            return None
        polyline = segment.polyline
        if len(polyline) == 0 or not self._dataset.contains_polyline(polyline):
            # stale segments show up after undo/redo left the dataset changed
            return None
        return slice_from_selection(
            polyline, segment.lower_index, self.selected_indices_on(polyline)
        )

    def set_drag_start_segment(self, segment: PolylineSegment | None) -> None:
        self._drag_start_segment = segment

    @property
    def drag_start_segment(self) -> PolylineSegment | None:
        return self._drag_start_segment

    def set_drop_segment(self, segment: PolylineSegment | None) -> None:
        self._drop_segment = segment

    @property
    def drop_segment(self) -> PolylineSegment | None:
        return self._drop_segment

    def drag_source(self) -> Slice | None:
        return self.slice_from_segment(self._drag_start_segment)

    def drop_target(self) -> Slice | None:
        return self.slice_from_segment(self._drop_segment)

    def is_segment_draggable(self, segment: PolylineSegment | None) -> bool:
        return self.slice_from_segment(segment) is not None

    def is_potential_drop_target(self, segment: PolylineSegment | None) -> bool:
        target = self.slice_from_segment(segment)
        if target is None:
            return False
        # never drop onto the polyline we drag from, not even a different slice of it
        source = self.drag_source()
        if source is None:
            return True
        return source.polyline is not target.polyline

    def build_merge_plan(self) -> list[MutationOp]:
        return plan_merge(
            self.drag_source(),
            self.drop_target(),
            report_slings=self._settings.report_slings,
        )

    def build_merge_command(self) -> MergeCommand | None:
        """Return a command for the current drag/drop, or ``None`` if nothing merges."""
        operations = self.build_merge_plan()
        if not operations:
            return None
        return MergeCommand(
            self._dataset, operations, validate=self._settings.validate_before_apply
        )

    # ------------------------------------------------------------------
    # Consistency
    # ------------------------------------------------------------------
    def ensure_consistent(self) -> None:
        kept = [
            vertex
            for vertex in self._selected
            if self._dataset.contains_vertex(vertex) and vertex.referrers
        ]
        if len(kept) == len(self._selected):
            return
        logger.debug(
            "Pruned %d stale vertex(es) from selection", len(self._selected) - len(kept)
        )
        self._selected = kept
        self.selectionChanged.emit(self.selected_vertices)

    def detach(self) -> None:
        """Stop listening to the dataset."""
        if not self._attached:
            return
        self._dataset.vertices_removed.disconnect(self._on_dataset_changed)
        self._dataset.nodes_changed.disconnect(self._on_dataset_changed)
        self._dataset.data_changed.disconnect(self._on_dataset_changed)
        self._attached = False

    def _attach(self) -> None:
        self._dataset.vertices_removed.connect(self._on_dataset_changed)
        self._dataset.nodes_changed.connect(self._on_dataset_changed)
        self._dataset.data_changed.connect(self._on_dataset_changed)
        self._attached = True

    def _on_dataset_changed(self, *_args) -> None:
        self.ensure_consistent()

    def _require_owned(self, vertex: Vertex) -> None:
        if vertex is None or vertex.dataset is not self._dataset:
            raise ValueError("Vertex must be owned by this selection's dataset.")

"""Mutation operations produced by a merge and the command that applies them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from typing import Sequence, Union

from contourmerge.model.dataset import Dataset, Polyline, Vertex
from contourmerge.model.invariants import InvariantError, validate_closed_ring
from contourmerge.model.slice import Slice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplaceVertices:
    """Replace ``source``'s run of nodes by ``new_vertices``.

    ``replacement`` is the detached polyline computed when the op was
    planned; its node list becomes the live polyline's node list on apply.
    ``planned_nodes`` is the polyline's node list at planning time; the op
    is stale once the live polyline no longer matches it.
    """

    source: Slice
    new_vertices: tuple[Vertex, ...]
    replacement: Polyline
    planned_nodes: tuple[Vertex, ...] | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.planned_nodes is None:
            object.__setattr__(self, "planned_nodes", self.source.polyline.vertices)

    def is_stale(self) -> bool:
        current = self.polyline.vertices
        return len(current) != len(self.planned_nodes) or any(
            a is not b for a, b in zip(current, self.planned_nodes)
        )

    @property
    def polyline(self) -> Polyline:
        return self.source.polyline


@dataclass(frozen=True)
class DeleteVertex:
    vertex: Vertex


MutationOp = Union[ReplaceVertices, DeleteVertex]


class EditCommand(ABC):
    """Base class for reversible dataset edit commands."""

    @abstractmethod
    def apply(self) -> bool:
        """Apply the command; return True if the dataset changed."""

    @abstractmethod
    def revert(self) -> bool:
        """Undo a previous :meth:`apply`; return True if the dataset changed."""


class MergeCommand(EditCommand):
    """Apply a planned merge to a dataset as one atomic batch.

    The whole batch is validated before the first mutation, so a failing
    merge leaves the dataset untouched. A replace planned against an older
    node list is refused even with validation off, and a mutation that
    fails part way is rolled back before the error propagates.
    """

    def __init__(
        self,
        dataset: Dataset,
        operations: Sequence[MutationOp],
        *,
        validate: bool = True,
    ) -> None:
        self._dataset = dataset
        self._operations = list(operations)
        self._validate = validate
        self._previous_nodes: list[tuple[Polyline, tuple[Vertex, ...]]] = []
        self._deleted: list[Vertex] = []
        self._applied = False

    @property
    def operations(self) -> list[MutationOp]:
        return list(self._operations)

    @property
    def is_applied(self) -> bool:
        return self._applied

    def validate(self) -> None:
        """Check the full batch against the dataset without changing it."""
        self._require_current_plan()
        pending_nodes: dict[Polyline, list[Vertex]] = {
            polyline: list(polyline.vertices) for polyline in self._dataset.polylines
        }
        for op in self._operations:
            if isinstance(op, ReplaceVertices):
                polyline = op.polyline
                if not self._dataset.contains_polyline(polyline):
                    raise ValueError(f"{polyline!r} is not owned by the dataset.")
                nodes = list(op.replacement.vertices)
                for vertex in nodes:
                    if not self._dataset.contains_vertex(vertex):
                        raise ValueError(f"{vertex!r} is not a live vertex of the dataset.")
                if polyline.is_closed:
                    validate_closed_ring(nodes, polyline.polyline_id)
                pending_nodes[polyline] = nodes

        for op in self._operations:
            if isinstance(op, DeleteVertex):
                vertex = op.vertex
                if not self._dataset.contains_vertex(vertex):
                    raise ValueError(f"{vertex!r} is not a live vertex of the dataset.")
                holders = [
                    polyline.polyline_id
                    for polyline, nodes in pending_nodes.items()
                    if any(node is vertex for node in nodes)
                ]
                if holders:
                    raise InvariantError(
                        f"{vertex!r} would be deleted while still used by polylines {holders}."
                    )

    def apply(self) -> bool:
        if self._applied:
            raise RuntimeError("Merge command has already been applied.")
        if not self._operations:
            logger.debug("Merge command skipped: no operations")
            return False
        try:
            if self._validate:
                self.validate()
            else:
                self._require_current_plan()
        except ValueError:
            logger.warning("Merge rejected, dataset left untouched", exc_info=True)
            raise

        self._previous_nodes = []
        self._deleted = []
        with self._dataset.batch_update():
            try:
                for op in self._operations:
                    if isinstance(op, ReplaceVertices):
                        self._previous_nodes.append((op.polyline, op.polyline.vertices))
                        self._dataset.set_polyline_vertices(op.polyline, op.replacement.vertices)
                for op in self._operations:
                    if isinstance(op, DeleteVertex):
                        self._dataset.delete_vertex(op.vertex)
                        self._deleted.append(op.vertex)
            except Exception:
                logger.warning("Merge failed part way, rolling back", exc_info=True)
                self._restore()
                raise
        self._applied = True
        logger.info(
            "Merged contour: %d polyline(s) changed, %d vertex(es) deleted",
            len(self._previous_nodes),
            len(self._deleted),
        )
        return True

    def revert(self) -> bool:
        if not self._applied:
            return False
        with self._dataset.batch_update():
            self._restore()
        self._applied = False
        logger.info("Reverted contour merge on %d polyline(s)", len(self._previous_nodes))
        return True

    def _require_current_plan(self) -> None:
        for op in self._operations:
            if isinstance(op, ReplaceVertices) and op.is_stale():
                raise InvariantError(
                    f"{op.polyline!r} changed after the merge was planned."
                )

    def _restore(self) -> None:
        # deleted vertices come back first so the old node lists are live again
        for vertex in reversed(self._deleted):
            self._dataset.undelete_vertex(vertex)
        for polyline, nodes in reversed(self._previous_nodes):
            self._dataset.set_polyline_vertices(polyline, nodes)

from .model.dataset import Dataset, Polyline, PolylineSegment, Vertex
from .model.edit_commands import DeleteVertex, MergeCommand, MutationOp, ReplaceVertices
from .model.invariants import InvariantError
from .model.merge_planner import are_direction_aligned, plan_merge
from .model.slice import Slice, build_slice, slice_from_selection
from .selection import SelectionState
from .session_registry import SessionRegistry

__all__ = [
    "Dataset",
    "Polyline",
    "PolylineSegment",
    "Vertex",
    "Slice",
    "build_slice",
    "slice_from_selection",
    "are_direction_aligned",
    "plan_merge",
    "MutationOp",
    "ReplaceVertices",
    "DeleteVertex",
    "MergeCommand",
    "InvariantError",
    "SelectionState",
    "SessionRegistry",
]

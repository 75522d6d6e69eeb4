"""Registry of selection states, one per editing session."""

from __future__ import annotations

import logging
from typing import Hashable

from contourmerge.config import MergeSettings
from contourmerge.model.dataset import Dataset
from contourmerge.selection import SelectionState

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Create, look up and tear down :class:`SelectionState` objects.

    The host calls :meth:`create_session` when an editing surface appears
    and :meth:`teardown_session` when it goes away.
    """

    def __init__(self, settings: MergeSettings | None = None) -> None:
        self._settings = settings or MergeSettings()
        self._states: dict[Hashable, SelectionState] = {}
        self._active_key: Hashable | None = None

    def create_session(self, key: Hashable, dataset: Dataset) -> SelectionState:
        if key in self._states:
            raise ValueError(f"Session {key!r} already exists.")
        state = SelectionState(dataset, settings=self._settings)
        self._states[key] = state
        logger.debug("Created contour merge session %r", key)
        return state

    def teardown_session(self, key: Hashable) -> None:
        state = self._states.pop(key, None)
        if state is None:
            return
        state.detach()
        if self._active_key == key:
            self._active_key = None
        logger.debug("Tore down contour merge session %r", key)

    def get(self, key: Hashable) -> SelectionState | None:
        return self._states.get(key)

    def keys(self) -> list[Hashable]:
        return list(self._states)

    def set_active(self, key: Hashable | None) -> None:
        if key is not None and key not in self._states:
            raise ValueError(f"Unknown session {key!r}.")
        self._active_key = key

    @property
    def active_key(self) -> Hashable | None:
        return self._active_key

    def active_state(self) -> SelectionState | None:
        if self._active_key is None:
            return None
        return self._states.get(self._active_key)

    def clear(self) -> None:
        for key in list(self._states):
            self.teardown_session(key)

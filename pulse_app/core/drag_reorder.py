"""Pointer-driven drag model for reordering the question list.

The controller is independent of any widget toolkit. The view reports
presses, moves and releases in one coordinate space together with the row
geometry it measured; the controller answers with where the floating ghost
should be drawn, where the placeholder goes and, on release, the committed
order.

Ancestor widgets may remap the ghost's coordinates (scroll areas, nested
layouts). The view therefore reports where the ghost actually landed after
each update and the discrepancy is folded into a running correction.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

GHOST_CORRECTION_THRESHOLD = 1.0


@dataclass(frozen=True, slots=True)
class Point:
    x: float
    y: float

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)


@dataclass(frozen=True, slots=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def top_left(self) -> Point:
        return Point(self.x, self.y)

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2


@dataclass(frozen=True, slots=True)
class LayoutSlot:
    """One entry of the list as it should be laid out during a drag."""

    item_id: str | None
    height: float | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.item_id is None


@dataclass(frozen=True, slots=True)
class DragCommit:
    item_id: str
    from_index: int
    to_index: int
    order: tuple[str, ...]


@dataclass(slots=True)
class _DragState:
    item_id: str
    origin_rect: Rect
    pointer_offset: Point
    pointer: Point
    target_index: int
    correction: Point


class DragReorderController:
    """State machine for one drag at a time over an ordered list of ids."""

    def __init__(
        self,
        on_commit: Callable[[list[str]], None] | None = None,
        lock_horizontal: bool = True,
    ) -> None:
        self._on_commit = on_commit
        self._lock_horizontal = lock_horizontal
        self._items: list[str] = []
        self._drag: _DragState | None = None

    @property
    def items(self) -> list[str]:
        return list(self._items)

    def set_items(self, item_ids: Sequence[str]) -> None:
        """Replace the list being ordered; safe to call while a drag is active."""
        self._items = list(item_ids)

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None

    @property
    def dragging_id(self) -> str | None:
        return self._drag.item_id if self._drag else None

    @property
    def target_index(self) -> int | None:
        return self._drag.target_index if self._drag else None

    def press(self, item_id: str, pointer: Point, row_rect: Rect) -> bool:
        """Start dragging ``item_id``; refused while another drag is active."""
        if self._drag is not None or item_id not in self._items:
            return False
        self._drag = _DragState(
            item_id=item_id,
            origin_rect=row_rect,
            pointer_offset=pointer - row_rect.top_left,
            pointer=pointer,
            target_index=self._items.index(item_id),
            correction=Point(0.0, 0.0),
        )
        return True

    def move(self, pointer: Point, other_row_rects: Sequence[Rect]) -> int | None:
        """Track the pointer; ``other_row_rects`` excludes the dragged row and the placeholder."""
        if self._drag is None:
            return None
        self._drag.pointer = pointer
        self._drag.target_index = sum(1 for rect in other_row_rects if rect.mid_y < pointer.y)
        return self._drag.target_index

    def ghost_target(self) -> Point | None:
        """Where the ghost's top-left corner should appear to the user."""
        if self._drag is None:
            return None
        target = self._drag.pointer - self._drag.pointer_offset
        if self._lock_horizontal:
            target = Point(self._drag.origin_rect.x, target.y)
        return target

    def ghost_position(self) -> Point | None:
        """Position to assign to the ghost widget, including the correction."""
        target = self.ghost_target()
        if target is None or self._drag is None:
            return None
        return target + self._drag.correction

    def observe_ghost(self, rendered: Point) -> bool:
        """Feed back where the ghost was actually drawn; returns True when corrected."""
        target = self.ghost_target()
        if target is None or self._drag is None:
            return False
        diff = target - rendered
        if abs(diff.x) <= GHOST_CORRECTION_THRESHOLD and abs(diff.y) <= GHOST_CORRECTION_THRESHOLD:
            return False
        self._drag.correction = self._drag.correction + diff
        return True

    def layout(self) -> list[LayoutSlot]:
        if self._drag is None:
            return [LayoutSlot(item_id=item_id) for item_id in self._items]
        others = [LayoutSlot(item_id=item_id) for item_id in self._items if item_id != self._drag.item_id]
        index = max(0, min(self._drag.target_index, len(others)))
        others.insert(index, LayoutSlot(item_id=None, height=self._drag.origin_rect.height))
        return others

    def release(self) -> DragCommit | None:
        """End the drag and commit the new order when the row moved."""
        drag = self._drag
        self._drag = None
        if drag is None or drag.item_id not in self._items:
            return None

        from_index = self._items.index(drag.item_id)
        to_index = max(0, min(drag.target_index, len(self._items) - 1))
        if to_index == from_index:
            return None

        order = [item_id for item_id in self._items if item_id != drag.item_id]
        order.insert(to_index, drag.item_id)
        self._items = order
        commit = DragCommit(item_id=drag.item_id, from_index=from_index, to_index=to_index, order=tuple(order))
        logger.debug("Moved %s from %d to %d", drag.item_id, from_index, to_index)
        if self._on_commit is not None:
            self._on_commit(list(order))
        return commit

    def cancel(self) -> None:
        self._drag = None

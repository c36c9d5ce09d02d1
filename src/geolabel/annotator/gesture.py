"""Pointer-driven drawing as an explicit state machine.

States: IDLE -> DRAWING -> COMMITTING -> IDLE. The gesture works in image
coordinates; callers pass the current viewport ``scale`` so size and distance
thresholds, which are defined in display pixels, stay consistent at any zoom.

The interaction mode is an argument of every pointer event, never stored
globally. Switching mode in the middle of a drawing cancels the partial shape.

- BBOX    : down starts, move stretches, up commits if both sides exceed the
            minimum size (otherwise the drag is dropped as a click)
- POINT   : up commits a point at the release position
- POLYGON : each down adds a vertex; a down near the first vertex (with at
            least three vertices) closes the ring, as does `finish()`
"""
from enum import Enum
from typing import Iterable, List, Optional, Tuple
import logging
import math

from geolabel.annotator.config import DRAW
from geolabel.annotator.geometry import BoundingBox, Point, Polygon
from geolabel.annotator.utils import finite_pair

logger = logging.getLogger(__name__)


class InteractionMode(str, Enum):
    SELECT = 'select'
    PAN = 'pan'
    BBOX = 'bbox'
    POLYGON = 'polygon'
    POINT = 'point'


DRAW_MODES = (InteractionMode.BBOX, InteractionMode.POLYGON, InteractionMode.POINT)


class GestureState(str, Enum):
    IDLE = 'idle'
    DRAWING = 'drawing'
    COMMITTING = 'committing'


class DrawGesture:

    def __init__(self, min_box_size: float = DRAW['min_box_size'],
                 close_tolerance: float = DRAW['polygon_close_tolerance']):
        self.min_box_size = float(min_box_size)
        self.close_tolerance = float(close_tolerance)
        self.state = GestureState.IDLE
        self.mode: Optional[InteractionMode] = None
        self.points: List[Tuple[float, float]] = []
        self.cursor: Optional[Tuple[float, float]] = None
        self.transitions: List[Tuple[str, str, str]] = []

    def _go(self, new_state: GestureState, event: str) -> None:
        self.transitions.append((self.state.value, new_state.value, event))
        self.state = new_state

    def _reset(self, event: str) -> None:
        self._go(GestureState.IDLE, event)
        self.mode = None
        self.points = []
        self.cursor = None

    def _commit(self, geometry):
        self._go(GestureState.COMMITTING, 'commit')
        logger.debug('gesture committed %s', type(geometry).__name__)
        self._reset('committed')
        return geometry

    @property
    def partial(self):
        """Preview of the shape being drawn, or None."""
        if self.state is not GestureState.DRAWING or not self.points:
            return None
        if self.mode is InteractionMode.BBOX:
            return BoundingBox(self.points[0], self.cursor or self.points[0])
        if self.mode is InteractionMode.POLYGON:
            return tuple(self.points) + ((self.cursor,) if self.cursor else ())
        return None

    def pointer_down(self, mode, point, scale: float = 1.0):
        mode = InteractionMode(mode)
        if mode not in DRAW_MODES:
            raise ValueError(f'{mode.value} is not a drawing mode')
        p = finite_pair(point)
        if self.state is GestureState.DRAWING and mode is not self.mode:
            self.cancel()

        if self.state is GestureState.IDLE:
            self.mode = mode
            self.points = [p]
            self.cursor = p
            self._go(GestureState.DRAWING, 'down')
            return None

        # only polygons receive further downs while drawing
        if self.mode is InteractionMode.POLYGON:
            if len(self.points) >= 3 and self._near_first(p, scale):
                return self._commit(Polygon(tuple(self.points)))
            if p != self.points[-1]:
                self.points.append(p)
            self.cursor = p
        return None

    def pointer_move(self, point) -> None:
        if self.state is GestureState.DRAWING:
            self.cursor = finite_pair(point)

    def pointer_up(self, point, scale: float = 1.0):
        if self.state is not GestureState.DRAWING:
            return None
        p = finite_pair(point)
        self.cursor = p
        if self.mode is InteractionMode.POINT:
            return self._commit(Point(p[0], p[1]))
        if self.mode is InteractionMode.BBOX:
            start = self.points[0]
            w = abs(p[0] - start[0]) * scale
            h = abs(p[1] - start[1]) * scale
            if w > self.min_box_size and h > self.min_box_size:
                x0, y0 = min(start[0], p[0]), min(start[1], p[1])
                x1, y1 = max(start[0], p[0]), max(start[1], p[1])
                return self._commit(BoundingBox((x0, y0), (x1, y1)))
            self._reset('too-small')
        return None

    def finish(self):
        """Close the polygon being drawn; too few vertices cancels instead."""
        if self.state is GestureState.DRAWING and self.mode is InteractionMode.POLYGON:
            if len(self.points) >= 3:
                return self._commit(Polygon(tuple(self.points)))
            self._reset('too-few-vertices')
        return None

    def cancel(self) -> None:
        if self.state is not GestureState.IDLE:
            self._reset('cancel')

    def _near_first(self, p, scale: float) -> bool:
        fx, fy = self.points[0]
        return math.hypot(p[0] - fx, p[1] - fy) * scale <= self.close_tolerance


def replay(events: Iterable[tuple], gesture: Optional[DrawGesture] = None) -> list:
    """Feed a recorded event sequence through a gesture; return committed geometries.

    Events are tuples ``(kind, mode, point)`` with kind one of 'down', 'move',
    'up', 'finish' or 'cancel' (mode/point ignored where not needed).
    """
    g = gesture or DrawGesture()
    out = []
    for event in events:
        kind = event[0]
        if kind == 'down':
            res = g.pointer_down(event[1], event[2])
        elif kind == 'move':
            res = g.pointer_move(event[2])
        elif kind == 'up':
            res = g.pointer_up(event[2])
        elif kind == 'finish':
            res = g.finish()
        elif kind == 'cancel':
            res = g.cancel()
        else:
            raise ValueError(f'unknown gesture event {kind!r}')
        if res is not None:
            out.append(res)
    return out

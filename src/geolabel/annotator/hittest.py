"""
hittest.py

Point containment and topmost-annotation selection.

Containment rules:
- bounding box: inclusive on all four sides, corners in any order
- polygon: even-odd ray casting along +x. A point exactly on an edge or a
  vertex counts as inside; this is checked before the crossing count, with a
  small relative tolerance (`BOUNDARY_RTOL`) on the edge test. The parity
  rule is applied as-is to self-intersecting rings.
- point: never contains anything

Public functions:
- `point_in_bbox(corner1, corner2, point)`
- `point_in_polygon(vertices, point)`
- `contains(geometry, point)`
- `hit_test(annotations, point)` -> id of the topmost visible hit or None
- `hits_at(annotations, point)`  -> all visible hits, topmost first

"""
from typing import Iterable, List, Optional
import numpy as np

from geolabel.annotator.geometry import BoundingBox, Polygon
from geolabel.annotator.utils import finite_pair

BOUNDARY_RTOL = 1e-9


def point_in_bbox(corner1, corner2, point) -> bool:
    px, py = point
    x1, y1 = corner1
    x2, y2 = corner2
    return min(x1, x2) <= px <= max(x1, x2) and min(y1, y2) <= py <= max(y1, y2)


def on_boundary(vertices, point) -> bool:
    """True when ``point`` lies on any edge of the closed ring (vertices included)."""
    v = np.asarray(vertices, dtype=float)
    px, py = point
    a = v
    b = np.roll(v, -1, axis=0)
    ex = b[:, 0] - a[:, 0]
    ey = b[:, 1] - a[:, 1]
    wx = px - a[:, 0]
    wy = py - a[:, 1]
    cross = ex * wy - ey * wx
    within_x = (np.minimum(a[:, 0], b[:, 0]) <= px) & (px <= np.maximum(a[:, 0], b[:, 0]))
    within_y = (np.minimum(a[:, 1], b[:, 1]) <= py) & (py <= np.maximum(a[:, 1], b[:, 1]))
    # tolerance scales with both vector lengths
    tol = BOUNDARY_RTOL * np.hypot(ex, ey) * np.hypot(wx, wy)
    return bool(np.any((np.abs(cross) <= tol) & within_x & within_y))


def point_in_polygon(vertices, point) -> bool:
    """Even-odd containment with an inclusive boundary."""
    if on_boundary(vertices, point):
        return True
    v = np.asarray(vertices, dtype=float)
    px, py = point
    xi, yi = v[:, 0], v[:, 1]
    xj, yj = np.roll(xi, 1), np.roll(yi, 1)
    # edge straddles the horizontal line through the point (half-open in y)
    straddles = (yi > py) != (yj > py)
    dy = np.where(straddles, yj - yi, 1.0)
    x_cross = (xj - xi) * (py - yi) / dy + xi
    crossings = np.count_nonzero(straddles & (px < x_cross))
    return bool(crossings % 2 == 1)


def contains(geometry, point) -> bool:
    if isinstance(geometry, BoundingBox):
        return point_in_bbox(geometry.corner1, geometry.corner2, point)
    if isinstance(geometry, Polygon):
        return point_in_polygon(geometry.vertices, point)
    return False


def hits_at(annotations: Iterable, point) -> List[str]:
    """Ids of every visible annotation containing ``point``, topmost first."""
    p = finite_pair(point)
    return [a.id for a in reversed(tuple(annotations)) if a.visible and contains(a.geometry, p)]


def hit_test(annotations: Iterable, point) -> Optional[str]:
    """Id of the last-inserted visible annotation containing ``point``."""
    p = finite_pair(point)
    for a in reversed(tuple(annotations)):
        if a.visible and contains(a.geometry, p):
            return a.id
    return None

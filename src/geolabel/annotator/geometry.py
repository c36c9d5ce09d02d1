"""
geometry.py

Annotation geometry kinds and small coordinate helpers.

The three geometry kinds form a closed set. Each one validates its own vertex
count and coordinate finiteness at construction, so an instance that exists is
always well-formed:

- `Point(x, y)`
- `BoundingBox(corner1, corner2)`   exactly two corners, any order
- `Polygon(vertices)`               three or more vertices, open ring

Public functions:
- `make_geometry(kind, coords)`            -> geometry from a type tag
- `geometry_type(geom)`                    -> 'point' | 'bbox' | 'polygon'
- `vertices(geom)`                         -> tuple of (x, y)
- `bounds(geom)`                           -> (minx, miny, maxx, maxy)
- `label_anchor(geom)`                     -> (x, y) where a label is drawn
- `affine_from_extent(extent, w, h)`       -> `affine.Affine`
- `image_to_geo(transform, xs, ys)`        -> (gx, gy)
- `geo_to_image(transform, gx, gy)`        -> (xs, ys)

"""
from dataclasses import dataclass
from typing import Tuple, Union
import numpy as np
from affine import Affine

from geolabel.annotator.errors import ValidationError
from geolabel.annotator.utils import finite_pair

Coord = Tuple[float, float]

GEOMETRY_TYPES = ('point', 'bbox', 'polygon')


def _coord(value, name):
    try:
        return finite_pair(value, name)
    except ValueError as e:
        raise ValidationError(str(e), reason='DegenerateGeometry') from e


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def __post_init__(self):
        x, y = _coord((self.x, self.y), 'point')
        object.__setattr__(self, 'x', x)
        object.__setattr__(self, 'y', y)


@dataclass(frozen=True)
class BoundingBox:
    corner1: Coord
    corner2: Coord

    def __post_init__(self):
        object.__setattr__(self, 'corner1', _coord(self.corner1, 'corner1'))
        object.__setattr__(self, 'corner2', _coord(self.corner2, 'corner2'))

    @property
    def min_corner(self) -> Coord:
        return (min(self.corner1[0], self.corner2[0]), min(self.corner1[1], self.corner2[1]))

    @property
    def max_corner(self) -> Coord:
        return (max(self.corner1[0], self.corner2[0]), max(self.corner1[1], self.corner2[1]))

    @property
    def width(self) -> float:
        return abs(self.corner2[0] - self.corner1[0])

    @property
    def height(self) -> float:
        return abs(self.corner2[1] - self.corner1[1])


@dataclass(frozen=True)
class Polygon:
    vertices: Tuple[Coord, ...]

    def __post_init__(self):
        try:
            raw = list(self.vertices)
        except TypeError as e:
            raise ValidationError('polygon vertices must be a sequence', reason='DegenerateGeometry') from e
        verts = tuple(_coord(v, f'vertex {i}') for i, v in enumerate(raw))
        # stored rings are open; drop a closing vertex that repeats the first
        if len(verts) > 1 and verts[0] == verts[-1]:
            verts = verts[:-1]
        if len(verts) < 3:
            raise ValidationError(
                f'polygon needs at least 3 vertices, got {len(verts)}', reason='DegenerateGeometry')
        object.__setattr__(self, 'vertices', verts)


Geometry = Union[Point, BoundingBox, Polygon]


def is_geometry(value) -> bool:
    return isinstance(value, (Point, BoundingBox, Polygon))


def geometry_type(geom: Geometry) -> str:
    """Return the interchange type tag for ``geom``."""
    if isinstance(geom, Point):
        return 'point'
    if isinstance(geom, BoundingBox):
        return 'bbox'
    if isinstance(geom, Polygon):
        return 'polygon'
    raise ValidationError(f'not a geometry: {type(geom).__name__}', reason='DegenerateGeometry')


def make_geometry(kind: str, coords) -> Geometry:
    """Build a geometry from a type tag and a coordinate payload.

    - 'point'   : [x, y]
    - 'bbox'    : [[x1, y1], [x2, y2]]  (exactly two corners)
    - 'polygon' : [[x, y], ...]         (three or more)
    """
    if kind == 'point':
        x, y = _coord(coords, 'point')
        return Point(x, y)
    if kind not in ('bbox', 'polygon'):
        raise ValidationError(f'unknown geometry type {kind!r}', reason='UnknownType')
    try:
        pts = list(coords)
    except TypeError as e:
        raise ValidationError(f'{kind} coordinates must be a sequence', reason='DegenerateGeometry') from e
    if kind == 'bbox':
        if len(pts) != 2:
            raise ValidationError(
                f'bounding box needs exactly 2 corners, got {len(pts)}', reason='DegenerateGeometry')
        return BoundingBox(pts[0], pts[1])
    return Polygon(tuple(pts))


def vertices(geom: Geometry) -> Tuple[Coord, ...]:
    if isinstance(geom, Point):
        return ((geom.x, geom.y),)
    if isinstance(geom, BoundingBox):
        return (geom.corner1, geom.corner2)
    return geom.vertices


def bounds(geom: Geometry) -> Tuple[float, float, float, float]:
    """Axis-aligned bounds (minx, miny, maxx, maxy) of any geometry."""
    pts = np.asarray(vertices(geom), dtype=float)
    mn = pts.min(axis=0)
    mx = pts.max(axis=0)
    return float(mn[0]), float(mn[1]), float(mx[0]), float(mx[1])


def label_anchor(geom: Geometry) -> Coord:
    """Where the label text goes.

    Bounding boxes anchor at their top-left corner, polygons at the mean of
    their vertices, points at themselves.
    """
    if isinstance(geom, BoundingBox):
        return geom.min_corner
    pts = np.asarray(vertices(geom), dtype=float)
    c = pts.mean(axis=0)
    return float(c[0]), float(c[1])


def affine_from_extent(extent, width: int, height: int) -> Affine:
    """Pixel->geo transform for a north-up raster covering ``extent``.

    Pixel (0, 0) is the top-left corner of the image and maps to
    (minx, maxy).
    """
    minx, miny, maxx, maxy = (float(v) for v in extent)
    if width <= 0 or height <= 0:
        raise ValueError('width and height must be positive')
    if not (maxx > minx and maxy > miny):
        raise ValueError(f'degenerate extent {extent!r}')
    xres = (maxx - minx) / float(width)
    yres = (maxy - miny) / float(height)
    return Affine(xres, 0.0, minx, 0.0, -yres, maxy)


def image_to_geo(transform, xs, ys) -> Tuple[np.ndarray, np.ndarray]:
    """Convert image pixel coordinates to geographic coordinates.

    Parameters:
    - transform: affine.Affine-like object supporting ``transform * (x, y)``.
    - xs, ys: scalars or array-like of the same shape (column, row order).

    Returns: (gx, gy) floats for scalar input, float arrays otherwise.
    """
    xs_a = np.asarray(xs, dtype=float)
    ys_a = np.asarray(ys, dtype=float)
    scalar = False
    if xs_a.shape == () and ys_a.shape == ():
        scalar = True
        xs_a = xs_a[None]
        ys_a = ys_a[None]

    gx = np.empty_like(xs_a, dtype=float)
    gy = np.empty_like(xs_a, dtype=float)
    it = np.nditer(xs_a, flags=['multi_index'])
    while not it.finished:
        i = it.multi_index
        xw, yw = transform * (float(xs_a[i]), float(ys_a[i]))
        gx[i] = float(xw)
        gy[i] = float(yw)
        it.iternext()

    if scalar:
        return float(gx[0]), float(gy[0])
    return gx, gy


def geo_to_image(transform, gx, gy) -> Tuple[np.ndarray, np.ndarray]:
    """Inverse of `image_to_geo`. Sub-pixel positions are kept (no rounding)."""
    return image_to_geo(~transform, gx, gy)

"""Interchange records and GeoJSON export for annotations.

Record shape::

    {"id": "...", "type": "point" | "bbox" | "polygon", "label": "...",
     "coordinates": ..., "confidence": 0.9, "visible": true}

Coordinates by type:

- point   -> ``[x, y]``
- bbox    -> ``[[x1, y1], [x2, y2]]``, the two stored corners, never expanded
- polygon -> ``[[x, y], ...]``, open ring (no repeated first vertex)

`decode` also accepts a closed polygon ring and the single-ring nested form
``[[[x, y], ...]]``; both normalize to the open ring.
"""
from typing import Iterable, List, Optional, Tuple
import json
import logging
import numbers

from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry import box, mapping
from shapely.ops import transform as shapely_transform

from geolabel.annotator import geometry as geom
from geolabel.annotator.errors import CodecError, ValidationError
from geolabel.annotator.store import Annotation, validate_confidence
from geolabel.annotator.viewport import raster_transform

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ('type', 'coordinates')


def _encode_coordinates(g) -> list:
    if isinstance(g, geom.Point):
        return [g.x, g.y]
    if isinstance(g, geom.BoundingBox):
        return [list(g.corner1), list(g.corner2)]
    return [list(v) for v in g.vertices]


def encode(annotation: Annotation) -> dict:
    """Annotation -> interchange record."""
    record = {
        'id': annotation.id,
        'type': geom.geometry_type(annotation.geometry),
        'label': annotation.label,
        'coordinates': _encode_coordinates(annotation.geometry),
        'visible': annotation.visible,
    }
    if annotation.confidence is not None:
        record['confidence'] = annotation.confidence
    return record


def _is_number(v) -> bool:
    return isinstance(v, numbers.Real) and not isinstance(v, bool)


def _is_pair(v) -> bool:
    return isinstance(v, (list, tuple)) and len(v) == 2 and all(_is_number(c) for c in v)


def _ring(coords) -> list:
    if not isinstance(coords, (list, tuple)):
        raise CodecError('polygon coordinates must be a list', reason='MalformedRecord')
    pts = list(coords)
    # nested single-ring form [[[x, y], ...]]
    if len(pts) == 1 and isinstance(pts[0], (list, tuple)) and pts[0] and not _is_pair(pts[0]):
        pts = list(pts[0])
    if not all(_is_pair(p) for p in pts):
        raise CodecError('polygon vertices must be [x, y] number pairs', reason='MalformedRecord')
    if len(pts) > 1 and tuple(pts[0]) == tuple(pts[-1]):
        pts = pts[:-1]
    return pts


def decode(record: dict, annotation_id: Optional[str] = None) -> Annotation:
    """Interchange record -> Annotation.

    Raises `CodecError` with reason ``UnknownType``, ``ArityMismatch`` or
    ``MalformedRecord``.
    """
    if not isinstance(record, dict):
        raise CodecError(f'record must be a mapping, got {type(record).__name__}', reason='MalformedRecord')
    missing = [k for k in REQUIRED_KEYS if k not in record]
    if missing:
        raise CodecError(f'record missing key(s) {missing}', reason='MalformedRecord')

    kind = record['type']
    if kind not in geom.GEOMETRY_TYPES:
        raise CodecError(f'unknown geometry type {kind!r}', reason='UnknownType')

    coords = record['coordinates']
    if kind == 'point':
        if not _is_pair(coords):
            raise CodecError('point coordinates must be [x, y]', reason='MalformedRecord')
        payload = coords
    elif kind == 'bbox':
        if not isinstance(coords, (list, tuple)) or not all(_is_pair(p) for p in coords):
            raise CodecError('bbox coordinates must be [x, y] pairs', reason='MalformedRecord')
        if len(coords) != 2:
            raise CodecError(f'bbox needs exactly 2 corners, got {len(coords)}', reason='ArityMismatch')
        payload = coords
    else:
        payload = _ring(coords)
        if len(payload) < 3:
            raise CodecError(f'polygon needs at least 3 vertices, got {len(payload)}', reason='ArityMismatch')

    try:
        g = geom.make_geometry(kind, payload)
        confidence = validate_confidence(record.get('confidence'))
    except ValidationError as e:
        raise CodecError(str(e), reason='MalformedRecord') from e

    label = record.get('label', '')
    if not isinstance(label, str):
        raise CodecError('label must be a string', reason='MalformedRecord')
    visible = record.get('visible', True)
    if visible is None:
        visible = True

    aid = annotation_id if annotation_id is not None else record.get('id')
    if aid is None:
        raise CodecError('record has no id', reason='MalformedRecord')
    return Annotation(id=str(aid), geometry=g, label=label, confidence=confidence, visible=bool(visible))


def decode_many(records: Iterable[dict]) -> Tuple[List[Annotation], List[Tuple[int, CodecError]]]:
    """Decode a batch, skipping bad records.

    Returns (annotations, errors) where errors holds (index, CodecError).
    """
    annotations = []
    errors = []
    for i, record in enumerate(records):
        try:
            annotations.append(decode(record))
        except CodecError as e:
            logger.warning('skipping interchange record %d: %s (%s)', i, e, e.reason)
            errors.append((i, e))
    return annotations, errors


def dumps(annotations: Iterable[Annotation], **kwargs) -> str:
    return json.dumps([encode(a) for a in annotations], **kwargs)


def loads(text: str) -> Tuple[List[Annotation], List[Tuple[int, CodecError]]]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CodecError(f'invalid JSON: {e}', reason='MalformedRecord') from e
    if not isinstance(data, list):
        raise CodecError('expected a JSON array of records', reason='MalformedRecord')
    return decode_many(data)


# -- GeoJSON ----------------------------------------------------------------

def to_shapely(g):
    """Shapely geometry for an annotation geometry; bbox becomes a polygon."""
    if isinstance(g, geom.Point):
        return ShapelyPoint(g.x, g.y)
    if isinstance(g, geom.BoundingBox):
        (minx, miny), (maxx, maxy) = g.min_corner, g.max_corner
        return box(minx, miny, maxx, maxy)
    return ShapelyPolygon(g.vertices)


def _to_geo(shape, image):
    transform = raster_transform(image)
    return shapely_transform(lambda xs, ys, zs=None: geom.image_to_geo(transform, xs, ys), shape)


def to_geojson_feature(annotation: Annotation, image=None) -> dict:
    """GeoJSON Feature for ``annotation``.

    With a georeferenced ``image`` the geometry is written in the raster's CRS;
    otherwise coordinates stay in image pixels.
    """
    shape = to_shapely(annotation.geometry)
    if image is not None and image.is_georeferenced:
        shape = _to_geo(shape, image)
    properties = {
        'label': annotation.label,
        'type': geom.geometry_type(annotation.geometry),
        'visible': annotation.visible,
    }
    if annotation.confidence is not None:
        properties['confidence'] = annotation.confidence
    return {
        'type': 'Feature',
        'id': annotation.id,
        'geometry': mapping(shape),
        'properties': properties,
    }


def to_feature_collection(annotations: Iterable[Annotation], image=None) -> dict:
    fc = {
        'type': 'FeatureCollection',
        'features': [to_geojson_feature(a, image) for a in annotations],
    }
    if image is not None and image.is_georeferenced and image.crs:
        fc['crs'] = {'type': 'name', 'properties': {'name': image.crs}}
    return fc

"""Boundary with the external services around the annotator.

- upload: extension allowlist and size cap checked before bytes reach the
  decoder. The uploader widget and the upload route disagree on ``.cog``;
  `reconcile_allowlists` gives the set both sides accept.
- labeling suggestions: interchange records merged into the store with fresh
  ids. The suggestion service reports boxes as four corners; those are folded
  to the two-corner form before decoding.
- change detection: GeoJSON polygons with a change class and confidence,
  kept in a read-only overlay and never merged into the store.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
import logging
import os

from geolabel.annotator import codec
from geolabel.annotator.config import UPLOAD
from geolabel.annotator.errors import CodecError, UploadRejected, ValidationError
from geolabel.annotator.geometry import Polygon
from geolabel.annotator.hittest import point_in_polygon
from geolabel.annotator.utils import finite_pair

logger = logging.getLogger(__name__)

SERVER_ALLOWED_EXTENSIONS = tuple(UPLOAD['server_allowed_extensions'])


def reconcile_allowlists(client=None, server=None) -> Tuple[str, ...]:
    """Extensions accepted by both the client widget and the upload route."""
    client = tuple(e.lower() for e in (client or UPLOAD['allowed_extensions']))
    server = {e.lower() for e in (server or SERVER_ALLOWED_EXTENSIONS)}
    return tuple(e for e in client if e in server)


def validate_upload(filename: str, size: int, allowed_extensions=None, max_bytes: Optional[int] = None) -> str:
    """Check an upload against the allowlist and size cap; return the extension."""
    allowed = tuple(e.lower() for e in (allowed_extensions or UPLOAD['allowed_extensions']))
    limit = max_bytes if max_bytes is not None else UPLOAD['max_size_mb'] * 1024 * 1024
    ext = os.path.splitext(filename or '')[1].lower()
    if ext not in allowed:
        raise UploadRejected(
            f'File type {ext or "(none)"} is not supported. Please upload {", ".join(allowed)} files.',
            reason='UnsupportedExtension')
    if size < 0:
        raise UploadRejected(f'invalid file size {size}', reason='InvalidSize')
    if size > limit:
        raise UploadRejected(
            f'File {filename} is too large. Maximum size is {limit // (1024 * 1024)}MB.',
            reason='TooLarge')
    return ext


def normalize_suggestion(record: dict) -> dict:
    """Fold a four-corner axis-aligned bbox into two corners; leave others alone."""
    if not isinstance(record, dict) or record.get('type') != 'bbox':
        return record
    coords = record.get('coordinates')
    if not isinstance(coords, (list, tuple)) or len(coords) != 4:
        return record
    try:
        pts = [finite_pair(p) for p in coords]
    except ValueError:
        return record
    xs = sorted({p[0] for p in pts})
    ys = sorted({p[1] for p in pts})
    if len(xs) != 2 or len(ys) != 2:
        # not an axis-aligned rectangle; let decode report the arity problem
        return record
    out = dict(record)
    out['coordinates'] = [[xs[0], ys[0]], [xs[1], ys[1]]]
    return out


def merge_suggestions(store, records: Iterable[dict]):
    """Insert suggested annotations in order.

    Returns (inserted_ids, errors) with errors as (index, exception); bad
    records are skipped.
    """
    inserted = []
    errors = []
    for i, record in enumerate(records):
        try:
            ann = codec.decode(normalize_suggestion(record), annotation_id='suggestion')
            inserted.append(store.insert(ann.geometry, ann.label, confidence=ann.confidence,
                                         visible=ann.visible))
        except (CodecError, ValidationError) as e:
            logger.warning('skipping suggestion %d: %s (%s)', i, e, e.reason)
            errors.append((i, e))
    logger.info('merged %d suggestion(s), skipped %d', len(inserted), len(errors))
    return inserted, errors


@dataclass(frozen=True)
class ChangeRegion:
    change_type: str
    geometry: Polygon
    confidence: Optional[float]
    description: str = ''


class ChangeOverlay:
    """Read-only change-detection regions drawn over the primary image."""

    def __init__(self, regions: Iterable[ChangeRegion] = ()):
        self._regions = tuple(regions)

    def __len__(self) -> int:
        return len(self._regions)

    def __iter__(self):
        return iter(self._regions)

    @property
    def regions(self) -> Tuple[ChangeRegion, ...]:
        return self._regions

    @classmethod
    def from_records(cls, records: Iterable[dict]):
        """Parse change records; malformed ones are logged and skipped."""
        regions: List[ChangeRegion] = []
        for i, record in enumerate(records):
            try:
                regions.append(parse_change_record(record))
            except CodecError as e:
                logger.warning('skipping change record %d: %s', i, e)
        return cls(regions)

    def hit_test(self, point) -> Optional[ChangeRegion]:
        p = finite_pair(point)
        for region in reversed(self._regions):
            if point_in_polygon(region.geometry.vertices, p):
                return region
        return None


def parse_change_record(record: dict) -> ChangeRegion:
    if not isinstance(record, dict):
        raise CodecError('change record must be a mapping', reason='MalformedRecord')
    gj = record.get('geometry') or {}
    if gj.get('type') != 'Polygon':
        raise CodecError(f'unsupported change geometry {gj.get("type")!r}', reason='UnknownType')
    rings = gj.get('coordinates') or []
    if not rings:
        raise CodecError('change polygon has no rings', reason='ArityMismatch')
    ann = codec.decode({'id': 'change', 'type': 'polygon', 'label': record.get('type', ''),
                        'coordinates': rings[0], 'confidence': record.get('confidence')})
    return ChangeRegion(change_type=str(record.get('type', '')), geometry=ann.geometry,
                        confidence=ann.confidence, description=str(record.get('description', '')))

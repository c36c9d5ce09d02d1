"""Annotation records and the ordered store that owns them.

Insertion order is draw order: later annotations are drawn on top and win
hit-tests. Every mutating method validates before touching state, so a
rejected call leaves the store exactly as it was. All mutators share one
re-entrant lock; with the single-writer interaction model it is never
contended, but it keeps the store consistent if a host calls in from several
threads.
"""
from dataclasses import dataclass, replace
from typing import Dict, Iterator, Optional, Tuple
from collections import Counter
import logging
import math
import threading
import uuid

from geolabel.annotator.errors import NotFoundError, ValidationError
from geolabel.annotator.geometry import Geometry, is_geometry

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('label', 'geometry', 'confidence', 'visible')


@dataclass(frozen=True)
class Annotation:
    id: str
    geometry: Geometry
    label: str
    confidence: Optional[float] = None
    visible: bool = True


def validate_confidence(confidence) -> Optional[float]:
    if confidence is None:
        return None
    try:
        value = float(confidence)
    except (TypeError, ValueError) as e:
        raise ValidationError(f'confidence must be a number, got {confidence!r}',
                              reason='InvalidConfidence') from e
    if isinstance(confidence, bool) or not math.isfinite(value) or not 0.0 <= value <= 1.0:
        raise ValidationError(f'confidence must be in [0, 1], got {confidence!r}',
                              reason='InvalidConfidence')
    return value


def validate_geometry(geom) -> Geometry:
    # geometry classes validate on construction; only the type needs checking
    if not is_geometry(geom):
        raise ValidationError(f'expected Point, BoundingBox or Polygon, got {type(geom).__name__}',
                              reason='DegenerateGeometry')
    return geom


def validate_label(label) -> str:
    if not isinstance(label, str):
        raise ValidationError(f'label must be a string, got {type(label).__name__}',
                              reason='InvalidLabel')
    return label


class AnnotationStore:
    """Ordered id -> `Annotation` mapping with validated mutation."""

    def __init__(self):
        self._items: Dict[str, Annotation] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, annotation_id) -> bool:
        return annotation_id in self._items

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self.list())

    def _require(self, annotation_id) -> Annotation:
        try:
            return self._items[annotation_id]
        except KeyError:
            raise NotFoundError(f'no annotation with id {annotation_id!r}') from None

    def get(self, annotation_id) -> Annotation:
        return self._require(annotation_id)

    def insert(self, geometry, label, confidence=None, visible=True,
               annotation_id: Optional[str] = None) -> str:
        """Validate and append an annotation; return its id."""
        geometry = validate_geometry(geometry)
        label = validate_label(label)
        confidence = validate_confidence(confidence)
        with self._lock:
            if annotation_id is None:
                annotation_id = uuid.uuid4().hex
                while annotation_id in self._items:
                    annotation_id = uuid.uuid4().hex
            else:
                annotation_id = str(annotation_id)
                if annotation_id in self._items:
                    raise ValidationError(f'id {annotation_id!r} already in collection',
                                          reason='DuplicateId')
            self._items[annotation_id] = Annotation(
                id=annotation_id, geometry=geometry, label=label,
                confidence=confidence, visible=bool(visible))
        logger.debug('inserted %s annotation %s (%s)', type(geometry).__name__, annotation_id, label)
        return annotation_id

    def update(self, annotation_id, **fields) -> Annotation:
        """Merge ``fields`` into an existing annotation, keeping its position."""
        unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(f'cannot update field(s) {unknown}', reason='UnknownField')
        if 'geometry' in fields:
            validate_geometry(fields['geometry'])
        if 'label' in fields:
            validate_label(fields['label'])
        if 'confidence' in fields:
            fields['confidence'] = validate_confidence(fields['confidence'])
        if 'visible' in fields:
            fields['visible'] = bool(fields['visible'])
        with self._lock:
            current = self._require(annotation_id)
            updated = replace(current, **fields)
            # reassigning an existing key keeps dict order
            self._items[annotation_id] = updated
        return updated

    def remove(self, annotation_id) -> Annotation:
        with self._lock:
            self._require(annotation_id)
            removed = self._items.pop(annotation_id)
        logger.debug('removed annotation %s', annotation_id)
        return removed

    def set_visibility(self, annotation_id, visible: bool) -> Annotation:
        return self.update(annotation_id, visible=visible)

    def toggle_visibility(self, annotation_id) -> Annotation:
        with self._lock:
            current = self._require(annotation_id)
            return self.update(annotation_id, visible=not current.visible)

    def list(self) -> Tuple[Annotation, ...]:
        """Snapshot of all annotations in insertion order."""
        with self._lock:
            return tuple(self._items.values())

    def ids(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def counts_by_label(self) -> Dict[str, int]:
        return dict(Counter(a.label for a in self.list()))

    def counts_by_visibility(self) -> Dict[str, int]:
        """Totals for the label panel footer: ``{'visible': n, 'hidden': m}``."""
        snapshot = self.list()
        visible = sum(1 for a in snapshot if a.visible)
        return {'visible': visible, 'hidden': len(snapshot) - visible}

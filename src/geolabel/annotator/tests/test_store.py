import random

import pytest

from geolabel.annotator.errors import NotFoundError, ValidationError
from geolabel.annotator.geometry import BoundingBox, Point, Polygon
from geolabel.annotator.store import AnnotationStore


def box(i):
    return BoundingBox((i, i), (i + 10, i + 10))


def test_insert_appends_in_order():
    store = AnnotationStore()
    ids = [store.insert(box(i), f'label{i}') for i in range(5)]
    assert len(set(ids)) == 5
    assert [a.id for a in store.list()] == ids
    assert store.list()[0].visible is True
    assert store.list()[0].confidence is None


def test_random_insert_remove_sequence_keeps_order():
    rng = random.Random(7)
    store = AnnotationStore()
    expected = []
    inserts = removes = 0
    for step in range(300):
        if expected and rng.random() < 0.4:
            victim = rng.choice(expected)
            store.remove(victim)
            expected.remove(victim)
            removes += 1
        else:
            expected.append(store.insert(Point(step, step), 'p'))
            inserts += 1
    assert len(store.list()) == inserts - removes
    assert [a.id for a in store.list()] == expected


def test_update_merges_without_reordering():
    store = AnnotationStore()
    a = store.insert(box(0), 'Building')
    b = store.insert(box(1), 'Tree')
    store.update(a, label='Vehicle', confidence=0.5)
    assert [x.id for x in store.list()] == [a, b]
    assert store.get(a).label == 'Vehicle'
    assert store.get(a).confidence == 0.5
    assert store.get(a).geometry == box(0)


def test_update_geometry():
    store = AnnotationStore()
    a = store.insert(box(0), 'Building')
    tri = Polygon(((0, 0), (5, 0), (0, 5)))
    store.update(a, geometry=tri)
    assert store.get(a).geometry == tri


def test_missing_id_raises_not_found():
    store = AnnotationStore()
    store.insert(box(0), 'x')
    for call in (lambda: store.update('nope', label='y'),
                 lambda: store.remove('nope'),
                 lambda: store.set_visibility('nope', False)):
        with pytest.raises(NotFoundError):
            call()
    assert len(store) == 1
    assert issubclass(NotFoundError, KeyError)


def test_rejected_insert_leaves_store_unchanged():
    store = AnnotationStore()
    a = store.insert(box(0), 'x')
    with pytest.raises(ValidationError) as exc:
        store.insert([(0, 0), (1, 1)], 'bad')
    assert exc.value.reason == 'DegenerateGeometry'
    with pytest.raises(ValidationError) as exc:
        store.insert(box(1), 'bad', confidence=1.5)
    assert exc.value.reason == 'InvalidConfidence'
    assert store.ids() == (a,)


def test_rejected_update_leaves_store_unchanged():
    store = AnnotationStore()
    a = store.insert(box(0), 'x', confidence=0.9)
    before = store.get(a)
    with pytest.raises(ValidationError):
        store.update(a, confidence=-0.1)
    with pytest.raises(ValidationError) as exc:
        store.update(a, id='other')
    assert exc.value.reason == 'UnknownField'
    assert store.get(a) == before


def test_supplied_ids_must_be_unique():
    store = AnnotationStore()
    store.insert(box(0), 'x', annotation_id='a1')
    with pytest.raises(ValidationError) as exc:
        store.insert(box(1), 'y', annotation_id='a1')
    assert exc.value.reason == 'DuplicateId'


def test_visibility():
    store = AnnotationStore()
    a = store.insert(box(0), 'x')
    store.set_visibility(a, False)
    assert store.get(a).visible is False
    store.toggle_visibility(a)
    assert store.get(a).visible is True


def test_list_is_a_snapshot():
    store = AnnotationStore()
    store.insert(box(0), 'x')
    snapshot = store.list()
    store.insert(box(1), 'y')
    assert len(snapshot) == 1
    assert isinstance(snapshot, tuple)


def test_counts_and_clear():
    store = AnnotationStore()
    store.insert(box(0), 'Tree')
    store.insert(box(1), 'Tree')
    store.insert(Point(1, 1), 'Road')
    assert store.counts_by_label() == {'Tree': 2, 'Road': 1}
    store.set_visibility(store.ids()[0], False)
    assert store.counts_by_visibility() == {'visible': 2, 'hidden': 1}
    store.clear()
    assert len(store) == 0

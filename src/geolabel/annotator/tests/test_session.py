import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from geolabel.annotator import session as session_mod
from geolabel.annotator.compositor import BandMode
from geolabel.annotator.errors import DecodeError
from geolabel.annotator.gesture import InteractionMode
from geolabel.annotator.session import ViewerSession
from geolabel.annotator.tests.fixtures.raster_fixture import gradient_bands, make_tiff_bytes

TIMEOUT = 30


def test_load_displays_frame():
    with ViewerSession() as s:
        ticket = s.load(make_tiff_bytes(gradient_bands(count=3)))
        frame = ticket.result(timeout=TIMEOUT)
        assert frame is s.frame
        assert frame.generation == 1
        assert frame.rgba.shape == (6, 8, 4)
        assert s.image.band_count == 3
        assert s.mapper.image is s.image


def test_failed_load_keeps_previous_frame():
    with ViewerSession() as s:
        first = s.load(make_tiff_bytes(gradient_bands(count=1))).result(timeout=TIMEOUT)
        bad = s.load(b'definitely not a tiff')
        with pytest.raises(DecodeError):
            bad.result(timeout=TIMEOUT)
        assert s.frame is first
        assert isinstance(s.last_error, DecodeError)


def test_queued_load_is_cancelled_when_superseded():
    gate = threading.Event()
    executor = ThreadPoolExecutor(max_workers=1)
    try:
        executor.submit(gate.wait, TIMEOUT)
        with ViewerSession(executor=executor) as s:
            t1 = s.load(make_tiff_bytes(gradient_bands(count=1)))
            t2 = s.load(make_tiff_bytes(gradient_bands(count=2)))
            assert t1.cancelled()
            assert t1.result(timeout=TIMEOUT) is None
            gate.set()
            frame = t2.result(timeout=TIMEOUT)
            assert frame.generation == 2
            assert s.frame.image.band_count == 2
    finally:
        gate.set()
        executor.shutdown(wait=True)


def test_stale_result_is_discarded(monkeypatch):
    slow = make_tiff_bytes(gradient_bands(count=1))
    fast = make_tiff_bytes(gradient_bands(count=3))
    started = threading.Event()
    release = threading.Event()
    real_decode = session_mod.decode_raster

    def gated_decode(data):
        if data == slow:
            started.set()
            release.wait(TIMEOUT)
        return real_decode(data)

    monkeypatch.setattr(session_mod, 'decode_raster', gated_decode)
    executor = ThreadPoolExecutor(max_workers=2)
    try:
        with ViewerSession(executor=executor) as s:
            t1 = s.load(slow)
            assert started.wait(TIMEOUT)
            t2 = s.load(fast)
            assert t2.result(timeout=TIMEOUT).generation == 2
            release.set()
            assert t1.result(timeout=TIMEOUT) is None
            assert s.frame.generation == 2
            assert s.image.band_count == 3
            assert s.mapper.image is s.image
    finally:
        release.set()
        executor.shutdown(wait=True)


def test_set_band_mode_falls_back_for_single_band():
    with ViewerSession() as s:
        assert s.set_band_mode(BandMode.NDVI) is None
        s.load(make_tiff_bytes(gradient_bands(count=1))).result(timeout=TIMEOUT)
        frame = s.set_band_mode(BandMode.NDVI)
        assert frame.mode is BandMode.RGB
        assert s.band_mode is BandMode.NDVI


def test_draw_then_select():
    with ViewerSession() as s:
        s.pointer_down(InteractionMode.BBOX, (10, 10))
        s.pointer_move(InteractionMode.BBOX, (60, 60))
        created = s.pointer_up(InteractionMode.BBOX, (110, 110))
        assert created is not None
        ann = s.store.get(created)
        assert ann.label == 'Building'
        assert ann.confidence == 1.0
        s.selected_id = None
        assert s.pointer_down(InteractionMode.SELECT, (50, 50)) == created
        assert s.pointer_down(InteractionMode.SELECT, (500, 500)) is None


def test_pointer_events_go_through_viewport():
    with ViewerSession() as s:
        s.mapper.zoom(2.0)
        s.mapper.pan(100, 0)
        s.pointer_down('point', (120, 40), client_origin=(0, 20))
        pid = s.pointer_up('point', (120, 40), client_origin=(0, 20))
        p = s.store.get(pid).geometry
        assert (p.x, p.y) == (10.0, 10.0)


def test_pan_mode_moves_viewport():
    with ViewerSession() as s:
        s.pointer_down('pan', (0, 0))
        s.pointer_move('pan', (10, 5))
        s.pointer_move('pan', (15, 5))
        s.pointer_up('pan', (15, 5))
        assert s.mapper.viewport.translation == (15.0, 5.0)
        s.pointer_move('pan', (100, 100))
        assert s.mapper.viewport.translation == (15.0, 5.0)


def test_polygon_and_delete_selected():
    with ViewerSession() as s:
        for p in [(0, 0), (100, 0), (100, 100)]:
            s.pointer_down('polygon', p)
        pid = s.finish_polygon()
        assert s.selected_id == pid
        assert s.delete_selected()
        assert len(s.store) == 0
        assert not s.delete_selected()


@pytest.mark.parametrize('other_mode', ['select', 'pan'])
def test_select_or_pan_click_cancels_partial_shape(other_mode):
    with ViewerSession() as s:
        s.pointer_down('polygon', (0, 0))
        s.pointer_down('polygon', (100, 0))
        s.pointer_down(other_mode, (50, 50))
        s.pointer_up(other_mode, (50, 50))
        assert s.gesture.points == []
        s.pointer_down('polygon', (300, 300))
        assert s.gesture.points == [(300.0, 300.0)]


def test_bbox_press_after_lost_release_starts_fresh():
    with ViewerSession() as s:
        s.pointer_down('bbox', (10, 10))
        s.pointer_down('select', (500, 500))
        s.pointer_down('bbox', (200, 200))
        created = s.pointer_up('bbox', (260, 260))
        box = s.store.get(created).geometry
        assert box.min_corner == (200.0, 200.0)

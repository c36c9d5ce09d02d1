"""
session.py

A viewer session ties the pieces together: it loads rasters in the
background, shows exactly one fully rendered frame at a time, and routes
pointer events to selection, panning or drawing according to the interaction
mode passed with each event.

Raster loads
------------
Every call to `ViewerSession.load` takes the next generation number. Decoding
and compositing run on a single worker thread; when the work finishes, the
result replaces the displayed frame only if its generation is still the most
recent one requested. Older results are dropped, so switching images quickly
never flashes a stale picture. A failed decode leaves the previous frame on
screen and is recorded in ``last_error``.

The frame swap is a single attribute assignment under ``_frame_lock``; readers
see either the old `DisplayFrame` or the new one, never a mix.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional
import itertools
import logging
import threading

import numpy as np

from geolabel.annotator.compositor import BandMode, composite_with_fallback
from geolabel.annotator.config import DEFAULT_LABEL, DRAW
from geolabel.annotator.errors import DecodeError
from geolabel.annotator.gesture import DrawGesture, InteractionMode
from geolabel.annotator.hittest import hit_test
from geolabel.annotator.raster import RasterImage, decode_raster
from geolabel.annotator.store import AnnotationStore
from geolabel.annotator.utils import safe_log_exception
from geolabel.annotator.viewport import CoordinateMapper

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class DisplayFrame:
    generation: int
    image: RasterImage
    rgba: np.ndarray
    mode: BandMode


class LoadTicket:
    """Handle for one background load."""

    def __init__(self, generation: int, future: Future):
        self.generation = generation
        self.future = future

    def done(self) -> bool:
        return self.future.done()

    def cancelled(self) -> bool:
        return self.future.cancelled()

    def result(self, timeout: Optional[float] = None) -> Optional[DisplayFrame]:
        """Wait for the load. Returns the frame if it was displayed, None if superseded.

        Re-raises the `DecodeError` of a failed load.
        """
        if self.future.cancelled():
            return None
        frame, applied = self.future.result(timeout)
        return frame if applied else None


class ViewerSession:

    def __init__(self, display_size=(1000.0, 1000.0), band_mode=BandMode.RGB,
                 band_roles: Optional[dict] = None, executor: Optional[ThreadPoolExecutor] = None):
        self.store = AnnotationStore()
        self.mapper = CoordinateMapper(display_size)
        self.gesture = DrawGesture()
        self.band_mode = BandMode(band_mode)
        self.band_roles = band_roles
        self.active_label = DEFAULT_LABEL
        self.selected_id: Optional[str] = None
        self.frame: Optional[DisplayFrame] = None
        self.last_error: Optional[Exception] = None

        self._generations = itertools.count(1)
        self._latest = 0
        self._pending = {}
        self._frame_lock = threading.Lock()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='geolabel-decode')
        self._pan_anchor = None

    # -- lifecycle -----------------------------------------------------------

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # -- raster loading ------------------------------------------------------

    @property
    def image(self) -> Optional[RasterImage]:
        frame = self.frame
        return frame.image if frame is not None else None

    @property
    def latest_generation(self) -> int:
        return self._latest

    def load(self, data: bytes) -> LoadTicket:
        """Start decoding ``data`` in the background; newer loads supersede older ones."""
        with self._frame_lock:
            generation = next(self._generations)
            self._latest = generation
            stale = list(self._pending.items())
            self._pending.clear()
        for old_gen, old_future in stale:
            if old_future.cancel():
                logger.debug('cancelled queued load %d', old_gen)
        future = self._executor.submit(self._run_load, generation, data, self.band_mode, self.band_roles)
        with self._frame_lock:
            if not future.done():
                self._pending[generation] = future
        return LoadTicket(generation, future)

    def _run_load(self, generation: int, data: bytes, mode: BandMode, band_roles):
        try:
            image = decode_raster(data)
            rgba, used = composite_with_fallback(image, mode, band_roles)
        except DecodeError as e:
            with self._frame_lock:
                self._pending.pop(generation, None)
                if generation == self._latest:
                    self.last_error = e
            safe_log_exception('raster load failed; keeping previous image', e, generation=generation)
            raise
        frame = DisplayFrame(generation=generation, image=image, rgba=rgba, mode=used)
        return frame, self._apply(frame)

    def _apply(self, frame: DisplayFrame) -> bool:
        with self._frame_lock:
            self._pending.pop(frame.generation, None)
            if frame.generation != self._latest:
                logger.debug('discarding stale load %d (latest is %d)', frame.generation, self._latest)
                return False
            self.frame = frame
            self.last_error = None
            self.mapper.set_image(frame.image)
        logger.info('displaying generation %d (%dx%d, %s)', frame.generation,
                    frame.image.width, frame.image.height, frame.mode.value)
        return True

    def set_band_mode(self, mode) -> Optional[DisplayFrame]:
        """Switch band mode and re-render the current image on this thread."""
        self.band_mode = BandMode(mode)
        current = self.frame
        if current is None:
            return None
        rgba, used = composite_with_fallback(current.image, self.band_mode, self.band_roles)
        frame = DisplayFrame(generation=current.generation, image=current.image, rgba=rgba, mode=used)
        with self._frame_lock:
            if self.frame is current:
                self.frame = frame
        return self.frame

    # -- pointer events ------------------------------------------------------

    def _to_image(self, device_point, client_origin):
        display = self.mapper.device_to_display(device_point, client_origin)
        return display, self.mapper.device_to_image(display)

    def pointer_down(self, mode, device_point, client_origin=(0.0, 0.0)):
        """Returns the selected id (SELECT), the created id (drawing), or None."""
        mode = InteractionMode(mode)
        display, point = self._to_image(device_point, client_origin)
        if mode is InteractionMode.SELECT:
            self.gesture.cancel()
            self.selected_id = hit_test(self.store, point)
            return self.selected_id
        if mode is InteractionMode.PAN:
            self.gesture.cancel()
            self._pan_anchor = display
            return None
        self.selected_id = None
        return self._insert(self.gesture.pointer_down(mode, point, self.mapper.viewport.scale))

    def pointer_move(self, mode, device_point, client_origin=(0.0, 0.0)) -> None:
        mode = InteractionMode(mode)
        display, point = self._to_image(device_point, client_origin)
        if mode is InteractionMode.PAN:
            if self._pan_anchor is not None:
                self.mapper.pan(display[0] - self._pan_anchor[0], display[1] - self._pan_anchor[1])
                self._pan_anchor = display
            return
        self.gesture.pointer_move(point)

    def pointer_up(self, mode, device_point, client_origin=(0.0, 0.0)):
        mode = InteractionMode(mode)
        display, point = self._to_image(device_point, client_origin)
        if mode is InteractionMode.PAN:
            self._pan_anchor = None
            return None
        if mode is InteractionMode.SELECT:
            return None
        return self._insert(self.gesture.pointer_up(point, self.mapper.viewport.scale))

    def finish_polygon(self):
        return self._insert(self.gesture.finish())

    def cancel_drawing(self) -> None:
        self.gesture.cancel()

    def _insert(self, geometry):
        if geometry is None:
            return None
        annotation_id = self.store.insert(geometry, self.active_label,
                                          confidence=DRAW['default_confidence'])
        self.selected_id = annotation_id
        return annotation_id

    def delete_selected(self) -> bool:
        if self.selected_id is None or self.selected_id not in self.store:
            return False
        self.store.remove(self.selected_id)
        self.selected_id = None
        return True

"""
viewport.py

Coordinate spaces and the viewport that links them:

- device  : pointer position in screen/client coordinates
- display : position relative to the canvas' top-left corner
- image   : raster pixel coordinates (x = column, y = row)
- geo     : coordinates in the raster's CRS (georeferenced rasters only)

The mapping display -> image is ``image = (display - translation) / scale``.
The canvas itself sits at the client origin, so device and display coincide
unless a client origin is passed to `device_to_display`.
"""
from dataclasses import dataclass
from typing import Tuple
import logging
import math

from geolabel.annotator import geometry
from geolabel.annotator.config import VIEWPORT
from geolabel.annotator.errors import CoordinateError
from geolabel.annotator.utils import finite_pair

logger = logging.getLogger(__name__)


@dataclass
class Viewport:
    scale: float = 1.0
    tx: float = 0.0
    ty: float = 0.0
    display_width: float = 1000.0
    display_height: float = 1000.0

    @property
    def translation(self) -> Tuple[float, float]:
        return (self.tx, self.ty)

    @property
    def display_size(self) -> Tuple[float, float]:
        return (self.display_width, self.display_height)


class CoordinateMapper:
    """Owns a `Viewport` and converts points between coordinate spaces."""

    def __init__(self, display_size=(1000.0, 1000.0), image=None,
                 min_scale: float = VIEWPORT['min_scale'], max_scale: float = VIEWPORT['max_scale']):
        w, h = finite_pair(display_size, 'display_size')
        if w <= 0 or h <= 0:
            raise ValueError(f'display size must be positive, got {display_size!r}')
        if not 0 < min_scale <= max_scale:
            raise ValueError('scale limits must satisfy 0 < min_scale <= max_scale')
        self.min_scale = float(min_scale)
        self.max_scale = float(max_scale)
        self.viewport = Viewport(display_width=w, display_height=h)
        self.image = image

    # -- state ---------------------------------------------------------------

    def set_image(self, image) -> None:
        """Bind the raster whose georeference backs the geo conversions."""
        self.image = image

    def set_display_size(self, width: float, height: float) -> None:
        w, h = finite_pair((width, height), 'display_size')
        if w <= 0 or h <= 0:
            raise ValueError(f'display size must be positive, got {(width, height)!r}')
        self.viewport.display_width = w
        self.viewport.display_height = h

    def _clamp(self, scale: float) -> float:
        return min(self.max_scale, max(self.min_scale, scale))

    def zoom(self, factor: float) -> float:
        """Multiply the scale by ``factor``, clamped to the scale limits."""
        factor = float(factor)
        if not math.isfinite(factor) or factor <= 0:
            raise ValueError(f'zoom factor must be positive and finite, got {factor!r}')
        self.viewport.scale = self._clamp(self.viewport.scale * factor)
        return self.viewport.scale

    def zoom_in(self) -> float:
        return self.zoom(VIEWPORT['zoom_in_factor'])

    def zoom_out(self) -> float:
        return self.zoom(VIEWPORT['zoom_out_factor'])

    def zoom_wheel(self, delta_y: float) -> float:
        """Mouse wheel: scrolling down (positive delta) zooms out."""
        factor = VIEWPORT['wheel_out_factor'] if delta_y > 0 else VIEWPORT['wheel_in_factor']
        return self.zoom(factor)

    def pan(self, dx: float, dy: float) -> None:
        dx, dy = finite_pair((dx, dy), 'pan delta')
        self.viewport.tx += dx
        self.viewport.ty += dy

    def reset(self) -> None:
        self.viewport.scale = 1.0
        self.viewport.tx = 0.0
        self.viewport.ty = 0.0

    def fit_extent(self, extent, padding: float = VIEWPORT['fit_padding']) -> None:
        """Scale and center so ``extent`` (image space) fills the display minus padding."""
        minx, miny, maxx, maxy = (float(v) for v in extent)
        ew, eh = maxx - minx, maxy - miny
        if not (ew > 0 and eh > 0):
            raise ValueError(f'cannot fit degenerate extent {extent!r}')
        vp = self.viewport
        avail_w = vp.display_width - 2.0 * padding
        avail_h = vp.display_height - 2.0 * padding
        if avail_w <= 0 or avail_h <= 0:
            raise ValueError(f'padding {padding} leaves no display area')
        scale = self._clamp(min(avail_w / ew, avail_h / eh))
        vp.scale = scale
        vp.tx = (vp.display_width - ew * scale) / 2.0 - minx * scale
        vp.ty = (vp.display_height - eh * scale) / 2.0 - miny * scale
        logger.debug('fit extent %r at scale %.4f', extent, scale)

    def fit_image(self, padding: float = VIEWPORT['fit_padding']) -> None:
        if self.image is None:
            raise ValueError('no image bound to the mapper')
        self.fit_extent((0.0, 0.0, float(self.image.width), float(self.image.height)), padding)

    # -- conversions ---------------------------------------------------------

    @staticmethod
    def device_to_display(point, client_origin=(0.0, 0.0)) -> Tuple[float, float]:
        x, y = finite_pair(point)
        ox, oy = finite_pair(client_origin, 'client_origin')
        return (x - ox, y - oy)

    def device_to_image(self, point) -> Tuple[float, float]:
        x, y = finite_pair(point)
        vp = self.viewport
        return ((x - vp.tx) / vp.scale, (y - vp.ty) / vp.scale)

    def image_to_device(self, point) -> Tuple[float, float]:
        x, y = finite_pair(point)
        vp = self.viewport
        return (x * vp.scale + vp.tx, y * vp.scale + vp.ty)

    def image_to_geo(self, point) -> Tuple[float, float]:
        x, y = finite_pair(point)
        return geometry.image_to_geo(raster_transform(self.image), x, y)

    def geo_to_image(self, point) -> Tuple[float, float]:
        x, y = finite_pair(point)
        return geometry.geo_to_image(raster_transform(self.image), x, y)


def raster_transform(image):
    """Pixel -> geo affine of a georeferenced raster.

    Uses the decoded geotransform when there is one, otherwise derives a
    north-up transform from the extent. Raises `CoordinateError` for rasters
    without georeference.
    """
    if image is None or not image.is_georeferenced:
        raise CoordinateError('raster carries no georeference', reason='NoGeoreference')
    if image.transform is not None:
        return image.transform
    return geometry.affine_from_extent(image.extent, image.width, image.height)

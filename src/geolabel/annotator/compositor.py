"""
compositor.py

Band compositing: turns the band samples of a `RasterImage` into an 8-bit
RGBA display buffer of shape (height, width, 4).

Modes:
- RGB      : bands 1-3 as R, G, B; a single band (or two) is replicated as
             grayscale.
- INFRARED : the near-infrared band as grayscale.
- NDVI     : (NIR - Red) / (NIR + Red), mapped from [-1, 1] to [0, 255].

Sample normalization to 8 bits never wraps: integer samples are read as
unsigned 8/16-bit values and scaled; float samples are treated as reflectance
in [0, 1]. Everything is clipped before the cast.
"""
from enum import Enum
from typing import Optional
import logging
import numpy as np

from geolabel.annotator.config import BAND_ROLES
from geolabel.annotator.errors import CompositorError

logger = logging.getLogger(__name__)


class BandMode(str, Enum):
    RGB = 'rgb'
    INFRARED = 'infrared'
    NDVI = 'ndvi'


def to_uint8(samples: np.ndarray) -> np.ndarray:
    """Normalize one band (any numeric dtype) to uint8 with clamping."""
    a = np.asarray(samples)
    if not a.dtype.isnative:
        a = a.astype(a.dtype.newbyteorder('='))
    kind = a.dtype.kind
    if kind == 'b':
        return np.where(a, 255, 0).astype(np.uint8)
    if kind in 'iu':
        if a.dtype.itemsize == 1:
            return a.view(np.uint8) if a.dtype != np.uint8 else a.copy()
        # wider integers: reinterpret as unsigned 16-bit range
        if a.dtype.itemsize == 2:
            u = a.view(np.uint16).astype(np.float64)
        else:
            u = np.clip(a.astype(np.float64), 0.0, 65535.0)
        return np.clip(np.rint(u * (255.0 / 65535.0)), 0, 255).astype(np.uint8)
    f = np.nan_to_num(a.astype(np.float64), nan=0.0, posinf=1.0, neginf=0.0)
    return np.clip(np.rint(f * 255.0), 0, 255).astype(np.uint8)


def _as_unsigned_float(samples: np.ndarray) -> np.ndarray:
    """Band samples as float64, with integers read as unsigned like `to_uint8`."""
    a = np.asarray(samples)
    if not a.dtype.isnative:
        a = a.astype(a.dtype.newbyteorder('='))
    if a.dtype.kind == 'i':
        if a.dtype.itemsize == 1:
            a = a.view(np.uint8)
        elif a.dtype.itemsize == 2:
            a = a.view(np.uint16)
        else:
            return np.clip(a.astype(np.float64), 0.0, None)
    return np.nan_to_num(a.astype(np.float64))


def resolve_band_roles(band_count: int, band_roles: Optional[dict] = None) -> dict:
    """Merge ``band_roles`` over the configured defaults and resolve ``nir``.

    The result always holds concrete indices clamped into [0, band_count).
    """
    roles = dict(BAND_ROLES)
    if band_roles:
        roles.update(band_roles)
    if roles.get('nir') is None:
        roles['nir'] = 3 if band_count >= 4 else band_count - 1
    out = {}
    for name, idx in roles.items():
        idx = int(idx)
        if idx < 0 or idx >= band_count:
            idx = min(max(idx, 0), band_count - 1)
        out[name] = idx
    return out


def _rgba(r: np.ndarray, g: np.ndarray, b: np.ndarray) -> np.ndarray:
    h, w = r.shape
    out = np.empty((h, w, 4), dtype=np.uint8)
    out[..., 0] = r
    out[..., 1] = g
    out[..., 2] = b
    out[..., 3] = 255
    return out


def composite_rgb(image) -> np.ndarray:
    """First three bands as RGB, grayscale replication below three bands."""
    if image.band_count >= 3:
        r, g, b = (to_uint8(image.bands[i]) for i in range(3))
        return _rgba(r, g, b)
    gray = to_uint8(image.bands[0])
    return _rgba(gray, gray, gray)


def composite_infrared(image, band_roles: Optional[dict] = None) -> np.ndarray:
    roles = resolve_band_roles(image.band_count, band_roles)
    gray = to_uint8(image.bands[roles['nir']])
    return _rgba(gray, gray, gray)


def ndvi(image, band_roles: Optional[dict] = None) -> np.ndarray:
    """Raw NDVI values in [-1, 1] as float64, zero where NIR + Red == 0."""
    if image.band_count < 2:
        raise CompositorError(
            f'NDVI needs at least 2 bands, raster has {image.band_count}', reason='InsufficientBands')
    roles = resolve_band_roles(image.band_count, band_roles)
    if roles['nir'] == roles['red']:
        raise CompositorError(
            f'NDVI needs distinct NIR and red bands, both resolved to {roles["red"]}',
            reason='InsufficientBands')
    nir = _as_unsigned_float(image.bands[roles['nir']])
    red = _as_unsigned_float(image.bands[roles['red']])
    num = nir - red
    den = nir + red
    out = np.zeros_like(num)
    np.divide(num, den, out=out, where=den != 0)
    return np.clip(out, -1.0, 1.0)


def composite_ndvi(image, band_roles: Optional[dict] = None) -> np.ndarray:
    values = ndvi(image, band_roles)
    gray = np.clip(np.rint((values + 1.0) * 127.5), 0, 255).astype(np.uint8)
    return _rgba(gray, gray, gray)


def composite(image, mode=BandMode.RGB, band_roles: Optional[dict] = None) -> np.ndarray:
    """Render ``image`` under ``mode`` into a (height, width, 4) uint8 buffer."""
    mode = BandMode(mode)
    if mode is BandMode.RGB:
        return composite_rgb(image)
    if mode is BandMode.INFRARED:
        return composite_infrared(image, band_roles)
    return composite_ndvi(image, band_roles)


def composite_with_fallback(image, mode=BandMode.RGB, band_roles: Optional[dict] = None):
    """Like `composite`, but degrade to grayscale RGB instead of failing.

    Returns (buffer, mode_used).
    """
    mode = BandMode(mode)
    try:
        return composite(image, mode, band_roles), mode
    except CompositorError as e:
        logger.warning('band mode %s unavailable (%s); falling back to grayscale', mode.value, e.reason)
        return composite_rgb(image), BandMode.RGB

"""Raster container decoding.

Turns a GeoTIFF/TIFF byte stream into an immutable `RasterImage`. The bytes
are opened in memory with `rasterio.io.MemoryFile`; nothing is read from or
written to disk here.

A well-formed TIFF without geospatial tags is not an error: it decodes as a
plain raster with ``is_georeferenced=False``.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple
import logging
import warnings

import numpy as np
from affine import Affine
from rasterio.errors import NotGeoreferencedWarning
from rasterio.io import MemoryFile

from geolabel.annotator.errors import DecodeError

logger = logging.getLogger(__name__)

# classic TIFF and BigTIFF, little and big endian
TIFF_SIGNATURES = (b'II*\x00', b'MM\x00*', b'II+\x00', b'MM\x00+')


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Decoded raster: size, band samples and optional georeference.

    ``bands`` has shape (band_count, height, width) and is read-only.
    ``extent`` is (minx, miny, maxx, maxy) in ``crs`` units.
    """
    width: int
    height: int
    bands: np.ndarray
    extent: Optional[Tuple[float, float, float, float]] = None
    crs: Optional[str] = None
    transform: Optional[Affine] = None
    band_descriptions: Tuple[Optional[str], ...] = field(default_factory=tuple)

    def __post_init__(self):
        if int(self.width) <= 0 or int(self.height) <= 0:
            raise ValueError(f'raster size must be positive, got {self.width}x{self.height}')
        arr = np.asarray(self.bands)
        if arr.ndim == 2:
            arr = arr[None, :, :]
        if arr.ndim != 3 or arr.shape[0] < 1 or arr.shape[1:] != (self.height, self.width):
            raise ValueError(
                f'bands must have shape (count, {self.height}, {self.width}), got {arr.shape}')
        if arr.flags.writeable:
            arr = arr.copy()
            arr.flags.writeable = False
        object.__setattr__(self, 'bands', arr)

    @property
    def band_count(self) -> int:
        return int(self.bands.shape[0])

    @property
    def dtype(self) -> np.dtype:
        return self.bands.dtype

    @property
    def is_georeferenced(self) -> bool:
        return self.extent is not None

    def band(self, index: int) -> np.ndarray:
        """Zero-based band accessor."""
        if not 0 <= index < self.band_count:
            raise IndexError(f'band index {index} out of range for {self.band_count} bands')
        return self.bands[index]

    def metadata(self) -> dict:
        """Summary in the shape the upload service reports back to clients."""
        return {
            'width': self.width,
            'height': self.height,
            'bands': self.band_count,
            'dtype': str(self.dtype),
            'bbox': list(self.extent) if self.extent is not None else None,
            'crs': self.crs,
            'isGeoTIFF': self.is_georeferenced,
        }


def _crs_identifier(crs) -> Optional[str]:
    if crs is None:
        return None
    code = crs.to_epsg()
    if code is not None:
        return f'EPSG:{code}'
    return crs.to_string() or None


def decode_raster(data: bytes) -> RasterImage:
    """Decode a TIFF/GeoTIFF byte stream.

    Raises `DecodeError` with reason ``MalformedHeader`` when the container is
    not a readable TIFF and ``UnreadableData`` when the header parses but the
    pixel data cannot be read.
    """
    if data is None or len(data) == 0:
        raise DecodeError('empty raster byte stream', reason='MalformedHeader')
    buf = bytes(data)
    if buf[:4] not in TIFF_SIGNATURES:
        raise DecodeError(f'not a TIFF container (signature {buf[:4]!r})', reason='MalformedHeader')

    with warnings.catch_warnings():
        warnings.simplefilter('ignore', NotGeoreferencedWarning)
        try:
            memfile = MemoryFile(buf)
            dataset = memfile.open()
        except Exception as e:
            raise DecodeError(f'could not parse raster container: {e}', reason='MalformedHeader') from e

        try:
            with memfile, dataset:
                width, height = int(dataset.width), int(dataset.height)
                crs = dataset.crs
                transform = dataset.transform
                bounds = dataset.bounds
                descriptions = tuple(dataset.descriptions or ())
                try:
                    bands = dataset.read()
                except Exception as e:
                    raise DecodeError(f'could not read pixel data: {e}', reason='UnreadableData') from e
        except DecodeError:
            raise
        except Exception as e:
            raise DecodeError(f'raster container is corrupt: {e}', reason='MalformedHeader') from e

    extent = None
    geo_transform = None
    if transform is not None and not transform.is_identity:
        left, bottom, right, top = bounds
        extent = (min(left, right), min(bottom, top), max(left, right), max(bottom, top))
        geo_transform = transform
    else:
        logger.debug('raster %dx%d has no geotransform; treating as plain raster', width, height)

    image = RasterImage(
        width=width,
        height=height,
        bands=bands,
        extent=extent,
        crs=_crs_identifier(crs) if extent is not None else None,
        transform=geo_transform,
        band_descriptions=descriptions,
    )
    logger.info('decoded raster %dx%d with %d band(s), dtype=%s, georeferenced=%s',
                image.width, image.height, image.band_count, image.dtype, image.is_georeferenced)
    return image


def decode_raster_file(path) -> RasterImage:
    """Read ``path`` and decode it. Only the CLI touches disk."""
    with open(path, 'rb') as fh:
        data = fh.read()
    return decode_raster(data)

import warnings

import numpy as np
from rasterio.errors import NotGeoreferencedWarning
from rasterio.io import MemoryFile
from rasterio.transform import from_bounds


def make_tiff_bytes(bands, transform=None, crs=None):
    """Encode ``bands`` (H, W) or (count, H, W) as an in-memory TIFF and return the bytes.

    Leave ``transform`` and ``crs`` as None for a plain, non-georeferenced TIFF.
    """
    arr = np.asarray(bands)
    if arr.ndim == 2:
        arr = arr[None, :, :]
    count, height, width = arr.shape
    profile = {
        'driver': 'GTiff',
        'width': width,
        'height': height,
        'count': count,
        'dtype': arr.dtype.name,
    }
    if transform is not None:
        profile['transform'] = transform
    if crs is not None:
        profile['crs'] = crs
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', NotGeoreferencedWarning)
        with MemoryFile() as memfile:
            with memfile.open(**profile) as ds:
                ds.write(arr)
            return memfile.read()


def make_geotiff_bytes(bands, bounds=(10.0, 40.0, 12.0, 42.0), crs='EPSG:4326'):
    """North-up GeoTIFF covering ``bounds`` = (minx, miny, maxx, maxy)."""
    arr = np.asarray(bands)
    height, width = arr.shape[-2:]
    transform = from_bounds(*bounds, width, height)
    return make_tiff_bytes(arr, transform=transform, crs=crs)


def gradient_bands(count=3, height=6, width=8, dtype='uint8'):
    """Deterministic test pattern: band b holds (row * width + col + b) scaled into dtype range."""
    base = np.arange(height * width, dtype=np.float64).reshape(height, width)
    out = np.stack([base + b for b in range(count)])
    info_max = np.iinfo(dtype).max if np.dtype(dtype).kind in 'iu' else 1.0
    out = out / out.max() * info_max
    return out.astype(dtype)

import numpy as np
import pytest

from geolabel.annotator.errors import DecodeError
from geolabel.annotator.raster import RasterImage, decode_raster, decode_raster_file
from geolabel.annotator.tests.fixtures.raster_fixture import (
    gradient_bands, make_geotiff_bytes, make_tiff_bytes,
)


def test_decode_georeferenced():
    bands = gradient_bands(count=4, height=6, width=8)
    img = decode_raster(make_geotiff_bytes(bands, bounds=(10.0, 40.0, 12.0, 42.0)))
    assert (img.width, img.height, img.band_count) == (8, 6, 4)
    assert img.is_georeferenced
    assert img.crs == 'EPSG:4326'
    assert img.extent == pytest.approx((10.0, 40.0, 12.0, 42.0))
    assert np.array_equal(img.bands, bands)


def test_plain_tiff_is_not_georeferenced():
    img = decode_raster(make_tiff_bytes(gradient_bands(count=1)))
    assert img.is_georeferenced is False
    assert (img.width, img.height) == (8, 6)
    assert img.extent is None
    assert img.crs is None
    assert img.transform is None


def test_arbitrary_band_count_and_dtype():
    bands = gradient_bands(count=5, height=3, width=4, dtype='uint16')
    img = decode_raster(make_tiff_bytes(bands))
    assert img.band_count == 5
    assert img.dtype == np.uint16
    assert img.band(4).shape == (3, 4)
    with pytest.raises(IndexError):
        img.band(5)


def test_bands_are_read_only():
    img = decode_raster(make_tiff_bytes(gradient_bands(count=1)))
    assert not img.bands.flags.writeable
    with pytest.raises(ValueError):
        img.bands[0, 0, 0] = 1


@pytest.mark.parametrize('data', [
    b'',
    b'\x89PNG\r\n\x1a\n' + b'\x00' * 32,
    b'II*\x00\xff\xff\xff\x7f',
])
def test_malformed_header(data):
    with pytest.raises(DecodeError) as exc:
        decode_raster(data)
    assert exc.value.reason == 'MalformedHeader'


def test_metadata_summary():
    img = decode_raster(make_geotiff_bytes(gradient_bands(count=3)))
    meta = img.metadata()
    assert meta['width'] == 8 and meta['height'] == 6 and meta['bands'] == 3
    assert meta['isGeoTIFF'] is True
    assert meta['crs'] == 'EPSG:4326'


def test_decode_raster_file(tmp_path):
    path = tmp_path / 'scene.tif'
    path.write_bytes(make_tiff_bytes(gradient_bands(count=2)))
    assert decode_raster_file(str(path)).band_count == 2


def test_raster_image_validates_shape():
    with pytest.raises(ValueError):
        RasterImage(width=4, height=3, bands=np.zeros((1, 4, 3)))
    img = RasterImage(width=4, height=3, bands=np.zeros((3, 4)))
    assert img.band_count == 1

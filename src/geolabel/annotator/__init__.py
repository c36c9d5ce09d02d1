"""
annotator

Raster decoding, band compositing, viewport transforms and the annotation
store behind the GeoLabel labeling canvas.

Typical use:

    from geolabel.annotator import decode_raster, composite, AnnotationStore, BoundingBox

    image = decode_raster(data)
    rgba = composite(image, 'ndvi')
    store = AnnotationStore()
    store.insert(BoundingBox((0, 0), (100, 100)), 'Building')
"""
from geolabel.annotator.errors import (
    AnnotatorError, CodecError, CompositorError, CoordinateError, DecodeError,
    NotFoundError, UploadRejected, ValidationError,
)
from geolabel.annotator.geometry import BoundingBox, Point, Polygon
from geolabel.annotator.raster import RasterImage, decode_raster
from geolabel.annotator.compositor import BandMode, composite
from geolabel.annotator.viewport import CoordinateMapper, Viewport
from geolabel.annotator.store import Annotation, AnnotationStore
from geolabel.annotator.hittest import hit_test
from geolabel.annotator.codec import decode, encode
from geolabel.annotator.gesture import DrawGesture, InteractionMode
from geolabel.annotator.session import ViewerSession

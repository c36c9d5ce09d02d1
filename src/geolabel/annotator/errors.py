"""
errors.py

Exception taxonomy for the annotator core. Every error carries a short
machine-readable ``reason`` string alongside the human message so callers can
branch on the failure kind without parsing text.

- `DecodeError`       : raster container could not be decoded
- `CompositorError`   : requested band mode cannot be rendered
- `CoordinateError`   : georeference operation without georeference data
- `ValidationError`   : store rejected a geometry or field value
- `NotFoundError`     : store has no annotation with the given id
- `CodecError`        : interchange record could not be decoded
- `UploadRejected`    : file failed the upload boundary checks
"""


class AnnotatorError(Exception):
    """Base class for all annotator errors."""

    default_reason = 'Error'

    def __init__(self, message: str = '', reason: str = None):
        self.reason = reason or self.default_reason
        super().__init__(message or self.reason)

    def __repr__(self):
        return f'{type(self).__name__}(reason={self.reason!r}, message={str(self)!r})'


class DecodeError(AnnotatorError, ValueError):
    default_reason = 'MalformedHeader'


class CompositorError(AnnotatorError, ValueError):
    default_reason = 'InsufficientBands'


class CoordinateError(AnnotatorError, ValueError):
    default_reason = 'NoGeoreference'


class ValidationError(AnnotatorError, ValueError):
    default_reason = 'DegenerateGeometry'


class NotFoundError(AnnotatorError, KeyError):
    default_reason = 'NotFound'

    def __str__(self):
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else self.reason


class CodecError(AnnotatorError, ValueError):
    default_reason = 'MalformedRecord'


class UploadRejected(AnnotatorError, ValueError):
    default_reason = 'UnsupportedExtension'

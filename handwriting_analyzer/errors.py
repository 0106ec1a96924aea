"""
Exceptions raised at the analysis boundary.
"""


class AnalysisError(Exception):
    """A handwriting analysis run failed and produced no result."""


class DecodeError(AnalysisError):
    """The input could not be decoded into a pixel buffer."""


class RecognitionError(AnalysisError):
    """The text-recognition engine failed or is unavailable."""


class UploadValidationError(ValueError):
    """An uploaded file is not an accepted image format or is too large."""

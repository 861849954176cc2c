"""
Domain exceptions for the boundary and raster pipeline.

Import-time errors are turned into structured results by the importer;
rendering-time errors are absorbed by the overlay fallback path.
"""


class FieldLensError(Exception):
    """Base class for all application errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidGeometry(FieldLensError):
    """Boundary has fewer than 3 points or a degenerate ring."""
    status_code = 400


class UnsupportedCoordinateFormat(FieldLensError):
    """A coordinate entry matches none of the supported encodings."""
    status_code = 400


class MalformedSource(FieldLensError):
    """Input is not parseable JSON or lacks any recognizable geometry."""
    status_code = 400


class RasterUnavailable(FieldLensError):
    """Real raster imagery could not be fetched, decoded or placed."""
    status_code = 502

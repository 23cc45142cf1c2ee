"""Exceptions raised by the carprowls pipeline."""


class CarProwlsError(Exception):
    """Base exception for pipeline errors."""

    pass


class FetchError(CarProwlsError):
    """Incident fetch was aborted."""

    pass


class NetworkError(FetchError):
    """HTTP request failed or returned an error status."""

    pass


class PaginationError(FetchError):
    """API kept returning full pages past the configured page limit."""

    pass


class ParseError(CarProwlsError):
    """Malformed JSON, date, coordinate or shapefile."""

    pass


class FilesystemError(CarProwlsError):
    """Archive extraction or temporary file cleanup failed."""

    pass

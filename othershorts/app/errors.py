class AppError(Exception):
    """Base for errors that map straight onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    # missing or malformed request fields
    status_code = 400


class FormatError(AppError):
    # takeout file is neither history JSON nor history HTML
    status_code = 400


class EmptyResultError(AppError):
    # nothing qualified (no ids, no shorts); not a server fault
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class DuplicateRatingError(AppError):
    status_code = 409


class StorageError(AppError):
    status_code = 500


class ConfigurationError(AppError):
    status_code = 500


class UpstreamError(Exception):
    """Duration lookup failed for one batch of ids. Caught and skipped by the caller."""

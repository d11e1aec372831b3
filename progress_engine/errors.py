"""
Error taxonomy for the progression engine

Every error carries a machine readable ``code`` so the HTTP layer can map it
to a status without string matching.
"""


class ProgressError(Exception):
    """Base class for all engine errors"""

    code = "progress_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ProgressError):
    """Missing or malformed identifier / payload. Never retried."""

    code = "validation_error"


class NotFoundError(ProgressError):
    """No progress record (or other addressed entity) exists"""

    code = "not_found"


class ConcurrentModificationError(ProgressError):
    """The progress document changed since it was loaded (version mismatch)"""

    code = "concurrent_modification"


class PersistenceError(ProgressError):
    """Transient storage failure; the caller may retry the whole operation"""

    code = "persistence_error"

"""
Exception taxonomy for the analysis core.

Unresolved type references are not errors; they are recorded as
``UnresolvedReference`` warnings on the affected export (see models.py).
"""


class DocCovError(Exception):
    """Base class for all doccov errors."""
    pass


class MalformedSpec(DocCovError, ValueError):
    """Raised when a package spec fails structural validation."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)


class RetrievalTimeout(DocCovError, TimeoutError):
    """Raised when spec retrieval exceeds the bounded wait. Retryable."""
    pass


class NotFound(DocCovError, LookupError):
    """Raised when a spec could not be produced at all."""
    pass


class ConfigError(DocCovError, ValueError):
    """Raised when a configuration file or severity value is invalid."""
    pass

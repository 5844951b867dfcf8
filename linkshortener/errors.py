"""Error taxonomy for the shortener.

Every error carries the HTTP status it maps to, so the web layer can render
them with a single exception handler.

Classes:
    ShortenerError:
        Base class; `message` is safe to show to clients for 4xx errors.

    ValidationError (400):
        Bad URL, alias or expiration date.

    InvalidAliasFormat (400):
        Custom alias does not match the allowed pattern.

    ConflictError (409) / AliasTaken (409):
        Requested alias is already used by another link.

    NotFoundError (404):
        Unknown or soft-deleted short code.

    GoneError (410):
        Link exists but has expired.

    AllocationExhausted (500):
        Random code generation kept colliding; treated as a system fault.

    StorageFault (500):
        The database rejected or failed an operation.
"""


class ShortenerError(Exception):
    """Generic base class for shortener errors."""

    status_code = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__
        super().__init__(self.message)


class ValidationError(ShortenerError):
    """Invalid request data."""

    status_code = 400


class InvalidAliasFormat(ValidationError):
    """Invalid custom alias. Must be 3-20 characters, alphanumeric with hyphens or underscores."""


class ConflictError(ShortenerError):
    """Resource already exists."""

    status_code = 409


class AliasTaken(ConflictError):
    """Custom alias already taken."""


class NotFoundError(ShortenerError):
    """Short URL not found."""

    status_code = 404


class GoneError(ShortenerError):
    """This short URL has expired."""

    status_code = 410


class AllocationExhausted(ShortenerError):
    """Failed to generate unique short code after maximum attempts."""

    status_code = 500


class StorageFault(ShortenerError):
    """The data store failed to complete the operation."""

    status_code = 500

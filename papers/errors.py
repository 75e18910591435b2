"""
Error taxonomy for the question / paper / assessment services.

Routers never catch these; main.py maps each class to an HTTP status.
"""

from typing import Iterable, Optional


class PaperServiceError(Exception):
    """Base class for every error raised by the papers package."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PaperServiceError):
    """Required field missing or malformed. Raised before any write."""

    status_code = 400


class PayloadTooLargeError(ValidationError):
    status_code = 413


class NotFoundError(PaperServiceError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ReferentialError(PaperServiceError):
    """A referenced question / parent / paper / student does not exist."""

    status_code = 400

    def __init__(self, entity: str, missing_ids: Iterable):
        self.missing_ids = sorted(set(missing_ids))
        super().__init__(f"Unknown {entity} id(s): {', '.join(str(i) for i in self.missing_ids)}")
        self.entity = entity


class PermissionDeniedError(PaperServiceError):
    status_code = 403

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class ConflictError(PaperServiceError):
    """Stale optimistic-lock version or duplicate unique value."""

    status_code = 409


class StoreError(PaperServiceError):
    """The record store or object store failed; the unit of work was rolled back."""

    status_code = 503

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to {operation}")
        self.operation = operation
        self.cause = cause


class ContentParseError(PaperServiceError):
    """Malformed stored content. Always caught by the normalizer, never surfaced."""

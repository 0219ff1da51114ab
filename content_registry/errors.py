"""
Error taxonomy for the Content Registry.

Every error carries the HTTP-analog status it maps to and renders into the
single payload shape returned to callers.
"""

from typing import Any, Dict


class RegistryError(Exception):
    """Base class for registry failures."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error": self.code}


class ValidationError(RegistryError):
    """Malformed input. Raised before any store is touched."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(RegistryError):
    """No record, blob or source file for the given identifier."""

    status_code = 404
    code = "NOT_FOUND"


class IntegrityError(RegistryError):
    """A catalog row exists but its blob does not."""

    status_code = 500
    code = "INTEGRITY_ERROR"

    def __init__(self, content_id: str, message: str = ""):
        self.content_id = content_id
        super().__init__(
            message
            or f"Content {content_id} is registered but its encrypted file is missing"
        )


class StorageError(RegistryError):
    """I/O or transactional failure in one of the stores."""

    status_code = 500
    code = "STORAGE_ERROR"


class DuplicateContentError(StorageError):
    """A content record with this id already exists."""

    code = "DUPLICATE_CONTENT"

    def __init__(self, content_id: str):
        self.content_id = content_id
        super().__init__(f"Content {content_id} already exists")


class EncryptionError(RegistryError):
    """The encryption collaborator failed to produce an artifact."""

    status_code = 500
    code = "ENCRYPTION_ERROR"

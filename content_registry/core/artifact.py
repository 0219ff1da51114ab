"""
Encrypted artifact produced by the encryption collaborator.

Optional metadata is explicit: a field the collaborator did not supply
resolves to its "unknown" sentinel in one place, never through scattered
null checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional

UNKNOWN_LENGTH = -1
UNKNOWN_CHECKSUM = ""
UNKNOWN_LOCATION = ""


class RegistrationOutcome(str, Enum):
    """Whether a registration inserted or replaced the content record."""

    CREATED = "created"
    UPDATED = "updated"

    @property
    def status_code(self) -> int:
        return 201 if self is RegistrationOutcome.CREATED else 200


@dataclass
class EncryptedArtifact:
    """An encrypted file plus the metadata needed to deliver it.

    Attributes:
        content_key: Key the content was encrypted with (opaque bytes)
        path: Encrypted file on local disk
        location: Disposition name shown to downloaders
        length: Size of the encrypted file, if known
        sha256: Hex digest of the encrypted file, if known
    """

    content_key: bytes
    path: Path
    location: Optional[str] = None
    length: Optional[int] = None
    sha256: Optional[str] = None

    @property
    def resolved_location(self) -> str:
        return self.location if self.location is not None else UNKNOWN_LOCATION

    @property
    def resolved_length(self) -> int:
        return self.length if self.length is not None else UNKNOWN_LENGTH

    @property
    def resolved_sha256(self) -> str:
        return self.sha256 if self.sha256 is not None else UNKNOWN_CHECKSUM

    def open(self) -> BinaryIO:
        """Open the encrypted file for reading."""
        return open(self.path, "rb")

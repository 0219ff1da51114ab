"""
Request and response models for the HTTP API.
"""

from __future__ import annotations

import base64
import binascii
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator


class ContentRegistration(BaseModel):
    """Result of an external encryption, to be registered under a content id.

    content_key is base64 on the wire. Optional fields that are left out are
    stored as unknown (size -1, empty checksum, empty disposition).
    """

    model_config = ConfigDict(extra="ignore")

    content_key: constr(min_length=1) = Field(..., description="Base64 content key")
    content_disposition: Optional[constr(max_length=255)] = None
    size: Optional[int] = Field(None, ge=0)
    checksum: Optional[constr(max_length=64)] = None
    output: constr(min_length=1) = Field(
        ..., description="Path of the encrypted file on the server"
    )

    @field_validator("content_key")
    @classmethod
    def validate_content_key(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("content_key must be base64") from e
        return value

    def key_bytes(self) -> bytes:
        return base64.b64decode(self.content_key)


class PublicationCreate(BaseModel):
    """Schema for creating a publication from a file in the master repository."""

    model_config = ConfigDict(extra="forbid")

    title: constr(min_length=1, max_length=255)
    master_filename: constr(min_length=1, max_length=512)
    content_id: Optional[constr(min_length=1, max_length=255)] = None


class PublicationUpdate(BaseModel):
    """Only the title of a publication can change."""

    model_config = ConfigDict(extra="ignore")

    title: constr(min_length=1, max_length=255)


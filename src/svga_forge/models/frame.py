"""
Frame Models
============

Typed frame representations for the ingestion pipeline.

FrameRecord is the internal record owned by the FrameRegistry.
FrameUpload is the wire schema accepted by the HTTP surface.

Upload Contract:
    {
        "name": "frame_0001.png",
        "image": "<base64 image bytes>"
    }

Design Rules:
    - FrameRecord is immutable; reordering produces new records
    - content is never decoded or modified after ingestion
"""

import base64
import binascii
from dataclasses import dataclass

from pydantic import BaseModel, Field, field_validator


@dataclass(frozen=True, slots=True)
class FrameRecord:
    """
    One ingested still image.

    Attributes:
        id: Opaque token generated at ingestion, stable identity for removal
        name: Original filename, used as the natural sort key
        content: Raw source bytes, byte-identical to the upload
        display_handle: Revocable token for preview rendering
        position: 0-based index from the most recent registry reorder
    """

    id: str
    name: str
    content: bytes
    display_handle: str
    position: int = 0

    @property
    def size(self) -> int:
        """Size of the raw content in bytes."""
        return len(self.content)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the image bytes."""
        return (
            f"FrameRecord(id={self.id!r}, name={self.name!r}, "
            f"position={self.position}, size={self.size})"
        )


@dataclass(frozen=True, slots=True)
class IncomingFile:
    """A raw file handed to the registry: original filename plus bytes."""

    name: str
    content: bytes


class FrameUpload(BaseModel):
    """
    Schema for one file in an ingestion request.

    Attributes:
        name: Original filename (sort key)
        image: Base64-encoded image bytes
    """

    name: str = Field(
        ...,
        min_length=1,
        description="Original filename of the frame",
    )

    image: str = Field(
        ...,
        description="Base64-encoded image bytes",
    )

    @field_validator("image")
    @classmethod
    def _check_base64(cls, v: str) -> str:
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"image is not valid base64: {e}")
        return v

    def to_incoming(self) -> IncomingFile:
        """Decode the payload into an IncomingFile."""
        return IncomingFile(name=self.name, content=base64.b64decode(self.image))

    class Config:
        """Pydantic model configuration."""

        json_schema_extra = {
            "example": {
                "name": "frame_0001.png",
                "image": "iVBORw0KGgoAAAANSUhEUg...",
            }
        }


class IngestRequest(BaseModel):
    """Batch of files submitted in one ingestion event."""

    files: list[FrameUpload] = Field(default_factory=list)

"""Pydantic schemas describing resolved content."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FileKind = Literal["file", "folder"]
MediaSubtype = Literal["video", "image", "document", "other"]


class FileInfo(BaseModel):
    """Metadata returned by a content provider for one share link."""

    model_config = ConfigDict(frozen=True)

    kind: FileKind = Field(..., description="Single file or folder")
    name: str = Field(..., description="Display name")
    size_bytes: int = Field(..., ge=0, description="Total size as reported by the provider")
    subtype: MediaSubtype = Field(
        "other",
        description="Media subtype used for delivery routing (folders are always 'other')",
    )
    file_count: int | None = Field(
        None,
        description="Number of files for folders, when known",
    )

    @property
    def is_folder(self) -> bool:
        return self.kind == "folder"

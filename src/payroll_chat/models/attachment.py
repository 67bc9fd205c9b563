"""Attachment model for files uploaded out of band."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class AttachmentRejected(ValueError):
    """The local file cannot be attached."""
    pass


class Attachment(BaseModel):
    """
    A local file referenced by a turn for agent analysis.

    An attachment is not a separate entry in the message stream: once uploaded
    it is folded into the next user message as a descriptive notice.
    """

    local_path: str = Field(..., description="Path of the file on the local machine")
    file_name: str = Field(..., min_length=1, description="Base name of the file")
    byte_size: int = Field(..., gt=0, description="Size of the file in bytes")
    remote_file_id: Optional[str] = Field(None, description="Identifier assigned once the upload succeeds")

    @field_validator("local_path")
    @classmethod
    def validate_path(cls, v):
        if not v.strip():
            raise ValueError("Path cannot be empty")
        return v.strip()

    @classmethod
    def from_path(cls, path: str, max_bytes: Optional[int] = None) -> "Attachment":
        """Describe a local file after checking it can be uploaded.

        Args:
            path: Path as typed by the user
            max_bytes: Optional local size ceiling

        Raises:
            AttachmentRejected: If the path is empty, missing, not a regular
                file, empty, or larger than ``max_bytes``
        """
        if not path or not path.strip():
            raise AttachmentRejected("Please specify a file path.")

        file_path = Path(path.strip()).expanduser()
        if not file_path.is_file():
            raise AttachmentRejected(f"File not found: {path.strip()}")

        size = file_path.stat().st_size
        if size == 0:
            raise AttachmentRejected(f"File is empty: {path.strip()}")
        if max_bytes is not None and size > max_bytes:
            raise AttachmentRejected(
                f"File is too large: {file_path.name} ({size:,} bytes, limit {max_bytes:,} bytes)"
            )

        return cls(local_path=str(file_path), file_name=file_path.name, byte_size=size)

    @property
    def uploaded(self) -> bool:
        return self.remote_file_id is not None

    def read_bytes(self) -> bytes:
        return Path(self.local_path).read_bytes()

    def to_notice(self) -> str:
        """User content announcing the upload to the agent."""
        return f"I've uploaded a file: {self.file_name} ({self.byte_size:,} bytes). Please analyze it."

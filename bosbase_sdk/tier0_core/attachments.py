"""
bosbase_sdk.tier0_core.attachments
───────────────────────────────────
Binary attachment descriptors sent as file parts of a multipart request.

A descriptor owns a single-use byte stream. Create one per request; the
request builder hands the stream to httpx unread and it is consumed once.
"""
from __future__ import annotations

import io
import os
from dataclasses import dataclass
from typing import BinaryIO

from bosbase_sdk.tier0_core.http import OCTET_STREAM, TEXT_PLAIN


@dataclass(frozen=True)
class FileAttachment:
    """A named binary stream for one multipart file field."""
    field_name: str
    content: BinaryIO
    file_name: str = ""
    content_type: str | None = None

    def __post_init__(self) -> None:
        if not self.field_name or not self.field_name.strip():
            raise ValueError("FileAttachment.field_name must be a non-empty string")
        # frozen: fill defaults through object.__setattr__
        if not self.file_name or not self.file_name.strip():
            object.__setattr__(self, "file_name", self.field_name)
        if not self.content_type or not self.content_type.strip():
            object.__setattr__(self, "content_type", OCTET_STREAM)

    @classmethod
    def from_bytes(
        cls,
        field_name: str,
        data: bytes,
        file_name: str = "",
        content_type: str | None = None,
    ) -> "FileAttachment":
        return cls(field_name, io.BytesIO(data), file_name, content_type)

    @classmethod
    def from_string(
        cls,
        field_name: str,
        value: str,
        file_name: str = "",
        content_type: str | None = TEXT_PLAIN,
    ) -> "FileAttachment":
        """UTF-8 encode *value* and wrap it as an attachment."""
        return cls(field_name, io.BytesIO(value.encode("utf-8")), file_name, content_type)

    @classmethod
    def from_path(
        cls,
        field_name: str,
        path: str | os.PathLike[str],
        content_type: str | None = None,
    ) -> "FileAttachment":
        """
        Open *path* for reading. The file name sent to the server is the
        path's base name. The stream is left open; close
        ``attachment.content`` once the send completes.
        """
        stream = open(path, "rb")
        return cls(field_name, stream, os.path.basename(os.fspath(path)), content_type)


__all__ = ["FileAttachment"]

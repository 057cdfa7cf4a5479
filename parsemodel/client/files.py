"""
File attachments.

A file is never embedded in its owner's attribute payload. It is uploaded on
its own to ``files/<filename>``; the backend answers with a ``name`` and
``url`` which the owner then stores as ``{"__type": "File", "name", "url"}``.
"""
from __future__ import annotations

import logging
import mimetypes
import os
import re
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel, ValidationError as PydanticValidationError

from parsemodel.client.transport import require_ok
from parsemodel.core.exceptions import TransportError
from parsemodel.core.parse_errors import ValidationErrors
from parsemodel.core.types import TYPE_KEY

if TYPE_CHECKING:
    from parsemodel.client.model import Model

logger = logging.getLogger(__name__)

RESTRICTED_CHARACTERS = re.compile(r"[&$+,/:;=?@<>\[\]{}|\\^~%# ]")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def sanitize_filename(filename: str) -> str:
    """Replace every URL-unsafe character with a single underscore."""
    return RESTRICTED_CHARACTERS.sub("_", filename)


def file_extension(filename: Optional[str]) -> Optional[str]:
    if not filename:
        return None
    ext = os.path.splitext(filename)[1]
    return ext[1:] if ext else None


class UploadFile:
    """Wraps a file for upload to the backend.

    Usage:
        # From file path
        f = UploadFile("/path/to/avatar.png")

        # From bytes
        f = UploadFile(b"content", name="data.txt")

        # From file-like object
        f = UploadFile(open("report.pdf", "rb"), content_type="application/pdf")
    """

    def __init__(self, source: Any, name: Optional[str] = None, content_type: Optional[str] = None):
        if isinstance(source, (str, Path)):
            p = Path(source)
            self.name = name or p.name
            self._data = None
            self._path = p
        elif isinstance(source, (bytes, bytearray)):
            if not name:
                raise ValueError("name is required when source is bytes")
            self.name = name
            self._data = bytes(source)
            self._path = None
        elif hasattr(source, "read"):
            self.name = name or os.path.basename(getattr(source, "name", "") or "") or "unnamed"
            data = source.read()
            if isinstance(data, str):
                data = data.encode("utf-8")
            self._data = data
            self._path = None
        else:
            raise TypeError(f"Expected file path, bytes, or file-like object, got {type(source)}")

        self.content_type = content_type or mimetypes.guess_type(self.name)[0] or DEFAULT_CONTENT_TYPE

    @classmethod
    def coerce(cls, source: Any) -> "UploadFile":
        """Accept an UploadFile or any upload-like object (``filename``/``content_type`` attributes)."""
        if isinstance(source, cls):
            return source
        name = getattr(source, "original_filename", None) or getattr(source, "filename", None)
        content_type = getattr(source, "content_type", None)
        return cls(source, name=name, content_type=content_type)

    def read(self) -> bytes:
        if self._data is not None:
            return self._data
        if self._path is not None:
            return self._path.read_bytes()
        raise ValueError("No file data available")

    @property
    def size(self) -> int:
        if self._data is not None:
            return len(self._data)
        return self._path.stat().st_size

    def __repr__(self) -> str:
        return f"UploadFile({self.name!r}, {self.content_type!r})"


class FileState(Enum):
    UNBOUND = "unbound"
    UPLOADED = "uploaded"
    DELETED = "deleted"


class FileUploadResult(BaseModel):
    name: str
    url: str


class FileAttachment:
    """
    A file bound to one named field of one owning model instance.

    The attachment is created lazily the first time its field is accessed and
    keeps its own upload state: ``dirty`` is true only after an upload
    succeeded in this process and until the owner has saved the reference.
    """

    def __init__(self, attr_name: str, instance: "Model", attrs: Optional[Dict[str, Any]] = None):
        attrs = attrs or {}
        self.attr_name = attr_name
        self.instance = instance
        self.name: Optional[str] = attrs.get("name")
        self.url: Optional[str] = attrs.get("url")

        self.source: Optional[UploadFile] = None
        self.original_filename: Optional[str] = None
        self.file_ext: Optional[str] = None
        self.content_type: Optional[str] = None
        self.size: Optional[int] = None

        self.errors = ValidationErrors()
        self._dirty = False
        self._deleted = False

    @property
    def state(self) -> FileState:
        if self._deleted:
            return FileState.DELETED
        if self.name or self.url:
            return FileState.UPLOADED
        return FileState.UNBOUND

    def dirty(self) -> bool:
        return self._dirty

    def assign(self, file: Any) -> Optional["FileAttachment"]:
        """Load an upload source into this attachment. No network call."""
        if file is None:
            return None

        source = UploadFile.coerce(file)
        self.source = source
        self.original_filename = sanitize_filename(source.name)
        self.file_ext = file_extension(self.original_filename)
        self.content_type = (source.content_type or "").strip()
        self.size = source.size
        self._deleted = False
        return self

    def bind(self, name: Optional[str], url: Optional[str]) -> "FileAttachment":
        """Point the attachment at an already stored remote file."""
        self.name = name
        self.url = url
        return self

    def to_parse_attr(self) -> Dict[str, Any]:
        return {TYPE_KEY: "File", "name": self.name, "url": self.url}

    def save(self) -> bool:
        """Upload if a source is assigned. Never aborts the owner's save by itself."""
        self.create_file()
        return True

    def create_file(self) -> "FileAttachment":
        if self.source is None:
            return self

        self.errors.clear()
        transport = self.instance.get_transport()
        path = f"files/{quote(self.original_filename)}"
        headers = {"Content-Type": self.content_type or DEFAULT_CONTENT_TYPE}
        logger.debug(f"Uploading {self.size} bytes for {type(self.instance).__name__}.{self.attr_name}")
        resp = transport.request("POST", path, content=self.source.read(), headers=headers)

        if resp.is_validation_error:
            _, message = self.errors.add_backend_error(resp.data)
            self.instance.errors.add(self.attr_name, message)
        elif resp.ok:
            try:
                result = FileUploadResult.model_validate(resp.data)
            except PydanticValidationError as e:
                raise TransportError(f"Malformed upload response: {resp.data!r}") from e
            self.name = result.name
            self.url = result.url
            self.source = None
            self._dirty = True
            self._deleted = False
        else:
            require_ok(resp, context=f"Upload of {self.original_filename}")
        return self

    def mark_clean(self) -> None:
        self._dirty = False

    def destroy(self) -> None:
        if not self.name:
            logger.debug(f"{type(self.instance).__name__}.{self.attr_name} has no remote file to delete")
            return None
        transport = self.instance.get_transport()
        resp = transport.request("DELETE", f"files/{quote(self.name)}", use_master_key=True)
        require_ok(resp, context=f"Deletion of file {self.name}")
        self.name = None
        self.url = None
        self.source = None
        self._dirty = False
        self._deleted = True
        return None

    def __repr__(self) -> str:
        return f"<FileAttachment {self.attr_name} {self.state.value} name={self.name!r}>"

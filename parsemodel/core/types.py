from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

TYPE_KEY = "__type"
CLASS_NAME_KEY = "className"
OBJECT_ID_KEY = "objectId"
CREATED_AT_KEY = "createdAt"
UPDATED_AT_KEY = "updatedAt"

# Fields owned by the backend; never sent in an update payload.
SERVER_FIELDS = (OBJECT_ID_KEY, CREATED_AT_KEY, UPDATED_AT_KEY)

USER_CLASS_NAME = "User"
USER_REMOTE_CLASS_NAME = "_User"


class ResourceState(Enum):
    NEW = "new"
    PERSISTED = "persisted"
    DESTROYED = "destroyed"


class ActionType(Enum):
    SAVE = "save"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"


@dataclass(frozen=True)
class Pointer:
    class_name: str
    object_id: Optional[str]

    def encode(self) -> Dict[str, Any]:
        return {TYPE_KEY: "Pointer", CLASS_NAME_KEY: self.class_name, OBJECT_ID_KEY: self.object_id}


@dataclass(frozen=True)
class EmbeddedObject:
    class_name: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Bytes:
    base64: str

    def decode(self) -> bytes:
        return base64.b64decode(self.base64)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Bytes":
        return cls(base64.b64encode(data).decode("ascii"))

    def encode(self) -> Dict[str, Any]:
        return {TYPE_KEY: "Bytes", "base64": self.base64}


@dataclass(frozen=True)
class Date:
    iso: str

    def to_datetime(self) -> datetime:
        return parse_timestamp(self.iso)

    @classmethod
    def from_datetime(cls, value: Union[datetime, date]) -> "Date":
        if not isinstance(value, datetime):
            value = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        elif value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        return cls(value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z")

    def encode(self) -> Dict[str, Any]:
        return {TYPE_KEY: "Date", "iso": self.iso}


@dataclass(frozen=True)
class FileRef:
    name: Optional[str]
    url: Optional[str]


@dataclass(frozen=True)
class Scalar:
    """Anything that is not a recognized tagged structure, returned as-is."""

    value: Any


EncodedValue = Union[Pointer, EmbeddedObject, Bytes, Date, FileRef, Scalar]


def decode(raw: Any) -> EncodedValue:
    """
    Classify a raw attribute value by its ``__type`` discriminator.

    Unrecognized tags and untagged values both come back as :class:`Scalar`.
    """
    if not isinstance(raw, dict):
        return Scalar(raw)

    tag = raw.get(TYPE_KEY)
    if tag == "Pointer":
        return Pointer(raw.get(CLASS_NAME_KEY), raw.get(OBJECT_ID_KEY))
    if tag == "Object":
        fields = {k: v for k, v in raw.items() if k not in (TYPE_KEY, CLASS_NAME_KEY)}
        return EmbeddedObject(raw.get(CLASS_NAME_KEY), fields)
    if tag == "Bytes":
        return Bytes(raw.get("base64", ""))
    if tag == "Date":
        return Date(raw.get("iso"))
    if tag == "File":
        return FileRef(raw.get("name"), raw.get("url"))
    return Scalar(raw)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse the backend's ISO-8601 timestamps (``2011-08-21T18:02:52.249Z``)."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_class_name(class_name: str) -> str:
    if class_name == USER_REMOTE_CLASS_NAME:
        return USER_CLASS_NAME
    return class_name

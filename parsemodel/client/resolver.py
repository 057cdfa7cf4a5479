"""
Relationship resolution.

Attribute values arrive from the backend as plain JSON. Relationship-shaped
values carry a ``__type`` tag that decides how they are read back:

- ``Pointer``: fetched from the backend on every read (no caching).
- ``Object``: an inlined record, materialized without a remote call.
- ``Bytes``: base64 payload, decoded to ``bytes``.
- ``Date``: ISO-8601 timestamp, parsed to an aware ``datetime``.
- ``File``: bound to the owner's :class:`FileAttachment` for the field.

Everything else is returned unchanged.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from parsemodel.core.registry import Registry, registry as default_registry
from parsemodel.core.types import (
    Bytes,
    Date,
    EmbeddedObject,
    FileRef,
    Pointer,
    Scalar,
    decode,
)

if TYPE_CHECKING:
    from parsemodel.client.model import Model

logger = logging.getLogger(__name__)


def is_referenceable(value: Any) -> bool:
    return callable(getattr(value, "to_pointer", None))


def encode_value(value: Any) -> Any:
    """
    Encode a Python value into the form kept in the attribute store and sent
    to the backend.
    """
    if is_referenceable(value):
        return value.to_pointer()
    if callable(getattr(value, "to_parse_attr", None)):
        return value.to_parse_attr()
    if isinstance(value, (datetime, date)):
        return Date.from_datetime(value).encode()
    if isinstance(value, (bytes, bytearray)):
        return Bytes.from_bytes(bytes(value)).encode()
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


class Resolver:
    def __init__(self, registry: Registry = None):
        self.registry = registry or default_registry

    def resolve(self, owner: "Model", field: str, raw: Any) -> Any:
        value = decode(raw)

        if isinstance(value, Pointer):
            model = self.registry.resolve(value.class_name)
            logger.debug(f"Resolving {field} -> {model.__name__}({value.object_id}) by fetch")
            return model.find(value.object_id)
        if isinstance(value, EmbeddedObject):
            model = self.registry.resolve(value.class_name)
            logger.debug(f"Resolving {field} -> embedded {model.__name__}")
            return model._from_data(value.fields)
        if isinstance(value, Bytes):
            return value.decode()
        if isinstance(value, Date):
            return value.to_datetime()
        if isinstance(value, FileRef):
            return owner.file_for(field, {"name": value.name, "url": value.url})
        if isinstance(value, Scalar):
            return value.value
        raise TypeError(f"Unhandled encoded value {value!r}")


resolver = Resolver()

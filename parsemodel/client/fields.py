"""
Declared fields.

Declaring a field is optional: every key the backend returns is reachable
through ``instance.get(name)`` / ``instance.set(name, value)`` and as a plain
attribute. Declared fields add a stable attribute on the class, an optional
JSON schema used by the validation gate, and special handling for files.
"""
from typing import Any, Dict, Optional


class Field:
    """
    A typed convenience accessor over the generic attribute path.

    :param schema: optional JSON schema the value must satisfy before save
    :param required: whether the value must be present before save
    """

    def __init__(self, schema: Optional[Dict[str, Any]] = None, required: bool = False):
        self.schema = schema
        self.required = required
        self.name: Optional[str] = None

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return instance.get(self.name)

    def __set__(self, instance, value):
        instance.set(self.name, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FileField(Field):
    """
    A field holding a :class:`parsemodel.client.files.FileAttachment`.

    Reading returns the attachment (created on first access); assigning loads
    a new upload source into it.
    """

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return instance.file_for(self.name)

    def __set__(self, instance, value):
        instance.file_for(self.name).assign(value)

"""
parsemodel: an object mapper over a schema-less REST data backend.
"""

from parsemodel.client.fields import Field, FileField
from parsemodel.client.files import FileAttachment, UploadFile
from parsemodel.client.hooks import (after_create, after_destroy, after_save,
                                     after_update, before_create,
                                     before_destroy, before_save,
                                     before_update)
from parsemodel.client.model import Model
from parsemodel.client.query import Query
from parsemodel.client.relations import BelongsTo, HasMany
from parsemodel.core.config import ClientConfig, configure
from parsemodel.core.exceptions import (ConfigError, ParseModelError,
                                        RecordNotFound, TransportError,
                                        UnresolvableTypeError)

__all__ = [
    "Model",
    "Field",
    "FileField",
    "BelongsTo",
    "HasMany",
    "Query",
    "UploadFile",
    "FileAttachment",
    # Hooks
    "before_save",
    "after_save",
    "before_create",
    "after_create",
    "before_update",
    "after_update",
    "before_destroy",
    "after_destroy",
    # Configuration
    "ClientConfig",
    "configure",
    # Errors
    "ParseModelError",
    "TransportError",
    "RecordNotFound",
    "UnresolvableTypeError",
    "ConfigError",
]

__version__ = "0.1.0"

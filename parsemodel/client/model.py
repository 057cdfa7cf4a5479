"""
The model base class.

A subclass maps to one remote collection. Instances hold their attributes in
an :class:`AttributeStore`; every key in the store is reachable as an
attribute, whether or not it was declared with :class:`Field`.

A backend key that collides with a member of :class:`Model` (``save``,
``errors``, ``state``, ``query``, ``count`` and the like) keeps the member's
meaning on attribute access; read and write such keys with :meth:`Model.get`
and :meth:`Model.set`.

Usage:
    class Post(Model):
        title = Field({"type": "string", "maxLength": 140}, required=True)
        cover = FileField()
        comments = HasMany("Comment")

    post = Post(title="Hello")
    post.cover = UploadFile("/tmp/cover.png")
    if not post.save():
        print(post.errors.full_messages())
"""
from __future__ import annotations

import logging
from types import MethodType
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from jsonschema import Draft7Validator, FormatChecker

from parsemodel.client.attributes import AttributeStore
from parsemodel.client.fields import Field, FileField
from parsemodel.client.files import FileAttachment, FileState, UploadFile
from parsemodel.client.hooks import (
    HookRegistry,
    before_destroy,
    before_save,
    collect_hooks,
)
from parsemodel.client.query import Query
from parsemodel.client.relations import HasMany
from parsemodel.client.resolver import encode_value, resolver as default_resolver
from parsemodel.client.transport import (
    AbstractTransport,
    TransportResponse,
    require_ok,
)
from parsemodel.core import config
from parsemodel.core.exceptions import RecordNotFound
from parsemodel.core.parse_errors import BASE, ValidationErrors
from parsemodel.core.registry import registry as default_registry
from parsemodel.core.types import (
    CREATED_AT_KEY,
    OBJECT_ID_KEY,
    SERVER_FIELDS,
    UPDATED_AT_KEY,
    USER_CLASS_NAME,
    USER_REMOTE_CLASS_NAME,
    ActionType,
    FileRef,
    Pointer,
    ResourceState,
    decode,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

BLANK_MESSAGE = "can't be blank"


class class_or_instance_method:
    """
    One name, two implementations: ``Post.create(title=...)`` builds and saves
    a new record, ``post.create()`` sends an existing instance.
    """

    def __init__(self, instance_func: Callable):
        self.instance_func = instance_func
        self.class_func: Optional[Callable] = None
        self.__doc__ = instance_func.__doc__

    def classlevel(self, func: Callable) -> "class_or_instance_method":
        self.class_func = func
        return self

    def __get__(self, instance, owner=None):
        if instance is None:
            return MethodType(self.class_func, owner)
        return MethodType(self.instance_func, instance)


class Model:
    # Remote class name when it differs from the Python class name.
    class_name: Optional[str] = None
    # Per-model transport; falls back to the one installed by configure().
    transport: Optional[AbstractTransport] = None
    required_fields: Tuple[str, ...] = ()

    _fields: Dict[str, Field] = {}
    _relations: Dict[str, HasMany] = {}
    _hooks: HookRegistry = HookRegistry()
    _resolver = default_resolver

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        fields = dict(cls._fields)
        relations = dict(cls._relations)
        for name, value in vars(cls).items():
            if isinstance(value, Field):
                fields[name] = value
            elif isinstance(value, HasMany):
                relations[name] = value
        cls._fields = fields
        cls._relations = relations
        cls._hooks = collect_hooks(vars(cls), cls._hooks.copy())
        default_registry.register(cls)

    def __init__(self, attributes: Optional[Dict[str, Any]] = None, *, new: bool = True, **fields: Any):
        object.__setattr__(self, "_store", AttributeStore())
        object.__setattr__(self, "_files", {})
        object.__setattr__(self, "_errors", ValidationErrors())
        object.__setattr__(self, "_accessors", frozenset())

        values = dict(attributes or {})
        values.update(fields)
        if new:
            object.__setattr__(self, "_state", ResourceState.NEW)
            for name, value in values.items():
                self.set(name, value)
        else:
            object.__setattr__(self, "_state", ResourceState.PERSISTED)
            object.__setattr__(self, "_store", AttributeStore(committed=values))
        self.refresh_accessors()

    @classmethod
    def _from_data(cls, data: Optional[Dict[str, Any]]) -> "Model":
        """Build a persisted instance from a record the backend returned."""
        return cls(data or {}, new=False)

    # -- Attribute access --

    def get(self, name: str) -> Any:
        if name in self._files or isinstance(self._fields.get(name), FileField):
            return self.file_for(name)
        raw = self._store.get(name)
        if raw is None:
            return None
        return self._resolver.resolve(self, name, raw)

    def set(self, name: str, value: Any) -> Any:
        if isinstance(self._fields.get(name), FileField) or isinstance(value, UploadFile):
            self.file_for(name).assign(value)
        else:
            # A plain value replaces any attachment held for the same name.
            self._files.pop(name, None)
            self._store.set(name, encode_value(value))
        if name not in self._accessors:
            object.__setattr__(self, "_accessors", self._accessors | {name})
        return value

    def refresh_accessors(self) -> None:
        """Recompute which store keys are reachable as plain attributes."""
        object.__setattr__(self, "_accessors", frozenset(self._store.keys()) | frozenset(self._files))

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._accessors:
            return self.get(name)
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or hasattr(type(self), name):
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    def __dir__(self):
        return sorted(set(super().__dir__()) | set(self._accessors))

    @property
    def attributes(self) -> Dict[str, Any]:
        return self._store.snapshot()

    @property
    def pending(self) -> Dict[str, Any]:
        return dict(self._store.pending)

    @property
    def errors(self) -> ValidationErrors:
        return self._errors

    def file_for(self, name: str, attrs: Optional[Dict[str, Any]] = None) -> FileAttachment:
        """
        Return the attachment for ``name``, creating it on first access.

        ``attrs`` (``name``/``url``) rebinds an existing attachment to a
        stored remote file unless it holds an upload not yet saved.
        """
        attachment = self._files.get(name)
        if attachment is None:
            if attrs is None:
                stored = decode(self._store.get(name))
                if isinstance(stored, FileRef):
                    attrs = {"name": stored.name, "url": stored.url}
            attachment = FileAttachment(name, self, attrs)
            self._files[name] = attachment
        elif attrs is not None and attachment.source is None and not attachment.dirty():
            attachment.bind(attrs.get("name"), attrs.get("url"))
        return attachment

    def attachments(self) -> List[FileAttachment]:
        """Every attachment of this instance, including stored files not yet accessed."""
        for name in self._store.keys():
            if name not in self._files and isinstance(decode(self._store.get(name)), FileRef):
                self.file_for(name)
        return list(self._files.values())

    # -- Identity --

    @property
    def id(self) -> Optional[str]:
        return self._store.get(OBJECT_ID_KEY)

    @property
    def created_at(self):
        return parse_timestamp(self._store.get(CREATED_AT_KEY))

    @property
    def updated_at(self):
        return parse_timestamp(self._store.get(UPDATED_AT_KEY))

    @property
    def state(self) -> ResourceState:
        return self._state

    @property
    def is_new(self) -> bool:
        return self._state is ResourceState.NEW

    @property
    def persisted(self) -> bool:
        return self._state is ResourceState.PERSISTED

    @classmethod
    def remote_class_name(cls) -> str:
        if cls.class_name:
            return cls.class_name
        if cls.__name__ == USER_CLASS_NAME:
            return USER_REMOTE_CLASS_NAME
        return cls.__name__

    def to_pointer(self) -> Dict[str, Any]:
        return Pointer(self.remote_class_name(), self.id).encode()

    # -- Endpoints --

    @classmethod
    def collection_path(cls) -> str:
        remote = cls.remote_class_name()
        if remote == USER_REMOTE_CLASS_NAME:
            return "users"
        return f"classes/{remote}"

    def instance_path(self) -> str:
        return f"{self.collection_path()}/{self.id}"

    @classmethod
    def get_transport(cls) -> AbstractTransport:
        return cls.transport or config.get_transport()

    # -- Validation --

    @classmethod
    def json_schema(cls) -> Dict[str, Any]:
        properties = {name: f.schema for name, f in cls._fields.items() if f.schema}
        required = list(cls.required_fields)
        required += [name for name, f in cls._fields.items() if f.required and name not in required]
        return {"type": "object", "properties": properties, "required": required}

    def valid(self) -> bool:
        """
        Run the local checks that gate ``save``: required fields, declared
        JSON schemas, then the ``validate`` hook. Errors land on ``errors``.
        """
        self._errors.clear()
        schema = self.json_schema()
        values = {k: v for k, v in self.attributes.items() if v is not None}
        for name in schema["required"]:
            attachment = self._files.get(name)
            if attachment is not None:
                if attachment.state is FileState.UNBOUND and attachment.source is None:
                    self._errors.add(name, BLANK_MESSAGE)
            elif values.get(name) in (None, ""):
                self._errors.add(name, BLANK_MESSAGE)

        if schema["properties"]:
            validator = Draft7Validator(
                {"type": "object", "properties": schema["properties"]},
                format_checker=FormatChecker(),
            )
            for error in validator.iter_errors(values):
                field = error.path[0] if error.path else BASE
                self._errors.add(str(field), error.message)

        self.validate()
        return not self._errors

    def validate(self) -> None:
        """Override to add custom checks with ``self.errors.add(field, message)``."""
        pass

    # -- Lifecycle --

    @before_save
    def save_files(self) -> None:
        for attachment in self.attachments():
            attachment.save()

    @before_destroy
    def destroy_files(self) -> None:
        for attachment in self.attachments():
            attachment.destroy()

    def save(self) -> bool:
        if not self.valid():
            logger.debug(f"{type(self).__name__} failed validation: {self._errors.to_dict()}")
            return False

        def create_or_update() -> bool:
            return self.create() if self.is_new else self.update()

        return self._hooks.run(ActionType.SAVE, self, create_or_update) is True

    @class_or_instance_method
    def create(self) -> bool:
        """Send this new record to the backend."""
        return self._hooks.run(ActionType.CREATE, self, self._perform_create) is True

    @create.classlevel
    def create(cls, attributes: Optional[Dict[str, Any]] = None, **fields: Any) -> "Model":
        """Build and save a new record; check ``errors`` on the result."""
        instance = cls(attributes, **fields)
        instance.save()
        return instance

    def update(self, extra: Optional[Dict[str, Any]] = None) -> bool:
        if self.id is None:
            raise RecordNotFound(f"Cannot update a {type(self).__name__} that was never saved")
        if extra:
            self._store.merge_pending(
                {k: encode_value(v) for k, v in extra.items() if k not in SERVER_FIELDS}
            )
        return self._hooks.run(ActionType.UPDATE, self, self._perform_update) is True

    def update_attributes(self, **attributes: Any) -> bool:
        return self.update(attributes)

    def destroy(self) -> None:
        if self.id is None:
            raise RecordNotFound(f"Cannot destroy a {type(self).__name__} that was never saved")
        self._hooks.run(ActionType.DESTROY, self, self._perform_destroy)
        return None

    def _fold_files(self) -> List[FileAttachment]:
        folded = []
        for name, attachment in self._files.items():
            if attachment.dirty():
                self._store.stage(name, attachment.to_parse_attr())
                folded.append(attachment)
        return folded

    def _perform_create(self) -> bool:
        folded = self._fold_files()
        payload = jsonable_encoder(self._store.outgoing())
        path = self.collection_path()
        logger.debug(f"Creating {type(self).__name__} at {path} with {sorted(payload)}")
        resp = self.get_transport().request("POST", path, json=payload)
        if not self._accept(resp, f"Create of {type(self).__name__}", folded):
            return False
        object.__setattr__(self, "_state", ResourceState.PERSISTED)
        logger.debug(f"{type(self).__name__}({self.id}) is now persisted")
        return True

    def _perform_update(self) -> bool:
        folded = self._fold_files()
        payload = jsonable_encoder(self._store.update_payload())
        path = self.instance_path()
        logger.debug(f"Updating {type(self).__name__} at {path} with {sorted(payload)}")
        resp = self.get_transport().request("PUT", path, json=payload)
        return self._accept(resp, f"Update of {type(self).__name__}({self.id})", folded)

    def _accept(self, resp: TransportResponse, context: str, folded: List[FileAttachment]) -> bool:
        """Merge a successful write or record a rejected one; raise on anything else."""
        if resp.is_validation_error:
            self._errors.add_backend_error(resp.data)
            return False
        require_ok(resp, context=context)
        self._store.merge_response(resp.data)
        self.refresh_accessors()
        for attachment in folded:
            attachment.mark_clean()
        return True

    def _perform_destroy(self) -> bool:
        path = self.instance_path()
        logger.debug(f"Destroying {type(self).__name__} at {path}")
        resp = self.get_transport().request("DELETE", path)
        require_ok(resp, context=f"Destroy of {type(self).__name__}({self.id})")
        self._store.clear()
        self._files.clear()
        self.refresh_accessors()
        object.__setattr__(self, "_state", ResourceState.DESTROYED)
        return True

    # -- Queries --

    @classmethod
    def query(cls) -> Query:
        return Query(cls)

    @classmethod
    def find(cls, object_id: Optional[str]) -> Optional["Model"]:
        if not object_id:
            raise RecordNotFound(f"Couldn't find {cls.__name__} without an id")
        return cls.query().where({OBJECT_ID_KEY: object_id}).first()

    @classmethod
    def where(cls, conditions: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Query:
        return cls.query().where(conditions, **kwargs)

    @classmethod
    def find_by(cls, field: str, value: Any) -> Optional["Model"]:
        return cls.where({field: value}).first()

    @classmethod
    def find_all_by(cls, field: str, value: Any) -> List["Model"]:
        return cls.where({field: value}).all()

    @classmethod
    def all(cls) -> List["Model"]:
        return cls.query().all()

    @classmethod
    def first(cls) -> Optional["Model"]:
        return cls.query().first()

    @classmethod
    def count(cls) -> int:
        return cls.query().count()

    @classmethod
    def limit(cls, n: int) -> Query:
        return cls.query().limit(n)

    @classmethod
    def order(cls, field: str) -> Query:
        return cls.query().order(field)

    @classmethod
    def include_object(cls, field: str) -> Query:
        return cls.query().include_object(field)

    @classmethod
    def destroy_all(cls) -> None:
        for instance in cls.all():
            instance.destroy()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} {self._state.value}>"


Model._hooks = collect_hooks(vars(Model), HookRegistry())

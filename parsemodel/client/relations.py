"""
One-to-many traversal.

``HasMany`` looks children up by a Pointer field that references the parent.
Everything a traversal needs (parent, reference field, target type) is held
in a :class:`RelationContext` created per access, so two traversals over
different parents never share state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional, Type

from parsemodel.client.fields import Field
from parsemodel.core.registry import Registry, registry as default_registry

if TYPE_CHECKING:
    from parsemodel.client.model import Model
    from parsemodel.client.query import Query

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelationContext:
    parent: "Model"
    field: str
    target: Type["Model"]

    def query(self) -> "Query":
        return self.target.where({self.field: self.parent})


class RelationList(list):
    """
    The children of one parent. ``append`` links the child to the parent,
    saves the child, then adds it to the list.
    """

    def __init__(self, items: Iterable["Model"], context: RelationContext):
        super().__init__(items)
        self.context = context

    def append(self, child: "Model") -> None:
        ctx = self.context
        child.set(ctx.field, ctx.parent)
        child.save()
        super().append(child)

    def __repr__(self) -> str:
        return f"RelationList({list.__repr__(self)}, field={self.context.field!r})"


class BelongsTo(Field):
    """
    A field holding a Pointer to another model. Reading it fetches the target.

    :param class_name: name of the target model; informational only, the
        stored Pointer carries the remote class.
    """

    def __init__(self, class_name: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.class_name = class_name


def _singular_class_name(name: str) -> str:
    singular = name[:-1] if name.endswith("s") else name
    return "".join(part.capitalize() for part in singular.split("_"))


class HasMany:
    """
    :param class_name: local name of the child model; defaults to the
        singular, camel-cased attribute name (``comments`` -> ``Comment``)
    :param inverse_of: child field that points back at the parent; defaults
        to the parent's lower-cased class name
    :param resource_class_name: child field to use for the back-reference
        instead; takes precedence over ``inverse_of`` for both lookup and
        ``append``
    """

    def __init__(
        self,
        class_name: Optional[str] = None,
        inverse_of: Optional[str] = None,
        resource_class_name: Optional[str] = None,
        registry: Optional[Registry] = None,
    ):
        self.class_name = class_name
        self.inverse_of = inverse_of
        self.resource_class_name = resource_class_name
        self.registry = registry or default_registry
        self.name: Optional[str] = None

    def __set_name__(self, owner, name):
        self.name = name
        if self.class_name is None:
            self.class_name = _singular_class_name(name)

    @property
    def target(self) -> Type["Model"]:
        return self.registry.resolve(self.class_name)

    def inverse_field(self, owner: Type["Model"]) -> str:
        return self.resource_class_name or self.inverse_of or owner.__name__.lower()

    def context_for(self, instance: "Model") -> RelationContext:
        return RelationContext(
            parent=instance,
            field=self.inverse_field(type(instance)),
            target=self.target,
        )

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        ctx = self.context_for(instance)
        logger.debug(f"Loading {self.name} of {owner.__name__}({instance.id}) via {ctx.field}")
        return RelationList(ctx.query().all(), ctx)

    def __set__(self, instance, value):
        raise AttributeError(f"'{self.name}' is a has-many relation; append children instead")

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Type

from parsemodel.client.resolver import encode_value
from parsemodel.client.transport import TransportResponse, require_ok

if TYPE_CHECKING:
    from parsemodel.client.model import Model

logger = logging.getLogger(__name__)


class Query:
    """
    A lazily built query against one model's remote collection.

    Immutable: every chain method returns a clone. Nothing is sent until
    ``all()``, ``first()`` or ``count()`` is called.

    Usage:
        Post.where(author=user).order("-createdAt").limit(10).all()
    """

    def __init__(self, model: Type["Model"]):
        self._model = model
        self._where: Dict[str, Any] = {}
        self._limit: Optional[int] = None
        self._order: List[str] = []
        self._include: List[str] = []

    def _clone(self) -> "Query":
        q = Query(self._model)
        q._where = dict(self._where)
        q._limit = self._limit
        q._order = list(self._order)
        q._include = list(self._include)
        return q

    # -- Chaining methods --

    def where(self, conditions: Optional[Dict[str, Any]] = None, **kwargs: Any) -> "Query":
        q = self._clone()
        merged = dict(conditions or {})
        merged.update(kwargs)
        q._where.update({k: encode_value(v) for k, v in merged.items()})
        return q

    def limit(self, n: int) -> "Query":
        q = self._clone()
        q._limit = n
        return q

    def order(self, field: str) -> "Query":
        q = self._clone()
        q._order.append(field)
        return q

    def include_object(self, field: str) -> "Query":
        q = self._clone()
        q._include.append(field)
        return q

    def __iter__(self) -> Iterator["Model"]:
        return iter(self.all())

    # -- Query building --

    def build(self, count: bool = False) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self._where:
            params["where"] = json.dumps(self._where, separators=(",", ":"))
        if self._order:
            params["order"] = ",".join(self._order)
        if self._include:
            params["include"] = ",".join(self._include)
        if count:
            params["count"] = 1
            params["limit"] = 0
        elif self._limit is not None:
            params["limit"] = self._limit
        return params

    # -- Transport --

    def _execute(self, params: Dict[str, Any]) -> Dict[str, Any]:
        path = self._model.collection_path()
        resp: TransportResponse = self._model.get_transport().request("GET", path, params=params)
        require_ok(resp, context=f"Query on {path}")
        return resp.data or {}

    # -- Terminal methods --

    def all(self) -> List["Model"]:
        data = self._execute(self.build())
        return [self._model._from_data(row) for row in data.get("results", [])]

    def first(self) -> Optional["Model"]:
        results = self.limit(1).all()
        return results[0] if results else None

    def count(self) -> int:
        return int(self._execute(self.build(count=True)).get("count", 0))

    def __repr__(self) -> str:
        return f"<Query {self._model.__name__} {self.build()!r}>"

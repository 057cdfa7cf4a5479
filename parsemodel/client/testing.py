"""
Test transport for the parsemodel client.

``InMemoryBackend`` answers requests the way the REST backend does, keeping
records and files in dictionaries, so models can be exercised without a
server. Every request is recorded in ``calls`` so tests can assert ordering
and payloads.

Usage:
    backend = InMemoryBackend()
    parsemodel.configure(transport=backend)
    backend.respond_with("POST", "classes/Post", 400, {"code": 137, "error": "dup"})
"""
import itertools
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from parsemodel.client.transport import AbstractTransport, TransportResponse
from parsemodel.core.types import (
    CLASS_NAME_KEY,
    CREATED_AT_KEY,
    OBJECT_ID_KEY,
    TYPE_KEY,
    UPDATED_AT_KEY,
    USER_REMOTE_CLASS_NAME,
    Date,
)

logger = logging.getLogger(__name__)

FILES_URL = "https://files.example.test"


@dataclass
class RecordedCall:
    method: str
    path: str
    json: Any = None
    content: Optional[bytes] = None
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    use_master_key: bool = False


def _now() -> str:
    return Date.from_datetime(datetime.now(timezone.utc)).iso


def _error(status: int, code: int, message: str) -> TransportResponse:
    return TransportResponse(status, {"code": code, "error": message})


def _compare(value: Any, condition: Any) -> bool:
    if not isinstance(condition, dict) or TYPE_KEY in condition:
        return value == condition
    for op, operand in condition.items():
        if op == "$ne" and value == operand:
            return False
        if op == "$in" and value not in operand:
            return False
        if op == "$nin" and value in operand:
            return False
        if op == "$exists" and (value is not None) != bool(operand):
            return False
        if op in ("$gt", "$gte", "$lt", "$lte"):
            if value is None:
                return False
            if op == "$gt" and not value > operand:
                return False
            if op == "$gte" and not value >= operand:
                return False
            if op == "$lt" and not value < operand:
                return False
            if op == "$lte" and not value <= operand:
                return False
    return True


class InMemoryBackend(AbstractTransport):
    """Transport that serves classes, users and files from memory."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.files: Dict[str, bytes] = {}
        self.calls: List[RecordedCall] = []
        self._canned: List[Tuple[str, str, TransportResponse]] = []
        self._ids = itertools.count(1)

    # -- Test helpers --

    def respond_with(self, method: str, path: str, status: int, data: Any = None) -> None:
        """Answer the next ``method`` request on ``path`` with a fixed response."""
        self._canned.append((method.upper(), path, TransportResponse(status, data)))

    def seed(self, class_name: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record directly; returns it with id and timestamps filled in."""
        stored = dict(record)
        stored.setdefault(OBJECT_ID_KEY, self._next_id())
        stored.setdefault(CREATED_AT_KEY, _now())
        stored.setdefault(UPDATED_AT_KEY, stored[CREATED_AT_KEY])
        self.records.setdefault(class_name, {})[stored[OBJECT_ID_KEY]] = stored
        return dict(stored)

    def calls_to(self, method: str, prefix: str = "") -> List[RecordedCall]:
        return [c for c in self.calls if c.method == method.upper() and c.path.startswith(prefix)]

    def _next_id(self) -> str:
        return f"obj{next(self._ids)}"

    # -- Transport --

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: Optional[bytes] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        use_master_key: bool = False,
    ) -> TransportResponse:
        method = method.upper()
        path = path.strip("/")
        self.calls.append(
            RecordedCall(method, path, json, content, dict(params or {}), dict(headers or {}), use_master_key)
        )
        logger.debug(f"{method} {path}")

        for i, (canned_method, canned_path, response) in enumerate(self._canned):
            if canned_method == method and canned_path == path:
                del self._canned[i]
                return response

        parts = path.split("/")
        if parts[0] == "files":
            return self._files(method, "/".join(parts[1:]), content, use_master_key)
        if parts[0] == "users":
            return self._classes(method, USER_REMOTE_CLASS_NAME, parts[1:], json, params)
        if parts[0] == "classes" and len(parts) > 1:
            return self._classes(method, parts[1], parts[2:], json, params)
        return _error(404, 101, f"Unknown path {path}")

    def _files(self, method: str, name: str, content: Optional[bytes], use_master_key: bool) -> TransportResponse:
        if method == "POST":
            if not name:
                return _error(400, 122, "Filename is required.")
            stored = f"tfss-{next(self._ids)}-{name}"
            self.files[stored] = content or b""
            return TransportResponse(201, {"name": stored, "url": f"{FILES_URL}/{stored}"})
        if method == "DELETE":
            if not use_master_key:
                return _error(403, 119, "unauthorized")
            self.files.pop(name, None)
            return TransportResponse(200, {})
        return _error(405, 0, f"{method} not allowed on files")

    def _classes(
        self, method: str, class_name: str, rest: List[str], body: Any, params: Optional[Dict[str, Any]]
    ) -> TransportResponse:
        table = self.records.setdefault(class_name, {})
        object_id = rest[0] if rest else None

        if method == "POST" and object_id is None:
            record = dict(body or {})
            record[OBJECT_ID_KEY] = self._next_id()
            record[CREATED_AT_KEY] = record[UPDATED_AT_KEY] = _now()
            table[record[OBJECT_ID_KEY]] = record
            return TransportResponse(201, {OBJECT_ID_KEY: record[OBJECT_ID_KEY], CREATED_AT_KEY: record[CREATED_AT_KEY]})

        if method == "GET" and object_id is None:
            return self._query(class_name, table, params or {})

        if object_id not in table:
            return _error(404, 101, "object not found for update")

        if method == "GET":
            return TransportResponse(200, dict(table[object_id]))
        if method == "PUT":
            table[object_id].update(body or {})
            table[object_id][UPDATED_AT_KEY] = _now()
            return TransportResponse(200, {UPDATED_AT_KEY: table[object_id][UPDATED_AT_KEY]})
        if method == "DELETE":
            del table[object_id]
            return TransportResponse(200, {})
        return _error(405, 0, f"{method} not allowed on classes")

    def _query(self, class_name: str, table: Dict[str, Dict[str, Any]], params: Dict[str, Any]) -> TransportResponse:
        where = json.loads(params["where"]) if params.get("where") else {}
        rows = [
            dict(r) for r in table.values()
            if all(_compare(r.get(k), cond) for k, cond in where.items())
        ]

        if params.get("count"):
            return TransportResponse(200, {"results": [], "count": len(rows)})

        for key in reversed([k for k in str(params.get("order") or "").split(",") if k]):
            desc = key.startswith("-")
            name = key.lstrip("-")
            rows.sort(key=lambda r: (r.get(name) is not None, r.get(name)), reverse=desc)

        if params.get("limit") is not None:
            rows = rows[: int(params["limit"])]

        for name in [k for k in str(params.get("include") or "").split(",") if k]:
            for row in rows:
                row[name] = self._embed(row.get(name))

        return TransportResponse(200, {"results": rows})

    def _embed(self, value: Any) -> Any:
        if not isinstance(value, dict) or value.get(TYPE_KEY) != "Pointer":
            return value
        target = self.records.get(value.get(CLASS_NAME_KEY), {}).get(value.get(OBJECT_ID_KEY))
        if target is None:
            return value
        embedded = {TYPE_KEY: "Object", CLASS_NAME_KEY: value[CLASS_NAME_KEY]}
        embedded.update(target)
        return embedded

    def __repr__(self) -> str:
        return f"InMemoryBackend({sum(len(t) for t in self.records.values())} records, {len(self.files)} files)"

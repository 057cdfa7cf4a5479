from typing import Any, Dict, Iterable, Optional, Set

from parsemodel.core.types import SERVER_FIELDS


class AttributeStore:
    """
    Per-instance attribute storage with two views.

    ``committed`` mirrors the last known server state; ``pending`` holds local
    writes the backend has not confirmed yet. A write lands in both views, so
    a read always reflects the latest value whether or not it was saved.
    """

    def __init__(self, committed: Optional[Dict[str, Any]] = None, pending: Optional[Dict[str, Any]] = None):
        self.committed: Dict[str, Any] = dict(committed or {})
        self.pending: Dict[str, Any] = dict(pending or {})

    def get(self, field: str, default: Any = None) -> Any:
        if field in self.committed:
            return self.committed[field]
        return self.pending.get(field, default)

    def set(self, field: str, value: Any) -> Any:
        self.committed[field] = value
        self.pending[field] = value
        return value

    def stage(self, field: str, value: Any) -> None:
        """Queue a value for the next write without touching committed state."""
        self.pending[field] = value

    def merge_pending(self, values: Optional[Dict[str, Any]]) -> None:
        if values:
            self.pending.update(values)

    def merge_response(self, body: Optional[Dict[str, Any]]) -> None:
        """Fold a successful write response in; pending values win on conflict."""
        if isinstance(body, dict):
            self.committed.update(body)
        self.committed.update(self.pending)
        self.pending = {}

    def outgoing(self, strip: Iterable[str] = ()) -> Dict[str, Any]:
        strip = set(strip)
        return {k: v for k, v in self.pending.items() if k not in strip}

    def update_payload(self) -> Dict[str, Any]:
        return self.outgoing(SERVER_FIELDS)

    def keys(self) -> Set[str]:
        return set(self.committed) | set(self.pending)

    def snapshot(self) -> Dict[str, Any]:
        merged = dict(self.pending)
        merged.update(self.committed)
        return merged

    def clear(self) -> None:
        self.committed = {}
        self.pending = {}

    def __contains__(self, field: str) -> bool:
        return field in self.committed or field in self.pending

    def __repr__(self) -> str:
        return f"AttributeStore(committed={self.committed!r}, pending={self.pending!r})"

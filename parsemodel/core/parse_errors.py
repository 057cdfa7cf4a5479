"""
Translation of backend error bodies into field-scoped violations.

The backend answers a rejected write with HTTP 400 and a body of the form
``{"code": <int>, "error": <str>}``. The code is mapped onto the local field
it concerns so callers can inspect ``instance.errors`` after a failed save.
"""
import json
import logging
from collections import OrderedDict
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

BASE = "base"

ERROR_CODES: Dict[int, Tuple[str, str]] = {
    101: (BASE, "Object not found."),
    105: (BASE, "Invalid field name."),
    111: (BASE, "Invalid type."),
    119: (BASE, "Operation forbidden."),
    122: ("file", "Invalid file name."),
    125: ("email", "Invalid email address."),
    130: ("file", "Could not save file."),
    135: ("deviceType", "Unknown device type."),
    137: (BASE, "Duplicate value."),
    139: (BASE, "Invalid role name."),
    141: (BASE, "Cloud code script failed."),
    142: (BASE, "Cloud code validation failed."),
    200: ("username", "Username missing."),
    201: ("password", "Password missing."),
    202: ("username", "Username already taken."),
    203: ("email", "Email already taken."),
    204: ("email", "Email missing."),
    205: ("email", "No user found with that email."),
    209: (BASE, "Invalid session token."),
}

UNKNOWN_ERROR = "Unknown error."


class BackendErrorBody(BaseModel):
    code: Optional[int] = None
    error: Optional[str] = None


def parse_error_body(body: Any) -> BackendErrorBody:
    """
    Parse a 400 response body. Accepts a decoded dict, raw bytes or a string;
    anything unreadable becomes an empty body so the caller still records a
    violation.
    """
    if isinstance(body, (bytes, str)):
        try:
            body = json.loads(body or "{}")
        except ValueError:
            logger.warning(f"Backend returned a non-JSON error body: {body!r}")
            return BackendErrorBody()
    if not isinstance(body, dict):
        return BackendErrorBody()
    try:
        return BackendErrorBody.model_validate(body)
    except PydanticValidationError:
        logger.warning(f"Backend returned a malformed error body: {body!r}")
        return BackendErrorBody(error=str(body.get("error", "")) or None)


def translate(code: Optional[int], message: Optional[str] = None) -> Tuple[str, str]:
    """
    Map a backend error code to ``(field, message)``.

    Unknown codes are attached to ``base`` with the backend's own message.
    """
    if code in ERROR_CODES:
        return ERROR_CODES[code]
    return BASE, message or UNKNOWN_ERROR


class ValidationErrors:
    """
    Field-addressable violations accumulated on a model instance or a file
    attachment.
    """

    def __init__(self):
        self._errors: "OrderedDict[str, List[str]]" = OrderedDict()

    def add(self, field: str, message: str) -> None:
        self._errors.setdefault(field, []).append(message)

    def add_backend_error(self, body: Any) -> Tuple[str, str]:
        parsed = parse_error_body(body)
        field, message = translate(parsed.code, parsed.error)
        logger.warning(
            f"Backend rejected the request (code={parsed.code}, error={parsed.error!r}); "
            f"recorded on '{field}'"
        )
        self.add(field, message)
        return field, message

    def clear(self) -> None:
        self._errors.clear()

    def get(self, field: str) -> List[str]:
        return list(self._errors.get(field, ()))

    def __getitem__(self, field: str) -> List[str]:
        return self.get(field)

    def __contains__(self, field: str) -> bool:
        return field in self._errors

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        for field, messages in self._errors.items():
            for message in messages:
                yield field, message

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._errors.values())

    def __bool__(self) -> bool:
        return len(self) > 0

    def to_dict(self) -> Dict[str, List[str]]:
        return {field: list(messages) for field, messages in self._errors.items()}

    def full_messages(self) -> List[str]:
        return [message if field == BASE else f"{field} {message}" for field, message in self]

    def __repr__(self) -> str:
        return f"ValidationErrors({self.to_dict()!r})"

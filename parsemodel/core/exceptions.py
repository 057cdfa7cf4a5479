from typing import Optional


class ParseModelError(Exception):
    """
    Base exception for all parsemodel errors.

    ``detail`` is the human-readable message; ``code`` a stable machine
    identifier for the error class.
    """

    status_code: int = 500
    default_detail: str = "A client error occurred."
    default_code: str = "error"

    def __init__(self, detail: Optional[str] = None, code: Optional[str] = None):
        self.detail = detail if detail is not None else self.default_detail
        self.code = code or self.default_code
        super().__init__(self.detail)


class TransportError(ParseModelError):
    """
    Raised when the backend cannot be reached or answers with an error status
    that is not translated into field violations. Writes translate a 400;
    deletions and queries raise on it.
    """

    default_detail = "The backend request failed."
    default_code = "transport_error"

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        backend_code: Optional[int] = None,
    ):
        if status_code is not None:
            self.status_code = status_code
        self.backend_code = backend_code
        super().__init__(detail, self.default_code)


class RecordNotFound(ParseModelError):
    """Raised by ``find`` when no identifier was given."""

    status_code = 404
    default_detail = "Record not found."
    default_code = "not_found"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, self.default_code)


class UnresolvableTypeError(ParseModelError):
    """Raised when a remote class name maps to no known local model type."""

    status_code = 500
    default_detail = "Unknown remote class."
    default_code = "unresolvable_type"

    def __init__(self, class_name: Optional[str] = None):
        self.class_name = class_name
        detail = None
        if class_name is not None:
            detail = (
                f"No model is registered for remote class '{class_name}'. "
                f"Define a Model subclass named '{class_name}' or set "
                f"class_name = '{class_name}' on the model that represents it."
            )
        super().__init__(detail, self.default_code)


class ConfigError(Exception):
    """Error raised for configuration issues."""
    pass

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from parsemodel.core.exceptions import ConfigError

if TYPE_CHECKING:
    from parsemodel.client.transport import AbstractTransport

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.parse.com/1"

ENV_VARS = {
    "base_url": "PARSE_BASE_URL",
    "app_id": "PARSE_APP_ID",
    "rest_key": "PARSE_REST_KEY",
    "master_key": "PARSE_MASTER_KEY",
    "timeout": "PARSE_TIMEOUT",
}


class ClientConfig(BaseModel):
    """
    Connection settings for the backend.

    Attributes:
        base_url: Root of the REST API; collections live under ``classes/``.
        app_id: Application id sent as ``X-Parse-Application-Id``.
        rest_key: REST API key sent as ``X-Parse-REST-API-Key``.
        master_key: Master key, required for file deletion.
        timeout: Seconds to wait for any single request.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = DEFAULT_BASE_URL
    app_id: Optional[str] = None
    rest_key: Optional[str] = None
    master_key: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides: Any) -> "ClientConfig":
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for key, var in ENV_VARS.items():
            if environ.get(var):
                values[key] = environ[var]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class _Settings:
    def __init__(self) -> None:
        self.config: Optional[ClientConfig] = None
        self.transport: Optional["AbstractTransport"] = None


settings = _Settings()


def configure(transport: Optional["AbstractTransport"] = None, **kwargs: Any) -> "AbstractTransport":
    """
    Configure the global transport used by every model.

    Args:
        transport: Optional custom transport object (must implement
            :class:`parsemodel.client.transport.AbstractTransport`).
        **kwargs: :class:`ClientConfig` fields; missing ones are read from the
            environment.
    """
    if transport is not None:
        if kwargs:
            raise ConfigError("Pass either a transport or connection settings, not both")
        settings.transport = transport
        settings.config = getattr(transport, "config", None)
        logger.debug(f"Configured custom transport {transport!r}")
        return transport

    from parsemodel.client.transport import HTTPTransport

    config = ClientConfig.from_env(**kwargs)
    if not config.app_id:
        raise ConfigError("An application id is required; pass app_id or set PARSE_APP_ID")
    settings.config = config
    settings.transport = HTTPTransport(config)
    logger.debug(f"Configured HTTP transport for {config.base_url}")
    return settings.transport


def get_transport() -> "AbstractTransport":
    if settings.transport is None:
        raise ConfigError("Client not configured. Call parsemodel.configure() first.")
    return settings.transport


def reset() -> None:
    settings.config = None
    settings.transport = None

import logging
from collections.abc import Callable
from typing import Any, Protocol

log = logging.getLogger(__name__)


class Recorder(Protocol):
    """Instrumentation port between an HTTP client hook and the coverage engine.

    Adapters call :meth:`record_request` before a request is sent and
    :meth:`record_response` once its outcome is known.
    """

    def record_request(
        self, method: str, url: str, base_url: str | None = None
    ) -> str | None:
        """Record one outgoing request, returning the endpoint key it counted for."""
        ...

    def record_response(
        self,
        method: str,
        url: str,
        status: int,
        message: str | None = None,
        base_url: str | None = None,
    ) -> str | None:
        """Record the response status of a request."""
        ...


def notify(callback: Callable[..., Any], *args: Any) -> None:
    """Invoke a recorder callback without ever failing the instrumented request."""
    try:
        callback(*args)
    except Exception:
        log.exception("Error while recording an observation for OpenAPI coverage")

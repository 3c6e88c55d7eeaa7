from typing import Mapping

from requests import PreparedRequest, Response
from requests.adapters import HTTPAdapter, Retry

from openapi_coverage.core.base_recorder import Recorder, notify

MISSING = "GET"


class RecordingHTTPAdapter(HTTPAdapter):
    """Transport adapter reporting every request sent through a session.

    Mount it on a :class:`requests.Session` for the base URL of the API under
    test. The request is recorded before it is sent, so a request that fails
    to connect still counts as exercised.
    """

    def __init__(
        self,
        recorder: Recorder,
        pool_connections: int = 10,
        pool_maxsize: int = 10,
        max_retries: Retry | int | None = 0,
        pool_block: bool = False,
    ) -> None:
        super().__init__(pool_connections, pool_maxsize, max_retries, pool_block)
        self.recorder = recorder

    def send(
        self,
        request: PreparedRequest,
        stream: bool = False,
        timeout: None | float | tuple[float, float] | tuple[float, None] = None,
        verify: bool | str = True,
        cert: None | bytes | str | tuple[bytes | str, bytes | str] = None,
        proxies: Mapping[str, str] | None = None,
    ) -> Response:
        method = request.method or MISSING
        url = request.url or "/"
        notify(self.recorder.record_request, method, url)
        response = super().send(request, stream, timeout, verify, cert, proxies)
        notify(
            self.recorder.record_response,
            method,
            url,
            response.status_code,
            f"Request failed with status code {response.status_code} {response.reason or ''}".strip(),
        )
        return response

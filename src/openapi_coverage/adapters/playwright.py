import re
from typing import cast
from urllib.parse import ParseResult, urlparse

from playwright.sync_api import Page as SyncPage, Request as SyncRequest

from openapi_coverage.core.base_recorder import Recorder, notify


class SyncRequestHandler:
    def __init__(self, recorder: Recorder, path_pattern: str | None = None) -> None:
        self.recorder = recorder
        self.path_pattern = re.compile(path_pattern) if path_pattern else None

    def register_on(self, page: SyncPage) -> None:
        page.on("request", self._capture_request)
        page.on("requestfinished", self._capture_response)

    def _accepts(self, request: SyncRequest) -> bool:
        if self.path_pattern is None:
            return True
        parsed = cast(ParseResult, urlparse(request.url))
        return self.path_pattern.match(parsed.path) is not None

    def _capture_request(self, request: SyncRequest) -> None:
        if self._accepts(request):
            notify(self.recorder.record_request, request.method, request.url)

    def _capture_response(self, request: SyncRequest) -> None:
        if not self._accepts(request):
            return
        response = request.response()
        if not response:
            return
        notify(
            self.recorder.record_response,
            request.method,
            request.url,
            response.status,
            f"{response.status} {response.status_text}".strip(),
        )

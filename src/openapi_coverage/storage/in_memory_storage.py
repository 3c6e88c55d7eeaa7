from collections.abc import Mapping

from openapi_coverage.core.base_storage import Storage
from openapi_coverage.core.server_errors import ServerErrorRecord


class InMemoryStorage(Storage):
    def __init__(self, worker_id: str = "main") -> None:
        self.worker_id = worker_id
        self.hits: dict[str, list[str]] = {}
        self.errors: dict[str, dict[str, ServerErrorRecord]] = {}

    def store_hits(self, endpoints: list[str]) -> None:
        self.hits[self.worker_id] = list(endpoints)

    def store_errors(self, errors: Mapping[str, ServerErrorRecord]) -> None:
        self.errors[self.worker_id] = {key: record.copy() for key, record in errors.items()}

    def load_hits(self) -> dict[str, list[str]]:
        return {worker: list(hits) for worker, hits in self.hits.items()}

    def load_errors(self) -> dict[str, dict[str, ServerErrorRecord]]:
        return {worker: dict(errors) for worker, errors in self.errors.items()}

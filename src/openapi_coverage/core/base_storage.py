from collections.abc import Mapping
from typing import Protocol

from openapi_coverage.core.server_errors import ServerErrorRecord


class Storage(Protocol):
    """Interface of a storage backend for worker snapshots.

    The hit tracker stores the full, deduplicated state of its worker after every
    observation. The aggregator loads the snapshots of all workers.
    """

    worker_id: str

    def store_hits(self, endpoints: list[str]) -> None:
        """Replace this worker's hit snapshot."""
        ...

    def store_errors(self, errors: Mapping[str, ServerErrorRecord]) -> None:
        """Replace this worker's server error snapshot."""
        ...

    def load_hits(self) -> dict[str, list[str]]:
        """Load the hit snapshots of all workers, keyed by worker id."""
        ...

    def load_errors(self) -> dict[str, dict[str, ServerErrorRecord]]:
        """Load the server error snapshots of all workers, keyed by worker id."""
        ...

import logging
from collections.abc import Mapping

from openapi_coverage.core.base_storage import Storage
from openapi_coverage.core.server_errors import ServerErrorRecord, merge_error_maps

log = logging.getLogger(__name__)


class Aggregator:
    """Union the snapshots that independent workers left in one storage.

    When the calling worker passes its in-memory state, that state replaces
    the worker's own persisted snapshot instead of being counted twice.
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def hits(self, local: list[str] | None = None) -> list[str]:
        collected: list[str] = list(local or [])
        snapshots = self.storage.load_hits()
        for worker, hits in snapshots.items():
            if local is not None and worker == self.storage.worker_id:
                continue
            collected.extend(hits)
        unique = list(dict.fromkeys(collected))
        log.info("Collected %d endpoints from %d worker snapshots", len(unique), len(snapshots))
        return unique

    def errors(
        self, local: Mapping[str, ServerErrorRecord] | None = None
    ) -> dict[str, ServerErrorRecord]:
        maps: list[Mapping[str, ServerErrorRecord]] = [local] if local else []
        for worker, errors in self.storage.load_errors().items():
            if local is not None and worker == self.storage.worker_id:
                continue
            maps.append(errors)
        return merge_error_maps(maps)

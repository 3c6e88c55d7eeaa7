import logging
import threading

from openapi_coverage.core.base_storage import Storage
from openapi_coverage.core.endpoint import is_templated, matches_template
from openapi_coverage.core.exceptions import PersistenceError
from openapi_coverage.core.server_errors import ServerErrorRecord

log = logging.getLogger(__name__)


class HitTracker:
    """Endpoint keys and server errors observed by one worker.

    A templated key and a concrete key that it structurally matches are never
    held together: inserting a template evicts the concrete keys it covers and
    a concrete key already covered by a template is discarded.
    """

    def __init__(self, storage: Storage | None = None) -> None:
        self.storage = storage
        self._hits: dict[str, None] = {}
        self.errors: dict[str, ServerErrorRecord] = {}
        self._lock = threading.RLock()

    @property
    def endpoints(self) -> list[str]:
        with self._lock:
            return list(self._hits)

    def __contains__(self, key: str) -> bool:
        return key in self._hits

    def __len__(self) -> int:
        return len(self._hits)

    def add(self, key: str) -> bool:
        """Record one hit; ``False`` when the key was already covered."""
        with self._lock:
            inserted = self._insert(key)
            self._persist_hits()
        return inserted

    def add_error(self, key: str, status: int, message: str | None = None) -> str:
        """Record one server error and return the key it was filed under."""
        with self._lock:
            target = key
            if not is_templated(key):
                target = next(
                    (
                        existing
                        for existing in self.errors
                        if is_templated(existing) and matches_template(key, existing)
                    ),
                    key,
                )
            self.errors.setdefault(target, ServerErrorRecord()).add(status, message)
            self._persist_errors()
        return target

    def _insert(self, key: str) -> bool:
        if key in self._hits:
            return False
        if is_templated(key):
            covered = [
                existing
                for existing in self._hits
                if not is_templated(existing) and matches_template(existing, key)
            ]
            for existing in covered:
                del self._hits[existing]
            self._hits[key] = None
            return True
        if any(
            is_templated(existing) and matches_template(key, existing)
            for existing in self._hits
        ):
            return False
        self._hits[key] = None
        return True

    def _persist_hits(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.store_hits(self.endpoints)
        except PersistenceError as exc:
            log.error("%s", exc)

    def _persist_errors(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.store_errors(self.errors)
        except PersistenceError as exc:
            log.error("%s", exc)

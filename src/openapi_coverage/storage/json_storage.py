import json
import logging
import os
import re
import shutil
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from openapi_coverage.core.base_storage import Storage
from openapi_coverage.core.exceptions import PersistenceError
from openapi_coverage.core.server_errors import ServerErrorRecord

log = logging.getLogger(__name__)

HITS_PREFIX = "endpoints-"
ERRORS_PREFIX = "errors-"
UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_.-]")


def write_json_atomic(path: str | Path, data: Any) -> None:
    """Write ``data`` to a temporary sibling file, then rename it over ``path``.

    Readers see either the previous content or the new content, never a
    partially written file.
    """
    path = Path(path)
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            json.dump(data, handle, indent=2)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise PersistenceError(f"Failed to write {path.name}: {exc}", str(path)) from exc


class JsonDirectoryStorage(Storage):
    """One ``endpoints-<worker>.json`` and one ``errors-<worker>.json`` per worker.

    Each worker only ever writes its own two files, so workers never contend
    for a file and need no locking.
    """

    def __init__(self, directory: str | Path, worker_id: str) -> None:
        self.directory = Path(directory)
        self.worker_id = UNSAFE_FILENAME_RE.sub("_", worker_id)

    @property
    def hits_file(self) -> Path:
        return self.directory / f"{HITS_PREFIX}{self.worker_id}.json"

    @property
    def errors_file(self) -> Path:
        return self.directory / f"{ERRORS_PREFIX}{self.worker_id}.json"

    def reset(self) -> None:
        """Remove every snapshot left over from a previous run."""
        try:
            if self.directory.exists():
                shutil.rmtree(self.directory)
                log.info("Deleted existing coverage directory %s", self.directory)
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Cannot prepare coverage directory: {exc}", str(self.directory)
            ) from exc

    def store_hits(self, endpoints: list[str]) -> None:
        write_json_atomic(self.hits_file, list(endpoints))

    def store_errors(self, errors: Mapping[str, ServerErrorRecord]) -> None:
        write_json_atomic(
            self.errors_file, {key: record.to_dict() for key, record in errors.items()}
        )

    def load_hits(self) -> dict[str, list[str]]:
        hits: dict[str, list[str]] = {}
        for worker, data in self._load_all(HITS_PREFIX):
            if not isinstance(data, list):
                log.error("Ignoring hit snapshot of %s: expected a JSON array", worker)
                continue
            hits[worker] = [item for item in data if isinstance(item, str)]
        return hits

    def load_errors(self) -> dict[str, dict[str, ServerErrorRecord]]:
        errors: dict[str, dict[str, ServerErrorRecord]] = {}
        for worker, data in self._load_all(ERRORS_PREFIX):
            if not isinstance(data, dict):
                log.error("Ignoring error snapshot of %s: expected a JSON object", worker)
                continue
            records: dict[str, ServerErrorRecord] = {}
            for key, record in data.items():
                try:
                    records[key] = ServerErrorRecord.from_dict(record)
                except (AttributeError, TypeError, ValueError):
                    log.warning("Ignoring malformed error record %s of %s", key, worker)
            errors[worker] = records
        return errors

    def _load_all(self, prefix: str) -> list[tuple[str, Any]]:
        if not self.directory.is_dir():
            return []
        loaded = []
        for filepath in sorted(self.directory.glob(f"{prefix}*.json")):
            worker = filepath.stem[len(prefix) :]
            try:
                loaded.append((worker, self._read(filepath)))
            except PersistenceError as exc:
                log.error("%s", exc)
        return loaded

    def _read(self, filepath: Path) -> Any:
        try:
            return json.loads(filepath.read_text("utf8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read snapshot: {exc}", str(filepath)) from exc

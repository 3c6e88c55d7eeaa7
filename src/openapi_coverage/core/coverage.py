import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from openapi_coverage.config import CoverageSettings
from openapi_coverage.core.aggregator import Aggregator
from openapi_coverage.core.base_recorder import Recorder
from openapi_coverage.core.base_storage import Storage
from openapi_coverage.core.compiler import PatternCompiler
from openapi_coverage.core.endpoint import endpoint_key, ensure_leading_slash
from openapi_coverage.core.endpoint_patterns import EndpointPattern, load_endpoint_patterns
from openapi_coverage.core.exceptions import NormalizationError
from openapi_coverage.core.learner import PatternLearner
from openapi_coverage.core.normalizer import PathNormalizer
from openapi_coverage.core.patterns import PathPattern, PatternChain
from openapi_coverage.core.recording import parse_recording
from openapi_coverage.core.report import CoverageReport, ReportBuilder, write_report
from openapi_coverage.core.spec_index import SpecIndex
from openapi_coverage.core.tracker import HitTracker
from openapi_coverage.storage.in_memory_storage import InMemoryStorage
from openapi_coverage.storage.json_storage import JsonDirectoryStorage

log = logging.getLogger(__name__)

MAX_LEARNING_HISTORY = 1000


class CoverageSession(Recorder):
    """Coverage state of one worker process.

    Observations are normalized against the OpenAPI document, recorded in a
    :class:`HitTracker` and persisted to the worker's own storage snapshot
    right away. :meth:`build_report` merges the snapshots of every worker.
    """

    def __init__(
        self,
        spec: SpecIndex,
        storage: Storage | None = None,
        custom_patterns: Iterable[PathPattern] = (),
        learn_patterns: bool = True,
        endpoint_patterns: list[EndpointPattern] | None = None,
    ) -> None:
        self.spec = spec
        self.storage = storage if storage is not None else InMemoryStorage()
        self.patterns = PatternChain([*custom_patterns, *PatternCompiler(spec).compile()])
        self.normalizer = PathNormalizer(spec, self.patterns)
        self.tracker = HitTracker(self.storage)
        self.learner = PatternLearner() if learn_patterns else None
        self.endpoint_patterns = endpoint_patterns or []
        self._unresolved: dict[str, None] = {}
        self._learning_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: CoverageSettings) -> "CoverageSession":
        storage = JsonDirectoryStorage(settings.coverage_dir, settings.resolve_worker_id())
        return cls(
            SpecIndex.load(settings.openapi_path),
            storage,
            custom_patterns=settings.compiled_patterns(),
            learn_patterns=settings.enable_dynamic_pattern_learning,
            endpoint_patterns=load_endpoint_patterns(settings.endpoint_pattern_file),
        )

    @property
    def worker_id(self) -> str:
        return self.storage.worker_id

    def normalize(self, path: str) -> str:
        path = self.spec.strip_server_base_path(ensure_leading_slash(path))
        try:
            resolved = self.normalizer.resolve(path)
            if resolved is None and self.learner is not None:
                resolved = self._learn_from(path)
        except NormalizationError as exc:
            log.error("%s", exc)
            return path
        return resolved or path

    def record_request(
        self, method: str, url: str, base_url: str | None = None
    ) -> str | None:
        recording = parse_recording(method, url, base_url)
        key = endpoint_key(recording.method, self.normalize(recording.path))
        inserted = self.tracker.add(key)
        log.debug("Worker %s captured API request: %s (from %s)", self.worker_id, key, recording.path)
        if inserted and len(self.tracker) % 100 == 0:
            log.info("Worker %s has captured %d endpoints so far", self.worker_id, len(self.tracker))
        return key

    def record_response(
        self,
        method: str,
        url: str,
        status: int,
        message: str | None = None,
        base_url: str | None = None,
    ) -> str | None:
        if not 500 <= status < 600:
            return None
        recording = parse_recording(method, url, base_url)
        key = endpoint_key(recording.method, self.normalize(recording.path))
        filed_under = self.tracker.add_error(key, status, message)
        log.debug("Worker %s captured server error %d on %s", self.worker_id, status, filed_under)
        return filed_under

    def build_report(self) -> CoverageReport:
        aggregator = Aggregator(self.storage)
        hits = aggregator.hits(self.tracker.endpoints)
        errors = aggregator.errors(self.tracker.errors)
        return ReportBuilder(self.spec, self.endpoint_patterns).build(hits, errors)

    def write_report(self, output_path: str | Path) -> CoverageReport:
        report = self.build_report()
        write_report(report, output_path)
        return report

    def _learn_from(self, path: str) -> str | None:
        with self._learning_lock:
            if len(self._unresolved) < MAX_LEARNING_HISTORY:
                self._unresolved.setdefault(path, None)
            learned = self.learner.learn(list(self._unresolved), self.patterns) if self.learner else []
            if not learned:
                return None
            self.patterns.extend(learned)
        return self.normalizer.resolve(path)

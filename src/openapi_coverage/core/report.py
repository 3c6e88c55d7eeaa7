import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from openapi_coverage.core.endpoint import (
    is_templated,
    literal_count,
    matches_template,
    reconcile_endpoints,
    split_key,
    structure_key,
)
from openapi_coverage.core.endpoint_patterns import EndpointPattern, apply_endpoint_patterns
from openapi_coverage.core.exceptions import PersistenceError
from openapi_coverage.core.server_errors import ServerErrorRecord, merge_error_maps
from openapi_coverage.core.spec_index import SpecIndex
from openapi_coverage.storage.json_storage import write_json_atomic

log = logging.getLogger(__name__)

REPORT_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD")


def percentage(tested: int, total: int) -> float:
    return round(tested / total * 100, 2) if total else 0.0


@dataclass(frozen=True)
class CoverageSummary:
    total_endpoints: int
    tested_endpoints: int
    untested_endpoints: int
    coverage_percentage: float


@dataclass(frozen=True)
class MethodCoverage:
    total: int = 0
    tested: int = 0
    percentage: float = 0.0


@dataclass(frozen=True)
class EndpointErrorCount:
    endpoint: str
    count: int


@dataclass(frozen=True)
class ServerErrorStats:
    total_server_errors: int = 0
    status_code_counts: dict[str, int] = field(default_factory=dict)
    errors_by_endpoint: tuple[EndpointErrorCount, ...] = ()


@dataclass(frozen=True)
class CoverageReport:
    summary: CoverageSummary
    method_coverage: dict[str, MethodCoverage]
    server_error_stats: ServerErrorStats
    tested: tuple[str, ...]
    untested: tuple[str, ...]
    extra: tuple[str, ...]
    server_errors: dict[str, ServerErrorRecord]
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "totalEndpoints": self.summary.total_endpoints,
                "testedEndpoints": self.summary.tested_endpoints,
                "untestedEndpoints": self.summary.untested_endpoints,
                "coveragePercentage": self.summary.coverage_percentage,
            },
            "methodCoverage": {
                method: {
                    "total": coverage.total,
                    "tested": coverage.tested,
                    "percentage": coverage.percentage,
                }
                for method, coverage in self.method_coverage.items()
            },
            "serverErrorStats": {
                "totalServerErrors": self.server_error_stats.total_server_errors,
                "statusCodeCounts": dict(self.server_error_stats.status_code_counts),
                "errorsByEndpoint": [
                    {"endpoint": item.endpoint, "count": item.count}
                    for item in self.server_error_stats.errors_by_endpoint
                ],
            },
            "endpoints": {"tested": list(self.tested), "untested": list(self.untested)},
            "extraEndpoints": list(self.extra),
            "serverErrors": {
                key: record.to_dict() for key, record in self.server_errors.items()
            },
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CoverageReport":
        summary = data.get("summary") or {}
        stats = data.get("serverErrorStats") or {}
        endpoints = data.get("endpoints") or {}
        return cls(
            summary=CoverageSummary(
                total_endpoints=int(summary.get("totalEndpoints", 0)),
                tested_endpoints=int(summary.get("testedEndpoints", 0)),
                untested_endpoints=int(summary.get("untestedEndpoints", 0)),
                coverage_percentage=float(summary.get("coveragePercentage", 0.0)),
            ),
            method_coverage={
                method: MethodCoverage(
                    total=int(values.get("total", 0)),
                    tested=int(values.get("tested", 0)),
                    percentage=float(values.get("percentage", 0.0)),
                )
                for method, values in (data.get("methodCoverage") or {}).items()
            },
            server_error_stats=ServerErrorStats(
                total_server_errors=int(stats.get("totalServerErrors", 0)),
                status_code_counts={
                    str(code): int(count)
                    for code, count in (stats.get("statusCodeCounts") or {}).items()
                },
                errors_by_endpoint=tuple(
                    EndpointErrorCount(item["endpoint"], int(item["count"]))
                    for item in stats.get("errorsByEndpoint") or []
                ),
            ),
            tested=tuple(endpoints.get("tested") or ()),
            untested=tuple(endpoints.get("untested") or ()),
            extra=tuple(data.get("extraEndpoints") or ()),
            server_errors={
                key: ServerErrorRecord.from_dict(record)
                for key, record in (data.get("serverErrors") or {}).items()
            },
            timestamp=str(data.get("timestamp", "")),
        )


class ReportBuilder:
    """Partition observed endpoints against the declared ones."""

    def __init__(
        self, spec: SpecIndex, endpoint_patterns: list[EndpointPattern] | None = None
    ) -> None:
        self.spec = spec
        self.endpoint_patterns = endpoint_patterns or []
        self._structures: dict[str, str] = {}
        for key in spec.endpoints:
            self._structures.setdefault(structure_key(key), key)
        self._templates = [key for key in spec.endpoints if is_templated(key)]

    def build(
        self, hits: list[str], errors: Mapping[str, ServerErrorRecord]
    ) -> CoverageReport:
        hits = reconcile_endpoints(hits)
        if self.endpoint_patterns:
            hits = apply_endpoint_patterns(hits, self.endpoint_patterns)
        log.info(
            "Generating report with %d declared and %d observed endpoints",
            len(self.spec.endpoints),
            len(hits),
        )

        tested, untested, extra = self.partition(hits)
        if extra:
            log.warning("Found %d observed endpoints not in the OpenAPI document", len(extra))
            log.warning("First extra endpoints: %s", ", ".join(extra[:5]))

        total = len(self.spec.endpoints)
        summary = CoverageSummary(
            total_endpoints=total,
            tested_endpoints=len(tested),
            untested_endpoints=len(untested),
            coverage_percentage=percentage(len(tested), total),
        )
        server_errors = merge_error_maps([errors])
        stats = error_stats(server_errors)

        log.info("OpenAPI coverage: %d covered, %d not covered", len(tested), len(untested))
        log.info("Coverage: %.2f%%", summary.coverage_percentage)
        log.info("Total server errors: %d", stats.total_server_errors)

        return CoverageReport(
            summary=summary,
            method_coverage=method_coverage(self.spec.endpoints, tested),
            server_error_stats=stats,
            tested=tuple(tested),
            untested=tuple(untested),
            extra=tuple(extra),
            server_errors=server_errors,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def partition(self, hits: list[str]) -> tuple[list[str], list[str], list[str]]:
        matched: set[str] = set()
        extra_by_structure: dict[str, str] = {}
        for hit in hits:
            if hit in self.spec.endpoint_set:
                matched.add(hit)
                continue
            declared = self._structures.get(structure_key(hit)) or self._template_for(hit)
            if declared is not None:
                log.debug("Matched %s to declared %s via structure", hit, declared)
                matched.add(declared)
                continue
            structure = structure_key(hit)
            if is_templated(hit) or structure not in extra_by_structure:
                extra_by_structure[structure] = hit

        tested = [key for key in self.spec.endpoints if key in matched]
        untested = [key for key in self.spec.endpoints if key not in matched]
        return tested, untested, list(extra_by_structure.values())

    def _template_for(self, hit: str) -> str | None:
        best: str | None = None
        for template in self._templates:
            if not matches_template(hit, template):
                continue
            if best is None or literal_count(split_key(template)[1]) > literal_count(
                split_key(best)[1]
            ):
                best = template
        return best


def method_coverage(declared: tuple[str, ...], tested: list[str]) -> dict[str, MethodCoverage]:
    tested_set = set(tested)
    totals = {method: [0, 0] for method in REPORT_METHODS}
    for key in declared:
        method, _ = split_key(key)
        if method not in totals:
            continue
        totals[method][0] += 1
        if key in tested_set:
            totals[method][1] += 1
    return {
        method: MethodCoverage(total=total, tested=hit, percentage=percentage(hit, total))
        for method, (total, hit) in totals.items()
    }


def error_stats(errors: Mapping[str, ServerErrorRecord]) -> ServerErrorStats:
    status_code_counts: dict[str, int] = {}
    for record in errors.values():
        for code, count in record.status_codes.items():
            status_code_counts[code] = status_code_counts.get(code, 0) + count
    return ServerErrorStats(
        total_server_errors=sum(record.count for record in errors.values()),
        status_code_counts=dict(sorted(status_code_counts.items())),
        errors_by_endpoint=tuple(
            EndpointErrorCount(key, record.count) for key, record in errors.items()
        ),
    )


def write_report(report: CoverageReport, output_path: str | Path) -> bool:
    try:
        write_json_atomic(output_path, report.to_dict())
    except PersistenceError as exc:
        log.error("Failed to write coverage report: %s", exc)
        return False
    log.info("Coverage report saved to %s", output_path)
    return True

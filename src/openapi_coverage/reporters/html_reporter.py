from __future__ import annotations

from pathlib import Path
from typing import cast

from jinja2 import Environment, FileSystemLoader, Template, select_autoescape

from openapi_coverage.core.endpoint import split_key
from openapi_coverage.core.report import CoverageReport

METHOD_ORDER = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE")


class HtmlReporter:
    def __init__(self, report: CoverageReport) -> None:
        self.report = report

    def create(self, output: Path) -> None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(self.render(), encoding="utf-8")

    def render(self) -> str:
        summary = self.report.summary
        methods = [
            {
                "method": method,
                "method_lower": method.lower(),
                "total": coverage.total,
                "tested": coverage.tested,
                "percentage": f"{coverage.percentage:.1f}",
                "status": self._coverage_status(coverage.tested, coverage.total),
            }
            for method, coverage in sorted(
                self.report.method_coverage.items(),
                key=lambda item: self._method_rank(item[0]),
            )
            if coverage.total
        ]
        endpoints = sorted(
            [self._serialize(key, "covered") for key in self.report.tested]
            + [self._serialize(key, "uncovered") for key in self.report.untested],
            key=lambda item: (item["path"], self._method_rank(item["method"])),
        )
        errors = [
            {
                "endpoint": key,
                "count": record.count,
                "status_codes": ", ".join(
                    f"{code} × {count}" for code, count in sorted(record.status_codes.items())
                ),
                "last_error": record.last_error or "",
            }
            for key, record in self.report.server_errors.items()
        ]
        return cast(
            str,
            self._template().render(
                summary=summary,
                coverage_percent=f"{summary.coverage_percentage:.1f}",
                coverage_status=self._coverage_status(
                    summary.tested_endpoints, summary.total_endpoints
                ),
                methods=methods,
                endpoints=endpoints,
                extra=[self._serialize(key, "extra") for key in self.report.extra],
                errors=errors,
                total_server_errors=self.report.server_error_stats.total_server_errors,
                timestamp=self.report.timestamp,
            ),
        )

    def _serialize(self, key: str, status: str) -> dict[str, str]:
        method, path = split_key(key)
        return {
            "method": method,
            "method_lower": method.lower(),
            "path": path,
            "status": status,
        }

    def _method_rank(self, method: str) -> int:
        method = method.upper()
        return METHOD_ORDER.index(method) if method in METHOD_ORDER else len(METHOD_ORDER)

    def _coverage_status(self, tested: int, total: int) -> str:
        if total == 0 or tested == 0:
            return "uncovered"
        if tested == total:
            return "covered"
        return "partial"

    def _template(self) -> Template:
        template_dir = Path(__file__).parent / "templates"
        env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(
                enabled_extensions=("html", "htm", "xml", "j2")
            ),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        return env.get_template("coverage_report.html.j2")

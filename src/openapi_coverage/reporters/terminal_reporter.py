from openapi_coverage.core.report import CoverageReport

INDENT = "    "


class TerminalReporter:
    def __init__(self, report: CoverageReport) -> None:
        self.report = report

    def render(self) -> str:
        summary = self.report.summary
        stats = self.report.server_error_stats
        lines = [
            "",
            f"OpenAPI coverage: {summary.coverage_percentage:.2f}% "
            f"({summary.tested_endpoints} of {summary.total_endpoints} endpoints)",
            "",
            "Tested endpoints:",
            *self._block(self.report.tested),
            "",
            "Untested endpoints:",
            *self._block(self.report.untested),
            "",
            "Endpoints missing from the OpenAPI document:",
            *self._block(self.report.extra),
            "",
            f"Server errors: {stats.total_server_errors}",
        ]
        if stats.status_code_counts:
            codes = ", ".join(f"{code}: {count}" for code, count in stats.status_code_counts.items())
            lines.append(f"{INDENT}by status: {codes}")
        lines.extend(
            f"{INDENT}{item.endpoint}: {item.count}" for item in stats.errors_by_endpoint
        )
        lines.append("")
        return "\n".join(lines)

    def create(self) -> None:
        print(self.render())

    def _block(self, endpoints: tuple[str, ...]) -> list[str]:
        if not endpoints:
            return [f"{INDENT}None"]
        return [f"{INDENT}{endpoint}" for endpoint in endpoints]

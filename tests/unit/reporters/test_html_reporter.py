from pathlib import Path

import pytest

from openapi_coverage.core.report import CoverageReport, ReportBuilder
from openapi_coverage.core.server_errors import ServerErrorRecord
from openapi_coverage.core.spec_index import SpecIndex
from openapi_coverage.reporters.html_reporter import HtmlReporter


@pytest.fixture
def report(users_spec: SpecIndex) -> CoverageReport:
    record = ServerErrorRecord()
    record.add(503, "<b>unavailable</b>")
    return ReportBuilder(users_spec).build(
        ["GET /users", "GET /users/1", "GET /orders"], {"GET /users/{id}": record}
    )


def test_renders_summary_and_tables(report: CoverageReport) -> None:
    html = HtmlReporter(report).render()

    assert "<title>OpenAPI coverage report</title>" in html
    assert "40.0%" in html
    assert '<td class="path">/users/{id}</td>' in html
    assert '<td class="status-covered">covered</td>' in html
    assert '<td class="status-uncovered">uncovered</td>' in html
    assert "Not in the OpenAPI document" in html
    assert '<td class="path">/orders</td>' in html
    assert "503 × 1" in html


def test_escapes_error_messages(report: CoverageReport) -> None:
    html = HtmlReporter(report).render()

    assert "&lt;b&gt;unavailable&lt;/b&gt;" in html
    assert "<b>unavailable</b>" not in html


def test_method_table_lists_declared_methods_only(report: CoverageReport) -> None:
    html = HtmlReporter(report).render()

    assert '<td class="method method-delete">DELETE</td>' in html
    assert '<td class="method method-patch">PATCH</td>' not in html


def test_create_writes_file(report: CoverageReport, tmp_path: Path) -> None:
    output = tmp_path / "html" / "coverage.html"

    HtmlReporter(report).create(output)

    assert output.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")

import json
import logging
from pathlib import Path

import typer

from openapi_coverage.config import CoverageSettings
from openapi_coverage.core.aggregator import Aggregator
from openapi_coverage.core.endpoint_patterns import load_endpoint_patterns
from openapi_coverage.core.exceptions import SpecLoadError
from openapi_coverage.core.report import CoverageReport, ReportBuilder, write_report
from openapi_coverage.core.spec_index import SpecIndex
from openapi_coverage.reporters.html_reporter import HtmlReporter
from openapi_coverage.reporters.terminal_reporter import TerminalReporter
from openapi_coverage.storage.json_storage import JsonDirectoryStorage

FORMATS = ("text", "html", "json")

app = typer.Typer(help="Measure how much of an OpenAPI document a test run exercised.")


@app.callback()
def main_callback() -> None:
    settings = CoverageSettings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def report(
    spec: Path,
    directory: Path = typer.Option(Path(".temp", "openapi"), "--dir", "-d"),
    output: Path = typer.Option(Path("openapi-coverage.json"), "--output", "-o"),
    patterns: Path | None = typer.Option(None, "--patterns", "-p"),
    format: str = typer.Option("text", "--format", "-f"),
    html_output: Path | None = typer.Option(None, "--html-output"),
) -> None:
    """Merge all worker snapshots in a directory into one coverage report."""
    report_format = _check_format(format)
    try:
        spec_index = SpecIndex.from_file(spec)
    except SpecLoadError as exc:
        typer.echo(f"{exc}; reporting every endpoint as extra", err=True)
        spec_index = SpecIndex.empty()

    aggregator = Aggregator(JsonDirectoryStorage(directory, worker_id="report"))
    builder = ReportBuilder(spec_index, load_endpoint_patterns(patterns))
    coverage_report = builder.build(aggregator.hits(), aggregator.errors())
    if not write_report(coverage_report, output):
        raise typer.Exit(code=1)

    if report_format == "json":
        print(f"JSON coverage report written to {output}")
        return
    _render(coverage_report, report_format, html_output)


@app.command()
def show(
    report_file: Path,
    format: str = typer.Option("text", "--format", "-f"),
    output: Path | None = typer.Option(None, "--output", "-o"),
) -> None:
    """Render a previously written JSON coverage report."""
    report_format = _check_format(format)
    try:
        data = json.loads(report_file.read_text("utf8"))
    except (OSError, ValueError) as exc:
        typer.echo(f"Cannot read coverage report {report_file}: {exc}", err=True)
        raise typer.Exit(code=1)
    _render(CoverageReport.from_dict(data), report_format, output)


def _check_format(value: str) -> str:
    report_format = value.lower().strip()
    if report_format not in FORMATS:
        raise typer.BadParameter(
            "Format must be 'text', 'html' or 'json'.", param_hint="format"
        )
    return report_format


def _render(coverage_report: CoverageReport, report_format: str, output: Path | None) -> None:
    if report_format == "text":
        terminal_reporter = TerminalReporter(coverage_report)
        if output:
            output.write_text(terminal_reporter.render(), encoding="utf-8")
        else:
            terminal_reporter.create()
        return

    if report_format == "html":
        output_path = output or Path("openapi-coverage.html")
        HtmlReporter(coverage_report).create(output_path)
        print(f"HTML coverage report written to {output_path}")
        return

    rendered = json.dumps(coverage_report.to_dict(), indent=2)
    if output:
        output.write_text(rendered, encoding="utf-8")
    else:
        print(rendered)


def main() -> None:
    app()


if __name__ == "__main__":
    app()

"""Measure OpenAPI coverage of a test run with ``pytest --openapi-spec openapi.yaml``.

Every pytest process (the controller and each pytest-xdist worker) records into
its own snapshot files below the coverage directory. Only the controlling
process resets the directory at start-up and writes the merged report at the
end of the session.
"""

import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import requests

from openapi_coverage.adapters.requests import RecordingHTTPAdapter
from openapi_coverage.config import CoverageSettings
from openapi_coverage.core.coverage import CoverageSession
from openapi_coverage.core.exceptions import PersistenceError
from openapi_coverage.core.report import CoverageReport
from openapi_coverage.storage.json_storage import JsonDirectoryStorage

log = logging.getLogger(__name__)

settings_key = pytest.StashKey[CoverageSettings]()
session_key = pytest.StashKey[CoverageSession]()
report_key = pytest.StashKey[CoverageReport]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("openapi-coverage", "OpenAPI endpoint coverage")
    group.addoption(
        "--openapi-spec",
        dest="openapi_spec",
        default=None,
        help="OpenAPI document to measure coverage against; enables the plugin.",
    )
    group.addoption(
        "--openapi-coverage-report",
        dest="openapi_coverage_report",
        default=None,
        help="Path of the JSON coverage report (default: openapi-coverage.json).",
    )
    group.addoption(
        "--openapi-coverage-dir",
        dest="openapi_coverage_dir",
        default=None,
        help="Directory for per-worker snapshots (default: .temp/openapi).",
    )
    group.addoption(
        "--openapi-patterns",
        dest="openapi_patterns",
        default=None,
        help="JSON file of endpoint patterns applied when building the report.",
    )


def is_xdist_worker(config: pytest.Config) -> bool:
    return hasattr(config, "workerinput")


def pytest_configure(config: pytest.Config) -> None:
    spec_path = config.getoption("openapi_spec")
    if not spec_path:
        return

    settings = _settings(config, spec_path)
    if not is_xdist_worker(config):
        try:
            JsonDirectoryStorage(settings.coverage_dir, "controller").reset()
        except PersistenceError as exc:
            log.error("%s", exc)

    config.stash[settings_key] = settings
    config.stash[session_key] = CoverageSession.from_settings(settings)


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    config = session.config
    coverage = config.stash.get(session_key, None)
    if coverage is None or is_xdist_worker(config):
        return
    settings = config.stash[settings_key]
    config.stash[report_key] = coverage.write_report(settings.output_path)


def pytest_terminal_summary(
    terminalreporter: Any, exitstatus: int, config: pytest.Config
) -> None:
    report = config.stash.get(report_key, None)
    if report is None:
        return
    summary = report.summary
    terminalreporter.section("OpenAPI coverage")
    terminalreporter.write_line(
        f"OpenAPI coverage: {summary.coverage_percentage:.2f}% "
        f"({summary.tested_endpoints} of {summary.total_endpoints} endpoints)"
    )
    if report.extra:
        terminalreporter.write_line(
            f"Endpoints missing from the OpenAPI document: {len(report.extra)}"
        )
    terminalreporter.write_line(
        f"Server errors: {report.server_error_stats.total_server_errors}"
    )
    terminalreporter.write_line(f"Report written to {config.stash[settings_key].output_path}")


@pytest.fixture(scope="session")
def openapi_coverage(pytestconfig: pytest.Config) -> CoverageSession:
    coverage = pytestconfig.stash.get(session_key, None)
    if coverage is None:
        pytest.skip("OpenAPI coverage is disabled, pass --openapi-spec to enable it")
    return coverage


@pytest.fixture
def openapi_session(
    openapi_coverage: CoverageSession,
) -> Generator[requests.Session, None, None]:
    adapter = RecordingHTTPAdapter(openapi_coverage)
    with requests.Session() as session:
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        yield session


def _settings(config: pytest.Config, spec_path: str) -> CoverageSettings:
    overrides: dict[str, Any] = {"openapi_path": Path(spec_path)}
    if report := config.getoption("openapi_coverage_report"):
        overrides["output_path"] = Path(report)
    if directory := config.getoption("openapi_coverage_dir"):
        overrides["coverage_dir"] = Path(directory)
    if patterns := config.getoption("openapi_patterns"):
        overrides["endpoint_pattern_file"] = Path(patterns)
    return CoverageSettings(**overrides)

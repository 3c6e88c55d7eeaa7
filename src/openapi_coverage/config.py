import logging
import os
import uuid
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from openapi_coverage.core.exceptions import PatternCompileError
from openapi_coverage.core.patterns import CUSTOM_PRIORITY, PathPattern

log = logging.getLogger(__name__)

XDIST_WORKER_ENV = "PYTEST_XDIST_WORKER"


class CustomPatternSettings(BaseModel):
    pattern: str
    template: str
    priority: int = CUSTOM_PRIORITY


class CoverageSettings(BaseSettings):
    """Coverage settings, loaded from ``OPENAPI_COVERAGE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="OPENAPI_COVERAGE_",
        case_sensitive=False,
        extra="ignore",
    )

    openapi_path: Path | None = Field(
        default=None, description="OpenAPI document, tried before the default locations"
    )
    output_path: Path = Field(
        default=Path("openapi-coverage.json"), description="Final JSON report"
    )
    coverage_dir: Path = Field(
        default=Path(".temp", "openapi"), description="Directory shared by all workers"
    )
    custom_patterns: list[CustomPatternSettings] = Field(default_factory=list)
    enable_dynamic_pattern_learning: bool = True
    endpoint_pattern_file: Path | None = None
    worker_id: str | None = None
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    def resolve_worker_id(self) -> str:
        return (
            self.worker_id
            or os.environ.get(XDIST_WORKER_ENV)
            or f"worker-{uuid.uuid4().hex[:8]}"
        )

    def compiled_patterns(self) -> list[PathPattern]:
        patterns = []
        for entry in self.custom_patterns:
            try:
                patterns.append(PathPattern.custom(entry.pattern, entry.template, entry.priority))
            except PatternCompileError as exc:
                log.error("Skipping custom pattern: %s", exc)
        return patterns

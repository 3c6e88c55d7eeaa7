import logging
import re

from openapi_coverage.core.exceptions import PatternCompileError
from openapi_coverage.core.patterns import PathPattern, PatternOrigin, SPEC_PRIORITY
from openapi_coverage.core.spec_index import Parameter, ParameterSchema, SpecIndex

log = logging.getLogger(__name__)

PARAMETER_RE = re.compile(r"\{([^{}/]+)\}")

UUID_PATTERN = (
    "[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)
OBJECT_ID_PATTERN = "[0-9a-fA-F]{24}"
NUMERIC_PATTERN = r"\d+"
DATE_PATTERN = r"\d{4}-\d{2}-\d{2}"
DATE_TIME_PATTERN = (
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})"
)
GENERIC_PATTERN = "[^/]+"


def parameter_pattern(name: str, schema: ParameterSchema | None) -> str:
    """Regular expression accepted for one ``{name}`` segment."""
    if schema is None:
        return GENERIC_PATTERN
    if schema.pattern:
        return _strip_anchors(schema.pattern)
    if schema.enum:
        return "|".join(re.escape(value) for value in schema.enum)
    if schema.type in ("integer", "number"):
        return NUMERIC_PATTERN
    if schema.format == "uuid":
        return UUID_PATTERN
    if schema.format == "date":
        return DATE_PATTERN
    if schema.format == "date-time":
        return DATE_TIME_PATTERN
    if schema.type == "string" and "id" in name.lower():
        return f"{OBJECT_ID_PATTERN}|{UUID_PATTERN}|{NUMERIC_PATTERN}"
    return GENERIC_PATTERN


def compile_path(template: str, parameters: list[Parameter]) -> PathPattern:
    schemas: dict[str, ParameterSchema | None] = {}
    for parameter in parameters:
        schemas.setdefault(parameter.name, parameter.schema)

    parts = ["^"]
    position = 0
    for match in PARAMETER_RE.finditer(template):
        parts.append(re.escape(template[position : match.start()]))
        name = match.group(1)
        parts.append(f"({parameter_pattern(name, schemas.get(name))})")
        position = match.end()
    parts.append(re.escape(template[position:]))
    parts.append("$")

    try:
        regex = re.compile("".join(parts))
    except re.error as exc:
        raise PatternCompileError(f"Cannot build pattern: {exc}", template) from exc
    return PathPattern(regex, template, SPEC_PRIORITY, PatternOrigin.SPEC)


class PatternCompiler:
    def __init__(self, spec: SpecIndex) -> None:
        self.spec = spec

    def compile(self) -> list[PathPattern]:
        patterns: list[PathPattern] = []
        for item in self.spec.document.paths:
            if "{" not in item.url:
                continue
            try:
                pattern = compile_path(item.url, item.all_parameters())
            except PatternCompileError as exc:
                log.error("Skipping path pattern: %s", exc)
                continue
            log.debug("Created pattern for %s: %s", item.url, pattern.regex.pattern)
            patterns.append(pattern)
        log.debug("Generated %d path patterns from the OpenAPI document", len(patterns))
        return patterns


def _strip_anchors(pattern: str) -> str:
    if pattern.startswith("^"):
        pattern = pattern[1:]
    if pattern.endswith("$") and not pattern.endswith("\\$"):
        pattern = pattern[:-1]
    return pattern

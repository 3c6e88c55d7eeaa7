"""Operator supplied ``regex -> {name}`` substitutions applied at report time.

The file is a JSON array of ``{"pattern": "<regex>", "replace": "<name>"}``
objects. Every pattern is applied in order to the path of each hit endpoint,
the matched part being replaced with ``{name}``.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from openapi_coverage.core.endpoint import is_templated, split_key, structure_key
from openapi_coverage.core.exceptions import MalformedPatternResult

log = logging.getLogger(__name__)

MALFORMED_MARKERS = ("{{", "}}", "}{")
REPEATED_SLASH_RE = re.compile(r"/+")


@dataclass(frozen=True)
class EndpointPattern:
    pattern: str
    replace: str


def load_endpoint_patterns(path: str | Path | None) -> list[EndpointPattern]:
    if not path:
        return []
    path = Path(path)
    if not path.is_file():
        log.error("Endpoint pattern file does not exist: %s", path)
        return []
    try:
        data = json.loads(path.read_text("utf8"))
    except (OSError, ValueError) as exc:
        log.error("Failed to load endpoint patterns from %s: %s", path, exc)
        return []
    if not isinstance(data, list):
        log.error("Invalid endpoint pattern file %s: expected an array of patterns", path)
        return []

    patterns = []
    for entry in data:
        if (
            isinstance(entry, dict)
            and isinstance(entry.get("pattern"), str)
            and isinstance(entry.get("replace"), str)
            and entry["pattern"]
            and entry["replace"]
        ):
            patterns.append(EndpointPattern(entry["pattern"], entry["replace"]))
        else:
            log.warning("Skipping invalid endpoint pattern: %s", json.dumps(entry))
    log.info("Loaded %d endpoint patterns from %s", len(patterns), path)
    return patterns


def is_malformed(path: str) -> bool:
    return any(marker in path for marker in MALFORMED_MARKERS)


def substitute_path(path: str, patterns: list[tuple[re.Pattern[str], str]]) -> str:
    result = path
    for regex, replace in patterns:
        if regex.search(result):
            placeholder = "{" + replace + "}"
            result = regex.sub(lambda _: placeholder, result, count=1)
            result = REPEATED_SLASH_RE.sub("/", result)
    if is_malformed(result):
        raise MalformedPatternResult(f"Pattern created malformed path {result}", path)
    return result


def apply_endpoint_patterns(endpoints: list[str], patterns: list[EndpointPattern]) -> list[str]:
    """Substitute and deduplicate endpoints, keeping one key per structure.

    A templated result replaces a concrete one with the same structure; among
    concrete keys the first one seen is kept.
    """
    if not patterns:
        return list(endpoints)

    compiled: list[tuple[re.Pattern[str], str]] = []
    for pattern in patterns:
        try:
            compiled.append((re.compile(pattern.pattern), pattern.replace))
        except re.error as exc:
            log.warning("Invalid endpoint pattern %s: %s", pattern.pattern, exc)

    by_structure: dict[str, str] = {}
    for endpoint in endpoints:
        method, path = split_key(endpoint)
        if not path:
            continue
        if is_malformed(path):
            log.warning("Skipping malformed endpoint %s", endpoint)
            continue
        try:
            normalized = substitute_path(path, compiled)
        except MalformedPatternResult as exc:
            log.warning("%s", exc)
            normalized = path

        key = f"{method} {normalized}"
        structure = structure_key(key)
        if is_templated(key) or structure not in by_structure:
            by_structure[structure] = key

    result = list(by_structure.values())
    if len(result) != len(endpoints):
        log.info(
            "Deduplicated endpoints from %d to %d after pattern substitution",
            len(endpoints),
            len(result),
        )
    return result

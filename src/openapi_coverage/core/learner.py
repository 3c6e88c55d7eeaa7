"""Infer endpoint templates from concrete paths seen in traffic.

Paths are grouped by a structural signature in which id-like segments are
replaced by a shape token, so ``/users/1`` and ``/users/2`` share the
signature ``users/{number}``. Every group of two or more paths that no known
pattern already covers yields one learned pattern.
"""

import logging
import re
from collections import Counter
from collections.abc import Iterable

from openapi_coverage.core.endpoint import OBJECT_ID_RE, path_segments
from openapi_coverage.core.exceptions import PatternCompileError
from openapi_coverage.core.patterns import LEARNED_PRIORITY, PathPattern, PatternOrigin
from openapi_coverage.core.compiler import (
    GENERIC_PATTERN,
    NUMERIC_PATTERN,
    OBJECT_ID_PATTERN,
    UUID_PATTERN,
)

log = logging.getLogger(__name__)

NUMBER_RE = re.compile(r"^\d+$")
UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
HASH_RE = re.compile(r"^[0-9a-f]{12,40}$", re.IGNORECASE)
VERSION_RE = re.compile(r"^v\d+$")
TOKEN_HINT_RE = re.compile(r"[A-F0-9]{8,}|[-_]")
WORD_RE = re.compile(r"^[a-z][a-z0-9_-]*$")

RESOURCE_NOUNS = frozenset(
    {
        "users",
        "products",
        "orders",
        "items",
        "posts",
        "comments",
        "auth",
        "login",
        "categories",
        "tags",
        "api",
    }
)

SHAPE_PATTERNS = {
    "numeric": NUMERIC_PATTERN,
    "uuid": UUID_PATTERN,
    "object-id": OBJECT_ID_PATTERN,
    "generic": GENERIC_PATTERN,
}
SHAPE_NAMES = {"numeric": "id", "uuid": "uuid", "object-id": "id", "generic": "param"}


def segment_signature(segment: str) -> str:
    if NUMBER_RE.match(segment):
        return "{number}"
    if OBJECT_ID_RE.match(segment):
        return "{objectId}"
    if UUID_RE.match(segment):
        return "{uuid}"
    if HASH_RE.match(segment):
        return "{hash}"
    if VERSION_RE.match(segment):
        return segment
    if segment.lower() in RESOURCE_NOUNS:
        return segment.lower()
    if len(segment) > 20 or TOKEN_HINT_RE.search(segment):
        return "{token}"
    return segment


def path_signature(path: str) -> str:
    return "/".join(segment_signature(segment) for segment in path_segments(path))


def group_by_signature(paths: Iterable[str]) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {}
    for path in paths:
        groups.setdefault(path_signature(path), []).append(path)
    return groups


def segment_shape(value: str) -> str:
    if NUMBER_RE.match(value):
        return "numeric"
    if UUID_RE.match(value):
        return "uuid"
    if OBJECT_ID_RE.match(value):
        return "object-id"
    return "generic"


def build_group_pattern(paths: list[str]) -> PathPattern | None:
    rows = [path_segments(path) for path in paths]
    width = len(rows[0])
    if any(len(row) != width for row in rows):
        raise PatternCompileError("Paths in group differ in length", paths[0])

    variable = [len({row[index] for row in rows}) > 1 for index in range(width)]
    if not any(variable):
        return None

    regex_parts: list[str] = []
    template_parts: list[str] = []
    used_names: set[str] = set()
    for index in range(width):
        literal = rows[0][index]
        if not variable[index]:
            regex_parts.append(re.escape(literal))
            template_parts.append(literal)
            continue
        shapes = [segment_shape(row[index]) for row in rows]
        shared = shapes[0] if len(set(shapes)) == 1 else "generic"
        regex_parts.append(f"({SHAPE_PATTERNS[shared]})")

        name = None
        if index > 0 and not variable[index - 1]:
            name = _name_from_resource(rows[0][index - 1])
        if name is None:
            majority = Counter(shapes).most_common(1)[0][0]
            name = SHAPE_NAMES[majority]
        template_parts.append("{" + _unique(name, used_names) + "}")

    try:
        regex = re.compile("^/" + "/".join(regex_parts) + "/?$")
    except re.error as exc:
        raise PatternCompileError(f"Cannot build learned pattern: {exc}", paths[0]) from exc
    template = "/" + "/".join(template_parts)
    return PathPattern(regex, template, LEARNED_PRIORITY, PatternOrigin.LEARNED)


class PatternLearner:
    def __init__(self, min_group_size: int = 2) -> None:
        self.min_group_size = max(2, min_group_size)

    def learn(
        self, paths: list[str], known: Iterable[PathPattern] = ()
    ) -> list[PathPattern]:
        if len(paths) < 2:
            return []
        known_patterns = list(known)
        known_templates = {pattern.template for pattern in known_patterns}
        learned: list[PathPattern] = []

        for signature, members in group_by_signature(paths).items():
            if len(members) < self.min_group_size:
                continue
            if _all_covered(members, known_patterns + learned):
                continue
            try:
                pattern = build_group_pattern(members)
            except PatternCompileError as exc:
                log.debug("Skipping group %s: %s", signature, exc)
                continue
            if pattern is None or pattern.template in known_templates:
                continue
            known_templates.add(pattern.template)
            learned.append(pattern)
            log.info("Inferred pattern %s from paths like %s", pattern.template, members[0])

        if learned:
            log.info("Inferred %d new patterns from %d paths", len(learned), len(paths))
        return learned


def _all_covered(paths: list[str], patterns: list[PathPattern]) -> bool:
    if not patterns:
        return False
    return all(any(pattern.matches(path) for pattern in patterns) for path in paths)


def _name_from_resource(segment: str) -> str | None:
    word = segment.lower()
    if not WORD_RE.match(word) or VERSION_RE.match(word):
        return None
    if word.endswith("ies") and len(word) > 3:
        word = word[:-3] + "y"
    elif word.endswith("s") and not word.endswith("ss"):
        word = word[:-1]
    return word.replace("-", "_") + "_id"


def _unique(name: str, used: set[str]) -> str:
    candidate = name
    suffix = 2
    while candidate in used:
        candidate = f"{name}{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate

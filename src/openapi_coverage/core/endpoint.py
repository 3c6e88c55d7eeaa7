"""Helpers for ``"METHOD /path"`` endpoint keys.

A key is *templated* when its path holds at least one ``{name}`` segment and
*concrete* otherwise. Two keys match structurally when they share the method
and segment count and every literal segment of the template is equal to the
segment at the same index of the other key.
"""

import re

OBJECT_ID_RE = re.compile(r"^[0-9a-f]{24}$", re.IGNORECASE)
STRUCTURE_PLACEHOLDER = "{PARAM}"
COARSE_PLACEHOLDER = "{id}"


def endpoint_key(method: str, path: str) -> str:
    return f"{method.upper()} {path}"


def split_key(key: str) -> tuple[str, str]:
    method, _, path = key.partition(" ")
    return method, path


def is_templated(value: str) -> bool:
    return "{" in value and "}" in value


def is_placeholder(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


def path_segments(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def ensure_leading_slash(path: str) -> str:
    return path if path.startswith("/") else f"/{path}"


def literal_count(path: str) -> int:
    return sum(1 for segment in path_segments(path) if not is_placeholder(segment))


def path_matches_template(path: str, template: str) -> bool:
    segments = path_segments(path)
    template_segments = path_segments(template)
    if len(segments) != len(template_segments):
        return False
    return all(
        is_placeholder(expected) or expected == actual
        for expected, actual in zip(template_segments, segments)
    )


def matches_template(key: str, template_key: str) -> bool:
    method, path = split_key(key)
    template_method, template_path = split_key(template_key)
    if method != template_method:
        return False
    return path_matches_template(path, template_path)


def structure_key(key: str) -> str:
    """Method plus path with every placeholder replaced by one token."""
    method, path = split_key(key)
    segments = [
        STRUCTURE_PLACEHOLDER if is_placeholder(segment) else segment
        for segment in path_segments(path)
    ]
    return f"{method} /" + "/".join(segments)


def coarse_key(key: str) -> str:
    """Like :func:`structure_key` but object-id shaped segments collapse too."""
    method, path = split_key(key)
    segments = [
        COARSE_PLACEHOLDER
        if is_placeholder(segment) or OBJECT_ID_RE.match(segment)
        else segment
        for segment in path_segments(path)
    ]
    return f"{method} /" + "/".join(segments)


def reconcile_endpoints(keys: list[str]) -> list[str]:
    """Drop concrete keys that a templated key of the same method already covers.

    Keys are first grouped by :func:`coarse_key`; a group holding a templated
    key keeps only its templated members. Remaining concrete keys are then
    removed when any kept templated key matches them structurally. Order of
    first appearance is preserved.
    """
    groups: dict[str, list[str]] = {}
    for key in dict.fromkeys(keys):
        groups.setdefault(coarse_key(key), []).append(key)

    kept: list[str] = []
    for members in groups.values():
        templated = [key for key in members if is_templated(key)]
        kept.extend(templated or members)

    templates = [key for key in kept if is_templated(key)]
    return [
        key
        for key in kept
        if is_templated(key)
        or not any(matches_template(key, template) for template in templates)
    ]

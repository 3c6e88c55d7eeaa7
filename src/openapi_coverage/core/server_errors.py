from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from openapi_coverage.core.endpoint import coarse_key, is_templated, matches_template

MAX_ERROR_MESSAGE = 200


@dataclass
class ServerErrorRecord:
    count: int = 0
    status_codes: dict[str, int] = field(default_factory=dict)
    last_error: str | None = None

    def add(self, status: int, message: str | None = None) -> None:
        self.count += 1
        code = str(status)
        self.status_codes[code] = self.status_codes.get(code, 0) + 1
        if message:
            self.last_error = message[:MAX_ERROR_MESSAGE]

    def copy(self) -> "ServerErrorRecord":
        return ServerErrorRecord(self.count, dict(self.status_codes), self.last_error)

    def merge(self, other: "ServerErrorRecord") -> "ServerErrorRecord":
        status_codes = dict(self.status_codes)
        for code, count in other.status_codes.items():
            status_codes[code] = status_codes.get(code, 0) + count
        return ServerErrorRecord(
            count=self.count + other.count,
            status_codes=status_codes,
            last_error=other.last_error or self.last_error,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"count": self.count, "statusCodes": dict(self.status_codes)}
        if self.last_error:
            data["lastError"] = self.last_error
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServerErrorRecord":
        status_codes = data.get("statusCodes") or {}
        return cls(
            count=int(data.get("count") or 0),
            status_codes={str(code): int(count) for code, count in status_codes.items()},
            last_error=data.get("lastError") or None,
        )


def merge_error_maps(
    maps: Iterable[Mapping[str, ServerErrorRecord]],
) -> dict[str, ServerErrorRecord]:
    """Merge per-worker error maps into one map keyed by representative endpoint.

    Records of structurally identical endpoints are summed under a single key,
    the templated key when one exists.
    """
    combined: dict[str, ServerErrorRecord] = {}
    for errors in maps:
        for key, record in errors.items():
            combined[key] = combined[key].merge(record) if key in combined else record.copy()

    groups: dict[str, list[str]] = {}
    for key in combined:
        groups.setdefault(coarse_key(key), []).append(key)

    representative: dict[str, str] = {}
    for members in groups.values():
        chosen = next((key for key in members if is_templated(key)), members[0])
        for key in members:
            representative[key] = chosen

    templates = [key for key in dict.fromkeys(representative.values()) if is_templated(key)]
    for key, chosen in representative.items():
        if is_templated(chosen):
            continue
        template = next((t for t in templates if matches_template(chosen, t)), None)
        if template is not None:
            representative[key] = template

    merged: dict[str, ServerErrorRecord] = {}
    for key, record in combined.items():
        target = representative[key]
        merged[target] = merged[target].merge(record) if target in merged else record.copy()
    return merged

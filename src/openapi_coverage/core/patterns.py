import re
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from openapi_coverage.core.exceptions import PatternCompileError

CUSTOM_PRIORITY = 100
SPEC_PRIORITY = 50
LEARNED_PRIORITY = 30


class PatternOrigin(str, Enum):
    CUSTOM = "custom"
    SPEC = "spec-derived"
    LEARNED = "learned"


@dataclass(frozen=True)
class PathPattern:
    regex: re.Pattern[str]
    template: str
    priority: int
    origin: PatternOrigin

    @classmethod
    def custom(
        cls,
        pattern: str | re.Pattern[str],
        template: str,
        priority: int = CUSTOM_PRIORITY,
    ) -> "PathPattern":
        try:
            regex = re.compile(pattern)
        except re.error as exc:
            raise PatternCompileError(f"Invalid custom pattern: {exc}", str(pattern)) from exc
        return cls(regex, template, priority, PatternOrigin.CUSTOM)

    def matches(self, path: str) -> bool:
        return self.regex.search(path) is not None

    def substitute(self, path: str) -> str:
        # Operator templates may reference groups; generated ones are literal.
        if self.origin is PatternOrigin.CUSTOM:
            return self.regex.sub(self.template, path, count=1)
        return self.regex.sub(lambda _: self.template, path, count=1)


class PatternChain:
    """Patterns tried in priority order, highest first.

    Sorting is stable, so patterns sharing a priority keep the order in which
    they were added.
    """

    def __init__(self, patterns: Iterable[PathPattern] = ()) -> None:
        self._patterns: list[PathPattern] = []
        self._ordered: list[PathPattern] = []
        self._lock = threading.Lock()
        self.extend(patterns)

    def extend(self, patterns: Iterable[PathPattern]) -> None:
        # Readers iterate over the previous lists, which are never mutated.
        with self._lock:
            combined = [*self._patterns, *patterns]
            self._ordered = sorted(combined, key=lambda pattern: -pattern.priority)
            self._patterns = combined

    def __iter__(self) -> Iterator[PathPattern]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._patterns)

    @property
    def templates(self) -> set[str]:
        return {pattern.template for pattern in self._patterns}

    def first_match(self, path: str) -> PathPattern | None:
        for pattern in self._ordered:
            if pattern.matches(path):
                return pattern
        return None

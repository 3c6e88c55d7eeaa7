import logging
import re

from openapi_coverage.core.endpoint import (
    ensure_leading_slash,
    literal_count,
    path_matches_template,
)
from openapi_coverage.core.exceptions import NormalizationError
from openapi_coverage.core.patterns import PatternChain, PatternOrigin
from openapi_coverage.core.spec_index import SpecIndex

log = logging.getLogger(__name__)


class PathNormalizer:
    """Resolve a concrete request path to its canonical endpoint template.

    Strategies are tried in order and the first one that succeeds wins:

    1. exact match against a declared path;
    2. structural match against a declared path (placeholders accept any
       segment, the path with the most literal segments wins);
    3. the pattern chain in priority order (custom, spec-derived, learned);
    4. the input path itself.
    """

    def __init__(self, spec: SpecIndex, patterns: PatternChain | None = None) -> None:
        self.spec = spec
        self.patterns = patterns if patterns is not None else PatternChain()

    def normalize(self, path: str) -> str:
        if not path:
            log.warning("Empty path provided for normalization")
            return "/"
        path = ensure_leading_slash(path)
        try:
            return self.resolve(path) or path
        except NormalizationError as exc:
            log.error("%s", exc)
            return path

    def resolve(self, path: str) -> str | None:
        """Like :meth:`normalize` but ``None`` when no strategy applies."""
        path = ensure_leading_slash(path)
        if self.spec.has_path(path):
            return path

        template = self._structural_match(path)
        if template is not None:
            log.debug("Path structurally matched declared template: %s -> %s", path, template)
            return template

        return self._pattern_match(path)

    def _structural_match(self, path: str) -> str | None:
        best: str | None = None
        for template in self.spec.paths:
            if not path_matches_template(path, template):
                continue
            if best is None or literal_count(template) > literal_count(best):
                best = template
        return best

    def _pattern_match(self, path: str) -> str | None:
        for pattern in self.patterns:
            if not pattern.matches(path):
                continue
            try:
                result = pattern.substitute(path)
            except (re.error, IndexError) as exc:
                raise NormalizationError(
                    f"Pattern {pattern.regex.pattern!r} failed to substitute: {exc}", path
                ) from exc
            result = ensure_leading_slash(result)
            if self.spec.has_path(result):
                log.debug("Pattern matched declared path: %s -> %s", path, result)
            elif pattern.origin is PatternOrigin.CUSTOM:
                log.info(
                    "Path matched custom pattern (priority %d): %s -> %s",
                    pattern.priority,
                    path,
                    result,
                )
            else:
                log.debug(
                    "Path matched %s pattern: %s -> %s", pattern.origin.value, path, result
                )
            return result
        log.debug("No pattern matched path %s (tried %d)", path, len(self.patterns))
        return None

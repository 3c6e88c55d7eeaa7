class CoverageError(Exception):
    """Base class for every failure raised by the coverage engine."""

    def __init__(self, message: str, source: str | None = None) -> None:
        self.message = message
        self.source = source
        full_message = message if source is None else f"{message} [{source}]"
        super().__init__(full_message)


class SpecLoadError(CoverageError):
    """The OpenAPI document is missing or cannot be parsed."""


class PatternCompileError(CoverageError):
    """A single path pattern could not be built."""


class NormalizationError(CoverageError):
    """A concrete path could not be resolved to an endpoint template."""


class PersistenceError(CoverageError):
    """A worker snapshot or report could not be read or written."""


class MalformedPatternResult(CoverageError):
    """A substitution produced an invalid placeholder shape such as ``{{``."""

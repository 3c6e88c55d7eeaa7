import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import openapi_parser
from prance.util.formats import parse_spec
from prance.util.resolver import RefResolver

from openapi_coverage.core.endpoint import endpoint_key
from openapi_coverage.core.exceptions import SpecLoadError

log = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "PUT", "POST", "DELETE", "OPTIONS", "HEAD", "PATCH", "TRACE")

DEFAULT_SPEC_LOCATIONS = (
    Path("src", "api", "data", "openapi.json"),
    Path("src", "api", "data", "openapi.yaml"),
    Path("src", "api", "data", "swagger.json"),
    Path("src", "api", "data", "swagger.yaml"),
    Path("openapi.json"),
    Path("openapi.yaml"),
    Path("swagger.json"),
    Path("swagger.yaml"),
)


@dataclass(frozen=True)
class ParameterSchema:
    type: str | None = None
    format: str | None = None
    pattern: str | None = None
    enum: tuple[str, ...] = ()


@dataclass(frozen=True)
class Parameter:
    name: str
    location: str = "path"
    schema: ParameterSchema | None = None


@dataclass(frozen=True)
class Operation:
    method: str
    parameters: tuple[Parameter, ...] = ()
    summary: str = ""
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class PathItem:
    url: str
    operations: tuple[Operation, ...] = ()
    parameters: tuple[Parameter, ...] = ()

    def all_parameters(self) -> list[Parameter]:
        """Path-level parameters first, then those of each operation."""
        parameters = list(self.parameters)
        for operation in self.operations:
            parameters.extend(operation.parameters)
        return parameters


@dataclass(frozen=True)
class ApiDocument:
    paths: tuple[PathItem, ...] = ()
    servers: tuple[str, ...] = ()
    version: str = "unknown"


class SpecIndex:
    """Declared ``METHOD /path`` keys of one OpenAPI document."""

    def __init__(self, document: ApiDocument) -> None:
        self.document = document
        self.paths: tuple[str, ...] = tuple(item.url for item in document.paths)
        self._path_set = frozenset(self.paths)
        self.endpoints: tuple[str, ...] = tuple(
            dict.fromkeys(
                endpoint_key(operation.method, item.url)
                for item in document.paths
                for operation in item.operations
                if operation.method.upper() in HTTP_METHODS
            )
        )
        self.endpoint_set = frozenset(self.endpoints)
        self.server_base_paths = self._build_server_base_paths()

    @classmethod
    def empty(cls) -> "SpecIndex":
        return cls(ApiDocument())

    @classmethod
    def from_file(cls, path: str | Path) -> "SpecIndex":
        path = Path(path)
        if not path.is_file():
            raise SpecLoadError("OpenAPI document not found", str(path))
        try:
            spec = openapi_parser.parse(str(path), strict_enum=False)
            document = _convert_specification(spec)
        except Exception as exc:
            log.warning(
                "Strict parsing of %s failed (%s), reading it without validation", path, exc
            )
            document = _load_raw_document(path)
        index = cls(document)
        log.info(
            "Parsed OpenAPI document %s (version %s) with %d paths",
            path,
            index.document.version,
            len(index.paths),
        )
        if not index.paths:
            log.warning("OpenAPI document %s declares no paths", path)
        return index

    @classmethod
    def load(
        cls, custom_path: str | Path | None = None, root: str | Path | None = None
    ) -> "SpecIndex":
        """Load the first parseable document among the candidate locations.

        Falls back to an empty index, in which case every observed endpoint
        ends up reported as extra.
        """
        candidates = candidate_spec_paths(custom_path, root)
        log.info(
            "Looking for OpenAPI document in: %s",
            ", ".join(str(candidate) for candidate in candidates),
        )
        for candidate in candidates:
            if not candidate.is_file():
                continue
            try:
                return cls.from_file(candidate)
            except SpecLoadError as exc:
                log.error("%s", exc, exc_info=exc.__cause__)
        log.error("Could not find a valid OpenAPI document in any candidate location")
        return cls.empty()

    def has_path(self, path: str) -> bool:
        return path in self._path_set

    def strip_server_base_path(self, path: str) -> str:
        for base_path in self.server_base_paths:
            if path == base_path:
                return "/"
            if path.startswith(base_path + "/"):
                return path[len(base_path) :]
        return path

    def _build_server_base_paths(self) -> list[str]:
        base_paths: list[str] = []
        for url in self.document.servers:
            base_path = urlparse(url).path or ""
            if not base_path or base_path == "/":
                continue
            base_paths.append(base_path.rstrip("/"))
        return sorted(set(base_paths), key=len, reverse=True)


def candidate_spec_paths(
    custom_path: str | Path | None = None, root: str | Path | None = None
) -> list[Path]:
    base = Path(root) if root is not None else Path.cwd()
    candidates = [base / location for location in DEFAULT_SPEC_LOCATIONS]
    if custom_path:
        candidates.insert(0, base / Path(custom_path))
    return candidates


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


def _convert_specification(spec: Any) -> ApiDocument:
    paths = tuple(
        PathItem(
            url=path.url,
            operations=tuple(
                _convert_operation(operation) for operation in path.operations
            ),
            parameters=_convert_parameters(getattr(path, "parameters", None)),
        )
        for path in spec.paths
    )
    servers = tuple(
        server.url for server in getattr(spec, "servers", None) or [] if server.url
    )
    version = _value(getattr(spec, "version", None)) or "unknown"
    return ApiDocument(paths=paths, servers=servers, version=str(version))


def _convert_operation(operation: Any) -> Operation:
    return Operation(
        method=operation.method.name.upper(),
        parameters=_convert_parameters(getattr(operation, "parameters", None)),
        summary=(getattr(operation, "summary", None) or "").strip(),
        tags=tuple(getattr(operation, "tags", None) or ()),
    )


def _convert_parameters(parameters: Any) -> tuple[Parameter, ...]:
    return tuple(
        Parameter(
            name=parameter.name,
            location=str(_value(getattr(parameter, "location", "path"))),
            schema=_convert_schema(getattr(parameter, "schema", None)),
        )
        for parameter in parameters or []
    )


def _convert_schema(schema: Any) -> ParameterSchema | None:
    if schema is None:
        return None
    data_type = _value(getattr(schema, "type", None))
    data_format = _value(getattr(schema, "format", None))
    return ParameterSchema(
        type=str(data_type) if data_type else None,
        format=str(data_format) if data_format else None,
        pattern=getattr(schema, "pattern", None) or None,
        enum=tuple(str(value) for value in getattr(schema, "enum", None) or ()),
    )


def _load_raw_document(path: Path) -> ApiDocument:
    """Read a document the strict parser rejects, such as Swagger 2.0 or a
    document without ``info`` or ``responses``."""
    try:
        data = parse_spec(path.read_text("utf8"), str(path))
        resolver = RefResolver(data, str(path.resolve()), strict=False)
        resolver.resolve_references()
        return _convert_raw_document(resolver.specs)
    except Exception as exc:
        raise SpecLoadError("Failed to parse OpenAPI document", str(path)) from exc


def _convert_raw_document(data: Any) -> ApiDocument:
    if not isinstance(data, dict) or not isinstance(data.get("paths"), dict):
        raise SpecLoadError("OpenAPI document has no paths object")

    paths = []
    for url, item in data["paths"].items():
        if not isinstance(item, dict):
            continue
        operations = tuple(
            _convert_raw_operation(method, operation)
            for method, operation in item.items()
            if method.upper() in HTTP_METHODS and isinstance(operation, dict)
        )
        paths.append(
            PathItem(
                url=str(url),
                operations=operations,
                parameters=_convert_raw_parameters(item.get("parameters")),
            )
        )

    servers = [
        server["url"]
        for server in data.get("servers") or []
        if isinstance(server, dict) and server.get("url")
    ]
    # Swagger 2.0 declares the server prefix as basePath
    if data.get("basePath"):
        servers.append(data["basePath"])
    version = data.get("openapi") or data.get("swagger") or "unknown"
    return ApiDocument(paths=tuple(paths), servers=tuple(servers), version=str(version))


def _convert_raw_operation(method: str, operation: dict) -> Operation:
    return Operation(
        method=method.upper(),
        parameters=_convert_raw_parameters(operation.get("parameters")),
        summary=str(operation.get("summary") or "").strip(),
        tags=tuple(str(tag) for tag in operation.get("tags") or ()),
    )


def _convert_raw_parameters(parameters: Any) -> tuple[Parameter, ...]:
    converted = []
    for parameter in parameters or []:
        if not isinstance(parameter, dict) or not parameter.get("name"):
            continue
        # Swagger 2.0 puts the schema keywords on the parameter itself
        schema = parameter.get("schema")
        if not isinstance(schema, dict):
            schema = parameter
        converted.append(
            Parameter(
                name=str(parameter["name"]),
                location=str(parameter.get("in") or "path"),
                schema=_convert_raw_schema(schema),
            )
        )
    return tuple(converted)


def _convert_raw_schema(schema: dict) -> ParameterSchema:
    return ParameterSchema(
        type=str(schema["type"]) if schema.get("type") else None,
        format=str(schema["format"]) if schema.get("format") else None,
        pattern=schema.get("pattern") or None,
        enum=tuple(str(value) for value in schema.get("enum") or ()),
    )

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from openapi_coverage.core.spec_index import (
    ApiDocument,
    Operation,
    Parameter,
    ParameterSchema,
    PathItem,
    SpecIndex,
)

pytest_plugins = ["pytester"]

OK_RESPONSES = {"200": {"description": "ok"}}

USERS_PATHS = {
    "/users": {
        "get": {"responses": OK_RESPONSES},
        "post": {"responses": OK_RESPONSES},
    },
    "/users/{id}": {
        "parameters": [
            {"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}}
        ],
        "get": {"responses": OK_RESPONSES},
        "put": {"responses": OK_RESPONSES},
        "delete": {"responses": OK_RESPONSES},
    },
}


@pytest.fixture
def write_spec(tmp_path: Path) -> Callable[..., Path]:
    def write(
        paths: dict[str, Any],
        servers: list[str] | None = None,
        filename: str = "openapi.json",
        components: dict[str, Any] | None = None,
    ) -> Path:
        document: dict[str, Any] = {
            "openapi": "3.0.3",
            "info": {"title": "Test API", "version": "1.0.0"},
            "paths": paths,
        }
        if servers:
            document["servers"] = [{"url": url} for url in servers]
        if components:
            document["components"] = components
        spec_file = tmp_path / filename
        spec_file.write_text(json.dumps(document))
        return spec_file

    return write


@pytest.fixture
def users_spec_file(write_spec: Callable[..., Path]) -> Path:
    return write_spec(USERS_PATHS)


@pytest.fixture
def users_spec() -> SpecIndex:
    user_id = Parameter("id", "path", ParameterSchema(type="integer"))
    return SpecIndex(
        ApiDocument(
            paths=(
                PathItem("/users", (Operation("GET"), Operation("POST"))),
                PathItem(
                    "/users/{id}",
                    (Operation("GET"), Operation("PUT"), Operation("DELETE")),
                    (user_id,),
                ),
            )
        )
    )

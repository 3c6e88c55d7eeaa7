import json
from pathlib import Path

import pytest

from openapi_coverage.core.exceptions import PersistenceError
from openapi_coverage.core.server_errors import ServerErrorRecord
from openapi_coverage.storage.json_storage import JsonDirectoryStorage, write_json_atomic


def test_write_json_atomic_replaces_content(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "data.json"

    write_json_atomic(target, ["GET /a"])
    write_json_atomic(target, ["GET /a", "GET /b"])

    assert json.loads(target.read_text()) == ["GET /a", "GET /b"]
    assert [path.name for path in target.parent.iterdir()] == ["data.json"]


def test_write_json_atomic_raises_persistence_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with pytest.raises(PersistenceError):
        write_json_atomic(blocker / "data.json", [])


def test_each_worker_writes_its_own_files(tmp_path: Path) -> None:
    gw0 = JsonDirectoryStorage(tmp_path, "gw0")
    gw1 = JsonDirectoryStorage(tmp_path, "gw1")

    gw0.store_hits(["GET /users"])
    gw1.store_hits(["GET /users/{id}"])
    record = ServerErrorRecord()
    record.add(500, "boom")
    gw1.store_errors({"GET /users/{id}": record})

    assert gw0.hits_file.name == "endpoints-gw0.json"
    assert gw1.errors_file.name == "errors-gw1.json"
    assert gw0.load_hits() == {"gw0": ["GET /users"], "gw1": ["GET /users/{id}"]}
    errors = gw0.load_errors()
    assert list(errors) == ["gw1"]
    assert errors["gw1"]["GET /users/{id}"] == record


def test_worker_id_is_made_file_safe(tmp_path: Path) -> None:
    storage = JsonDirectoryStorage(tmp_path, "host/1:2")

    assert storage.worker_id == "host_1_2"
    assert storage.hits_file == tmp_path / "endpoints-host_1_2.json"


def test_corrupt_snapshots_are_skipped(tmp_path: Path) -> None:
    (tmp_path / "endpoints-broken.json").write_text("[\"GET /a\"")
    (tmp_path / "endpoints-object.json").write_text("{}")
    (tmp_path / "endpoints-good.json").write_text(json.dumps(["GET /b", 3]))
    (tmp_path / "errors-bad-record.json").write_text(
        json.dumps({"GET /a": "oops", "GET /b": {"count": 1, "statusCodes": {"500": 1}}})
    )

    storage = JsonDirectoryStorage(tmp_path, "reader")

    assert storage.load_hits() == {"good": ["GET /b"]}
    errors = storage.load_errors()
    assert list(errors["bad-record"]) == ["GET /b"]


def test_reset_removes_previous_snapshots(tmp_path: Path) -> None:
    directory = tmp_path / "coverage"
    storage = JsonDirectoryStorage(directory, "gw0")
    storage.store_hits(["GET /a"])

    storage.reset()

    assert directory.is_dir()
    assert list(directory.iterdir()) == []
    assert storage.load_hits() == {}


def test_missing_directory_loads_nothing(tmp_path: Path) -> None:
    storage = JsonDirectoryStorage(tmp_path / "absent", "gw0")

    assert storage.load_hits() == {}
    assert storage.load_errors() == {}

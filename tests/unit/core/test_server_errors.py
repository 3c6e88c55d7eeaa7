from openapi_coverage.core.server_errors import (
    MAX_ERROR_MESSAGE,
    ServerErrorRecord,
    merge_error_maps,
)


def record(*statuses: int, message: str | None = None) -> ServerErrorRecord:
    result = ServerErrorRecord()
    for status in statuses:
        result.add(status, message)
    return result


def test_add_counts_statuses_and_truncates_message() -> None:
    error = record(500, 500, 502, message="x" * 500)

    assert error.count == 3
    assert error.status_codes == {"500": 2, "502": 1}
    assert error.last_error is not None
    assert len(error.last_error) == MAX_ERROR_MESSAGE


def test_empty_message_keeps_previous_one() -> None:
    error = record(500, message="first")
    error.add(500, "")

    assert error.last_error == "first"


def test_to_dict_uses_report_field_names() -> None:
    assert record(503, message="down").to_dict() == {
        "count": 1,
        "statusCodes": {"503": 1},
        "lastError": "down",
    }
    assert record(500).to_dict() == {"count": 1, "statusCodes": {"500": 1}}
    assert ServerErrorRecord.from_dict({"count": 2, "statusCodes": {"500": 2}}) == record(500, 500)


def test_merge_groups_structurally_identical_endpoints() -> None:
    worker_a = {"GET /users/1": record(500, message="a")}
    worker_b = {"GET /users/{id}": record(503)}

    merged = merge_error_maps([worker_a, worker_b])

    assert list(merged) == ["GET /users/{id}"]
    assert merged["GET /users/{id}"].count == 2
    assert merged["GET /users/{id}"].status_codes == {"500": 1, "503": 1}
    assert merged["GET /users/{id}"].last_error == "a"


def test_merge_is_commutative() -> None:
    worker_a = {"GET /users/1": record(500), "POST /users": record(502, 502)}
    worker_b = {"GET /users/{id}": record(503), "POST /users": record(500)}

    forward = merge_error_maps([worker_a, worker_b])
    backward = merge_error_maps([worker_b, worker_a])

    assert {key: (r.count, r.status_codes) for key, r in forward.items()} == {
        key: (r.count, r.status_codes) for key, r in backward.items()
    }
    assert sum(r.count for r in forward.values()) == 5


def test_merge_does_not_mutate_inputs() -> None:
    original = record(500)
    merge_error_maps([{"GET /a": original}, {"GET /a": record(500)}])

    assert original.count == 1

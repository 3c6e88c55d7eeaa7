from openapi_coverage.core.recording import parse_recording


def test_parses_absolute_url() -> None:
    recording = parse_recording("post", "https://api.example.com/v1/pets?limit=5")

    assert recording.method == "POST"
    assert recording.scheme == "https"
    assert recording.netloc == "api.example.com"
    assert recording.path == "/v1/pets"
    assert recording.query == "limit=5"


def test_resolves_relative_url_against_base_url() -> None:
    recording = parse_recording(None, "pets/1", base_url="http://localhost:8080/api/")

    assert recording.method == "GET"
    assert recording.netloc == "localhost:8080"
    assert recording.path == "/api/pets/1"


def test_relative_url_without_base_url() -> None:
    assert parse_recording("GET", "/health").path == "/health"
    assert parse_recording("GET", "http://localhost").path == "/"

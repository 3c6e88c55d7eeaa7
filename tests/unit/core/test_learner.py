import pytest

from openapi_coverage.core.compiler import compile_path
from openapi_coverage.core.learner import PatternLearner, path_signature, segment_signature
from openapi_coverage.core.patterns import LEARNED_PRIORITY, PatternOrigin
from openapi_coverage.core.spec_index import Parameter, ParameterSchema

UUID_A = "123e4567-e89b-12d3-a456-426614174000"
UUID_B = "9b2f8f4e-1c3d-4e5f-8a9b-0c1d2e3f4a5b"


@pytest.mark.parametrize(
    ("segment", "expected"),
    [
        ("42", "{number}"),
        ("507f1f77bcf86cd799439011", "{objectId}"),
        (UUID_A, "{uuid}"),
        ("deadbeefcafe1234", "{hash}"),
        ("v2", "v2"),
        ("Users", "users"),
        ("some-slug", "{token}"),
        ("profile", "profile"),
    ],
)
def test_segment_signature(segment: str, expected: str) -> None:
    assert segment_signature(segment) == expected


def test_path_signature() -> None:
    assert path_signature("/api/v1/users/42") == "api/v1/users/{number}"


def test_learns_numeric_group() -> None:
    learned = PatternLearner().learn(["/users/1", "/users/2"])

    assert len(learned) == 1
    pattern = learned[0]
    assert pattern.template == "/users/{user_id}"
    assert pattern.priority == LEARNED_PRIORITY
    assert pattern.origin is PatternOrigin.LEARNED
    assert pattern.matches("/users/3")
    assert pattern.matches("/users/3/")
    assert not pattern.matches("/users/abc")


def test_learns_several_variable_segments() -> None:
    learned = PatternLearner().learn(["/users/1/posts/10", "/users/2/posts/20"])

    assert [pattern.template for pattern in learned] == ["/users/{user_id}/posts/{post_id}"]


def test_names_parameter_after_shape_without_preceding_literal() -> None:
    learned = PatternLearner().learn(["/1/details", "/2/details"])

    assert [pattern.template for pattern in learned] == ["/{id}/details"]


def test_uuid_group_only_accepts_uuids() -> None:
    learned = PatternLearner().learn([f"/categories/{UUID_A}", f"/categories/{UUID_B}"])

    assert [pattern.template for pattern in learned] == ["/categories/{category_id}"]
    assert not learned[0].matches("/categories/5")


def test_needs_at_least_two_distinct_paths() -> None:
    learner = PatternLearner()

    assert learner.learn(["/users/1"]) == []
    assert learner.learn(["/users/1", "/users/1"]) == []
    assert learner.learn(["/users/1", "/orders/2"]) == []


def test_skips_groups_covered_by_known_patterns() -> None:
    known = [compile_path("/users/{id}", [Parameter("id", schema=ParameterSchema(type="integer"))])]

    assert PatternLearner().learn(["/users/1", "/users/2"], known) == []

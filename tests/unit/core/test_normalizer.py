import re

import pytest

from openapi_coverage.core.compiler import PatternCompiler
from openapi_coverage.core.exceptions import NormalizationError
from openapi_coverage.core.normalizer import PathNormalizer
from openapi_coverage.core.patterns import PathPattern, PatternChain
from openapi_coverage.core.spec_index import ApiDocument, Operation, PathItem, SpecIndex


def make_spec(*urls: str) -> SpecIndex:
    return SpecIndex(ApiDocument(paths=tuple(PathItem(url, (Operation("GET"),)) for url in urls)))


def test_exact_path_is_returned_unchanged(users_spec: SpecIndex) -> None:
    normalizer = PathNormalizer(users_spec)

    assert normalizer.normalize("/users") == "/users"


def test_structural_match_resolves_concrete_path(users_spec: SpecIndex) -> None:
    normalizer = PathNormalizer(users_spec)

    assert normalizer.normalize("/users/42") == "/users/{id}"
    assert normalizer.normalize("users/42") == "/users/{id}"


def test_structural_match_prefers_most_literal_segments() -> None:
    spec = make_spec("/users/{id}/{section}", "/users/{id}/profile")
    normalizer = PathNormalizer(spec)

    assert normalizer.normalize("/users/1/profile") == "/users/{id}/profile"
    assert normalizer.normalize("/users/1/settings") == "/users/{id}/{section}"


def test_structural_ties_keep_document_order() -> None:
    spec = make_spec("/{kind}/latest", "/items/{id}")
    normalizer = PathNormalizer(spec)

    assert normalizer.normalize("/items/latest") == "/{kind}/latest"


def test_falls_back_to_pattern_chain() -> None:
    spec = make_spec("/users")
    chain = PatternChain([PathPattern.custom(r"^/legacy/user/(\d+)$", r"/users")])
    normalizer = PathNormalizer(spec, chain)

    assert normalizer.normalize("/legacy/user/7") == "/users"


def test_custom_pattern_may_reference_groups() -> None:
    chain = PatternChain([PathPattern.custom(r"^/v(\d+)/items/\d+$", r"/v\1/items/{id}")])
    normalizer = PathNormalizer(SpecIndex.empty(), chain)

    assert normalizer.normalize("/v2/items/99") == "/v2/items/{id}"


def test_unmatched_path_is_returned_as_is(users_spec: SpecIndex) -> None:
    normalizer = PathNormalizer(users_spec, PatternChain(PatternCompiler(users_spec).compile()))

    assert normalizer.normalize("/orders/1") == "/orders/1"
    assert normalizer.resolve("/orders/1") is None
    assert normalizer.normalize("") == "/"


def test_failing_substitution_falls_back_to_input() -> None:
    chain = PatternChain([PathPattern.custom(r"^/items/\d+$", r"/items/\2")])
    normalizer = PathNormalizer(SpecIndex.empty(), chain)

    with pytest.raises(NormalizationError):
        normalizer.resolve("/items/1")
    assert normalizer.normalize("/items/1") == "/items/1"


def test_pattern_only_rewrites_matching_paths() -> None:
    chain = PatternChain(
        [
            PathPattern.custom(re.compile(r"^/accounts/\d+$"), "/accounts/{accountId}"),
        ]
    )
    normalizer = PathNormalizer(SpecIndex.empty(), chain)

    assert normalizer.normalize("/accounts/12") == "/accounts/{accountId}"
    assert normalizer.normalize("/accounts/me") == "/accounts/me"


@pytest.mark.parametrize("path", ["/users/42", "/users", "/orders/7"])
def test_normalize_is_idempotent(users_spec: SpecIndex, path: str) -> None:
    normalizer = PathNormalizer(users_spec, PatternChain(PatternCompiler(users_spec).compile()))

    once = normalizer.normalize(path)

    assert normalizer.normalize(once) == once

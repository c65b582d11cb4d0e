"""Tests for compiling URL parameters into a search request."""

import pytest

from storefront_catalog.core.search.compiler import build_search_input, get_current_page
from storefront_catalog.core.search.params import search_input_to_params
from storefront_catalog.models.search import SortOrder


@pytest.mark.parametrize("page", [None, "", "abc", "0", "-3", "2.5", ["x", "4"]])
def test_unusable_page_means_first_page(page: object) -> None:
    params = {} if page is None else {"page": page}
    search_input = build_search_input(params)
    assert search_input.skip == 0
    assert search_input.take == 12


@pytest.mark.parametrize(("page", "skip"), [("1", 0), ("2", 12), ("3", 24), ("10", 108)])
def test_valid_page_sets_skip(page: str, skip: int) -> None:
    search_input = build_search_input({"page": page})
    assert search_input.skip == skip
    assert search_input.take == 12


def test_repeated_page_uses_first_value() -> None:
    assert get_current_page({"page": ["3", "5"]}) == 3


@pytest.mark.parametrize("sort", [None, "", "relevance", "PRICE-ASC"])
def test_unknown_or_missing_sort_defaults_to_name_ascending(sort: str | None) -> None:
    params = {} if sort is None else {"sort": sort}
    assert build_search_input(params).sort == SortOrder("name", "ASC")


@pytest.mark.parametrize(
    ("sort", "expected"),
    [
        ("name-asc", {"name": "ASC"}),
        ("name-desc", {"name": "DESC"}),
        ("price-asc", {"price": "ASC"}),
        ("price-desc", {"price": "DESC"}),
    ],
)
def test_sort_keys_map_to_exactly_one_field(sort: str, expected: dict[str, str]) -> None:
    assert build_search_input({"sort": sort}).to_variables()["sort"] == expected


def test_facets_become_ordered_and_filters() -> None:
    variables = build_search_input({"facets": ["A", "B"]}).to_variables()
    assert variables["facetValueFilters"] == [{"and": "A"}, {"and": "B"}]


def test_single_facet_is_normalized_to_a_list() -> None:
    variables = build_search_input({"facets": "F1"}).to_variables()
    assert variables["facetValueFilters"] == [{"and": "F1"}]


def test_no_facets_omits_the_field() -> None:
    variables = build_search_input({}).to_variables()
    assert "facetValueFilters" not in variables


def test_first_collection_value_is_the_scope() -> None:
    search_input = build_search_input({"collection": ["x", "y"]})
    assert search_input.collection_slug == "x"


def test_collection_override_wins_over_parameter() -> None:
    search_input = build_search_input({"collection": ["x", "y"]}, "shoes")
    assert search_input.collection_slug == "shoes"


def test_empty_override_falls_back_to_parameter() -> None:
    assert build_search_input({"collection": "x"}, "").collection_slug == "x"


def test_empty_term_and_scope_are_omitted() -> None:
    variables = build_search_input({"q": "", "collection": []}).to_variables()
    assert "term" not in variables
    assert "collectionSlug" not in variables
    assert variables["groupByProduct"] is True


def test_full_parameter_bag_compiles_to_expected_variables() -> None:
    params = {"page": "3", "sort": "price-asc", "q": "boots", "facets": "F1"}

    variables = build_search_input(params).to_variables()

    assert variables == {
        "term": "boots",
        "take": 12,
        "skip": 24,
        "groupByProduct": True,
        "sort": {"price": "ASC"},
        "facetValueFilters": [{"and": "F1"}],
    }


def test_compiling_is_deterministic() -> None:
    params = {"page": "2", "collection": ["a", "b"], "facets": ["1", "2"], "sort": "bogus"}
    assert build_search_input(params) == build_search_input(params)


def test_rederived_params_recompile_to_the_same_input() -> None:
    original = build_search_input(
        {"page": "4", "sort": "name-desc", "q": "red", "collection": ["x", "y"], "facets": ["7"]}
    )

    recompiled = build_search_input(search_input_to_params(original))

    assert recompiled == original

"""Compile URL query parameters into a canonical product search request."""

from storefront_catalog.config import DEFAULT_SORT_KEY, PAGE_SIZE
from storefront_catalog.core.search.params import ParamBag, get_all, get_first
from storefront_catalog.models.search import SearchInput, SortOrder

SORT_ORDERS: dict[str, SortOrder] = {
    "name-asc": SortOrder("name", "ASC"),
    "name-desc": SortOrder("name", "DESC"),
    "price-asc": SortOrder("price", "ASC"),
    "price-desc": SortOrder("price", "DESC"),
}


def get_current_page(params: ParamBag) -> int:
    """Return the 1-based page number; anything unusable means page 1."""
    raw = get_first(params, "page")
    if raw is None:
        return 1
    try:
        page = int(raw.strip())
    except ValueError:
        return 1
    return page if page >= 1 else 1


def get_sort_order(params: ParamBag) -> SortOrder:
    key = get_first(params, "sort") or DEFAULT_SORT_KEY
    return SORT_ORDERS.get(key, SORT_ORDERS[DEFAULT_SORT_KEY])


def build_search_input(params: ParamBag, collection_slug: str | None = None) -> SearchInput:
    """Build the ``SearchInput`` for a page of search or collection results.

    Never fails: bad pages and unknown sort keys fall back to their defaults.

    Args:
        params: Raw URL query parameters. Values may be single strings or lists.
        collection_slug: Scope that overrides any ``collection`` parameter,
            e.g. the slug of the collection page being rendered.

    Returns:
        The canonical search request. Only the first ``collection`` value is
        used since the backend accepts a single collection scope.
    """
    page = get_current_page(params)
    return SearchInput(
        term=get_first(params, "q"),
        collection_slug=collection_slug or get_first(params, "collection"),
        take=PAGE_SIZE,
        skip=(page - 1) * PAGE_SIZE,
        group_by_product=True,
        sort=get_sort_order(params),
        facet_value_ids=tuple(get_all(params, "facets")),
    )

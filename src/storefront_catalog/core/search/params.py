"""URL query parameter bags: parsing, normalizing and re-deriving."""

from collections.abc import Mapping, Sequence
from urllib.parse import parse_qs, urlencode

from storefront_catalog.models.search import SearchInput

ParamValue = str | Sequence[str] | None
ParamBag = Mapping[str, ParamValue]

SORT_KEY_BY_ORDER: dict[tuple[str, str], str] = {
    ("name", "ASC"): "name-asc",
    ("name", "DESC"): "name-desc",
    ("price", "ASC"): "price-asc",
    ("price", "DESC"): "price-desc",
}


def get_all(params: ParamBag, key: str) -> list[str]:
    """Return every non-empty value for ``key``, whether given once or repeated."""
    raw = params.get(key)
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw] if raw else []
    if not isinstance(raw, Sequence):
        # Callers outside a URL (CLI, tools) may pass ints.
        return [str(raw)]
    return [str(v) for v in raw if v]


def get_first(params: ParamBag, key: str) -> str | None:
    values = get_all(params, key)
    return values[0] if values else None


def parse_query_string(query: str) -> dict[str, str | list[str]]:
    """Parse ``a=1&b=2&b=3`` into ``{"a": "1", "b": ["2", "3"]}``."""
    parsed = parse_qs(query.lstrip("?"))
    return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}


def to_query_string(params: ParamBag) -> str:
    """Encode a parameter bag, repeating keys that hold several values."""
    pairs: list[tuple[str, str]] = []
    for key in params:
        pairs.extend((key, v) for v in get_all(params, key))
    return urlencode(pairs)


def search_input_to_params(search_input: SearchInput) -> dict[str, str | list[str]]:
    """Re-derive a parameter bag that compiles back to ``search_input``."""
    params: dict[str, str | list[str]] = {
        "page": str(search_input.page),
        "sort": SORT_KEY_BY_ORDER[(search_input.sort.field, search_input.sort.direction)],
    }
    if search_input.term:
        params["q"] = search_input.term
    if search_input.collection_slug:
        params["collection"] = search_input.collection_slug
    if search_input.facet_value_ids:
        params["facets"] = list(search_input.facet_value_ids)
    return params


def toggle_collection(params: ParamBag, collection_slug: str) -> dict[str, str | list[str]]:
    """Add or remove a slug from the ``collection`` multi-select filter.

    Returns a new bag. Changing filters always resets to the first page.
    """
    updated: dict[str, str | list[str]] = {}
    for key in params:
        values = get_all(params, key)
        if values:
            updated[key] = values[0] if len(values) == 1 else values

    current = get_all(params, "collection")
    if collection_slug in current:
        remaining = [slug for slug in current if slug != collection_slug]
    else:
        remaining = [*current, collection_slug]

    if remaining:
        updated["collection"] = remaining
    else:
        updated.pop("collection", None)
    updated.pop("page", None)
    return updated

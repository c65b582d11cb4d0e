"""Run compiled product searches against the shop API."""

import hashlib
import json

from storefront_catalog.core.cache.tagged_cache import TaggedCache
from storefront_catalog.core.tree.resolver import COLLECTION_CACHE_LIFE, collection_products_tag
from storefront_catalog.models.search import SearchInput, SearchResponse
from storefront_catalog.protocols import CatalogApiProtocol
from storefront_catalog.queries import SEARCH_PRODUCTS

SEARCH_TAG = "search"


def search_cache_key(search_input: SearchInput) -> str:
    """Derive a cache key from the request alone."""
    params_str = json.dumps(search_input.to_variables(), sort_keys=True, separators=(",", ":"))
    if len(params_str) > 64:
        params_str = hashlib.sha1(params_str.encode("utf-8")).hexdigest()
    return f"search:{params_str}"


def search_products(
    api: CatalogApiProtocol,
    search_input: SearchInput,
    *,
    cache: TaggedCache | None = None,
) -> SearchResponse:
    """Execute one page of product search.

    Args:
        api: Shop API client.
        search_input: Compiled request from ``build_search_input``.
        cache: Optional response cache. Collection-scoped searches are
            tagged ``collection-products-{slug}`` so a catalog change to that
            collection evicts them.

    Returns:
        The hits for the page plus facet and collection counts.
    """

    def fetch() -> SearchResponse:
        data = api.query(SEARCH_PRODUCTS, {"input": search_input.to_variables()})
        return SearchResponse.from_api(data.get("search") or {})

    if cache is None:
        return fetch()

    tags = [SEARCH_TAG]
    if search_input.collection_slug:
        tags.append(collection_products_tag(search_input.collection_slug))
    return cache.get_or_fetch(
        search_cache_key(search_input),
        fetch,
        life=COLLECTION_CACHE_LIFE,
        tags=tags,
    )

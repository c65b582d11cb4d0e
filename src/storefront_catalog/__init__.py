"""Collection navigation and faceted product search for a Vendure storefront."""

from storefront_catalog.api import CatalogApi
from storefront_catalog.core.cache.tagged_cache import TaggedCache
from storefront_catalog.core.search.compiler import build_search_input
from storefront_catalog.core.tree.navigator import CollectionNavigator, NavigatorState
from storefront_catalog.core.tree.resolver import CollectionResolver
from storefront_catalog.protocols import CatalogApiProtocol, CollectionSourceProtocol

__all__ = [
    "CatalogApi",
    "CatalogApiProtocol",
    "CollectionNavigator",
    "CollectionResolver",
    "CollectionSourceProtocol",
    "NavigatorState",
    "TaggedCache",
    "build_search_input",
]

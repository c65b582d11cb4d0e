"""Resolve collections by identifier or slug, through the response cache."""

from typing import Any

from loguru import logger

from storefront_catalog.core.cache.tagged_cache import TaggedCache
from storefront_catalog.errors import CatalogApiError
from storefront_catalog.models.collection import Collection, CollectionWithChildren
from storefront_catalog.protocols import CatalogApiProtocol
from storefront_catalog.queries import (
    GET_COLLECTION_PRODUCTS,
    GET_COLLECTION_WITH_CHILDREN,
    GET_TOP_COLLECTIONS,
)

COLLECTION_CACHE_LIFE = "hours"
TOP_COLLECTIONS_TAG = "collections"


def collection_tag(collection_id: str) -> str:
    return f"collection-{collection_id}"


def collection_slug_tag(slug: str) -> str:
    return f"collection-slug-{slug}"


def collection_meta_tag(slug: str) -> str:
    return f"collection-meta-{slug}"


def collection_products_tag(slug: str) -> str:
    return f"collection-products-{slug}"


class CollectionResolver:
    """Look up collections with their children and breadcrumbs.

    Identifiers are tried first. A slug lookup only happens after the
    identifier lookup found nothing; transport errors are never retried as
    a slug and propagate as ``CatalogApiError``.
    """

    def __init__(self, api: CatalogApiProtocol, cache: TaggedCache | None = None) -> None:
        self._api = api
        self._cache = cache if cache is not None else TaggedCache()

    @property
    def cache(self) -> TaggedCache:
        return self._cache

    def resolve(
        self, id_or_slug: str, *, slug_hint: str | None = None
    ) -> CollectionWithChildren | None:
        """Resolve a collection, or return None when nothing matches.

        Args:
            id_or_slug: Identifier to try first; also the slug fallback unless
                ``slug_hint`` is given.
            slug_hint: Slug already known for this collection from earlier
                navigation. Preferred over re-using ``id_or_slug`` as a slug.
        """
        collection = self.by_id(id_or_slug)
        if collection is not None:
            return collection

        slug = slug_hint or id_or_slug
        logger.debug("Not found by ID {!r}, trying as slug {!r}", id_or_slug, slug)
        collection = self.by_slug(slug)
        if collection is None:
            logger.info("Collection not found for ID/Slug: {}", id_or_slug)
        return collection

    def by_id(self, collection_id: str) -> CollectionWithChildren | None:
        return self._cache.get_or_fetch(
            f"collection:id:{collection_id}",
            lambda: self._fetch_collection({"id": collection_id}),
            life=COLLECTION_CACHE_LIFE,
            tags=[collection_tag(collection_id)],
        )

    def by_slug(self, slug: str) -> CollectionWithChildren | None:
        key = f"collection:slug:{slug}"
        collection = self._cache.get_or_fetch(
            key,
            lambda: self._fetch_collection({"slug": slug}),
            life=COLLECTION_CACHE_LIFE,
            tags=[collection_slug_tag(slug)],
        )
        if collection is not None:
            # Invalidating the node by id must also evict its slug entry.
            self._cache.add_tags(key, [collection_tag(collection.id)])
        return collection

    def top_collections(self) -> tuple[Collection, ...]:
        """Return the top-level collections shown before any drill-down."""
        return self._cache.get_or_fetch(
            "collections:top",
            self._fetch_top_collections,
            life=COLLECTION_CACHE_LIFE,
            tags=[TOP_COLLECTIONS_TAG],
        )

    def collection_metadata(self, slug: str) -> CollectionWithChildren | None:
        """Fetch name, description, breadcrumbs and children for a slug.

        Uses the lightweight product query (``take=0``) so collection pages
        can render their header without loading a page of products.
        """
        return self._cache.get_or_fetch(
            f"collection:meta:{slug}",
            lambda: self._fetch_metadata(slug),
            life=COLLECTION_CACHE_LIFE,
            tags=[collection_meta_tag(slug)],
        )

    def _fetch_collection(self, variables: dict[str, Any]) -> CollectionWithChildren | None:
        data = self._api.query(GET_COLLECTION_WITH_CHILDREN, variables)
        return _parse_collection(GET_COLLECTION_WITH_CHILDREN.name, data.get("collection"))

    def _fetch_top_collections(self) -> tuple[Collection, ...]:
        data = self._api.query(GET_TOP_COLLECTIONS)
        try:
            items = (data.get("collections") or {}).get("items") or []
            return tuple(Collection.from_api(item) for item in items)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            msg = f"Malformed {GET_TOP_COLLECTIONS.name} response: {e!r}"
            raise CatalogApiError(msg) from e

    def _fetch_metadata(self, slug: str) -> CollectionWithChildren | None:
        data = self._api.query(
            GET_COLLECTION_PRODUCTS,
            {"slug": slug, "input": {"take": 0, "collectionSlug": slug, "groupByProduct": True}},
        )
        return _parse_collection(GET_COLLECTION_PRODUCTS.name, data.get("collection"))


def _parse_collection(query_name: str, raw: Any) -> CollectionWithChildren | None:
    if not raw:
        return None
    try:
        return CollectionWithChildren.from_api(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        msg = f"Malformed {query_name} response: {e!r}"
        raise CatalogApiError(msg) from e

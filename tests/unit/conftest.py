"""Shared test fixtures over the catalog tree in ``fakes.TREE``."""

import pytest

from storefront_catalog.core.cache.tagged_cache import TaggedCache
from storefront_catalog.models.collection import Collection, CollectionWithChildren
from tests.unit.fakes import TOP_LEVEL, TREE, FakeCatalogApi, FakeCollectionSource


@pytest.fixture
def top_collections() -> tuple[Collection, ...]:
    return tuple(Collection.from_api(c) for c in TOP_LEVEL)


@pytest.fixture
def tree_source() -> FakeCollectionSource:
    """A collection source serving the shared tree by identifier."""
    return FakeCollectionSource(
        {key: CollectionWithChildren.from_api(data) for key, data in TREE.items()}
    )


@pytest.fixture
def catalog_api() -> FakeCatalogApi:
    """A shop API fake that knows the shared tree by id and by slug."""
    api = FakeCatalogApi()
    api.add_response("GetCollectionWithChildren", {"collection": None})
    for data in TREE.values():
        api.add_response(
            "GetCollectionWithChildren", {"collection": data}, variables={"id": data["id"]}
        )
        api.add_response(
            "GetCollectionWithChildren", {"collection": data}, variables={"slug": data["slug"]}
        )
    api.add_response("GetTopCollections", {"collections": {"items": TOP_LEVEL}})
    return api


@pytest.fixture
def cache() -> TaggedCache:
    return TaggedCache()

"""Protocols for dependency injection in the storefront catalog."""

from typing import Any, Protocol, runtime_checkable

from storefront_catalog.models.collection import CollectionWithChildren
from storefront_catalog.queries import GraphQLQuery


@runtime_checkable
class CatalogApiProtocol(Protocol):
    """Protocol for shop API clients."""

    def query(self, query: GraphQLQuery, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a GraphQL operation and return its data payload."""
        ...


@runtime_checkable
class CollectionSourceProtocol(Protocol):
    """Protocol for whatever the navigator loads collections from."""

    async def fetch_collection(
        self, id_or_slug: str, *, slug_hint: str | None = None
    ) -> CollectionWithChildren:
        """Return the collection, raising ``CollectionNotFoundError`` on a miss."""
        ...

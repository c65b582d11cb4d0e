"""Exceptions raised by catalog clients."""


class CatalogError(RuntimeError):
    """Base class for catalog lookup failures."""


class CatalogApiError(CatalogError):
    """Transport, HTTP or GraphQL failure talking to a catalog endpoint."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CollectionNotFoundError(CatalogError):
    """Neither the identifier nor the slug matched a collection."""

    def __init__(self, id_or_slug: str) -> None:
        super().__init__(f"Collection not found for ID/Slug: {id_or_slug}")
        self.id_or_slug = id_or_slug

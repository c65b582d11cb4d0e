"""Search request and result models."""

from dataclasses import dataclass
from typing import Any, Literal

from storefront_catalog.config import PAGE_SIZE

SortField = Literal["name", "price"]
SortDirection = Literal["ASC", "DESC"]


@dataclass(frozen=True)
class SortOrder:
    """Exactly one sort field with a direction."""

    field: SortField
    direction: SortDirection

    def to_variables(self) -> dict[str, str]:
        return {self.field: self.direction}


@dataclass(frozen=True)
class SearchInput:
    """Canonical product search request sent to the shop API."""

    sort: SortOrder
    skip: int = 0
    take: int = PAGE_SIZE
    term: str | None = None
    collection_slug: str | None = None
    facet_value_ids: tuple[str, ...] = ()
    group_by_product: bool = True

    @property
    def page(self) -> int:
        return self.skip // self.take + 1

    def to_variables(self) -> dict[str, Any]:
        """Return the ``SearchInput`` GraphQL variable, omitting unset fields."""
        variables: dict[str, Any] = {}
        if self.term:
            variables["term"] = self.term
        if self.collection_slug:
            variables["collectionSlug"] = self.collection_slug
        variables["take"] = self.take
        variables["skip"] = self.skip
        variables["groupByProduct"] = self.group_by_product
        variables["sort"] = self.sort.to_variables()
        if self.facet_value_ids:
            variables["facetValueFilters"] = [{"and": v} for v in self.facet_value_ids]
        return variables


@dataclass(frozen=True)
class ProductHit:
    """One product row in search results (variants grouped)."""

    product_id: str
    product_name: str
    slug: str
    description: str
    preview: str | None
    price_min: int
    price_max: int
    currency_code: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ProductHit":
        price = data.get("priceWithTax") or {}
        if "value" in price:
            price_min = price_max = price["value"]
        else:
            price_min = price.get("min", 0)
            price_max = price.get("max", price_min)
        asset = data.get("productAsset") or {}
        return cls(
            product_id=str(data["productId"]),
            product_name=data["productName"],
            slug=data["slug"],
            description=data.get("description") or "",
            preview=asset.get("preview"),
            price_min=price_min,
            price_max=price_max,
            currency_code=data.get("currencyCode", ""),
        )


@dataclass(frozen=True)
class FacetValueCount:
    """A facet value available in the current result set."""

    id: str
    name: str
    facet_id: str
    facet_name: str
    count: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "FacetValueCount":
        value = data["facetValue"]
        facet = value.get("facet") or {}
        return cls(
            id=str(value["id"]),
            name=value["name"],
            facet_id=str(facet.get("id", "")),
            facet_name=facet.get("name", ""),
            count=data.get("count", 0),
        )


@dataclass(frozen=True)
class CollectionCount:
    """A collection containing some of the current results."""

    id: str
    name: str
    slug: str
    count: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CollectionCount":
        collection = data["collection"]
        return cls(
            id=str(collection["id"]),
            name=collection["name"],
            slug=collection["slug"],
            count=data.get("count", 0),
        )


@dataclass(frozen=True)
class SearchResponse:
    """Products, total and filter options for one search page."""

    items: tuple[ProductHit, ...]
    total_items: int
    facet_values: tuple[FacetValueCount, ...] = ()
    collections: tuple[CollectionCount, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "SearchResponse":
        return cls(
            items=tuple(ProductHit.from_api(i) for i in data.get("items") or []),
            total_items=data.get("totalItems", 0),
            facet_values=tuple(FacetValueCount.from_api(f) for f in data.get("facetValues") or []),
            collections=tuple(CollectionCount.from_api(c) for c in data.get("collections") or []),
        )

    def facets_by_name(self) -> dict[str, list[FacetValueCount]]:
        """Group facet values under their facet name, preserving order."""
        grouped: dict[str, list[FacetValueCount]] = {}
        for value in self.facet_values:
            grouped.setdefault(value.facet_name, []).append(value)
        return grouped

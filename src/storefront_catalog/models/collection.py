"""Domain models for the collection tree."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FeaturedAsset:
    """Image shown for a collection."""

    id: str
    preview: str

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> "FeaturedAsset | None":
        if not data:
            return None
        return cls(id=str(data["id"]), preview=data.get("preview", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "preview": self.preview}


@dataclass(frozen=True)
class Breadcrumb:
    """A single ancestor in a collection's breadcrumb trail."""

    id: str
    name: str
    slug: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Breadcrumb":
        return cls(id=str(data["id"]), name=data["name"], slug=data["slug"])

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "slug": self.slug}


@dataclass(frozen=True)
class Collection:
    """A category node in the catalog tree.

    ``id`` is the stable lookup and cache key. ``slug`` is a readable alias
    that can change when a collection is renamed.
    """

    id: str
    slug: str
    name: str
    description: str | None = None
    featured_asset: FeaturedAsset | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Collection":
        return cls(
            id=str(data["id"]),
            slug=data["slug"],
            name=data["name"],
            description=data.get("description") or None,
            featured_asset=FeaturedAsset.from_api(data.get("featuredAsset")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "featuredAsset": self.featured_asset.to_dict() if self.featured_asset else None,
        }


@dataclass(frozen=True)
class CollectionWithChildren(Collection):
    """A collection with its direct children and full ancestor path.

    ``breadcrumbs`` runs from the synthetic root to this collection inclusive.
    """

    children: tuple[Collection, ...] = ()
    breadcrumbs: tuple[Breadcrumb, ...] = field(default=())

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CollectionWithChildren":
        base = Collection.from_api(data)
        return cls(
            id=base.id,
            slug=base.slug,
            name=base.name,
            description=base.description,
            featured_asset=base.featured_asset,
            children=tuple(Collection.from_api(c) for c in data.get("children") or []),
            breadcrumbs=tuple(Breadcrumb.from_api(b) for b in data.get("breadcrumbs") or []),
        )

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "children": [c.to_dict() for c in self.children],
            "breadcrumbs": [b.to_dict() for b in self.breadcrumbs],
        }

"""Tree navigation helpers: visible breadcrumbs and parents."""

from collections.abc import Iterable

from storefront_catalog.config import ROOT_COLLECTION_SLUG
from storefront_catalog.models.collection import Breadcrumb


def visible_breadcrumbs(breadcrumbs: Iterable[Breadcrumb]) -> tuple[Breadcrumb, ...]:
    """Drop the synthetic root so the trail starts at a real top-level collection."""
    return tuple(b for b in breadcrumbs if b.slug != ROOT_COLLECTION_SLUG)


def parent_breadcrumb(breadcrumbs: tuple[Breadcrumb, ...]) -> Breadcrumb | None:
    """Return the immediate parent of the last breadcrumb, if it has one.

    Expects an already filtered trail ending at the current collection.
    """
    if len(breadcrumbs) < 2:
        return None
    return breadcrumbs[-2]


def breadcrumbs_str(breadcrumbs: Iterable[Breadcrumb]) -> str:
    return " > ".join(b.name for b in visible_breadcrumbs(breadcrumbs))

"""Collection tree navigator: drill-down state machine over lazily loaded nodes."""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from loguru import logger

from storefront_catalog.core.search.params import ParamBag, get_all
from storefront_catalog.core.tree.navigation import parent_breadcrumb, visible_breadcrumbs
from storefront_catalog.errors import CatalogError, CollectionNotFoundError
from storefront_catalog.models.collection import Breadcrumb, Collection, CollectionWithChildren
from storefront_catalog.protocols import CollectionSourceProtocol

NOT_FOUND_MESSAGE = "Collection not found"
LOAD_FAILED_MESSAGE = "Failed to load collection"
TIMEOUT_MESSAGE = "Loading the collection timed out"

ScopeListener = Callable[[str], None]
StateListener = Callable[["NavigatorState"], None]


@dataclass(frozen=True)
class NavigatorState:
    """One immutable snapshot of the navigator.

    ``current_collection is None`` means the navigator is at the top level,
    showing the initial collections with no breadcrumbs.
    """

    collections: tuple[Collection, ...]
    current_collection: CollectionWithChildren | None = None
    breadcrumbs: tuple[Breadcrumb, ...] = ()
    loading: bool = False
    error: str | None = None

    @property
    def is_top(self) -> bool:
        return self.current_collection is None

    @property
    def title(self) -> str:
        return self.current_collection.name if self.current_collection else "Collections"

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "collections": [c.to_dict() for c in self.collections],
            "current_collection": (
                self.current_collection.to_dict() if self.current_collection else None
            ),
            "breadcrumbs": [b.to_dict() for b in self.breadcrumbs],
            "loading": self.loading,
            "error": self.error,
        }


class CollectionNavigator:
    """Browse the collection tree one level at a time.

    Every transition replaces the whole state snapshot before any listener
    runs. Each load takes a new request token; a response arriving after a
    newer load (or a reset to the top) has started is discarded.

    Selecting any collection, leaf or not, scopes product search to it via
    ``on_scope_select``. Only collections with children change the displayed
    level.
    """

    def __init__(
        self,
        source: CollectionSourceProtocol,
        initial_collections: Sequence[Collection],
        *,
        on_scope_select: ScopeListener | None = None,
        on_change: StateListener | None = None,
        timeout: float | None = None,
    ) -> None:
        self._source = source
        self._initial = tuple(initial_collections)
        self._on_scope_select = on_scope_select
        self._on_change = on_change
        self._timeout = timeout
        self._state = NavigatorState(collections=self._initial)
        self._request_seq = 0
        self._failed_request: tuple[str, str | None] | None = None

    @property
    def state(self) -> NavigatorState:
        return self._state

    @property
    def initial_collections(self) -> tuple[Collection, ...]:
        return self._initial

    async def select_node(self, node: Collection | Breadcrumb) -> None:
        """Load ``node`` by identifier, with its slug as the fallback."""
        await self._load(node.id, slug_hint=node.slug)

    async def open_collection(self, id_or_slug: str) -> None:
        """Load a collection that is not on screen, e.g. from a bookmark."""
        await self._load(id_or_slug, slug_hint=None)

    async def go_back(self) -> None:
        """Go up one level: reload the parent, or return to the top level."""
        parent = parent_breadcrumb(self._state.breadcrumbs)
        if parent is None:
            self._reset_to_top()
            return
        await self.select_node(parent)

    def go_to_top(self) -> None:
        """Return to the top level and clear the collection scope."""
        self._reset_to_top()
        self._notify_scope("")

    async def retry(self) -> None:
        """Re-issue the load that failed, or reload what is on screen."""
        if self._failed_request is not None:
            id_or_slug, slug_hint = self._failed_request
            await self._load(id_or_slug, slug_hint=slug_hint)
        elif self._state.current_collection is not None:
            await self.select_node(self._state.current_collection)
        else:
            self._reset_to_top()

    def dismiss_error(self) -> None:
        if self._state.error is not None:
            self._set_state(replace(self._state, error=None))

    def sync_with_url(self, params: ParamBag) -> bool:
        """Reconcile with the URL after it changed outside the navigator.

        A URL without a ``collection`` filter while drilled down means the
        filter was cleared (e.g. browser back), so the navigator returns to
        the top level. The scope listener is not called: the URL already
        reflects the change.

        Returns:
            True if the navigator was reset.
        """
        if get_all(params, "collection") or self._state.is_top:
            return False
        logger.debug("Collection filter cleared in URL, resetting navigator to top level")
        self._reset_to_top()
        return True

    def replace_initial_collections(self, collections: Sequence[Collection]) -> None:
        """Swap in a fresh top-level set, showing it if currently at the top."""
        self._initial = tuple(collections)
        if self._state.is_top:
            self._set_state(replace(self._state, collections=self._initial))

    async def _load(self, id_or_slug: str, *, slug_hint: str | None) -> None:
        self._request_seq += 1
        token = self._request_seq
        self._set_state(replace(self._state, loading=True, error=None))

        try:
            collection = await self._fetch(id_or_slug, slug_hint=slug_hint)
        except CollectionNotFoundError:
            if self._is_stale(token, id_or_slug):
                return
            logger.info("Collection not found: {}", id_or_slug)
            self._fail(id_or_slug, slug_hint, NOT_FOUND_MESSAGE)
            return
        except TimeoutError:
            if self._is_stale(token, id_or_slug):
                return
            logger.warning("Timed out loading collection {} after {}s", id_or_slug, self._timeout)
            self._fail(id_or_slug, slug_hint, TIMEOUT_MESSAGE)
            return
        except CatalogError:
            if self._is_stale(token, id_or_slug):
                return
            logger.opt(exception=True).warning("Load collection children error: {}", id_or_slug)
            self._fail(id_or_slug, slug_hint, LOAD_FAILED_MESSAGE)
            return
        except Exception:
            # A source bug must still leave the navigator out of loading.
            if self._is_stale(token, id_or_slug):
                return
            logger.exception("Unexpected error loading collection {}", id_or_slug)
            self._fail(id_or_slug, slug_hint, LOAD_FAILED_MESSAGE)
            return

        if self._is_stale(token, id_or_slug):
            return

        self._failed_request = None
        if collection.is_leaf:
            self._set_state(replace(self._state, loading=False))
        else:
            self._set_state(
                NavigatorState(
                    collections=collection.children,
                    current_collection=collection,
                    breadcrumbs=visible_breadcrumbs(collection.breadcrumbs),
                )
            )
        self._notify_scope(collection.slug)

    async def _fetch(self, id_or_slug: str, *, slug_hint: str | None) -> CollectionWithChildren:
        request = self._source.fetch_collection(id_or_slug, slug_hint=slug_hint)
        if self._timeout is None:
            return await request
        return await asyncio.wait_for(request, self._timeout)

    def _is_stale(self, token: int, id_or_slug: str) -> bool:
        if token == self._request_seq:
            return False
        logger.debug("Discarding stale response for {} (request {})", id_or_slug, token)
        return True

    def _fail(self, id_or_slug: str, slug_hint: str | None, message: str) -> None:
        self._failed_request = (id_or_slug, slug_hint)
        self._set_state(replace(self._state, loading=False, error=message))

    def _reset_to_top(self) -> None:
        # Bumping the token drops any load still in flight.
        self._request_seq += 1
        self._failed_request = None
        self._set_state(NavigatorState(collections=self._initial))

    def _set_state(self, state: NavigatorState) -> None:
        self._state = state
        if self._on_change is not None:
            self._on_change(state)

    def _notify_scope(self, collection_slug: str) -> None:
        if self._on_scope_select is not None:
            self._on_scope_select(collection_slug)

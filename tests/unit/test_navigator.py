"""Tests for the collection navigator state machine."""

import asyncio

from storefront_catalog.core.cache.tagged_cache import TaggedCache
from storefront_catalog.core.tree.navigator import (
    LOAD_FAILED_MESSAGE,
    NOT_FOUND_MESSAGE,
    TIMEOUT_MESSAGE,
    CollectionNavigator,
    NavigatorState,
)
from storefront_catalog.core.tree.resolver import CollectionResolver
from storefront_catalog.core.tree.source import ResolverCollectionSource
from storefront_catalog.errors import CatalogApiError
from storefront_catalog.models.collection import Breadcrumb, Collection, CollectionWithChildren
from tests.unit.fakes import FakeCatalogApi, FakeCollectionSource, make_collection


def _navigator(
    source: FakeCollectionSource,
    top: tuple[Collection, ...],
    **kwargs: object,
) -> tuple[CollectionNavigator, list[str]]:
    scopes: list[str] = []
    navigator = CollectionNavigator(source, top, on_scope_select=scopes.append, **kwargs)  # type: ignore[arg-type]
    return navigator, scopes


def test_starts_at_top_level(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, _ = _navigator(tree_source, top_collections)
    state = navigator.state
    assert state.is_top
    assert state.collections == top_collections
    assert state.breadcrumbs == ()
    assert state.title == "Collections"


async def test_selecting_branch_drills_down(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, scopes = _navigator(tree_source, top_collections)

    await navigator.select_node(top_collections[0])

    state = navigator.state
    assert [c.id for c in state.collections] == ["1a", "1b"]
    assert state.current_collection is not None
    assert state.current_collection.id == "1"
    assert state.breadcrumbs == (Breadcrumb(id="1", name="Shoes", slug="shoes"),)
    assert not state.loading
    assert state.error is None
    assert scopes == ["shoes"]
    assert tree_source.calls == [("1", "shoes")]


async def test_selecting_leaf_keeps_level_and_scopes_search(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, scopes = _navigator(tree_source, top_collections)
    await navigator.select_node(top_collections[0])
    before = navigator.state

    boots = before.collections[1]
    await navigator.select_node(boots)

    after = navigator.state
    assert after.collections == before.collections
    assert after.current_collection == before.current_collection
    assert after.breadcrumbs == before.breadcrumbs
    assert not after.loading
    assert scopes == ["shoes", "boots"]


async def test_selecting_top_level_leaf_stays_at_top(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, scopes = _navigator(tree_source, top_collections)

    await navigator.select_node(top_collections[1])

    assert navigator.state.is_top
    assert navigator.state.collections == top_collections
    assert scopes == ["bags"]


async def test_breadcrumbs_exclude_sentinel_root(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, _ = _navigator(tree_source, top_collections)
    await navigator.select_node(top_collections[0])
    await navigator.select_node(navigator.state.collections[0])

    assert [b.slug for b in navigator.state.breadcrumbs] == ["shoes", "sneakers"]


async def test_not_found_preserves_state_and_sets_error(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, scopes = _navigator(tree_source, top_collections)
    await navigator.select_node(top_collections[0])
    before = navigator.state

    await navigator.select_node(Collection(id="gone", slug="gone", name="Gone"))

    after = navigator.state
    assert after.collections == before.collections
    assert after.breadcrumbs == before.breadcrumbs
    assert after.current_collection == before.current_collection
    assert after.error == NOT_FOUND_MESSAGE
    assert not after.loading
    assert scopes == ["shoes"]


async def test_transport_error_preserves_state_and_sets_error(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    tree_source.collections["1a"] = CatalogApiError("HTTP 500")
    navigator, _ = _navigator(tree_source, top_collections)
    await navigator.select_node(top_collections[0])
    before = navigator.state

    await navigator.select_node(before.collections[0])

    assert navigator.state.collections == before.collections
    assert navigator.state.breadcrumbs == before.breadcrumbs
    assert navigator.state.error == LOAD_FAILED_MESSAGE


async def test_loading_clears_previous_error(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    seen: list[NavigatorState] = []
    navigator = CollectionNavigator(tree_source, top_collections, on_change=seen.append)
    await navigator.open_collection("gone")
    assert navigator.state.error == NOT_FOUND_MESSAGE

    await navigator.select_node(top_collections[0])

    loading_states = [s for s in seen if s.loading]
    assert loading_states
    assert all(s.error is None for s in loading_states)
    assert navigator.state.error is None


async def test_go_back_with_one_breadcrumb_returns_to_top_without_fetching(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, _ = _navigator(tree_source, top_collections)
    await navigator.select_node(top_collections[0])
    calls_before = len(tree_source.calls)

    await navigator.go_back()

    assert navigator.state.is_top
    assert navigator.state.collections == top_collections
    assert len(tree_source.calls) == calls_before


async def test_go_back_reloads_parent_by_identifier(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, _ = _navigator(tree_source, top_collections)
    await navigator.select_node(top_collections[0])
    await navigator.select_node(navigator.state.collections[0])
    assert len(navigator.state.breadcrumbs) == 2

    await navigator.go_back()

    assert tree_source.calls[-1] == ("1", "shoes")
    assert navigator.state.current_collection is not None
    assert navigator.state.current_collection.id == "1"
    assert [c.id for c in navigator.state.collections] == ["1a", "1b"]


async def test_go_back_at_top_is_a_noop_reset(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, scopes = _navigator(tree_source, top_collections)
    await navigator.go_back()
    assert navigator.state.is_top
    assert tree_source.calls == []
    assert scopes == []


async def test_go_to_top_resets_and_clears_scope(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, scopes = _navigator(tree_source, top_collections)
    await navigator.select_node(top_collections[0])
    await navigator.open_collection("gone")

    navigator.go_to_top()

    state = navigator.state
    assert state == NavigatorState(collections=top_collections)
    assert scopes == ["shoes", ""]


async def test_url_without_collection_resets_drilled_navigator(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, scopes = _navigator(tree_source, top_collections)
    await navigator.select_node(top_collections[0])

    assert navigator.sync_with_url({"collection": "shoes", "q": "red"}) is False
    assert not navigator.state.is_top

    assert navigator.sync_with_url({"q": "red"}) is True
    assert navigator.state.is_top
    assert navigator.state.collections == top_collections
    assert scopes == ["shoes"]


def test_url_sync_at_top_does_nothing(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, _ = _navigator(tree_source, top_collections)
    assert navigator.sync_with_url({}) is False


async def test_stale_response_is_discarded(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, scopes = _navigator(tree_source, top_collections)
    tree_source.hold("1")

    slow = asyncio.create_task(navigator.select_node(top_collections[0]))
    await asyncio.sleep(0)
    await navigator.select_node(top_collections[1])
    tree_source.release("1")
    await slow

    assert navigator.state.is_top
    assert navigator.state.collections == top_collections
    assert scopes == ["bags"]


async def test_go_to_top_discards_in_flight_load(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, scopes = _navigator(tree_source, top_collections)
    tree_source.hold("1")

    pending = asyncio.create_task(navigator.select_node(top_collections[0]))
    await asyncio.sleep(0)
    assert navigator.state.loading
    navigator.go_to_top()
    tree_source.release("1")
    await pending

    assert navigator.state == NavigatorState(collections=top_collections)
    assert scopes == [""]


async def test_timeout_surfaces_as_error(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    tree_source.hold("1")
    navigator, _ = _navigator(tree_source, top_collections, timeout=0.01)

    await navigator.select_node(top_collections[0])

    assert navigator.state.error == TIMEOUT_MESSAGE
    assert not navigator.state.loading
    assert navigator.state.is_top


async def test_retry_reissues_failed_selection(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    tree_source.collections["1"] = CatalogApiError("connection reset")
    navigator, scopes = _navigator(tree_source, top_collections)
    await navigator.select_node(top_collections[0])
    assert navigator.state.error == LOAD_FAILED_MESSAGE

    tree_source.collections["1"] = make_collection(
        "1", "shoes", children=[{"id": "1a", "slug": "sneakers", "name": "Sneakers"}]
    )
    await navigator.retry()

    assert navigator.state.error is None
    assert navigator.state.current_collection is not None
    assert tree_source.calls == [("1", "shoes"), ("1", "shoes")]
    assert scopes == ["shoes"]


async def test_dismiss_error_clears_message(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, _ = _navigator(tree_source, top_collections)
    await navigator.open_collection("gone")
    assert navigator.state.error == NOT_FOUND_MESSAGE
    navigator.dismiss_error()
    assert navigator.state.error is None


def test_replace_initial_collections_shows_new_set_at_top(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    navigator, _ = _navigator(tree_source, top_collections)
    fresh = (top_collections[1],)
    navigator.replace_initial_collections(fresh)
    assert navigator.state.collections == fresh


async def test_end_to_end_drill_into_shoes(top_collections: tuple[Collection, ...]) -> None:
    shoes = CollectionWithChildren.from_api(
        {
            "id": "1",
            "slug": "shoes",
            "name": "Shoes",
            "children": [{"id": "1a", "slug": "sneakers", "name": "Sneakers"}],
            "breadcrumbs": [
                {"id": "root", "name": "__root_collection__", "slug": "__root_collection__"},
                {"id": "1", "name": "Shoes", "slug": "shoes"},
            ],
        }
    )
    source = FakeCollectionSource({"1": shoes})
    navigator, scopes = _navigator(source, top_collections)
    assert [c.id for c in navigator.state.collections] == ["1", "2"]

    await navigator.select_node(Collection(id="1", slug="shoes", name="Shoes"))

    assert [c.id for c in navigator.state.collections] == ["1a"]
    assert [b.id for b in navigator.state.breadcrumbs] == ["1"]
    assert scopes == ["shoes"]


async def test_malformed_collection_payload_becomes_load_error(
    top_collections: tuple[Collection, ...],
) -> None:
    api = FakeCatalogApi()
    api.add_response("GetCollectionWithChildren", {"collection": {"id": "1", "name": "Shoes"}})
    source = ResolverCollectionSource(CollectionResolver(api, TaggedCache()))
    navigator, scopes = _navigator(source, top_collections)  # type: ignore[arg-type]

    await navigator.select_node(Collection(id="1", slug="shoes", name="Shoes"))

    assert navigator.state.loading is False
    assert navigator.state.error == LOAD_FAILED_MESSAGE
    assert navigator.state.is_top
    assert scopes == []


async def test_unexpected_source_error_never_leaves_navigator_loading(
    tree_source: FakeCollectionSource, top_collections: tuple[Collection, ...]
) -> None:
    tree_source.collections["1"] = KeyError("slug")
    navigator, _ = _navigator(tree_source, top_collections)

    await navigator.select_node(top_collections[0])

    assert navigator.state.loading is False
    assert navigator.state.error == LOAD_FAILED_MESSAGE

    tree_source.collections["1"] = make_collection(
        "1", "shoes", children=[{"id": "1a", "slug": "sneakers", "name": "Sneakers"}]
    )
    await navigator.retry()
    assert navigator.state.error is None
    assert navigator.state.current_collection is not None

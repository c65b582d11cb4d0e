"""MCP server exposing catalog browsing and search, plus the storefront HTTP routes."""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from storefront_catalog.api import CatalogApi
from storefront_catalog.config import CatalogSettings
from storefront_catalog.core.cache.tagged_cache import TaggedCache
from storefront_catalog.core.search.compiler import build_search_input
from storefront_catalog.core.search.params import ParamBag, parse_query_string
from storefront_catalog.core.search.searcher import search_products
from storefront_catalog.core.tree.navigation import breadcrumbs_str, visible_breadcrumbs
from storefront_catalog.core.tree.resolver import CollectionResolver
from storefront_catalog.errors import CatalogError
from storefront_catalog.protocols import CatalogApiProtocol

# --- Core functions (testable without MCP context) ---


def collection_lookup(
    resolver: CollectionResolver,
    id_or_slug: str,
    *,
    slug_hint: str | None = None,
) -> tuple[int, dict[str, Any]]:
    """Resolve a collection for ``GET /api/collections/{idOrSlug}``.

    Returns:
        (status, body): 200 with the collection, 404 or 500 with ``{"error"}``.
    """
    logger.debug("Fetching collection with ID/Slug: {}", id_or_slug)
    try:
        collection = resolver.resolve(id_or_slug, slug_hint=slug_hint)
    except Exception as e:
        logger.exception("Error fetching collection {}", id_or_slug)
        return 500, {"error": str(e) or "Failed to fetch collection"}

    if collection is None:
        return 404, {"error": f"Collection not found for ID/Slug: {id_or_slug}"}
    return 200, collection.to_dict()


def revalidate_tags(cache: TaggedCache, tags: Iterable[str]) -> dict[str, Any]:
    """Evict every cache entry carrying one of ``tags``."""
    revalidated = sorted({t for t in tags if t})
    evicted = sum(cache.invalidate_tag(tag) for tag in revalidated)
    return {"revalidated": revalidated, "evicted": evicted}


def catalog_list_collections(resolver: CollectionResolver) -> dict[str, Any]:
    """List the top-level collections."""
    try:
        collections = resolver.top_collections()
    except CatalogError as e:
        return {"error": str(e), "collections": [], "count": 0}
    return {
        "collections": [c.to_dict() for c in collections],
        "count": len(collections),
    }


def catalog_get_collection(resolver: CollectionResolver, *, collection: str) -> dict[str, Any]:
    """Get one collection with its children and visible breadcrumbs."""
    try:
        found = resolver.resolve(collection)
    except CatalogError as e:
        return {"error": str(e)}
    if found is None:
        return {"error": f"Collection '{collection}' not found."}

    output = found.to_dict()
    output["breadcrumbs"] = [b.to_dict() for b in visible_breadcrumbs(found.breadcrumbs)]
    output["path"] = breadcrumbs_str(found.breadcrumbs)
    output["is_leaf"] = found.is_leaf
    return output


def catalog_build_search_input(
    params: ParamBag,
    *,
    collection_slug: str | None = None,
) -> dict[str, Any]:
    """Compile URL parameters into shop API search variables."""
    return build_search_input(params, collection_slug).to_variables()


def catalog_search_products(
    api: CatalogApiProtocol,
    params: ParamBag,
    *,
    collection_slug: str | None = None,
    cache: TaggedCache | None = None,
) -> dict[str, Any]:
    """Search products for one page of URL parameters."""
    search_input = build_search_input(params, collection_slug)
    try:
        response = search_products(api, search_input, cache=cache)
    except CatalogError as e:
        return {"error": str(e), "results": [], "count": 0, "total": 0}

    results = [
        {
            "product_id": hit.product_id,
            "name": hit.product_name,
            "slug": hit.slug,
            "price_min": hit.price_min,
            "price_max": hit.price_max,
            "currency": hit.currency_code,
            "preview": hit.preview,
        }
        for hit in response.items
    ]
    output: dict[str, Any] = {
        "input": search_input.to_variables(),
        "results": results,
        "count": len(results),
        "total": response.total_items,
        "page": search_input.page,
        "has_more": search_input.skip + len(results) < response.total_items,
        "facets": {
            name: [{"id": v.id, "name": v.name, "count": v.count} for v in values]
            for name, values in response.facets_by_name().items()
        },
        "collections": [
            {"slug": c.slug, "name": c.name, "count": c.count} for c in response.collections
        ],
    }
    if output["has_more"]:
        output["next_page"] = search_input.page + 1
    return output


def catalog_get_collection_page(
    api: CatalogApiProtocol,
    resolver: CollectionResolver,
    *,
    slug: str,
    params: ParamBag,
    cache: TaggedCache | None = None,
) -> dict[str, Any]:
    """Render a collection page: header metadata plus one page of its products.

    The header comes from the lightweight metadata query; products are
    always scoped to ``slug`` whatever ``collection`` the params carry.
    """
    try:
        meta = resolver.collection_metadata(slug)
    except CatalogError as e:
        return {"error": str(e)}
    if meta is None:
        return {"error": f"Collection '{slug}' not found."}

    header = meta.to_dict()
    header["breadcrumbs"] = [b.to_dict() for b in visible_breadcrumbs(meta.breadcrumbs)]
    header["path"] = breadcrumbs_str(meta.breadcrumbs)
    return {
        "collection": header,
        "products": catalog_search_products(api, params, collection_slug=slug, cache=cache),
    }


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the server lifetime."""

    api: CatalogApi
    cache: TaggedCache
    resolver: CollectionResolver


@lru_cache(maxsize=1)
def get_server_context() -> ServerContext:
    """Build the process-wide API client, cache and resolver on first use."""
    api = CatalogApi(CatalogSettings.from_env())
    cache = TaggedCache()
    return ServerContext(api=api, cache=cache, resolver=CollectionResolver(api, cache))


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    yield get_server_context()


mcp_server = FastMCP(
    "storefront-catalog",
    instructions="""\
Browse a shop's collection (category) tree and search its products.

1. Call catalog_list_collections_tool for the top-level collections.
2. Call catalog_get_collection_tool with an id or slug to see its children
   and breadcrumbs. Collections with is_leaf=true have no sub-collections.
3. Call catalog_search_products_tool with URL-style parameters
   (q, page, sort, collection, facets) to list products. Facet value ids
   from a previous result can be passed back in "facets".
4. Call catalog_get_collection_page_tool with a slug to get a collection's
   header (name, description, path) together with its products.

Sort keys: name-asc (default), name-desc, price-asc, price-desc.
Pages hold 12 products.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- HTTP routes ---


@mcp_server.custom_route("/api/collections/{id_or_slug}", methods=["GET"])
async def collection_route(request: Request) -> JSONResponse:
    """Return a collection with children and breadcrumbs, by ID or slug."""
    status, body = await asyncio.to_thread(
        collection_lookup,
        get_server_context().resolver,
        request.path_params["id_or_slug"],
        slug_hint=request.query_params.get("slug"),
    )
    return JSONResponse(body, status_code=status)


@mcp_server.custom_route("/api/revalidate", methods=["POST"])
async def revalidate_route(request: Request) -> JSONResponse:
    """Evict cached catalog responses by tag after a catalog change."""
    try:
        payload = await request.json()
        tags = payload["tags"]
    except (ValueError, KeyError, TypeError):
        return JSONResponse({"error": 'Expected a JSON body like {"tags": [...]}'}, status_code=400)
    if isinstance(tags, str):
        tags = [tags]
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        return JSONResponse(
            {"error": "tags must be a string or a list of strings"}, status_code=400
        )
    return JSONResponse(revalidate_tags(get_server_context().cache, tags))


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def catalog_list_collections_tool(ctx: Context) -> dict[str, Any]:
    """List the shop's top-level collections.

    Use this to discover collection ids and slugs to browse into.
    """
    return await asyncio.to_thread(catalog_list_collections, _ctx(ctx).resolver)


@mcp_server.tool()
async def catalog_get_collection_tool(ctx: Context, collection: str) -> dict[str, Any]:
    """Get a collection with its direct children and breadcrumb path.

    Args:
        collection: Collection id or slug. The id is tried first.
    """
    return await asyncio.to_thread(
        catalog_get_collection, _ctx(ctx).resolver, collection=collection
    )


@mcp_server.tool()
async def catalog_build_search_input_tool(
    query_string: str,
    collection_slug: str | None = None,
) -> dict[str, Any]:
    """Show the search request a storefront URL query string compiles to.

    Args:
        query_string: URL query, e.g. "q=boots&page=2&sort=price-asc&facets=12".
        collection_slug: Collection page scope, overriding any collection parameter.
    """
    return catalog_build_search_input(
        parse_query_string(query_string), collection_slug=collection_slug
    )


@mcp_server.tool()
async def catalog_search_products_tool(
    ctx: Context,
    q: str | None = None,
    page: int = 1,
    sort: str = "name-asc",
    collection: str | None = None,
    facets: list[str] | None = None,
) -> dict[str, Any]:
    """Search products with storefront URL parameters.

    Pagination: when has_more is true, call again with page=next_page.

    Args:
        q: Free-text search.
        page: 1-based page number (12 products per page).
        sort: name-asc, name-desc, price-asc or price-desc.
        collection: Collection slug to scope results to.
        facets: Facet value ids; results must match all of them.
    """
    params: dict[str, Any] = {"q": q, "page": str(page), "sort": sort, "collection": collection}
    if facets:
        params["facets"] = facets
    server = _ctx(ctx)
    return await asyncio.to_thread(
        catalog_search_products, server.api, params, cache=server.cache
    )


@mcp_server.tool()
async def catalog_get_collection_page_tool(
    ctx: Context,
    slug: str,
    q: str | None = None,
    page: int = 1,
    sort: str = "name-asc",
    facets: list[str] | None = None,
) -> dict[str, Any]:
    """Get a collection page: its name, description and path plus its products.

    Args:
        slug: Collection slug.
        q: Free-text search within the collection.
        page: 1-based page number (12 products per page).
        sort: name-asc, name-desc, price-asc or price-desc.
        facets: Facet value ids; results must match all of them.
    """
    params: dict[str, Any] = {"q": q, "page": str(page), "sort": sort}
    if facets:
        params["facets"] = facets
    server = _ctx(ctx)
    return await asyncio.to_thread(
        catalog_get_collection_page,
        server.api,
        server.resolver,
        slug=slug,
        params=params,
        cache=server.cache,
    )


@mcp_server.tool()
async def catalog_invalidate_cache_tool(ctx: Context, tags: list[str]) -> dict[str, Any]:
    """Evict cached catalog responses by tag.

    Tags: "collections", "collection-{id}", "collection-slug-{slug}",
    "collection-meta-{slug}", "collection-products-{slug}", "search".
    """
    return revalidate_tags(_ctx(ctx).cache, tags)


def run_mcp_server(*, transport: str = "stdio", host: str = "127.0.0.1", port: int = 8000) -> None:
    """Run the server. HTTP routes are only served on HTTP transports."""
    from storefront_catalog.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.settings.host = host
    mcp_server.settings.port = port
    logger.info("Starting storefront-catalog server ({})", transport)
    mcp_server.run(transport=transport)  # type: ignore[arg-type]

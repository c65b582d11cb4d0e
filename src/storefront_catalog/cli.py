"""CLI for the storefront catalog (collections, search, navigator, server)."""

import asyncio
import json
from dataclasses import replace
from typing import Annotated

import requests
import typer
from loguru import logger

from storefront_catalog.api import CatalogApi
from storefront_catalog.config import CatalogSettings
from storefront_catalog.core.search.compiler import build_search_input
from storefront_catalog.core.search.params import parse_query_string
from storefront_catalog.core.search.searcher import search_products
from storefront_catalog.core.tree.navigation import breadcrumbs_str
from storefront_catalog.core.tree.navigator import CollectionNavigator, NavigatorState
from storefront_catalog.core.tree.resolver import CollectionResolver
from storefront_catalog.core.tree.source import HttpCollectionSource, ResolverCollectionSource
from storefront_catalog.errors import CatalogError
from storefront_catalog.logging_config import configure_logging

app = typer.Typer(help="Storefront catalog: browse collections and search products.")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    shop_api_url: Annotated[
        str | None,
        typer.Option("--shop-api-url", help="Shop GraphQL endpoint (default: $VENDURE_SHOP_API_URL)"),
    ] = None,
    storefront_api_url: Annotated[
        str | None,
        typer.Option("--storefront-url", help="Storefront server (default: $STOREFRONT_API_URL)"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose)
    settings = CatalogSettings.from_env()
    if shop_api_url:
        settings = replace(settings, shop_api_url=shop_api_url)
    if storefront_api_url:
        settings = replace(settings, storefront_api_url=storefront_api_url)
    ctx.obj = settings


def _settings(ctx: typer.Context) -> CatalogSettings:
    return ctx.obj or CatalogSettings.from_env()  # type: ignore[no-any-return]


@app.command(name="search-input")
def search_input_cmd(
    query_string: str = typer.Argument("", help='URL query, e.g. "q=boots&page=2"'),
    collection: Annotated[
        str | None,
        typer.Option("--collection", "-c", help="Collection slug overriding the URL"),
    ] = None,
) -> None:
    """Print the search request a URL query string compiles to."""
    search_input = build_search_input(parse_query_string(query_string), collection)
    typer.echo(json.dumps(search_input.to_variables(), indent=2))


@app.command()
def search(
    ctx: typer.Context,
    query_string: str = typer.Argument("", help='URL query, e.g. "q=boots&sort=price-asc"'),
    collection: Annotated[
        str | None,
        typer.Option("--collection", "-c", help="Collection slug overriding the URL"),
    ] = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Search products for a URL query string."""
    search_input = build_search_input(parse_query_string(query_string), collection)
    try:
        response = search_products(CatalogApi(_settings(ctx)), search_input)
    except CatalogError as e:
        logger.error("Search failed: {}", e)
        raise typer.Exit(1) from e

    if output_json:
        data = {
            "results": [
                {
                    "product_id": hit.product_id,
                    "name": hit.product_name,
                    "slug": hit.slug,
                    "price_min": hit.price_min,
                    "price_max": hit.price_max,
                    "currency": hit.currency_code,
                }
                for hit in response.items
            ],
            "total": response.total_items,
            "page": search_input.page,
        }
        typer.echo(json.dumps(data, indent=2))
        return

    first = search_input.skip + 1 if response.items else 0
    last = search_input.skip + len(response.items)
    typer.echo(f"Found {response.total_items} products (showing {first}-{last}):\n")
    for hit in response.items:
        price = (
            f"{hit.price_min}"
            if hit.price_min == hit.price_max
            else f"{hit.price_min}-{hit.price_max}"
        )
        typer.echo(f"  {hit.product_name}  {price} {hit.currency_code}")
        typer.echo(f"    slug={hit.slug}  id={hit.product_id}")
    for facet_name, values in response.facets_by_name().items():
        options = ", ".join(f"{v.name} ({v.count}) [id={v.id}]" for v in values)
        typer.echo(f"\n  {facet_name}: {options}")


@app.command()
def collections(ctx: typer.Context) -> None:
    """List top-level collections."""
    resolver = CollectionResolver(CatalogApi(_settings(ctx)))
    try:
        top = resolver.top_collections()
    except CatalogError as e:
        logger.error("Listing collections failed: {}", e)
        raise typer.Exit(1) from e

    typer.echo(f"{len(top)} collections:\n")
    for c in top:
        typer.echo(f"  {c.name}  [id={c.id} slug={c.slug}]")


@app.command()
def collection(
    ctx: typer.Context,
    id_or_slug: str = typer.Argument(..., help="Collection ID or slug"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show a collection with its children and breadcrumbs."""
    resolver = CollectionResolver(CatalogApi(_settings(ctx)))
    try:
        found = resolver.resolve(id_or_slug)
    except CatalogError as e:
        logger.error("Lookup failed: {}", e)
        raise typer.Exit(1) from e

    if found is None:
        typer.echo(f"Collection '{id_or_slug}' not found.")
        raise typer.Exit(1)

    if output_json:
        typer.echo(json.dumps(found.to_dict(), indent=2))
        return

    typer.echo(f"{found.name}  [id={found.id} slug={found.slug}]")
    path = breadcrumbs_str(found.breadcrumbs)
    if path:
        typer.echo(f"  path: {path}")
    if found.description:
        typer.echo(f"  {found.description}")
    for child in found.children:
        typer.echo(f"    - {child.name}  [id={child.id} slug={child.slug}]")


@app.command(name="collection-page")
def collection_page(
    ctx: typer.Context,
    slug: str = typer.Argument(..., help="Collection slug"),
    query_string: str = typer.Argument("", help='URL query, e.g. "q=trail&sort=price-asc"'),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show a collection page: its header and one page of its products."""
    from storefront_catalog.mcp.server import catalog_get_collection_page

    api = CatalogApi(_settings(ctx))
    page = catalog_get_collection_page(
        api, CollectionResolver(api), slug=slug, params=parse_query_string(query_string)
    )
    if "error" in page:
        logger.error("Collection page failed: {}", page["error"])
        raise typer.Exit(1)

    if output_json:
        typer.echo(json.dumps(page, indent=2))
        return

    header, products = page["collection"], page["products"]
    typer.echo(f"{header['name']}  [id={header['id']} slug={header['slug']}]")
    if header["path"]:
        typer.echo(f"  path: {header['path']}")
    if header["description"]:
        typer.echo(f"  {header['description']}")
    if "error" in products:
        typer.echo(f"\n  products unavailable: {products['error']}")
        raise typer.Exit(1)
    typer.echo(f"\n  {products['total']} products (page {products['page']}):")
    for hit in products["results"]:
        typer.echo(f"    {hit['name']}  slug={hit['slug']}")


def _print_state(state: NavigatorState) -> None:
    crumbs = " > ".join(b.name for b in state.breadcrumbs)
    typer.echo(f"{state.title}" + (f"  ({crumbs})" if crumbs else ""))
    if state.error:
        typer.echo(f"  error: {state.error}")
    for c in state.collections:
        typer.echo(f"  - {c.name}  [id={c.id} slug={c.slug}]")


@app.command()
def browse(
    ctx: typer.Context,
    path: Annotated[
        list[str] | None,
        typer.Argument(help="Collections to select in order (ID or slug); '..' goes back"),
    ] = None,
    remote: bool = typer.Option(
        False, "--remote", "-r", help="Load collections from the storefront server"
    ),
    timeout: float = typer.Option(10.0, "--timeout", "-t", help="Seconds per collection load"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output the final state as JSON"),
) -> None:
    """Walk the collection tree the way the collections menu does."""
    settings = _settings(ctx)
    resolver = CollectionResolver(CatalogApi(settings))
    try:
        top = resolver.top_collections()
    except CatalogError as e:
        logger.error("Listing collections failed: {}", e)
        raise typer.Exit(1) from e

    source = HttpCollectionSource(settings) if remote else ResolverCollectionSource(resolver)
    scopes: list[str] = []
    navigator = CollectionNavigator(source, top, on_scope_select=scopes.append, timeout=timeout)

    async def walk() -> None:
        for step in path or []:
            if step == "..":
                await navigator.go_back()
                continue
            node = next(
                (c for c in navigator.state.collections if step in (c.id, c.slug)),
                None,
            )
            if node is not None:
                await navigator.select_node(node)
            else:
                # Not on screen: resolve it as a bare identifier or slug.
                await navigator.open_collection(step)
            if navigator.state.error:
                return

    asyncio.run(walk())
    if output_json:
        data = {
            "state": navigator.state.to_dict(),
            "top": [c.to_dict() for c in navigator.initial_collections],
            "scope": scopes[-1] if scopes else None,
        }
        typer.echo(json.dumps(data, indent=2))
    else:
        _print_state(navigator.state)
        if scopes:
            typer.echo(f"\nProduct scope: {scopes[-1] or '(all)'}")
    if navigator.state.error:
        raise typer.Exit(1)


@app.command()
def revalidate(
    ctx: typer.Context,
    tags: list[str] = typer.Argument(..., help="Cache tags to evict, e.g. collection-42"),
) -> None:
    """Ask a running storefront server to evict cached responses by tag."""
    url = _settings(ctx).storefront_api_url.rstrip("/") + "/api/revalidate"
    try:
        r = requests.post(url, json={"tags": tags}, timeout=_settings(ctx).request_timeout)
        r.raise_for_status()
    except requests.RequestException as e:
        logger.error("Revalidate failed: {}", e)
        raise typer.Exit(1) from e
    result = r.json()
    typer.echo(f"Evicted {result['evicted']} entries for {', '.join(result['revalidated'])}")


@app.command()
def serve(
    transport: str = typer.Option(
        "stdio", "--transport", help="stdio, sse or streamable-http (HTTP routes need HTTP)"
    ),
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address for HTTP transports"),
    port: int = typer.Option(8000, "--port", "-p", help="Port for HTTP transports"),
) -> None:
    """Start the MCP server (and the /api routes on HTTP transports)."""
    from storefront_catalog.mcp.server import run_mcp_server

    run_mcp_server(transport=transport, host=host, port=port)

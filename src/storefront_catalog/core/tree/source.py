"""Collection sources for the navigator: the HTTP endpoint or an in-process resolver."""

import asyncio
import threading
from collections.abc import Callable
from urllib.parse import quote

import requests
from loguru import logger

from storefront_catalog.config import CatalogSettings
from storefront_catalog.core.tree.resolver import CollectionResolver
from storefront_catalog.errors import CatalogApiError, CollectionNotFoundError
from storefront_catalog.models.collection import CollectionWithChildren


class HttpCollectionSource:
    """Load collections for the navigator over HTTP.

    The identifier-then-slug fallback happens on the server; this client
    issues a single request per lookup. Lookups run on worker threads and
    each thread gets its own session from ``session_factory``.
    """

    def __init__(
        self,
        settings: CatalogSettings | None = None,
        *,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.settings = settings or CatalogSettings.from_env()
        self._session_factory = session_factory
        self._local = threading.local()

    @property
    def sess(self) -> requests.Session:
        sess = getattr(self._local, "sess", None)
        if sess is None:
            sess = self._local.sess = self._session_factory()
        return sess

    def url_for(self, id_or_slug: str) -> str:
        base = self.settings.storefront_api_url.rstrip("/")
        return f"{base}/api/collections/{quote(id_or_slug, safe='')}"

    async def fetch_collection(
        self, id_or_slug: str, *, slug_hint: str | None = None
    ) -> CollectionWithChildren:
        return await asyncio.to_thread(self.get_collection, id_or_slug, slug_hint=slug_hint)

    def get_collection(
        self, id_or_slug: str, *, slug_hint: str | None = None
    ) -> CollectionWithChildren:
        """Fetch a collection synchronously.

        Raises:
            CollectionNotFoundError: The endpoint answered 404.
            CatalogApiError: Any other failure.
        """
        params = {"slug": slug_hint} if slug_hint and slug_hint != id_or_slug else None
        url = self.url_for(id_or_slug)
        logger.debug("Fetching collection: {} {}", url, params or "")
        try:
            r = self.sess.get(url, params=params, timeout=self.settings.request_timeout)
        except requests.RequestException as e:
            msg = f"Failed to load collection {id_or_slug!r}: {e}"
            raise CatalogApiError(msg) from e

        if r.status_code == 404:
            raise CollectionNotFoundError(id_or_slug)
        if not r.ok:
            try:
                detail = r.json().get("error", r.reason)
            except (ValueError, AttributeError):
                detail = r.reason
            msg = f"Failed to load collection {id_or_slug!r}: HTTP {r.status_code} {detail}"
            raise CatalogApiError(msg, status_code=r.status_code)

        try:
            return CollectionWithChildren.from_api(r.json())
        except (ValueError, KeyError, TypeError) as e:
            msg = f"Malformed collection response for {id_or_slug!r}"
            raise CatalogApiError(msg) from e


class ResolverCollectionSource:
    """Load collections in-process from a resolver, without the HTTP hop."""

    def __init__(self, resolver: CollectionResolver) -> None:
        self._resolver = resolver

    async def fetch_collection(
        self, id_or_slug: str, *, slug_hint: str | None = None
    ) -> CollectionWithChildren:
        collection = await asyncio.to_thread(
            self._resolver.resolve, id_or_slug, slug_hint=slug_hint
        )
        if collection is None:
            raise CollectionNotFoundError(id_or_slug)
        return collection

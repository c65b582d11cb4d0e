"""Vendure shop API client."""

import threading
from typing import Any

import requests
from loguru import logger

from storefront_catalog.config import CatalogSettings
from storefront_catalog.errors import CatalogApiError
from storefront_catalog.queries import GraphQLQuery


class CatalogApi:
    """Execute GraphQL operations against the shop API.

    Safe to share between threads: each thread gets its own session.
    """

    def __init__(self, settings: CatalogSettings | None = None) -> None:
        self.settings = settings or CatalogSettings.from_env()
        self._local = threading.local()

        logger.debug(
            "API ready: url {!r}, channel token {}, auth token {}",
            self.settings.shop_api_url,
            "set" if self.settings.channel_token else "unset",
            "set" if self.settings.auth_token else "unset",
        )

    @property
    def sess(self) -> requests.Session:
        sess = getattr(self._local, "sess", None)
        if sess is None:
            sess = self._local.sess = self._new_session()
        return sess

    def _new_session(self) -> requests.Session:
        sess = requests.Session()
        sess.headers["Content-Type"] = "application/json"
        if self.settings.channel_token:
            sess.headers["vendure-token"] = self.settings.channel_token
        if self.settings.auth_token:
            sess.headers["Authorization"] = f"Bearer {self.settings.auth_token}"
        return sess

    def query(self, query: GraphQLQuery, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run ``query`` and return its ``data`` payload.

        Raises:
            CatalogApiError: On network failure, a non-2xx status, or GraphQL errors.
        """
        logger.debug("Making request: {} {}", query.name, repr(variables)[:64])
        payload = {
            "operationName": query.name,
            "query": query.document,
            "variables": variables or {},
        }
        try:
            r = self.sess.post(
                self.settings.shop_api_url,
                json=payload,
                timeout=self.settings.request_timeout,
            )
            r.raise_for_status()
            rv: dict[str, Any] = r.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            msg = f"API call failed: {query.name} -> HTTP {status}"
            raise CatalogApiError(msg, status_code=status) from e
        except requests.RequestException as e:
            msg = f"API call failed: {query.name} -> {e}"
            raise CatalogApiError(msg) from e

        if rv.get("errors"):
            messages = "; ".join(err.get("message", "?") for err in rv["errors"])
            msg = f"API call failed: ({query.name!r}, {variables!r}) -> {messages}"
            raise CatalogApiError(msg)
        return rv.get("data") or {}

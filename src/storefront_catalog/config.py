"""Configuration constants and environment settings for storefront-catalog."""

import os
from dataclasses import dataclass

# Products per page in the storefront grid. Not configurable per request.
PAGE_SIZE: int = 12

# Synthetic top-of-tree collection present in every breadcrumb path.
ROOT_COLLECTION_SLUG: str = "__root_collection__"

# URL sort keys, in display order. The first one is the default.
SORT_KEYS: tuple[str, ...] = ("name-asc", "name-desc", "price-asc", "price-desc")
DEFAULT_SORT_KEY: str = SORT_KEYS[0]

# Cache life profiles: name -> seconds until an entry is considered stale.
CACHE_LIFE: dict[str, float] = {
    "seconds": 1,
    "minutes": 60,
    "hours": 60 * 60,
    "days": 24 * 60 * 60,
    "weeks": 7 * 24 * 60 * 60,
    "max": 365 * 24 * 60 * 60,
}
DEFAULT_CACHE_LIFE: str = "hours"

DEFAULT_SHOP_API_URL: str = "http://localhost:3000/shop-api"
DEFAULT_STOREFRONT_API_URL: str = "http://localhost:8000"
DEFAULT_REQUEST_TIMEOUT: float = 10.0


@dataclass(frozen=True)
class CatalogSettings:
    """Connection settings for the shop API and the storefront endpoint."""

    shop_api_url: str = DEFAULT_SHOP_API_URL
    storefront_api_url: str = DEFAULT_STOREFRONT_API_URL
    channel_token: str | None = None
    auth_token: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_env(cls) -> "CatalogSettings":
        """Read settings from ``VENDURE_*`` and ``STOREFRONT_*`` variables."""
        timeout_env = os.environ.get("CATALOG_REQUEST_TIMEOUT")
        try:
            timeout = float(timeout_env) if timeout_env else DEFAULT_REQUEST_TIMEOUT
        except ValueError:
            msg = f"CATALOG_REQUEST_TIMEOUT must be a number, got {timeout_env!r}"
            raise RuntimeError(msg) from None

        return cls(
            shop_api_url=os.environ.get("VENDURE_SHOP_API_URL", DEFAULT_SHOP_API_URL),
            storefront_api_url=os.environ.get("STOREFRONT_API_URL", DEFAULT_STOREFRONT_API_URL),
            channel_token=os.environ.get("VENDURE_CHANNEL_TOKEN") or None,
            auth_token=os.environ.get("VENDURE_AUTH_TOKEN") or None,
            request_timeout=timeout,
        )

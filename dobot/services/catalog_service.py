"""Fetching, caching and indexing of the provider's image catalogs.

Three catalog classes are supported:

- ``image``: public distribution images (cached)
- ``app``: one-click marketplace applications (cached)
- ``snapshot``: the account's private images (always fetched fresh)

Cached classes are stored whole under ``cache:{class}`` for 24 hours. A fetch
that fails on any page writes nothing, so a cache entry is either complete or
absent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from dobot.errors import EmptyResultError, InputValidationError, RemoteApiError
from dobot.services import digitalocean_service, store_service
from dobot.utils.categories import (
    MARKETPLACE_CATEGORIES,
    OTHER_CATEGORY,
    POPULAR_CATEGORY,
    POPULAR_DISTRIBUTIONS,
)

_LOGGER = logging.getLogger(__name__)

# Catalog class -> provider image type (None for private snapshots).
CATALOG_CLASSES: Dict[str, Optional[str]] = {
    "image": "distribution",
    "app": "application",
    "snapshot": None,
}
CACHEABLE_CLASSES = ("image", "app")

PER_PAGE = 100
MAX_PAGES = 50
MIN_SEARCH_LENGTH = 3


def normalize_item(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a provider image record to the fields the wizard relies on."""
    slug = raw.get("slug") or None
    return {
        "id": raw.get("id"),
        "slug": slug,
        "ref": slug or str(raw.get("id")),
        "name": raw.get("name") or slug or str(raw.get("id")),
        "distribution": raw.get("distribution") or "",
        "description": raw.get("description") or "",
        "min_disk_size": int(raw.get("min_disk_size") or 0),
        "regions": list(raw.get("regions") or []),
        "available": raw.get("status") == "available",
    }


def _fetch_all_pages(api_token: str, image_type: str) -> List[Dict[str, Any]]:
    """
    Page through the listing until the reported total or the last page.

    Raises:
        RemoteApiError: A page failed, or more pages remain past MAX_PAGES
    """
    items: List[Dict[str, Any]] = []
    seen = set()
    total: Optional[int] = None
    page = 1

    while True:
        data = digitalocean_service.list_images_page(api_token, image_type, page, PER_PAGE)
        batch = data.get("images") or []
        if total is None:
            total = (data.get("meta") or {}).get("total")

        for raw in batch:
            if raw.get("id") in seen:
                continue
            seen.add(raw.get("id"))
            items.append(normalize_item(raw))

        has_next = bool(((data.get("links") or {}).get("pages") or {}).get("next"))
        if not batch or not has_next:
            break
        if total is not None and page * PER_PAGE >= int(total):
            break
        if page >= MAX_PAGES:
            raise RemoteApiError(f"Catalog listing did not end within {MAX_PAGES} pages")
        page += 1

    return items


def list_by_class(catalog_class: str, api_token: str) -> List[Dict[str, Any]]:
    """
    Return the catalog items for a class, serving cached classes from the store.

    Raises:
        InputValidationError: Unknown catalog class
        EmptyResultError: The provider listing failed; nothing was cached
    """
    if catalog_class not in CATALOG_CLASSES:
        raise InputValidationError(f"❌ Unknown image type: {catalog_class}")

    if catalog_class == "snapshot":
        try:
            raw_items = digitalocean_service.list_snapshots(api_token)
        except RemoteApiError as exc:
            raise EmptyResultError(f"❌ Could not load snapshots: {exc.provider_message}") from exc
        return [normalize_item(raw) for raw in raw_items]

    cached = store_service.get(store_service.CACHE_NAMESPACE, catalog_class)
    if cached is not None:
        return cached

    try:
        items = _fetch_all_pages(api_token, CATALOG_CLASSES[catalog_class])
    except RemoteApiError as exc:
        _LOGGER.warning("Catalog fetch for %s aborted: %s", catalog_class, exc.provider_message)
        raise EmptyResultError(f"❌ Could not load the catalog: {exc.provider_message}") from exc

    available = [item for item in items if item["available"]]
    if available:
        store_service.put(
            store_service.CACHE_NAMESPACE,
            catalog_class,
            available,
            ttl=store_service.CACHE_TTL_SECONDS,
        )
        _LOGGER.info("Cached %d %s catalog items", len(available), catalog_class)
    return available


def invalidate(catalog_class: Optional[str] = None) -> List[str]:
    """Drop one cached catalog, or all of them. Credentials are untouched."""
    if catalog_class and catalog_class not in CACHEABLE_CLASSES:
        raise InputValidationError(f"❌ {catalog_class} catalogs are not cached")
    classes = [catalog_class] if catalog_class else list(CACHEABLE_CLASSES)
    for name in classes:
        store_service.delete(store_service.CACHE_NAMESPACE, name)
    _LOGGER.info("Invalidated catalog cache: %s", ", ".join(classes))
    return classes


def search(items: Iterable[Dict[str, Any]], term: str) -> List[Dict[str, Any]]:
    """Case-insensitive substring search over name, identifier and description."""
    needle = (term or "").strip().lower()
    if len(needle) < MIN_SEARCH_LENGTH:
        raise InputValidationError(
            f"🔍 Search term must be at least {MIN_SEARCH_LENGTH} characters."
        )

    return [
        item
        for item in items
        if needle in item["name"].lower()
        or needle in item["ref"].lower()
        or needle in (item.get("slug") or "").lower()
        or needle in (item.get("description") or "").lower()
    ]


def filter_by_region(items: Iterable[Dict[str, Any]], region: str) -> List[Dict[str, Any]]:
    """Keep global items and items offered in the region."""
    return [item for item in items if not item["regions"] or region in item["regions"]]


def filter_for_rebuild_compatibility(
    items: Iterable[Dict[str, Any]],
    disk_size: int,
    region: str,
) -> List[Dict[str, Any]]:
    """Keep items a droplet with this disk in this region can be rebuilt from."""
    return [
        item
        for item in items
        if item["available"]
        and item["min_disk_size"] <= disk_size
        and (not item["regions"] or region in item["regions"])
    ]


def categorize(item: Dict[str, Any]) -> str:
    """Map an item to exactly one category id using the rule table."""
    slug = item.get("slug") or ""
    if slug in MARKETPLACE_CATEGORIES[POPULAR_CATEGORY]["slugs"]:
        return POPULAR_CATEGORY

    search_text = " ".join(
        [item.get("name") or "", slug, item.get("description") or ""]
    ).lower()
    for category_id, category in MARKETPLACE_CATEGORIES.items():
        for keyword in category.get("keywords", []):
            if keyword in search_text:
                return category_id

    return OTHER_CATEGORY


def group_by_category(items: Iterable[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for item in items:
        grouped.setdefault(categorize(item), []).append(item)
    return grouped


def popular(items: Iterable[Dict[str, Any]], catalog_class: str) -> List[Dict[str, Any]]:
    """Popular applications by allow-list, popular distributions by slug keyword."""
    if catalog_class == "app":
        slugs = MARKETPLACE_CATEGORIES[POPULAR_CATEGORY]["slugs"]
        return [item for item in items if item.get("slug") in slugs]

    return [
        item
        for item in items
        if any(keyword in (item.get("slug") or "") for keyword in POPULAR_DISTRIBUTIONS)
    ]


def find_item(items: Iterable[Dict[str, Any]], ref: str) -> Optional[Dict[str, Any]]:
    for item in items:
        if item["ref"] == ref or str(item.get("id")) == ref:
            return item
    return None


def filter_sizes(sizes: Iterable[Dict[str, Any]], region: str, min_disk_size: int) -> List[Dict[str, Any]]:
    """Sizes offered in the region with enough disk, cheapest first (stable)."""
    eligible = [
        size
        for size in sizes
        if size.get("available")
        and region in (size.get("regions") or [])
        and int(size.get("disk") or 0) >= min_disk_size
    ]
    return sorted(eligible, key=lambda size: float(size.get("price_monthly") or 0))

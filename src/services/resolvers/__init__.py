"""Resolvers translating free-text titles into data from one external source each."""

from __future__ import annotations

from src.services.resolvers.catalog_resolver import CatalogResolver
from src.services.resolvers.playtime_resolver import PlaytimeEstimate, PlaytimeResolver
from src.services.resolvers.storefront_resolver import StorefrontDetails, StorefrontResolver

__all__: list[str] = [
    "CatalogResolver",
    "PlaytimeEstimate",
    "PlaytimeResolver",
    "StorefrontDetails",
    "StorefrontResolver",
]

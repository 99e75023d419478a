"""External service integrations."""

from .assets import AssetError, AssetFetcher

__all__ = [
    "AssetError",
    "AssetFetcher",
]

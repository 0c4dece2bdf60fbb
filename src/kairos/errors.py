"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error types shared by the kairos cache subsystems.
"""

from __future__ import annotations


class KairosCacheError(RuntimeError):
    """Base error for cache, query and monitoring failures."""


class CachePersistenceError(KairosCacheError):
    """Raised by storage backends and codecs when a snapshot cannot be read or written."""


class EvictionPolicyError(KairosCacheError):
    """Raised when eviction policy registration/resolution fails."""


class ResourceLoadError(KairosCacheError):
    """Raised when a resource loader fails for one locator."""

    def __init__(self, locator: str, message: str | None = None) -> None:
        self.locator = locator
        super().__init__(message or f"Failed to load resource: {locator}")

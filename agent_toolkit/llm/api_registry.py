"""
Custom API provider registry.

Lets extensions register streaming functions for custom API types
(e.g. ``"vertex-claude-api"``) that the built-in clients do not cover.
Built-in APIs are not registered here.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# (model, context, options) -> event stream
CustomStreamSimpleFn = Callable[..., Any]


class ApiRegistryError(Exception):
    """Raised when a registration conflicts with another source's entry."""


@dataclass(frozen=True)
class RegisteredCustomApi:
    stream_simple: CustomStreamSimpleFn
    source_id: Optional[str] = None


class CustomApiRegistry:
    """Keyed table of custom streaming functions, safe across threads.

    Entries registered with a ``source_id`` belong to that source: another
    source cannot overwrite them, and :meth:`unregister_source` removes them
    in bulk.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RegisteredCustomApi] = {}
        self._lock = threading.Lock()

    def register(
        self,
        api: str,
        stream_simple: CustomStreamSimpleFn,
        source_id: Optional[str] = None,
    ) -> None:
        if not api:
            raise ApiRegistryError("API identifier must be non-empty")
        if not callable(stream_simple):
            raise ApiRegistryError(f"stream function for '{api}' is not callable")

        with self._lock:
            existing = self._entries.get(api)
            if (
                existing is not None
                and existing.source_id is not None
                and existing.source_id != source_id
            ):
                raise ApiRegistryError(
                    f"API '{api}' is already registered by '{existing.source_id}'"
                )
            self._entries[api] = RegisteredCustomApi(stream_simple, source_id)
        logger.info("[ApiRegistry] Registered '%s' (source=%s)", api, source_id)

    def get(self, api: str) -> Optional[CustomStreamSimpleFn]:
        with self._lock:
            entry = self._entries.get(api)
        return entry.stream_simple if entry else None

    def unregister_source(self, source_id: str) -> int:
        """Remove every API registered by *source_id*. Returns the count."""
        with self._lock:
            owned = [api for api, e in self._entries.items() if e.source_id == source_id]
            for api in owned:
                del self._entries[api]
        if owned:
            logger.info("[ApiRegistry] Removed %d API(s) from '%s'", len(owned), source_id)
        return len(owned)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def apis(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)

    def __contains__(self, api: str) -> bool:
        with self._lock:
            return api in self._entries


_default_registry = CustomApiRegistry()


def default_registry() -> CustomApiRegistry:
    return _default_registry


def register_custom_api(
    api: str,
    stream_simple: CustomStreamSimpleFn,
    source_id: Optional[str] = None,
) -> None:
    """Register a custom API streaming function on the default registry."""
    _default_registry.register(api, stream_simple, source_id)


def get_custom_api(api: str) -> Optional[CustomStreamSimpleFn]:
    """Return the streaming function for *api*, or None if not registered."""
    return _default_registry.get(api)


def unregister_custom_apis(source_id: str) -> int:
    """Remove all custom APIs registered by a specific source."""
    return _default_registry.unregister_source(source_id)


def clear_custom_apis() -> None:
    _default_registry.clear()

"""Scheme registry mapping connection-string schemes to store factories.

The registry is an explicit object: each backend module exposes a
``register_backend(registry)`` function that is invoked exactly once when a
registry is populated (see ``streamstore.factory.create_default_registry``).
Registering a scheme twice is an error rather than a silent override.

Example:
    >>> from streamstore.registry import BackendRegistry
    >>> from streamstore.memory import MemoryStreamStore
    >>>
    >>> registry = BackendRegistry()
    >>> registry.register("mem", lambda location: MemoryStreamStore())
    >>> store = registry.resolve("mem://")

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from .connection import ConnectionString
from .interfaces import UnsupportedError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .interfaces import StreamStore

StoreFactory = Callable[[ConnectionString], "StreamStore"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendRegistration:
    """A scheme's factory and the query options it accepts."""

    scheme: str
    factory: StoreFactory
    options: frozenset[str]


class BackendRegistry:
    """Registry of store factories keyed by connection-string scheme."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._registrations: dict[str, BackendRegistration] = {}

    def register(
        self,
        scheme: str,
        factory: StoreFactory,
        *,
        options: Iterable[str] = (),
    ) -> None:
        """Register a store factory for a scheme.

        Args:
            scheme: URI scheme to register (e.g. "s3")
            factory: Callable taking a ConnectionString and returning a store
            options: Query option names the scheme accepts

        Raises:
            TypeError: If factory is not callable.
            ValueError: If the scheme is already registered.

        """
        if not callable(factory):
            msg = "factory must be callable"
            raise TypeError(msg)
        key = scheme.lower()
        if key in self._registrations:
            msg = f"Scheme '{key}' already registered"
            raise ValueError(msg)
        self._registrations[key] = BackendRegistration(
            scheme=key,
            factory=factory,
            options=frozenset(options),
        )

    def unregister(self, scheme: str) -> None:
        """Remove a scheme from the registry.

        Raises:
            KeyError: If the scheme is not registered.

        """
        key = scheme.lower()
        if key not in self._registrations:
            msg = f"Scheme '{key}' not registered"
            raise KeyError(msg)
        del self._registrations[key]

    def get(self, scheme: str) -> BackendRegistration:
        """Return the registration for a scheme.

        Raises:
            UnsupportedError: If the scheme is not registered.

        """
        key = scheme.lower()
        if key not in self._registrations:
            raise UnsupportedError.unknown_scheme(key, self.list())
        return self._registrations[key]

    def exists(self, scheme: str) -> bool:
        """Check if a scheme is registered."""
        return scheme.lower() in self._registrations

    def list(self) -> list[str]:
        """List registered schemes in sorted order."""
        return sorted(self._registrations)

    def resolve(self, uri: str) -> StreamStore:
        """Create a live store from a connection string.

        Args:
            uri: Connection string selecting and configuring the backend

        Returns:
            The StreamStore built by the scheme's factory.

        Raises:
            ValueError: If the URI is malformed.
            UnsupportedError: If the scheme or any option is not recognised.

        """
        location = ConnectionString.parse(uri)
        registration = self.get(location.scheme)
        unknown = sorted(set(location.options) - registration.options)
        if unknown:
            raise UnsupportedError.unknown_options(location.scheme, unknown)
        logger.debug("Resolving %r", location)
        return registration.factory(location)

"""Core provider interface and the errors it raises."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from typing import Any

MultihashLister = Callable[[Any, bytes], Iterator[bytes]]
"""Lists the multihashes for a (provider ID, context ID) pair, deterministically.

An empty or ``None`` provider ID means the default configured provider.
"""


class ProviderError(Exception):
    """Base class for errors raised by a provider."""

    default_message = "provider error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class NoMultihashListerError(ProviderError):
    """No multihash lister is registered for lookup."""

    default_message = "no multihash lister is registered"


class ContextIDNotFoundError(ProviderError):
    """No item is associated to the given context ID."""

    default_message = "context ID not found"


class AlreadyAdvertisedError(ProviderError):
    """An advertisement for identical content was already published."""

    default_message = "advertisement already published"


class Provider(ABC):
    """An index provider that manages advertisements of multihashes to indexers."""

    @abstractmethod
    def publish_local(self, adv: Any) -> Any:
        """Append ``adv`` to the local advertisement chain and return its CID."""

    @abstractmethod
    def publish(self, adv: Any) -> Any:
        """Append ``adv`` to the local chain, announce it, and return its CID."""

    @abstractmethod
    def register_multihash_lister(self, lister: MultihashLister) -> None:
        """Register the hook that lists multihashes; replaces any earlier one."""

    @abstractmethod
    def notify_put(self, provider: Any, context_id: bytes, metadata: Any) -> Any:
        """Advertise the multihashes for ``context_id`` and return the ad CID.

        Raises NoMultihashListerError when no lister is registered and
        AlreadyAdvertisedError when the same content was already advertised.
        """

    @abstractmethod
    def notify_remove(self, provider_id: Any, context_id: bytes) -> Any:
        """Advertise removal of ``context_id`` and return the ad CID.

        Raises ContextIDNotFoundError when the context ID was never put.
        """

    @abstractmethod
    def get_adv(self, cid: Any) -> Any:
        """Return the advertisement stored under ``cid``."""

    @abstractmethod
    def get_latest_adv(self) -> tuple[Any, Any]:
        """Return the CID and advertisement at the head of the chain."""

    @abstractmethod
    def shutdown(self) -> None:
        """Release all resources; the provider is unusable afterwards."""

    def __enter__(self) -> Provider:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
"""Thread-safe sync access policy."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from ipniprovider.peerutil import PeerID, PeerIDError, Policy


class AccessPolicy:
    """Decides which peers may sync content; safe to share between threads."""

    def __init__(self, allow: bool, except_ids: Iterable[str] | None) -> None:
        try:
            self._allow = Policy.from_strings(allow, except_ids)
        except PeerIDError as err:
            raise PeerIDError(f"bad allow policy: {err}") from err
        self._lock = threading.Lock()

    def allowed(self, peer_id: PeerID) -> bool:
        """Return whether the policy allows ``peer_id`` to sync content."""
        with self._lock:
            return self._allow.eval(peer_id)

    def allow(self, peer_id: PeerID) -> bool:
        """Allow ``peer_id``; return whether the policy changed."""
        with self._lock:
            return self._allow.set_peer(peer_id, True)

    def block(self, peer_id: PeerID) -> bool:
        """Disallow ``peer_id``; return whether the policy changed."""
        with self._lock:
            return self._allow.set_peer(peer_id, False)

    def copy_from(self, other: AccessPolicy) -> None:
        """Replace this policy with a copy of ``other``."""
        with other._lock:
            snapshot = Policy(other._allow.default(), *other._allow.except_ids())
        with self._lock:
            self._allow = snapshot

    def to_config(self) -> tuple[bool, list[str]]:
        """Return the default value and the excepted peer ID strings."""
        with self._lock:
            return self._allow.default(), self._allow.except_strings()
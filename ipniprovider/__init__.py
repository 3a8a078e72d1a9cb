"""Index provider building blocks: CIDs, CAR files, CAR suppliers, peer policies and admin HTTP."""

__version__ = "0.1.0"

__all__ = [
    "adminserver",
    "car",
    "cid",
    "iterators",
    "metadata",
    "models",
    "peerutil",
    "policy",
    "provider",
    "supplier",
]
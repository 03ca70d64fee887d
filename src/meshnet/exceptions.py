"""Exception hierarchy shared by the registry and the runtime."""

from __future__ import annotations


class MeshnetError(Exception):
    """Base class for all errors raised by :mod:`meshnet`."""


class InvalidCIDRError(MeshnetError, ValueError):
    """A prefix string is not a valid IPv4 or IPv6 CIDR."""

    def __init__(self, cidr: str, reason: str = "") -> None:
        self.cidr = cidr
        message = f"invalid CIDR {cidr!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RegistryError(MeshnetError):
    """Base class for registry store failures."""


class NotFoundError(RegistryError):
    """The requested record does not exist."""


class AlreadyExistsError(RegistryError):
    """A create call found a record already present under the same name."""


class ConflictError(RegistryError):
    """A compare-and-swap replace lost against a concurrent writer."""


class StorageError(RegistryError):
    """Transport or encoding failure while talking to the backing store."""


class CodecError(StorageError):
    """The embedded allocation document cannot be encoded or decoded."""


class ClusterConnectionError(MeshnetError):
    """No usable client could be built for a cluster context."""

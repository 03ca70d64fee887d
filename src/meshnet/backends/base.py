"""Narrow capability interfaces the registry and validators depend on.

Each interface covers one thing the code needs from a cluster API, so tests
can substitute small fakes instead of a full client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from ..models import EndpointRecord, MeshConfig


@dataclass(frozen=True)
class StoredRecord:
    """A flat string record plus the version token it was read at."""

    data: Dict[str, str]
    version: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)


class RecordBackend(ABC):
    """Get, create and replace a named, namespaced key-value record."""

    @abstractmethod
    def get(self, namespace: str, name: str) -> StoredRecord:
        """Return the record or raise :class:`~meshnet.exceptions.NotFoundError`."""

    @abstractmethod
    def create(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, str],
        labels: Optional[Mapping[str, str]] = None,
    ) -> StoredRecord:
        """Create the record; raise ``AlreadyExistsError`` if present."""

    @abstractmethod
    def replace(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, str],
        version: Optional[str] = None,
    ) -> StoredRecord:
        """Replace the record's data wholesale.

        When ``version`` is given the replace only succeeds if the stored
        record is still at that version, otherwise ``ConflictError`` is
        raised.
        """


class SecretWriter(ABC):
    @abstractmethod
    def create_secret(
        self, namespace: str, name: str, data: Mapping[str, bytes]
    ) -> None:
        """Create a secret; raise ``AlreadyExistsError`` if present."""


class MeshReader(ABC):
    @abstractmethod
    def get_mesh_config(self) -> Optional[MeshConfig]:
        """Return the cluster's mesh resource, or None when it is absent."""


class EndpointLister(ABC):
    @abstractmethod
    def list_endpoints(self, namespace: str) -> List[EndpointRecord]:
        """Return every endpoint advertisement visible in ``namespace``."""

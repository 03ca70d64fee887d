"""Persistence of the mesh-wide :class:`NetworkRegistry` record."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from . import codec
from .allocator import upsert
from .backends.base import RecordBackend
from .exceptions import AlreadyExistsError, ConflictError
from .models import NetworkRegistry

LOG = logging.getLogger(__name__)

REGISTRY_RECORD_NAME = "submariner-globalnet-info"
REGISTRY_LABELS = {"component": "submariner-globalnet"}
DEFAULT_UPDATE_ATTEMPTS = 5


class RegistryStore:
    """Read and write the registry record through a :class:`RecordBackend`.

    The record lives under a fixed name in the broker namespace.  Values
    cross the backend boundary only in their encoded form; callers always
    deal in :class:`NetworkRegistry` instances.

    Parameters
    ----------
    backend:
        Storage capability, e.g. a ConfigMap client or the in-memory backend.
    name:
        Record name.  Only tests should need to override it.
    """

    def __init__(self, backend: RecordBackend, name: str = REGISTRY_RECORD_NAME) -> None:
        self._backend = backend
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def create_if_absent(self, namespace: str, initial: NetworkRegistry) -> NetworkRegistry:
        """Create the record from ``initial`` unless one already exists.

        The existing record is returned unchanged when present, so repeated
        bootstrap calls neither fail nor overwrite allocations.
        """

        data = codec.encode(initial)
        try:
            self._backend.create(namespace, self._name, data, labels=REGISTRY_LABELS)
        except AlreadyExistsError:
            LOG.debug("registry %s/%s already exists", namespace, self._name)
            return self.fetch(namespace)

        LOG.info("Created network registry %s/%s", namespace, self._name)
        return initial

    def fetch(self, namespace: str) -> NetworkRegistry:
        registry, _ = self.fetch_versioned(namespace)
        return registry

    def fetch_versioned(self, namespace: str) -> Tuple[NetworkRegistry, Optional[str]]:
        """Return the registry together with the backend version token."""

        record = self._backend.get(namespace, self._name)
        return codec.decode(record.data), record.version

    def persist(
        self,
        namespace: str,
        registry: NetworkRegistry,
        expected_version: Optional[str] = None,
    ) -> Optional[str]:
        """Replace the stored record with ``registry``.

        Without ``expected_version`` this is a blind overwrite and a
        concurrent writer's change is lost.  With it the backend rejects the
        write with :class:`ConflictError` if the record moved on.  Returns the
        new version token.
        """

        data = codec.encode(registry)
        record = self._backend.replace(
            namespace, self._name, data, version=expected_version
        )
        LOG.debug(
            "persisted registry %s/%s (%d allocations)",
            namespace,
            self._name,
            len(registry.allocations),
        )
        return record.version

    def update_cluster(
        self,
        namespace: str,
        cluster_id: str,
        cidrs: Iterable[str],
        max_attempts: int = DEFAULT_UPDATE_ATTEMPTS,
    ) -> NetworkRegistry:
        """Record ``cluster_id``'s claim with a compare-and-swap write.

        On a version conflict the registry is re-fetched and the merge is
        applied again, up to ``max_attempts`` times.
        """

        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        claimed = list(cidrs)
        attempt = 0
        while True:
            attempt += 1
            current, version = self.fetch_versioned(namespace)
            updated = upsert(current, cluster_id, claimed)
            if updated == current:
                LOG.debug("cluster %s allocation already up to date", cluster_id)
                return current
            try:
                self.persist(namespace, updated, expected_version=version)
            except ConflictError:
                if attempt >= max_attempts:
                    raise
                LOG.warning(
                    "registry %s/%s changed concurrently, retrying update for "
                    "cluster %s (attempt %d/%d)",
                    namespace,
                    self._name,
                    cluster_id,
                    attempt,
                    max_attempts,
                )
                continue
            LOG.info("Recorded global CIDRs %s for cluster %s", claimed, cluster_id)
            return updated

"""Process local backend, used by unit tests and dry runs."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Dict, Mapping, Optional, Tuple

from ..exceptions import AlreadyExistsError, ConflictError, NotFoundError
from .base import RecordBackend, SecretWriter, StoredRecord

LOG = logging.getLogger(__name__)


class InMemoryBackend(RecordBackend, SecretWriter):
    """Keep records in a dict, with a monotonically increasing version."""

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], StoredRecord] = {}
        self._secrets: Dict[Tuple[str, str], Dict[str, bytes]] = {}
        self._counter = 0
        self._lock = Lock()

    def _next_version(self) -> str:
        self._counter += 1
        return str(self._counter)

    def get(self, namespace: str, name: str) -> StoredRecord:
        with self._lock:
            record = self._records.get((namespace, name))
        if record is None:
            raise NotFoundError(f"record {namespace}/{name} not found")
        return StoredRecord(dict(record.data), record.version, dict(record.labels))

    def create(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, str],
        labels: Optional[Mapping[str, str]] = None,
    ) -> StoredRecord:
        with self._lock:
            key = (namespace, name)
            if key in self._records:
                raise AlreadyExistsError(f"record {namespace}/{name} already exists")
            record = StoredRecord(dict(data), self._next_version(), dict(labels or {}))
            self._records[key] = record
        LOG.debug("created record %s/%s at version %s", namespace, name, record.version)
        return record

    def replace(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, str],
        version: Optional[str] = None,
    ) -> StoredRecord:
        with self._lock:
            key = (namespace, name)
            current = self._records.get(key)
            if current is None:
                raise NotFoundError(f"record {namespace}/{name} not found")
            if version is not None and version != current.version:
                raise ConflictError(
                    f"record {namespace}/{name} is at version {current.version}, "
                    f"expected {version}"
                )
            record = StoredRecord(dict(data), self._next_version(), dict(current.labels))
            self._records[key] = record
        LOG.debug("replaced record %s/%s, now version %s", namespace, name, record.version)
        return record

    def create_secret(
        self, namespace: str, name: str, data: Mapping[str, bytes]
    ) -> None:
        with self._lock:
            key = (namespace, name)
            if key in self._secrets:
                raise AlreadyExistsError(f"secret {namespace}/{name} already exists")
            self._secrets[key] = dict(data)

    def get_secret(self, namespace: str, name: str) -> Dict[str, bytes]:
        with self._lock:
            secret = self._secrets.get((namespace, name))
        if secret is None:
            raise NotFoundError(f"secret {namespace}/{name} not found")
        return dict(secret)

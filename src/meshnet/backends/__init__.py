"""Capability interfaces and the in-memory implementation used in tests."""

from .base import (  # noqa: F401
    EndpointLister,
    MeshReader,
    RecordBackend,
    SecretWriter,
    StoredRecord,
)
from .memory import InMemoryBackend  # noqa: F401

__all__ = [
    "EndpointLister",
    "InMemoryBackend",
    "MeshReader",
    "RecordBackend",
    "SecretWriter",
    "StoredRecord",
]

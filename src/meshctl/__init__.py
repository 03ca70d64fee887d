"""meshctl runtime helpers."""

from .config import MeshctlConfig, load_config  # noqa: F401

__all__ = [
    "MeshctlConfig",
    "load_config",
]

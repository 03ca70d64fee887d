"""IPsec pre-shared key generation for the broker."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Dict

from .backends.base import SecretWriter
from .exceptions import AlreadyExistsError

LOG = logging.getLogger(__name__)

PSK_SECRET_NAME = "submariner-ipsec-psk"
PSK_DATA_KEY = "psk"
DEFAULT_PSK_LENGTH = 48


@dataclass(frozen=True)
class PSKSecret:
    name: str
    data: Dict[str, bytes]


def generate_psk(length: int = DEFAULT_PSK_LENGTH) -> bytes:
    """Return exactly ``length`` bytes from the OS CSPRNG."""

    if length <= 0:
        raise ValueError("PSK length must be positive")
    return secrets.token_bytes(length)


def new_psk_secret(length: int = DEFAULT_PSK_LENGTH) -> PSKSecret:
    return PSKSecret(name=PSK_SECRET_NAME, data={PSK_DATA_KEY: generate_psk(length)})


def ensure_psk_secret(
    writer: SecretWriter, namespace: str, length: int = DEFAULT_PSK_LENGTH
) -> bool:
    """Create the PSK secret in ``namespace`` unless it already exists.

    Returns True when a new secret was written.  An existing secret is left
    untouched so clusters that already joined keep a matching key.
    """

    secret = new_psk_secret(length)
    try:
        writer.create_secret(namespace, secret.name, secret.data)
    except AlreadyExistsError:
        LOG.info("PSK secret %s/%s already exists", namespace, secret.name)
        return False
    LOG.info("Created PSK secret %s/%s", namespace, secret.name)
    return True

import pytest

from meshnet.backends.memory import InMemoryBackend
from meshnet.psk import (
    DEFAULT_PSK_LENGTH,
    PSK_DATA_KEY,
    PSK_SECRET_NAME,
    ensure_psk_secret,
    generate_psk,
    new_psk_secret,
)


def test_generate_psk_returns_requested_length():
    for length in (1, 16, DEFAULT_PSK_LENGTH, 256):
        assert len(generate_psk(length)) == length


def test_generate_psk_is_random():
    samples = {generate_psk(DEFAULT_PSK_LENGTH) for _ in range(32)}

    assert len(samples) == 32


def test_generate_psk_rejects_non_positive_length():
    with pytest.raises(ValueError):
        generate_psk(0)


def test_new_psk_secret_layout():
    secret = new_psk_secret(DEFAULT_PSK_LENGTH)

    assert secret.name == PSK_SECRET_NAME
    assert set(secret.data) == {PSK_DATA_KEY}
    assert len(secret.data[PSK_DATA_KEY]) == DEFAULT_PSK_LENGTH


def test_ensure_psk_secret_keeps_existing_key():
    backend = InMemoryBackend()

    assert ensure_psk_secret(backend, "broker") is True
    first = backend.get_secret("broker", PSK_SECRET_NAME)

    assert ensure_psk_secret(backend, "broker") is False
    assert backend.get_secret("broker", PSK_SECRET_NAME) == first

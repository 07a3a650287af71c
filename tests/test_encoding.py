import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519
from deploykey.encoding import (
    encode_private_key_pem, encode_public_key_line, decode_public_key_line,
)


def _raw_pair():
    key = ed25519.Ed25519PrivateKey.generate()
    seed = key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public = key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return key, seed, public


def test_private_key_pem_matches_pkcs8():
    """Should produce the same bytes as a standard PKCS#8 serializer."""
    key, seed, _ = _raw_pair()

    expected = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )

    assert encode_private_key_pem(seed) == expected


def test_private_key_pem_loads_back():
    """PEM output should load as the same Ed25519 key."""
    key, seed, public = _raw_pair()

    loaded = serialization.load_pem_private_key(encode_private_key_pem(seed), password=None)

    assert isinstance(loaded, ed25519.Ed25519PrivateKey)
    loaded_public = loaded.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    assert loaded_public == public


def test_private_key_pem_rejects_wrong_seed_size():
    with pytest.raises(ValueError, match='32 bytes'):
        encode_private_key_pem(b'\x00' * 31)


def test_public_key_line_matches_openssh():
    """Should match the OpenSSH wire format, with no trailing space."""
    key, _, public = _raw_pair()

    expected = key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    ).decode('ascii')

    line = encode_public_key_line(public, '')
    assert line == expected
    assert not line.endswith(' ')


def test_public_key_line_with_comment():
    _, _, public = _raw_pair()

    line = encode_public_key_line(public, 'dev@example.com')

    assert line.startswith('ssh-ed25519 AAAAC3NzaC1lZDI1NTE5')
    assert line.endswith(' dev@example.com')
    assert '\n' not in line


def test_public_key_decodes_and_verifies_signature():
    """Decoded public key should verify a signature made with the private key."""
    key, seed, public = _raw_pair()
    line = encode_public_key_line(public, 'ci@example.com')

    decoded, comment = decode_public_key_line(line)

    assert decoded == public
    assert comment == 'ci@example.com'
    private = serialization.load_pem_private_key(encode_private_key_pem(seed), password=None)
    signature = private.sign(b'deploy')
    ed25519.Ed25519PublicKey.from_public_bytes(decoded).verify(signature, b'deploy')


def test_decode_rejects_other_key_types():
    with pytest.raises(ValueError, match='ssh-ed25519'):
        decode_public_key_line('ssh-rsa AAAAB3NzaC1yc2E user@host')


def test_decode_rejects_truncated_blob():
    with pytest.raises(ValueError):
        decode_public_key_line('ssh-ed25519 AAAAC3NzaC1lZDI1NTE5 user@host')

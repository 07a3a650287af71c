"""Ed25519 key encoders for PKCS#8 PEM and OpenSSH public key lines."""

import base64
import struct
from typing import Tuple

KEY_TYPE = 'ssh-ed25519'
KEY_SIZE = 32

# RFC 8410 OneAsymmetricKey: version 0, OID 1.3.101.112, 32-byte seed.
PKCS8_ED25519_PREFIX = bytes.fromhex('302e020100300506032b657004220420')

PEM_LABEL = 'PRIVATE KEY'


def encode_private_key_pem(seed: bytes) -> bytes:
    """Wrap an Ed25519 seed in an unencrypted PKCS#8 PEM container.

    Args:
        seed: 32-byte private key seed

    Returns:
        PEM document with the ``PRIVATE KEY`` label and a trailing newline
    """
    if len(seed) != KEY_SIZE:
        raise ValueError(f"Ed25519 seed must be {KEY_SIZE} bytes, got {len(seed)}")

    body = base64.b64encode(PKCS8_ED25519_PREFIX + seed).decode('ascii')
    lines = [f'-----BEGIN {PEM_LABEL}-----']
    lines.extend(body[i:i + 64] for i in range(0, len(body), 64))
    lines.append(f'-----END {PEM_LABEL}-----')
    return ('\n'.join(lines) + '\n').encode('ascii')


def _pack_string(data: bytes) -> bytes:
    return struct.pack('>I', len(data)) + data


def _unpack_string(blob: bytes, offset: int) -> Tuple[bytes, int]:
    if offset + 4 > len(blob):
        raise ValueError("Truncated key blob")
    (length,) = struct.unpack_from('>I', blob, offset)
    start = offset + 4
    end = start + length
    if end > len(blob):
        raise ValueError("Truncated key blob")
    return blob[start:end], end


def encode_public_key_line(public: bytes, comment: str = '') -> str:
    """Format a raw Ed25519 public key as an authorized_keys line.

    Args:
        public: 32-byte raw public key
        comment: Trailing comment, omitted entirely when empty

    Returns:
        ``ssh-ed25519 <base64> [comment]`` without a trailing newline
    """
    if len(public) != KEY_SIZE:
        raise ValueError(f"Ed25519 public key must be {KEY_SIZE} bytes, got {len(public)}")

    blob = _pack_string(KEY_TYPE.encode('ascii')) + _pack_string(public)
    line = f"{KEY_TYPE} {base64.b64encode(blob).decode('ascii')}"
    if comment:
        line += f' {comment}'
    return line


def decode_public_key_line(line: str) -> Tuple[bytes, str]:
    """Parse an ``ssh-ed25519`` line back into raw key bytes and comment."""
    parts = line.strip().split(None, 2)
    if len(parts) < 2 or parts[0] != KEY_TYPE:
        raise ValueError(f"Not an {KEY_TYPE} public key line")

    try:
        blob = base64.b64decode(parts[1], validate=True)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid base64 in public key: {e}") from e

    key_type, offset = _unpack_string(blob, 0)
    if key_type.decode('ascii', errors='replace') != KEY_TYPE:
        raise ValueError(f"Embedded key type {key_type!r} does not match {KEY_TYPE}")
    public, offset = _unpack_string(blob, offset)
    if offset != len(blob) or len(public) != KEY_SIZE:
        raise ValueError("Malformed ed25519 key blob")

    comment = parts[2] if len(parts) > 2 else ''
    return public, comment

"""SSH key generation for deploy keys."""

import os
import stat
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from deploykey.encoding import encode_private_key_pem, encode_public_key_line

INVALID_REPO_CHARS = ('/', '\\', ' ')
KEY_SUFFIX = '_deploy-key'

PRIVATE_KEY_MODE = stat.S_IRUSR | stat.S_IWUSR
PUBLIC_KEY_MODE = PRIVATE_KEY_MODE | stat.S_IRGRP | stat.S_IROTH


class KeyGenerationError(RuntimeError):
    """Raised when a key pair could not be produced."""


@dataclass
class KeyPair:
    """Paths of a freshly written key pair and its public key line."""
    private_path: Path
    public_path: Path
    public_key: str


def validate_repo_name(name: str) -> str:
    """Check a repository name is usable in file names and host aliases.

    Args:
        name: Repository name as typed by the user

    Returns:
        The name unchanged

    Raises:
        ValueError: If the name is empty or contains '/', '\\' or a space
    """
    if not name:
        raise ValueError("Invalid repository name")
    if any(char in name for char in INVALID_REPO_CHARS):
        raise ValueError("Repository name contains invalid characters")
    return name


def key_paths(directory: Path, repo: str) -> Tuple[Path, Path]:
    """Return (private, public) key paths for a repository."""
    private_path = directory / f'{repo}{KEY_SUFFIX}'
    return private_path, Path(f'{private_path}.pub')


def get_public_key(key_path: Path) -> str:
    """Read public key content.

    Args:
        key_path: Path to private key (will append .pub)

    Returns:
        Public key content as string
    """
    pub_path = Path(f"{key_path}.pub")
    return pub_path.read_text().strip()


def _write_key_file(path: Path, data: bytes, mode: int) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, 'wb') as f:
        f.write(data)
    # O_CREAT mode is masked by umask and ignored for existing files
    os.chmod(path, mode)


class KeyGenerator(ABC):
    """Produces an Ed25519 key pair at a given private key path."""

    name = ''

    @abstractmethod
    def generate(self, private_path: Path, comment: str) -> KeyPair:
        """Write ``private_path`` and ``private_path.pub``.

        Raises:
            KeyGenerationError: If the key pair could not be produced
        """


class NativeKeyGenerator(KeyGenerator):
    """Generates keys in process and encodes both files by hand."""

    name = 'native'

    def generate(self, private_path: Path, comment: str) -> KeyPair:
        try:
            private_key = ed25519.Ed25519PrivateKey.generate()
            seed = private_key.private_bytes(
                encoding=serialization.Encoding.Raw,
                format=serialization.PrivateFormat.Raw,
                encryption_algorithm=serialization.NoEncryption(),
            )
            public = private_key.public_key().public_bytes(
                encoding=serialization.Encoding.Raw,
                format=serialization.PublicFormat.Raw,
            )
        except Exception as e:
            raise KeyGenerationError(f"Key generation failed: {e}") from e

        public_key = encode_public_key_line(public, comment)
        public_path = Path(f'{private_path}.pub')
        _write_key_file(private_path, encode_private_key_pem(seed), PRIVATE_KEY_MODE)
        _write_key_file(public_path, f'{public_key}\n'.encode('utf-8'), PUBLIC_KEY_MODE)
        return KeyPair(private_path, public_path, public_key)


class SshKeygenGenerator(KeyGenerator):
    """Delegates key generation to the ``ssh-keygen`` program."""

    name = 'ssh-keygen'

    def __init__(self, program: str = 'ssh-keygen'):
        self.program = program

    def generate(self, private_path: Path, comment: str) -> KeyPair:
        public_path = Path(f'{private_path}.pub')
        # ssh-keygen prompts before overwriting; the caller already confirmed
        for path in (private_path, public_path):
            path.unlink(missing_ok=True)

        try:
            subprocess.run([
                self.program,
                '-t', 'ed25519',
                '-C', comment,
                '-f', str(private_path),
                '-N', '',  # No passphrase
                '-q',
            ], check=True, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise KeyGenerationError(f"{self.program} not found") from e
        except subprocess.CalledProcessError as e:
            raise KeyGenerationError(
                f"{self.program} failed: {(e.stderr or '').strip()}"
            ) from e

        os.chmod(private_path, PRIVATE_KEY_MODE)
        os.chmod(public_path, PUBLIC_KEY_MODE)
        return KeyPair(private_path, public_path, get_public_key(private_path))


GENERATORS = {
    NativeKeyGenerator.name: NativeKeyGenerator,
    SshKeygenGenerator.name: SshKeygenGenerator,
}


def make_generator(name: str) -> KeyGenerator:
    """Build a key generator by name ('native' or 'ssh-keygen')."""
    try:
        return GENERATORS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown key generator {name!r} (choose from {', '.join(sorted(GENERATORS))})"
        ) from None

"""ssh-agent integration for deploy keys."""

import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional


class AgentError(RuntimeError):
    """Raised when the agent cannot be reached or refuses an operation."""


def parse_fingerprint(output: str) -> str:
    """Extract the fingerprint from ``ssh-keygen -l`` output.

    Example:
        >>> parse_fingerprint('256 SHA256:abc user@host (ED25519)')
        'SHA256:abc'
    """
    lines = output.strip().splitlines()
    fields = lines[0].split() if lines else []
    if len(fields) < 2:
        raise AgentError(f"Unexpected fingerprint output: {output.strip()!r}")
    return fields[1]


def agent_socket() -> Optional[str]:
    """SSH_AUTH_SOCK value, for diagnostics only."""
    return os.environ.get('SSH_AUTH_SOCK')


class KeyAgent(ABC):
    """A running key agent that deploy keys can be loaded into."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether an agent is reachable."""

    @abstractmethod
    def list_keys(self) -> List[str]:
        """Return the agent's key listing, one entry per loaded key."""

    @abstractmethod
    def fingerprint(self, private_path: Path) -> str:
        """Compute the fingerprint of a key file."""

    @abstractmethod
    def add(self, private_path: Path) -> None:
        """Load a key into the agent."""

    @abstractmethod
    def remove(self, private_path: Path) -> None:
        """Unload a key from the agent."""

    def _require_agent(self) -> None:
        if not self.is_available():
            raise AgentError("No ssh-agent is reachable")

    def is_loaded(self, private_path: Path) -> bool:
        """Check whether the key's fingerprint appears in the agent listing."""
        fingerprint = self.fingerprint(private_path)
        return any(fingerprint in line for line in self.list_keys())

    def ensure_added(self, private_path: Path) -> bool:
        """Add the key unless already loaded. Returns True if it was added."""
        self._require_agent()
        if self.is_loaded(private_path):
            return False
        self.add(private_path)
        return True

    def ensure_removed(self, private_path: Path) -> bool:
        """Remove the key if loaded. Returns True if it was removed."""
        self._require_agent()
        if not self.is_loaded(private_path):
            return False
        self.remove(private_path)
        return True


class SshAgent(KeyAgent):
    """KeyAgent backed by the ``ssh-add`` and ``ssh-keygen`` programs."""

    def __init__(self, ssh_add: str = 'ssh-add', ssh_keygen: str = 'ssh-keygen'):
        self.ssh_add = ssh_add
        self.ssh_keygen = ssh_keygen

    def _run(self, cmd: List[str], check: bool = True) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(cmd, capture_output=True, text=True, check=check)
        except FileNotFoundError as e:
            raise AgentError(f"{cmd[0]} not found") from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or '').strip()
            raise AgentError(f"{' '.join(cmd)} failed: {detail}") from e

    def is_available(self) -> bool:
        # ssh-add -l exits 1 for an empty agent and 2 when none is reachable
        try:
            result = self._run([self.ssh_add, '-l'], check=False)
        except AgentError:
            return False
        return result.returncode in (0, 1)

    def list_keys(self) -> List[str]:
        result = self._run([self.ssh_add, '-l'], check=False)
        if result.returncode == 1:
            return []
        if result.returncode != 0:
            raise AgentError(f"Could not list agent keys: {result.stderr.strip()}")
        return [line for line in result.stdout.splitlines() if line.strip()]

    def fingerprint(self, private_path: Path) -> str:
        result = self._run([self.ssh_keygen, '-l', '-f', str(private_path)])
        return parse_fingerprint(result.stdout)

    def add(self, private_path: Path) -> None:
        self._run([self.ssh_add, str(private_path)])

    def remove(self, private_path: Path) -> None:
        self._run([self.ssh_add, '-d', str(private_path)])

from pathlib import Path
from typing import List
import pytest
from deploykey.agent import AgentError, KeyAgent


class FakeAgent(KeyAgent):
    """In-memory agent keyed by file path; fingerprints are 'FP:<name>'."""

    def __init__(self, available: bool = True):
        self.available = available
        self.loaded: List[str] = []
        self.fail_on: set = set()

    def is_available(self) -> bool:
        return self.available

    def list_keys(self) -> List[str]:
        return [f'256 {fp} dev@example.com (ED25519)' for fp in self.loaded]

    def fingerprint(self, private_path: Path) -> str:
        return f'FP:{private_path.name}'

    def add(self, private_path: Path) -> None:
        if 'add' in self.fail_on:
            raise AgentError('agent refused key')
        self.loaded.append(self.fingerprint(private_path))

    def remove(self, private_path: Path) -> None:
        if 'remove' in self.fail_on:
            raise AgentError('agent refused removal')
        self.loaded.remove(self.fingerprint(private_path))


@pytest.fixture
def fake_agent():
    return FakeAgent()

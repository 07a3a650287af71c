"""Parse ~/.deploykey/config.yml settings."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

BOOL_FIELDS = {'agent', 'backup'}
STRING_FIELDS = {
    'host_name', 'alias_prefix', 'key_dir', 'ssh_config', 'generator',
    'default_comment', 'branch',
}
KNOWN_FIELDS = STRING_FIELDS | BOOL_FIELDS


def config_dir(home: Path) -> Path:
    """Directory holding config.yml and activity.log."""
    return home / '.deploykey'


def _expand(value: Optional[str], home: Path, default: Path) -> Path:
    if not value:
        return default
    if value == '~' or value.startswith('~/'):
        return home / value[2:]
    return Path(value)


@dataclass
class Settings:
    """Deploy key settings, with every path resolved against one home dir."""
    home: Path
    key_dir: Path
    ssh_config: Path
    host_name: str = 'github.com'
    alias_prefix: str = 'github'
    generator: str = 'native'
    agent: bool = False
    default_comment: str = 'no-email@example.com'
    branch: str = 'main'
    backup: bool = True

    @property
    def config_dir(self) -> Path:
        return config_dir(self.home)

    @property
    def activity_log(self) -> Path:
        return self.config_dir / 'activity.log'

    def expand(self, value: str) -> Path:
        """Resolve a user-typed path, expanding ``~`` against home."""
        return _expand(value, self.home, self.key_dir)

    @classmethod
    def defaults(cls, home: Path) -> 'Settings':
        """Settings used when no config.yml is present."""
        ssh_dir = home / '.ssh'
        return cls(home=home, key_dir=ssh_dir, ssh_config=ssh_dir / 'config')

    @classmethod
    def load(cls, home: Path) -> 'Settings':
        """Load config.yml from the config dir, falling back to defaults."""
        settings = cls.defaults(home)
        config_file = config_dir(home) / 'config.yml'
        if not config_file.exists():
            return settings

        try:
            with open(config_file, encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed {config_file}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"{config_file} must contain a mapping")

        unknown = set(data.keys()) - KNOWN_FIELDS
        if unknown:
            raise ValueError(f"Unknown config.yml field(s): {', '.join(sorted(unknown))}")

        for field in sorted(set(data) & STRING_FIELDS):
            if not isinstance(data[field], str):
                raise ValueError(f"config.yml field {field!r} must be a string")
        for field in sorted(set(data) & BOOL_FIELDS):
            if not isinstance(data[field], bool):
                raise ValueError(f"config.yml field {field!r} must be true or false")

        return cls(
            home=home,
            key_dir=_expand(data.get('key_dir'), home, settings.key_dir),
            ssh_config=_expand(data.get('ssh_config'), home, settings.ssh_config),
            host_name=data.get('host_name', settings.host_name),
            alias_prefix=data.get('alias_prefix', settings.alias_prefix),
            generator=data.get('generator', settings.generator),
            agent=data.get('agent', settings.agent),
            default_comment=data.get('default_comment', settings.default_comment),
            branch=data.get('branch', settings.branch),
            backup=data.get('backup', settings.backup),
        )

"""Host block management for the SSH client configuration file."""

import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import List

CONFIG_FILE_MODE = 0o600


class HostEntryExists(ValueError):
    """Raised when the config already has a block for an alias."""


def host_alias(prefix: str, repo: str) -> str:
    """Build the host alias for a repository, e.g. 'github-myrepo'."""
    return f'{prefix}-{repo}'


def render_host_block(alias: str, host_name: str, identity_file: Path) -> str:
    """Render a Host block as appended to the config file.

    The block starts with a blank line so it stays separated from whatever
    precedes it, and ends with a newline.
    """
    identity = str(identity_file)
    if any(char.isspace() for char in identity):
        identity = f'"{identity}"'
    return (
        f'\nHost {alias}\n'
        f'\tHostName {host_name}\n'
        f'\tUser git\n'
        f'\tIdentityFile {identity}\n'
        f'\tIdentitiesOnly yes\n'
    )


def _is_host_line(line: str) -> bool:
    return line.strip().startswith('Host ')


def _is_header_for(line: str, alias: str) -> bool:
    """True if line is a ``Host`` header whose patterns include alias."""
    if not _is_host_line(line):
        return False
    return alias in line.split()[1:]


def has_host_block(lines: List[str], alias: str) -> bool:
    """Check whether any line is a ``Host`` header for alias."""
    return any(_is_header_for(line, alias) for line in lines)


def remove_host_block(lines: List[str], alias: str) -> List[str]:
    """Drop the Host block for alias from a list of config lines.

    A block runs from its header up to, but not including, the next line
    starting with ``Host `` or the end of the file. All other lines are
    returned verbatim and in order.

    Args:
        lines: Config file content split on newlines
        alias: Host alias whose block should be removed

    Returns:
        New list of lines
    """
    kept = []
    in_block = False
    for line in lines:
        if _is_header_for(line, alias):
            in_block = True
            continue
        if in_block:
            if not _is_host_line(line):
                continue
            in_block = False
        kept.append(line)
    return kept


# Undecodable bytes and CRLF endings must survive a read/write cycle untouched
TEXT_OPTIONS = {'encoding': 'utf-8', 'errors': 'surrogateescape', 'newline': ''}


def _read_lines(config_path: Path) -> List[str]:
    with open(config_path, **TEXT_OPTIONS) as f:
        return f.read().split('\n')


def has_host_entry(config_path: Path, alias: str) -> bool:
    """Check whether the config file has a Host block for alias."""
    return config_path.exists() and has_host_block(_read_lines(config_path), alias)


def add_host_entry(config_path: Path, alias: str, host_name: str,
                   identity_file: Path) -> None:
    """Append a Host block for alias, creating the config file if needed.

    Raises:
        HostEntryExists: If a block for alias is already present
    """
    if has_host_entry(config_path, alias):
        raise HostEntryExists(f"SSH config entry for Host {alias} already exists")

    config_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, CONFIG_FILE_MODE)
    with os.fdopen(fd, 'a', **TEXT_OPTIONS) as f:
        f.write(render_host_block(alias, host_name, identity_file))


def remove_host_entry(config_path: Path, alias: str) -> bool:
    """Remove the Host block for alias from the config file.

    Returns:
        True if a block was removed, False if the file or block was absent
    """
    if not config_path.exists():
        return False

    lines = _read_lines(config_path)
    if not has_host_block(lines, alias):
        return False

    with open(config_path, 'w', **TEXT_OPTIONS) as f:
        f.write('\n'.join(remove_host_block(lines, alias)))
    return True


def backup_file(path: Path) -> Path:
    """Copy a file to a timestamped sibling before it gets edited.

    Args:
        path: File to back up

    Returns:
        Path of the backup, ``<path>.backup.<YYYYmmdd-HHMMSS-ffffff>``
    """
    timestamp = datetime.now().strftime('%Y%m%d-%H%M%S-%f')
    backup_path = path.with_name(f'{path.name}.backup.{timestamp}')
    shutil.copyfile(path, backup_path)
    return backup_path

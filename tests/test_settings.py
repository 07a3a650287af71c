import pytest
from pathlib import Path
from deploykey.settings import Settings


def test_settings_defaults_without_file(tmp_path):
    """Should fall back to ~/.ssh when no config.yml present."""
    settings = Settings.load(tmp_path)

    assert settings.key_dir == tmp_path / '.ssh'
    assert settings.ssh_config == tmp_path / '.ssh' / 'config'
    assert settings.host_name == 'github.com'
    assert settings.alias_prefix == 'github'
    assert settings.generator == 'native'
    assert settings.agent is False
    assert settings.backup is True
    assert settings.activity_log == tmp_path / '.deploykey' / 'activity.log'


def test_settings_loads_fields(tmp_path):
    """Should parse overrides from config.yml."""
    (tmp_path / '.deploykey').mkdir()
    (tmp_path / '.deploykey' / 'config.yml').write_text(
        'host_name: git.example.com\n'
        'alias_prefix: gitea\n'
        'generator: ssh-keygen\n'
        'agent: true\n'
        'branch: trunk\n'
        'backup: false\n'
    )
    settings = Settings.load(tmp_path)

    assert settings.host_name == 'git.example.com'
    assert settings.alias_prefix == 'gitea'
    assert settings.generator == 'ssh-keygen'
    assert settings.agent is True
    assert settings.branch == 'trunk'
    assert settings.backup is False


def test_settings_expands_home_paths(tmp_path):
    """~ in key_dir and ssh_config should resolve against the given home."""
    (tmp_path / '.deploykey').mkdir()
    (tmp_path / '.deploykey' / 'config.yml').write_text(
        'key_dir: ~/keys\nssh_config: /etc/ssh/ssh_config\n'
    )
    settings = Settings.load(tmp_path)

    assert settings.key_dir == tmp_path / 'keys'
    assert settings.ssh_config == Path('/etc/ssh/ssh_config')
    assert settings.expand('~/other') == tmp_path / 'other'
    assert settings.expand('') == tmp_path / 'keys'


def test_settings_rejects_unknown_fields(tmp_path):
    """Should raise ValueError for unrecognised fields."""
    (tmp_path / '.deploykey').mkdir()
    (tmp_path / '.deploykey' / 'config.yml').write_text('typo_field: oops\n')
    with pytest.raises(ValueError, match='Unknown'):
        Settings.load(tmp_path)


def test_settings_empty_file_uses_defaults(tmp_path):
    (tmp_path / '.deploykey').mkdir()
    (tmp_path / '.deploykey' / 'config.yml').write_text('')

    assert Settings.load(tmp_path) == Settings.defaults(tmp_path)


def test_settings_rejects_malformed_yaml(tmp_path):
    (tmp_path / '.deploykey').mkdir()
    (tmp_path / '.deploykey' / 'config.yml').write_text('host_name: [unclosed\n')
    with pytest.raises(ValueError, match='Malformed'):
        Settings.load(tmp_path)


@pytest.mark.parametrize('content,field', [
    ('key_dir: 5\n', 'key_dir'),
    ('host_name: [a, b]\n', 'host_name'),
    ('agent: "yes please"\n', 'agent'),
])
def test_settings_rejects_wrong_types(tmp_path, content, field):
    (tmp_path / '.deploykey').mkdir()
    (tmp_path / '.deploykey' / 'config.yml').write_text(content)
    with pytest.raises(ValueError, match=field):
        Settings.load(tmp_path)

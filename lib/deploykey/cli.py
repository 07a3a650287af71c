#!/usr/bin/env python3
"""deploykey CLI - GitHub deploy key generator."""

import sys
import click
from pathlib import Path
from typing import NoReturn, Optional, Tuple
from deploykey.activity import ActivityLog
from deploykey.agent import AgentError, KeyAgent, SshAgent, agent_socket
from deploykey.settings import Settings
from deploykey.ssh_config import (
    HostEntryExists, add_host_entry, backup_file, has_host_entry, host_alias,
    remove_host_entry,
)
from deploykey.ssh_keys import (
    GENERATORS, KeyGenerationError, KeyGenerator, key_paths, make_generator,
    validate_repo_name,
)


def _ask(prompt: str, default: str = '') -> str:
    """Read one trimmed line, returning default when the answer is empty."""
    answer = click.prompt(prompt, default=default, show_default=bool(default))
    return answer.strip()


def _fail(message: str, log: Optional[ActivityLog] = None) -> NoReturn:
    if log is not None:
        log.log_event(message, level='ERROR')
    click.secho(f"❌ {message}", fg='red')
    sys.exit(1)


def _warn(message: str, log: ActivityLog) -> None:
    log.log_event(message, level='WARN')
    click.secho(f"⚠️  {message}", fg='yellow')


def _load(generator_name: Optional[str], use_agent: bool
          ) -> Tuple[Settings, ActivityLog, KeyGenerator, Optional[KeyAgent]]:
    """Resolve home, settings, generator and agent for one run."""
    try:
        home = Path.home()
    except RuntimeError as e:
        _fail(f"Cannot determine home directory: {e}")

    try:
        settings = Settings.load(home)
        generator = make_generator(generator_name or settings.generator)
    except (ValueError, OSError) as e:
        _fail(f"Invalid settings: {e}")

    log = ActivityLog(settings.activity_log)
    agent = SshAgent() if (use_agent or settings.agent) else None
    return settings, log, generator, agent


def _backup_config(config_path: Path, log: ActivityLog) -> None:
    try:
        backup_path = backup_file(config_path)
    except OSError as e:
        _warn(f"Failed to backup SSH config: {e}", log)
    else:
        log.log_event(f'SSH config backed up to {backup_path}')
        click.echo(f"SSH config backed up to {backup_path}")


def _agent_hint(command: str) -> None:
    click.echo(f"  SSH_AUTH_SOCK={agent_socket() or '(not set)'}")
    click.echo(f"  Run manually: {command}")


def _agent_add(agent: KeyAgent, private_path: Path, log: ActivityLog) -> None:
    try:
        added = agent.ensure_added(private_path)
    except AgentError as e:
        _warn(f"Could not add key to ssh-agent: {e}", log)
        _agent_hint(f"ssh-add {private_path}")
        return
    if added:
        log.log_event(f'Key added to ssh-agent: {private_path}')
        click.echo("✓ Key added to ssh-agent")
    else:
        click.echo("✓ Key already loaded in ssh-agent")


def _agent_remove(agent: KeyAgent, private_path: Path, log: ActivityLog) -> None:
    try:
        removed = agent.ensure_removed(private_path)
    except AgentError as e:
        _warn(f"Could not remove key from ssh-agent: {e}", log)
        _agent_hint(f"ssh-add -d {private_path}")
        return
    if removed:
        log.log_event(f'Key removed from ssh-agent: {private_path}')
        click.echo("✓ Key removed from ssh-agent")
    else:
        click.echo("Key was not loaded in ssh-agent")


def _remove_file(path: Path, desc: str, log: ActivityLog) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        click.echo(f"{desc} file not found: {path}")
    except OSError as e:
        _warn(f"Error deleting {desc} file {path}: {e}", log)
    else:
        log.log_event(f'Deleted {desc} file: {path}')
        click.echo(f"{desc} file deleted: {path}")


def run_generate(settings: Settings, log: ActivityLog, generator: KeyGenerator,
                 agent: Optional[KeyAgent] = None) -> None:
    """Interactive generate flow: key pair, config entry, push commands."""
    repo = _ask("Repository-Name")
    try:
        validate_repo_name(repo)
    except ValueError as e:
        _fail(str(e), log)

    email = _ask("Email address for SSH comment (optional)")
    comment = email or settings.default_comment

    directory = settings.expand(_ask("Target dir for key files", default=str(settings.key_dir)))
    try:
        directory.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        _fail(f"Failed to create directory: {e}", log)

    private_path, public_path = key_paths(directory, repo)
    if private_path.exists() or public_path.exists():
        click.secho(f"Warning: Key files already exist: {private_path} and/or {public_path}",
                    fg='yellow')
        if _ask("Do you want to overwrite them? (y/N)").lower() != 'y':
            _fail("Operation aborted by user", log)

    log.log_event(f'Generating {generator.name} deploy key for {repo}')
    try:
        pair = generator.generate(private_path, comment)
    except KeyGenerationError as e:
        _fail(str(e), log)
    except OSError as e:
        _fail(f"Failed to write key files: {e}", log)
    log.log_event(f'Key pair written: {pair.private_path}, {pair.public_path}')

    click.echo(f"✓ Private key: {pair.private_path}")
    click.echo(f"✓ Public key:  {pair.public_path}")
    click.echo("\n" + "="*60)
    click.echo("📋 Add this public key as a deploy key:")
    click.echo("   Repository → Settings → Deploy keys")
    click.echo("="*60)
    click.echo(pair.public_key)
    click.echo("="*60 + "\n")

    owner = _ask("GitHub username or organization")
    if not owner:
        _fail("Invalid GitHub username or organization", log)

    if _ask("\nCreate matching SSH config entry? (Y/n)").lower() in ('', 'y'):
        alias = host_alias(settings.alias_prefix, repo)
        click.echo(f"Using SSH host alias: {alias}")
        config_path = settings.ssh_config
        try:
            if has_host_entry(config_path, alias):
                raise HostEntryExists(f"SSH config entry for Host {alias} already exists")
            if settings.backup and config_path.exists():
                _backup_config(config_path, log)
            add_host_entry(config_path, alias, settings.host_name, pair.private_path)
        except (HostEntryExists, OSError) as e:
            _warn(f"Failed to update SSH config: {e}", log)
        else:
            log.log_event(f'SSH config entry added: Host {alias}')
            click.echo("SSH config entry added.")
            click.echo("Use this Git remote URL to use the deploy key:")
            click.echo(f"git@{alias}:{owner}/{repo}.git")

    if agent is not None:
        _agent_add(agent, pair.private_path, log)

    click.echo("\n--- COPY BELOW TO PUSH USING YOUR DEPLOY KEY ---")
    click.echo("# Safe Mode (recommended)")
    click.echo(f'GIT_SSH_COMMAND="ssh -i {pair.private_path}" git push origin {settings.branch}')
    click.echo()
    click.echo("# Advanced Mode (for scripting, disables host key checking)")
    click.echo(f'GIT_SSH_COMMAND="ssh -i {pair.private_path} -o StrictHostKeyChecking=no" '
               f'git push origin {settings.branch}')


def run_revoke(settings: Settings, log: ActivityLog,
               agent: Optional[KeyAgent] = None) -> None:
    """Interactive revoke flow: agent, key files, config entry."""
    repo = _ask("Repository name to remove")
    try:
        validate_repo_name(repo)
    except ValueError as e:
        _fail(str(e), log)

    directory = settings.expand(_ask("Directory of the key", default=str(settings.key_dir)))
    private_path, public_path = key_paths(directory, repo)
    log.log_event(f'Revoking deploy key for {repo}')

    if agent is not None and private_path.exists():
        _agent_remove(agent, private_path, log)

    _remove_file(private_path, 'Private key', log)
    _remove_file(public_path, 'Public key', log)

    config_path = settings.ssh_config
    if not config_path.exists():
        return

    alias = host_alias(settings.alias_prefix, repo)
    try:
        if not has_host_entry(config_path, alias):
            click.echo(f"No SSH config entry for Host {alias}")
            return
        if settings.backup:
            _backup_config(config_path, log)
        remove_host_entry(config_path, alias)
    except OSError as e:
        _warn(f"Failed to remove SSH config entry: {e}", log)
        return
    log.log_event(f'SSH config entry removed: Host {alias}')
    click.echo("SSH config entry removed.")


generator_option = click.option(
    '--generator', '-g', type=click.Choice(sorted(GENERATORS)), default=None,
    help='Key generator (default from config.yml, else native)')
agent_option = click.option(
    '--agent', 'use_agent', is_flag=True,
    help='Also load/unload the key in the running ssh-agent')


@click.group(invoke_without_command=True)
@click.version_option()
@click.pass_context
def main(ctx):
    """Generate and revoke SSH deploy keys for a single repository."""
    if ctx.invoked_subcommand is not None:
        return

    click.echo("=== GitHub Deploy Key Generator ===")
    click.echo("1: Generate deploy key")
    click.echo("2: Remove Deploy Key")
    click.echo("3: Quit")
    choice = _ask("Please select an option")

    if choice == '1':
        settings, log, generator, agent = _load(None, False)
        run_generate(settings, log, generator, agent)
    elif choice == '2':
        settings, log, _, agent = _load(None, False)
        run_revoke(settings, log, agent)
    else:
        click.echo("Task completed")


@main.command()
@generator_option
@agent_option
def generate(generator, use_agent):
    """Generate a deploy key pair and SSH config entry."""
    settings, log, key_generator, agent = _load(generator, use_agent)
    run_generate(settings, log, key_generator, agent)


@main.command()
@agent_option
def revoke(use_agent):
    """Delete a deploy key pair and its SSH config entry."""
    settings, log, _, agent = _load(None, use_agent)
    run_revoke(settings, log, agent)


if __name__ == '__main__':
    main()

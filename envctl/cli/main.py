from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

import click
from pydantic import ValidationError

from envctl.core.config import EnvctlConfig
from envctl.core.errors import EnvctlError
from envctl.core.session import shell_level, terminal_context_tag
from envctl.manager import EnvManager
from envctl.shell.integration import ShellIntegration
from envctl.utils import parse_assignments


def _success(message: str) -> None:
    click.secho(f"✓ {message}", fg="green")


def _info(message: str) -> None:
    click.secho(f"ℹ {message}", fg="blue")


def _warn(message: str) -> None:
    click.secho(f"⚠ {message}", fg="yellow")


@contextmanager
def _errors() -> Iterator[None]:
    try:
        yield
    except EnvctlError as e:
        raise click.ClickException(str(e)) from e


def _manager(ctx: click.Context) -> EnvManager:
    if "manager" not in ctx.obj:
        ctx.obj["manager"] = EnvManager(config=ctx.obj["config"])
    return ctx.obj["manager"]


@click.group()
@click.version_option(package_name="envctl")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """
    Environment variable profile manager.

    Profiles are applied by evaluating the printed script:

    \b
        eval "$(envctl load dev)"
    """
    try:
        config = EnvctlConfig.from_env()
    except ValidationError as e:
        raise click.ClickException(f"Invalid envctl configuration: {e}") from e

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.argument("profile")
@click.pass_context
def create(ctx: click.Context, profile: str) -> None:
    """Create a new profile."""
    with _errors():
        _manager(ctx).create_profile(profile)
    _success(f"Created profile '{profile}'")


@cli.command()
@click.argument("profile")
@click.argument("assignments", nargs=-1)
@click.option("-f", "--file", "file_path", type=str, help="Load variables from a .env file")
@click.pass_context
def add(
    ctx: click.Context,
    profile: str,
    assignments: tuple[str, ...],
    file_path: Optional[str],
) -> None:
    """
    Add or update variables in a profile.

    \b
        envctl add dev DATABASE_URL=postgres://localhost/dev DEBUG=true
        envctl add dev --file .env
    """
    manager = _manager(ctx)

    with _errors():
        if file_path:
            count = manager.add_variables_from_file(profile, file_path)
            _success(f"Added {count} variables from '{file_path}' to profile '{profile}'")
            return

        if not assignments:
            raise click.ClickException("Either provide KEY=VALUE pairs or use --file option")

        variables, duplicates = parse_assignments(assignments)
        keys = manager.add_variables(profile, variables)

    if len(keys) == 1:
        _success(f"Added {keys[0]} to profile '{profile}'")
    else:
        _success(f"Added {len(keys)} variables ({', '.join(keys)}) to profile '{profile}'")

    if duplicates:
        _warn(f"Duplicate keys detected: {', '.join(duplicates)} (used last value for each)")


@cli.command()
@click.argument("profile")
@click.argument("key")
@click.pass_context
def remove(ctx: click.Context, profile: str, key: str) -> None:
    """Remove a variable from a profile."""
    with _errors():
        _manager(ctx).remove_variable(profile, key)
    _success(f"Removed {key} from profile '{profile}'")


@cli.command()
@click.argument("profile")
@click.pass_context
def load(ctx: click.Context, profile: str) -> None:
    """Print the script that loads PROFILE (reloads if already loaded)."""
    with _errors():
        script = _manager(ctx).load(profile)
    click.echo(script)


@cli.command()
@click.pass_context
def unload(ctx: click.Context) -> None:
    """Print the script that unloads the current profile."""
    with _errors():
        result = _manager(ctx).unload()
    click.echo(result.script)


@cli.command()
@click.argument("profile")
@click.pass_context
def switch(ctx: click.Context, profile: str) -> None:
    """Print the script that switches to PROFILE."""
    with _errors():
        result = _manager(ctx).switch(profile)
    click.echo(result.script)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the profile loaded in this and other sessions."""
    with _errors():
        report = _manager(ctx).status()

    current = report.current_session
    if current.profile_name:
        _info(
            f"Current session: {click.style(current.profile_name, fg='cyan')} "
            f"({current.variable_count} variables)"
        )
    else:
        _info("Current session: No profile loaded")

    if report.other_sessions:
        click.echo()
        _info("Other active sessions:")
        for entry in report.other_sessions:
            name = click.style(entry.profile_name, fg="cyan") if entry.profile_name else "no profile"
            click.echo(f"  Session {click.style(entry.session_id, fg='yellow')}: {name}")

    if report.total_sessions > 1:
        click.echo()
        _info(f"Total active sessions: {report.total_sessions}")


@cli.command(name="list")
@click.argument("profile", required=False)
@click.option("-s", "--sessions", is_flag=True, help="Show which sessions have each profile loaded")
@click.pass_context
def list_command(ctx: click.Context, profile: Optional[str], sessions: bool) -> None:
    """List profiles, or the variables in PROFILE."""
    manager = _manager(ctx)

    if profile:
        with _errors():
            data = manager.get_profile(profile)
        if data is None:
            raise click.ClickException(f"Profile '{profile}' does not exist")

        click.secho(f"Variables in profile '{profile}':", fg="cyan")
        if not data.variables:
            _info("No variables defined")
        for key, value in data.variables.items():
            click.echo(f"  {click.style(key, fg='yellow')}={value}")
        return

    with _errors():
        summaries = manager.list_profiles()

    if not summaries:
        _info("No profiles found")
        return

    click.secho("Available profiles:", fg="cyan")
    for summary in summaries:
        state = ""
        if sessions and summary.loaded_in_sessions:
            listed = ", ".join(summary.loaded_in_sessions)
            state = click.style(f" (loaded in sessions: {listed})", fg="green")
        elif summary.is_loaded:
            state = click.style(" (loaded)", fg="green")
        click.echo(
            f"  {click.style(summary.name, fg='yellow')} "
            f"({summary.variable_count} variables){state}"
        )


@cli.command()
@click.argument("profile")
@click.pass_context
def delete(ctx: click.Context, profile: str) -> None:
    """Delete a profile."""
    with _errors():
        _manager(ctx).delete_profile(profile)
    _success(f"Deleted profile '{profile}'")


@cli.command()
@click.argument("profile")
@click.pass_context
def export(ctx: click.Context, profile: str) -> None:
    """Print PROFILE as KEY=VALUE lines."""
    with _errors():
        exported = _manager(ctx).export_profile(profile)
    click.echo(exported)


@cli.command()
def setup() -> None:
    """Install shell integration functions."""
    result = ShellIntegration().setup()

    _success("Shell integration installed successfully!")
    _info(f"Integration script: {result.integration_file}")
    _info(f"Added to: {result.rc_file}")
    _info("")
    _info("Available functions:")
    _info("  envctl-load <profile>   (or: ecl <profile>)")
    _info("  envctl-unload           (or: ecu)")
    _info("  envctl-switch <profile> (or: ecsw <profile>)")
    _info("  envctl status           (or: ecs)")
    _info("  envctl list             (or: ecls)")
    _info("")
    _warn(f"Please restart your shell or run: source {result.rc_file}")


@cli.command()
@click.option("--all", "remove_all", is_flag=True, help="Also remove all profiles and envctl data")
@click.option("--force", is_flag=True, help="Skip confirmation (for non-interactive use)")
@click.pass_context
def unsetup(ctx: click.Context, remove_all: bool, force: bool) -> None:
    """Remove shell integration and optionally all envctl data."""
    integration = ShellIntegration()

    if not remove_all:
        result = integration.unsetup()
        if not result.removed:
            _info("No shell integration found to remove")
            return

        _success("Shell integration removed successfully!")
        _info("Removed:")
        for item in result.removed:
            _info(f"  - {item}")
        _warn(f"Please restart your shell or run: source {result.rc_file}")
        _info("Your profiles and data are still available.")
        _info('Use "envctl unsetup --all" to remove everything.')
        return

    click.secho("⚠ WARNING: This will remove ALL envctl data including:", fg="yellow")
    click.echo("  - All profiles and their environment variables")
    click.echo("  - Shell integration functions")
    click.echo("  - Configuration files")
    click.echo()

    if not force:
        if not sys.stdin.isatty():
            raise click.ClickException(
                "Cannot proceed: this is a destructive operation. "
                "In non-interactive environments use --force, e.g. envctl unsetup --all --force"
            )
        answer = click.prompt('Are you sure you want to proceed? Type "yes" to confirm', default="")
        if answer.strip().lower() != "yes":
            _info("Operation cancelled.")
            return

    removed = integration.unsetup().removed
    removed += _manager(ctx).cleanup_all_data()

    if not removed:
        _info("No envctl data found to remove")
        return

    _success("Complete cleanup completed!")
    _info("Removed:")
    for item in removed:
        _info(f"  - {item}")


@cli.command()
@click.pass_context
def session(ctx: click.Context) -> None:
    """Show how this shell session is identified."""
    manager = _manager(ctx)

    click.echo(f"Session ID: {manager.session_id}")
    click.echo(f"Parent PID: {os.getppid()}")
    click.echo(f"SHLVL: {shell_level(os.environ)}")
    click.echo(f"Terminal tag: {terminal_context_tag(os.environ) or '(none)'}")
    for name in ("TERM_PROGRAM", "SSH_TTY", "TERM"):
        click.echo(f"{name}: {os.environ.get(name, '')}")
    click.echo(f"Backup file: {manager.backups.path}")
    click.echo(f"Backup exists: {manager.backups.path.is_file()}")
    with _errors():
        click.echo(f"Loaded profile: {manager.currently_loaded() or '(none)'}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

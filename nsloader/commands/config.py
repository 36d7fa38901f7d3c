"""Settings commands for the nsloader CLI."""

from __future__ import annotations

import click
from pydantic import ValidationError
from rich.table import Table

from ..console import console
from ..paths import create_settings_manager
from ..settings import ENV_OVERRIDES
from ..settings import LoaderSettings
from ..utils.error_format import escape_markup

_ENV_BY_SETTING = {setting: env_key for env_key, setting in ENV_OVERRIDES.items()}


@click.group(invoke_without_command=True)
@click.pass_context
def config(ctx: click.Context):
    """Show and change loader settings."""
    if ctx.invoked_subcommand is None:
        click.echo("\n" + ctx.get_help())
        ctx.exit()


@config.command(name="show")
@click.pass_obj
def config_show(settings: LoaderSettings):
    """Show effective loader settings (including command-line overrides)."""
    table = Table(title="Loader Settings", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="green")
    table.add_column("Value", style="yellow")
    table.add_column("Env Override", style="dim")

    for name, value in settings.model_dump().items():
        table.add_row(name, str(value), _ENV_BY_SETTING.get(name, ""))

    console.print(table)


@config.command(name="set")
@click.argument("key", type=click.Choice(sorted(LoaderSettings.model_fields)))
@click.argument("value")
@click.option("--local", "scope_flag", flag_value="local", help="Set locally (just you)")
@click.option("--project", "scope_flag", flag_value="project", default=True, help="Set for project (team)")
@click.option("--global", "scope_flag", flag_value="user", help="Set globally (all projects)")
def config_set(key: str, value: str, scope_flag: str):
    """Set loader setting KEY to VALUE."""
    try:
        parsed = LoaderSettings.model_validate({key: value})
    except ValidationError as e:
        console.print(f"[red]Invalid value for {key}:[/red] {escape_markup(e.errors()[0]['msg'])}")
        raise SystemExit(1) from e

    stored = getattr(parsed, key)
    if not isinstance(stored, bool | None):
        stored = str(stored)

    target = create_settings_manager().set_loader_value(key, stored, scope_flag)
    console.print(f"[green]✓ Set loader.{key} = {stored}[/green] [dim]({target})[/dim]")

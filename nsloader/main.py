"""nsloader CLI - inspect and drive namespace dependency loading."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
import yaml
from pydantic import ValidationError
from rich.panel import Panel
from rich.table import Table

from .commands.config import config as config_group
from .console import console
from .errors import LoaderError
from .loader import LoaderContext
from .logging_setup import init_console_logging
from .logging_setup import init_json_logging
from .manifest import dump_manifest
from .manifest import scan_sources
from .paths import create_loader_context
from .paths import create_settings_manager
from .resolver import Cycle
from .settings import LoaderSettings
from .utils.error_format import escape_markup
from .utils.error_format import format_error_message

logger = logging.getLogger(__name__)


def _fail(error: BaseException) -> NoReturn:
    """Render an error panel and exit with status 1."""
    console.print(
        Panel(escape_markup(format_error_message(error)), title="Error", border_style="red", title_align="left")
    )
    sys.exit(1)


def _create_context(settings: LoaderSettings) -> LoaderContext:
    try:
        return create_loader_context(settings)
    except LoaderError as e:
        _fail(e)


def _print_cycles(cycles: list[Cycle]) -> None:
    if not cycles:
        return
    console.print()
    console.print(f"[yellow]⚠ {len(cycles)} dependency cycle(s) detected:[/yellow]")
    for cycle in cycles:
        console.print(
            f"  • {escape_markup(cycle.module_path)} requires [cyan]{cycle.namespace}[/cyan] "
            f"from {escape_markup(cycle.target)} [dim](loaded first)[/dim]"
        )


@click.group(invoke_without_command=True)
@click.version_option(package_name="nsloader")
@click.option(
    "--base-path",
    "-b",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory module paths are relative to",
)
@click.option("--manifest", "-m", default=None, help="Manifest file, relative to the base path")
@click.option("--no-deps", is_flag=True, default=False, help="Do not load the manifest automatically")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx: click.Context, base_path: Path | None, manifest: str | None, no_deps: bool, verbose: bool):
    """nsloader - namespace registry and dependency loader."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()

    init_console_logging(verbose)

    try:
        settings = create_settings_manager().get_loader_settings()
    except ValidationError as e:
        _fail(e)

    updates: dict = {}
    if base_path is not None:
        updates["base_path"] = base_path
    if manifest is not None:
        updates["manifest"] = manifest
    if no_deps:
        updates["no_deps"] = True
    settings = settings.model_copy(update=updates)

    if settings.log_path:
        init_json_logging(settings.log_path, settings.log_level)

    ctx.obj = settings


@cli.command()
@click.argument("namespaces", nargs=-1, required=True)
@click.pass_obj
def order(settings: LoaderSettings, namespaces: tuple[str, ...]):
    """Show the injection order for NAMESPACES without loading anything."""
    context = _create_context(settings)
    try:
        plan = context.plan(*namespaces)
    except LoaderError as e:
        _fail(e)

    if not plan:
        console.print("[dim]Nothing to load: all namespaces already provided[/dim]")
        return

    table = Table(title="Injection Order", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Module", style="green", no_wrap=True)
    table.add_column("Provides", style="magenta")

    for position, module_path in enumerate(plan.order, start=1):
        table.add_row(str(position), escape_markup(module_path), ", ".join(context.index.provides_of(module_path)))

    console.print(table)
    _print_cycles(plan.cycles)


@cli.command()
@click.argument("namespaces", nargs=-1, required=True)
@click.pass_obj
def load(settings: LoaderSettings, namespaces: tuple[str, ...]):
    """Load NAMESPACES by executing their module scripts in order."""
    context = _create_context(settings)
    try:
        injected = context.load(*namespaces)
    except LoaderError as e:
        if context.injected_modules():
            console.print(f"[dim]Injected before failure: {escape_markup(', '.join(context.injected_modules()))}[/dim]")
        _fail(e)

    if not injected:
        console.print("[dim]Nothing to load: all namespaces already provided[/dim]")
        return

    for module_path in injected:
        console.print(f"[green]✓[/green] {escape_markup(module_path)}")
    console.print(f"\n[bold]Loaded {len(injected)} module(s)[/bold]")


@cli.command()
@click.argument("namespace")
@click.pass_obj
def owner(settings: LoaderSettings, namespace: str):
    """Show which module provides NAMESPACE."""
    context = _create_context(settings)
    module_path = context.owner_of(namespace)
    if module_path is None:
        console.print(f"[yellow]No module provides[/yellow] [cyan]{namespace}[/cyan]")
        sys.exit(1)
    console.print(escape_markup(module_path))


@cli.command()
@click.pass_obj
def check(settings: LoaderSettings):
    """Check the manifest for unresolved requirements and cycles."""
    context = _create_context(settings)
    modules = context.index.modules()
    console.print(f"[bold]Modules:[/bold] {len(modules)}")

    missing = context.resolver.unresolved()
    if missing:
        table = Table(title="Unresolved Requirements", show_header=True, header_style="bold red")
        table.add_column("Module", style="green", no_wrap=True)
        table.add_column("Requires", style="cyan")
        for module_path, namespace in missing:
            table.add_row(escape_markup(module_path), namespace)
        console.print(table)
        sys.exit(1)

    plan = context.resolver.plan(modules)
    _print_cycles(plan.cycles)
    console.print("[green]✓ All requirements resolve[/green]")


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the manifest here")
def scan(root: Path, output: Path | None):
    """Generate a manifest from the provide/require calls of scripts under ROOT."""
    try:
        manifest = scan_sources(root)
    except LoaderError as e:
        _fail(e)

    if output is None:
        click.echo(yaml.dump(manifest.model_dump(), default_flow_style=False, sort_keys=False), nl=False)
        return
    dump_manifest(manifest, output)
    console.print(f"[green]✓ Wrote {len(manifest.modules)} module(s) to {escape_markup(output)}[/green]")


cli.add_command(config_group)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()

"""
CLI commands for plugins — list descriptors and exercise the lifecycle.

Thin wrappers over ``hostforge.core.use_cases.plugins``.

Usage::

    hostforge plugins list
    hostforge plugins load dev-tools --with-deps
    hostforge plugins unload core-packages --force
"""

from __future__ import annotations

import json
import sys

import click

_STATE_STYLE = {
    "Loaded": ("●", "green"),
    "Registered": ("○", "white"),
    "Disabled": ("⊘", "yellow"),
}


def _print_plugins(records) -> None:
    if not records:
        click.echo("   No plugins registered (set plugins.descriptor_dir in hostforge.yml).")
        return
    for record in records:
        marker, color = _STATE_STYLE.get(record.state.value, ("?", "white"))
        deps = f"  ← {', '.join(record.dependencies)}" if record.dependencies else ""
        click.secho(f"   {marker} {record.name}", fg=color, nl=False)
        click.echo(f" {record.descriptor.version} [{record.category.value}]{deps}")


def _finish(result, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    click.echo()
    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
    elif result.changed:
        click.secho(f"✅ {result.action}: {', '.join(result.changed)}", fg="green")
    elif result.target:
        click.echo(f"   {result.target}: no change")
    click.echo()
    _print_plugins(result.plugins)
    click.echo()
    if result.error:
        sys.exit(1)


@click.group()
def plugins() -> None:
    """Plugins — registry and dependency-gated lifecycle."""


@plugins.command("list")
@click.option("--category", type=click.Choice(["Configuration", "Recommendation", "Utility"]),
              default=None, help="Only this category.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, category: str | None, as_json: bool) -> None:
    """List registered plugins and their state."""
    from hostforge.core.models.plugin import PluginCategory
    from hostforge.core.use_cases.plugins import list_plugins

    result = list_plugins(
        ctx.obj.get("settings_path"),
        category=PluginCategory(category) if category else None,
    )
    _finish(result, as_json)


@plugins.command()
@click.argument("name")
@click.option("--with-deps", is_flag=True, help="Load the dependency chain first.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def load(ctx: click.Context, name: str, with_deps: bool, as_json: bool) -> None:
    """Load a plugin (fails while a dependency is not loaded)."""
    from hostforge.core.use_cases.plugins import load_plugin

    result = load_plugin(name, ctx.obj.get("settings_path"), with_dependencies=with_deps)
    _finish(result, as_json)


@plugins.command()
@click.argument("name")
@click.option("--force", is_flag=True, help="Unload loaded dependents first.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def unload(ctx: click.Context, name: str, force: bool, as_json: bool) -> None:
    """Unload a plugin (fails while loaded plugins depend on it)."""
    from hostforge.core.use_cases.plugins import unload_plugin

    result = unload_plugin(name, ctx.obj.get("settings_path"), force=force)
    _finish(result, as_json)

"""
hostforge — CLI entrypoint.

Usage:
    hostforge --help
    hostforge run base.json --mock --profile profile.yml
    hostforge config check base.json
    hostforge recommend --profile profile.yml --max 5
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from hostforge import __version__
from hostforge.core.observability.logging_config import setup_logging

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}
_PRIORITY_COLORS = {"High": "red", "Medium": "yellow", "Low": "white"}


@click.group()
@click.version_option(version=__version__, prog_name="hostforge")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--settings",
    "-s",
    "settings_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to hostforge.yml (default: search upward from cwd).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    settings_path: str | None,
) -> None:
    """hostforge — apply declarative host configuration with rollback."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["settings_path"] = Path(settings_path) if settings_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = None  # HOSTFORGE_LOG_LEVEL or WARNING

    setup_logging(level=level, quiet_third_party=not debug)


# ── run ─────────────────────────────────────────────────────────


@cli.command()
@click.argument("config_file", type=click.Path(exists=False, dir_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, default=None, help="Probe every item but apply nothing.")
@click.option("--mock", is_flag=True, help="Use the in-memory backend (no real changes).")
@click.option("--backend", "backend_spec", default=None, help="Backend factory as module:callable.")
@click.option("--profile", "profile_path", type=click.Path(dir_okay=False), default=None,
              help="Read the system profile from a JSON/YAML file.")
@click.option("--recommend/--no-recommend", default=None, help="Generate recommendations.")
@click.option("--apply-recommendations", is_flag=True, default=None,
              help="Also apply the selected recommendations.")
@click.option("--rollback/--no-rollback", default=None, help="Roll back on critical failure.")
@click.option("--no-backup", is_flag=True, help="Skip the backup phase.")
@click.option("--parallel", is_flag=True, default=None, help="Apply items of a phase concurrently.")
@click.pass_context
def run(
    ctx: click.Context,
    config_file: str,
    as_json: bool,
    dry_run: bool | None,
    mock: bool,
    backend_spec: str | None,
    profile_path: str | None,
    recommend: bool | None,
    apply_recommendations: bool | None,
    rollback: bool | None,
    no_backup: bool,
    parallel: bool | None,
) -> None:
    """Apply a configuration document.

    Examples:

        hostforge run base.json --mock --profile profile.yml

        hostforge run base.json --mock --dry-run --apply-recommendations

        hostforge run base.json --backend mybackends:create --rollback
    """
    from hostforge.core.use_cases.run import run_configuration

    result = run_configuration(
        Path(config_file),
        settings_path=ctx.obj.get("settings_path"),
        profile_path=Path(profile_path) if profile_path else None,
        dry_run=dry_run or None,
        mock=mock,
        recommend=recommend,
        apply_recommendations=apply_recommendations or None,
        rollback=rollback,
        parallel=parallel or None,
        backup=False if no_backup else None,
        backend_spec=backend_spec,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    run_result = result.run
    assert run_result is not None
    summary = run_result.summary
    quiet = ctx.obj.get("quiet", False)

    mode_label = "[dry-run] " if summary.dry_run else "[mock] " if mock else ""
    click.secho(f"\n⚡ {mode_label}{result.configuration.name} — {run_result.run_id}", fg="cyan", bold=True)
    if not quiet and summary.profile_generated:
        click.echo(
            f"   Profile: {summary.hardware_category} / {summary.user_category}"
            f"  scores {summary.scores}"
        )
    click.echo()

    for title, results in (
        ("Base configuration", run_result.base_results),
        ("Recommendations", run_result.recommendation_results),
    ):
        if not results:
            continue
        click.secho(f"   {title}", fg="white", bold=True)
        for r in results:
            timing = f" ({r.duration_ms}ms)" if r.duration_ms else ""
            if r.failed:
                click.secho(f"   ✗ {r.item_type}:{r.item_name}", fg="red", nl=False)
                click.echo(f"{timing}")
                click.echo(f"     │ {r.message}")
            elif r.skipped:
                click.secho(f"   ⊘ {r.item_type}:{r.item_name} ", fg="yellow", nl=False)
                click.echo(f"({r.message})")
            elif r.status == "not_needed":
                click.secho(f"   = {r.item_type}:{r.item_name}", fg="white", nl=False)
                click.echo(f"{timing}")
            else:
                click.secho(f"   ✓ {r.item_type}:{r.item_name}", fg="green", nl=False)
                click.echo(f"{timing}")
        click.echo()

    if run_result.recommendations and not run_result.recommendation_results and not quiet:
        click.secho(f"   {len(run_result.recommendations)} recommendation(s) available:", fg="white", bold=True)
        for rec in run_result.recommendations:
            click.echo(f"     • [{rec.priority}] {rec.title} ({rec.confidence:.2f})")
        click.echo()

    if run_result.backup_path:
        click.secho(f"   💾 Backup: {run_result.backup_path}", fg="cyan")
    if run_result.rolled_back:
        click.secho("   ↩ Rolled back to backup", fg="yellow")
    if summary.restart_required:
        click.secho("   ⚠️  Restart required", fg="yellow")

    click.secho(
        f"   Result: {run_result.message}",
        fg=_STATUS_COLORS.get(run_result.status, "white"),
        bold=True,
    )
    for line in run_result.post_install_instructions:
        click.echo(f"     → {line}")
    click.echo()

    if not run_result.success:
        sys.exit(1)


# ── config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Configuration document commands."""


@config.command("check")
@click.argument("config_file", type=click.Path(exists=False, dir_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def config_check(config_file: str, as_json: bool) -> None:
    """Validate a configuration document."""
    from hostforge.core.use_cases.config_check import check_configuration

    result = check_configuration(Path(config_file))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.configuration is not None
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Name: {result.configuration.name} v{result.configuration.version}")
        click.echo(
            f"   Items: {len(result.configuration.items)} "
            f"({len(result.configuration.enabled_items)} enabled)"
        )
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    click.echo()
    if not result.valid:
        sys.exit(1)


# ── recommend ───────────────────────────────────────────────────


@cli.command()
@click.option("--profile", "profile_path", type=click.Path(dir_okay=False), default=None,
              help="Profile JSON/YAML (default: probe this host).")
@click.option("--max", "max_count", type=int, default=None, help="Maximum recommendations.")
@click.option("--priority", "priorities", multiple=True,
              type=click.Choice(["High", "Medium", "Low"]), help="Keep only these priorities.")
@click.option("--category", "categories", multiple=True, help="Keep only these categories.")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Write the selection as a configuration document.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def recommend(
    ctx: click.Context,
    profile_path: str | None,
    max_count: int | None,
    priorities: tuple[str, ...],
    categories: tuple[str, ...],
    output: str | None,
    as_json: bool,
) -> None:
    """Suggest configuration for a system profile."""
    from hostforge.core.models.recommendation import Priority, RecommendationCategory
    from hostforge.core.use_cases.recommend import recommend as run_recommend

    try:
        wanted_categories = [RecommendationCategory(c) for c in categories]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--category") from e

    result = run_recommend(
        profile_path=Path(profile_path) if profile_path else None,
        settings_path=ctx.obj.get("settings_path"),
        max_count=max_count,
        priorities=[Priority(p) for p in priorities],
        categories=wanted_categories,
        output=Path(output) if output else None,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    profile = result.profile
    assert profile is not None
    click.secho(
        f"\n💡 {len(result.recommendations)} of {result.generated} recommendations"
        f" — {profile.hardware_category} / {profile.user_category}",
        fg="cyan",
        bold=True,
    )
    if profile.gaps:
        click.echo(f"   Gaps: {', '.join(profile.gaps)}")
    click.echo()

    for rec in result.recommendations:
        click.secho(f"   [{rec.priority}]", fg=_PRIORITY_COLORS.get(str(rec.priority), "white"), nl=False)
        click.echo(f" {rec.title}  ({rec.category}, {rec.confidence:.2f})")
        if ctx.obj.get("verbose") and rec.description:
            click.echo(f"     │ {rec.description}")

    if result.output_path:
        click.echo()
        click.secho(f"   💾 Written to {result.output_path}", fg="cyan")
    click.echo()


# ── history ─────────────────────────────────────────────────────


@cli.command()
@click.option("--limit", "-n", type=int, default=20, help="Number of runs to show.")
@click.option("--reports", is_flag=True, help="List saved run reports instead of the ledger.")
@click.option("--backups", is_flag=True, help="List backup snapshots instead of the ledger.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, limit: int, reports: bool, backups: bool, as_json: bool) -> None:
    """Show recent runs from the audit ledger."""
    from hostforge.core.use_cases.history import get_history

    result = get_history(ctx.obj.get("settings_path"), limit=limit, reports=reports, backups=backups)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if result.reports is not None or result.backups is not None:
        _print_snapshots(result)
        return

    if not result.entries:
        click.echo("No runs recorded yet.")
        return

    click.echo()
    for entry in reversed(result.entries):
        flags = " [dry-run]" if entry.dry_run else ""
        flags += " [rolled back]" if entry.rolled_back else ""
        click.secho(f"   {entry.status:<8}", fg=_STATUS_COLORS.get(entry.status, "white"), nl=False)
        click.echo(
            f" {entry.run_id}  {entry.configuration or '-'}  "
            f"{entry.items_succeeded}/{entry.items_total} ok{flags}"
        )
        for err in entry.errors[:3] if ctx.obj.get("verbose") else []:
            click.echo(f"            │ {err}")
    click.echo()


def _print_snapshots(result) -> None:
    click.echo()
    if result.reports is not None:
        click.secho("   Run reports", fg="white", bold=True)
        if not result.reports:
            click.echo("   No run reports saved yet.")
        for report in result.reports:
            click.secho(f"   {report.status:<8}", fg=_STATUS_COLORS.get(report.status, "white"), nl=False)
            click.echo(f" {report.run_id}  {report.message}")
        click.echo()
    if result.backups is not None:
        click.secho("   Backups", fg="white", bold=True)
        if not result.backups:
            click.echo("   No backups taken yet.")
        for handle in result.backups:
            click.echo(f"   💾 {handle.path}  ({handle.metadata.get('packages', 0)} packages)")
        click.echo()


# ── Sub-groups ──────────────────────────────────────────────────

from hostforge.ui.cli.plugins import plugins  # noqa: E402

cli.add_command(plugins)


if __name__ == "__main__":
    cli()

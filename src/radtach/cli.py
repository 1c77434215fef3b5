#!/usr/bin/env python3
"""
RadTach CLI

Study timer dashboard plus settings management.

Usage:
    radtach run                      # live dashboard
    radtach run --auto-start         # start timing as soon as a modality is picked
    radtach config show
    radtach config set-par CT 300
    radtach config set-rvu "+1 Section" 0.5 --kind CT
    radtach config export settings.csv
    radtach config import settings.csv
    radtach config reset
    radtach prefs set stealth on
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from .config import get_config, home_option, verbose_option
from .configuration import Complication, Configuration, Modality
from .engine import Notice, SessionEngine
from .exchange import read_csv, write_csv
from .logbuffer import configure_logging
from .storage import PREFERENCE_NAMES, SettingsStore

console = Console()

# Friendly names accepted by `prefs set`.
PREFERENCE_ALIASES = {
    "auto": "auto_start",
    "auto-start": "auto_start",
    "auto_start": "auto_start",
    "stealth": "accessible_display",
    "accessible": "accessible_display",
    "accessible_display": "accessible_display",
}

ON_OFF = {"on": True, "off": False}


def _load_configuration(store: SettingsStore) -> Configuration:
    return store.load_configuration() or Configuration.defaults()


@click.group()
@home_option
@verbose_option
@click.pass_context
def cli(ctx, home, verbose):
    """RadTach - study timer, interstitial tracking and RVU metrics."""
    config = get_config(home, verbose)
    configure_logging(config.log_level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["store"] = SettingsStore.in_directory(config.home)


@cli.command()
@click.pass_context
def info(ctx):
    """Show data directory, settings files and preferences."""
    config = ctx.obj["config"]
    store = ctx.obj["store"]

    click.echo("RadTach")
    click.echo("=" * 50)
    click.echo(f"Data directory: {config.home}")
    click.echo(f"Log level: {config.log_level}")
    click.echo()
    click.echo("Settings files:")
    for path in (store.par_times_path, store.rvu_values_path, store.preferences_path):
        marker = "x" if path.exists() else " "
        click.echo(f"  [{marker}] {path.name}")
    click.echo()
    click.echo("Preferences:")
    for name in PREFERENCE_NAMES:
        value = store.load_preference(name)
        click.echo(f"  {name}: {'on' if value else 'off'}")


@cli.command()
@click.option("--auto-start/--no-auto-start", default=None, help="Start timing when a modality is selected")
@click.option("--stealth/--no-stealth", default=None, help="Accessible display without colour cues")
@click.pass_context
def run(ctx, auto_start, stealth):
    """Run the live dashboard."""
    from .tui import DashboardController, run_dashboard

    store = ctx.obj["store"]
    if auto_start is None:
        auto_start = bool(store.load_preference("auto_start"))
    if stealth is None:
        stealth = bool(store.load_preference("accessible_display"))

    engine = SessionEngine(config=_load_configuration(store), auto_start=auto_start)
    controller = DashboardController(engine, store=store, accessible=stealth)
    run_dashboard(controller, console=console)

    metrics = engine.metrics
    console.print(
        f"[cyan]Session ended[/cyan]: {metrics.completed_count} studies, "
        f"{metrics.total_unit_value:.1f} RVU"
    )


# ---- config ----


@cli.group(name="config")
def config_commands():
    """Par time and RVU settings."""
    pass


@config_commands.command()
@click.pass_context
def show(ctx):
    """Show par times and RVU values."""
    config = _load_configuration(ctx.obj["store"])

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Key")
    table.add_column("Par", justify="right")
    table.add_column("RVU", justify="right")

    keys = list(config.target_seconds)
    keys += [k for k in config.unit_values if k not in config.target_seconds]
    for key in keys:
        par = config.target_seconds.get(key)
        rvu = config.unit_values.get(key)
        if isinstance(rvu, dict):
            rvu_text = ", ".join(f"{kind} {value:g}" for kind, value in rvu.items())
        elif rvu is None:
            rvu_text = ""
        else:
            rvu_text = f"{rvu:g}"
        table.add_row(key, "" if par is None else f"{par}s", rvu_text)

    console.print(table)


def _check_key(key: str) -> None:
    known = {m.value for m in Modality} | {c.value for c in Complication}
    if key not in known:
        click.echo(f"Note: '{key}' is not a known modality or complication", err=True)


@config_commands.command(name="set-par")
@click.argument("key")
@click.argument("seconds", type=click.IntRange(min=0))
@click.pass_context
def set_par(ctx, key, seconds):
    """Set the par time for a modality or complication, in seconds."""
    store = ctx.obj["store"]
    _check_key(key)
    config = _load_configuration(store)
    config.set_target(key, seconds)
    store.save_configuration(config)
    click.echo(f"Par time for {key}: {seconds}s")


@config_commands.command(name="set-rvu")
@click.argument("key")
@click.argument("value", type=float)
@click.option("--kind", type=click.Choice([m.value for m in Modality]), help="Only when this modality is selected")
@click.pass_context
def set_rvu(ctx, key, value, kind):
    """Set the RVU for a modality or complication."""
    store = ctx.obj["store"]
    _check_key(key)
    config = _load_configuration(store)
    config.set_unit_value(key, value, kind)
    store.save_configuration(config)
    suffix = f" (with {kind})" if kind else ""
    click.echo(f"RVU for {key}{suffix}: {value:g}")


@config_commands.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset(ctx, yes):
    """Restore every par time and RVU to the defaults."""
    if not yes:
        click.confirm(Notice.CONFIRM_RESET.value, abort=True)
    ctx.obj["store"].save_configuration(Configuration.defaults())
    click.echo("Settings reset to defaults")


@config_commands.command(name="export")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.pass_context
def export_settings(ctx, path):
    """Export settings to CSV."""
    if path is None:
        path = Path(f"radtach_settings_{date.today().isoformat()}.csv")
    config = _load_configuration(ctx.obj["store"])
    try:
        write_csv(config, path)
    except OSError as e:
        raise click.ClickException(f"Error exporting settings: {e}")
    click.echo(f"Settings exported to {path}")


@config_commands.command(name="import")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def import_settings(ctx, path):
    """Import settings from CSV. Rows not in the file revert to defaults."""
    try:
        report = read_csv(path)
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"Error importing settings: {e}")

    ctx.obj["store"].save_configuration(report.config)
    click.echo(f"Imported {report.applied} setting(s) from {path}")
    if report.skipped:
        lines = ", ".join(str(n) for n in report.skipped)
        click.echo(f"Skipped malformed line(s): {lines}", err=True)


# ---- prefs ----


@cli.group(name="prefs")
def prefs_commands():
    """Auto-start and stealth display preferences."""
    pass


@prefs_commands.command(name="show")
@click.pass_context
def prefs_show(ctx):
    """Show preferences."""
    store = ctx.obj["store"]
    for name in PREFERENCE_NAMES:
        click.echo(f"{name}: {'on' if store.load_preference(name) else 'off'}")


@prefs_commands.command(name="set")
@click.argument("name", type=click.Choice(sorted(PREFERENCE_ALIASES)))
@click.argument("value", type=click.Choice(sorted(ON_OFF)))
@click.pass_context
def prefs_set(ctx, name, value):
    """Turn a preference on or off."""
    pref = PREFERENCE_ALIASES[name]
    ctx.obj["store"].save_preference(pref, ON_OFF[value])
    click.echo(f"{pref}: {value}")


def main():
    cli()


if __name__ == "__main__":
    main()

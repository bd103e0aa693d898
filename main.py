"""Stundenplan-Import — Haupt-CLI.

Verwendung:
  python main.py config init                         Konfiguration anlegen
  python main.py config show                         Konfiguration anzeigen
  python main.py generate                            Demo-Verzeichnis + Beispieltabelle
  python main.py preview <link|datei> --week 2025-09-01
                                                     Vorschau (nichts wird gespeichert)
  python main.py preview ... --export-xlsx out.xlsx  Vorschau als Excel
  python main.py commit <link|datei> --week 2025-09-01 [--resolutions datei.json]
                                                     Slots anlegen
  python main.py alias list                          Gelernte Aliase anzeigen
  python main.py alias set <text> <art> <id>         Alias setzen
  python main.py validate --week 2025-09-01          Gespeicherte Woche prüfen
"""

import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, markup=False)],
        force=True,
    )


def _load_config_or_abort(ctx: click.Context):
    """Lädt die Konfiguration oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager(ctx.obj.get("config_path"))
    try:
        return mgr, mgr.load()
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _load_directory_or_abort(config):
    from models.directory import DirectorySnapshot
    path = Path(config.storage.directory_path)
    try:
        directory = DirectorySnapshot.load_json(path)
    except FileNotFoundError:
        console.print(
            f"[red]Kein Verzeichnis gefunden: {path}[/red]\n"
            "Verwenden Sie [bold]python main.py generate[/bold] für Demo-Daten."
        )
        sys.exit(1)
    logger.info(directory.summary())
    return directory


def _build_importer(config):
    from booking.store import JsonSlotStore
    from data.schedule_import import ScheduleImporter
    from matching.aliases import AliasStore

    return ScheduleImporter(
        directory=_load_directory_or_abort(config),
        store=JsonSlotStore(Path(config.storage.slots_path)),
        alias_store=AliasStore(Path(config.storage.aliases_path)),
        config=config,
    )


def _week_option(func):
    return click.option(
        "--week", "week", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
        help="Montag der Zielwoche (JJJJ-MM-TT). Standard: aktuelle Woche.",
    )(func)


def _week_start(week: Optional[datetime]) -> date:
    from data.schedule_import import get_monday
    return week.date() if week is not None else get_monday(date.today())


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anlegen oder anzeigen."""


@cmd_config.command("init")
@click.option("--force", is_flag=True, default=False, help="Bestehende Datei überschreiben.")
@click.pass_context
def config_init(ctx: click.Context, force: bool):
    """Schreibt die Default-Konfiguration als kommentierte YAML-Datei."""
    from config.defaults import default_import_config
    from config.manager import ConfigManager

    mgr = ConfigManager(ctx.obj.get("config_path"))
    if not mgr.first_run_check() and not force:
        console.print(
            f"[yellow]Konfiguration existiert bereits: {mgr.config_path}[/yellow]\n"
            "Mit [bold]--force[/bold] überschreiben."
        )
        return
    mgr.save(default_import_config())


@cmd_config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Zeigt die aktuelle Konfiguration an."""
    mgr, config = _load_config_or_abort(ctx)
    console.print(Panel(
        f"[bold]{config.school_name}[/bold]",
        title="Import-Konfiguration",
        border_style="cyan",
    ))
    mgr.show(config)


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--sheet-path", default="output/demo_sheet.csv",
              help="Pfad für die Beispieltabelle (CSV).")
@click.pass_context
def cmd_generate(ctx: click.Context, seed: int, sheet_path: str):
    """Erzeugt ein Demo-Verzeichnis und eine passende Beispieltabelle."""
    mgr, config = _load_config_or_abort(ctx)
    from data.demo_data import DemoDataGenerator

    console.print("[bold]Demo-Daten werden generiert...[/bold]")
    gen = DemoDataGenerator(config, seed=seed)
    directory = gen.generate()
    gen.print_summary(directory)

    dir_path = Path(config.storage.directory_path)
    directory.save_json(dir_path)
    console.print(f"[green]✓[/green] Verzeichnis gespeichert: {dir_path}")

    out_path = Path(sheet_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(gen.generate_sheet(directory), encoding="utf-8")
    console.print(f"[green]✓[/green] Beispieltabelle gespeichert: {out_path}")


# ─── PREVIEW ──────────────────────────────────────────────────────────────────

@click.command("preview")
@click.argument("source")
@_week_option
@click.option("--day-group", default=None,
              help="Tagesgruppe (Pflicht im alten Format, sonst Filter).")
@click.option("--export-xlsx", type=click.Path(path_type=Path), default=None,
              help="Vorschau zusätzlich als Excel speichern.")
@click.option("--json", "as_json", is_flag=True, default=False,
              help="Vorschau als JSON ausgeben.")
@click.option("--all", "show_all", is_flag=True, default=False,
              help="Auch fehlerfreie Zellen anzeigen.")
@click.pass_context
def cmd_preview(ctx: click.Context, source: str, week: Optional[datetime],
                day_group: Optional[str], export_xlsx: Optional[Path],
                as_json: bool, show_all: bool):
    """Analysiert die Tabelle und zeigt, was ein Commit anlegen würde."""
    mgr, config = _load_config_or_abort(ctx)
    from data.errors import ScheduleImportError

    importer = _build_importer(config)
    try:
        preview = importer.preview(source, _week_start(week), day_group)
    except ScheduleImportError as e:
        console.print(f"[red bold]Import fehlgeschlagen:[/red bold]\n{e}")
        sys.exit(1)

    if as_json:
        click.echo(preview.model_dump_json(indent=2))
    else:
        preview.print_rich(show_all=show_all)

    if export_xlsx is not None:
        from export.preview_excel import PreviewExcelExporter
        PreviewExcelExporter(preview, config.school_name).export(export_xlsx)
        console.print(f"[green]✓[/green] Excel gespeichert: {export_xlsx}")


# ─── COMMIT ───────────────────────────────────────────────────────────────────

def _load_resolutions(path: Optional[Path]):
    from models.slot import ManualResolution
    if path is None:
        return []
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [ManualResolution.model_validate(item) for item in data]


@click.command("commit")
@click.argument("source")
@_week_option
@click.option("--day-group", default=None,
              help="Tagesgruppe (Pflicht im alten Format, sonst Filter).")
@click.option("--resolutions", type=click.Path(exists=True, path_type=Path), default=None,
              help="JSON-Datei mit manuellen Zuordnungen.")
@click.pass_context
def cmd_commit(ctx: click.Context, source: str, week: Optional[datetime],
               day_group: Optional[str], resolutions: Optional[Path]):
    """Legt alle fehlerfreien, konfliktfreien Slots an."""
    mgr, config = _load_config_or_abort(ctx)
    from data.errors import ScheduleImportError

    importer = _build_importer(config)
    try:
        report = importer.commit(
            source, _week_start(week), day_group, _load_resolutions(resolutions)
        )
    except ScheduleImportError as e:
        console.print(f"[red bold]Import fehlgeschlagen:[/red bold]\n{e}")
        sys.exit(1)
    report.print_rich()


# ─── ALIAS ────────────────────────────────────────────────────────────────────

@click.group("alias")
def cmd_alias():
    """Gelernte Aliase verwalten."""


@cmd_alias.command("list")
@click.pass_context
def alias_list(ctx: click.Context):
    """Zeigt alle gespeicherten Aliase."""
    mgr, config = _load_config_or_abort(ctx)
    from matching.aliases import AliasStore

    aliases = AliasStore(Path(config.storage.aliases_path)).all()
    if not aliases:
        console.print("[dim]Keine Aliase gespeichert.[/dim]")
        return
    table = Table(title="Aliase", box=box.ROUNDED)
    table.add_column("Text", style="bold")
    table.add_column("Art")
    table.add_column("ID")
    for a in sorted(aliases, key=lambda a: (a.kind, a.alias)):
        table.add_row(a.alias, a.kind, a.entity_id)
    console.print(table)


@cmd_alias.command("set")
@click.argument("text")
@click.argument("kind", type=click.Choice(["teacher", "student", "group"]))
@click.argument("entity_id")
@click.pass_context
def alias_set(ctx: click.Context, text: str, kind: str, entity_id: str):
    """Setzt einen Alias (ersetzt einen bestehenden)."""
    mgr, config = _load_config_or_abort(ctx)
    from matching.aliases import AliasStore
    from matching.resolver import CellResolver
    from models.slot import Alias

    directory = _load_directory_or_abort(config)
    if CellResolver(directory, config).label_of(kind, entity_id) is None:
        console.print(f"[red]Unbekannte ID für {kind}: {entity_id}[/red]")
        sys.exit(1)
    AliasStore(Path(config.storage.aliases_path)).upsert(
        Alias(alias=text, kind=kind, entity_id=entity_id)
    )
    console.print(f"[green]✓[/green] Alias gespeichert: '{text}' → {entity_id}")


# ─── VALIDATE ─────────────────────────────────────────────────────────────────

@click.command("validate")
@_week_option
@click.pass_context
def cmd_validate(ctx: click.Context, week: Optional[datetime]):
    """Prüft die gespeicherten Slots einer Woche auf Doppelbelegungen."""
    mgr, config = _load_config_or_abort(ctx)
    from analysis.slot_validator import SlotValidator
    from booking.store import JsonSlotStore

    directory = _load_directory_or_abort(config)
    store = JsonSlotStore(Path(config.storage.slots_path))
    slots = store.slots_for_week(_week_start(week))
    report = SlotValidator(config).validate(slots, directory)
    report.print_rich()

    sys.exit(0 if report.is_valid else 1)


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="Pfad zur Konfigurationsdatei.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug-Ausgaben.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool):
    """Import von Stundenplan-Tabellen in wöchentliche Slots.

    Starten Sie mit: python main.py generate
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def main():
    """Einstiegspunkt."""
    cli(obj={})


# Befehle registrieren
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_preview)
cli.add_command(cmd_commit)
cli.add_command(cmd_alias)
cli.add_command(cmd_validate)


if __name__ == "__main__":
    main()

"""Konfigurationsmanager: Laden, Speichern und Anzeigen der Import-Konfiguration.

Nutzt ruamel.yaml für YAML-Serialisierung mit Kommentaren.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich import box
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.defaults import default_import_config
from config.schema import ImportConfig

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML-KOMMENTAR-AUFBAU ───

_YAML_HEADER = f"""\
# ============================================
# Stundenplan-Import — Konfiguration
# Version: 1.0
# Erstellt: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "time_grid": (
        "Zeitraster",
        "Nur diese Unterrichtsbeginne werden aus der Tabelle übernommen.",
    ),
    "day_groups": (
        "Tagesgruppen",
        "Markierungen werden ohne Groß-/Kleinschreibung verglichen.\n"
        "Trennzeichen (/ - , Leerzeichen) sind austauschbar.",
    ),
    "vocabulary": (
        "Vokabular",
        "Kategorien, Fachrichtungen und reservierte Gruppen-Kürzel.",
    ),
    "layout": (
        "Tabellen-Layout",
        None,
    ),
    "source": (
        "Quelle",
        None,
    ),
    "storage": (
        "Speicher",
        "Pfade der JSON-Dateien (Verzeichnis, Slots, Aliase).",
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "import_config.yaml"

    def __init__(self, path: Optional[Path] = None) -> None:
        self.config_path = Path(path) if path is not None else self.DEFAULT_CONFIG

    def first_run_check(self) -> bool:
        """Gibt True zurück wenn noch keine Config existiert (Erstaufruf)."""
        return not self.config_path.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> ImportConfig:
        """Lade Config aus YAML. Validiert automatisch via Pydantic.

        Existiert keine Datei, wird die Default-Konfiguration verwendet.
        """
        target = path or self.config_path
        if not target.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Konfigurationsdatei nicht gefunden: {target}"
                )
            return default_import_config()
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            return ImportConfig.model_validate(dict(raw or {}))
        except Exception as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e

    # ─── Speichern ───

    def save(self, config: ImportConfig, path: Optional[Path] = None) -> None:
        """Speichere Config als YAML mit Abschnitts-Kommentaren."""
        target = path or self.config_path
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")

    def _build_commented_yaml(self, config: ImportConfig) -> CommentedMap:
        """Baut die YAML-Struktur mit Kommentaren auf."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        # Inline-Kommentar für den Abruf-Timeout
        if "source" in cm:
            source_map = CommentedMap(cm["source"])
            source_map.yaml_add_eol_comment("Sekunden", "timeout_seconds")
            cm["source"] = source_map

        return cm

    # ─── Anzeige ───

    def show(self, config: ImportConfig) -> None:
        """Zeigt die wichtigsten Einstellungen als Rich-Tabellen."""
        table = Table(title="Tagesgruppen", box=box.ROUNDED)
        table.add_column("ID", style="bold")
        table.add_column("Bezeichnung")
        table.add_column("Tage")
        table.add_column("Markierungen")
        for g in config.day_groups:
            table.add_row(g.id, g.label, ", ".join(str(d) for d in g.days),
                          ", ".join(g.markers))
        console.print(table)

        console.print(
            f"[bold]Zeitraster:[/bold] {', '.join(config.time_grid.time_slots)} "
            f"({config.time_grid.lesson_minutes} min)"
        )

        cats = Table(title="Kategorien", box=box.SIMPLE)
        cats.add_column("Code", style="bold")
        cats.add_column("Bezeichnung")
        cats.add_column("Schreibweisen")
        for c in config.vocabulary.categories:
            cats.add_row(c.code, c.label, ", ".join(c.aliases))
        console.print(cats)

        st = config.storage
        console.print(
            f"[bold]Speicher:[/bold] Verzeichnis {st.directory_path} | "
            f"Slots {st.slots_path} | Aliase {st.aliases_path}"
        )

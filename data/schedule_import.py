"""Import-Pipeline: Tabelle → Zellen → Auflösung → Kandidaten → Vorschau/Commit.

Zwei Phasen mit gleicher Analyse:
  - preview(): nichts wird geschrieben; Konflikte werden im Trockenlauf
    gegen eine Kopie der Wochen-Slots ermittelt.
  - commit(): Kandidaten werden einzeln geprüft und angelegt, danach
    werden Aliase aus manuellen Zuordnungen gespeichert.
"""

import logging
from collections import Counter
from datetime import date, timedelta
from typing import Iterable, Optional

from pydantic import BaseModel

from booking.conflicts import CommitReport, SlotRejection, commit_candidates
from booking.materializer import materialize_all
from booking.store import InMemorySlotStore, SlotStore
from config.defaults import default_import_config
from config.schema import ImportConfig
from data.blocks import SheetExtraction, extract_cells
from data.errors import RequestError
from data.sheet_source import load_source
from matching.aliases import AliasStore, apply_aliases, apply_manual_resolutions
from matching.resolver import resolve_cells
from models.directory import DirectorySnapshot
from models.grid import Layout, TeacherColumn
from models.match import MatchResult
from models.slot import Alias, ManualResolution, SlotCandidate

logger = logging.getLogger(__name__)


def get_monday(day: date) -> date:
    """Montag der Woche, in der ``day`` liegt."""
    return day - timedelta(days=day.weekday())


def require_monday(week_start: date) -> date:
    """Raises: RequestError wenn ``week_start`` kein Montag ist."""
    if week_start.weekday() != 0:
        raise RequestError(
            f"Wochenbeginn {week_start.isoformat()} ist kein Montag "
            f"(nächster Montag davor: {get_monday(week_start).isoformat()})."
        )
    return week_start


class ImportPreview(BaseModel):
    """Vorschau eines Imports: jede Zelle mit Auflösung, Kandidaten, Konflikte."""

    week_start: date
    day_group: Optional[str] = None
    layout: Layout
    teacher_columns: list[TeacherColumn] = []
    matches: list[MatchResult] = []
    candidates: list[SlotCandidate] = []
    expected_conflicts: list[SlotRejection] = []
    skipped_cells: int = 0
    skipped_rows: int = 0

    @property
    def valid_matches(self) -> list[MatchResult]:
        return [m for m in self.matches if m.is_valid]

    @property
    def invalid_matches(self) -> list[MatchResult]:
        return [m for m in self.matches if not m.is_valid]

    def summary(self) -> dict[str, int]:
        """Zähler für die Übersicht."""
        return {
            "cells": len(self.matches) + self.skipped_cells,
            "skipped": self.skipped_cells,
            "valid": len(self.valid_matches),
            "invalid": len(self.invalid_matches),
            "candidates": len(self.candidates),
            "conflicts": len(self.expected_conflicts),
        }

    def issue_counts(self) -> dict[str, int]:
        return dict(Counter(i.code for m in self.matches for i in m.issues))

    def print_rich(self, show_all: bool = False) -> None:
        """Gibt die Vorschau formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        s = self.summary()
        status = (
            "[bold green]✓ BEREIT[/bold green]"
            if not s["invalid"] and not s["conflicts"]
            else "[bold yellow]⚠ PRÜFEN[/bold yellow]"
        )
        lines = [
            status,
            f"Woche ab {self.week_start.isoformat()} | Format: {self.layout.value}",
            f"Zellen: {s['cells']} | Übersprungen: {s['skipped']} | "
            f"Aufgelöst: {s['valid']} | Fehler: {s['invalid']}",
            f"Kandidaten: {s['candidates']} | Erwartete Konflikte: {s['conflicts']}",
        ]
        for code, count in sorted(self.issue_counts().items()):
            lines.append(f"  {code}: {count}")
        console.print(Panel("\n".join(lines), title="Import-Vorschau", border_style="cyan"))

        rows = self.matches if show_all else self.invalid_matches
        if rows:
            table = Table(box=box.ROUNDED, show_lines=False)
            table.add_column("Zelle", width=6)
            table.add_column("Zeit", width=6)
            table.add_column("Lehrkraft", width=20)
            table.add_column("Text", width=20)
            table.add_column("Ergebnis")
            for m in rows:
                result = (
                    f"[green]{m.target_label}[/green]"
                    + (f" [dim]({m.category})[/dim]" if m.category else "")
                    if m.is_valid
                    else "[red]" + "; ".join(m.errors) + "[/red]"
                )
                table.add_row(
                    m.cell.address, m.cell.time,
                    m.teacher_label or m.cell.teacher_name, m.cell.raw, result,
                )
            console.print(table)

        if self.expected_conflicts:
            table = Table(title="Erwartete Konflikte", box=box.SIMPLE)
            table.add_column("Zelle", width=6)
            table.add_column("Grund", width=14)
            table.add_column("Beschreibung")
            for r in self.expected_conflicts:
                table.add_row(r.candidate.source, r.reason, r.message)
            console.print(table)


class ScheduleImporter:
    """Führt Vorschau und Commit gegen einen Verzeichnis-Schnappschuss aus."""

    def __init__(
        self,
        directory: DirectorySnapshot,
        store: SlotStore,
        alias_store: Optional[AliasStore] = None,
        config: Optional[ImportConfig] = None,
    ) -> None:
        self.directory = directory
        self.store = store
        self.alias_store = alias_store
        self.config = config or default_import_config()

    # ─── Analyse ───

    def _analyze(
        self,
        text: str,
        day_group: Optional[str],
        resolutions: Iterable[ManualResolution],
    ) -> tuple[SheetExtraction, list[MatchResult], list[Alias]]:
        extraction = extract_cells(text, self.config, day_group)
        matches = resolve_cells(extraction.cells, self.directory, config=self.config)
        if self.alias_store is not None:
            aliases = self.alias_store.all()
            if aliases:
                matches = apply_aliases(matches, aliases, self.directory, self.config)
        to_persist: list[Alias] = []
        resolutions = list(resolutions)
        if resolutions:
            matches, to_persist = apply_manual_resolutions(
                matches, resolutions, self.directory, self.config
            )
        return extraction, matches, to_persist

    def _load(self, source: str) -> str:
        return load_source(source, timeout=self.config.source.timeout_seconds)

    # ─── Vorschau ───

    def preview_text(
        self,
        text: str,
        week_start: date,
        day_group: Optional[str] = None,
        resolutions: Iterable[ManualResolution] = (),
    ) -> ImportPreview:
        """Vorschau für bereits geladenen Tabellen-Text."""
        require_monday(week_start)
        extraction, matches, _ = self._analyze(text, day_group, resolutions)
        candidates = materialize_all(matches, week_start, self.config)

        dry_run = InMemorySlotStore(self.store.slots_for_week(week_start))
        expected = commit_candidates(candidates, dry_run, self.directory)

        skipped = len(extraction.cells) - len(matches)
        return ImportPreview(
            week_start=week_start,
            day_group=day_group,
            layout=extraction.layout,
            teacher_columns=extraction.teacher_columns,
            matches=matches,
            candidates=candidates,
            expected_conflicts=expected.rejections,
            skipped_cells=skipped,
            skipped_rows=extraction.skipped_rows,
        )

    def preview(
        self,
        source: str,
        week_start: date,
        day_group: Optional[str] = None,
        resolutions: Iterable[ManualResolution] = (),
    ) -> ImportPreview:
        """Lädt die Quelle (Link oder Datei) und erstellt die Vorschau.

        Raises:
            SourceError: Quelle nicht ladbar, leer oder falsches Format.
            RequestError: Wochenbeginn ist kein Montag.
        """
        require_monday(week_start)
        return self.preview_text(self._load(source), week_start, day_group, resolutions)

    # ─── Commit ───

    def commit_text(
        self,
        text: str,
        week_start: date,
        day_group: Optional[str] = None,
        resolutions: Iterable[ManualResolution] = (),
    ) -> CommitReport:
        require_monday(week_start)
        _, matches, to_persist = self._analyze(text, day_group, resolutions)
        candidates = materialize_all(matches, week_start, self.config)
        report = self.commit_slots(candidates)
        if to_persist and self.alias_store is not None:
            report.aliases_saved = self.alias_store.upsert_many(to_persist)
        return report

    def commit(
        self,
        source: str,
        week_start: date,
        day_group: Optional[str] = None,
        resolutions: Iterable[ManualResolution] = (),
    ) -> CommitReport:
        """Analysiert die Quelle erneut und legt alle konfliktfreien Slots an.

        Zellen mit Fehlern werden nie angelegt.
        """
        require_monday(week_start)
        return self.commit_text(self._load(source), week_start, day_group, resolutions)

    def commit_slots(self, candidates: Iterable[SlotCandidate]) -> CommitReport:
        """Commit einer vom Aufrufer ausgewählten Kandidaten-Liste."""
        candidates = list(candidates)
        for c in candidates:
            require_monday(c.week_start)
        return commit_candidates(candidates, self.store, self.directory)

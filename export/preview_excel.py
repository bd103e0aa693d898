"""Excel-Export der Import-Vorschau (openpyxl).

Blätter:
  - Übersicht:  Zähler und Fehlerarten
  - Zellen:     jede Zelle mit Auflösung oder Fehlern (grün/rot)
  - Kandidaten: die Slots, die ein Commit anlegen würde
  - Konflikte:  erwartete Ablehnungen aus dem Trockenlauf
"""

from datetime import date
from pathlib import Path

from config.defaults import WEEKDAY_NAMES
from data.schedule_import import ImportPreview

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    "ok":       "C6EFCE",
    "error":    "FFC7CE",
    "conflict": "FFEB9C",
    "header":   "4472C4",
}


def today_str() -> str:
    """Gibt das heutige Datum als DD.MM.YYYY zurück."""
    return date.today().strftime("%d.%m.%Y")


class PreviewExcelExporter:
    """Schreibt eine ImportPreview in eine Excel-Datei mit 4 Blättern."""

    def __init__(self, preview: ImportPreview, school_name: str = ""):
        self.preview = preview
        self.school_name = school_name

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(self, output_path: Path) -> None:
        from openpyxl import Workbook
        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        self._sheet_uebersicht(wb)
        self._sheet_zellen(wb)
        self._sheet_kandidaten(wb)
        self._sheet_konflikte(wb)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _write_table(self, ws, headers: list[str], rows: list[tuple[list, str]],
                     widths: list[int], start_row: int = 1) -> None:
        """Kopfzeile + Datenzeilen; jede Zeile trägt ihre Farbe (oder "")."""
        from openpyxl.styles import Alignment, Font
        from openpyxl.utils import get_column_letter

        border = self._thin_border()
        fill_h = self._fill(COLORS["header"])
        for col, h in enumerate(headers, 1):
            c = ws.cell(row=start_row, column=col, value=h)
            c.fill = fill_h
            c.font = Font(bold=True, color="FFFFFF")
            c.border = border

        for r, (values, color) in enumerate(rows, start_row + 1):
            for col, value in enumerate(values, 1):
                c = ws.cell(row=r, column=col, value=value)
                c.border = border
                c.alignment = Alignment(wrap_text=True, vertical="top")
                if color:
                    c.fill = self._fill(color)

        for col, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width
        ws.freeze_panes = ws.cell(row=start_row + 1, column=1)

    # ─── Blätter ──────────────────────────────────────────────────────────────

    def _sheet_uebersicht(self, wb) -> None:
        from openpyxl.styles import Font
        ws = wb.create_sheet(title="Übersicht", index=0)
        p = self.preview

        ws.cell(row=1, column=1, value=self.school_name or "Import-Vorschau").font = Font(bold=True, size=14)
        ws.cell(row=2, column=1, value=f"Erstellt: {today_str()}")
        ws.cell(row=2, column=3, value=f"Woche ab: {p.week_start.strftime('%d.%m.%Y')}")
        ws.cell(row=2, column=5, value=f"Format: {p.layout.value}")

        labels = {
            "cells": "Zellen", "skipped": "Übersprungen", "valid": "Aufgelöst",
            "invalid": "Mit Fehlern", "candidates": "Kandidaten",
            "conflicts": "Erwartete Konflikte",
        }
        rows = [([labels[k], v], "") for k, v in p.summary().items()]
        rows += [([code, count], COLORS["error"]) for code, count in sorted(p.issue_counts().items())]
        self._write_table(ws, ["Kennzahl", "Anzahl"], rows, [28, 10], start_row=4)

    def _sheet_zellen(self, wb) -> None:
        ws = wb.create_sheet(title="Zellen")
        rows = []
        for m in self.preview.matches:
            rows.append(([
                m.cell.address,
                m.cell.time,
                m.cell.day_group,
                m.cell.teacher_header,
                m.teacher_label or "",
                m.cell.raw,
                m.intent.kind,
                m.target_label,
                m.category or "",
                "; ".join(m.errors) if m.issues else "OK",
                ", ".join(m.resolved_by),
            ], COLORS["ok"] if m.is_valid else COLORS["error"]))
        self._write_table(
            ws,
            ["Zelle", "Zeit", "Rhythmus", "Kopf", "Lehrkraft", "Text", "Art",
             "Ziel", "Kategorie", "Status", "Aufgelöst durch"],
            rows,
            [7, 7, 9, 22, 22, 22, 14, 26, 9, 45, 18],
        )

    def _sheet_kandidaten(self, wb) -> None:
        ws = wb.create_sheet(title="Kandidaten")
        conflicted = {r.candidate for r in self.preview.expected_conflicts}
        rows = []
        for c in sorted(self.preview.candidates,
                        key=lambda c: (c.weekday, c.start_time, c.teacher_label)):
            rows.append(([
                WEEKDAY_NAMES.get(c.weekday, str(c.weekday)),
                f"{c.start_time}–{c.end_time}",
                c.teacher_label,
                c.target_label,
                c.lesson_type.value,
                c.category or "",
                c.room or "",
                c.source,
            ], COLORS["conflict"] if c in conflicted else ""))
        self._write_table(
            ws,
            ["Tag", "Zeit", "Lehrkraft", "Ziel", "Typ", "Kategorie", "Raum", "Zelle"],
            rows,
            [6, 13, 24, 26, 12, 10, 10, 7],
        )

    def _sheet_konflikte(self, wb) -> None:
        ws = wb.create_sheet(title="Konflikte")
        rows = [
            ([
                r.candidate.source,
                WEEKDAY_NAMES.get(r.candidate.weekday, str(r.candidate.weekday)),
                r.candidate.start_time,
                r.reason,
                r.message,
            ], COLORS["conflict"])
            for r in self.preview.expected_conflicts
        ]
        self._write_table(ws, ["Zelle", "Tag", "Zeit", "Grund", "Beschreibung"],
                          rows, [7, 6, 7, 16, 60])

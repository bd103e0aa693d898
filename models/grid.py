"""Datenmodelle der eingelesenen Tabelle: Raster, Blöcke, Spalten, Zellen."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

# Positionelles Raster: Zeilen × Zellen, ohne Spaltennamen
RawGrid = list[list[str]]


class Layout(str, Enum):
    MULTI_BLOCK = "multi_block"   # Blöcke mit Tagesgruppen-Zeile
    LEGACY = "legacy"             # eine Spalte pro Lehrkraft, ein Rhythmus


class TeacherColumn(BaseModel):
    """Aus einem Kopfzellen-Text abgeleitete Lehrkraft-Spalte."""

    header: str                          # Roh-Text der Kopfzelle
    name: str                            # Anzeigename ohne Raum/Fachrichtung
    specialization: Optional[str] = None  # "лого", "деф", ...
    room: Optional[str] = None           # "Каб.3+4"
    # Datenspalte je Tagesgruppe (Index im Gesamtraster)
    columns: dict[str, int] = {}         # {"mwf": 3, "tt": 4}


class ScheduleBlock(BaseModel):
    """Zusammenhängender Block: Kopfzeile, Tagesgruppen-Zeile, Datenzeilen."""

    start_row: int                        # Zeilenindex der Kopfzeile im Gesamtraster
    rows: list[list[str]]

    @property
    def header_row(self) -> list[str]:
        return self.rows[0]

    @property
    def marker_row(self) -> list[str]:
        return self.rows[1]

    @property
    def data_rows(self) -> list[list[str]]:
        return self.rows[2:]


class GridCell(BaseModel):
    """Eine nicht-leere Datenzelle mit ihrem Kontext."""

    teacher_name: str
    teacher_header: str      # Roh-Text des Spaltenkopfs (für Aliase)
    raw: str
    time: str                # kanonisch "HH:MM"
    day_group: str           # ID der Tagesgruppe
    room: Optional[str] = None
    row: int                 # Koordinaten im Gesamtraster (Diagnose)
    col: int

    @property
    def position(self) -> tuple[int, int]:
        return (self.row, self.col)

    @property
    def address(self) -> str:
        """Tabellen-Adresse, z.B. "C12" (1-basiert wie in der Tabelle)."""
        col = self.col + 1
        letters = ""
        while col:
            col, rem = divmod(col - 1, 26)
            letters = chr(65 + rem) + letters
        return f"{letters}{self.row + 1}"

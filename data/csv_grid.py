"""CSV-Text → positionelles Raster, Format-Erkennung und Zeit-Normalisierung.

Das stdlib-Modul csv übernimmt Anführungszeichen, verdoppelte
Anführungszeichen und Zeilenumbrüche in Feldern.
"""

import csv
import io
import logging
import re
from typing import Iterable, Optional

from config.defaults import default_day_groups, default_time_grid
from config.schema import DayGroupDef
from models.grid import Layout, RawGrid

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^(\d{1,2})[:.](\d{2})$")
_MARKER_SEP_RE = re.compile(r"[\s/,;.|\\\-–—]+")


# ─── Einlesen ─────────────────────────────────────────────────────────────────

def is_blank_row(row: list[str]) -> bool:
    """True wenn alle Zellen leer oder nur Leerzeichen sind."""
    return all(not cell.strip() for cell in row)


def parse_delimited(
    text: str, delimiter: str = ",", keep_empty_rows: bool = True
) -> RawGrid:
    """Parst Trennzeichen-Text in ein rechteckiges Raster.

    keep_empty_rows=True behält Leerzeilen als Block-Trenner (für das
    Block-Format und die Format-Erkennung), False verdichtet das Raster
    (altes Einzelspalten-Format). Kürzere Zeilen werden mit "" aufgefüllt.
    """
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    rows: RawGrid = []
    for row in reader:
        if is_blank_row(row) and not keep_empty_rows:
            continue
        rows.append(list(row))

    # Leere Zeilen am Ende sind kein Block-Trenner
    while rows and is_blank_row(rows[-1]):
        rows.pop()

    width = max((len(r) for r in rows), default=0)
    return [r + [""] * (width - len(r)) for r in rows]


# ─── Tagesgruppen-Markierungen ────────────────────────────────────────────────

def normalize_marker(text: str) -> str:
    """'ПН / СР / ПТ', 'пн-ср-пт', 'Пн, Ср, Пт' → 'пн/ср/пт'."""
    lowered = text.strip().lower().replace("ё", "е")
    return _MARKER_SEP_RE.sub("/", lowered).strip("/")


def _marker_lookup(day_groups: list[DayGroupDef]) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for g in day_groups:
        lookup[normalize_marker(g.label)] = g.id
        for m in g.markers:
            lookup[normalize_marker(m)] = g.id
    return lookup


def day_group_of(
    text: str, day_groups: Optional[list[DayGroupDef]] = None
) -> Optional[str]:
    """Gibt die ID der Tagesgruppe für einen Markierungs-Text zurück (oder None)."""
    if not text or not text.strip():
        return None
    lookup = _marker_lookup(day_groups or default_day_groups())
    return lookup.get(normalize_marker(text))


def is_day_group_marker(
    text: str, day_groups: Optional[list[DayGroupDef]] = None
) -> bool:
    return day_group_of(text, day_groups) is not None


def row_has_marker(
    row: list[str], day_groups: Optional[list[DayGroupDef]] = None
) -> bool:
    """True wenn mindestens eine Zelle der Zeile eine Tagesgruppen-Markierung ist."""
    groups = day_groups or default_day_groups()
    return any(is_day_group_marker(cell, groups) for cell in row)


def detect_layout(
    grid: RawGrid,
    day_groups: Optional[list[DayGroupDef]] = None,
    scan_rows: int = 5,
) -> Layout:
    """Erkennt das Tabellenformat anhand der ersten Zeilen.

    Muss auf dem Raster MIT Leerzeilen laufen, damit Blockgrenzen sichtbar
    bleiben. Markierung gefunden → Block-Format, sonst altes Format.
    """
    groups = day_groups or default_day_groups()
    for row in grid[:scan_rows]:
        if row_has_marker(row, groups):
            return Layout.MULTI_BLOCK
    return Layout.LEGACY


# ─── Zeiten ───────────────────────────────────────────────────────────────────

def parse_time_label(
    label: str, allowed: Optional[Iterable[str]] = None
) -> Optional[str]:
    """Normalisiert eine Zeitangabe: "9.00" / "9:00" / "09:00" → "09:00".

    Gibt None zurück, wenn das Format ungültig ist oder die Zeit nicht im
    erkannten Raster liegt. Es wird nie gerundet oder geraten.
    """
    match = _TIME_RE.match(label.strip())
    if not match:
        return None
    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    normalized = f"{hours:02d}:{minutes:02d}"
    slots = set(allowed) if allowed is not None else set(default_time_grid().time_slots)
    if normalized not in slots:
        return None
    return normalized


def add_minutes(start_time: str, minutes: int) -> str:
    """'09:00' + 60 → '10:00'."""
    h, m = (int(x) for x in start_time.split(":"))
    total = h * 60 + m + minutes
    return f"{(total // 60) % 24:02d}:{total % 60:02d}"

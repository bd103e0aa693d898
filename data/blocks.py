"""Zerlegung des Rasters in Stundenplan-Blöcke und Lehrkraft-Spalten.

Block-Format (aktuell):
  Zeile 0   Время | Малыга Дарья каб.1 |        | Ержан лого |       | ...
  Zeile 1         | Пн/Ср/Пт           | Вт/Чт  | Пн/Ср/Пт   | Вт/Чт | ...
  Zeile 2   9.00  | Асанали И          | МаркВ  | гр. шк1    | ----  | ...
  (Leerzeile trennt den nächsten Block)

Altes Format: eine Kopfzeile, eine Spalte pro Lehrkraft, ein Rhythmus für
die ganze Tabelle (wird beim Import angegeben).
"""

import logging
import re
from typing import Iterator, Optional

from pydantic import BaseModel

from config.defaults import default_import_config
from config.schema import DayGroupDef, ImportConfig
from data.csv_grid import (
    day_group_of,
    detect_layout,
    is_blank_row,
    parse_delimited,
    parse_time_label,
    row_has_marker,
)
from data.errors import EmptyGridError, LayoutError
from models.grid import GridCell, Layout, RawGrid, ScheduleBlock, TeacherColumn

logger = logging.getLogger(__name__)

_ROOM_WORD = r"каб(?:инет)?(?![а-яё])\.?"
_ROOM_NUM = r"\d+(?:\s*\+\s*\d+)*"
_ROOM_BEFORE_RE = re.compile(rf"{_ROOM_WORD}\s*№?\s*({_ROOM_NUM})", re.IGNORECASE)
_ROOM_AFTER_RE = re.compile(rf"({_ROOM_NUM})\s*{_ROOM_WORD}", re.IGNORECASE)
_EMPTY_PARENS_RE = re.compile(r"\(\s*\)")


class SheetExtraction(BaseModel):
    """Ergebnis der Zerlegung: erkannte Zellen und Kontext für die Vorschau."""

    layout: Layout
    cells: list[GridCell]
    teacher_columns: list[TeacherColumn]
    block_count: int = 0
    skipped_rows: int = 0     # Datenzeilen ohne gültige Uhrzeit


# ─── Kopfzellen ───────────────────────────────────────────────────────────────

def is_legend_token(text: str, max_length: int = 4) -> bool:
    """Legenden-Einträge im Kopf ("И\\А", "ВСЕ") sind keine Lehrkräfte."""
    stripped = text.strip()
    if "\\" in stripped:
        return True
    compact = stripped.replace(" ", "")
    return len(compact) <= max_length and compact.isupper()


def _strip_room(text: str) -> tuple[str, Optional[str]]:
    """Entfernt die Raumangabe: 'Малыга каб. 3+4' → ('Малыга', 'Каб.3+4')."""
    for pattern in (_ROOM_BEFORE_RE, _ROOM_AFTER_RE):
        match = pattern.search(text)
        if match:
            number = re.sub(r"\s+", "", match.group(1))
            rest = text[:match.start()] + " " + text[match.end():]
            rest = _EMPTY_PARENS_RE.sub(" ", rest)
            return " ".join(rest.split()), f"Каб.{number}"
    return " ".join(text.split()), None


def parse_header_cell(
    text: str, config: Optional[ImportConfig] = None
) -> Optional[tuple[str, Optional[str], Optional[str]]]:
    """Zerlegt eine Kopfzelle in (Name, Fachrichtung, Raum).

    Gibt None für leere Zellen und Legenden-Einträge zurück.
    """
    cfg = config or default_import_config()
    if not text.strip() or is_legend_token(text, cfg.layout.legend_max_length):
        return None

    rest, room = _strip_room(text)

    specialization = None
    tokens = rest.split()
    if len(tokens) > 1:
        last = tokens[-1].strip(".,;()").lower()
        lookup = cfg.vocabulary.specialization_lookup()
        if last in lookup:
            specialization = lookup[last]
            tokens = tokens[:-1]

    name = " ".join(tokens).strip(" -,.;")
    if not name:
        return None
    return name, specialization, room


# ─── Blöcke ───────────────────────────────────────────────────────────────────

def split_blocks(
    grid: RawGrid, day_groups: Optional[list[DayGroupDef]] = None
) -> list[ScheduleBlock]:
    """Teilt das Raster (mit Leerzeilen) in zusammenhängende Blöcke.

    Ein Lauf nicht-leerer Zeilen zählt nur als Block, wenn er mindestens
    3 Zeilen hat und seine zweite Zeile eine Tagesgruppen-Markierung enthält.
    """
    blocks: list[ScheduleBlock] = []
    run: list[list[str]] = []
    run_start = 0

    def close_run() -> None:
        if not run:
            return
        if len(run) >= 3 and row_has_marker(run[1], day_groups):
            blocks.append(ScheduleBlock(start_row=run_start, rows=list(run)))
        else:
            logger.debug(
                f"Zeilen {run_start + 1}-{run_start + len(run)}: kein Block "
                f"({len(run)} Zeilen, keine Markierung in Zeile 2)"
            )

    for idx, row in enumerate(grid):
        if is_blank_row(row):
            close_run()
            run = []
            continue
        if not run:
            run_start = idx
        run.append(row)
    close_run()
    return blocks


def _assign_day_groups(
    own: list[int], marker_row: list[str], day_groups: list[DayGroupDef]
) -> dict[str, int]:
    """Ordnet die eigenen Spalten einer Lehrkraft den Tagesgruppen zu.

    Die Markierungszeile entscheidet; bei Mehrdeutigkeit ist die erste
    Spalte Пн/Ср/Пт (erste Tagesgruppe der Config).
    """
    first = day_groups[0].id
    marks = [
        day_group_of(marker_row[c], day_groups) if c < len(marker_row) else None
        for c in own
    ]
    if len(own) == 1 or len(day_groups) < 2:
        return {marks[0] or first: own[0]}

    second = day_groups[1].id
    g0, g1 = marks
    if g0 and g1 and g0 != g1:
        return {g0: own[0], g1: own[1]}
    # Tauschen nur bei eindeutigem Signal, gleiche Markierung zählt nicht
    if (g0 == second and g1 != second) or (g1 == first and g0 != first):
        return {first: own[1], second: own[0]}
    return {first: own[0], second: own[1]}


def parse_block_columns(
    block: ScheduleBlock, config: Optional[ImportConfig] = None
) -> list[TeacherColumn]:
    """Liest die Lehrkraft-Spalten eines Blocks aus Kopf- und Markierungszeile."""
    cfg = config or default_import_config()
    header = block.header_row
    time_col = cfg.layout.time_column

    parsed: dict[int, tuple[str, Optional[str], Optional[str]]] = {}
    for c, text in enumerate(header):
        if c == time_col:
            continue
        result = parse_header_cell(text, cfg)
        if result is not None:
            parsed[c] = result

    columns: list[TeacherColumn] = []
    for c, (name, specialization, room) in parsed.items():
        own = [c]
        neighbour = c + 1
        if (neighbour < len(header) and neighbour != time_col
                and not header[neighbour].strip()):
            own.append(neighbour)
        columns.append(TeacherColumn(
            header=header[c].strip(),
            name=name,
            specialization=specialization,
            room=room,
            columns=_assign_day_groups(own, block.marker_row, cfg.day_groups),
        ))
    return columns


def iter_block_cells(
    block: ScheduleBlock,
    columns: list[TeacherColumn],
    config: Optional[ImportConfig] = None,
) -> Iterator[GridCell]:
    """Liefert alle nicht-leeren Datenzellen eines Blocks.

    Zeilen ohne gültige Uhrzeit in der Zeitspalte (Notizen, Abstandszeilen)
    werden komplett übersprungen.
    """
    cfg = config or default_import_config()
    yield from _iter_data_cells(block.data_rows, block.start_row + 2, columns, cfg)


def _iter_data_cells(
    data_rows: list[list[str]],
    first_row_idx: int,
    columns: list[TeacherColumn],
    cfg: ImportConfig,
) -> Iterator[GridCell]:
    time_col = cfg.layout.time_column
    slots = cfg.time_grid.time_slots

    for offset, row in enumerate(data_rows):
        row_idx = first_row_idx + offset
        time = parse_time_label(row[time_col], slots) if time_col < len(row) else None
        if time is None:
            logger.debug(f"Zeile {row_idx + 1}: keine gültige Uhrzeit, übersprungen")
            continue
        for tc in columns:
            for group_id, col in tc.columns.items():
                raw = row[col].strip() if col < len(row) else ""
                if not raw:
                    continue
                yield GridCell(
                    teacher_name=tc.name,
                    teacher_header=tc.header,
                    raw=raw,
                    time=time,
                    day_group=group_id,
                    room=tc.room,
                    row=row_idx,
                    col=col,
                )


def _count_timeless_rows(rows: list[list[str]], time_col: int, slots: list[str]) -> int:
    return sum(
        1 for row in rows
        if not is_blank_row(row)
        and (time_col >= len(row) or parse_time_label(row[time_col], slots) is None)
    )


# ─── Altes Format ─────────────────────────────────────────────────────────────

def parse_legacy_columns(
    grid: RawGrid, day_group: str, config: Optional[ImportConfig] = None
) -> list[TeacherColumn]:
    """Kopfzeile des alten Formats: eine Spalte pro Lehrkraft."""
    cfg = config or default_import_config()
    columns: list[TeacherColumn] = []
    for c, text in enumerate(grid[0]):
        if c == cfg.layout.time_column:
            continue
        result = parse_header_cell(text, cfg)
        if result is None:
            continue
        name, specialization, room = result
        columns.append(TeacherColumn(
            header=text.strip(), name=name, specialization=specialization,
            room=room, columns={day_group: c},
        ))
    return columns


def iter_legacy_cells(
    grid: RawGrid, day_group: Optional[str], config: Optional[ImportConfig] = None
) -> Iterator[GridCell]:
    """Liefert die Zellen des alten Formats (Raster ohne Leerzeilen).

    Raises:
        LayoutError: Tagesgruppe fehlt oder ist unbekannt.
    """
    cfg = config or default_import_config()
    _require_day_group(day_group, cfg)
    columns = parse_legacy_columns(grid, day_group, cfg)
    yield from _iter_data_cells(grid[1:], 1, columns, cfg)


def _require_day_group(day_group: Optional[str], cfg: ImportConfig) -> None:
    if not day_group:
        raise LayoutError(
            "Tabelle im alten Format (ohne Tagesgruppen-Zeile): "
            "bitte die Tagesgruppe angeben ("
            + ", ".join(f"{g.id} = {g.label}" for g in cfg.day_groups) + ")."
        )
    if cfg.get_day_group(day_group) is None:
        raise LayoutError(f"Unbekannte Tagesgruppe: '{day_group}'")


# ─── Einstiegspunkt ───────────────────────────────────────────────────────────

def extract_cells(
    text: str,
    config: Optional[ImportConfig] = None,
    day_group: Optional[str] = None,
) -> SheetExtraction:
    """Parst den Tabellen-Text, erkennt das Format und liefert alle Zellen.

    Im Block-Format filtert ``day_group`` (optional) auf eine Tagesgruppe;
    im alten Format ist sie Pflicht.

    Raises:
        EmptyGridError: Tabelle leer oder ohne Unterrichtszellen.
        LayoutError: Format passt nicht (keine gültigen Blöcke, Tagesgruppe fehlt).
    """
    cfg = config or default_import_config()
    delimiter = cfg.source.delimiter
    time_col = cfg.layout.time_column
    slots = cfg.time_grid.time_slots

    grid = parse_delimited(text, delimiter=delimiter, keep_empty_rows=True)
    if not grid or all(is_blank_row(r) for r in grid):
        raise EmptyGridError("Tabelle ist leer.")

    layout = detect_layout(grid, cfg.day_groups, cfg.layout.detection_rows)
    logger.info(f"Format erkannt: {layout.value}")

    if layout == Layout.MULTI_BLOCK:
        if day_group is not None and cfg.get_day_group(day_group) is None:
            raise LayoutError(f"Unbekannte Tagesgruppe: '{day_group}'")
        blocks = split_blocks(grid, cfg.day_groups)
        if not blocks:
            raise LayoutError(
                "Keine gültigen Blöcke gefunden (Kopfzeile, Tagesgruppen-Zeile, "
                "Datenzeilen)."
            )
        cells: list[GridCell] = []
        all_columns: list[TeacherColumn] = []
        skipped = 0
        for block in blocks:
            columns = parse_block_columns(block, cfg)
            all_columns.extend(columns)
            cells.extend(iter_block_cells(block, columns, cfg))
            skipped += _count_timeless_rows(block.data_rows, time_col, slots)
        if day_group is not None:
            cells = [c for c in cells if c.day_group == day_group]
        logger.info(f"{len(blocks)} Blöcke, {len(all_columns)} Lehrkraft-Spalten, "
                    f"{len(cells)} Zellen")
        extraction = SheetExtraction(
            layout=layout, cells=cells, teacher_columns=all_columns,
            block_count=len(blocks), skipped_rows=skipped,
        )
    else:
        _require_day_group(day_group, cfg)
        compact = parse_delimited(text, delimiter=delimiter, keep_empty_rows=False)
        if len(compact) < 2:
            raise EmptyGridError("Tabelle enthält keine Datenzeilen.")
        extraction = SheetExtraction(
            layout=layout,
            cells=list(iter_legacy_cells(compact, day_group, cfg)),
            teacher_columns=parse_legacy_columns(compact, day_group, cfg),
            block_count=1,
            skipped_rows=_count_timeless_rows(compact[1:], time_col, slots),
        )

    if not extraction.cells:
        raise EmptyGridError("Keine Unterrichtszellen in der Tabelle gefunden.")
    return extraction

"""Tests für Format-Erkennung, Block-Zerlegung und Kopfzellen."""

import pytest

from config.defaults import default_import_config
from data.blocks import (
    _assign_day_groups,
    extract_cells,
    is_legend_token,
    parse_block_columns,
    parse_header_cell,
    split_blocks,
)
from data.csv_grid import parse_delimited
from data.errors import EmptyGridError, LayoutError
from models.grid import GridCell, Layout


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _make_block_sheet() -> str:
    """Zwei Blöcke, getrennt durch eine Leerzeile, mit Notizzeile."""
    return (
        "Время,Малыга Дарья каб.1,,Ержан лого,,И\\А\n"
        ",Пн/Ср/Пт,Вт/Чт,Вт/Чт,Пн/Ср/Пт,\n"
        "9.00,Асанали И,МаркВ,гр. шк1,----,\n"
        "Notiz,,,,,\n"
        "10:00,,Мирон+Данил,,метод,\n"
        ",,,,,\n"
        "Время,Иванова деф,\n"
        ",Пн/Ср/Пт,\n"
        "11.00,Алия,\n"
    )


def _make_legacy_sheet() -> str:
    return (
        "Время,Малыга,Ержан\n"
        "9.00,Асанали,\n"
        ",,\n"
        "10.00,,МаркВ\n"
    )


def _by_address(cells: list[GridCell]) -> dict[str, GridCell]:
    return {c.address: c for c in cells}


# ─── KOPFZELLEN ───────────────────────────────────────────────────────────────

class TestHeaderCells:
    def test_room_and_specialization(self):
        """'Малыга Дарья каб.1' → Name ohne Raum, Raum normalisiert."""
        assert parse_header_cell("Малыга Дарья каб.1") == ("Малыга Дарья", None, "Каб.1")

    def test_room_with_plus(self):
        name, _, room = parse_header_cell("Малыга (каб. 3 + 4)")
        assert name == "Малыга"
        assert room == "Каб.3+4"

    def test_specialization_stripped(self):
        assert parse_header_cell("Ержан лого") == ("Ержан", "лого", None)

    def test_single_token_is_name_not_specialization(self):
        """Ein einzelnes Wort bleibt immer der Name."""
        name, specialization, _ = parse_header_cell("деф")
        assert name == "деф"
        assert specialization is None

    @pytest.mark.parametrize("text", ["И\\А", "ВСЕ", "", "   "])
    def test_legend_and_empty_ignored(self, text):
        assert parse_header_cell(text) is None

    def test_legend_detection(self):
        assert is_legend_token("И\\А")
        assert is_legend_token("ВСЕ")
        assert not is_legend_token("Малыга")


# ─── BLÖCKE ───────────────────────────────────────────────────────────────────

class TestSplitBlocks:
    def test_two_blocks(self):
        grid = parse_delimited(_make_block_sheet())
        blocks = split_blocks(grid)
        assert [b.start_row for b in blocks] == [0, 6]
        assert blocks[1].header_row[1] == "Иванова деф"

    def test_run_without_marker_is_not_a_block(self):
        """Läufe ohne Markierung in Zeile 2 oder mit < 3 Zeilen zählen nicht."""
        grid = parse_delimited(
            "Notizen,,\nirgendwas,,\nnoch was,,\n,,\nВремя,X,\n,Пн/Ср/Пт,\n"
        )
        assert split_blocks(grid) == []

    def test_columns_follow_marker_row(self):
        """Vertauschte Markierungen (Вт/Чт zuerst) werden richtig zugeordnet."""
        block = split_blocks(parse_delimited(_make_block_sheet()))[0]
        columns = {c.name: c for c in parse_block_columns(block)}
        assert set(columns) == {"Малыга Дарья", "Ержан"}
        assert columns["Малыга Дарья"].columns == {"mwf": 1, "tt": 2}
        assert columns["Ержан"].columns == {"tt": 3, "mwf": 4}
        assert columns["Ержан"].specialization == "лого"

    def test_neighbour_with_own_header(self):
        """Steht rechts schon die nächste Lehrkraft, gehört nur eine Spalte dazu."""
        grid = parse_delimited("Время,Малыга,Ержан\n,Пн/Ср/Пт,Вт/Чт\n9.00,a,b\n")
        columns = {c.name: c.columns for c in parse_block_columns(split_blocks(grid)[0])}
        assert columns == {"Малыга": {"mwf": 1}, "Ержан": {"tt": 2}}

    @pytest.mark.parametrize("left, right", [
        ("Пн/Ср/Пт", "Пн/Ср/Пт"),
        ("Вт/Чт", "Вт/Чт"),
        ("irgendwas", "Fr"),
        ("", ""),
    ])
    def test_ambiguous_markers_keep_default_order(self, left, right):
        """Ohne eindeutige Markierung ist die erste Spalte Пн/Ср/Пт."""
        grid = parse_delimited(
            f"Время,Малыга,,Ержан,\n,Пн/Ср/Пт,Вт/Чт,{left},{right}\n9.00,a,b,c,d\n"
        )
        columns = {c.name: c.columns for c in parse_block_columns(split_blocks(grid)[0])}
        assert columns["Малыга"] == {"mwf": 1, "tt": 2}
        assert columns["Ержан"] == {"mwf": 3, "tt": 4}


class TestAssignDayGroups:
    @pytest.mark.parametrize("marker_row", [
        ["", "Пн/Ср/Пт", "Пн/Ср/Пт"],
        ["", "Вт/Чт", "Вт/Чт"],
        ["", "xyz", "abc"],
        ["", "", ""],
        [""],
    ])
    def test_default_order(self, marker_row):
        cfg = default_import_config()
        assert _assign_day_groups([1, 2], marker_row, cfg.day_groups) == {"mwf": 1, "tt": 2}

    @pytest.mark.parametrize("marker_row", [
        ["", "Вт/Чт", ""],
        ["", "", "Пн/Ср/Пт"],
        ["", "Вт/Чт", "Пн/Ср/Пт"],
    ])
    def test_swapped_on_clear_signal(self, marker_row):
        cfg = default_import_config()
        assert _assign_day_groups([1, 2], marker_row, cfg.day_groups) == {"mwf": 2, "tt": 1}

    def test_single_column_follows_marker(self):
        cfg = default_import_config()
        assert _assign_day_groups([3], ["", "", "", "Вт/Чт"], cfg.day_groups) == {"tt": 3}


# ─── EXTRAKTION ───────────────────────────────────────────────────────────────

class TestExtractCells:
    def test_multi_block_cells(self):
        extraction = extract_cells(_make_block_sheet())
        assert extraction.layout == Layout.MULTI_BLOCK
        assert extraction.block_count == 2
        assert extraction.skipped_rows == 1

        cells = _by_address(extraction.cells)
        assert cells["B3"].raw == "Асанали И"
        assert cells["B3"].day_group == "mwf"
        assert cells["B3"].time == "09:00"
        assert cells["B3"].room == "Каб.1"
        assert cells["D3"].day_group == "tt"
        assert cells["C5"].raw == "Мирон+Данил"
        assert cells["B9"].teacher_header == "Иванова деф"
        assert cells["B9"].time == "11:00"

    def test_note_rows_produce_no_cells(self):
        extraction = extract_cells(_make_block_sheet())
        assert all(c.row != 3 for c in extraction.cells)

    def test_day_group_filter(self):
        extraction = extract_cells(_make_block_sheet(), day_group="tt")
        assert extraction.cells
        assert all(c.day_group == "tt" for c in extraction.cells)

    def test_unknown_day_group_raises(self):
        with pytest.raises(LayoutError, match="Unbekannte Tagesgruppe"):
            extract_cells(_make_block_sheet(), day_group="xyz")

    def test_legacy_requires_day_group(self):
        with pytest.raises(LayoutError, match="alten Format"):
            extract_cells(_make_legacy_sheet())

    def test_legacy_cells(self):
        """Altes Format: Leerzeilen werden verdichtet, ein Rhythmus für alle."""
        extraction = extract_cells(_make_legacy_sheet(), day_group="tt")
        assert extraction.layout == Layout.LEGACY
        assert [(c.raw, c.teacher_name, c.day_group) for c in extraction.cells] == [
            ("Асанали", "Малыга", "tt"),
            ("МаркВ", "Ержан", "tt"),
        ]

    def test_empty_sheet_raises(self):
        with pytest.raises(EmptyGridError):
            extract_cells("")
        with pytest.raises(EmptyGridError):
            extract_cells(",,\n,,\n")

    def test_sheet_without_lessons_raises(self):
        with pytest.raises(EmptyGridError):
            extract_cells("Время,Малыга,\n,Пн/Ср/Пт,Вт/Чт\n9.00,,\n")

    def test_marker_without_valid_block_raises(self):
        """Markierung erkannt, aber kein Block mit 3 Zeilen → LayoutError."""
        with pytest.raises(LayoutError):
            extract_cells("Время,Малыга\n,Пн/Ср/Пт\n")

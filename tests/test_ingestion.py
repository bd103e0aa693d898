"""Tests für Einlesen, Zeitangaben, Markierungen und den Tabellen-Abruf."""

from pathlib import Path

import pytest
import requests

from data.csv_grid import (
    add_minutes,
    day_group_of,
    detect_layout,
    is_day_group_marker,
    normalize_marker,
    parse_delimited,
    parse_time_label,
)
from data.errors import SheetFetchError, SheetUrlError
from data.sheet_source import (
    build_csv_url,
    extract_gid,
    extract_sheet_id,
    fetch_sheet_csv,
    load_source,
)
from models.grid import Layout

SHEET_URL = "https://docs.google.com/spreadsheets/d/1AbC_d-9xyz/edit#gid=42"


# ─── CSV-RASTER ───────────────────────────────────────────────────────────────

class TestParseDelimited:
    def test_quoted_fields_and_newlines(self):
        """Anführungszeichen, verdoppelte Quotes und Zeilenumbrüche in Feldern."""
        text = 'Время,"Малыга, каб.1"\n9.00,"Асанали\nИ"\n10.00,"sagt ""hi"""\n'
        grid = parse_delimited(text)
        assert grid[0] == ["Время", "Малыга, каб.1"]
        assert grid[1][1] == "Асанали\nИ"
        assert grid[2][1] == 'sagt "hi"'

    def test_ragged_rows_padded(self):
        """Kürzere Zeilen werden mit "" aufgefüllt."""
        grid = parse_delimited("a,b,c\nd\n")
        assert grid == [["a", "b", "c"], ["d", "", ""]]

    def test_empty_rows_kept_or_dropped(self):
        """Leerzeilen bleiben als Block-Trenner oder werden verdichtet."""
        text = "a,b\n,\nc,d\n"
        assert len(parse_delimited(text, keep_empty_rows=True)) == 3
        assert parse_delimited(text, keep_empty_rows=False) == [["a", "b"], ["c", "d"]]

    def test_trailing_blank_rows_removed(self):
        assert parse_delimited("a,b\n,\n ,\n") == [["a", "b"]]

    def test_custom_delimiter(self):
        assert parse_delimited("a;b\n", delimiter=";") == [["a", "b"]]


# ─── ZEITANGABEN ──────────────────────────────────────────────────────────────

class TestTimeLabels:
    @pytest.mark.parametrize("label", ["9.00", "09:00", " 9:00 ", "09.00"])
    def test_accepted_forms(self, label):
        """'9.00' und '09:00' → '09:00'."""
        assert parse_time_label(label) == "09:00"

    @pytest.mark.parametrize("label", ["08:00", "19:00", "9:30", "25:00"])
    def test_outside_grid_rejected(self, label):
        """Zeiten außerhalb des Rasters werden nicht gerundet, sondern verworfen."""
        assert parse_time_label(label) is None

    @pytest.mark.parametrize("label", ["", "9", "9-00", "девять", "9.0", "Время"])
    def test_malformed_rejected(self, label):
        assert parse_time_label(label) is None

    def test_custom_allowed_set(self):
        assert parse_time_label("8.30", ["08:30"]) == "08:30"

    def test_add_minutes(self):
        assert add_minutes("09:00", 60) == "10:00"
        assert add_minutes("17:45", 30) == "18:15"


# ─── MARKIERUNGEN ─────────────────────────────────────────────────────────────

class TestMarkers:
    @pytest.mark.parametrize("text", ["Пн/Ср/Пт", "ПН / СР / ПТ", "пн-ср-пт", "Пн, Ср, Пт"])
    def test_mwf_spellings(self, text):
        """Groß-/Kleinschreibung und Trennzeichen sind egal."""
        assert normalize_marker(text) == "пн/ср/пт"
        assert day_group_of(text) == "mwf"

    def test_tt_marker(self):
        assert day_group_of("Вт / Чт") == "tt"

    def test_unknown_marker(self):
        assert day_group_of("Сб") is None
        assert day_group_of("") is None
        assert not is_day_group_marker("Асанали")
        assert is_day_group_marker("вторник/четверг")

    def test_detect_multi_block(self):
        grid = [["Время", "Малыга", ""], ["", "Пн/Ср/Пт", "Вт/Чт"], ["9.00", "x", "y"]]
        assert detect_layout(grid) == Layout.MULTI_BLOCK

    def test_detect_legacy_without_marker_row(self):
        """Ein Block ohne Markierungszeile → altes Format."""
        grid = [["Время", "Малыга", "Ержан"], ["9.00", "x", "y"], ["10.00", "z", ""]]
        assert detect_layout(grid) == Layout.LEGACY


# ─── TABELLEN-ABRUF ───────────────────────────────────────────────────────────

class _FakeResponse:
    def __init__(self, status_code: int, content: bytes = b""):
        self.status_code = status_code
        self.content = content

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class TestSheetSource:
    def test_extract_ids(self):
        assert extract_sheet_id(SHEET_URL) == "1AbC_d-9xyz"
        assert extract_gid(SHEET_URL) == "42"
        assert extract_gid("https://docs.google.com/spreadsheets/d/X/edit") is None

    def test_build_csv_url(self):
        url = build_csv_url("X", "42")
        assert url == "https://docs.google.com/spreadsheets/d/X/export?format=csv&gid=42"
        assert build_csv_url("X").endswith("format=csv")

    def test_invalid_url_raises(self):
        with pytest.raises(SheetUrlError):
            fetch_sheet_csv("https://example.com/not-a-sheet")

    def test_fetch_decodes_utf8_bom(self, monkeypatch):
        """BOM wird entfernt, Export-URL enthält die gid."""
        calls = {}

        def fake_get(url, timeout):
            calls["url"] = url
            calls["timeout"] = timeout
            return _FakeResponse(200, "﻿Время,Малыга\n".encode("utf-8"))

        monkeypatch.setattr(requests, "get", fake_get)
        text = fetch_sheet_csv(SHEET_URL, timeout=3.0)
        assert text.startswith("Время")
        assert calls["url"].endswith("gid=42")
        assert calls["timeout"] == 3.0

    def test_fetch_404_is_not_found(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse(404))
        with pytest.raises(SheetFetchError, match="nicht gefunden"):
            fetch_sheet_csv(SHEET_URL)

    def test_fetch_other_status_raises(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse(403))
        with pytest.raises(SheetFetchError, match="403"):
            fetch_sheet_csv(SHEET_URL)

    def test_fetch_timeout_raises(self, monkeypatch):
        def boom(url, timeout):
            raise requests.Timeout("slow")

        monkeypatch.setattr(requests, "get", boom)
        with pytest.raises(SheetFetchError, match="Zeitüberschreitung"):
            fetch_sheet_csv(SHEET_URL)

    def test_fetch_connection_error_raises(self, monkeypatch):
        def boom(url, timeout):
            raise requests.ConnectionError("offline")

        monkeypatch.setattr(requests, "get", boom)
        with pytest.raises(SheetFetchError):
            fetch_sheet_csv(SHEET_URL)

    def test_load_source_local_file(self, tmp_path: Path):
        path = tmp_path / "sheet.csv"
        path.write_text("Время,Малыга\n", encoding="utf-8")
        assert load_source(str(path)).startswith("Время")

    def test_load_source_missing_file(self, tmp_path: Path):
        with pytest.raises(SheetFetchError):
            load_source(str(tmp_path / "none.csv"))

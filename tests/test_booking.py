"""Tests für Kandidaten-Erzeugung, Konfliktprüfung, Slot-Speicher und Validierung."""

from datetime import date
from pathlib import Path
from typing import Optional

import pytest

from analysis.slot_validator import SlotValidator
from booking.conflicts import ConflictChecker, commit_candidates
from booking.materializer import materialize, materialize_all, pair_key_for, weekdays_for
from booking.store import InMemorySlotStore, JsonSlotStore, SlotConflictError
from config.defaults import default_import_config
from matching.classifier import classify_cell
from matching.resolver import CellResolver
from models.directory import DirectorySnapshot, GroupRecord, StudentRecord, TeacherRecord
from models.grid import GridCell
from models.match import LessonType, MatchResult
from models.slot import ScheduleSlot, SlotCandidate

WEEK = date(2025, 9, 1)   # Montag


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _make_directory() -> DirectorySnapshot:
    return DirectorySnapshot(
        teachers=[
            TeacherRecord(id="t1", last_name="Малыга", first_name="Дарья"),
            TeacherRecord(id="t2", last_name="Сапаров", first_name="Ержан"),
            TeacherRecord(id="t3", last_name="Петров", first_name="Олег", is_active=False),
        ],
        students=[
            StudentRecord(id="s1", last_name="Нурланов", first_name="Асанали"),
            StudentRecord(id="s3", last_name="Ким", first_name="Мирон"),
            StudentRecord(id="s4", last_name="Орлов", first_name="Данил"),
            StudentRecord(id="s5", last_name="Серикова", first_name="Алия"),
            StudentRecord(id="s6", last_name="Вахитов", first_name="Марат"),
            StudentRecord(id="s8", last_name="Ёлкин", first_name="Пётр", is_active=False),
        ],
        groups=[
            GroupRecord(id="g1", name="шк1", member_ids=["s5"]),
            GroupRecord(id="g2", name="шк2", member_ids=["s5", "s6"]),
        ],
    )


def _make_match(raw: str, teacher: str = "Малыга", time: str = "09:00",
                day_group: str = "mwf", col: int = 1) -> MatchResult:
    cell = GridCell(
        teacher_name=teacher, teacher_header=teacher, raw=raw, time=time,
        day_group=day_group, room="Каб.1", row=2, col=col,
    )
    return CellResolver(_make_directory()).resolve(cell, classify_cell(raw))


def _make_slot(slot_id: str, teacher_id: str = "t1", student_id: Optional[str] = None,
               group_id: Optional[str] = None, weekday: int = 1, start_time: str = "09:00",
               pair_key: Optional[str] = None) -> ScheduleSlot:
    return ScheduleSlot(
        id=slot_id, teacher_id=teacher_id, student_id=student_id, group_id=group_id,
        weekday=weekday, start_time=start_time, end_time="10:00", week_start=WEEK,
        lesson_type=LessonType.GROUP if group_id else LessonType.INDIVIDUAL,
        pair_key=pair_key, source="B3",
    )


def _commit(*raws_and_teachers: tuple[str, str], store=None):
    store = store if store is not None else InMemorySlotStore()
    matches = [_make_match(raw, teacher, col=i + 1)
               for i, (raw, teacher) in enumerate(raws_and_teachers)]
    report = commit_candidates(materialize_all(matches, WEEK), store, _make_directory())
    return report, store


# ─── KANDIDATEN ───────────────────────────────────────────────────────────────

class TestMaterializer:
    def test_individual_one_per_day(self):
        candidates = materialize(_make_match("Асанали И"), WEEK)
        assert [c.weekday for c in candidates] == [1, 3, 5]
        c = candidates[0]
        assert (c.teacher_id, c.student_id, c.group_id) == ("t1", "s1", None)
        assert (c.start_time, c.end_time) == ("09:00", "10:00")
        assert c.week_start == WEEK
        assert c.category == "И"
        assert c.room == "Каб.1"
        assert c.source == "B3"
        assert c.lesson_type == LessonType.INDIVIDUAL
        assert c.pair_key is None

    def test_weekday_override_wins(self):
        match = _make_match("Асанали вт")
        assert weekdays_for(match) == [2]
        assert [c.weekday for c in materialize(match, WEEK)] == [2]

    def test_tt_day_group(self):
        candidates = materialize(_make_match("Асанали", day_group="tt"), WEEK)
        assert [c.weekday for c in candidates] == [2, 4]

    def test_pair_shares_key(self):
        candidates = materialize(_make_match("Мирон+Данил"), WEEK)
        assert len(candidates) == 6
        assert {c.pair_key for c in candidates} == {"s3+s4"}
        assert {c.student_id for c in candidates} == {"s3", "s4"}

    def test_pair_key_is_sorted(self):
        assert pair_key_for(["s7", "s2"]) == pair_key_for(["s2", "s7"]) == "s2+s7"

    def test_group(self):
        c = materialize(_make_match("гр. шк1"), WEEK)[0]
        assert (c.group_id, c.student_id) == ("g1", None)
        assert c.lesson_type == LessonType.GROUP
        assert c.target_label == "Группа шк1"

    def test_method_has_no_student(self):
        c = materialize(_make_match("метод"), WEEK)[0]
        assert c.student_id is None and c.group_id is None
        assert c.category == "Метод"

    def test_invalid_match_yields_nothing(self):
        assert materialize(_make_match("Кимм"), WEEK) == []
        assert materialize(_make_match("Асанали", teacher="Петров"), WEEK) == []

    def test_lesson_minutes_from_config(self):
        config = default_import_config()
        config.time_grid.lesson_minutes = 45
        c = materialize(_make_match("Асанали"), WEEK, config)[0]
        assert c.end_time == "09:45"

    def test_candidate_is_frozen(self):
        c = materialize(_make_match("Асанали"), WEEK)[0]
        with pytest.raises(Exception):
            c.weekday = 2
        assert c in {c}


# ─── KONFLIKTE ────────────────────────────────────────────────────────────────

class TestConflicts:
    def test_commit_creates_all(self):
        report, store = _commit(("Асанали", "Малыга"))
        assert report.created_count == 3
        assert report.rejections == []
        assert len(store) == 3

    def test_second_commit_creates_nothing(self):
        """Idempotent: gleicher Import zweimal → beim zweiten Mal 0 neue Slots."""
        _, store = _commit(("Асанали", "Малыга"), ("Мирон+Данил", "Ержан"))
        assert len(store) == 9
        report, _ = _commit(("Асанали", "Малыга"), ("Мирон+Данил", "Ержан"), store=store)
        assert report.created_count == 0
        assert len(report.rejections) == 9
        assert len(store) == 9

    def test_teacher_busy(self):
        report, _ = _commit(("Асанали", "Малыга"), ("Мирон", "Малыга"))
        assert report.created_count == 3
        assert {r.reason for r in report.rejections} == {"teacher_busy"}
        assert "Пн 09:00" in report.rejections[0].message

    def test_pair_shares_teacher(self):
        report, store = _commit(("Мирон+Данил", "Малыга"))
        assert report.created_count == 6
        assert report.rejections == []

    def test_student_busy_with_other_teacher(self):
        report, _ = _commit(("Асанали", "Малыга"), ("Асанали", "Ержан"))
        assert report.created_count == 3
        assert {r.reason for r in report.rejections} == {"student_busy"}

    def test_student_busy_in_group(self):
        """Einzelstunde für Алия, während ihre Gruppe шк1 Unterricht hat."""
        report, _ = _commit(("гр. шк1", "Малыга"), ("Алия", "Ержан"))
        assert report.created_count == 3
        assert {r.reason for r in report.rejections} == {"student_busy"}
        assert "Группа шк1" in report.rejections[0].message

    def test_group_busy(self):
        report, _ = _commit(("гр. шк1", "Малыга"), ("гр. шк1", "Ержан"))
        assert {r.reason for r in report.rejections} == {"group_busy"}

    def test_member_has_individual_lesson(self):
        report, _ = _commit(("Алия", "Малыга"), ("гр. шк1", "Ержан"))
        assert {r.reason for r in report.rejections} == {"member_busy"}
        assert "Einzelstunde" in report.rejections[0].message

    def test_member_in_other_group(self):
        report, _ = _commit(("гр. шк1", "Малыга"), ("гр. шк2", "Ержан"))
        assert {r.reason for r in report.rejections} == {"member_busy"}
        assert "Группа шк1" in report.rejections[0].message

    def test_method_checks_teacher_only(self):
        report, _ = _commit(("Асанали", "Малыга"), ("метод", "Ержан"))
        assert report.created_count == 6
        report, _ = _commit(("Асанали", "Малыга"), ("метод", "Малыга"))
        assert {r.reason for r in report.rejections} == {"teacher_busy"}

    def test_checker_without_directory_skips_membership(self):
        store = InMemorySlotStore([_make_slot("a", teacher_id="t2", group_id="g1")])
        candidate = materialize(_make_match("Алия"), WEEK)[0]
        assert ConflictChecker(store).check(candidate) is None
        assert ConflictChecker(store, _make_directory()).check(candidate).reason == "student_busy"

    def test_write_conflict_does_not_abort(self):
        class _RacingStore(InMemorySlotStore):
            """Ein anderer Prozess belegt den Slot zwischen Prüfung und Schreiben."""

            def create(self, candidate: SlotCandidate) -> ScheduleSlot:
                raise SlotConflictError(candidate, "gerade belegt")

        report, _ = _commit(("Асанали", "Малыга"), store=_RacingStore())
        assert report.created_count == 0
        assert [r.reason for r in report.rejections] == ["write_conflict"] * 3
        assert report.rejections[0].message == "gerade belegt"


# ─── SLOT-SPEICHER ────────────────────────────────────────────────────────────

class TestSlotStore:
    def _candidate(self, **kwargs) -> SlotCandidate:
        data = dict(teacher_id="t1", student_id="s1", weekday=1, start_time="09:00",
                    end_time="10:00", week_start=WEEK, lesson_type=LessonType.INDIVIDUAL)
        data.update(kwargs)
        return SlotCandidate(**data)

    def test_uniqueness_enforced_on_write(self):
        store = InMemorySlotStore()
        store.create(self._candidate())
        with pytest.raises(SlotConflictError):
            store.create(self._candidate(student_id="s3"))
        with pytest.raises(SlotConflictError):
            store.create(self._candidate(teacher_id="t2"))
        store.create(self._candidate(weekday=2))
        assert len(store) == 2

    def test_pair_members_share_teacher(self):
        store = InMemorySlotStore()
        store.create(self._candidate(student_id="s3", pair_key="s3+s4"))
        store.create(self._candidate(student_id="s4", pair_key="s3+s4"))
        assert len(store.find(WEEK, 1, "09:00", teacher_id="t1")) == 2

    def test_slots_for_week_sorted(self):
        store = InMemorySlotStore()
        store.create(self._candidate(weekday=3))
        store.create(self._candidate(weekday=1, start_time="11:00"))
        store.create(self._candidate(weekday=1))
        store.create(self._candidate(week_start=date(2025, 9, 8)))
        week = store.slots_for_week(WEEK)
        assert [(s.weekday, s.start_time) for s in week] == [(1, "09:00"), (1, "11:00"), (3, "09:00")]

    def test_copy_is_independent(self):
        store = InMemorySlotStore()
        store.create(self._candidate())
        clone = store.copy()
        clone.create(self._candidate(weekday=2))
        assert (len(store), len(clone)) == (1, 2)

    def test_json_store_persists(self, tmp_path: Path):
        path = tmp_path / "slots.json"
        store = JsonSlotStore(path)
        slot = store.create(self._candidate(category="И"))
        reloaded = JsonSlotStore(path)
        assert reloaded.all() == [slot]
        assert reloaded.all()[0].week_start == WEEK

    def test_json_store_reloads_before_write(self, tmp_path: Path):
        """Zwei Instanzen auf derselben Datei: die zweite sieht den Slot der ersten."""
        path = tmp_path / "slots.json"
        a, b = JsonSlotStore(path), JsonSlotStore(path)
        a.create(self._candidate())
        with pytest.raises(SlotConflictError):
            b.create(self._candidate(student_id="s3"))


# ─── WOCHEN-VALIDIERUNG ───────────────────────────────────────────────────────

class TestSlotValidator:
    def _constraints(self, slots):
        report = SlotValidator().validate(slots, _make_directory())
        return report, {v.constraint for v in report.violations}

    def test_committed_week_is_valid(self):
        _, store = _commit(("Асанали", "Малыга"), ("Мирон+Данил", "Ержан"), ("гр. шк1", "Ержан"))
        report = SlotValidator().validate(store.slots_for_week(WEEK), _make_directory())
        # шк1 und das Paar liegen bei Ержан zur selben Zeit → Gruppe wurde abgelehnt
        assert report.is_valid
        assert report.slot_count == 9

    def test_teacher_double_booking(self):
        report, found = self._constraints([
            _make_slot("a", student_id="s1"), _make_slot("b", student_id="s3"),
        ])
        assert "teacher_double_booking" in found
        assert not report.is_valid

    def test_pair_is_not_double_booking(self):
        report, found = self._constraints([
            _make_slot("a", student_id="s3", pair_key="s3+s4"),
            _make_slot("b", student_id="s4", pair_key="s3+s4"),
        ])
        assert report.is_valid
        assert found == set()

    def test_student_double_booking_via_group(self):
        report, found = self._constraints([
            _make_slot("a", student_id="s5"),
            _make_slot("b", teacher_id="t2", group_id="g1"),
        ])
        assert found == {"student_double_booking"}
        assert "Серикова Алия" in report.violations[0].description

    def test_unknown_and_inactive_entities(self):
        report, _ = self._constraints([
            _make_slot("a", teacher_id="tX", student_id="s1"),
            _make_slot("b", teacher_id="t3", student_id="s8", weekday=2),
        ])
        by_entity = {v.entity: v.severity for v in report.violations}
        assert by_entity == {"tX": "error", "t3": "warning", "s8": "warning"}
        assert not report.is_valid

    def test_time_outside_grid_is_warning(self):
        report, found = self._constraints([_make_slot("a", student_id="s1", start_time="08:30")])
        assert found == {"time_outside_grid"}
        assert report.is_valid

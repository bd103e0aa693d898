"""Demo-Daten: Verzeichnis-Schnappschuss und passende Beispieltabelle.

Erzeugt realistische Daten mit absichtlichen Stolperstellen:
  1. Zwei Lehrkräfte mit gleichem Nachnamen (Иванова) → Kopf "Иванова" mehrdeutig
  2. Lehrkraft nur mit Vornamen im Kopf ("Ержан лого")
  3. Schüler-Kürzel "МаркВ" (Vorname + Anfangsbuchstabe Nachname)
  4. Platzhalter, gestrichene Stunden, Praktikanten, Methodik-Stunden
  5. Paar-Stunden "Мирон+Данил" und Gruppen mit Mitgliedern
"""

import csv
import io
import random
from typing import Optional

from config.defaults import default_import_config
from config.schema import ImportConfig
from models.directory import DirectorySnapshot, GroupRecord, StudentRecord, TeacherRecord

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES = [
    "Алихан", "Амир", "Арсен", "Дамир", "Ерасыл", "Ислам", "Камила", "Лейла",
    "Мадина", "Нурай", "Сабина", "Тимур", "Томирис", "Айсулу", "Жанель",
]

_LAST_NAMES = [
    "Абенов", "Бекова", "Ахметов", "Жумабаева", "Касымов", "Оспанова",
    "Сейтказиев", "Турсынова", "Калиев", "Нуркенова", "Садыков", "Исаева",
]

_TEACHER_SPECS = ["лого", "деф", "псих", "нейро", "АФК"]

# Feste Einträge für die Stolperstellen
_FIXED_TEACHERS = [
    TeacherRecord(id="t1", last_name="Малыга", first_name="Дарья", patronymic="Алексеевна"),
    TeacherRecord(id="t2", last_name="Сапаров", first_name="Ержан"),
    TeacherRecord(id="t3", last_name="Иванова", first_name="Анна"),
    TeacherRecord(id="t4", last_name="Иванова", first_name="Мария"),
]

_FIXED_STUDENTS = [
    StudentRecord(id="s1", last_name="Нурланов", first_name="Асанали"),
    StudentRecord(id="s2", last_name="Васильев", first_name="Марк"),
    StudentRecord(id="s3", last_name="Ким", first_name="Мирон"),
    StudentRecord(id="s4", last_name="Орлов", first_name="Данил"),
    StudentRecord(id="s5", last_name="Серикова", first_name="Алия"),
]

_FILLERS = ["----", "стажер", "метод", "метод--", "Алия-"]


class DemoDataGenerator:
    """Generiert einen Verzeichnis-Schnappschuss und eine Beispieltabelle."""

    def __init__(self, config: Optional[ImportConfig] = None, seed: Optional[int] = None) -> None:
        self.config = config or default_import_config()
        self.rng = random.Random(seed)

    # ─── Verzeichnis ──────────────────────────────────────────────────────────

    def generate(self, extra_teachers: int = 3, extra_students: int = 20) -> DirectorySnapshot:
        """Erzeugt den Schnappschuss: feste Stolperstellen plus Zufalls-Einträge."""
        teachers = [t.model_copy() for t in _FIXED_TEACHERS]
        used_teacher = {(t.last_name, t.first_name) for t in teachers}
        while len(teachers) < len(_FIXED_TEACHERS) + extra_teachers:
            name = (self.rng.choice(_LAST_NAMES), self.rng.choice(_FIRST_NAMES))
            if name in used_teacher:
                continue
            used_teacher.add(name)
            teachers.append(TeacherRecord(
                id=f"t{len(teachers) + 1}", last_name=name[0], first_name=name[1],
            ))

        students = [s.model_copy() for s in _FIXED_STUDENTS]
        used = {(s.last_name, s.first_name) for s in students}
        while len(students) < len(_FIXED_STUDENTS) + extra_students:
            name = (self.rng.choice(_LAST_NAMES), self.rng.choice(_FIRST_NAMES))
            if name in used:
                continue
            used.add(name)
            students.append(StudentRecord(
                id=f"s{len(students) + 1}", last_name=name[0], first_name=name[1],
                is_active=self.rng.random() > 0.05,
            ))

        pool = [s.id for s in students[len(_FIXED_STUDENTS):]]
        self.rng.shuffle(pool)
        groups = [
            GroupRecord(id="g1", name="шк1", teacher_id="t2", member_ids=pool[0:4]),
            GroupRecord(id="g2", name="шк2", teacher_id="t1", member_ids=pool[4:8]),
            GroupRecord(id="g3", name="МНО ОНР", member_ids=pool[8:12]),
        ]
        return DirectorySnapshot(teachers=teachers, students=students, groups=groups)

    # ─── Tabelle ──────────────────────────────────────────────────────────────

    def _student_text(self, student: StudentRecord) -> str:
        """Schreibt einen Schüler so, wie Lehrkräfte es tun (uneinheitlich)."""
        style = self.rng.random()
        if style < 0.4:
            return student.first_name
        if style < 0.7:
            return f"{student.last_name} {student.first_name}"
        if style < 0.85:
            return student.last_name
        return f"{student.first_name}{student.last_name[0]}"

    def _cell_text(self, directory: DirectorySnapshot, busy: set[str]) -> str:
        roll = self.rng.random()
        if roll < 0.25:
            return ""
        if roll < 0.35:
            return self.rng.choice(_FILLERS)
        if roll < 0.42:
            return self.rng.choice(["гр. шк1", "сопр гр.шк2", "МНО ОНР"])
        free = [s for s in directory.active_students() if s.id not in busy]
        if not free:
            return "----"
        student = self.rng.choice(free)
        busy.add(student.id)
        text = self._student_text(student)
        if self.rng.random() < 0.2:
            text += " " + self.rng.choice(["И", "А", "Тех"])
        return text

    def generate_sheet(self, directory: DirectorySnapshot, columns_per_block: int = 3) -> str:
        """Erzeugt die CSV-Tabelle im Block-Format (eine Lehrkraft = zwei Spalten)."""
        time_slots = self.config.time_grid.time_slots
        day_groups = self.config.day_groups[:2]

        headers = ["Малыга Дарья каб.1", "Ержан лого", "Иванова деф"]
        for t in directory.teachers[len(_FIXED_TEACHERS):]:
            headers.append(f"{t.last_name} {self.rng.choice(_TEACHER_SPECS)}")

        out = io.StringIO()
        writer = csv.writer(out, lineterminator="\n")
        fixed = {
            (0, 0, 0): "Асанали И",
            (0, 1, 0): "МаркВ",
            (1, 0, 1): "Мирон+Данил",
            (1, 1, 1): "Мирон+Данил-",
        }

        for block_idx in range(0, len(headers), columns_per_block):
            block_headers = headers[block_idx:block_idx + columns_per_block]
            header_row = ["Время"]
            marker_row = [""]
            for h in block_headers:
                header_row += [h] + [""] * (len(day_groups) - 1)
                marker_row += [g.label for g in day_groups]
            writer.writerow(header_row)
            writer.writerow(marker_row)

            for slot_idx, time in enumerate(time_slots):
                busy_by_group: dict[str, set[str]] = {g.id: set() for g in day_groups}
                row = [time.lstrip("0").replace(":", ".")]
                for col_idx in range(len(block_headers)):
                    for g_idx, group in enumerate(day_groups):
                        key = (block_idx + col_idx, g_idx, slot_idx)
                        if key in fixed:
                            row.append(fixed[key])
                        else:
                            row.append(self._cell_text(directory, busy_by_group[group.id]))
                writer.writerow(row)
            writer.writerow([])
        return out.getvalue()

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, directory: DirectorySnapshot) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Erzeugte Demo-Daten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        inactive = sum(1 for s in directory.students if not s.is_active)
        table.add_row("Lehrkräfte", str(len(directory.teachers)),
                      "zwei mit Nachname Иванова")
        table.add_row("Schüler", str(len(directory.students)), f"{inactive} inaktiv")
        table.add_row("Gruppen", str(len(directory.groups)),
                      ", ".join(g.name for g in directory.groups))
        console.print(table)

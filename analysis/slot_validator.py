"""Validierung einer gespeicherten Woche.

Prüft die angelegten Slots als Sicherheitsnetz unabhängig von der
Konfliktprüfung beim Commit (z.B. nach manuellen Änderungen an der Datei).
"""

from collections import defaultdict
from typing import Literal, Optional

from pydantic import BaseModel

from config.defaults import WEEKDAY_NAMES, default_import_config
from config.schema import ImportConfig
from models.directory import DirectorySnapshot
from models.slot import ScheduleSlot


class ValidationViolation(BaseModel):
    """Eine einzelne Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "teacher_double_booking"
    description: str
    entity: str          # teacher_id / student_id / group_id


class ValidationReport(BaseModel):
    """Ergebnis der Wochen-Validierung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)
    slot_count: int = 0

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        errors = [v for v in self.violations if v.severity == "error"]
        warnings = [v for v in self.violations if v.severity == "warning"]

        status = (
            "[bold green]✓ VALIDE[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [
            status,
            f"Slots: {self.slot_count} | Fehler: {len(errors)} | Warnungen: {len(warnings)}",
        ]
        console.print(Panel("\n".join(lines), title="Wochen-Validierung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Prüfung", width=24)
        table.add_column("Entität", width=12)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


def _when(slot: ScheduleSlot) -> str:
    return f"{WEEKDAY_NAMES.get(slot.weekday, slot.weekday)} {slot.start_time}"


class SlotValidator:
    """Prüft die Slots einer Woche gegen das Verzeichnis."""

    def __init__(self, config: Optional[ImportConfig] = None) -> None:
        self.config = config or default_import_config()

    def validate(
        self, slots: list[ScheduleSlot], directory: DirectorySnapshot
    ) -> ValidationReport:
        """Führt alle Prüfungen durch und gibt einen ValidationReport zurück."""
        violations: list[ValidationViolation] = []

        violations.extend(self._check_teacher_double_booking(slots))
        violations.extend(self._check_student_double_booking(slots, directory))
        violations.extend(self._check_unknown_entities(slots, directory))
        violations.extend(self._check_time_grid(slots))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(
            violations=violations, is_valid=not has_errors, slot_count=len(slots),
        )

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_teacher_double_booking(
        self, slots: list[ScheduleSlot]
    ) -> list[ValidationViolation]:
        """Keine Lehrkraft darf zur selben Zeit zwei Stunden haben."""
        violations: list[ValidationViolation] = []
        # Gemeinsame Stunden (gleicher pair_key) zählen einmal
        seen: dict[tuple, dict[str, str]] = defaultdict(dict)
        for s in slots:
            key = (s.week_start, s.weekday, s.start_time, s.teacher_id)
            seen[key].setdefault(s.pair_key or s.id, s.target_label or s.id)

        for (_, _, _, teacher_id), lessons in seen.items():
            if len(lessons) > 1:
                first = next(s for s in slots if s.teacher_id == teacher_id)
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="teacher_double_booking",
                    entity=teacher_id,
                    description=(
                        f"{first.teacher_label or teacher_id}: gleichzeitig "
                        f"{', '.join(lessons.values())}."
                    ),
                ))
        return violations

    def _check_student_double_booking(
        self, slots: list[ScheduleSlot], directory: DirectorySnapshot
    ) -> list[ValidationViolation]:
        """Ein Schüler darf pro Zeit nur einmal belegt sein, auch über Gruppen."""
        violations: list[ValidationViolation] = []
        by_student: dict[tuple, list[ScheduleSlot]] = defaultdict(list)

        for s in slots:
            at = (s.week_start, s.weekday, s.start_time)
            if s.student_id:
                by_student[(*at, s.student_id)].append(s)
            elif s.group_id:
                group = directory.get_group(s.group_id)
                for member_id in group.member_ids if group else []:
                    by_student[(*at, member_id)].append(s)

        for (_, _, _, student_id), booked in by_student.items():
            if len(booked) <= 1:
                continue
            student = directory.get_student(student_id)
            violations.append(ValidationViolation(
                severity="error",
                constraint="student_double_booking",
                entity=student_id,
                description=(
                    f"{student.label if student else student_id}, {_when(booked[0])}: "
                    f"{', '.join(b.teacher_label or b.teacher_id for b in booked)}."
                ),
            ))
        return violations

    def _check_unknown_entities(
        self, slots: list[ScheduleSlot], directory: DirectorySnapshot
    ) -> list[ValidationViolation]:
        """Slots müssen auf bekannte (aktive) Lehrkräfte/Schüler/Gruppen zeigen."""
        violations: list[ValidationViolation] = []
        reported: set[str] = set()

        def add(entity: str, severity: str, description: str) -> None:
            if entity in reported:
                return
            reported.add(entity)
            violations.append(ValidationViolation(
                severity=severity, constraint="unknown_entity",
                entity=entity, description=description,
            ))

        for s in slots:
            teacher = directory.get_teacher(s.teacher_id)
            if teacher is None:
                add(s.teacher_id, "error", f"Lehrkraft {s.teacher_id} nicht im Verzeichnis ({s.source}).")
            elif not teacher.is_active:
                add(s.teacher_id, "warning", f"Lehrkraft {teacher.label} ist inaktiv.")
            if s.student_id:
                student = directory.get_student(s.student_id)
                if student is None:
                    add(s.student_id, "error", f"Schüler {s.student_id} nicht im Verzeichnis ({s.source}).")
                elif not student.is_active:
                    add(s.student_id, "warning", f"Schüler {student.label} ist inaktiv.")
            if s.group_id and directory.get_group(s.group_id) is None:
                add(s.group_id, "error", f"Gruppe {s.group_id} nicht im Verzeichnis ({s.source}).")
        return violations

    def _check_time_grid(self, slots: list[ScheduleSlot]) -> list[ValidationViolation]:
        """Beginn muss im Zeitraster liegen."""
        allowed = set(self.config.time_grid.time_slots)
        return [
            ValidationViolation(
                severity="warning",
                constraint="time_outside_grid",
                entity=s.id,
                description=f"{_when(s)} liegt nicht im Zeitraster ({s.source}).",
            )
            for s in slots if s.start_time not in allowed
        ]

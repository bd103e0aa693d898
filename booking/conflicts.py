"""Konfliktprüfung und Commit der Slot-Kandidaten.

Reihenfolge der Prüfungen pro Kandidat:
  1. Lehrkraft zur selben Zeit belegt (außer gemeinsame Stunde, gleicher pair_key)
  2. Einzelstunde: Schüler belegt (direkt oder über eine Gruppe)
     Gruppenstunde: Gruppe belegt, oder ein Mitglied hat eine Einzelstunde
     bzw. eine andere Gruppe zur selben Zeit
Methodik-Stunden werden nur gegen die Lehrkraft geprüft.
"""

import logging
from typing import Iterable, Literal, Optional

from pydantic import BaseModel

from booking.store import SlotConflictError, SlotStore
from config.defaults import WEEKDAY_NAMES
from models.directory import DirectorySnapshot
from models.match import LessonType
from models.slot import ScheduleSlot, SlotCandidate

logger = logging.getLogger(__name__)

RejectionReason = Literal[
    "teacher_busy", "student_busy", "group_busy", "member_busy", "write_conflict",
]


class SlotRejection(BaseModel):
    """Ein abgelehnter Kandidat mit Grund."""

    candidate: SlotCandidate
    reason: RejectionReason
    message: str


class CommitReport(BaseModel):
    """Ergebnis eines Commits: angelegte Slots und Ablehnungen."""

    created: list[ScheduleSlot] = []
    rejections: list[SlotRejection] = []
    aliases_saved: int = 0

    @property
    def created_count(self) -> int:
        return len(self.created)

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        status = (
            "[bold green]✓ ALLE ANGELEGT[/bold green]"
            if not self.rejections
            else "[bold yellow]⚠ KONFLIKTE[/bold yellow]"
        )
        lines = [
            status,
            f"Angelegt: {self.created_count} | Abgelehnt: {len(self.rejections)}",
        ]
        if self.aliases_saved:
            lines.append(f"Aliase gespeichert: {self.aliases_saved}")
        console.print(Panel("\n".join(lines), title="Import-Commit", border_style="cyan"))

        if not self.rejections:
            return

        table = Table(box=box.ROUNDED, show_lines=False)
        table.add_column("Zelle", width=6)
        table.add_column("Tag", width=4)
        table.add_column("Zeit", width=6)
        table.add_column("Grund", width=16)
        table.add_column("Beschreibung")
        for r in self.rejections:
            c = r.candidate
            table.add_row(
                c.source, WEEKDAY_NAMES.get(c.weekday, str(c.weekday)), c.start_time,
                f"[red]{r.reason}[/red]", r.message,
            )
        console.print(table)


def _when(c: SlotCandidate) -> str:
    return f"{WEEKDAY_NAMES.get(c.weekday, c.weekday)} {c.start_time}"


class ConflictChecker:
    """Prüft Kandidaten gegen den aktuellen Stand des Slot-Speichers."""

    def __init__(
        self, store: SlotStore, directory: Optional[DirectorySnapshot] = None
    ) -> None:
        self.store = store
        self.directory = directory

    def check(self, candidate: SlotCandidate) -> Optional[SlotRejection]:
        """Gibt die erste Ablehnung zurück oder None, wenn der Slot frei ist."""
        at = (candidate.week_start, candidate.weekday, candidate.start_time)

        for s in self.store.find(*at, teacher_id=candidate.teacher_id):
            if candidate.pair_key and s.pair_key == candidate.pair_key:
                continue
            return self._reject(
                candidate, "teacher_busy",
                f"Lehrkraft {candidate.teacher_label} ist {_when(candidate)} "
                f"bereits belegt ({s.target_label or s.source})",
            )

        if candidate.lesson_type == LessonType.GROUP and candidate.group_id:
            return self._check_group(candidate, at)
        if candidate.student_id:
            return self._check_student(candidate, at)
        return None

    def _check_student(self, candidate: SlotCandidate, at: tuple) -> Optional[SlotRejection]:
        if self.store.find(*at, student_id=candidate.student_id):
            return self._reject(
                candidate, "student_busy",
                f"Schüler {candidate.target_label} ist {_when(candidate)} bereits belegt",
            )
        if self.directory is not None:
            for group in self.directory.groups_of_student(candidate.student_id):
                if self.store.find(*at, group_id=group.id):
                    return self._reject(
                        candidate, "student_busy",
                        f"Schüler {candidate.target_label} ist {_when(candidate)} "
                        f"in {group.label}",
                    )
        return None

    def _check_group(self, candidate: SlotCandidate, at: tuple) -> Optional[SlotRejection]:
        if self.store.find(*at, group_id=candidate.group_id):
            return self._reject(
                candidate, "group_busy",
                f"{candidate.target_label} hat {_when(candidate)} bereits Unterricht",
            )
        group = self.directory.get_group(candidate.group_id) if self.directory else None
        if group is None:
            return None

        for member_id in group.member_ids:
            student = self.directory.get_student(member_id)
            name = student.label if student else member_id
            if self.store.find(*at, student_id=member_id):
                return self._reject(
                    candidate, "member_busy",
                    f"Mitglied {name} hat {_when(candidate)} eine Einzelstunde",
                )
            for other in self.directory.groups_of_student(member_id):
                if other.id != group.id and self.store.find(*at, group_id=other.id):
                    return self._reject(
                        candidate, "member_busy",
                        f"Mitglied {name} ist {_when(candidate)} in {other.label}",
                    )
        return None

    @staticmethod
    def _reject(candidate: SlotCandidate, reason: RejectionReason, message: str) -> SlotRejection:
        logger.debug(f"{candidate.source} {_when(candidate)}: {message}")
        return SlotRejection(candidate=candidate, reason=reason, message=message)


def commit_candidates(
    candidates: Iterable[SlotCandidate],
    store: SlotStore,
    directory: Optional[DirectorySnapshot] = None,
) -> CommitReport:
    """Prüft und schreibt jeden Kandidaten einzeln. Der Lauf bricht nie ab."""
    checker = ConflictChecker(store, directory)
    report = CommitReport()
    for candidate in candidates:
        rejection = checker.check(candidate)
        if rejection is not None:
            report.rejections.append(rejection)
            continue
        try:
            report.created.append(store.create(candidate))
        except SlotConflictError as e:
            logger.warning(f"Schreibkonflikt {candidate.source} {_when(candidate)}: {e.reason}")
            report.rejections.append(SlotRejection(
                candidate=candidate, reason="write_conflict", message=e.reason,
            ))
    logger.info(f"Commit: {report.created_count} angelegt, "
                f"{len(report.rejections)} abgelehnt")
    return report

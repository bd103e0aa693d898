"""Slot-Speicher: Protokoll, In-Memory-Variante und JSON-Datei.

Die Eindeutigkeit (Woche, Tag, Uhrzeit, Lehrkraft) wird beim Schreiben
erneut geprüft. Slots mit demselben ``pair_key`` (gemeinsame Stunde mehrerer
Schüler) dürfen sich die Lehrkraft teilen.
"""

import json
import logging
import uuid
from datetime import date
from pathlib import Path
from typing import Optional, Protocol

from data.errors import ScheduleImportError
from models.slot import ScheduleSlot, SlotCandidate

logger = logging.getLogger(__name__)


class SlotConflictError(ScheduleImportError):
    """Eindeutigkeitsverletzung beim Schreiben eines Slots."""

    def __init__(self, candidate: SlotCandidate, reason: str) -> None:
        super().__init__(reason)
        self.candidate = candidate
        self.reason = reason


class SlotStore(Protocol):
    """Schnittstelle für die Slot-Ablage."""

    def find(
        self,
        week_start: date,
        weekday: int,
        start_time: str,
        teacher_id: Optional[str] = None,
        student_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> list[ScheduleSlot]: ...

    def slots_for_week(self, week_start: date) -> list[ScheduleSlot]: ...

    def create(self, candidate: SlotCandidate) -> ScheduleSlot: ...


def _shares_pair(a: SlotCandidate, b: SlotCandidate) -> bool:
    return a.pair_key is not None and a.pair_key == b.pair_key


class InMemorySlotStore:
    """Slots im Speicher (Tests, Vorschau-Trockenlauf)."""

    def __init__(self, slots: Optional[list[ScheduleSlot]] = None) -> None:
        self._slots: list[ScheduleSlot] = list(slots or [])

    def find(
        self,
        week_start: date,
        weekday: int,
        start_time: str,
        teacher_id: Optional[str] = None,
        student_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> list[ScheduleSlot]:
        """Alle Slots zur Zeit, gefiltert nach den angegebenen Feldern."""
        result = []
        for s in self._slots:
            if (s.week_start, s.weekday, s.start_time) != (week_start, weekday, start_time):
                continue
            if teacher_id is not None and s.teacher_id != teacher_id:
                continue
            if student_id is not None and s.student_id != student_id:
                continue
            if group_id is not None and s.group_id != group_id:
                continue
            result.append(s)
        return result

    def slots_for_week(self, week_start: date) -> list[ScheduleSlot]:
        return sorted(
            (s for s in self._slots if s.week_start == week_start),
            key=lambda s: (s.weekday, s.start_time, s.teacher_label),
        )

    def all(self) -> list[ScheduleSlot]:
        return list(self._slots)

    def create(self, candidate: SlotCandidate) -> ScheduleSlot:
        """Legt einen Slot an.

        Raises:
            SlotConflictError: Lehrkraft, Schüler oder Gruppe sind zu dieser
                Zeit bereits belegt.
        """
        self._check_unique(candidate)
        slot = ScheduleSlot(id=uuid.uuid4().hex[:12], **candidate.model_dump())
        self._slots.append(slot)
        return slot

    def _check_unique(self, candidate: SlotCandidate) -> None:
        at = (candidate.week_start, candidate.weekday, candidate.start_time)
        for s in self.find(*at, teacher_id=candidate.teacher_id):
            if not _shares_pair(s, candidate):
                raise SlotConflictError(
                    candidate, f"Lehrkraft {candidate.teacher_label or candidate.teacher_id} "
                               f"ist zu dieser Zeit bereits belegt"
                )
        if candidate.student_id and self.find(*at, student_id=candidate.student_id):
            raise SlotConflictError(
                candidate, f"Schüler {candidate.target_label or candidate.student_id} "
                           f"ist zu dieser Zeit bereits belegt"
            )
        if candidate.group_id and self.find(*at, group_id=candidate.group_id):
            raise SlotConflictError(
                candidate, f"Gruppe {candidate.target_label or candidate.group_id} "
                           f"ist zu dieser Zeit bereits belegt"
            )

    def copy(self) -> "InMemorySlotStore":
        """Unabhängige Kopie (für Trockenläufe)."""
        return InMemorySlotStore(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._slots)} slots)"


class JsonSlotStore(InMemorySlotStore):
    """Slots in einer JSON-Datei. Vor jedem Schreiben wird neu geladen."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> list[ScheduleSlot]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return [ScheduleSlot.model_validate(item) for item in data]

    def create(self, candidate: SlotCandidate) -> ScheduleSlot:
        self._slots = self._load()
        slot = super().create(candidate)
        self.save()
        return slot

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [s.model_dump(mode="json") for s in self._slots]
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.debug(f"{len(self._slots)} Slots gespeichert: {self.path}")

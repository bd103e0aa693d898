"""Slot-Kandidaten, gespeicherte Slots, Aliase und manuelle Zuordnungen."""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from models.match import LessonType


class SlotCandidate(BaseModel):
    """Vollständig aufgelöster Stunden-Slot für genau einen Wochentag.

    Unveränderlich: Korrekturen erzeugen einen neuen Kandidaten.
    """

    model_config = ConfigDict(frozen=True)

    teacher_id: str
    student_id: Optional[str] = None
    group_id: Optional[str] = None
    weekday: int                  # 1=Пн .. 7=Вс
    start_time: str               # "HH:MM"
    end_time: str
    week_start: date              # Montag der Zielwoche
    lesson_type: LessonType
    category: Optional[str] = None
    room: Optional[str] = None
    pair_key: Optional[str] = None   # gemeinsame Stunde mehrerer Schüler
    # Diagnose
    teacher_label: str = ""
    target_label: str = ""
    source: str = ""              # Tabellen-Adresse, z.B. "C12"

    @field_validator("weekday")
    @classmethod
    def _check_weekday(cls, v: int) -> int:
        if v < 1 or v > 7:
            raise ValueError(f"Wochentag {v} außerhalb 1–7")
        return v

    @property
    def teacher_key(self) -> tuple:
        """Eindeutigkeits-Schlüssel (Woche, Tag, Zeit, Lehrkraft)."""
        return (self.week_start, self.weekday, self.start_time, self.teacher_id)


class ScheduleSlot(SlotCandidate):
    """Ein gespeicherter Slot (Kandidat + ID)."""

    id: str


AliasKind = Literal["teacher", "student", "group"]


class Alias(BaseModel):
    """Gelernte Zuordnung Roh-Text → Entität."""

    alias: str
    kind: AliasKind
    entity_id: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.alias.strip(), self.kind)


class ManualResolution(BaseModel):
    """Manuelle Zuordnung einer Vorschau-Zelle vor dem Commit."""

    row: int
    col: int
    teacher_id: Optional[str] = None
    student_ids: list[str] = []
    group_id: Optional[str] = None
    persist_alias: bool = False

    @property
    def position(self) -> tuple[int, int]:
        return (self.row, self.col)

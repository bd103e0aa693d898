"""Verzeichnis-Snapshot: Lehrkräfte, Schüler und Gruppen (Pydantic v2)."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


class TeacherRecord(BaseModel):
    """Eine Lehrkraft aus dem Verzeichnis."""

    id: str
    last_name: str                     # "Малыга"
    first_name: str                    # "Дарья"
    patronymic: Optional[str] = None   # "Алексеевна"
    is_active: bool = True

    @property
    def label(self) -> str:
        return f"{self.last_name} {self.first_name}".strip()


class StudentRecord(BaseModel):
    """Ein Schüler aus dem Verzeichnis."""

    id: str
    last_name: str
    first_name: str
    is_active: bool = True

    @property
    def label(self) -> str:
        return f"{self.last_name} {self.first_name}".strip()


class GroupRecord(BaseModel):
    """Eine Gruppe mit ihren Mitgliedern."""

    id: str
    name: str                          # "МНО ОНР", "шк1"
    teacher_id: Optional[str] = None
    member_ids: list[str] = []

    @property
    def label(self) -> str:
        return f"Группа {self.name}"


class DirectorySnapshot(BaseModel):
    """Lesender Schnappschuss aller Stammdaten für einen Import-Lauf.

    Der Import verändert diesen Schnappschuss nie; er wird pro Aufruf
    geladen und explizit an den Resolver übergeben.
    """

    teachers: list[TeacherRecord] = []
    students: list[StudentRecord] = []
    groups: list[GroupRecord] = []
    created_at: Optional[datetime] = None

    # ─── Abfragen ───

    def active_teachers(self) -> list[TeacherRecord]:
        return [t for t in self.teachers if t.is_active]

    def active_students(self) -> list[StudentRecord]:
        return [s for s in self.students if s.is_active]

    def get_teacher(self, teacher_id: str) -> Optional[TeacherRecord]:
        return next((t for t in self.teachers if t.id == teacher_id), None)

    def get_student(self, student_id: str) -> Optional[StudentRecord]:
        return next((s for s in self.students if s.id == student_id), None)

    def get_group(self, group_id: str) -> Optional[GroupRecord]:
        return next((g for g in self.groups if g.id == group_id), None)

    def groups_of_student(self, student_id: str) -> list[GroupRecord]:
        """Alle Gruppen, in denen der Schüler Mitglied ist."""
        return [g for g in self.groups if student_id in g.member_ids]

    def summary(self) -> str:
        """Kurze Übersicht über den Schnappschuss."""
        return (
            f"Lehrkräfte: {len(self.active_teachers())} aktiv "
            f"({len(self.teachers)} gesamt) | "
            f"Schüler: {len(self.active_students())} aktiv | "
            f"Gruppen: {len(self.groups)}"
        )

    # ─── Persistenz ───

    def save_json(self, path: Path) -> None:
        """Speichert den Schnappschuss als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        updated = self.model_copy(update={
            "created_at": self.created_at or datetime.now(timezone.utc),
        })
        with open(path, "w", encoding="utf-8") as f:
            f.write(updated.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "DirectorySnapshot":
        """Lädt einen Schnappschuss aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Verzeichnis-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.model_validate(data)

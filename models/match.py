"""Ergebnis der Namensauflösung für eine Tabellenzelle."""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from models.grid import GridCell
from models.intent import ParsedCellIntent


class LessonType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    GROUP = "GROUP"


IssueCode = Literal[
    "teacher_not_found",
    "teacher_ambiguous",
    "student_not_found",
    "student_ambiguous",
    "group_not_found",
    "group_ambiguous",
    "alias_invalid",
    "manual_invalid",
]


class MatchIssue(BaseModel):
    """Ein Auflösungsfehler, benannt mit dem auslösenden Roh-Text."""

    code: IssueCode
    token: str       # Roh-Text, der nicht aufgelöst werden konnte
    message: str
    entity: Optional[Literal["teacher", "student", "group"]] = None

    @property
    def is_teacher_issue(self) -> bool:
        return self.entity == "teacher" or self.code.startswith("teacher_")

    @property
    def is_identity_issue(self) -> bool:
        return self.entity in ("student", "group") or self.code.startswith(("student_", "group_"))


# ─── Aufgelöste Ziele ───

class StudentTarget(BaseModel):
    kind: Literal["student"] = "student"
    student_id: str
    label: str


class PairTarget(BaseModel):
    """Mehrere Schüler in derselben Stunde (aus "A+B")."""

    kind: Literal["pair"] = "pair"
    student_ids: list[str]
    labels: list[str]


class GroupTarget(BaseModel):
    kind: Literal["group"] = "group"
    group_id: str
    label: str
    supported: bool = False


class MethodTarget(BaseModel):
    kind: Literal["method"] = "method"
    label: str = "Методический час"


MatchTarget = Annotated[
    Union[StudentTarget, PairTarget, GroupTarget, MethodTarget],
    Field(discriminator="kind"),
]


class MatchResult(BaseModel):
    """Auflösung einer Zelle: Lehrkraft, Ziel, Stundentyp, Fehlerliste.

    Leere ``issues`` ⇒ die Zelle ist automatisch importierbar.
    """

    cell: GridCell
    intent: ParsedCellIntent
    teacher_id: Optional[str] = None
    teacher_label: Optional[str] = None
    target: Optional[MatchTarget] = None
    lesson_type: Optional[LessonType] = None
    category: Optional[str] = None
    issues: list[MatchIssue] = []
    resolved_by: list[str] = []   # "alias:teacher", "manual", ...

    @property
    def errors(self) -> list[str]:
        return [i.message for i in self.issues]

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def target_label(self) -> str:
        if self.target is None:
            return ""
        if isinstance(self.target, PairTarget):
            return " + ".join(self.target.labels)
        return self.target.label

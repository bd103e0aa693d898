from models.directory import DirectorySnapshot, GroupRecord, StudentRecord, TeacherRecord
from models.grid import GridCell, Layout, RawGrid, ScheduleBlock, TeacherColumn
from models.intent import (
    DualIntent,
    GroupIntent,
    IndividualIntent,
    MethodIntent,
    ParsedCellIntent,
    SkipIntent,
    SupportedGroupIntent,
)
from models.match import (
    GroupTarget,
    LessonType,
    MatchIssue,
    MatchResult,
    MethodTarget,
    PairTarget,
    StudentTarget,
)
from models.slot import Alias, ManualResolution, ScheduleSlot, SlotCandidate

__all__ = [
    "DirectorySnapshot",
    "TeacherRecord",
    "StudentRecord",
    "GroupRecord",
    "RawGrid",
    "Layout",
    "ScheduleBlock",
    "TeacherColumn",
    "GridCell",
    "ParsedCellIntent",
    "IndividualIntent",
    "DualIntent",
    "GroupIntent",
    "SupportedGroupIntent",
    "MethodIntent",
    "SkipIntent",
    "LessonType",
    "MatchIssue",
    "MatchResult",
    "StudentTarget",
    "PairTarget",
    "GroupTarget",
    "MethodTarget",
    "SlotCandidate",
    "ScheduleSlot",
    "Alias",
    "ManualResolution",
]

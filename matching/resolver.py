"""Namensauflösung: Kopfzeilen und Zell-Texte → Verzeichnis-IDs.

Jede Auflösung läuft über feste Stufen (exakt vor Präfix). Die erste Stufe
mit genau einem Treffer gewinnt; null oder mehrere Treffer fallen in die
nächste Stufe. Ohne eindeutigen Treffer wird NIE geraten: die Zelle bekommt
einen Fehler, der "nicht gefunden" und "mehrdeutig" unterscheidet.

Aliase werden erst nach einer gescheiterten Stufenfolge befragt.
"""

import difflib
import logging
from typing import Iterable, Iterator, Optional

from pydantic import BaseModel

from config.defaults import default_import_config
from config.schema import ImportConfig
from matching.classifier import CellClassifier
from models.directory import DirectorySnapshot, GroupRecord, StudentRecord, TeacherRecord
from models.grid import GridCell
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
from models.slot import Alias, AliasKind

logger = logging.getLogger(__name__)

_KIND_LABELS = {"teacher": "Lehrkraft", "student": "Schüler", "group": "Gruppe"}

Tier = tuple[str, list[str]]


def normalize_name(text: str) -> str:
    """Trimmen, Leerzeichen zusammenfassen, Kleinschreibung, 'ё' → 'е'."""
    return " ".join(text.split()).casefold().replace("ё", "е")


def _compact(text: str) -> str:
    return normalize_name(text).replace(" ", "")


class TierMatch(BaseModel):
    """Ergebnis einer Stufenfolge."""

    entity_id: Optional[str] = None
    tier: Optional[str] = None   # Stufe des Treffers bzw. der ersten Mehrdeutigkeit
    count: int = 0

    @property
    def found(self) -> bool:
        return self.entity_id is not None

    @property
    def ambiguous(self) -> bool:
        return self.entity_id is None and self.count > 1


def run_tiers(token: str, tiers: Iterable[Tier], kind: str = "") -> TierMatch:
    """Erste Stufe mit genau einem Treffer gewinnt."""
    first_ambiguous: Optional[TierMatch] = None
    for name, hits in tiers:
        ids = list(dict.fromkeys(hits))
        if len(ids) == 1:
            logger.debug(f"{kind} '{token}': Treffer in Stufe '{name}' → {ids[0]}")
            return TierMatch(entity_id=ids[0], tier=name, count=1)
        if ids:
            logger.debug(f"{kind} '{token}': Stufe '{name}' mehrdeutig ({len(ids)} Treffer)")
            if first_ambiguous is None:
                first_ambiguous = TierMatch(tier=name, count=len(ids))
        else:
            logger.debug(f"{kind} '{token}': Stufe '{name}' ohne Treffer")
    return first_ambiguous or TierMatch()


def _exact_or_prefix(token: str, keyed: list[tuple[str, str]]) -> list[str]:
    exact = [i for i, key in keyed if key == token]
    if exact:
        return exact
    return [i for i, key in keyed if key.startswith(token)]


# ─── Stufen ───────────────────────────────────────────────────────────────────

def teacher_tiers(token: str, teachers: list[TeacherRecord]) -> Iterator[Tier]:
    """Nachname, Nachname+Vorname, Vorname+Vatersname, Vorname, Nachname-Anfang."""
    t = normalize_name(token)
    yield "Nachname", [x.id for x in teachers if normalize_name(x.last_name) == t]
    yield "Nachname Vorname", _exact_or_prefix(
        t, [(x.id, normalize_name(f"{x.last_name} {x.first_name}")) for x in teachers]
    )
    yield "Vorname Vatersname", _exact_or_prefix(
        t, [(x.id, normalize_name(f"{x.first_name} {x.patronymic or ''}")) for x in teachers]
    )
    yield "Vorname", [x.id for x in teachers if normalize_name(x.first_name) == t]
    yield "Nachname-Anfang", [
        x.id for x in teachers if normalize_name(x.last_name).startswith(t)
    ]


def abbreviation_hits(token: str, students: list[StudentRecord]) -> list[str]:
    """'МаркВ' → Vorname beginnt mit 'марк', Nachname mit 'в'.

    Alle Trennstellen (links mindestens 2 Zeichen) werden probiert, die
    Treffer vereinigt.
    """
    compact = _compact(token)
    hits: list[str] = []
    for i in range(2, len(compact)):
        left, right = compact[:i], compact[i:]
        for s in students:
            if (normalize_name(s.first_name).startswith(left)
                    and normalize_name(s.last_name).startswith(right)
                    and s.id not in hits):
                hits.append(s.id)
    return hits


def student_tiers(token: str, students: list[StudentRecord]) -> Iterator[Tier]:
    t = normalize_name(token)
    full = [(s.id, normalize_name(f"{s.last_name} {s.first_name}")) for s in students]
    yield "Nachname Vorname", [i for i, key in full if key == t]
    yield "Nachname", [s.id for s in students if normalize_name(s.last_name) == t]
    yield "Vorname", [s.id for s in students if normalize_name(s.first_name) == t]
    yield "Nachname Vorname (Anfang)", [i for i, key in full if key.startswith(t)]
    yield "Abkürzung", abbreviation_hits(token, students)
    yield "Nachname-Anfang", [
        s.id for s in students if normalize_name(s.last_name).startswith(t)
    ]
    yield "Vorname-Anfang", [
        s.id for s in students if normalize_name(s.first_name).startswith(t)
    ]


def group_tiers(token: str, groups: list[GroupRecord]) -> Iterator[Tier]:
    t = _compact(token)
    yield "Name", [g.id for g in groups if _compact(g.name) == t]
    yield "Teilstring", [
        g.id for g in groups if t and (t in _compact(g.name) or _compact(g.name) in t)
    ]


# ─── Resolver ─────────────────────────────────────────────────────────────────

class CellResolver:
    """Löst klassifizierte Zellen gegen einen festen Verzeichnis-Schnappschuss auf.

    Lehrkraft-Ergebnisse werden pro Kopfzeile zwischengespeichert.
    """

    def __init__(
        self,
        directory: DirectorySnapshot,
        config: Optional[ImportConfig] = None,
        aliases: Optional[Iterable[Alias]] = None,
    ) -> None:
        self.directory = directory
        self.config = config or default_import_config()
        self.classifier = CellClassifier(self.config.vocabulary)
        self._teachers = directory.active_teachers()
        self._students = directory.active_students()
        self._aliases: dict[tuple[str, str], Alias] = {}
        for a in aliases or []:
            self._aliases[(normalize_name(a.alias), a.kind)] = a
        self._teacher_cache: dict[str, tuple] = {}

    # ─── Einzelne Entitäten ───

    def _tiers(self, kind: AliasKind, token: str) -> Iterator[Tier]:
        if kind == "teacher":
            return teacher_tiers(token, self._teachers)
        if kind == "student":
            return student_tiers(token, self._students)
        return group_tiers(token, self.directory.groups)

    def label_of(self, kind: AliasKind, entity_id: str) -> Optional[str]:
        """Anzeigename einer aktiven Entität, None wenn unbekannt."""
        if kind == "teacher":
            record = self.directory.get_teacher(entity_id)
        elif kind == "student":
            record = self.directory.get_student(entity_id)
        else:
            record = self.directory.get_group(entity_id)
        if record is None or not getattr(record, "is_active", True):
            return None
        return record.label

    def similar_names(self, kind: AliasKind, token: str, n: int = 3) -> list[str]:
        """Ähnliche Anzeigenamen für Fehlermeldungen (difflib)."""
        by_key: dict[str, list[str]] = {}
        if kind == "group":
            records = [(g.label, [g.name]) for g in self.directory.groups]
        else:
            people = self._teachers if kind == "teacher" else self._students
            records = [(p.label, [p.last_name, p.first_name, p.label]) for p in people]
        for label, keys in records:
            for key in keys:
                by_key.setdefault(normalize_name(key), []).append(label)

        labels: list[str] = []
        for key in difflib.get_close_matches(normalize_name(token), list(by_key), n=n, cutoff=0.6):
            for label in by_key[key]:
                if label not in labels:
                    labels.append(label)
        return labels[:n]

    def resolve_entity(
        self, kind: AliasKind, token: str, alias_key: Optional[str] = None
    ) -> tuple[Optional[str], list[MatchIssue], Optional[str]]:
        """Gibt (ID, Fehler, aufgelöst_durch) zurück."""
        match = run_tiers(token, self._tiers(kind, token), kind)
        if match.found:
            return match.entity_id, [], None

        key = alias_key if alias_key is not None else token
        alias = self._aliases.get((normalize_name(key), kind))
        if alias is not None:
            if self.label_of(kind, alias.entity_id) is not None:
                logger.debug(f"{kind} '{key}': Alias → {alias.entity_id}")
                return alias.entity_id, [], f"alias:{kind}"
            return None, [MatchIssue(
                code="alias_invalid", token=key, entity=kind,
                message=f"Alias '{key}' verweist auf unbekannte ID '{alias.entity_id}'",
            )], None

        what = _KIND_LABELS[kind]
        if match.ambiguous:
            issue = MatchIssue(
                code=f"{kind}_ambiguous", token=token, entity=kind,
                message=f"{what} '{token}' mehrdeutig: {match.count} Treffer "
                        f"(Stufe '{match.tier}')",
            )
        else:
            message = f"{what} '{token}' nicht im Verzeichnis gefunden"
            similar = self.similar_names(kind, token)
            if similar:
                message += f". Ähnlich: {', '.join(similar)}"
            issue = MatchIssue(
                code=f"{kind}_not_found", token=token, entity=kind, message=message,
            )
        return None, [issue], None

    def resolve_teacher(
        self, cell: GridCell
    ) -> tuple[Optional[str], list[MatchIssue], Optional[str]]:
        key = cell.teacher_header
        if key not in self._teacher_cache:
            self._teacher_cache[key] = self.resolve_entity(
                "teacher", cell.teacher_name, alias_key=cell.teacher_header
            )
        teacher_id, issues, by = self._teacher_cache[key]
        return teacher_id, list(issues), by

    # ─── Zellen ───

    def resolve(self, cell: GridCell, intent: ParsedCellIntent) -> MatchResult:
        """Löst eine klassifizierte Zelle auf (Skip-Intents nicht erlaubt)."""
        if isinstance(intent, SkipIntent):
            raise ValueError(f"Skip-Zelle kann nicht aufgelöst werden: {intent.raw!r}")

        teacher_id, issues, by = self.resolve_teacher(cell)
        resolved_by = [by] if by else []
        result = MatchResult(
            cell=cell, intent=intent, teacher_id=teacher_id,
            teacher_label=self.label_of("teacher", teacher_id) if teacher_id else None,
        )

        if isinstance(intent, MethodIntent):
            result.target = MethodTarget()
            result.lesson_type = LessonType.INDIVIDUAL
            result.category = intent.category

        elif isinstance(intent, (GroupIntent, SupportedGroupIntent)):
            supported = isinstance(intent, SupportedGroupIntent)
            group_id, group_issues, by = self.resolve_entity(
                "group", intent.group_name, alias_key=intent.raw
            )
            issues += group_issues
            if by:
                resolved_by.append(by)
            if group_id:
                result.target = GroupTarget(
                    group_id=group_id, label=self.label_of("group", group_id),
                    supported=supported,
                )
            result.lesson_type = LessonType.GROUP
            result.category = intent.category if supported else None

        elif isinstance(intent, IndividualIntent):
            student_id, student_issues, by = self.resolve_entity(
                "student", intent.name, alias_key=intent.raw
            )
            issues += student_issues
            if by:
                resolved_by.append(by)
            if student_id:
                result.target = StudentTarget(
                    student_id=student_id, label=self.label_of("student", student_id),
                )
            result.lesson_type = LessonType.INDIVIDUAL
            result.category = intent.category

        elif isinstance(intent, DualIntent):
            ids: list[str] = []
            for name in intent.names:
                student_id, student_issues, by = self.resolve_entity("student", name)
                issues += student_issues
                if by and by not in resolved_by:
                    resolved_by.append(by)
                if student_id and student_id not in ids:
                    ids.append(student_id)
            if not issues and len(ids) >= 2:
                result.target = PairTarget(
                    student_ids=ids, labels=[self.label_of("student", i) for i in ids],
                )
            elif not issues:
                issues.append(MatchIssue(
                    code="student_ambiguous", token=intent.raw, entity="student",
                    message=f"'{intent.raw}': alle Namen zeigen auf denselben Schüler",
                ))
            result.lesson_type = LessonType.INDIVIDUAL
            result.category = intent.category

        result.issues = issues
        result.resolved_by = resolved_by
        return result


def resolve_cells(
    cells: Iterable[GridCell],
    directory: DirectorySnapshot,
    aliases: Optional[Iterable[Alias]] = None,
    config: Optional[ImportConfig] = None,
) -> list[MatchResult]:
    """Klassifiziert und löst alle Zellen auf.

    Skip-Zellen (Platzhalter, gestrichen, Praktikant) erscheinen nicht im
    Ergebnis; sie werden nur gezählt und geloggt.
    """
    resolver = CellResolver(directory, config, aliases)
    results: list[MatchResult] = []
    skipped = 0
    for cell in cells:
        intent = resolver.classifier.classify(cell.raw)
        if isinstance(intent, SkipIntent):
            skipped += 1
            logger.debug(f"{cell.address} '{cell.raw}': übersprungen ({intent.reason})")
            continue
        results.append(resolver.resolve(cell, intent))

    invalid = sum(1 for r in results if not r.is_valid)
    logger.info(f"{len(results)} Zellen aufgelöst, {invalid} mit Fehlern, "
                f"{skipped} übersprungen")
    return results

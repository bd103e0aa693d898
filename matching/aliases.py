"""Gelernte Aliase und manuelle Zuordnungen.

Aliase verbinden einen Roh-Text (Kopfzeile oder Zell-Text) mit einer
Verzeichnis-ID. Sie werden nur befragt, wenn die normale Stufenfolge
scheitert, und immer gegen den aktuellen Schnappschuss geprüft.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from config.schema import ImportConfig
from matching.resolver import CellResolver, normalize_name
from models.directory import DirectorySnapshot
from models.intent import DualIntent, GroupIntent, IndividualIntent, SupportedGroupIntent
from models.match import GroupTarget, MatchIssue, MatchResult, PairTarget, StudentTarget
from models.slot import Alias, AliasKind, ManualResolution

logger = logging.getLogger(__name__)


# ─── Alias-Speicher ───────────────────────────────────────────────────────────

class AliasStore:
    """Aliase als JSON-Datei. Schlüssel ist (normalisierter Text, Art);
    ein neuer Eintrag ersetzt einen bestehenden (letzter gewinnt)."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def all(self) -> list[Alias]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return [Alias.model_validate(item) for item in data]

    def lookup(self, raw: str, kind: AliasKind) -> Optional[Alias]:
        key = normalize_name(raw)
        for alias in self.all():
            if alias.kind == kind and normalize_name(alias.alias) == key:
                return alias
        return None

    def upsert(self, alias: Alias) -> None:
        key = (normalize_name(alias.alias), alias.kind)
        entries = [
            a for a in self.all() if (normalize_name(a.alias), a.kind) != key
        ]
        entries.append(alias)
        self._write(entries)
        logger.info(f"Alias gespeichert: '{alias.alias}' ({alias.kind}) → {alias.entity_id}")

    def upsert_many(self, aliases: Iterable[Alias]) -> int:
        count = 0
        for alias in aliases:
            self.upsert(alias)
            count += 1
        return count

    def _write(self, entries: list[Alias]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([a.model_dump() for a in entries], f, ensure_ascii=False, indent=2)


# ─── Alias-Durchlauf ──────────────────────────────────────────────────────────

def apply_aliases(
    results: list[MatchResult],
    aliases: Iterable[Alias],
    directory: DirectorySnapshot,
    config: Optional[ImportConfig] = None,
) -> list[MatchResult]:
    """Löst fehlerhafte Ergebnisse erneut auf, diesmal mit Aliasen.

    Fehlerfreie Ergebnisse bleiben unverändert.
    """
    resolver = CellResolver(directory, config, aliases)
    updated: list[MatchResult] = []
    fixed = 0
    for result in results:
        if result.is_valid:
            updated.append(result)
            continue
        retry = resolver.resolve(result.cell, result.intent)
        if len(retry.issues) < len(result.issues):
            fixed += 1
        updated.append(retry)
    logger.info(f"Alias-Durchlauf: {fixed} Zellen verbessert")
    return updated


# ─── Manuelle Zuordnungen ─────────────────────────────────────────────────────

def _manual_issue(res: ManualResolution, message: str) -> MatchIssue:
    return MatchIssue(
        code="manual_invalid", token=f"Zeile {res.row + 1}, Spalte {res.col + 1}",
        message=message,
    )


def _apply_one(
    result: MatchResult, res: ManualResolution, resolver: CellResolver
) -> tuple[MatchResult, list[Alias]]:
    intent = result.intent
    cell = result.cell
    issues = list(result.issues)
    resolved_by = list(result.resolved_by)
    update: dict = {}
    persist: list[Alias] = []

    if res.teacher_id:
        label = resolver.label_of("teacher", res.teacher_id)
        if label is None:
            issues.append(_manual_issue(res, f"Lehrkraft-ID '{res.teacher_id}' unbekannt"))
        else:
            issues = [i for i in issues if not i.is_teacher_issue]
            update.update(teacher_id=res.teacher_id, teacher_label=label)
            resolved_by.append("manual:teacher")
            persist.append(Alias(alias=cell.teacher_header, kind="teacher",
                                 entity_id=res.teacher_id))

    if res.student_ids:
        unknown = [i for i in res.student_ids if resolver.label_of("student", i) is None]
        if unknown:
            issues.append(_manual_issue(res, f"Schüler-ID unbekannt: {', '.join(unknown)}"))
        elif isinstance(intent, IndividualIntent) and len(res.student_ids) == 1:
            sid = res.student_ids[0]
            issues = [i for i in issues if not i.is_identity_issue]
            update["target"] = StudentTarget(
                student_id=sid, label=resolver.label_of("student", sid)
            )
            resolved_by.append("manual:student")
            persist.append(Alias(alias=intent.raw, kind="student", entity_id=sid))
        elif isinstance(intent, DualIntent) and len(set(res.student_ids)) >= 2:
            ids = list(dict.fromkeys(res.student_ids))
            issues = [i for i in issues if not i.is_identity_issue]
            update["target"] = PairTarget(
                student_ids=ids, labels=[resolver.label_of("student", i) for i in ids],
            )
            resolved_by.append("manual:student")
            if len(ids) == len(intent.names):
                persist.extend(
                    Alias(alias=name, kind="student", entity_id=sid)
                    for name, sid in zip(intent.names, ids)
                )
        else:
            issues.append(_manual_issue(
                res, f"Schüler-Zuordnung passt nicht zur Zelle '{intent.raw}'"
            ))

    if res.group_id:
        label = resolver.label_of("group", res.group_id)
        if label is None:
            issues.append(_manual_issue(res, f"Gruppen-ID '{res.group_id}' unbekannt"))
        elif isinstance(intent, (GroupIntent, SupportedGroupIntent)):
            issues = [i for i in issues if not i.is_identity_issue]
            update["target"] = GroupTarget(
                group_id=res.group_id, label=label,
                supported=isinstance(intent, SupportedGroupIntent),
            )
            resolved_by.append("manual:group")
            persist.append(Alias(alias=intent.raw, kind="group", entity_id=res.group_id))
        else:
            issues.append(_manual_issue(
                res, f"Gruppen-Zuordnung passt nicht zur Zelle '{intent.raw}'"
            ))

    update.update(issues=issues, resolved_by=resolved_by)
    return result.model_copy(update=update), (persist if res.persist_alias else [])


def apply_manual_resolutions(
    results: list[MatchResult],
    resolutions: Iterable[ManualResolution],
    directory: DirectorySnapshot,
    config: Optional[ImportConfig] = None,
) -> tuple[list[MatchResult], list[Alias]]:
    """Übernimmt manuelle Zuordnungen für einzelne Zellen (Zeile, Spalte).

    Gibt die aktualisierten Ergebnisse und die zu speichernden Aliase zurück.
    Die Aliase werden erst nach dem Commit geschrieben.
    """
    resolver = CellResolver(directory, config)
    by_position = {r.position: r for r in resolutions}
    updated: list[MatchResult] = []
    to_persist: list[Alias] = []
    used: set[tuple[int, int]] = set()

    for result in results:
        res = by_position.get(result.cell.position)
        if res is None:
            updated.append(result)
            continue
        used.add(res.position)
        new_result, aliases = _apply_one(result, res, resolver)
        updated.append(new_result)
        to_persist.extend(aliases)

    for position in by_position.keys() - used:
        logger.warning(f"Manuelle Zuordnung ohne passende Zelle: Zeile {position[0] + 1}, "
                       f"Spalte {position[1] + 1}")
    return updated, to_persist

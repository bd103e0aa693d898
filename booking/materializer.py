"""Aufgelöste Zellen → Slot-Kandidaten (ein Kandidat pro Wochentag und Schüler)."""

import logging
from datetime import date
from typing import Iterable, Optional

from config.defaults import default_import_config
from config.schema import ImportConfig
from data.csv_grid import add_minutes
from models.match import GroupTarget, MatchResult, MethodTarget, PairTarget, StudentTarget
from models.slot import SlotCandidate

logger = logging.getLogger(__name__)


def pair_key_for(student_ids: Iterable[str]) -> str:
    """Deterministischer Schlüssel einer gemeinsamen Stunde: 's2+s7'."""
    return "+".join(sorted(student_ids))


def weekdays_for(match: MatchResult, config: Optional[ImportConfig] = None) -> list[int]:
    """Explizite Tage der Zelle haben Vorrang vor der Tagesgruppe der Spalte."""
    cfg = config or default_import_config()
    override = getattr(match.intent, "weekdays", None)
    if override:
        return list(override)
    group = cfg.get_day_group(match.cell.day_group)
    return list(group.days) if group else []


def materialize(
    match: MatchResult, week_start: date, config: Optional[ImportConfig] = None
) -> list[SlotCandidate]:
    """Erzeugt die Kandidaten einer fehlerfreien Zelle.

    Zellen mit Fehlern liefern nie Kandidaten.
    """
    cfg = config or default_import_config()
    if not match.is_valid or match.target is None or match.teacher_id is None:
        return []

    cell = match.cell
    base = dict(
        teacher_id=match.teacher_id,
        start_time=cell.time,
        end_time=add_minutes(cell.time, cfg.time_grid.lesson_minutes),
        week_start=week_start,
        lesson_type=match.lesson_type,
        category=match.category,
        room=cell.room,
        teacher_label=match.teacher_label or cell.teacher_name,
        source=cell.address,
    )

    target = match.target
    if isinstance(target, StudentTarget):
        per_day = [dict(student_id=target.student_id, target_label=target.label)]
    elif isinstance(target, PairTarget):
        key = pair_key_for(target.student_ids)
        per_day = [
            dict(student_id=sid, target_label=label, pair_key=key)
            for sid, label in zip(target.student_ids, target.labels)
        ]
    elif isinstance(target, GroupTarget):
        per_day = [dict(group_id=target.group_id, target_label=target.label)]
    elif isinstance(target, MethodTarget):
        per_day = [dict(target_label=target.label)]
    else:
        return []

    candidates = [
        SlotCandidate(weekday=day, **base, **extra)
        for day in weekdays_for(match, cfg)
        for extra in per_day
    ]
    logger.debug(f"{cell.address} '{cell.raw}': {len(candidates)} Kandidaten")
    return candidates


def materialize_all(
    matches: Iterable[MatchResult], week_start: date, config: Optional[ImportConfig] = None
) -> list[SlotCandidate]:
    return [c for m in matches for c in materialize(m, week_start, config)]

"""Klassifikation einer Zelle: Roh-Text → ParsedCellIntent.

Rein textuell, ohne Verzeichnis-Zugriff. Regeln in fester Reihenfolge,
die erste passende gewinnt:

  1. Platzhalter ("----", "стажер")                 → skip
  2. Methodik ("метод", "метод2", "метод--")        → method / skip
  3. Begleitete Gruppe ("сопр гр.шк2")              → supported_group
  4. Gruppe ("гр. шк1", "группа реч2")              → group
  5. Programm-Kürzel am Anfang ("МНО ОНР")          → group
  6. Paar ("Мирон+Данил", nicht "Мирон+Данил-")     → dual
  7. Rest: Wochentage, Kategorie abschneiden        → individual / skip
"""

import re
from typing import Optional

from config.defaults import WEEKDAY_ABBREVIATIONS, default_vocabulary
from config.schema import VocabularyConfig
from models.intent import (
    DualIntent,
    GroupIntent,
    IndividualIntent,
    MethodIntent,
    ParsedCellIntent,
    SkipIntent,
    SupportedGroupIntent,
)

_DAY = "|".join(WEEKDAY_ABBREVIATIONS)

_FILLER_RE = re.compile(r"^[\s\-–—_]+$")
_TRAILING_DASH_RE = re.compile(r"[\-–—]\s*$")
_METHOD_RE = re.compile(
    r"^метод(?:ический|ич)?\.?\s*\d*\s*([\-–—]+)?\s*$", re.IGNORECASE
)
_SUPPORT_RE = re.compile(
    r"^сопр\.?\s+(?:(?:группа|гр)\.?\s*)?(\S.*)$", re.IGNORECASE
)
_GROUP_RE = re.compile(r"^(?:группа\s+|гр\.\s*|гр\s+)(\S.*)$", re.IGNORECASE)
_WEEKDAYS_TAIL_RE = re.compile(
    rf"(?:^|(?<=[\s(]))\(?((?:{_DAY})(?:\s*[\-–,/]\s*(?:{_DAY})|\s+(?:{_DAY}))*)\)?\s*$",
    re.IGNORECASE,
)


# ─── Wochentage ───────────────────────────────────────────────────────────────

def _day_range(start: int, end: int) -> list[int]:
    if start <= end:
        return list(range(start, end + 1))
    return list(range(start, 8)) + list(range(1, end + 1))


def parse_weekday_override(fragment: str) -> list[int]:
    """'пн-пт' → [1,2,3,4,5]; 'пн, ср' → [1,3]; 'вт чт' → [2,4].

    Zwei per Bindestrich verbundene Tage bilden einen Bereich (inklusive),
    längere Bindestrich-Ketten ('пн-ср-пт') gelten als Aufzählung.
    """
    text = re.sub(r"\s*[\-–]\s*", "-", fragment.strip().lower())
    days: list[int] = []
    for part in re.split(r"[\s,/]+", text):
        if not part:
            continue
        chain = [WEEKDAY_ABBREVIATIONS[t] for t in part.split("-") if t]
        if len(chain) == 2:
            expanded = _day_range(chain[0], chain[1])
        else:
            expanded = chain
        for d in expanded:
            if d not in days:
                days.append(d)
    return days


def strip_weekday_override(text: str) -> tuple[str, Optional[list[int]]]:
    """Trennt eine Wochentags-Angabe am Ende ab: 'Асанали пн-ср' → ('Асанали', [1,2,3])."""
    match = _WEEKDAYS_TAIL_RE.search(text)
    if not match:
        return text, None
    rest = text[:match.start()].rstrip(" (")
    return rest.strip(), parse_weekday_override(match.group(1))


# ─── Klassifikator ────────────────────────────────────────────────────────────

class CellClassifier:
    """Wendet die Klassifikationsregeln mit einem festen Vokabular an."""

    def __init__(self, vocabulary: Optional[VocabularyConfig] = None) -> None:
        self.vocabulary = vocabulary or default_vocabulary()
        self._categories = self.vocabulary.category_lookup()
        self._trainee = {m.lower() for m in self.vocabulary.trainee_markers}
        self._program_codes = sorted(
            self.vocabulary.group_program_codes, key=len, reverse=True
        )

    def classify(self, raw: str) -> ParsedCellIntent:
        text = " ".join(raw.split())

        # 1. Platzhalter
        if not text or _FILLER_RE.match(text):
            return SkipIntent(raw=raw, reason="Platzhalter")
        if text.lower() in self._trainee:
            return SkipIntent(raw=raw, reason="Praktikant")

        # 2. Methodik-Stunde
        match = _METHOD_RE.match(text)
        if match:
            if match.group(1):
                return SkipIntent(raw=raw, reason="gestrichen")
            return MethodIntent(raw=raw, category=self.vocabulary.method_category)

        # 3. Begleitete Gruppe
        match = _SUPPORT_RE.match(text)
        if match:
            fragment = match.group(1).strip()
            if _TRAILING_DASH_RE.search(fragment):
                return SkipIntent(raw=raw, reason="gestrichen")
            return SupportedGroupIntent(
                raw=raw, group_name=fragment,
                category=self.vocabulary.support_category,
            )

        # 4. Gruppe mit Präfix
        match = _GROUP_RE.match(text)
        if match:
            fragment = match.group(1).strip()
            if _TRAILING_DASH_RE.search(fragment):
                return SkipIntent(raw=raw, reason="gestrichen")
            return GroupIntent(raw=raw, group_name=fragment)

        # 5. Programm-Kürzel
        if self._starts_with_program_code(text):
            if _TRAILING_DASH_RE.search(text):
                return SkipIntent(raw=raw, reason="gestrichen")
            return GroupIntent(raw=raw, group_name=text)

        # 6. Paar-Stunde
        if "+" in text and not _TRAILING_DASH_RE.search(text):
            segments = [s.strip() for s in text.split("+") if s.strip()]
            if len(segments) >= 2:
                last, category, weekdays = self._strip_tail(segments[-1])
                names = segments[:-1] + ([last] if last else [])
                if len(names) >= 2:
                    return DualIntent(
                        raw=raw, names=names, category=category, weekdays=weekdays,
                    )
            elif segments:
                text = segments[0]

        # 7. Einzelstunde
        name, category, weekdays = self._strip_tail(text)
        if not name:
            return SkipIntent(raw=raw, reason="leer")
        if _TRAILING_DASH_RE.search(name):
            return SkipIntent(raw=raw, reason="gestrichen")
        return IndividualIntent(
            raw=raw, name=name, category=category, weekdays=weekdays,
        )

    def _starts_with_program_code(self, text: str) -> bool:
        for code in self._program_codes:
            if text.startswith(code):
                rest = text[len(code):]
                if not rest or rest[0].isspace() or rest[0].isdigit():
                    return True
        return False

    def _strip_tail(self, text: str) -> tuple[str, Optional[str], Optional[list[int]]]:
        """Schneidet Wochentage, dann eine Kategorie vom Ende ab."""
        rest, weekdays = strip_weekday_override(text)
        category = None
        tokens = rest.split()
        if len(tokens) >= 2:
            last = tokens[-1].strip(".,()").lower()
            if last in self._categories:
                category = self._categories[last]
                rest = " ".join(tokens[:-1])
        return rest.strip(), category, weekdays


_default_classifier: Optional[CellClassifier] = None


def classify_cell(
    raw: str, vocabulary: Optional[VocabularyConfig] = None
) -> ParsedCellIntent:
    """Klassifiziert eine Zelle (Default-Vokabular, wenn keins angegeben)."""
    global _default_classifier
    if vocabulary is not None:
        return CellClassifier(vocabulary).classify(raw)
    if _default_classifier is None:
        _default_classifier = CellClassifier()
    return _default_classifier.classify(raw)

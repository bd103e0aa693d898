from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional


# ─── ZEITRASTER ───

class TimeGridConfig(BaseModel):
    """Erkannte Unterrichtsbeginne und Stundenlänge.

    Zeitangaben in der Tabelle werden nur akzeptiert, wenn sie nach der
    Normalisierung ("9.00" → "09:00") in ``time_slots`` enthalten sind.
    """
    # Alle gültigen Unterrichtsbeginne im Format "HH:MM"
    time_slots: list[str] = Field(
        description="Gültige Unterrichtsbeginne (HH:MM)")
    # Länge einer Unterrichtsstunde in Minuten (Ende = Beginn + Dauer)
    lesson_minutes: int = Field(60, ge=15, le=180,
        description="Dauer einer Stunde in Minuten")

    @field_validator("time_slots")
    @classmethod
    def _check_slot_format(cls, v: list[str]) -> list[str]:
        for slot in v:
            parts = slot.split(":")
            if (len(parts) != 2 or len(parts[0]) != 2 or len(parts[1]) != 2
                    or not parts[0].isdigit() or not parts[1].isdigit()):
                raise ValueError(f"Ungültiger Zeit-Slot '{slot}' (erwartet HH:MM)")
            if int(parts[0]) > 23 or int(parts[1]) > 59:
                raise ValueError(f"Zeit-Slot außerhalb des Tages: '{slot}'")
        if len(set(v)) != len(v):
            raise ValueError("Zeit-Slots dürfen nicht doppelt vorkommen")
        return v


# ─── TAGESGRUPPEN ───

class DayGroupDef(BaseModel):
    """Eine Tagesgruppe mit gemeinsamem Rhythmus (z.B. Пн/Ср/Пт)."""
    # Interner Bezeichner, z.B. "mwf" oder "tt"
    id: str
    # Anzeigename, z.B. "Пн / Ср / Пт"
    label: str
    # Wochentage 1=Montag .. 7=Sonntag
    days: list[int]
    # Schreibweisen der Markierung in der Tabelle (case-insensitive)
    markers: list[str] = Field(default_factory=list)

    @field_validator("days")
    @classmethod
    def _check_days(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("Tagesgruppe ohne Wochentage")
        for d in v:
            if d < 1 or d > 7:
                raise ValueError(f"Wochentag {d} außerhalb 1–7")
        return v


# ─── VOKABULAR ───

class CategoryDef(BaseModel):
    """Eine Unterrichtskategorie mit ihren Schreibweisen in Zellen."""
    # Kanonischer Code, z.B. "И"
    code: str
    # Anzeigename, z.B. "Интенсив"
    label: str
    # Weitere Schreibweisen (case-insensitive), z.B. ["интенсив"]
    aliases: list[str] = Field(default_factory=list)


class SpecializationDef(BaseModel):
    """Fachrichtung einer Lehrkraft, als Kürzel im Spaltenkopf notiert."""
    # Kürzel im Kopf, z.B. "лого"
    code: str
    # Anzeigename, z.B. "Логопед"
    label: str


class VocabularyConfig(BaseModel):
    """Feste Wortlisten für Klassifikation und Kopfzeilen."""
    # Unterrichtskategorien (Suffix einer Zelle, z.B. "Асанали И")
    categories: list[CategoryDef]
    # Fachrichtungen der Lehrkräfte (Suffix eines Spaltenkopfs)
    specializations: list[SpecializationDef]
    # Reservierte Programm-Kürzel am Zellenanfang → Gruppenstunde
    group_program_codes: list[str] = Field(
        default=["МНО", "ОНР", "ЗПР", "РАС"],
        description="Programm-Kürzel für Gruppen (case-sensitive)")
    # Platzhalter für Praktikanten → Zelle wird übersprungen
    trainee_markers: list[str] = Field(
        default=["стажер", "стажёр", "стаж"],
        description="Praktikanten-Markierungen")
    # Kategorie eines Methodik-Slots
    method_category: str = Field("Метод",
        description="Kategorie für Methodik-Stunden")
    # Kategorie einer begleiteten Gruppe
    support_category: str = Field("СОПР",
        description="Kategorie für begleitete Gruppen")

    def category_lookup(self) -> dict[str, str]:
        """Baut {schreibweise (lower): code} für alle Kategorien."""
        lookup: dict[str, str] = {}
        for cat in self.categories:
            lookup[cat.code.lower()] = cat.code
            for alias in cat.aliases:
                lookup[alias.lower()] = cat.code
        return lookup

    def specialization_lookup(self) -> dict[str, str]:
        """Baut {kürzel (lower): kürzel} für alle Fachrichtungen."""
        return {s.code.lower(): s.code for s in self.specializations}


# ─── TABELLEN-LAYOUT ───

class LayoutConfig(BaseModel):
    """Positionelle Konventionen der Quelltabelle."""
    # Spalte mit den Uhrzeiten (0-basiert)
    time_column: int = Field(0, ge=0,
        description="Spalte mit den Uhrzeiten")
    # Wie viele Zeilen für die Format-Erkennung durchsucht werden
    detection_rows: int = Field(5, ge=1, le=50,
        description="Zeilen für die Format-Erkennung")
    # Maximale Länge eines Legenden-Tokens (z.B. "И\\А", "ВСЕ")
    legend_max_length: int = Field(4, ge=1, le=10,
        description="Max. Länge von Legenden-Einträgen im Kopf")


# ─── QUELLE ───

class SourceConfig(BaseModel):
    """Abruf der veröffentlichten Tabelle."""
    # Timeout für den HTTP-Abruf in Sekunden
    timeout_seconds: float = Field(15.0, gt=0, le=120,
        description="HTTP-Timeout (Sekunden)")
    # Trennzeichen des Exports
    delimiter: str = Field(",", min_length=1, max_length=1,
        description="Trennzeichen des Exports")


# ─── SPEICHER ───

class StorageConfig(BaseModel):
    """Dateipfade der Referenz-Speicher (JSON)."""
    # Verzeichnis-Snapshot (Lehrkräfte, Schüler, Gruppen)
    directory_path: str = Field("output/directory.json",
        description="Verzeichnis-Snapshot")
    # Gespeicherte Stunden-Slots
    slots_path: str = Field("output/slots.json",
        description="Slot-Speicher")
    # Gelernte Aliase
    aliases_path: str = Field("output/aliases.json",
        description="Alias-Speicher")


# ─── GESAMT-CONFIG ───

class ImportConfig(BaseModel):
    """Gesamtkonfiguration des Stundenplan-Imports."""
    # Name der Einrichtung (nur Anzeige)
    school_name: str = Field("Коррекционный центр",
        description="Name der Einrichtung")
    # Zeitraster mit gültigen Unterrichtsbeginnen
    time_grid: TimeGridConfig
    # Tagesgruppen (Пн/Ср/Пт, Вт/Чт)
    day_groups: list[DayGroupDef]
    # Wortlisten für Klassifikation
    vocabulary: VocabularyConfig
    # Positionelle Konventionen der Tabelle
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    # Abruf-Einstellungen
    source: SourceConfig = Field(default_factory=SourceConfig)
    # Dateipfade
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @model_validator(mode='after')
    def _check_day_groups(self):
        """Prüfe eindeutige Tagesgruppen-IDs und Markierungen."""
        ids = [g.id for g in self.day_groups]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Tagesgruppen-IDs nicht eindeutig: {ids}")
        seen: set[str] = set()
        for g in self.day_groups:
            for m in g.markers:
                key = m.lower()
                if key in seen:
                    raise ValueError(
                        f"Markierung '{m}' gehört zu mehreren Tagesgruppen")
                seen.add(key)
        return self

    def get_day_group(self, group_id: str) -> Optional[DayGroupDef]:
        """Gibt die Tagesgruppe mit dieser ID zurück (oder None)."""
        for g in self.day_groups:
            if g.id == group_id:
                return g
        return None

from config.schema import (
    CategoryDef,
    DayGroupDef,
    ImportConfig,
    LayoutConfig,
    SourceConfig,
    SpecializationDef,
    StorageConfig,
    TimeGridConfig,
    VocabularyConfig,
)


# ─── Wochentage ───────────────────────────────────────────────────────────────

# 1=Пн .. 7=Вс (ISO-Wochentag)
WEEKDAY_ABBREVIATIONS: dict[str, int] = {
    "пн": 1, "вт": 2, "ср": 3, "чт": 4, "пт": 5, "сб": 6, "вс": 7,
}

WEEKDAY_NAMES: dict[int, str] = {
    1: "Пн", 2: "Вт", 3: "Ср", 4: "Чт", 5: "Пт", 6: "Сб", 7: "Вс",
}

# ─── Unterrichtskategorien ────────────────────────────────────────────────────

LESSON_CATEGORIES: list[tuple[str, str, list[str]]] = [
    ("А", "Академические", ["акад", "академические"]),
    ("И", "Интенсив", ["интенсив"]),
    ("Тех", "Технология", ["технология"]),
    ("СОПР", "Сопровождение", ["сопровождение"]),
    ("Метод", "Методический час", ["методический"]),
    ("ДЗ", "Домашнее задание", []),
    ("РЛ", "Русская литература", []),
    ("каз", "Казахский язык", []),
    ("МНО", "Предшкольная подготовка", []),
    ("АФК", "Адаптивная физкультура", []),
]

# ─── Fachrichtungen im Spaltenkopf ────────────────────────────────────────────

SPECIALIZATIONS: list[tuple[str, str]] = [
    ("лого", "Логопед"),
    ("лог", "Логопед"),
    ("деф", "Дефектолог"),
    ("псих", "Психолог"),
    ("нейро", "Нейропсихолог"),
    ("АФК", "Адаптивная физкультура"),
    ("ЛФК", "Лечебная физкультура"),
    ("муз", "Музыкальный руководитель"),
]


def default_time_grid() -> TimeGridConfig:
    """Standard-Raster: volle Stunden von 09:00 bis 18:00.

    Stundenbeginne:
      09:00 10:00 11:00 12:00 13:00 14:00 15:00 16:00 17:00 18:00
    Jede Stunde dauert 60 Minuten (Ende = Beginn + 1h).
    """
    return TimeGridConfig(
        time_slots=[f"{h:02d}:00" for h in range(9, 19)],
        lesson_minutes=60,
    )


def default_day_groups() -> list[DayGroupDef]:
    """Zwei Rhythmen: Пн/Ср/Пт und Вт/Чт."""
    return [
        DayGroupDef(
            id="mwf", label="Пн / Ср / Пт", days=[1, 3, 5],
            markers=["пн/ср/пт", "понедельник/среда/пятница"],
        ),
        DayGroupDef(
            id="tt", label="Вт / Чт", days=[2, 4],
            markers=["вт/чт", "вторник/четверг"],
        ),
    ]


def default_vocabulary() -> VocabularyConfig:
    """Wortlisten aus der gepflegten Tabelle des Zentrums."""
    return VocabularyConfig(
        categories=[
            CategoryDef(code=code, label=label, aliases=aliases)
            for code, label, aliases in LESSON_CATEGORIES
        ],
        specializations=[
            SpecializationDef(code=code, label=label)
            for code, label in SPECIALIZATIONS
        ],
    )


def default_import_config() -> ImportConfig:
    """Vollständige Default-Konfiguration."""
    return ImportConfig(
        school_name="Коррекционный центр",
        time_grid=default_time_grid(),
        day_groups=default_day_groups(),
        vocabulary=default_vocabulary(),
        layout=LayoutConfig(),
        source=SourceConfig(),
        storage=StorageConfig(),
    )

"""Klassifizierte Bedeutung einer Tabellenzelle (vor der Namensauflösung).

Geschlossene Variante über ``kind``: jede Variante trägt nur ihre eigenen
Felder. Pydantic wählt beim Validieren über den Diskriminator.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class IndividualIntent(BaseModel):
    """Einzelstunde mit einem Schüler."""

    kind: Literal["individual"] = "individual"
    raw: str
    name: str
    category: Optional[str] = None
    weekdays: Optional[list[int]] = None   # explizite Tage, sonst Tagesgruppe


class DualIntent(BaseModel):
    """Stunde mit zwei (oder mehr) Schülern: "Мирон+Данил"."""

    kind: Literal["dual"] = "dual"
    raw: str
    names: list[str]
    category: Optional[str] = None
    weekdays: Optional[list[int]] = None


class GroupIntent(BaseModel):
    """Gruppenstunde: "гр. шк1" oder Programm-Kürzel "МНО ОНР"."""

    kind: Literal["group"] = "group"
    raw: str
    group_name: str


class SupportedGroupIntent(BaseModel):
    """Begleitete Gruppe: "сопр гр.шк2"."""

    kind: Literal["supported_group"] = "supported_group"
    raw: str
    group_name: str
    category: str


class MethodIntent(BaseModel):
    """Methodik-Stunde ohne Schüler."""

    kind: Literal["method"] = "method"
    raw: str
    category: str


class SkipIntent(BaseModel):
    """Zelle ohne Unterricht (Platzhalter, Praktikant, gestrichen)."""

    kind: Literal["skip"] = "skip"
    raw: str
    reason: str


ParsedCellIntent = Annotated[
    Union[
        IndividualIntent,
        DualIntent,
        GroupIntent,
        SupportedGroupIntent,
        MethodIntent,
        SkipIntent,
    ],
    Field(discriminator="kind"),
]

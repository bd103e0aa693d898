"""Fehlerhierarchie des Stundenplan-Imports.

Quell-Fehler (``SourceError``) brechen den gesamten Import ab: die Tabelle ist
nicht erreichbar, leer oder hat das falsche Format. Fehler einzelner Zellen
(Name nicht gefunden, Lehrkraft belegt) sind KEINE Ausnahmen; sie werden im
Ergebnis gesammelt, damit die ganze Tabelle auf einmal geprüft werden kann.

Beispiel:
    try:
        preview = importer.preview(source, week_start)
    except SourceError as e:
        console.print(f"[red]{e}[/red]")
"""


class ScheduleImportError(Exception):
    """Basisklasse aller Import-Fehler."""

    pass


class SourceError(ScheduleImportError):
    """Die Quelltabelle kann nicht verarbeitet werden — Import abgebrochen."""

    pass


class SheetUrlError(SourceError):
    """Der Link ist kein gültiger Google-Sheets-Link."""

    pass


class SheetFetchError(SourceError):
    """Die Tabelle konnte nicht geladen werden (HTTP-Fehler, Netzwerk, Timeout)."""

    pass


class EmptyGridError(SourceError):
    """Die Tabelle ist leer oder enthält keine verwertbaren Zeilen."""

    pass


class LayoutError(SourceError):
    """Das Tabellenformat passt nicht zur Anfrage.

    Beispiel: altes Einzelspalten-Format ohne Angabe der Tagesgruppe.
    """

    pass


class RequestError(ScheduleImportError):
    """Ungültige Anfrage-Parameter (z.B. Wochenbeginn ist kein Montag)."""

    pass

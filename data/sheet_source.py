"""Abruf der veröffentlichten Google-Tabelle als CSV-Export.

Aus dem Freigabe-Link wird die Tabellen-ID (und optional das Blatt ``gid``)
gelesen und daraus die Export-URL gebaut. Lokale Dateien werden direkt
gelesen.
"""

import logging
import re
from pathlib import Path
from typing import Optional

import requests

from data.errors import SheetFetchError, SheetUrlError

logger = logging.getLogger(__name__)

_SHEET_ID_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_GID_RE = re.compile(r"[#?&]gid=(\d+)")


def extract_sheet_id(url: str) -> Optional[str]:
    """Liest die Tabellen-ID aus einem Link.

    https://docs.google.com/spreadsheets/d/SHEET_ID/edit#gid=0 → SHEET_ID
    """
    match = _SHEET_ID_RE.search(url)
    return match.group(1) if match else None


def extract_gid(url: str) -> Optional[str]:
    """Liest die Blatt-ID ``gid`` aus einem Link (falls vorhanden)."""
    match = _GID_RE.search(url)
    return match.group(1) if match else None


def build_csv_url(sheet_id: str, gid: Optional[str] = None) -> str:
    """Baut die CSV-Export-URL für eine Tabelle (und ein Blatt)."""
    base = f"https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"
    return f"{base}&gid={gid}" if gid else base


def fetch_sheet_csv(url: str, timeout: float = 15.0) -> str:
    """Lädt eine veröffentlichte Tabelle als CSV-Text.

    Raises:
        SheetUrlError: Link enthält keine Tabellen-ID.
        SheetFetchError: Tabelle nicht gefunden, nicht freigegeben oder
            nicht erreichbar.
    """
    sheet_id = extract_sheet_id(url)
    if not sheet_id:
        raise SheetUrlError(f"Ungültiger Link auf eine Google-Tabelle: {url}")

    csv_url = build_csv_url(sheet_id, extract_gid(url))
    logger.info(f"Lade Tabelle: {csv_url}")
    try:
        response = requests.get(csv_url, timeout=timeout)
    except requests.Timeout as e:
        raise SheetFetchError(
            f"Zeitüberschreitung beim Laden der Tabelle ({timeout:.0f}s)."
        ) from e
    except requests.RequestException as e:
        raise SheetFetchError(
            f"Tabelle nicht erreichbar. Link und Freigabe prüfen. ({e})"
        ) from e

    logger.debug(f"Antwort {response.status_code} ({len(response.content)} Bytes)")
    if response.status_code == 404:
        raise SheetFetchError("Tabelle nicht gefunden. Link prüfen.")
    if not response.ok:
        raise SheetFetchError(
            f"Tabelle konnte nicht geladen werden (HTTP {response.status_code}). "
            "Ist sie per Link zum Ansehen freigegeben?"
        )
    return response.content.decode("utf-8-sig")


def load_source(source: str, timeout: float = 15.0) -> str:
    """Lädt den Tabellen-Text aus einem Link oder einer lokalen Datei."""
    if source.startswith(("http://", "https://")):
        return fetch_sheet_csv(source, timeout=timeout)
    path = Path(source)
    if not path.exists():
        raise SheetFetchError(f"Datei nicht gefunden: {path}")
    logger.info(f"Lese Datei: {path}")
    return path.read_text(encoding="utf-8-sig")

"""Matching-Modul: Zell-Klassifikation, Namensauflösung, Aliase."""

from .classifier import CellClassifier, classify_cell
from .resolver import CellResolver, resolve_cells
from .aliases import AliasStore, apply_aliases, apply_manual_resolutions

__all__ = [
    "CellClassifier",
    "classify_cell",
    "CellResolver",
    "resolve_cells",
    "AliasStore",
    "apply_aliases",
    "apply_manual_resolutions",
]

"""Export-Modul: Excel-Vorschau des Imports (openpyxl)."""

from export.preview_excel import PreviewExcelExporter

__all__ = ["PreviewExcelExporter"]

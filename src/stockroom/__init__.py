"""
Stockroom – inventory record-keeper.

A single products collection with fixed core fields plus dynamically
discovered vendor fields, served over a small JSON API with bulk import
(pasted text, CSV/XLS/XLSX) and export (JSON/CSV/XLSX).
"""

__all__ = [
    "config",
    "errors",
    "logging",
    "paths",
]

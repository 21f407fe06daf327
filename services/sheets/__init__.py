"""
Spreadsheet logger / FAQ store exports.
"""

from .store import FAQEntry, SheetsStore, parse_faq_rows, search_faq

__all__ = [
    "SheetsStore",
    "FAQEntry",
    "parse_faq_rows",
    "search_faq",
]

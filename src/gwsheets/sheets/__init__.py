"""
Sheets client and the helpers it is built from.
"""

from .a1 import SpreadsheetRef, parse_link, build_range
from .values import parse_values_string, normalize_grid
from .resources import GoogleSheetsEnum, ExportFormat
from .client import SheetsClient, create_client

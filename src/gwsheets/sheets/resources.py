"""
Request and response pieces for the Sheets and Drive calls.
Only what the client actually sends or reads is modelled here, the rest of
the API surface stays as plain dicts.
"""
from dataclasses import dataclass, field
from typing import List
import re

from ..resources import GoogleWorkSpaceResourceBase

class GoogleSheetsEnum():
    """
    An 'enum' in the sheets API is just a string so this is
    just to translate shorthand input.
    """
    DEFAULT_VALUE_INPUT_OPTION = "USER_ENTERED"

    _VALID_VALUE_INPUT_OPTIONS = {
        "RAW": "RAW",
        "USER": "USER_ENTERED",
        "USER_ENTERED": "USER_ENTERED"
    }

    @classmethod
    def valueInputOption(cls, option: str|None) -> str:
        """
        https://developers.google.com/sheets/api/reference/rest/v4/ValueInputOption
        Empty means the default, anything unrecognised is passed through for the API to judge.
        """
        if not option:
            return cls.DEFAULT_VALUE_INPUT_OPTION
        return cls._VALID_VALUE_INPUT_OPTIONS.get(str(option).upper(), str(option))

class ExportFormat():
    """
    MIME types Drive can export a spreadsheet as.
    https://developers.google.com/drive/api/guides/ref-export-formats
    """
    _MIME_TYPES = {
        "pdf": "application/pdf",
        "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "csv": "text/csv",
        "tsv": "text/tab-separated-values"
    }

    @classmethod
    def mime(cls, format: str|None) -> str:
        """MIME type for a format name, empty if unsupported."""
        return cls._MIME_TYPES.get(str(format or "").lower(), "")

    @classmethod
    def supported(cls) -> list[str]:
        return list(cls._MIME_TYPES)

@dataclass
class SheetProperties(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets/sheets#sheetproperties
    Only what gets sent on create or read back for tab lookups.
    """
    title: str = field(default="")
    sheetId: int|None = field(default=None)
    index: int|None = field(default=None)

    def __bool__(self) -> bool:
        return bool(self.title)

    @classmethod
    def from_sheet(cls, sheet: dict):
        """From one entry of a spreadsheet's 'sheets' list."""
        p = dict(sheet.get("properties", {})) if isinstance(sheet, dict) else {}
        return cls(title=p.get("title", ""), sheetId=p.get("sheetId"), index=p.get("index"))

@dataclass
class SpreadsheetProperties(GoogleWorkSpaceResourceBase):
    """https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets#SpreadsheetProperties"""
    title: str = field(default="Untitled")

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        self.title = str(self.title) if self.title else "Untitled"

def split_sheet_names(sheets: str|list|tuple|None) -> list[str]:
    """Sheet titles from a list, or from a string separated by commas and/or whitespace."""
    if not sheets:
        return []
    if isinstance(sheets, (list, tuple)):
        return [str(s) for s in sheets]
    return [s for s in re.split(r"[,\s]+", str(sheets)) if s]

@dataclass
class CreateSpreadsheetRequest(GoogleWorkSpaceResourceBase):
    """
    Body for spreadsheets.create
    https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets/create
    """
    properties: SpreadsheetProperties = field(default_factory=SpreadsheetProperties)
    sheets: List[SheetProperties] = field(default_factory=list)

    @classmethod
    def build(cls, title: str|None = None, sheets: str|list|tuple|None = None):
        return cls(SpreadsheetProperties(title or "Untitled"),
                   [SheetProperties(title=n) for n in split_sheet_names(sheets)])

    def to_base(self) -> dict:
        b = {"properties": self.properties.to_base()}
        if self.sheets:
            b["sheets"] = [{"properties": s.trim()} for s in self.sheets]
        return b

import re
from dataclasses import dataclass, field
from urllib.parse import quote

from ..resources import GoogleWorkSpaceResourceBase

# the id charset Google uses in sheet urls
_LINK_ID_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
# gid can be in the query or the fragment
_LINK_GID_RE = re.compile(r"[?#&]gid=(\d+)")

DEFAULT_RANGE = "A1"

@dataclass
class SpreadsheetRef(GoogleWorkSpaceResourceBase):
    """
    What a shareable link points at.
    gid is the sheet tab id, None if the link didn't carry one.
    """
    spreadsheetId: str = field(default="")
    gid: str|None = field(default=None)

    def __bool__(self) -> bool:
        return bool(self.spreadsheetId)

def parse_link(url) -> SpreadsheetRef:
    """
    Pull the spreadsheet id and tab gid out of a Sheets url, e.g.
    https://docs.google.com/spreadsheets/d/<id>/edit#gid=<gid>
    Anything that doesn't match gives an empty id and None gid, this never raises.
    """
    s = "" if url is None else str(url)
    m = _LINK_ID_RE.search(s)
    gm = _LINK_GID_RE.search(s)
    return SpreadsheetRef(m.group(1) if m else "", gm.group(1) if gm else None)

def build_range(sheetName: str|None = None, rangeA1: str|None = None) -> str:
    """
    A1 range string from an optional sheet title and optional cell range.
    Just a title means the whole sheet, nothing at all means A1 of the first sheet.
    """
    if not rangeA1 and sheetName:
        return str(sheetName)
    if sheetName and rangeA1:
        return f"{sheetName}!{rangeA1}"
    return str(rangeA1) if rangeA1 else DEFAULT_RANGE

def resolve_spreadsheet_id(spreadsheetId: str|None = None, link: str|None = None) -> str:
    """An explicit id wins, otherwise whatever the link yields ("" for nothing)."""
    if spreadsheetId:
        return str(spreadsheetId)
    return parse_link(link).spreadsheetId

def encode_path_component(value: str) -> str:
    """Percent escape for a url path segment, leaving the same marks JS encodeURIComponent does."""
    return quote(str(value), safe="!'()*")

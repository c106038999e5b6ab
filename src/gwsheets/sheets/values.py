"""
Cell value grids and the ways callers hand them over.

The values endpoints want a list of rows.  Callers may pass a flat row instead,
and the older update/append helpers also accept the grid as JSON text or as a
compact string where commas separate rows and pipes separate cells:

    "a|b|c,d|e|f"  ->  [["a", "b", "c"], ["d", "e", "f"]]

Cells from the string form are always strings and are not trimmed.  There is no
escaping, so a cell can't itself contain ',' or '|'; use a list or JSON for that.
"""
from dataclasses import dataclass, field
from typing import Any
import json

from ..resources import GoogleWorkSpaceResourceBase

ROW_SEPARATOR = ","
CELL_SEPARATOR = "|"

def is_array(values: Any) -> bool:
    """Lists and tuples count as rows, strings don't even though they iterate."""
    return isinstance(values, (list, tuple))

def normalize_grid(values: list|tuple) -> list[list[Any]]:
    """A 2D grid passes through, a flat sequence becomes a single row."""
    if len(values) > 0 and is_array(values[0]):
        return [list(row) for row in values]
    return [list(values)]

def parse_values_string(text: str|None) -> list[list[str]]:
    """Split the compact string form, empty input gives an empty grid."""
    s = "" if text is None else str(text)
    if not s:
        return []
    return [row.split(CELL_SEPARATOR) for row in s.split(ROW_SEPARATOR)]

@dataclass
class ValuesResult(GoogleWorkSpaceResourceBase):
    """
    Which input supplied the grid.
    source is one of "values", "valuesJson", "string" or "missing".
    """
    values: Any = field(default=None)
    source: str = field(default="missing")

    def __bool__(self) -> bool:
        return self.source != "missing"

def parse_values_json(text: Any) -> ValuesResult:
    """Decode JSON text, bad JSON is the same as none given."""
    if not text:
        return ValuesResult()
    try:
        parsed = json.loads(str(text))
    except ValueError:
        return ValuesResult()
    if not parsed and not isinstance(parsed, list):
        # null, false, 0 and "" count as nothing given, an empty list is still a grid
        return ValuesResult()
    return ValuesResult(parsed, "valuesJson")

def resolve_values(values: Any = None, valuesJson: Any = None) -> ValuesResult:
    """
    Pick the grid for the legacy helpers: a list/tuple in values first,
    then valuesJson if it decodes, then values as the compact string form.
    """
    if is_array(values):
        return ValuesResult(values, "values")
    r = parse_values_json(valuesJson)
    if r:
        return r
    if isinstance(values, str):
        grid = parse_values_string(values)
        if grid:
            return ValuesResult(grid, "string")
    return ValuesResult()

"""
Sheets REST client.

Every public method returns an ApiEnvelope and none of them raise: bad input
is caught before any token or network work, auth problems become a
"no access token" failure, API errors carry their status and body, and
transport exceptions are logged and reported by message.
"""
from typing import Any, Optional
from urllib.parse import urlencode
import base64
import logging

from ..access import GoogleWorkspaceAuth, bearer
from ..config import SheetsClientConfig
from ..resources import ApiEnvelope, AccessToken
from ..storage import FileStorage
from ..transport import HttpTransport
from .a1 import parse_link, build_range, resolve_spreadsheet_id, encode_path_component
from .resources import GoogleSheetsEnum, ExportFormat, CreateSpreadsheetRequest, SheetProperties
from .values import is_array, normalize_grid, resolve_values

logger = logging.getLogger(__name__)

MISSING_ID = "missing spreadsheetId or link"
VALUES_NOT_ARRAY = "values must be an array (2D for multiple rows)"

def _api_error_message(data: Any, status: int) -> str:
    """Best message out of a Google error body, 'HTTP <status>' if there isn't one."""
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            msg = err.get("message") or err.get("error_description")
            if msg:
                return str(msg)
        if data.get("error_description"):
            return str(data["error_description"])
    return f"HTTP {status}"

class SheetsClient:
    """
    Client for the Google Sheets v4 values/spreadsheets endpoints and Drive export.

    Collaborators are injectable so tests and embedding apps can swap them:

        auth:       anything with auth(scope) -> token and a name
        transport:  anything with json(...) and fetch(...) returning HttpResponse
        storage:    anything with save(path, dataBase64)

    Spreadsheets can be addressed by spreadsheetId or by a shareable link,
    the explicit id wins when both are given.
    """

    parseLink = staticmethod(parse_link)
    buildRange = staticmethod(build_range)

    def __init__(self, config: Optional[SheetsClientConfig] = None,
                 auth=None, transport=None, storage=None):
        self.config = config if config is not None else SheetsClientConfig()
        self.auth = auth if auth is not None else GoogleWorkspaceAuth(self.config)
        self.transport = transport if transport is not None else HttpTransport(
            timeout=self.config.timeout, max_tries=self.config.max_tries)
        self.storage = storage if storage is not None else FileStorage(
            self.config.storage_namespace, self.config.storage_root)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.config.sheets_base}, auth={self.auth!r})"

    @property
    def no_token_error(self) -> str:
        return f"no access token (configure {getattr(self.auth, 'name', 'auth provider')})"

    def configure(self, opts: dict) -> None:
        """
        Hand provider specific options to the auth provider.
        Best effort, options it rejects are logged and otherwise ignored.
        """
        if not isinstance(opts, dict):
            return
        try:
            self.auth.config = opts
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"ignoring auth configuration: {e}")

    def getToken(self, scope=None) -> AccessToken:
        """Ask the auth provider for a token, failures come back as an empty AccessToken."""
        requested = scope if scope else self.config.default_scope
        try:
            token = self.auth.auth(requested)
        except Exception as e:
            logger.warning(f"token fetch failed for {requested}: {e}")
            return AccessToken(error=str(e) or type(e).__name__)
        if not token:
            return AccessToken(error="empty token")
        return AccessToken(token)

    def apiRequest(self, path: str, method: str = "GET", bodyObj: Any = None,
                   timeout: Optional[float] = None, retry: bool = True, scope=None) -> ApiEnvelope:
        """
        Authenticated JSON call to sheets_base + path (path may carry a query).
        timeout and scope fall back to the config defaults, retry lets the
        transport retry throttling and server errors.
        """
        token = self.getToken(scope)
        if not token:
            return ApiEnvelope.failure(self.no_token_error)
        url = self.config.sheets_base + path
        headers = {"Content-Type": "application/json"}
        headers.update(bearer(token.token))
        try:
            r = self.transport.json(url=url, method=method, headers=headers, bodyObj=bodyObj,
                                    timeout=timeout, retry=retry)
        except Exception as e:
            msg = str(e) or "unknown"
            logger.error(f"apiRequest:error {method} {path}: {msg}")
            return ApiEnvelope.failure(msg)
        data = r.json if r.json is not None else r.raw
        status = r.status
        if status and status >= 400:
            return ApiEnvelope.failure(_api_error_message(data, status), status=status, body=data)
        return ApiEnvelope(True, data=data, status=status)

    @staticmethod
    def _values_path(spreadsheetId: str, range: str, suffix: str = "", query: Optional[dict] = None) -> str:
        path = (f"/spreadsheets/{encode_path_component(spreadsheetId)}"
                f"/values/{encode_path_component(range)}{suffix}")
        if query:
            path += "?" + urlencode(query)
        return path

    def createSpreadsheet(self, title: Optional[str] = None, sheets=None) -> ApiEnvelope:
        """
        New spreadsheet, optionally with named tabs.
        sheets can be a list of titles or one string of titles separated by commas/whitespace.
        Data is reduced to {spreadsheetId, title}.
        """
        body = CreateSpreadsheetRequest.build(title, sheets).to_base()
        res = self.apiRequest("/spreadsheets", method="POST", bodyObj=body)
        if not res.ok:
            return res
        j = res.data if isinstance(res.data, dict) else {}
        return ApiEnvelope(True, data={"spreadsheetId": j.get("spreadsheetId"),
                                       "title": (j.get("properties") or {}).get("title")},
                           status=res.status)

    def metadata(self, link: Optional[str] = None, spreadsheetId: Optional[str] = None, scope=None) -> ApiEnvelope:
        """Spreadsheet resource as the API returns it."""
        id = resolve_spreadsheet_id(spreadsheetId, link)
        if not id:
            return ApiEnvelope.failure(MISSING_ID)
        return self.apiRequest(f"/spreadsheets/{encode_path_component(id)}", method="GET", scope=scope)

    def getValues(self, link: Optional[str] = None, spreadsheetId: Optional[str] = None,
                  rangeA1: Optional[str] = None, sheetName: Optional[str] = None, scope=None) -> ApiEnvelope:
        id = resolve_spreadsheet_id(spreadsheetId, link)
        if not id:
            return ApiEnvelope.failure(MISSING_ID)
        path = self._values_path(id, build_range(sheetName, rangeA1))
        return self.apiRequest(path, method="GET", scope=scope)

    def _write_values(self, method: str, suffix: str, link, spreadsheetId, rangeA1, sheetName,
                      values, valueInputOption, scope) -> ApiEnvelope:
        if not is_array(values):
            return ApiEnvelope.failure(VALUES_NOT_ARRAY)
        id = resolve_spreadsheet_id(spreadsheetId, link)
        if not id:
            return ApiEnvelope.failure(MISSING_ID)
        query = {"valueInputOption": GoogleSheetsEnum.valueInputOption(valueInputOption)}
        path = self._values_path(id, build_range(sheetName, rangeA1), suffix, query)
        return self.apiRequest(path, method=method, bodyObj={"values": normalize_grid(values)}, scope=scope)

    def setValues(self, link: Optional[str] = None, spreadsheetId: Optional[str] = None,
                  rangeA1: Optional[str] = None, sheetName: Optional[str] = None,
                  values=None, valueInputOption: Optional[str] = None, scope=None) -> ApiEnvelope:
        """
        Overwrite the range with values.
        A flat list is written as one row.  valueInputOption defaults to USER_ENTERED.
        """
        return self._write_values("PUT", "", link, spreadsheetId, rangeA1, sheetName,
                                  values, valueInputOption, scope)

    def appendValues(self, link: Optional[str] = None, spreadsheetId: Optional[str] = None,
                     sheetName: Optional[str] = None, rangeA1: Optional[str] = None,
                     values=None, valueInputOption: Optional[str] = None, scope=None) -> ApiEnvelope:
        """Add rows after the last row of data found in the range."""
        return self._write_values("POST", ":append", link, spreadsheetId, rangeA1, sheetName,
                                  values, valueInputOption, scope)

    def clearRange(self, link: Optional[str] = None, spreadsheetId: Optional[str] = None,
                   rangeA1: Optional[str] = None, sheetName: Optional[str] = None, scope=None) -> ApiEnvelope:
        """Blank the cell values in the range, formatting is kept."""
        id = resolve_spreadsheet_id(spreadsheetId, link)
        if not id:
            return ApiEnvelope.failure(MISSING_ID)
        path = self._values_path(id, build_range(sheetName, rangeA1), ":clear")
        return self.apiRequest(path, method="POST", bodyObj={}, scope=scope)

    def appendRow(self, opts: Optional[dict] = None) -> ApiEnvelope:
        """
        Older single call form: {spreadsheetId, values, sheet?, valueInputOption?}.
        Checked strictly so callers get told which field is wrong.
        """
        if not isinstance(opts, dict):
            return ApiEnvelope.failure("appendRow: options required")
        id = opts.get("spreadsheetId")
        values = opts.get("values")
        sheet = opts.get("sheet") if isinstance(opts.get("sheet"), str) and opts.get("sheet") else None
        vio = opts.get("valueInputOption")
        vio = vio if isinstance(vio, str) and vio else None
        if not id or not isinstance(id, str):
            return ApiEnvelope.failure("appendRow: missing spreadsheetId")
        if not is_array(values):
            return ApiEnvelope.failure("appendRow: values must be an array")
        return self.appendValues(spreadsheetId=id, sheetName=sheet, values=values, valueInputOption=vio)

    def _legacy_write(self, op, spreadsheetId, rangeA1, sheetName, values, valuesJson,
                      valueInputOption, scope) -> ApiEnvelope:
        if not spreadsheetId:
            return ApiEnvelope.failure("missing spreadsheetId")
        resolved = resolve_values(values, valuesJson)
        if not resolved:
            return ApiEnvelope.failure("missing values")
        logger.debug(f"{op.__name__}: values from {resolved.source}")
        return op(spreadsheetId=spreadsheetId, rangeA1=rangeA1, sheetName=sheetName,
                  values=resolved.values, valueInputOption=valueInputOption, scope=scope)

    def update(self, spreadsheetId: Optional[str] = None, rangeA1: Optional[str] = None,
               sheetName: Optional[str] = None, values=None, valuesJson: Optional[str] = None,
               valueInputOption: Optional[str] = None, scope=None) -> ApiEnvelope:
        """
        setValues taking the grid as a list, as JSON text in valuesJson,
        or as the "a|b,c|d" string form in values.
        """
        return self._legacy_write(self.setValues, spreadsheetId, rangeA1, sheetName,
                                  values, valuesJson, valueInputOption, scope)

    def append(self, spreadsheetId: Optional[str] = None, rangeA1: Optional[str] = None,
               sheetName: Optional[str] = None, values=None, valuesJson: Optional[str] = None,
               valueInputOption: Optional[str] = None, scope=None) -> ApiEnvelope:
        """appendValues with the same value inputs as update()."""
        return self._legacy_write(self.appendValues, spreadsheetId, rangeA1, sheetName,
                                  values, valuesJson, valueInputOption, scope)

    def exportSpreadsheet(self, spreadsheetId: Optional[str] = None, format: Optional[str] = None,
                          outPath: Optional[str] = None, scope=None, link: Optional[str] = None) -> ApiEnvelope:
        """
        Download the spreadsheet through Drive as pdf, xlsx, csv or tsv and save it to outPath.
        csv/tsv only cover the first sheet, that is a Drive export limitation.
        """
        id = resolve_spreadsheet_id(spreadsheetId, link)
        if not id:
            return ApiEnvelope.failure("missing spreadsheetId")
        if not outPath:
            return ApiEnvelope.failure("missing outPath")
        mime = ExportFormat.mime(format)
        if not mime:
            return ApiEnvelope.failure("unsupported format")
        token = self.getToken(scope or self.config.export_scope)
        if not token:
            return ApiEnvelope.failure(self.no_token_error)
        url = (f"{self.config.drive_base}/files/{encode_path_component(id)}/export?"
               + urlencode({"mimeType": mime}))
        try:
            r = self.transport.fetch(url=url, method="GET", headers=bearer(token.token))
        except Exception as e:
            msg = str(e) or "unknown"
            logger.error(f"exportSpreadsheet:error {id}: {msg}")
            return ApiEnvelope.failure(msg)
        status = r.status
        if status and not 200 <= status < 300:
            return ApiEnvelope(False, data=r.text, error=f"HTTP {status}", status=status)
        content = r.content or (r.text or "").encode("utf-8")
        try:
            self.storage.save(path=outPath, dataBase64=base64.b64encode(content).decode("ascii"))
        except Exception as e:
            msg = str(e) or type(e).__name__
            logger.error(f"exportSpreadsheet:storage {outPath}: {msg}")
            return ApiEnvelope.failure(msg, status=status)
        return ApiEnvelope(True, data={"outPath": str(outPath), "bytes": len(content)}, status=status)

    def sheetTitleForGid(self, link: Optional[str] = None, spreadsheetId: Optional[str] = None,
                         gid: Optional[str|int] = None, scope=None) -> ApiEnvelope:
        """
        Title of the tab a link's #gid= points at, for use as sheetName.
        gid can also be given directly.
        """
        ref = parse_link(link)
        id = spreadsheetId or ref.spreadsheetId
        if not id:
            return ApiEnvelope.failure(MISSING_ID)
        want = gid if gid is not None else ref.gid
        if want is None:
            return ApiEnvelope.failure("missing gid")
        res = self.metadata(spreadsheetId=id, scope=scope)
        if not res.ok:
            return res
        sheets = res.data.get("sheets", []) if isinstance(res.data, dict) else []
        for s in sheets:
            props = SheetProperties.from_sheet(s)
            if props.sheetId is not None and str(props.sheetId) == str(want):
                return ApiEnvelope(True, data={"gid": str(want), "title": props.title}, status=res.status)
        return ApiEnvelope.failure(f"no sheet with gid {want}")

    get = getValues
    clear = clearRange
    create = createSpreadsheet

def create_client(config: Optional[SheetsClientConfig|dict] = None, **kwargs) -> SheetsClient:
    """
    Build a client from a config object or a plain dict (e.g. loaded from a file).
    kwargs go to SheetsClient, so auth/transport/storage can be swapped in.
    """
    if isinstance(config, dict):
        config = SheetsClientConfig.from_dict(config)
    return SheetsClient(config, **kwargs)

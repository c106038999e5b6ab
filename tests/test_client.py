import base64
import logging

import pytest
import requests

from gwsheets.sheets.client import SheetsClient, create_client
from gwsheets.config import SheetsClientConfig
from gwsheets.storage import FileStorage
from gwsheets.transport import HttpResponse

from conftest import FakeAuth, FakeTransport

BASE = "https://sheets.googleapis.com/v4"
LINK = "https://docs.google.com/spreadsheets/d/ABC123/edit#gid=7"

def test_append_row_end_to_end(client, transport):
    transport.responses = [HttpResponse(status=200, json={"updates": {"updatedRows": 1}})]
    res = client.appendRow({"spreadsheetId": "X", "values": ["a", "b"], "sheet": "Tab1"})
    assert(res.ok)
    assert(res.status == 200)
    assert(res.data == {"updates": {"updatedRows": 1}})
    assert(len(transport.calls) == 1)
    call = transport.calls[0]
    assert(call["method"] == "POST")
    assert(call["url"] == BASE + "/spreadsheets/X/values/Tab1:append?valueInputOption=USER_ENTERED")
    assert(call["bodyObj"] == {"values": [["a", "b"]]})
    assert(call["headers"]["Authorization"] == "Bearer tok-123")
    assert(call["headers"]["Content-Type"] == "application/json")

def test_api_error_message_and_body(client, transport):
    body = {"error": {"code": 403, "message": "Permission denied"}}
    transport.responses = [HttpResponse(status=403, json=body)]
    res = client.getValues(spreadsheetId="X")
    assert(not res.ok)
    assert(res.error == "Permission denied")
    assert(res.status == 403)
    assert(res.body == body)
    assert(res.trim() == {"ok": False, "error": "Permission denied", "status": 403, "body": body})

@pytest.mark.parametrize("body,expected", [
    ({"error": {"error_description": "bad grant"}}, "bad grant"),
    ({"error": "invalid_grant", "error_description": "Token expired"}, "Token expired"),
    ({"error": {}}, "HTTP 500"),
    (None, "HTTP 500"),
])
def test_api_error_fallbacks(client, transport, body, expected):
    transport.responses = [HttpResponse(status=500, json=body)]
    res = client.metadata(spreadsheetId="X")
    assert(not res.ok)
    assert(res.error == expected)
    assert(res.status == 500)

def test_raw_body_passthrough(client, transport):
    transport.responses = [HttpResponse(status=200, raw="plain text")]
    res = client.metadata(spreadsheetId="X")
    assert(res.ok)
    assert(res.data == "plain text")

def test_transport_exception_logged(client, transport, caplog):
    transport.error = requests.ConnectionError("connection reset")
    with caplog.at_level(logging.ERROR, logger="gwsheets.sheets.client"):
        res = client.getValues(spreadsheetId="X")
    assert(not res.ok)
    assert(res.error == "connection reset")
    assert(res.status is None)
    assert("apiRequest:error" in caplog.text)

def test_transport_exception_without_message(client, transport):
    transport.error = RuntimeError()
    res = client.getValues(spreadsheetId="X")
    assert(res.error == "unknown")

def test_no_token_short_circuits(config, transport):
    auth = FakeAuth(fail=True)
    c = SheetsClient(config, auth=auth, transport=transport)
    res = c.getValues(spreadsheetId="X")
    assert(not res.ok)
    assert(res.error == "no access token (configure google auth)")
    assert(len(auth.calls) == 1)
    assert(transport.calls == [])

def test_empty_token_short_circuits(config, transport):
    c = SheetsClient(config, auth=FakeAuth(token=""), transport=transport)
    token = c.getToken()
    assert(not token)
    assert(token.error == "empty token")
    assert(not c.clearRange(spreadsheetId="X").ok)
    assert(transport.calls == [])

def test_default_scope_passed_to_auth(client, auth):
    client.getValues(spreadsheetId="X")
    assert(auth.calls == [["sheets"]])
    client.getValues(spreadsheetId="X", scope="sheets-ro")
    assert(auth.calls[-1] == "sheets-ro")

@pytest.mark.parametrize("call", [
    lambda c: c.metadata(),
    lambda c: c.getValues(rangeA1="A1:B2"),
    lambda c: c.setValues(values=[["a"]]),
    lambda c: c.appendValues(values=[["a"]]),
    lambda c: c.clearRange(sheetName="S"),
    lambda c: c.getValues(link="https://example.com/nothing/here"),
    lambda c: c.sheetTitleForGid(gid=0),
])
def test_missing_id_makes_no_network_call(client, auth, transport, call):
    res = call(client)
    assert(not res.ok)
    assert(res.error == "missing spreadsheetId or link")
    assert(auth.calls == [])
    assert(transport.calls == [])

def test_get_values_from_link(client, transport):
    client.getValues(link=LINK, sheetName="My Sheet", rangeA1="A1:B2")
    call = transport.calls[0]
    assert(call["method"] == "GET")
    assert(call["url"] == BASE + "/spreadsheets/ABC123/values/My%20Sheet!A1%3AB2")
    assert(call["bodyObj"] is None)

def test_explicit_id_beats_link(client, transport):
    client.get(link=LINK, spreadsheetId="OTHER")
    assert(transport.calls[0]["url"] == BASE + "/spreadsheets/OTHER/values/A1")

def test_metadata(client, transport):
    transport.responses = [HttpResponse(status=200, json={"spreadsheetId": "ABC123"})]
    res = client.metadata(link=LINK)
    assert(res.ok)
    assert(res.data == {"spreadsheetId": "ABC123"})
    assert(transport.calls[0]["url"] == BASE + "/spreadsheets/ABC123")

def test_set_values_wraps_flat_row(client, transport):
    client.setValues(spreadsheetId="X", sheetName="S", rangeA1="A1", values=[1, 2, 3])
    call = transport.calls[0]
    assert(call["method"] == "PUT")
    assert(call["url"] == BASE + "/spreadsheets/X/values/S!A1?valueInputOption=USER_ENTERED")
    assert(call["bodyObj"] == {"values": [[1, 2, 3]]})

def test_set_values_grid_and_raw_option(client, transport):
    client.setValues(spreadsheetId="X", values=[[1], [2]], valueInputOption="RAW")
    call = transport.calls[0]
    assert(call["url"].endswith("/values/A1?valueInputOption=RAW"))
    assert(call["bodyObj"] == {"values": [[1], [2]]})

@pytest.mark.parametrize("values", ["a,b", None, {"a": 1}, 5])
def test_write_rejects_non_array(client, auth, transport, values):
    for op in (client.setValues, client.appendValues):
        res = op(spreadsheetId="X", values=values)
        assert(not res.ok)
        assert(res.error == "values must be an array (2D for multiple rows)")
    assert(auth.calls == [])
    assert(transport.calls == [])

def test_append_values(client, transport):
    client.appendValues(link=LINK, sheetName="Log", values=[["x", "y"]], valueInputOption="user")
    call = transport.calls[0]
    assert(call["method"] == "POST")
    assert(call["url"] == BASE + "/spreadsheets/ABC123/values/Log:append?valueInputOption=USER_ENTERED")

def test_clear_range(client, transport):
    client.clear(spreadsheetId="X", sheetName="S", rangeA1="B2:C3")
    call = transport.calls[0]
    assert(call["method"] == "POST")
    assert(call["url"] == BASE + "/spreadsheets/X/values/S!B2%3AC3:clear")
    assert(call["bodyObj"] == {})

def test_create_spreadsheet(client, transport):
    transport.responses = [HttpResponse(status=200, json={
        "spreadsheetId": "NEW1", "properties": {"title": "Budget"}, "sheets": []})]
    res = client.createSpreadsheet(title="Budget", sheets="Jan, Feb Mar")
    assert(res.ok)
    assert(res.data == {"spreadsheetId": "NEW1", "title": "Budget"})
    call = transport.calls[0]
    assert(call["method"] == "POST")
    assert(call["url"] == BASE + "/spreadsheets")
    assert(call["bodyObj"] == {"properties": {"title": "Budget"},
                               "sheets": [{"properties": {"title": "Jan"}},
                                          {"properties": {"title": "Feb"}},
                                          {"properties": {"title": "Mar"}}]})

def test_create_defaults(client, transport):
    client.create()
    assert(transport.calls[0]["bodyObj"] == {"properties": {"title": "Untitled"}})
    client.create(title="T", sheets=["One", "Two"])
    assert(transport.calls[1]["bodyObj"]["sheets"] == [{"properties": {"title": "One"}},
                                                       {"properties": {"title": "Two"}}])

def test_create_failure_passthrough(client, transport):
    transport.responses = [HttpResponse(status=401, json={"error": {"message": "Unauthorized"}})]
    res = client.createSpreadsheet(title="x")
    assert(not res.ok)
    assert(res.error == "Unauthorized")
    assert(res.status == 401)

@pytest.mark.parametrize("opts,error", [
    (None, "appendRow: options required"),
    ("X", "appendRow: options required"),
    ({"values": ["a"]}, "appendRow: missing spreadsheetId"),
    ({"spreadsheetId": 42, "values": ["a"]}, "appendRow: missing spreadsheetId"),
    ({"spreadsheetId": "X"}, "appendRow: values must be an array"),
    ({"spreadsheetId": "X", "values": "a,b"}, "appendRow: values must be an array"),
])
def test_append_row_input_errors(client, transport, opts, error):
    res = client.appendRow(opts)
    assert(not res.ok)
    assert(res.error == error)
    assert(transport.calls == [])

def test_append_row_ignores_non_string_options(client, transport):
    client.appendRow({"spreadsheetId": "X", "values": [["a"]], "sheet": 3, "valueInputOption": 1})
    assert(transport.calls[0]["url"] == BASE + "/spreadsheets/X/values/A1:append?valueInputOption=USER_ENTERED")

def test_update_value_sources(client, transport):
    client.update(spreadsheetId="X", values=[["list"]], valuesJson='[["json"]]')
    assert(transport.calls[-1]["bodyObj"] == {"values": [["list"]]})
    assert(transport.calls[-1]["method"] == "PUT")

    client.update(spreadsheetId="X", values="a|b", valuesJson='[["json"]]')
    assert(transport.calls[-1]["bodyObj"] == {"values": [["json"]]})

    client.update(spreadsheetId="X", values="a|b,c|d", valuesJson="{not json")
    assert(transport.calls[-1]["bodyObj"] == {"values": [["a", "b"], ["c", "d"]]})

def test_append_legacy(client, transport):
    client.append(spreadsheetId="X", sheetName="S", values="1|2")
    call = transport.calls[0]
    assert(call["method"] == "POST")
    assert(call["url"] == BASE + "/spreadsheets/X/values/S:append?valueInputOption=USER_ENTERED")
    assert(call["bodyObj"] == {"values": [["1", "2"]]})

def test_legacy_input_errors(client, transport):
    assert(client.update(values=[["a"]]).error == "missing spreadsheetId")
    assert(client.append(spreadsheetId="X").error == "missing values")
    assert(client.update(spreadsheetId="X", valuesJson="nope").error == "missing values")
    # valid json that isn't a grid gets through to the array check
    assert(client.update(spreadsheetId="X", valuesJson='{"a": 1}').error ==
           "values must be an array (2D for multiple rows)")
    assert(transport.calls == [])

def test_export(client, auth, transport, tmp_path):
    pdf = b"%PDF-1.4\x00\xff binary"
    transport.responses = [HttpResponse(status=200, text="ignored", content=pdf)]
    res = client.exportSpreadsheet(spreadsheetId="X", format="PDF", outPath="out/report.pdf")
    assert(res.ok)
    assert(res.status == 200)
    assert(res.data == {"outPath": "out/report.pdf", "bytes": len(pdf)})
    assert((tmp_path / "out" / "report.pdf").read_bytes() == pdf)
    assert(auth.calls == ["drive.readonly"])
    call = transport.calls[0]
    assert(call["kind"] == "fetch")
    assert(call["url"] == "https://www.googleapis.com/drive/v3/files/X/export?mimeType=application%2Fpdf")
    assert(call["headers"] == {"Authorization": "Bearer tok-123"})

def test_export_text_only_body(client, transport, tmp_path):
    transport.responses = [HttpResponse(status=200, text="a,b\n1,2\n")]
    res = client.exportSpreadsheet(spreadsheetId="X", format="csv", outPath="sheet.csv")
    assert(res.ok)
    assert((tmp_path / "sheet.csv").read_text() == "a,b\n1,2\n")

@pytest.mark.parametrize("kwargs,error", [
    ({"format": "pdf", "outPath": "a.pdf"}, "missing spreadsheetId"),
    ({"spreadsheetId": "X", "format": "pdf"}, "missing outPath"),
    ({"spreadsheetId": "X", "format": "docx", "outPath": "a.docx"}, "unsupported format"),
    ({"spreadsheetId": "X", "outPath": "a"}, "unsupported format"),
])
def test_export_input_errors(client, auth, transport, kwargs, error):
    res = client.exportSpreadsheet(**kwargs)
    assert(not res.ok)
    assert(res.error == error)
    assert(auth.calls == [])
    assert(transport.calls == [])

def test_export_http_error(client, transport, tmp_path):
    transport.responses = [HttpResponse(status=404, text="File not found")]
    res = client.exportSpreadsheet(spreadsheetId="X", format="xlsx", outPath="x.xlsx")
    assert(not res.ok)
    assert(res.status == 404)
    assert(res.data == "File not found")
    assert(res.error == "HTTP 404")
    assert(not (tmp_path / "x.xlsx").exists())

def test_export_no_token(config, transport):
    c = SheetsClient(config, auth=FakeAuth(fail=True), transport=transport)
    res = c.exportSpreadsheet(spreadsheetId="X", format="tsv", outPath="x.tsv")
    assert(res.error == "no access token (configure google auth)")
    assert(transport.calls == [])

def test_export_transport_error(client, transport):
    transport.error = requests.Timeout("read timed out")
    res = client.exportSpreadsheet(spreadsheetId="X", format="csv", outPath="x.csv")
    assert(not res.ok)
    assert(res.error == "read timed out")

def test_export_bad_out_path(client, transport):
    transport.responses = [HttpResponse(status=200, text="a,b", content=b"a,b")]
    res = client.exportSpreadsheet(spreadsheetId="X", format="csv", outPath="bad\x00name.csv")
    assert(not res.ok)
    assert("bad" in res.error)
    assert(res.status == 200)

def test_export_storage_failure(config, auth, transport, caplog):
    class ReadOnlyStorage:
        namespace = "gsheet"

        def save(self, path, dataBase64):
            raise PermissionError("read-only volume")

    transport.responses = [HttpResponse(status=200, text="a,b", content=b"a,b")]
    c = SheetsClient(config, auth=auth, transport=transport, storage=ReadOnlyStorage())
    with caplog.at_level(logging.ERROR, logger="gwsheets.sheets.client"):
        res = c.exportSpreadsheet(spreadsheetId="X", format="csv", outPath="x.csv")
    assert(not res.ok)
    assert(res.error == "read-only volume")
    assert(res.status == 200)
    assert("exportSpreadsheet:storage" in caplog.text)

def test_sheet_title_for_gid(client, transport):
    transport.responses = [HttpResponse(status=200, json={"sheets": [
        {"properties": {"sheetId": 0, "title": "Summary", "index": 0}},
        {"properties": {"sheetId": 7, "title": "Raw Data", "index": 1}}]})]
    res = client.sheetTitleForGid(link=LINK)
    assert(res.ok)
    assert(res.data == {"gid": "7", "title": "Raw Data"})
    assert(transport.calls[0]["url"] == BASE + "/spreadsheets/ABC123")

    res = client.sheetTitleForGid(spreadsheetId="ABC123", gid=0)
    assert(res.data["title"] == "Summary")

    res = client.sheetTitleForGid(spreadsheetId="ABC123", gid=99)
    assert(not res.ok)
    assert(res.error == "no sheet with gid 99")

def test_sheet_title_for_gid_needs_gid(client, transport):
    res = client.sheetTitleForGid(link="https://docs.google.com/spreadsheets/d/ABC123/edit")
    assert(res.error == "missing gid")
    assert(transport.calls == [])

def test_configure_best_effort(client, auth):
    client.configure({"scopes": ["sheets"]})
    assert(auth.config == {"scopes": ["sheets"]})
    client.configure("not a dict")
    assert(auth.config == {"scopes": ["sheets"]})

def test_configure_ignores_rejected_options(config, transport, caplog):
    class Strict:
        name = "strict"

        def auth(self, scope=None):
            return "tok"

        @property
        def config(self):
            return {}

        @config.setter
        def config(self, value):
            raise ValueError("bad port")

    c = SheetsClient(config, auth=Strict(), transport=transport)
    with caplog.at_level(logging.WARNING, logger="gwsheets.sheets.client"):
        c.configure({"port": "x"})
    assert("bad port" in caplog.text)

def test_static_helpers():
    assert(SheetsClient.parseLink(LINK).gid == "7")
    assert(SheetsClient.buildRange(sheetName="S", rangeA1="A1") == "S!A1")

def test_create_client_from_dict(tmp_path):
    c = create_client({"timeout": 5, "max_tries": 2, "storage_root": str(tmp_path), "unknown": 1},
                      auth=FakeAuth())
    assert(isinstance(c.config, SheetsClientConfig))
    assert(c.config.timeout == 5.0)
    assert(c.transport.timeout == 5.0)
    assert(c.transport.max_tries == 2)
    assert(isinstance(c.storage, FileStorage))
    assert(c.storage.root == tmp_path)
    assert(c.storage.namespace == "gsheet")

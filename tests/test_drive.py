import json

import pytest
import requests

from modules.drive import DriveClient, build_multipart, folder_query
from modules.errors import Unauthenticated, UpstreamError
from modules.token_store import DriveCredential

from conftest import FakeHttp, FakeResponse

API = "https://drive.test/drive/v3"
UPLOAD = "https://drive.test/upload/drive/v3/files"


def make_client(http, token="tok-123"):
    return DriveClient(DriveCredential(token), http=http, api_url=API, upload_url=UPLOAD)


# ── List ──

def test_list_without_token_is_unauthenticated_and_skips_upstream(client, http):
    resp = client.get("/drive/list")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "No Drive token"}
    assert http.calls == []


def test_list_folders_queries_non_trashed_children(authed_client, http):
    http.add("GET", f"{API}/files", FakeResponse(200, {"files": [{"id": "f1", "name": "QA", "extra": 1}]}))

    resp = authed_client.get("/drive/list?parentId=abc")

    assert resp.status_code == 200
    assert resp.get_json() == {"folders": [{"id": "f1", "name": "QA"}]}
    call = http.calls[0]
    assert call.headers["Authorization"] == "Bearer tok-123"
    assert call.params["q"] == (
        "mimeType='application/vnd.google-apps.folder' and trashed=false and 'abc' in parents"
    )
    assert call.params["pageSize"] == 200
    assert call.params["fields"] == "files(id,name)"


def test_list_defaults_to_root():
    assert folder_query(None).endswith("'root' in parents")
    assert folder_query("it's").endswith("'it\\'s' in parents")


def test_list_upstream_failure_keeps_status(authed_client, http):
    http.add("GET", f"{API}/files", FakeResponse(403, {"error": {"message": "denied"}}))
    resp = authed_client.get("/drive/list")
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Drive list failed 403"


def test_transport_error_is_upstream_error():
    class Broken:
        def request(self, *args, **kwargs):
            raise requests.ConnectionError("down")

    with pytest.raises(UpstreamError) as exc:
        make_client(Broken()).list_folders()
    assert exc.value.status == 502


# ── Upload ──

def test_multipart_body_layout():
    body = build_multipart({"name": "a.webm"}, b"\x00\x01", "video/webm", "svi-b")
    assert body.startswith(b"--svi-b\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n")
    assert b'{"name": "a.webm"}\r\n--svi-b\r\nContent-Type: video/webm\r\n\r\n\x00\x01' in body
    assert body.endswith(b"\r\n--svi-b--\r\n")


def test_upload_route_sends_multipart_related(authed_client, http):
    http.add("POST", UPLOAD, FakeResponse(200, {"id": "new-id", "webViewLink": "https://view"}))

    resp = authed_client.post(
        "/drive/upload?name=session-1.webm&parentId=folder-9",
        data=b"VIDEO",
        headers={"Content-Type": "video/webm"},
    )

    assert resp.status_code == 200
    assert resp.get_json() == {"id": "new-id", "webViewLink": "https://view"}
    call = http.calls[0]
    content_type = call.headers["Content-Type"]
    assert content_type.startswith("multipart/related; boundary=svi-")
    boundary = content_type.split("boundary=")[1]
    assert call.params == {"uploadType": "multipart", "fields": "id,webViewLink,webContentLink"}

    metadata_part = call.data.split(f"--{boundary}\r\n".encode())[1]
    metadata = json.loads(metadata_part.split(b"\r\n\r\n", 1)[1].strip())
    assert metadata == {"name": "session-1.webm", "mimeType": "video/webm", "parents": ["folder-9"]}
    assert b"\r\n\r\nVIDEO\r\n" in call.data


def test_upload_requires_name(authed_client, http):
    resp = authed_client.post("/drive/upload", data=b"x")
    assert resp.status_code == 400
    assert http.calls == []


def test_upload_without_token(client, http):
    resp = client.post("/drive/upload?name=a", data=b"x")
    assert resp.status_code == 401
    assert http.calls == []


def test_upload_failure_reports_status_and_details(authed_client, http):
    http.add("POST", UPLOAD, FakeResponse(507, content=b"quota exceeded"))
    resp = authed_client.post("/drive/upload?name=a", data=b"x")
    assert resp.status_code == 507
    body = resp.get_json()
    assert body["error"] == "Drive upload failed 507"
    assert body["details"] == "quota exceeded"


# ── Stream ──

def test_stream_forwards_range_and_allowed_headers(authed_client, http):
    upstream = FakeResponse(
        206,
        content=b"0123456789",
        headers={
            "Content-Type": "video/webm",
            "Content-Range": "bytes 0-9/100",
            "Accept-Ranges": "bytes",
            "ETag": '"abc"',
            "X-Goog-Secret": "nope",
            "Set-Cookie": "upstream=1",
        },
    )
    http.add("GET", f"{API}/files/file-1", upstream)

    resp = authed_client.get("/drive/stream?fileId=file-1", headers={"Range": "bytes=0-9"})

    assert resp.status_code == 206
    assert resp.data == b"0123456789"
    assert resp.headers["Content-Range"] == "bytes 0-9/100"
    assert resp.headers["Accept-Ranges"] == "bytes"
    assert resp.headers["ETag"] == '"abc"'
    assert "X-Goog-Secret" not in resp.headers
    assert "upstream=1" not in resp.headers.get("Set-Cookie", "")

    call = http.calls[0]
    assert call.headers["Range"] == "bytes=0-9"
    assert call.params == {"alt": "media"}
    assert call.stream is True
    resp.close()
    assert upstream.closed


def test_stream_without_range_is_plain_get(authed_client, http):
    http.add("GET", f"{API}/files/file-1", FakeResponse(200, content=b"abc", headers={"Content-Type": "video/mp4"}))
    resp = authed_client.get("/drive/stream?fileId=file-1")
    assert resp.status_code == 200
    assert "Range" not in http.calls[0].headers


def test_stream_requires_file_id_and_token(client, http):
    assert client.get("/drive/stream").status_code == 400
    assert client.get("/drive/stream?fileId=x").status_code == 401
    assert http.calls == []


# ── Delete ──

@pytest.mark.parametrize("status, expected", [(204, True), (200, True), (404, False), (500, False)])
def test_delete_success_is_any_2xx(status, expected):
    http = FakeHttp()
    http.add("DELETE", f"{API}/files/f1", FakeResponse(status))
    assert make_client(http).delete("f1") is expected


def test_delete_without_token_is_false():
    http = FakeHttp()
    assert make_client(http, token=None).delete("f1") is False
    assert http.calls == []


def test_delete_swallows_transport_errors():
    class Broken:
        def request(self, *args, **kwargs):
            raise requests.Timeout("slow")

    assert make_client(Broken()).delete("f1") is False


# ── Who am I ──

def test_me_without_token(client, http):
    assert client.get("/drive/me").get_json() == {"authed": False}
    assert http.calls == []


def test_me_returns_identity(authed_client, http):
    http.add("GET", f"{API}/about", FakeResponse(200, {"user": {"emailAddress": "qa@example.com", "displayName": "QA"}}))
    assert authed_client.get("/drive/me").get_json() == {"authed": True, "email": "qa@example.com", "name": "QA"}


def test_me_failure_is_authed_but_unknown(authed_client, http):
    http.add("GET", f"{API}/about", FakeResponse(401))
    resp = authed_client.get("/drive/me")
    assert resp.status_code == 200
    assert resp.get_json() == {"authed": True, "email": None, "name": None, "error": "HTTP 401"}


@pytest.mark.parametrize("upstream", [
    FakeResponse(200, content=b"<html>oops</html>"),
    FakeResponse(200, [1, 2]),
    FakeResponse(200, {"user": "qa@example.com"}),
])
def test_me_malformed_body_is_authed_but_unknown(authed_client, http, upstream):
    http.add("GET", f"{API}/about", upstream)
    resp = authed_client.get("/drive/me")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["authed"] is True
    assert body["email"] is None
    assert body["name"] is None


def test_unauthenticated_client_raises():
    with pytest.raises(Unauthenticated):
        make_client(FakeHttp(), token=None).list_folders()

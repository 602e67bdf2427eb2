"""
Google Drive proxy
Server-side façade translating SVI requests into Drive v3 REST calls.

The client never reads the request context itself: route handlers pass
the DriveCredential taken from the token cookie.
"""
import json
import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Iterator, Optional
from urllib.parse import quote

import requests

import config
from modules.errors import Unauthenticated, UpstreamError
from modules.token_store import DriveCredential

logger = logging.getLogger("svi.drive")

FOLDER_MIME = "application/vnd.google-apps.folder"
LIST_PAGE_SIZE = 200
STREAM_CHUNK_SIZE = 64 * 1024
PASS_THROUGH_HEADERS = (
    "content-type",
    "content-length",
    "accept-ranges",
    "content-range",
    "cache-control",
    "etag",
    "last-modified",
)


@dataclass
class DriveStream:
    status: int
    headers: dict
    chunks: Iterator[bytes]
    close: Callable[[], None]


def build_multipart(metadata: dict, data: bytes, content_type: str, boundary: str) -> bytes:
    """multipart/related body: JSON metadata part followed by the media part."""
    preamble = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
    )
    file_header = f"--{boundary}\r\nContent-Type: {content_type}\r\n\r\n"
    closing = f"\r\n--{boundary}--\r\n"
    return b"".join([
        preamble.encode("utf-8"),
        file_header.encode("utf-8"),
        data,
        closing.encode("utf-8"),
    ])


def folder_query(parent_id: Optional[str] = None) -> str:
    parent = (parent_id or "root").replace("\\", "\\\\").replace("'", "\\'")
    return f"mimeType='{FOLDER_MIME}' and trashed=false and '{parent}' in parents"


class DriveClient:
    def __init__(self, credential: DriveCredential, http=None,
                 api_url: str = config.DRIVE_API_URL,
                 upload_url: str = config.DRIVE_UPLOAD_URL):
        self.credential = credential
        self.http = http if http is not None else requests.Session()
        self.api_url = api_url.rstrip("/")
        self.upload_url = upload_url

    def _auth_headers(self) -> dict:
        if not self.credential:
            raise Unauthenticated()
        return {"Authorization": f"Bearer {self.credential.token}"}

    def _request(self, method: str, url: str, **kwargs):
        try:
            return self.http.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.warning("Drive %s %s failed: %s", method, url, e)
            raise UpstreamError(f"Drive request failed: {e}") from e

    # ── Folders ──

    def list_folders(self, parent_id: Optional[str] = None) -> list[dict]:
        headers = self._auth_headers()
        resp = self._request(
            "GET",
            f"{self.api_url}/files",
            headers=headers,
            params={
                "q": folder_query(parent_id),
                "fields": "files(id,name)",
                "pageSize": LIST_PAGE_SIZE,
            },
        )
        if not resp.ok:
            logger.warning("Drive list failed %s", resp.status_code)
            raise UpstreamError(f"Drive list failed {resp.status_code}", resp.status_code)
        files = resp.json().get("files") or []
        return [{"id": f.get("id"), "name": f.get("name")} for f in files]

    # ── Files ──

    def upload(self, name: str, data: bytes, content_type: str = "application/octet-stream",
               parent_id: Optional[str] = None) -> dict:
        headers = self._auth_headers()
        metadata = {"name": name, "mimeType": content_type}
        if parent_id:
            metadata["parents"] = [parent_id]
        boundary = f"svi-{secrets.token_hex(8)}"
        headers["Content-Type"] = f"multipart/related; boundary={boundary}"

        resp = self._request(
            "POST",
            self.upload_url,
            headers=headers,
            params={"uploadType": "multipart", "fields": "id,webViewLink,webContentLink"},
            data=build_multipart(metadata, data, content_type, boundary),
        )
        if not resp.ok:
            logger.warning("Drive upload of %s failed %s", name, resp.status_code)
            raise UpstreamError(
                f"Drive upload failed {resp.status_code}", resp.status_code, details=resp.text
            )
        uploaded = resp.json()
        logger.info("Uploaded %s to Drive as %s", name, uploaded.get("id"))
        return uploaded

    def stream(self, file_id: str, range_header: Optional[str] = None) -> DriveStream:
        headers = self._auth_headers()
        if range_header:
            headers["Range"] = range_header
        resp = self._request(
            "GET",
            f"{self.api_url}/files/{quote(file_id, safe='')}",
            headers=headers,
            params={"alt": "media"},
            stream=True,
        )
        passed = {}
        for name in PASS_THROUGH_HEADERS:
            value = resp.headers.get(name)
            if value:
                passed[name] = value
        return DriveStream(
            status=resp.status_code,
            headers=passed,
            chunks=resp.iter_content(chunk_size=STREAM_CHUNK_SIZE),
            close=resp.close,
        )

    def delete(self, file_id: str) -> bool:
        """Best-effort delete; any failure is reported as False."""
        try:
            headers = self._auth_headers()
            resp = self._request(
                "DELETE",
                f"{self.api_url}/files/{quote(file_id, safe='')}",
                headers=headers,
            )
        except (Unauthenticated, UpstreamError) as e:
            logger.warning("Drive delete of %s skipped: %s", file_id, e)
            return False
        if resp.status_code == 204 or 200 <= resp.status_code < 300:
            logger.info("Deleted Drive file %s", file_id)
            return True
        logger.warning("Drive delete of %s failed %s", file_id, resp.status_code)
        return False

    # ── Account ──

    def whoami(self) -> dict:
        headers = self._auth_headers()
        try:
            resp = self.http.request(
                "GET",
                f"{self.api_url}/about",
                headers=headers,
                params={"fields": "user(emailAddress,displayName)", "alt": "json"},
            )
        except requests.RequestException as e:
            logger.warning("Drive about failed: %s", e)
            return _unknown_identity(str(e))
        if not resp.ok:
            return _unknown_identity(f"HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError:
            logger.warning("Drive about returned invalid JSON")
            return _unknown_identity("Invalid response")
        if not isinstance(body, dict):
            return _unknown_identity("Invalid response")
        user = body.get("user")
        if not isinstance(user, dict):
            user = {}
        return {
            "authed": True,
            "email": user.get("emailAddress") or None,
            "name": user.get("displayName") or None,
        }


def _unknown_identity(error: str) -> dict:
    """Token present, identity could not be read."""
    return {"authed": True, "email": None, "name": None, "error": error}

"""
SVI HTTP client
requests-based client for the SVI server endpoints, used by the Python
session controller. The Drive token cookie is kept by the session.
"""
import logging
from typing import Optional

import requests

from modules.errors import Unauthenticated, UpstreamError

logger = logging.getLogger("svi.client")


class SviClient:
    def __init__(self, base_url: str = "http://localhost:3000", http=None):
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()

    def _call(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise UpstreamError(f"{method} {path} failed: {e}") from e
        if not resp.ok:
            logger.warning("%s %s -> %s", method, path, resp.status_code)
        if resp.status_code == 401:
            raise Unauthenticated(_error_message(resp) or "No Drive token")
        if not resp.ok:
            raise UpstreamError(_error_message(resp) or f"HTTP {resp.status_code}", resp.status_code)
        return resp.json() if resp.content else {}

    # ── Drive ──

    def drive_login(self, access_token: str, expires_in_sec: int = 300) -> dict:
        return self._call("POST", "/drive/token",
                          json={"accessToken": access_token, "expiresInSec": expires_in_sec})

    def drive_logout(self) -> dict:
        return self._call("POST", "/drive/logout")

    def drive_status(self) -> bool:
        return bool(self._call("GET", "/drive/status").get("authed"))

    def drive_folders(self, parent_id: Optional[str] = None) -> list[dict]:
        params = {"parentId": parent_id} if parent_id else None
        return self._call("GET", "/drive/list", params=params).get("folders") or []

    def upload_drive(self, name: str, data: bytes, mime_type: str,
                     parent_id: Optional[str] = None) -> dict:
        params = {"name": name}
        if parent_id:
            params["parentId"] = parent_id
        return self._call("POST", "/drive/upload", params=params, data=data,
                          headers={"Content-Type": mime_type})

    # ── Local video ──

    def upload_local(self, name: str, ext: str, data: bytes, mime_type: str) -> dict:
        return self._call("POST", "/upload", params={"name": name, "ext": ext}, data=data,
                          headers={"Content-Type": mime_type})

    # ── Records ──

    def get_records(self) -> dict:
        return self._call("GET", "/records")

    def put_records(self, records: dict) -> dict:
        return self._call("PUT", "/records", json=records)

    def delete_record(self, key: str) -> dict:
        return self._call("DELETE", "/records", params={"id": key})


def _error_message(resp) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error")
    return None

"""
Report views
Read-only shaping of the records map for the report pages: the flat and
grouped tables and the single-session player with seek marks.
"""
from typing import Optional
from urllib.parse import quote

from modules.entries import DEFAULT_VIDEO_EXT

UNNAMED = "(unnamed)"


def format_offset(ms) -> str:
    total = max(0, int((ms or 0) // 1000))
    return f"{total // 60:02d}:{total % 60:02d}"


def duration_sec(item: dict) -> int:
    remarks = item.get("remarks") or []
    if not remarks:
        return 0
    return max(0, int((remarks[-1].get("ts") or 0) // 1000))


def resolve_video_source(entry: Optional[dict]) -> Optional[str]:
    """Playable URL: Drive proxy stream or the local static path."""
    if not entry or not entry.get("sessionId"):
        return None
    if (entry.get("videoSource") or "local") == "drive":
        file_id = entry.get("driveFileId")
        return f"/drive/stream?fileId={quote(file_id, safe='')}" if file_id else None
    ext = entry.get("videoExt") or DEFAULT_VIDEO_EXT
    return f"/videos/{entry['sessionId']}.{ext}"


def _row(key: str, entry: dict, item: dict) -> dict:
    added_at = item.get("addedAt")
    return {
        "sessionKey": key,
        "sessionId": entry.get("sessionId"),
        "itemName": item.get("name") or UNNAMED,
        "addedAt": added_at,
        "added": format_offset(added_at),
        "durationSec": duration_sec(item),
        "remarkTexts": [r.get("text", "") for r in item.get("remarks") or []],
        "videoUrl": resolve_video_source(entry),
    }


def flat_rows(records: dict) -> list[dict]:
    rows = []
    for key, entry in (records or {}).items():
        for item in entry.get("items") or []:
            rows.append(_row(key, entry, item))
    return rows


def grouped_rows(records: dict) -> list[dict]:
    groups = []
    for key, entry in (records or {}).items():
        rows = [_row(key, entry, item) for item in entry.get("items") or []]
        groups.append({
            "sessionKey": key,
            "sessionId": entry.get("sessionId"),
            "videoSource": entry.get("videoSource") or "local",
            "videoUrl": resolve_video_source(entry),
            "itemCount": len(rows),
            "remarkCount": sum(len(r["remarkTexts"]) for r in rows),
            "durationSec": max((r["durationSec"] for r in rows), default=0),
            "rows": rows,
        })
    return groups


def _mark(label: str, ms) -> dict:
    ms = max(0, int(ms or 0))
    return {"label": label, "ms": ms, "seconds": ms / 1000, "time": format_offset(ms)}


def player_view(records: dict, key: Optional[str] = None) -> dict:
    keys = list(records or {})
    if key not in records:
        key = keys[0] if keys else None
    entry = records.get(key) if key else None

    items = []
    for item in (entry or {}).get("items") or []:
        items.append({
            "name": item.get("name") or UNNAMED,
            "mark": _mark(item.get("name") or UNNAMED, item.get("addedAt")),
            "remarks": [_mark(r.get("text", ""), r.get("ts")) for r in item.get("remarks") or []],
        })

    return {
        "keys": keys,
        "selectedKey": key,
        "sessionId": (entry or {}).get("sessionId"),
        "videoUrl": resolve_video_source(entry),
        "driveWebViewLink": (entry or {}).get("driveWebViewLink"),
        "items": items,
    }
